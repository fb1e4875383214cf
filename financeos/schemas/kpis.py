"""Schemas for KPI aggregation results."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_serializer


class MonthlyBucket(BaseModel):
    """Income and expense totals for one calendar month (1-12)."""

    month: int
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @field_serializer("income", "expense")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class FinancialKpis(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    transaction_count: int
    accounts_balance: Decimal
    category_breakdown: dict[str, Decimal]
    monthly_data: list[MonthlyBucket]
    calculated_at: datetime

    @field_serializer("total_income", "total_expense", "net_balance", "accounts_balance")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)

    @field_serializer("category_breakdown")
    def serialize_breakdown(self, value: dict[str, Decimal]) -> dict[str, float]:
        return {category: float(total) for category, total in value.items()}


class KpiCacheItem(BaseModel):
    kpi_name: str
    value: Decimal
    calculated_at: datetime

    @field_serializer("value")
    def serialize_value(self, value: Decimal) -> float:
        return float(value)
