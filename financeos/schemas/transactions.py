"""Schemas for tenant transactions and accounts."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer


class TransactionCreate(BaseModel):
    """Raw fields are re-validated with the same rules as CSV rows."""

    type: Any = None
    category: Any = None
    amount: Any = None
    description: str | None = None
    transaction_date: Any = None
    account_id: int | None = None


class TransactionPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    account_id: int | None = None
    type: str
    category: str
    amount: Decimal
    description: str | None = None
    transaction_date: date
    created_at: datetime

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class TransactionFilters(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    type: str | None = None
    category: str | None = None


class AccountCreate(BaseModel):
    name: str
    bank_name: str | None = None
    balance: Decimal = Decimal("0")
    currency: str = "BRL"
    status: str = "active"


class AccountPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    name: str
    bank_name: str | None = None
    balance: Decimal
    currency: str
    status: str
    created_at: datetime

    @field_serializer("balance")
    def serialize_balance(self, value: Decimal) -> float:
        return float(value)
