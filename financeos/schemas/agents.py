"""Schemas for the AI agents and their training rules."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer


class AgentQuery(BaseModel):
    agent: Any = None
    question: Any = None


class AgentAnswer(BaseModel):
    agent: str
    answer: str
    has_custom_rules: bool
    data_context_summary: dict[str, int]


class AnalysisRequest(BaseModel):
    question: Any = None


class AnalysisSummary(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    transaction_count: int

    @field_serializer("total_income", "total_expense", "net_balance")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class AnalysisAnswer(BaseModel):
    answer: str
    has_data: bool
    data_summary: AnalysisSummary | None = None


class TrainingRuleCreate(BaseModel):
    rule_type: str
    rule_content: str
    priority: int = 0
    is_active: bool = True


class TrainingRuleUpdate(BaseModel):
    rule_content: str | None = None
    priority: int | None = None
    is_active: bool | None = None


class TrainingRulePayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    rule_type: str
    rule_content: str
    priority: int
    is_active: bool
    created_at: datetime
