"""Schemas for system health checks."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class HealthCheckResult(BaseModel):
    check_type: str
    status: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    status: str
    checks: list[HealthCheckResult]
    total_latency_ms: int
    checked_at: datetime
