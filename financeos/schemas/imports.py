"""Schemas for CSV statement imports."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class ImportRequest(BaseModel):
    """Rows are validated one by one by the service, so any JSON is accepted here."""

    rows: Any = None
    integration_name: str | None = None


class ImportResult(BaseModel):
    success: bool = True
    integration_id: int
    records_processed: int
    records_failed: int
    errors: list[str] | None = None


class IntegrationPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    status: str
    last_sync_at: datetime | None = None
    created_at: datetime


class IntegrationLogPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    integration_id: int
    status: str
    message: str
    records_processed: int
    records_failed: int
    meta: dict | None = None
    created_at: datetime
