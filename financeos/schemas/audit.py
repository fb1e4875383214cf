"""Schemas for client-reported audit events."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class AuditEventRequest(BaseModel):
    action: str | None = None
    entity: str | None = None
    entity_id: str | int | None = None
    metadata: dict[str, Any] | None = None


class AuditEventResult(BaseModel):
    success: bool = True
    log_id: int
