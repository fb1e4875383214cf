"""Schemas for LGPD consent management and data-subject requests."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class LgpdRequest(BaseModel):
    action: str | None = None
    consent_type: str | None = None
    granted: Any = None


class ConsentPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    consent_type: str
    granted: bool
    granted_at: datetime | None = None
    revoked_at: datetime | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    updated_at: datetime | None = None
