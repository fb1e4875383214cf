"""Schemas for administrator notifications."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationCreate(BaseModel):
    title: str
    message: str
    type: str = "info"
    target_role: str | None = "all"
    target_user_id: int | None = None


class NotificationPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    message: str
    type: str
    target_role: str | None = None
    target_user_id: int | None = None
    is_read: bool
    created_at: datetime
