"""Schemas for administrative user management."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AdminActionRequest(BaseModel):
    action: str | None = None
    target_user_id: int | None = None
    new_role: str | None = None
    new_status: str | None = None


class IssuedSecurityCode(BaseModel):
    code: str
    expires_at: datetime | None = None


class AdminActionResult(BaseModel):
    success: bool = True
    message: str
    security_code: IssuedSecurityCode | None = None


class AdminUserRow(BaseModel):
    id: int
    email: str
    name: str
    full_name: str | None = None
    status: str
    role: str | None = None
    created_at: datetime
