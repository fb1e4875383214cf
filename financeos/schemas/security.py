"""Schemas for login and the security-code gate."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

GateState = Literal[
    "unauthenticated",
    "authenticated_unverified",
    "authenticated_verified",
    "blocked",
]


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    security_code_verified: bool = False


class SecurityCodeRequest(BaseModel):
    code: Any = None


class SecurityCodeResult(BaseModel):
    valid: bool
    state: GateState
    error: str | None = None
    attempts_remaining: int | None = None
    locked_until: datetime | None = None
    access_token: str | None = None
    verified_until: datetime | None = None


class CurrentUser(BaseModel):
    user_id: int
    email: str
    name: str | None = None
    role: str | None = None
    status: str | None = None
    security_code_verified: bool
