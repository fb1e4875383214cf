"""Authentication routes: bearer-token login and the current principal."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from financeos.core.errors import AuthError, AuthorizationError
from financeos.core.log import get_logger
from financeos.core.security import (
    AuthenticatedUser,
    SecurityProvider,
    get_authenticated_user,
    get_security_provider,
    get_user_role,
)
from financeos.models import Profile
from financeos.schemas.security import CurrentUser, LoginRequest, LoginResponse
from financeos.services.audit_service import AuditService
from financeos.web.dependencies import client_ip, get_db_session

LOGGER = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def get_security() -> SecurityProvider:
    return get_security_provider()


def get_audit_service() -> AuditService:
    return AuditService()


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    security: SecurityProvider = Depends(get_security),
    audit: AuditService = Depends(get_audit_service),
    session: Session = Depends(get_db_session),
) -> LoginResponse:
    """Check credentials and issue an unverified access token."""

    ip_address = client_ip(request.headers)
    profile = security.authenticate(session, payload.email, payload.password)
    if profile is None:
        LOGGER.info("Invalid login attempt", extra={"email": payload.email})
        audit.log(
            session,
            "LOGIN_FAILED",
            user_id=None,
            entity="auth",
            details={"email": payload.email.strip().lower()},
            ip_address=ip_address,
        )
        raise AuthError("Invalid email or password")

    if not profile.is_active:
        LOGGER.info("Suspended profile refused", extra={"user_id": profile.id})
        audit.log(
            session,
            "LOGIN_FAILED",
            user_id=profile.id,
            entity="auth",
            details={"reason": "suspended"},
            ip_address=ip_address,
        )
        raise AuthorizationError("Account suspended")

    token = security.create_access_token(profile.id, profile.email)
    audit.log(session, "login", user_id=profile.id, entity="auth", ip_address=ip_address)
    LOGGER.info("User logged in", extra={"user_id": profile.id})
    return LoginResponse(access_token=token, expires_in=security.token_ttl_seconds)


@router.get("/me", response_model=CurrentUser)
async def me(
    user: AuthenticatedUser = Depends(get_authenticated_user),
    session: Session = Depends(get_db_session),
) -> CurrentUser:
    profile = session.get(Profile, user.user_id)
    if profile is None:
        raise AuthError("Invalid token")
    return CurrentUser(
        user_id=profile.id,
        email=profile.email,
        name=profile.name,
        role=get_user_role(session, profile.id),
        status=profile.status,
        security_code_verified=user.is_verified,
    )


__all__ = ["router"]
