"""JWT-backed authentication helpers and role checks."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt
from fastapi import Depends, Request
from jwt import ExpiredSignatureError, InvalidTokenError
from sqlalchemy import select
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from financeos.core.config import AuthSettings, get_settings
from financeos.core.errors import AuthError, AuthorizationError
from financeos.core.timeutils import utcnow
from financeos.models import Profile, ProfileStatus, Role, UserRole
from financeos.web.dependencies import get_db_session

VERIFIED_CLAIM = "security_code_verified_until"


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    """Representation of the authenticated principal carried by a token."""

    user_id: int
    email: str
    verified_until: datetime | None = None

    @property
    def is_verified(self) -> bool:
        return self.verified_until is not None and self.verified_until > utcnow()


class SecurityProvider:
    """Check passwords and issue/verify JWT access tokens."""

    def __init__(self, settings: AuthSettings) -> None:
        self._settings = settings

    @property
    def token_ttl_seconds(self) -> int:
        """Return the access token lifetime in seconds."""

        return int(self._settings.access_token_expire_minutes * 60)

    @property
    def verification_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.verification_ttl_minutes)

    @staticmethod
    def hash_password(password: str) -> str:
        return generate_password_hash(password)

    def authenticate(self, session: Session, email: str, password: str) -> Profile | None:
        """Return the profile matching the credentials, or ``None``."""

        profile = session.execute(
            select(Profile).where(Profile.email == email.strip().lower())
        ).scalar_one_or_none()
        if profile is None or not check_password_hash(profile.password_hash, password):
            return None
        return profile

    def create_access_token(
        self,
        user_id: int,
        email: str,
        *,
        verified_until: datetime | None = None,
    ) -> str:
        """Create a signed JWT; ``verified_until`` marks a passed security-code check."""

        now = datetime.now(tz=timezone.utc)
        expires = now + timedelta(minutes=self._settings.access_token_expire_minutes)
        payload: dict[str, object] = {
            "sub": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
        }
        if verified_until is not None:
            payload[VERIFIED_CLAIM] = int(verified_until.timestamp())
        return jwt.encode(payload, self._settings.secret_key, algorithm=self._settings.algorithm)

    def create_verified_token(self, user: AuthenticatedUser) -> tuple[str, datetime]:
        verified_until = utcnow() + self.verification_ttl
        token = self.create_access_token(user.user_id, user.email, verified_until=verified_until)
        return token, verified_until

    def decode_token(self, token: str) -> AuthenticatedUser:
        """Decode a JWT and return the corresponding ``AuthenticatedUser``."""

        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.algorithm],
            )
        except ExpiredSignatureError as exc:
            raise AuthError("Token expired") from exc
        except InvalidTokenError as exc:
            raise AuthError("Invalid token") from exc

        subject = payload.get("sub")
        email = payload.get("email")
        if not isinstance(subject, str) or not isinstance(email, str):
            raise AuthError("Invalid token")
        try:
            user_id = int(subject)
        except ValueError as exc:
            raise AuthError("Invalid token") from exc

        verified_until: datetime | None = None
        verified_claim = payload.get(VERIFIED_CLAIM)
        if isinstance(verified_claim, (int, float)):
            verified_until = datetime.fromtimestamp(verified_claim, tz=timezone.utc)

        return AuthenticatedUser(user_id=user_id, email=email, verified_until=verified_until)


@lru_cache(maxsize=1)
def get_security_provider() -> SecurityProvider:
    """Return a cached security provider instance."""

    return SecurityProvider(get_settings().auth)


def get_user_role(session: Session, user_id: int) -> str | None:
    return session.execute(
        select(UserRole.role).where(UserRole.user_id == user_id)
    ).scalar_one_or_none()


def get_authenticated_user(request: Request) -> AuthenticatedUser:
    """Retrieve the authenticated user stored by ``AuthMiddleware``."""

    user = getattr(request.state, "user", None)
    if user is None:
        message = getattr(request.state, "auth_error", None) or "Authorization required"
        raise AuthError(message)
    return user


def get_verified_user(
    user: AuthenticatedUser = Depends(get_authenticated_user),
    session: Session = Depends(get_db_session),
) -> AuthenticatedUser:
    """Require a token that carries an unexpired security-code verification.

    The profile status is looked up on every request so that a suspension
    takes effect before the token expires.
    """

    if not user.is_verified:
        raise AuthorizationError("Security code verification required")
    status = session.execute(
        select(Profile.status).where(Profile.id == user.user_id)
    ).scalar_one_or_none()
    if status is None:
        raise AuthError("User not found")
    if status != ProfileStatus.ACTIVE.value:
        raise AuthorizationError("Account suspended")
    return user


def require_admin_user(
    user: AuthenticatedUser = Depends(get_verified_user),
    session: Session = Depends(get_db_session),
) -> AuthenticatedUser:
    """Ensure the current user holds the admin role in ``user_roles``."""

    if get_user_role(session, user.user_id) != Role.ADMIN.value:
        raise AuthorizationError(
            "Acesso negado. Apenas administradores podem realizar esta ação."
        )
    return user


__all__ = [
    "AuthenticatedUser",
    "SecurityProvider",
    "VERIFIED_CLAIM",
    "get_security_provider",
    "get_user_role",
    "get_authenticated_user",
    "get_verified_user",
    "require_admin_user",
]
