"""Server-side security-code gate with a persisted, escalating lockout."""
from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.config import SecurityCodeSettings, get_settings
from financeos.core.errors import NotFoundError, UpstreamError, ValidationError
from financeos.core.log import get_logger
from financeos.core.security import AuthenticatedUser, SecurityProvider, get_security_provider
from financeos.core.timeutils import ensure_utc, utcnow
from financeos.models import Profile, SecurityCode, SecurityCodeAttempt
from financeos.schemas.security import SecurityCodeResult
from financeos.services.audit_service import AuditService

LOGGER = get_logger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 8


class SecurityCodeService:
    """Validate, issue and unlock per-user security codes."""

    def __init__(
        self,
        settings: SecurityCodeSettings | None = None,
        security: SecurityProvider | None = None,
        audit: AuditService | None = None,
    ) -> None:
        self._settings = settings or get_settings().security_codes
        self._security = security or get_security_provider()
        self._audit = audit or AuditService()

    def lockout_duration(self, lockouts: int) -> timedelta:
        """Lock length for the ``lockouts``-th lock (0-based), doubling up to the cap."""

        seconds = min(
            self._settings.lockout_base_seconds * (2 ** lockouts),
            self._settings.lockout_max_seconds,
        )
        return timedelta(seconds=seconds)

    @staticmethod
    def _attempt_row(session: Session, user_id: int) -> SecurityCodeAttempt | None:
        return session.execute(
            select(SecurityCodeAttempt).where(SecurityCodeAttempt.user_id == user_id)
        ).scalar_one_or_none()

    def validate(
        self, session: Session, user: AuthenticatedUser, code: object
    ) -> SecurityCodeResult:
        if not isinstance(code, str) or not code.strip():
            raise ValidationError("Security code is required")

        now = utcnow()
        try:
            attempt = self._attempt_row(session, user.user_id)
            locked_until = ensure_utc(attempt.locked_until) if attempt else None
            if locked_until is not None and locked_until > now:
                LOGGER.info("Security code check refused while locked", extra={"user_id": user.user_id})
                return SecurityCodeResult(
                    valid=False,
                    state="blocked",
                    locked_until=locked_until,
                    error="Too many failed attempts. Try again later or contact an administrator.",
                )

            match = session.execute(
                select(SecurityCode).where(
                    SecurityCode.user_id == user.user_id,
                    SecurityCode.code == code.strip().upper(),
                    SecurityCode.is_active.is_(True),
                )
            ).scalars().first()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Error validating security code")
            raise UpstreamError("Error validating code") from exc

        if match is None:
            return self._register_failure(session, user, attempt, now)

        expires_at = ensure_utc(match.expires_at)
        if expires_at is not None and expires_at < now:
            self._audit.log(
                session,
                "SECURITY_CODE_EXPIRED",
                user_id=user.user_id,
                entity="security_codes",
                entity_id=match.id,
            )
            return SecurityCodeResult(
                valid=False,
                state="authenticated_unverified",
                error="Security code has expired",
            )

        try:
            match.last_used_at = now
            if attempt is not None:
                attempt.failed_attempts = 0
                attempt.lockouts = 0
                attempt.locked_until = None
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to record security code use")
            raise UpstreamError("Error validating code") from exc

        self._audit.log(
            session,
            "SECURITY_CODE_VALIDATED",
            user_id=user.user_id,
            entity="security_codes",
            entity_id=match.id,
        )
        token, verified_until = self._security.create_verified_token(user)
        return SecurityCodeResult(
            valid=True,
            state="authenticated_verified",
            access_token=token,
            verified_until=verified_until,
        )

    def _register_failure(
        self,
        session: Session,
        user: AuthenticatedUser,
        attempt: SecurityCodeAttempt | None,
        now: datetime,
    ) -> SecurityCodeResult:
        try:
            if attempt is None:
                attempt = SecurityCodeAttempt(user_id=user.user_id, failed_attempts=0, lockouts=0)
                session.add(attempt)
            attempt.failed_attempts = (attempt.failed_attempts or 0) + 1
            attempt.last_attempt_at = now
            attempts = attempt.failed_attempts

            locked_until = None
            if attempts >= self._settings.max_attempts:
                locked_until = now + self.lockout_duration(attempt.lockouts or 0)
                attempt.locked_until = locked_until
                attempt.lockouts = (attempt.lockouts or 0) + 1
                attempt.failed_attempts = 0
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to record security code attempt")
            raise UpstreamError("Error validating code") from exc

        self._audit.log(
            session,
            "SECURITY_CODE_FAILED",
            user_id=user.user_id,
            entity="security_codes",
            details={"attempts": attempts, "locked": locked_until is not None},
        )

        if locked_until is not None:
            LOGGER.warning("Security code locked", extra={"user_id": user.user_id})
            return SecurityCodeResult(
                valid=False,
                state="blocked",
                locked_until=locked_until,
                error="Too many failed attempts. Try again later or contact an administrator.",
            )
        return SecurityCodeResult(
            valid=False,
            state="authenticated_unverified",
            attempts_remaining=self._settings.max_attempts - attempts,
            error="Invalid security code",
        )

    def issue_code(self, session: Session, user_id: int) -> SecurityCode:
        """Deactivate the user's codes and create a fresh one."""

        if session.get(Profile, user_id) is None:
            raise NotFoundError("User not found")
        code = SecurityCode(
            user_id=user_id,
            code="".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH)),
            is_active=True,
            expires_at=utcnow() + timedelta(days=self._settings.code_ttl_days),
        )
        try:
            session.execute(
                update(SecurityCode)
                .where(SecurityCode.user_id == user_id, SecurityCode.is_active.is_(True))
                .values(is_active=False)
            )
            session.add(code)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to issue security code", extra={"user_id": user_id})
            raise UpstreamError("Failed to issue security code") from exc
        return code

    def reset_lock(self, session: Session, user_id: int) -> None:
        if session.get(Profile, user_id) is None:
            raise NotFoundError("User not found")
        try:
            attempt = self._attempt_row(session, user_id)
            if attempt is not None:
                attempt.failed_attempts = 0
                attempt.lockouts = 0
                attempt.locked_until = None
                session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to reset security lock", extra={"user_id": user_id})
            raise UpstreamError("Failed to reset security lock") from exc


__all__ = ["SecurityCodeService", "CODE_ALPHABET", "CODE_LENGTH"]
