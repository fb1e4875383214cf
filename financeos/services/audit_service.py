"""Audit-trail writes shared by every feature."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.config import get_settings
from financeos.core.errors import UpstreamError, ValidationError
from financeos.core.log import get_logger
from financeos.models import AuditLog
from financeos.services.best_effort import run_best_effort

LOGGER = get_logger(__name__)


class AuditService:
    """Append rows to ``audit_logs``."""

    def __init__(self, strict: bool | None = None) -> None:
        self._strict = get_settings().audit.strict if strict is None else strict

    @staticmethod
    def _build(
        action: str,
        *,
        user_id: int | None,
        entity: str | None = None,
        entity_id: object | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        return AuditLog(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            details=details or {},
            ip_address=ip_address,
        )

    def log(self, session: Session, action: str, **fields: Any) -> bool:
        """Record an audit row as a side effect of another operation.

        Failures are logged and counted; with ``AUDIT_STRICT`` enabled they
        fail the calling request instead.
        """

        row = self._build(action, **fields)
        return run_best_effort(
            session,
            "audit_log",
            lambda s: s.add(row),
            strict=self._strict,
            action=action,
            user_id=fields.get("user_id"),
        )

    def record_event(
        self,
        session: Session,
        *,
        user_id: int,
        action: str | None,
        entity: str | None,
        entity_id: object | None = None,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> int:
        """Write a client-reported audit event; the write is the whole operation."""

        if not action or not entity:
            raise ValidationError("Missing required fields: action and entity")

        row = self._build(
            action,
            user_id=user_id,
            entity=entity,
            entity_id=entity_id or None,
            details=metadata or {},
            ip_address=ip_address,
        )
        try:
            session.add(row)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to insert audit log", extra={"action": action})
            raise UpstreamError("Failed to log event") from exc

        LOGGER.info("Audit event logged: %s on %s by user %s", action, entity, user_id)
        return row.id

    @staticmethod
    def recent_for_user(session: Session, user_id: int, limit: int = 50) -> list[AuditLog]:
        return list(
            session.execute(
                select(AuditLog)
                .where(AuditLog.user_id == user_id)
                .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
                .limit(limit)
            ).scalars()
        )


__all__ = ["AuditService"]
