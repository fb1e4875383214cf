"""Administrator-authored notifications and per-user delivery."""
from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import NotFoundError, UpstreamError, ValidationError
from financeos.core.log import get_logger
from financeos.core.security import get_user_role
from financeos.models import Notification, NotificationType, Role
from financeos.schemas.notifications import NotificationCreate
from financeos.services.audit_service import AuditService

LOGGER = get_logger(__name__)

TARGET_ALL = "all"
_VALID_TARGETS = {TARGET_ALL} | {role.value for role in Role}
_VALID_TYPES = {kind.value for kind in NotificationType}


class NotificationsService:
    def __init__(self, audit: AuditService | None = None) -> None:
        self._audit = audit or AuditService()

    def create(self, session: Session, author_id: int, payload: NotificationCreate) -> Notification:
        if not payload.title.strip() or not payload.message.strip():
            raise ValidationError("Title and message are required")
        target_role = payload.target_role or TARGET_ALL
        if target_role not in _VALID_TARGETS:
            raise ValidationError("Invalid target role")
        if payload.type not in _VALID_TYPES:
            raise ValidationError("Invalid notification type")

        notification = Notification(
            title=payload.title.strip(),
            message=payload.message.strip(),
            type=payload.type,
            target_role=target_role,
            target_user_id=payload.target_user_id,
            created_by=author_id,
        )
        try:
            session.add(notification)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to create notification")
            raise UpstreamError("Failed to create notification") from exc

        self._audit.log(
            session,
            "create_notification",
            user_id=author_id,
            entity="notifications",
            entity_id=notification.id,
            details={"target_role": target_role, "target_user_id": payload.target_user_id},
        )
        return notification

    @staticmethod
    def recent(session: Session, limit: int = 20) -> list[Notification]:
        return list(
            session.execute(
                select(Notification)
                .order_by(Notification.created_at.desc(), Notification.id.desc())
                .limit(limit)
            ).scalars()
        )

    @staticmethod
    def _addressed_to(session: Session, user_id: int):
        role = get_user_role(session, user_id)
        targets = [TARGET_ALL] + ([role] if role else [])
        return or_(
            Notification.target_user_id == user_id,
            Notification.target_user_id.is_(None) & Notification.target_role.in_(targets),
        )

    def for_user(self, session: Session, user_id: int) -> list[Notification]:
        """Notifications sent to the user directly, to their role, or to everyone."""

        return list(
            session.execute(
                select(Notification)
                .where(self._addressed_to(session, user_id))
                .order_by(Notification.created_at.desc(), Notification.id.desc())
            ).scalars()
        )

    def mark_read(self, session: Session, user_id: int, notification_id: int) -> Notification:
        notification = session.execute(
            select(Notification).where(
                Notification.id == notification_id, self._addressed_to(session, user_id)
            )
        ).scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        session.commit()
        return notification


__all__ = ["NotificationsService", "TARGET_ALL"]
