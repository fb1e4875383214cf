"""Notifications addressed to the current user."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.notifications import NotificationPayload
from financeos.services.notifications_service import NotificationsService
from financeos.web.dependencies import get_db_session

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notifications_service() -> NotificationsService:
    return NotificationsService()


@router.get("", response_model=list[NotificationPayload])
async def my_notifications(
    user: AuthenticatedUser = Depends(get_verified_user),
    service: NotificationsService = Depends(get_notifications_service),
    session: Session = Depends(get_db_session),
) -> list[NotificationPayload]:
    return [
        NotificationPayload.model_validate(row)
        for row in service.for_user(session, user.user_id)
    ]


@router.post("/{notification_id}/read", response_model=NotificationPayload)
async def mark_read(
    notification_id: int,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: NotificationsService = Depends(get_notifications_service),
    session: Session = Depends(get_db_session),
) -> NotificationPayload:
    return NotificationPayload.model_validate(
        service.mark_read(session, user.user_id, notification_id)
    )


__all__ = ["router"]
