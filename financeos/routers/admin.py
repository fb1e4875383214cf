"""Administrator-only user management and notifications."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from financeos.core.log import get_logger
from financeos.core.security import AuthenticatedUser, require_admin_user
from financeos.schemas.admin import AdminActionRequest, AdminActionResult, AdminUserRow
from financeos.schemas.notifications import NotificationCreate, NotificationPayload
from financeos.services.admin_service import AdminService
from financeos.services.notifications_service import NotificationsService
from financeos.web.dependencies import get_db_session

LOGGER = get_logger(__name__)
router = APIRouter(tags=["admin"])


def get_admin_service() -> AdminService:
    return AdminService()


def get_notifications_service() -> NotificationsService:
    return NotificationsService()


@router.post(
    "/functions/admin-update-user-role",
    response_model=AdminActionResult,
    response_model_exclude_none=True,
)
async def admin_update_user_role(
    payload: AdminActionRequest,
    admin: AuthenticatedUser = Depends(require_admin_user),
    service: AdminService = Depends(get_admin_service),
    session: Session = Depends(get_db_session),
) -> AdminActionResult:
    LOGGER.info("Admin action %s", payload.action, extra={"target": payload.target_user_id})
    return service.perform(session, admin, payload)


@router.get("/admin/users", response_model=list[AdminUserRow])
async def list_users(
    _: AuthenticatedUser = Depends(require_admin_user),
    service: AdminService = Depends(get_admin_service),
    session: Session = Depends(get_db_session),
) -> list[AdminUserRow]:
    return service.list_users(session)


@router.post("/admin/notifications", response_model=NotificationPayload, status_code=201)
async def create_notification(
    payload: NotificationCreate,
    admin: AuthenticatedUser = Depends(require_admin_user),
    service: NotificationsService = Depends(get_notifications_service),
    session: Session = Depends(get_db_session),
) -> NotificationPayload:
    return NotificationPayload.model_validate(service.create(session, admin.user_id, payload))


@router.get("/admin/notifications", response_model=list[NotificationPayload])
async def recent_notifications(
    _: AuthenticatedUser = Depends(require_admin_user),
    service: NotificationsService = Depends(get_notifications_service),
    session: Session = Depends(get_db_session),
) -> list[NotificationPayload]:
    return [NotificationPayload.model_validate(row) for row in service.recent(session)]


__all__ = ["router"]
