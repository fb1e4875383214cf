"""Client-reported audit events."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.audit import AuditEventRequest, AuditEventResult
from financeos.services.audit_service import AuditService
from financeos.web.dependencies import client_ip, get_db_session

router = APIRouter(prefix="/functions", tags=["audit"])


def get_audit_service() -> AuditService:
    return AuditService()


@router.post("/log-audit-event", response_model=AuditEventResult)
async def log_audit_event(
    payload: AuditEventRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: AuditService = Depends(get_audit_service),
    session: Session = Depends(get_db_session),
) -> AuditEventResult:
    log_id = service.record_event(
        session,
        user_id=user.user_id,
        action=payload.action,
        entity=payload.entity,
        entity_id=payload.entity_id,
        metadata=payload.metadata,
        ip_address=client_ip(request.headers),
    )
    return AuditEventResult(log_id=log_id)


__all__ = ["router"]
