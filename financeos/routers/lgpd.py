"""LGPD consent management and data-subject requests."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.lgpd import LgpdRequest
from financeos.services.lgpd_service import LgpdService
from financeos.web.dependencies import client_ip, get_db_session, user_agent

router = APIRouter(prefix="/functions", tags=["lgpd"])


def get_lgpd_service() -> LgpdService:
    return LgpdService()


@router.post("/manage-lgpd")
async def manage_lgpd(
    payload: LgpdRequest,
    request: Request,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: LgpdService = Depends(get_lgpd_service),
    session: Session = Depends(get_db_session),
) -> dict[str, Any]:
    return service.handle(
        session,
        user,
        payload,
        ip_address=client_ip(request.headers),
        user_agent=user_agent(request.headers),
    )


__all__ = ["router"]
