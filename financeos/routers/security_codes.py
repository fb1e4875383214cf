"""Security-code gate that upgrades a login token to a verified one."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_authenticated_user
from financeos.schemas.security import SecurityCodeRequest, SecurityCodeResult
from financeos.services.security_code_service import SecurityCodeService
from financeos.web.dependencies import get_db_session

router = APIRouter(prefix="/functions", tags=["security"])


def get_security_code_service() -> SecurityCodeService:
    return SecurityCodeService()


@router.post(
    "/validate-security-code",
    response_model=SecurityCodeResult,
    response_model_exclude_none=True,
)
async def validate_security_code(
    payload: SecurityCodeRequest,
    user: AuthenticatedUser = Depends(get_authenticated_user),
    service: SecurityCodeService = Depends(get_security_code_service),
    session: Session = Depends(get_db_session),
) -> SecurityCodeResult:
    return service.validate(session, user, payload.code)


__all__ = ["router"]
