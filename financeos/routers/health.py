"""System health checks and the liveness probe."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.health import HealthReport
from financeos.services.health_service import HealthService
from financeos.web.dependencies import get_db_session

router = APIRouter(tags=["health"])


def get_health_service() -> HealthService:
    return HealthService()


@router.post("/functions/system-health-check", response_model=HealthReport)
async def system_health_check(
    _: AuthenticatedUser = Depends(get_verified_user),
    service: HealthService = Depends(get_health_service),
    session: Session = Depends(get_db_session),
) -> HealthReport:
    return service.run(session)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


__all__ = ["router"]
