"""Dashboard KPI endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.kpis import FinancialKpis, KpiCacheItem
from financeos.services.kpi_service import KpiService
from financeos.web.dependencies import get_db_session

router = APIRouter(prefix="/functions", tags=["kpis"])


def get_kpi_service() -> KpiService:
    return KpiService()


@router.post("/calculate-financial-kpis", response_model=FinancialKpis)
async def calculate_financial_kpis(
    user: AuthenticatedUser = Depends(get_verified_user),
    service: KpiService = Depends(get_kpi_service),
    session: Session = Depends(get_db_session),
) -> FinancialKpis:
    return service.calculate(session, user.user_id)


@router.get("/kpi-cache", response_model=list[KpiCacheItem])
async def kpi_cache(
    user: AuthenticatedUser = Depends(get_verified_user),
    service: KpiService = Depends(get_kpi_service),
    session: Session = Depends(get_db_session),
) -> list[KpiCacheItem]:
    return service.cached(session, user.user_id)


__all__ = ["router"]
