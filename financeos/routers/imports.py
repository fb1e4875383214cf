"""CSV statement import endpoints and the import batches they create."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.imports import (
    ImportRequest,
    ImportResult,
    IntegrationLogPayload,
    IntegrationPayload,
)
from financeos.services.import_service import CSV_TEMPLATE, ImportService
from financeos.web.dependencies import get_db_session

router = APIRouter(tags=["imports"])


def get_import_service() -> ImportService:
    return ImportService()


@router.post(
    "/functions/import-financial-data",
    response_model=ImportResult,
    response_model_exclude_none=True,
)
async def import_financial_data(
    payload: ImportRequest,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: ImportService = Depends(get_import_service),
    session: Session = Depends(get_db_session),
) -> ImportResult:
    return service.import_rows(session, user.user_id, payload.rows, payload.integration_name)


@router.get("/functions/csv-template", response_class=PlainTextResponse)
async def csv_template(
    _: AuthenticatedUser = Depends(get_verified_user),
) -> PlainTextResponse:
    return PlainTextResponse(
        CSV_TEMPLATE,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="template_importacao.csv"'},
    )


@router.get("/integrations", response_model=list[IntegrationPayload])
async def list_integrations(
    user: AuthenticatedUser = Depends(get_verified_user),
    service: ImportService = Depends(get_import_service),
    session: Session = Depends(get_db_session),
) -> list[IntegrationPayload]:
    return [
        IntegrationPayload.model_validate(row)
        for row in service.list_integrations(session, user.user_id)
    ]


@router.get("/integrations/{integration_id}/logs", response_model=list[IntegrationLogPayload])
async def list_integration_logs(
    integration_id: int,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: ImportService = Depends(get_import_service),
    session: Session = Depends(get_db_session),
) -> list[IntegrationLogPayload]:
    return [
        IntegrationLogPayload.model_validate(row)
        for row in service.list_logs(session, user.user_id, integration_id)
    ]


__all__ = ["router"]
