"""Transaction and account CRUD plus the CSV report export."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from financeos.core.security import AuthenticatedUser, get_verified_user
from financeos.schemas.transactions import (
    AccountCreate,
    AccountPayload,
    TransactionCreate,
    TransactionFilters,
    TransactionPayload,
)
from financeos.services.transactions_service import AccountsService, TransactionsService
from financeos.web.dependencies import get_db_session

router = APIRouter(tags=["transactions"])


def get_transactions_service() -> TransactionsService:
    return TransactionsService()


def get_accounts_service() -> AccountsService:
    return AccountsService()


@router.post("/transactions", response_model=TransactionPayload, status_code=201)
async def create_transaction(
    payload: TransactionCreate,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TransactionsService = Depends(get_transactions_service),
    session: Session = Depends(get_db_session),
) -> TransactionPayload:
    return TransactionPayload.model_validate(
        service.create_transaction(session, user.user_id, payload)
    )


@router.get("/transactions", response_model=list[TransactionPayload])
async def list_transactions(
    filters: TransactionFilters = Depends(),
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TransactionsService = Depends(get_transactions_service),
    session: Session = Depends(get_db_session),
) -> list[TransactionPayload]:
    return [
        TransactionPayload.model_validate(row)
        for row in service.list_transactions(session, user.user_id, filters)
    ]


@router.get("/transactions/export")
async def export_transactions(
    filters: TransactionFilters = Depends(),
    user: AuthenticatedUser = Depends(get_verified_user),
    service: TransactionsService = Depends(get_transactions_service),
    session: Session = Depends(get_db_session),
) -> Response:
    content = service.export_csv(session, user.user_id, filters)
    return Response(
        content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="transacoes.csv"'},
    )


@router.post("/accounts", response_model=AccountPayload, status_code=201)
async def create_account(
    payload: AccountCreate,
    user: AuthenticatedUser = Depends(get_verified_user),
    service: AccountsService = Depends(get_accounts_service),
    session: Session = Depends(get_db_session),
) -> AccountPayload:
    return AccountPayload.model_validate(service.create_account(session, user.user_id, payload))


@router.get("/accounts", response_model=list[AccountPayload])
async def list_accounts(
    user: AuthenticatedUser = Depends(get_verified_user),
    service: AccountsService = Depends(get_accounts_service),
    session: Session = Depends(get_db_session),
) -> list[AccountPayload]:
    return [AccountPayload.model_validate(row) for row in service.list_accounts(session, user.user_id)]


__all__ = ["router"]
