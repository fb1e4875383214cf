"""Tenant-scoped transaction and account management, plus CSV export."""
from __future__ import annotations

import csv
import io

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import NotFoundError, UpstreamError, ValidationError
from financeos.core.formatting import format_amount
from financeos.core.log import get_logger
from financeos.models import Account, AccountStatus, Transaction, TransactionType
from financeos.schemas.transactions import AccountCreate, TransactionCreate, TransactionFilters
from financeos.services.audit_service import AuditService
from financeos.services.import_service import validate_row

LOGGER = get_logger(__name__)

EXPORT_HEADERS = ("Data", "Tipo", "Categoria", "Descrição", "Valor")
_TYPE_LABELS = {TransactionType.INCOME.value: "Receita", TransactionType.EXPENSE.value: "Despesa"}


class TransactionsService:
    """Create, filter and export a tenant's transactions."""

    def __init__(self, audit: AuditService | None = None) -> None:
        self._audit = audit or AuditService()

    def create_transaction(
        self, session: Session, tenant_id: int, payload: TransactionCreate
    ) -> Transaction:
        parsed, error = validate_row(1, payload.model_dump())
        if error is not None:
            raise ValidationError(error.removeprefix("Row 1: "))

        if payload.account_id is not None:
            account = session.get(Account, payload.account_id)
            if account is None or account.tenant_id != tenant_id:
                raise NotFoundError("Account not found")

        transaction = Transaction(
            tenant_id=tenant_id,
            account_id=payload.account_id,
            type=parsed.type,
            category=parsed.category,
            amount=parsed.amount,
            description=parsed.description,
            transaction_date=parsed.transaction_date,
            created_by=tenant_id,
        )
        try:
            session.add(transaction)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to create transaction", extra={"tenant_id": tenant_id})
            raise UpstreamError("Failed to create transaction") from exc

        self._audit.log(
            session,
            "create",
            user_id=tenant_id,
            entity="financial_transactions",
            entity_id=transaction.id,
            details={"type": transaction.type, "amount": format_amount(transaction.amount)},
        )
        return transaction

    @staticmethod
    def list_transactions(
        session: Session, tenant_id: int, filters: TransactionFilters | None = None
    ) -> list[Transaction]:
        """Return the tenant's transactions newest first."""

        filters = filters or TransactionFilters()
        stmt = select(Transaction).where(Transaction.tenant_id == tenant_id)
        if filters.start_date is not None:
            stmt = stmt.where(Transaction.transaction_date >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Transaction.transaction_date <= filters.end_date)
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type.lower())
        if filters.category:
            stmt = stmt.where(
                func.lower(Transaction.category).contains(filters.category.lower())
            )
        stmt = stmt.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
        return list(session.execute(stmt).scalars())

    def export_csv(
        self, session: Session, tenant_id: int, filters: TransactionFilters | None = None
    ) -> str:
        """Render the filtered transactions with localized headers, every cell quoted."""

        transactions = self.list_transactions(session, tenant_id, filters)
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(EXPORT_HEADERS)
        for item in transactions:
            writer.writerow(
                (
                    item.transaction_date.isoformat(),
                    _TYPE_LABELS.get(item.type, item.type),
                    item.category,
                    item.description or "",
                    format_amount(item.amount),
                )
            )

        self._audit.log(
            session,
            "export",
            user_id=tenant_id,
            entity="financial_transactions",
            details={"format": "csv", "rows": len(transactions)},
        )
        return buffer.getvalue()


class AccountsService:
    """Manage a tenant's financial accounts."""

    def create_account(self, session: Session, tenant_id: int, payload: AccountCreate) -> Account:
        if not payload.name.strip():
            raise ValidationError("Account name is required")
        if payload.status not in {s.value for s in AccountStatus}:
            raise ValidationError("Invalid account status")

        account = Account(
            tenant_id=tenant_id,
            name=payload.name.strip(),
            bank_name=payload.bank_name,
            balance=payload.balance,
            currency=payload.currency.upper(),
            status=payload.status,
        )
        try:
            session.add(account)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Failed to create account", extra={"tenant_id": tenant_id})
            raise UpstreamError("Failed to create account") from exc
        return account

    @staticmethod
    def list_accounts(session: Session, tenant_id: int) -> list[Account]:
        return list(
            session.execute(
                select(Account).where(Account.tenant_id == tenant_id).order_by(Account.name)
            ).scalars()
        )


__all__ = ["AccountsService", "EXPORT_HEADERS", "TransactionsService"]
