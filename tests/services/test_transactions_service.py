"""Tests for transaction CRUD and the CSV report export."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from financeos.core.errors import NotFoundError, ValidationError
from financeos.models import AuditLog
from financeos.schemas.transactions import AccountCreate, TransactionCreate, TransactionFilters
from financeos.services.transactions_service import AccountsService, TransactionsService


def _create(session, tenant_id: int, **fields):
    values = {
        "type": "expense",
        "category": "Mercado",
        "amount": "10",
        "transaction_date": "2024-01-01",
    }
    values.update(fields)
    return TransactionsService().create_transaction(session, tenant_id, TransactionCreate(**values))


def test_create_uses_row_validation(session, make_user) -> None:
    user = make_user("create@example.com")

    with pytest.raises(ValidationError) as excinfo:
        _create(session, user.id, amount="-3")

    assert excinfo.value.message == 'Invalid amount "-3"'


def test_create_rejects_values_the_columns_cannot_hold(session, make_user) -> None:
    user = make_user("limits@example.com")

    with pytest.raises(ValidationError) as sub_cent:
        _create(session, user.id, amount="0.001")
    with pytest.raises(ValidationError) as long_category:
        _create(session, user.id, category="c" * 129)
    stored = _create(session, user.id, amount="10.005")

    assert sub_cent.value.message == 'Invalid amount "0.001"'
    assert long_category.value.message == "Category too long"
    assert stored.amount == Decimal("10.01")


def test_create_rejects_foreign_account(session, make_user) -> None:
    user = make_user("mine@example.com")
    other = make_user("theirs@example.com")
    account = AccountsService().create_account(session, other.id, AccountCreate(name="Deles"))

    with pytest.raises(NotFoundError):
        _create(session, user.id, account_id=account.id)


def test_filters_and_ordering(session, make_user) -> None:
    user = make_user("filter@example.com")
    _create(session, user.id, category="Mercado Livre", transaction_date="2024-01-05")
    _create(session, user.id, category="Aluguel", transaction_date="2024-02-01")
    _create(session, user.id, type="income", category="Salário", transaction_date="2024-03-01")

    service = TransactionsService()
    everything = service.list_transactions(session, user.id)
    expenses = service.list_transactions(session, user.id, TransactionFilters(type="EXPENSE"))
    market = service.list_transactions(session, user.id, TransactionFilters(category="MERCADO"))
    february = service.list_transactions(
        session,
        user.id,
        TransactionFilters(start_date=date(2024, 2, 1), end_date=date(2024, 2, 28)),
    )

    assert [t.transaction_date.month for t in everything] == [3, 2, 1]
    assert {t.category for t in expenses} == {"Mercado Livre", "Aluguel"}
    assert [t.category for t in market] == ["Mercado Livre"]
    assert [t.category for t in february] == ["Aluguel"]


def test_export_format(session, make_user) -> None:
    user = make_user("export@example.com")
    _create(session, user.id, type="income", category="Salário", amount="5000", description='Bônus "anual"')
    _create(session, user.id, category="Café", amount="4.5", transaction_date="2023-12-31")

    content = TransactionsService().export_csv(session, user.id)

    assert content.splitlines() == [
        '"Data","Tipo","Categoria","Descrição","Valor"',
        '"2024-01-01","Receita","Salário","Bônus ""anual""","5000.00"',
        '"2023-12-31","Despesa","Café","","4.50"',
    ]
    actions = session.execute(select(AuditLog.action).order_by(AuditLog.id)).scalars().all()
    assert actions == ["create", "create", "export"]


def test_accounts_are_tenant_scoped(session, make_user) -> None:
    user = make_user("acc@example.com")
    other = make_user("acc2@example.com")
    service = AccountsService()
    service.create_account(session, user.id, AccountCreate(name="Corrente", balance=Decimal("10")))
    service.create_account(session, other.id, AccountCreate(name="Outra"))

    accounts = service.list_accounts(session, user.id)

    assert [a.name for a in accounts] == ["Corrente"]
    assert accounts[0].currency == "BRL"
