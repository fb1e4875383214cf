"""Tests for CSV row validation and batch imports."""
from __future__ import annotations

import random
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select, text

from financeos.core.errors import ValidationError
from financeos.models import AuditLog, Integration, IntegrationLog, Transaction
from financeos.services.best_effort import failure_counts
from financeos.services.import_service import (
    CSV_TEMPLATE,
    ImportService,
    parse_amount,
    parse_csv_text,
    validate_row,
)


def _valid(i: int) -> dict:
    return {
        "type": "expense",
        "category": f"Categoria {i}",
        "amount": f"{i + 1}.50",
        "description": f"Item {i}",
        "transaction_date": "2024-02-10",
    }


def _count(session, model) -> int:
    return session.scalar(select(func.count()).select_from(model))


@pytest.mark.parametrize(
    ("row", "message"),
    [
        ({"type": "transfer"}, 'Row 3: Invalid type "transfer"'),
        ({"type": "income", "amount": "-5"}, 'Row 3: Invalid amount "-5"'),
        ({"type": "income", "amount": 0}, 'Row 3: Invalid amount "0"'),
        ({"type": "income", "amount": "NaN"}, 'Row 3: Invalid amount "NaN"'),
        ({"type": "income", "amount": "0.001"}, 'Row 3: Invalid amount "0.001"'),
        ({"type": "income", "amount": "1e15"}, 'Row 3: Invalid amount "1e15"'),
        ({"type": "income", "amount": "10"}, "Row 3: Missing category"),
        ({"type": "income", "amount": "10", "category": "   "}, "Row 3: Missing category"),
        ({"type": "income", "amount": "10", "category": "x" * 129}, "Row 3: Category too long"),
        (
            {"type": "income", "amount": "10", "category": "X", "transaction_date": "2024-1-5"},
            'Row 3: Invalid date format "2024-1-5" (use YYYY-MM-DD)',
        ),
        (
            {"type": "income", "amount": "10", "category": "X", "transaction_date": "2024-02-30"},
            'Row 3: Invalid date format "2024-02-30" (use YYYY-MM-DD)',
        ),
    ],
)
def test_validate_row_messages(row: dict, message: str) -> None:
    parsed, error = validate_row(3, row)

    assert parsed is None
    assert error == message


def test_invalid_amount_scenario() -> None:
    parsed, error = validate_row(
        1, {"type": "Income", "amount": "abc", "category": "X", "transaction_date": "2024-01-01"}
    )

    assert parsed is None
    assert error is not None and "Invalid amount" in error


def test_validate_row_normalises_values() -> None:
    parsed, error = validate_row(
        1,
        {
            "type": "INCOME",
            "amount": "12.30",
            "category": " Salário ",
            "description": "  ",
            "transaction_date": "2024-01-31",
        },
    )

    assert error is None
    assert parsed.type == "income"
    assert parsed.amount == Decimal("12.30")
    assert parsed.category == "Salário"
    assert parsed.description is None
    assert parsed.transaction_date == date(2024, 1, 31)


def test_parse_amount_rejects_booleans_and_infinity() -> None:
    assert parse_amount(True) is None
    assert parse_amount("inf") is None
    assert parse_amount(12) == Decimal("12")


def test_parse_amount_rounds_to_cents_within_column_range() -> None:
    assert parse_amount("10.005") == Decimal("10.01")
    assert parse_amount("0.005") == Decimal("0.01")
    assert parse_amount("0.004") is None
    assert parse_amount("999999999999.99") == Decimal("999999999999.99")
    assert parse_amount("999999999999.995") is None
    assert parse_amount("1e15") is None


def test_unstorable_rows_do_not_fail_their_batch(session, make_user) -> None:
    user = make_user("cents@example.com")
    rows = [
        {"type": "expense", "category": "Taxa", "amount": "0.001", "transaction_date": "2024-03-01"},
        {"type": "income", "category": "Juros", "amount": "10.005", "transaction_date": "2024-03-01"},
        {"type": "expense", "category": "y" * 200, "amount": "5", "transaction_date": "2024-03-01"},
        _valid(1),
    ]

    result = ImportService().import_rows(session, user.id, rows)

    assert result.records_processed == 2
    assert result.errors == [
        'Row 1: Invalid amount "0.001"',
        "Row 3: Category too long",
    ]
    amounts = sorted(session.execute(select(Transaction.amount)).scalars())
    assert amounts == [Decimal("2.50"), Decimal("10.01")]


def test_import_is_row_independent(session, make_user) -> None:
    user = make_user("rows@example.com")
    rows = [_valid(i) for i in range(6)] + [
        {"type": "bogus", "category": "X", "amount": "1", "transaction_date": "2024-01-01"},
        {"type": "income", "category": "X", "amount": "abc", "transaction_date": "2024-01-01"},
    ]
    random.Random(7).shuffle(rows)

    result = ImportService().import_rows(session, user.id, rows)

    assert result.records_processed == 6
    assert result.records_failed == 2
    assert len(result.errors) == 2
    assert _count(session, Transaction) == 6


def test_all_invalid_batch_still_tracks_one_integration(session, make_user) -> None:
    user = make_user("invalid@example.com")
    rows = [{"type": "x"}, {"type": "income", "amount": "abc"}]
    service = ImportService()

    first = service.import_rows(session, user.id, rows)
    second = service.import_rows(session, user.id, rows)

    assert first.records_processed == second.records_processed == 0
    assert _count(session, Transaction) == 0
    assert _count(session, Integration) == 2
    assert _count(session, IntegrationLog) == 2
    log = session.execute(
        select(IntegrationLog).where(IntegrationLog.integration_id == first.integration_id)
    ).scalar_one()
    assert log.status == "error"
    assert log.message == '; '.join(first.errors)
    assert log.meta == {"total_rows": 2, "errors": first.errors}
    assert session.get(Integration, first.integration_id).status == "error"


def test_successful_import_log_and_audit(session, make_user) -> None:
    user = make_user("ok@example.com")

    result = ImportService().import_rows(session, user.id, [_valid(1), _valid(2)], "Nubank")

    assert result.errors is None
    integration = session.get(Integration, result.integration_id)
    assert integration.name == "Nubank"
    assert integration.last_sync_at is not None
    log = session.execute(select(IntegrationLog)).scalar_one()
    assert log.message == "Successfully imported 2 transactions"
    audit = session.execute(select(AuditLog).where(AuditLog.action == "CSV_IMPORT")).scalar_one()
    assert audit.details["records_processed"] == 2


@pytest.mark.parametrize("rows", [None, [], "not-a-list", {"type": "income"}])
def test_empty_payload_is_rejected_before_side_effects(session, make_user, rows) -> None:
    user = make_user("empty@example.com")

    with pytest.raises(ValidationError):
        ImportService().import_rows(session, user.id, rows)

    assert _count(session, Integration) == 0


def test_integration_log_failure_is_counted(session, make_user) -> None:
    user = make_user("nolog@example.com")
    session.execute(text("DROP TABLE integration_logs"))
    session.commit()

    result = ImportService().import_rows(session, user.id, [_valid(1)])

    assert result.records_processed == 1
    assert failure_counts() == {"integration_log": 1}


def test_parse_csv_text_handles_bom_and_headers() -> None:
    rows = parse_csv_text(
        "\ufeffType,Category,Amount,Description,Transaction_Date\n"
        "income,Pix,10,,2024-01-01\n\n"
    )

    assert rows == [
        {
            "type": "income",
            "category": "Pix",
            "amount": "10",
            "description": "",
            "transaction_date": "2024-01-01",
        }
    ]


def test_parse_csv_text_reports_missing_columns() -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_csv_text("type,amount\nincome,10\n")

    assert excinfo.value.message == "Missing required columns: category, transaction_date"


def test_template_rows_are_valid() -> None:
    rows = parse_csv_text(CSV_TEMPLATE)

    assert len(rows) == 2
    assert all(validate_row(i, row)[1] is None for i, row in enumerate(rows, start=1))
