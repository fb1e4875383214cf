"""CSV statement import with independent per-row validation."""
from __future__ import annotations

import csv
import io
import math
import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import NotFoundError, UpstreamError, ValidationError
from financeos.core.log import get_logger, log_context, timeit
from financeos.core.timeutils import utcnow
from financeos.models import Integration, IntegrationLog, Transaction, TransactionType
from financeos.schemas.imports import ImportResult
from financeos.services.audit_service import AuditService
from financeos.services.best_effort import run_best_effort

LOGGER = get_logger(__name__)

CSV_COLUMNS = ("type", "category", "amount", "description", "transaction_date")
REQUIRED_COLUMNS = ("type", "category", "amount", "transaction_date")
CSV_TEMPLATE = (
    "type,category,amount,description,transaction_date\n"
    "income,Salário,5000,Salário mensal,2024-01-15\n"
    "expense,Alimentação,500,Supermercado,2024-01-16\n"
)

_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_VALID_TYPES = {t.value for t in TransactionType}
_CENT = Decimal("0.01")
# Limits of the financial_transactions amount and category columns.
MAX_AMOUNT_DIGITS = 12
MAX_CATEGORY_LENGTH = 128


@dataclass(frozen=True, slots=True)
class ValidRow:
    type: str
    category: str
    amount: Decimal
    description: str | None
    transaction_date: date


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def parse_amount(value: Any) -> Decimal | None:
    """Return the amount rounded to cents, or ``None``.

    The rounded value must be positive and fit ``Numeric(14,2)``, so values
    such as ``0.001`` or ``1e15`` are rejected per row.
    """

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0 or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return None
    amount = amount.quantize(_CENT, rounding=ROUND_HALF_UP)
    if amount <= 0 or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return None
    return amount


def parse_date(value: Any) -> date | None:
    """Accept strict ``YYYY-MM-DD`` strings naming a real calendar date."""

    if not isinstance(value, str) or not _DATE_PATTERN.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def validate_row(index: int, row: Any) -> tuple[ValidRow | None, str | None]:
    """Validate one row; ``index`` is 1-based and only used in messages.

    Checks run in a fixed order (type, amount, category, date) and stop at
    the first failure.
    """

    data: Mapping[str, Any] = row if isinstance(row, Mapping) else {}

    raw_type = data.get("type")
    if not isinstance(raw_type, str) or raw_type.lower() not in _VALID_TYPES:
        return None, f'Row {index}: Invalid type "{_display(raw_type)}"'

    raw_amount = data.get("amount")
    amount = parse_amount(raw_amount)
    if amount is None:
        return None, f'Row {index}: Invalid amount "{_display(raw_amount)}"'

    raw_category = data.get("category")
    if not isinstance(raw_category, str) or not raw_category.strip():
        return None, f"Row {index}: Missing category"
    if len(raw_category.strip()) > MAX_CATEGORY_LENGTH:
        return None, f"Row {index}: Category too long"

    raw_date = data.get("transaction_date")
    parsed_date = parse_date(raw_date)
    if parsed_date is None:
        return None, (
            f'Row {index}: Invalid date format "{_display(raw_date)}" (use YYYY-MM-DD)'
        )

    raw_description = data.get("description")
    description = raw_description.strip() if isinstance(raw_description, str) else None

    return (
        ValidRow(
            type=raw_type.lower(),
            category=raw_category.strip(),
            amount=amount,
            description=description or None,
            transaction_date=parsed_date,
        ),
        None,
    )


def parse_csv_text(text: str) -> list[dict[str, str]]:
    """Turn a statement file into row dicts keyed by lower-cased header names."""

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if reader.fieldnames is None:
        raise ValidationError("CSV file is empty")
    headers = [name.strip().lower() for name in reader.fieldnames]
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    reader.fieldnames = headers

    rows: list[dict[str, str]] = []
    for record in reader:
        values = {key: (value or "").strip() for key, value in record.items() if key}
        if not any(values.values()):
            continue
        rows.append(values)
    return rows


class ImportService:
    """Import validated rows for one tenant as a single tracked batch."""

    def __init__(self, audit: AuditService | None = None) -> None:
        self._audit = audit or AuditService()

    def import_rows(
        self,
        session: Session,
        user_id: int,
        rows: Any,
        integration_name: str | None = None,
    ) -> ImportResult:
        if not isinstance(rows, list) or not rows:
            raise ValidationError("No data provided")

        total = len(rows)
        name = integration_name or f"CSV Import {utcnow().isoformat()}"
        try:
            integration = Integration(user_id=user_id, name=name, type="csv_import", status="active")
            session.add(integration)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Integration error", extra={"user_id": user_id})
            raise UpstreamError("Failed to create integration") from exc
        integration_id = integration.id

        with log_context.scope(integration_id=integration_id):
            errors: list[str] = []
            valid: list[ValidRow] = []
            processed = 0

            with timeit("CSV import", logger=LOGGER, unit="rows", total=total):
                for index, row in enumerate(rows, start=1):
                    parsed, error = validate_row(index, row)
                    if error is not None:
                        errors.append(error)
                    else:
                        valid.append(parsed)

                if valid:
                    try:
                        session.add_all(
                            Transaction(
                                tenant_id=user_id,
                                type=item.type,
                                category=item.category,
                                amount=item.amount,
                                description=item.description,
                                transaction_date=item.transaction_date,
                                created_by=user_id,
                            )
                            for item in valid
                        )
                        session.commit()
                        processed = len(valid)
                    except SQLAlchemyError as exc:
                        session.rollback()
                        LOGGER.exception("Insert error", extra={"rows": len(valid)})
                        errors.append(f"Failed to insert transactions: {getattr(exc, 'orig', None) or exc}")

            failed = total - processed
            self._write_log(session, integration_id, user_id, total, processed, failed, errors)
            self._audit.log(
                session,
                "CSV_IMPORT",
                user_id=user_id,
                entity="financial_transactions",
                entity_id=integration_id,
                details={
                    "total_rows": total,
                    "records_processed": processed,
                    "records_failed": failed,
                    "integration_name": integration_name,
                },
            )

        LOGGER.info(
            "Imported %s of %s rows into integration %s", processed, total, integration_id
        )
        return ImportResult(
            integration_id=integration_id,
            records_processed=processed,
            records_failed=failed,
            errors=errors or None,
        )

    @staticmethod
    def _write_log(
        session: Session,
        integration_id: int,
        user_id: int,
        total: int,
        processed: int,
        failed: int,
        errors: Sequence[str],
    ) -> None:
        failed_batch = bool(errors) and processed == 0
        message = "; ".join(errors) if errors else f"Successfully imported {processed} transactions"

        def _write(s: Session) -> None:
            s.add(
                IntegrationLog(
                    integration_id=integration_id,
                    user_id=user_id,
                    status="error" if failed_batch else "success",
                    message=message,
                    records_processed=processed,
                    records_failed=failed,
                    meta={"total_rows": total, "errors": list(errors)},
                )
            )
            integration = s.get(Integration, integration_id)
            if integration is not None:
                integration.last_sync_at = utcnow()
                if processed == 0:
                    integration.status = "error"

        run_best_effort(session, "integration_log", _write, integration_id=integration_id)

    @staticmethod
    def list_integrations(session: Session, user_id: int) -> list[Integration]:
        return list(
            session.execute(
                select(Integration)
                .where(Integration.user_id == user_id)
                .order_by(Integration.created_at.desc(), Integration.id.desc())
            ).scalars()
        )

    @staticmethod
    def list_logs(session: Session, user_id: int, integration_id: int) -> list[IntegrationLog]:
        integration = session.get(Integration, integration_id)
        if integration is None or integration.user_id != user_id:
            raise NotFoundError("Integration not found")
        return list(
            session.execute(
                select(IntegrationLog)
                .where(IntegrationLog.integration_id == integration_id)
                .order_by(IntegrationLog.created_at.desc(), IntegrationLog.id.desc())
            ).scalars()
        )


__all__ = [
    "CSV_COLUMNS",
    "CSV_TEMPLATE",
    "ImportService",
    "ValidRow",
    "parse_amount",
    "parse_csv_text",
    "parse_date",
    "validate_row",
]
