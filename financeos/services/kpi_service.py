"""KPI aggregation over a tenant's transactions and accounts."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import UpstreamError
from financeos.core.formatting import to_decimal
from financeos.core.log import get_logger, timeit
from financeos.core.timeutils import utcnow
from financeos.models import Account, AccountStatus, KpiCacheEntry, Transaction, TransactionType
from financeos.schemas.kpis import FinancialKpis, KpiCacheItem, MonthlyBucket
from financeos.services.best_effort import run_best_effort

LOGGER = get_logger(__name__)

DEFAULT_CATEGORY = "Outros"
CACHED_KPIS = ("total_income", "total_expense", "net_balance", "transaction_count")


@dataclass(frozen=True, slots=True)
class TransactionRow:
    """Minimal projection of a transaction used by the aggregation."""

    type: str
    amount: Decimal
    category: str | None
    transaction_date: date


def compute_kpis(
    transactions: Iterable[TransactionRow],
    account_balances: Iterable[Decimal],
    year: int,
    *,
    calculated_at: datetime | None = None,
) -> FinancialKpis:
    """Reduce transactions into dashboard KPIs.

    ``account_balances`` must already be restricted to active accounts.
    Monthly buckets only count transactions dated within ``year``.
    """

    total_income = Decimal("0")
    total_expense = Decimal("0")
    count = 0
    breakdown: dict[str, Decimal] = defaultdict(Decimal)
    monthly = [MonthlyBucket(month=index + 1) for index in range(12)]

    for row in transactions:
        count += 1
        amount = to_decimal(row.amount)
        is_income = row.type == TransactionType.INCOME.value
        if is_income:
            total_income += amount
        else:
            total_expense += amount
            breakdown[row.category or DEFAULT_CATEGORY] += amount

        if row.transaction_date.year == year:
            bucket = monthly[row.transaction_date.month - 1]
            if is_income:
                bucket.income += amount
            else:
                bucket.expense += amount

    accounts_balance = sum((to_decimal(b) for b in account_balances), Decimal("0"))

    return FinancialKpis(
        total_income=total_income,
        total_expense=total_expense,
        net_balance=total_income - total_expense,
        transaction_count=count,
        accounts_balance=accounts_balance,
        category_breakdown=dict(breakdown),
        monthly_data=monthly,
        calculated_at=calculated_at or utcnow(),
    )


class KpiService:
    """Compute KPIs for a tenant and refresh the KPI cache."""

    def calculate(
        self, session: Session, tenant_id: int, today: date | None = None
    ) -> FinancialKpis:
        LOGGER.info("Calculating KPIs for tenant: %s", tenant_id)
        reference = today or date.today()

        try:
            with timeit(
                "KPI source fetch",
                logger=LOGGER,
                unit="rows",
                track_db_calls=True,
                session=session,
            ) as timer:
                rows = [
                    TransactionRow(
                        type=row.type,
                        amount=row.amount,
                        category=row.category,
                        transaction_date=row.transaction_date,
                    )
                    for row in session.execute(
                        select(
                            Transaction.type,
                            Transaction.amount,
                            Transaction.category,
                            Transaction.transaction_date,
                        ).where(Transaction.tenant_id == tenant_id)
                    )
                ]
                balances = list(
                    session.execute(
                        select(Account.balance).where(
                            Account.tenant_id == tenant_id,
                            Account.status == AccountStatus.ACTIVE.value,
                        )
                    ).scalars()
                )
                timer.add(len(rows))
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Error fetching transactions", extra={"tenant_id": tenant_id})
            raise UpstreamError("Failed to fetch transactions") from exc

        kpis = compute_kpis(rows, balances, reference.year)
        self._refresh_cache(session, tenant_id, kpis)
        return kpis

    @staticmethod
    def _refresh_cache(session: Session, tenant_id: int, kpis: FinancialKpis) -> None:
        values = {
            "total_income": kpis.total_income,
            "total_expense": kpis.total_expense,
            "net_balance": kpis.net_balance,
            "transaction_count": Decimal(kpis.transaction_count),
        }

        def _upsert(s: Session) -> None:
            existing = {
                entry.kpi_name: entry
                for entry in s.execute(
                    select(KpiCacheEntry).where(
                        KpiCacheEntry.tenant_id == tenant_id,
                        KpiCacheEntry.kpi_name.in_(CACHED_KPIS),
                    )
                ).scalars()
            }
            for name, value in values.items():
                entry = existing.get(name)
                if entry is None:
                    s.add(
                        KpiCacheEntry(
                            tenant_id=tenant_id,
                            kpi_name=name,
                            value=value,
                            calculated_at=kpis.calculated_at,
                        )
                    )
                else:
                    entry.value = value
                    entry.calculated_at = kpis.calculated_at

        run_best_effort(session, "kpi_cache", _upsert, tenant_id=tenant_id)

    @staticmethod
    def cached(session: Session, tenant_id: int) -> list[KpiCacheItem]:
        entries = session.execute(
            select(KpiCacheEntry)
            .where(KpiCacheEntry.tenant_id == tenant_id)
            .order_by(KpiCacheEntry.kpi_name)
        ).scalars()
        return [
            KpiCacheItem(kpi_name=e.kpi_name, value=e.value, calculated_at=e.calculated_at)
            for e in entries
        ]


__all__ = ["KpiService", "TransactionRow", "compute_kpis", "DEFAULT_CATEGORY"]
