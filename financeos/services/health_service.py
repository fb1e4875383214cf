"""System health checks persisted to ``system_health``."""
from __future__ import annotations

from time import perf_counter
from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.ai_agents.config import LLMProviderConfig, llm_config
from financeos.core.log import get_logger
from financeos.core.timeutils import utcnow
from financeos.models import HealthStatus, Integration, Profile, SystemHealthCheck
from financeos.schemas.health import HealthCheckResult, HealthReport
from financeos.services.best_effort import failure_counts, run_best_effort

LOGGER = get_logger(__name__)

DB_LATENCY_THRESHOLD_MS = 1000


def overall_status(checks: list[HealthCheckResult]) -> str:
    """``critical`` beats ``degraded`` beats ``healthy``; ``unknown`` is ignored."""

    statuses = {check.status for check in checks}
    if HealthStatus.CRITICAL.value in statuses:
        return HealthStatus.CRITICAL.value
    if HealthStatus.DEGRADED.value in statuses:
        return HealthStatus.DEGRADED.value
    return HealthStatus.HEALTHY.value


class HealthService:
    """Run the health checks and store each result."""

    def __init__(
        self,
        config: LLMProviderConfig | None = None,
        failures: Callable[[], dict[str, int]] = failure_counts,
    ) -> None:
        self._config = config or llm_config
        self._failures = failures

    def run(self, session: Session) -> HealthReport:
        started = perf_counter()
        checks = [
            self._check_database(session),
            self._check_integrations(session),
            self._check_ai_gateway(),
            self._check_best_effort_writes(),
            HealthCheckResult(
                check_type="functions",
                status=HealthStatus.HEALTHY.value,
                message="Backend functions operational",
                metadata={"self_check": True},
            ),
        ]

        def _store(s: Session) -> None:
            s.add_all(
                SystemHealthCheck(
                    check_type=check.check_type,
                    status=check.status,
                    message=check.message,
                    meta=check.metadata,
                )
                for check in checks
            )

        run_best_effort(session, "system_health", _store)

        report = HealthReport(
            status=overall_status(checks),
            checks=checks,
            total_latency_ms=int((perf_counter() - started) * 1000),
            checked_at=utcnow(),
        )
        LOGGER.info("Health check finished: %s", report.status)
        return report

    @staticmethod
    def _check_database(session: Session) -> HealthCheckResult:
        started = perf_counter()
        try:
            count = session.execute(select(func.count()).select_from(Profile)).scalar_one()
        except SQLAlchemyError as exc:
            session.rollback()
            LOGGER.exception("Database health check failed")
            return HealthCheckResult(
                check_type="database",
                status=HealthStatus.CRITICAL.value,
                message=f"Database error: {exc.__class__.__name__}",
                metadata={"latency_ms": int((perf_counter() - started) * 1000)},
            )
        latency = int((perf_counter() - started) * 1000)
        slow = latency > DB_LATENCY_THRESHOLD_MS
        return HealthCheckResult(
            check_type="database",
            status=HealthStatus.DEGRADED.value if slow else HealthStatus.HEALTHY.value,
            message="High latency detected" if slow else "Database operational",
            metadata={"latency_ms": latency, "profiles_count": count},
        )

    @staticmethod
    def _check_integrations(session: Session) -> HealthCheckResult:
        try:
            failed = len(
                session.execute(
                    select(Integration.id).where(Integration.status == "error").limit(5)
                ).all()
            )
        except SQLAlchemyError:
            session.rollback()
            LOGGER.exception("Integration health check failed")
            return HealthCheckResult(
                check_type="integration",
                status=HealthStatus.UNKNOWN.value,
                message="Integration check failed",
            )
        return HealthCheckResult(
            check_type="integration",
            status=HealthStatus.DEGRADED.value if failed else HealthStatus.HEALTHY.value,
            message=f"{failed} integration(s) with errors" if failed else "All integrations healthy",
            metadata={"failed_integrations": failed},
        )

    def _check_ai_gateway(self) -> HealthCheckResult:
        configured = self._config.is_configured
        return HealthCheckResult(
            check_type="ai_gateway",
            status=HealthStatus.HEALTHY.value if configured else HealthStatus.DEGRADED.value,
            message="AI gateway configured" if configured else "AI gateway API key not configured",
            metadata={"provider": self._config.provider},
        )

    def _check_best_effort_writes(self) -> HealthCheckResult:
        failures = self._failures()
        total = sum(failures.values())
        return HealthCheckResult(
            check_type="audit",
            status=HealthStatus.DEGRADED.value if total else HealthStatus.HEALTHY.value,
            message=(
                f"{total} best-effort write(s) failed since start-up"
                if total
                else "Audit trail writes healthy"
            ),
            metadata={"failures": failures},
        )


__all__ = ["HealthService", "overall_status"]
