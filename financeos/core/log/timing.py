"""Timing helpers that log duration, throughput and statement counts."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Iterator, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session


class StatementCounter:
    """Counts SQL statements emitted on an engine while attached."""

    def __init__(self) -> None:
        self.count = 0
        self._engine: Engine | None = None

    def _on_execute(self, *_args: object) -> None:
        self.count += 1

    def attach(self, session: Session) -> None:
        bind = session.get_bind()
        engine = bind if isinstance(bind, Engine) else getattr(bind, "engine", None)
        if engine is None:
            return
        self._engine = engine
        event.listen(engine, "before_cursor_execute", self._on_execute)

    def detach(self) -> None:
        if self._engine is not None:
            event.remove(self._engine, "before_cursor_execute", self._on_execute)
            self._engine = None


@dataclass
class _Timer:
    label: str
    logger: logging.Logger
    level: int
    unit: str
    expected_total: Optional[int]
    count: int = 0
    start: float = field(default_factory=perf_counter)
    statements: Optional[StatementCounter] = None

    def add(self, amount: int = 1) -> None:
        self.count += amount

    def set_total(self, total: int) -> None:
        self.expected_total = total

    def _resolved_total(self) -> Optional[int]:
        return self.expected_total if self.expected_total is not None else self.count

    def finish(self, success: bool = True) -> None:
        elapsed = perf_counter() - self.start
        total = self._resolved_total()
        statement_count = self.statements.count if self.statements else 0

        if success:
            message = f"{self.label} completed in {elapsed:.2f}s"
            if total is not None:
                message += f" ({total:,} {self.unit}"
                if elapsed > 0 and total:
                    message += f" @ {total / elapsed:,.0f} {self.unit}/s"
                message += ")"
            if statement_count:
                message += f" ({statement_count:,} DB calls)"
            self.logger.log(self.level, message)
        else:
            fail_message = f"{self.label} failed after {elapsed:.2f}s"
            if total is not None:
                fail_message += f" ({total:,} {self.unit})"
            if statement_count:
                fail_message += f" ({statement_count:,} DB calls)"
            self.logger.error(fail_message)


@contextmanager
def timeit(
    label: str,
    *,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
    unit: str = "items",
    total: Optional[int] = None,
    track_db_calls: bool = False,
    session: Optional[Session] = None,
) -> Iterator[_Timer]:
    """Time the enclosed block and log the outcome.

    Args:
        label: Description of the operation being timed
        logger: Logger instance to use (defaults to "financeos.timer")
        level: Logging level for the success message
        unit: Unit for throughput calculation (e.g. "rows", "transactions")
        total: Expected total count for throughput calculation
        track_db_calls: Count SQL statements issued through ``session``
        session: SQLAlchemy session whose engine should be observed
    """
    log = logger or logging.getLogger("financeos.timer")

    counter: StatementCounter | None = None
    if track_db_calls:
        if session is None:
            raise ValueError("session parameter is required when track_db_calls=True")
        counter = StatementCounter()
        counter.attach(session)

    timer = _Timer(
        label=label,
        logger=log,
        level=level,
        unit=unit,
        expected_total=total,
        statements=counter,
    )

    try:
        yield timer
    except Exception:
        timer.finish(success=False)
        raise
    else:
        timer.finish(success=True)
    finally:
        if counter is not None:
            counter.detach()
