"""Side-effect writes whose failure must not fail the caller's request."""
from __future__ import annotations

from collections import Counter
from threading import Lock
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from financeos.core.errors import UpstreamError
from financeos.core.log import get_logger

LOGGER = get_logger(__name__)

_failures: Counter[str] = Counter()
_failures_lock = Lock()


def run_best_effort(
    session: Session,
    kind: str,
    operation: Callable[[Session], object],
    *,
    strict: bool = False,
    **context: object,
) -> bool:
    """Apply ``operation`` and commit; on database errors roll back, log and count.

    Returns ``True`` when the write was committed. With ``strict`` the failure
    is re-raised as an :class:`UpstreamError` after being recorded.
    """

    try:
        operation(session)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        with _failures_lock:
            _failures[kind] += 1
        LOGGER.exception(
            "Best-effort %s write failed", kind, extra={"kind": kind, **context}
        )
        if strict:
            raise UpstreamError(f"Failed to write {kind}") from exc
        return False
    return True


def failure_counts() -> dict[str, int]:
    with _failures_lock:
        return dict(_failures)


def reset_failure_counts() -> None:
    with _failures_lock:
        _failures.clear()


__all__ = ["run_best_effort", "failure_counts", "reset_failure_counts"]
