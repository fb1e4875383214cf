"""Request-scoped key/value pairs attached to every log record."""
from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import Iterator

_fields: contextvars.ContextVar[tuple[tuple[str, object], ...]] = contextvars.ContextVar(
    "log_context", default=()
)


class LogContext:
    """Scoped logging fields such as ``user_id``, ``path``, ``agent`` or ``integration_id``.

    Each ``scope`` layers its fields on top of the enclosing ones and restores
    them on exit, so nested scopes in one request never leak into the next.
    """

    @contextmanager
    def scope(self, **values: object) -> Iterator[None]:
        merged = dict(_fields.get())
        merged.update((k, v) for k, v in values.items() if v is not None)
        token = _fields.set(tuple(merged.items()))
        try:
            yield
        finally:
            _fields.reset(token)

    def current(self) -> dict[str, object]:
        return dict(_fields.get())


class ContextFilter(logging.Filter):
    """Render the active scope as a ``key=value`` prefix in ``record.context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Already rendered on the producing thread before crossing the queue.
        if getattr(record, "context", None) is not None:
            return True
        fields = _fields.get()
        record.context = "".join(f"{k}={v} " for k, v in fields)
        return True


log_context = LogContext()
