"""Tests for the logging helpers."""
from __future__ import annotations

import logging
from datetime import date, timedelta

from financeos.core.log import (
    DailyFileHandler,
    LoggingConfig,
    get_logger,
    init_logging,
    log_context,
    shutdown_logging,
)
from financeos.core.log.context import ContextFilter


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord("financeos.test", logging.INFO, __file__, 1, message, None, None)


def test_scope_renders_nested_fields_and_restores() -> None:
    context_filter = ContextFilter()

    with log_context.scope(user_id=7, path="/transactions"):
        with log_context.scope(agent="financial", path=None):
            inner = _record()
            context_filter.filter(inner)
        outer = _record()
        context_filter.filter(outer)
    after = _record()
    context_filter.filter(after)

    assert inner.context == "user_id=7 path=/transactions agent=financial "
    assert outer.context == "user_id=7 path=/transactions "
    assert after.context == ""
    assert log_context.current() == {}


def test_filter_keeps_context_rendered_upstream() -> None:
    record = _record()
    record.context = "user_id=1 "

    with log_context.scope(user_id=2):
        ContextFilter().filter(record)

    assert record.context == "user_id=1 "


def test_daily_file_handler_prunes_old_files(tmp_path) -> None:
    today = date.today()
    stale = tmp_path / f"financeos_{(today - timedelta(days=30)).strftime('%Y_%m_%d')}.log"
    recent = tmp_path / f"financeos_{(today - timedelta(days=2)).strftime('%Y_%m_%d')}.log"
    unrelated = tmp_path / "notes.log"
    for path in (stale, recent, unrelated):
        path.write_text("x", encoding="utf-8")

    handler = DailyFileHandler(tmp_path, retention_days=14)
    try:
        assert not stale.exists()
        assert recent.exists()
        assert unrelated.exists()
        assert handler.baseFilename.endswith(f"financeos_{today.strftime('%Y_%m_%d')}.log")
    finally:
        handler.close()


def test_file_output_carries_context(tmp_path) -> None:
    init_logging(LoggingConfig(log_dir=tmp_path, console=False, queue=False))
    try:
        with log_context.scope(user_id=3):
            get_logger("financeos.test").info("imported %d rows", 2)
    finally:
        shutdown_logging()

    (log_file,) = tmp_path.glob("financeos_*.log")
    line = log_file.read_text(encoding="utf-8").strip()
    assert line.endswith("INFO [financeos.test] user_id=3 imported 2 rows")
    assert logging.getLogger("httpx").level == logging.WARNING
