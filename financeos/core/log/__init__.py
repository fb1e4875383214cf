"""Logging for the API and CLI scripts: rich console output plus daily files.

Records are produced on request threads and handed to a ``QueueListener`` so
that file I/O never blocks a request. ``log_context`` values (user id, path,
agent, integration id) are rendered as a ``key=value`` prefix on every line.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import SimpleQueue
from threading import RLock
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_rich_traceback

from .context import ContextFilter, log_context
from .progress import progress_manager
from .timing import timeit

__all__ = [
    "LoggingConfig",
    "init_logging",
    "get_logger",
    "shutdown_logging",
    "log_context",
    "progress_manager",
    "timeit",
]

APP_LOGGER = "financeos"

# Chatty libraries are held at WARNING unless the app itself logs at DEBUG.
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "sqlalchemy.engine")


def _env_log_dir() -> Optional[Path]:
    value = os.getenv("LOG_DIR", "logs")
    if value.strip().lower() in {"", "none", "off"}:
        return None
    return Path(value)


def _parse_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


@dataclass
class LoggingConfig:
    level: str | int = "INFO"
    log_dir: Optional[Path] = None
    retention_days: int = 14
    console: bool = True
    rich_tracebacks: bool = True
    queue: bool = True
    quiet: tuple[str, ...] = field(default=NOISY_LOGGERS)

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """``LOG_LEVEL``, ``LOG_DIR`` (empty/``off`` disables files), ``LOG_RETENTION_DAYS``."""

        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=_env_log_dir(),
            retention_days=int(os.getenv("LOG_RETENTION_DAYS", "14")),
        )


_config_lock = RLock()
_config: LoggingConfig | None = None
_listener: QueueListener | None = None
_context_filter = ContextFilter()


class DailyFileHandler(logging.FileHandler):
    """Write ``<prefix>_YYYY_MM_DD.log`` and prune files older than the retention window."""

    def __init__(
        self,
        directory: Path,
        *,
        prefix: str = APP_LOGGER,
        retention_days: int = 0,
        encoding: str = "utf-8",
    ) -> None:
        self.directory = directory
        self.prefix = prefix
        self.retention_days = retention_days
        self.directory.mkdir(parents=True, exist_ok=True)
        self._current_date: date = datetime.now().date()
        super().__init__(self._path_for(self._current_date), mode="a", encoding=encoding)
        self._prune()

    def _path_for(self, day: date) -> Path:
        return self.directory / f"{self.prefix}_{day.strftime('%Y_%m_%d')}.log"

    def _prune(self) -> None:
        if self.retention_days <= 0:
            return
        cutoff = self._current_date - timedelta(days=self.retention_days)
        for path in self.directory.glob(f"{self.prefix}_*.log"):
            stamp = path.stem[len(self.prefix) + 1:]
            try:
                day = datetime.strptime(stamp, "%Y_%m_%d").date()
            except ValueError:
                continue
            if day < cutoff:
                path.unlink(missing_ok=True)

    def emit(self, record: logging.LogRecord) -> None:
        record_date = datetime.fromtimestamp(record.created).date()
        if record_date != self._current_date:
            self._current_date = record_date
            if self.stream:
                self.stream.close()
            self.baseFilename = os.fspath(self._path_for(record_date))
            self.stream = self._open()
            self._prune()
        super().emit(record)


def _build_handlers(cfg: LoggingConfig, level: int) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    console = Console(stderr=True)
    progress_manager.use_console(console)

    if cfg.console:
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=cfg.rich_tracebacks,
            show_path=False,
            markup=False,
            log_time_format="%H:%M:%S",
        )
        rich_handler.setLevel(level)
        rich_handler.setFormatter(logging.Formatter("%(context)s%(message)s"))
        handlers.append(rich_handler)

    if cfg.log_dir:
        file_handler = DailyFileHandler(Path(cfg.log_dir), retention_days=cfg.retention_days)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s [%(name)s] %(context)s%(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(_context_filter)
    return handlers


def init_logging(config: LoggingConfig | None = None) -> None:
    """Install the handlers once; passing a different config rebuilds them."""

    global _config, _listener

    cfg = config or LoggingConfig.from_env()
    with _config_lock:
        if _config is not None:
            if _config == cfg:
                return
            _teardown_locked()

        level = _parse_level(cfg.level)
        if cfg.rich_tracebacks:
            install_rich_traceback(show_locals=False)

        root = logging.getLogger()
        root.setLevel(logging.NOTSET)
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for name in cfg.quiet:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

        handlers = _build_handlers(cfg, level)
        if cfg.queue and handlers:
            log_queue: SimpleQueue = SimpleQueue()
            queue_handler = QueueHandler(log_queue)
            queue_handler.setLevel(level)
            # Context vars are only visible on the thread that logged.
            queue_handler.addFilter(_context_filter)
            root.addHandler(queue_handler)
            _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
            _listener.start()
        else:
            for handler in handlers:
                root.addHandler(handler)
        _config = cfg


def _teardown_locked() -> None:
    global _listener, _config
    if _listener is not None:
        _listener.stop()
    _listener = None
    _config = None
    progress_manager.reset_console()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def shutdown_logging() -> None:
    """Flush and stop the listener; used at CLI exit and in tests."""

    with _config_lock:
        _teardown_locked()


def get_logger(name: str | None = None) -> logging.Logger:
    with _config_lock:
        if _config is None:
            init_logging()
    return logging.getLogger(name or APP_LOGGER)
