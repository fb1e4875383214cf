"""Shared FastAPI dependency definitions."""
from __future__ import annotations

from collections.abc import Generator

from sqlalchemy.orm import Session

from financeos.db.session import get_default_sessionmaker


def get_db_session() -> Generator[Session, None, None]:
    """Yield a database session suitable for request-scoped usage."""

    session = get_default_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


def client_ip(headers) -> str:
    """First ``x-forwarded-for`` hop, else ``cf-connecting-ip``, else ``unknown``."""

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return headers.get("cf-connecting-ip") or "unknown"


def user_agent(headers) -> str:
    return headers.get("user-agent") or "unknown"


__all__ = ["get_db_session", "client_ip", "user_agent"]
