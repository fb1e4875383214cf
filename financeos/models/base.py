"""Base declarative class and shared column types for SQLAlchemy models."""
from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

ID_TYPE = BigInteger().with_variant(Integer, "sqlite")
JSON_TYPE = JSON()


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""

    pass
