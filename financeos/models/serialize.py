"""Flatten ORM rows into JSON-ready dicts."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import inspect


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def serialize_row(
    row: object,
    *,
    exclude: Iterable[str] = (),
    only: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Return ``{column_name: value}`` for the mapped columns of ``row``."""

    excluded = set(exclude)
    selected = set(only) if only is not None else None
    mapper = inspect(row).mapper
    result: dict[str, Any] = {}
    for attr in mapper.column_attrs:
        name = attr.columns[0].name
        if name in excluded or (selected is not None and name not in selected):
            continue
        result[name] = to_jsonable(getattr(row, attr.key))
    return result
