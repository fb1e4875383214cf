"""Helper functions for formatting numbers and currencies."""

from __future__ import annotations
from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def to_decimal(value: int | float | str | Decimal | None) -> Decimal:
    """Coerce a database or JSON value into a ``Decimal``."""

    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_amount(value: int | float | Decimal, decimals: int = 2) -> str:
    """Plain fixed-point rendering used by CSV exports, e.g. ``1234.50``."""

    quantum = Decimal(1).scaleb(-decimals)
    return format(to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP), "f")


def format_brl_number(value: int | float | Decimal) -> str:
    """Format with pt-BR separators: ``1234.5`` becomes ``1.234,50``."""

    d = to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if d < 0 else ""
    whole, _, cents = format(abs(d), "f").partition(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}{'.'.join(groups)},{cents or '00'}"


def humanize_currency(value: int | float | Decimal, symbol: str = "R$") -> str:
    """Format a currency value the way the dashboard shows it.

    Args:
        value: The currency amount to format
        symbol: Currency symbol to use (default: R$)
    """
    return f"{symbol} {format_brl_number(value)}"
