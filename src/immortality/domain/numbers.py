"""Magnitude-safe rendering of in-game quantities."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .enums import NumberMode

Magnitude = int | float

SUFFIXES: tuple[str, ...] = ("", "k", "M", "B", "T", "q", "Q", "s")

SIGNIFICANT_DIGITS = 3


def format_number(value: Magnitude, mode: NumberMode = NumberMode.STANDARD) -> str:
    """Render ``value`` as a compact string.

    Standard mode uses two decimals for small fractions, plain integers below
    10,000, and otherwise a ``k``/``M``/``B``/... suffix with the scaled value
    truncated to two decimals.  Scientific mode, and standard mode beyond the
    last suffix, use three significant digits.  Non-finite input renders as
    ``NaN``/``Infinity``/``-Infinity``.
    """

    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"

    if mode == NumberMode.SCIENTIFIC:
        return to_precision(value)

    unsigned = -value if value < 0 else value
    text = _format_unsigned(unsigned)
    if value < 0:
        return "-" + text
    return text


def to_precision(value: Magnitude, digits: int = SIGNIFICANT_DIGITS) -> str:
    """Render ``value`` with exactly ``digits`` significant digits."""

    number = Decimal(value) if value != 0 else Decimal(0)
    with localcontext() as ctx:
        ctx.rounding = ROUND_HALF_UP
        mantissa, exponent = f"{number:.{digits - 1}e}".split("e")
        power = int(exponent)
        if -7 < power < digits:
            return f"{number:.{digits - 1 - power}f}"
    return f"{mantissa}e{power:+d}"


def format_days(days: int, days_per_year: int = 365) -> str:
    """Render a day count as ``"2 years 3 days"``."""

    years, remainder = divmod(max(0, int(days)), days_per_year)
    parts: list[str] = []
    if years > 0:
        parts.append(f"{years} year{'s' if years != 1 else ''}")
    if remainder > 0:
        parts.append(f"{remainder} day{'s' if remainder != 1 else ''}")
    return " ".join(parts) if parts else "0 days"


def _format_unsigned(unsigned: Magnitude) -> str:
    if unsigned < 100 and not _is_integral(unsigned):
        return f"{unsigned:.2f}"
    if unsigned < 10000:
        return str(math.floor(unsigned + 0.5))

    power = math.floor(math.log10(unsigned))
    if power // 3 >= len(SUFFIXES):
        # past the last suffix tier
        return to_precision(unsigned)
    scale = 10 ** (power - power % 3 - 2)
    truncated = math.floor(unsigned / scale) / 100
    return f"{truncated:g}{SUFFIXES[power // 3]}"


def _is_integral(value: Magnitude) -> bool:
    if isinstance(value, int):
        return True
    return value.is_integer()
