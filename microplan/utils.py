"""Utility functions for the planner.

This module provides helpers for parsing user input into Python data types,
for handling calendar months (period keys, month offsets, working days) and
for converting money between euros and integer cents. Money is kept as
integer cents everywhere except at the input and display boundaries.
"""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Dict, List, Tuple

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

MONTH_NAMES = [
    "Janvier",
    "Février",
    "Mars",
    "Avril",
    "Mai",
    "Juin",
    "Juillet",
    "Août",
    "Septembre",
    "Octobre",
    "Novembre",
    "Décembre",
]


def parse_period_key(key: str) -> Tuple[int, int]:
    """Parse a ``YYYY-MM`` string into a ``(year, month)`` tuple.

    Parameters
    ----------
    key: str
        A string in the form ``"YYYY-MM"``. Anything after the month (for
        example a day component) is rejected.

    Returns
    -------
    tuple
        The year and the month (1-12).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = key.strip().split("-")
        if len(parts) != 2 or len(parts[0]) != 4 or len(parts[1]) != 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        if not 1 <= month <= 12:
            raise ValueError
        return year, month
    except Exception as exc:
        raise ValueError(f"Invalid period key: {key!r}") from exc


def format_period_key(year: int, month: int) -> str:
    """Return the canonical ``YYYY-MM`` key for a year and month."""
    return f"{year:04d}-{month:02d}"


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    """Return the ``(year, month)`` that is ``months`` after the given one.

    Negative offsets walk backwards; year boundaries are crossed in both
    directions.
    """
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def parse_iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date``."""
    try:
        return date.fromisoformat(value.strip())
    except Exception as exc:
        raise ValueError(f"Invalid date: {value!r}") from exc


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips spaces, accepts a French decimal comma and handles
    both integer and float-like strings. It raises ``ValueError`` if
    conversion fails.
    """
    try:
        cleaned = value.replace(" ", "").replace("\u00a0", "").replace(",", ".")
        return Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def round_half_up(value: Decimal) -> int:
    """Round a Decimal amount of cents to the nearest whole cent, halves up."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def euros_to_cents(euros: Decimal) -> int:
    return round_half_up(Decimal(euros) * 100)


def cents_to_euros(cents: int) -> Decimal:
    return Decimal(cents) / Decimal(100)


def month_label(year: int, month: int) -> str:
    """Return the French label of a month, e.g. ``"Août 2025"``."""
    return f"{MONTH_NAMES[month - 1]} {year}"


def weekdays_in_month(year: int, month: int) -> int:
    """Count the Monday-to-Friday days of a month."""
    days_in_month = calendar.monthrange(year, month)[1]
    return sum(1 for day in range(1, days_in_month + 1) if date(year, month, day).weekday() < 5)


def easter_sunday(year: int) -> date:
    """Return Easter Sunday for a Gregorian year (anonymous algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def french_public_holidays(year: int) -> List[date]:
    """Return the French public holidays (metropolitan calendar) of a year."""
    easter = easter_sunday(year)
    return sorted(
        [
            date(year, 1, 1),
            easter + timedelta(days=1),  # lundi de Pâques
            date(year, 5, 1),
            date(year, 5, 8),
            easter + timedelta(days=39),  # Ascension
            easter + timedelta(days=50),  # lundi de Pentecôte
            date(year, 7, 14),
            date(year, 8, 15),
            date(year, 11, 1),
            date(year, 11, 11),
            date(year, 12, 25),
        ]
    )


def public_holidays_on_weekdays(year: int) -> Dict[int, int]:
    """Map each month (1-12) to the number of public holidays on a weekday."""
    counts = {month: 0 for month in range(1, 13)}
    for holiday in french_public_holidays(year):
        if holiday.weekday() < 5:
            counts[holiday.month] += 1
    return counts
