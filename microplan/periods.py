"""Declaration period resolver.

Decides which month a user should declare next, and builds the list of
months offered in the period selector. Everything here is a pure function of
the declaration ledger and a reference date: no I/O, no clock access and no
exceptions for ledger content.
"""

from __future__ import annotations

from datetime import date
from typing import List, Mapping, Optional, Tuple

from .data_models import DeclarationRecord, DeclarationStage, Period, PeriodInfo

NO_DECLARATIONS = "no_declarations"
NEXT_AFTER_CLOSED = "next_after_closed"
MANUAL_SELECTION = "manual_selection"


def find_latest_closed_period(ledger: Mapping[str, DeclarationRecord]) -> Optional[Period]:
    """Return the chronologically latest closed period, or ``None``."""
    closed_keys = [key for key, record in ledger.items() if record.stage is DeclarationStage.CLOSED]
    if not closed_keys:
        return None
    # zero-padded keys sort chronologically
    return Period.from_key(max(closed_keys))


def resolve_default_period(
    ledger: Mapping[str, DeclarationRecord], reference_date: date
) -> Tuple[Period, str]:
    """Return the period to declare by default and the reason for the choice.

    With no closed declaration the default is the month preceding
    ``reference_date``. Otherwise it is the month following the latest closed
    period. Declared but unclosed periods never move the default.
    """
    latest_closed = find_latest_closed_period(ledger)
    if latest_closed is None:
        return Period.from_date(reference_date).previous(), NO_DECLARATIONS
    return latest_closed.next(), NEXT_AFTER_CLOSED


def is_period_in_future(period: Period, reference_date: date) -> bool:
    """True when the period starts after the first day of the reference month."""
    return period.first_day > Period.from_date(reference_date).first_day


def period_display_status(
    period: Period, ledger: Mapping[str, DeclarationRecord], reference_date: date
) -> str:
    """Return the display status of a period.

    Future periods are always ``"future"``, whatever the ledger says. Then the
    ledger stage wins (``"closed"`` or ``"declared"``), then the reference
    month is ``"current"``; anything else is ``"available"``.
    """
    if is_period_in_future(period, reference_date):
        return "future"
    record = ledger.get(period.key)
    if record is not None:
        if record.stage is DeclarationStage.CLOSED:
            return "closed"
        if record.stage is DeclarationStage.DECLARED:
            return "declared"
    if period == Period.from_date(reference_date):
        return "current"
    return "available"


def list_available_periods(
    ledger: Mapping[str, DeclarationRecord],
    reference_date: date,
    years_back: int = 2,
    years_forward: int = 1,
) -> List[PeriodInfo]:
    """Return every selectable period, most recent first.

    The window covers January of ``year - years_back`` through December of
    ``year + years_forward`` where ``year`` is the reference date's year.
    The entry equal to the resolved default carries ``is_default=True`` and
    the default's reason; the others carry ``"manual_selection"``.
    """
    if years_back < 0 or years_forward < 0:
        raise ValueError("Period window sizes must not be negative")

    default_period, default_reason = resolve_default_period(ledger, reference_date)
    start_year = reference_date.year - years_back
    end_year = reference_date.year + years_forward

    periods: List[PeriodInfo] = []
    for year in range(start_year, end_year + 1):
        for month in range(1, 13):
            period = Period(year, month)
            is_default = period == default_period
            periods.append(
                PeriodInfo(
                    period=period,
                    label=period.label,
                    is_default=is_default,
                    reason=default_reason if is_default else MANUAL_SELECTION,
                    status=period_display_status(period, ledger, reference_date),
                )
            )
    return sorted(periods, key=lambda info: info.key, reverse=True)
