"""Data models for the planner.

This module defines dataclasses representing the entities used by the
declaration period resolver and the tax projection engine: calendar periods,
declaration records, monthly and yearly work plans and the per-month
projection rows. The core treats all of them as immutable values; editing
helpers in :mod:`microplan.planning` return new instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from .utils import add_months, format_period_key, month_label, parse_period_key


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month.

    Attributes
    ----------
    year: int
        The calendar year.
    month: int
        The month, 1 (January) to 12 (December).

    Instances order chronologically, which is also the lexicographic order of
    their ``key``.
    """

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12; got {self.month}")

    @classmethod
    def from_key(cls, key: str) -> "Period":
        year, month = parse_period_key(key)
        return cls(year, month)

    @classmethod
    def from_date(cls, dt: date) -> "Period":
        return cls(dt.year, dt.month)

    @property
    def key(self) -> str:
        return format_period_key(self.year, self.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def label(self) -> str:
        return month_label(self.year, self.month)

    def add_months(self, months: int) -> "Period":
        year, month = add_months(self.year, self.month, months)
        return Period(year, month)

    def previous(self) -> "Period":
        return self.add_months(-1)

    def next(self) -> "Period":
        return self.add_months(1)

    def __str__(self) -> str:
        return self.key


class DeclarationStage(Enum):
    """Lifecycle of a monthly declaration: draft -> declared -> closed."""

    DRAFT = "draft"
    DECLARED = "declared"
    CLOSED = "closed"

    @property
    def rank(self) -> int:
        return _STAGE_ORDER.index(self)


_STAGE_ORDER = [DeclarationStage.DRAFT, DeclarationStage.DECLARED, DeclarationStage.CLOSED]


@dataclass(frozen=True)
class DeclarationRecord:
    """Status of the declaration for one period.

    ``closed_at`` is only meaningful for closed records and is ``None`` for
    the other stages.
    """

    stage: DeclarationStage
    closed_at: Optional[datetime] = None

    @property
    def is_closed(self) -> bool:
        return self.stage is DeclarationStage.CLOSED


# Period key -> declaration status. Keys are unique; no ordering is implied.
DeclarationLedger = Dict[str, DeclarationRecord]


@dataclass(frozen=True)
class TaxRates:
    """Rates applied by the projection engine, as fractions of the HT amount."""

    vat_rate: Decimal = Decimal("0.20")
    social_rate: Decimal = Decimal("0.261")
    commission_rate: Decimal = Decimal("0.05")


DEFAULT_RATES = TaxRates()


@dataclass(frozen=True)
class MonthlyWorkPlan:
    """Work schedule of one month.

    ``working_days`` and ``estimated_revenue_cents`` are derived from the
    other fields and the plan's daily rate; build instances with
    :func:`microplan.planning.build_month` so they stay consistent.
    ``holidays_taken`` may hold half days, so ``working_days`` is a Decimal.
    """

    month: int
    max_working_days: int
    holidays_taken: Decimal
    public_holidays: int
    working_days: Decimal
    estimated_revenue_cents: int


@dataclass(frozen=True)
class YearlyPlan:
    """A daily rate (TJM) and the twelve monthly schedules of one year."""

    year: int
    daily_rate_cents: int
    max_working_days_limit: int
    months: Tuple[MonthlyWorkPlan, ...]


@dataclass(frozen=True)
class MonthlyTaxProjection:
    """One month of the cash-basis projection. Amounts are in cents.

    ``collected_cash_*`` and ``commission_cents`` derive from the revenue
    invoiced one month earlier; ``vat_due_cents`` and
    ``social_contribution_due_cents`` from the revenue invoiced two months
    earlier.
    """

    month_index: int
    period: Period
    invoiced_revenue_cents: int
    collected_cash_gross_cents: int
    commission_cents: int
    collected_cash_net_cents: int
    vat_due_cents: int
    social_contribution_due_cents: int
    total_charges_cents: int
    available_cash_cents: int


@dataclass(frozen=True)
class PeriodInfo:
    """A selectable period annotated for display."""

    period: Period
    label: str
    is_default: bool
    reason: str  # 'no_declarations', 'next_after_closed' or 'manual_selection'
    status: str  # 'future', 'current', 'declared', 'closed' or 'available'

    @property
    def key(self) -> str:
        return self.period.key


@dataclass(frozen=True)
class VatReport:
    period: Period
    collected_cents: int
    deductible_cents: int
    due_cents: int


@dataclass(frozen=True)
class UrssafReport:
    period: Period
    cash_collected_base_cents: int
    due_cents: int
