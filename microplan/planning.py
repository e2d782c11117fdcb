"""Construction and editing of yearly work plans.

A plan is immutable: each editing helper validates its input and returns a
new :class:`~microplan.data_models.YearlyPlan`. A rejected edit raises
:class:`PlanValidationError` and the caller keeps the plan it already had.
``working_days`` and ``estimated_revenue_cents`` are only ever computed by
:func:`build_month`.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Optional, Union

from .data_models import MonthlyWorkPlan, YearlyPlan
from .utils import public_holidays_on_weekdays, round_half_up, weekdays_in_month

DEFAULT_DAILY_RATE_CENTS = 40000
DEFAULT_MAX_WORKING_DAYS_LIMIT = 214

Number = Union[int, Decimal]


class PlanValidationError(ValueError):
    """Raised when an edit would leave a plan in an invalid state."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.field = field


def compute_working_days(max_working_days: int, public_holidays: int, holidays_taken: Number) -> Decimal:
    return max(Decimal(0), Decimal(max_working_days) - Decimal(public_holidays) - Decimal(holidays_taken))


def build_month(
    month: int,
    max_working_days: int,
    public_holidays: int,
    holidays_taken: Number,
    daily_rate_cents: int,
) -> MonthlyWorkPlan:
    """Build a month with its derived working days and estimated revenue."""
    working_days = compute_working_days(max_working_days, public_holidays, holidays_taken)
    return MonthlyWorkPlan(
        month=month,
        max_working_days=max_working_days,
        holidays_taken=Decimal(holidays_taken),
        public_holidays=public_holidays,
        working_days=working_days,
        estimated_revenue_cents=round_half_up(working_days * daily_rate_cents),
    )


def create_default_plan(
    year: int,
    daily_rate_cents: int = DEFAULT_DAILY_RATE_CENTS,
    max_working_days_limit: int = DEFAULT_MAX_WORKING_DAYS_LIMIT,
) -> YearlyPlan:
    """Return a plan with no holidays taken for ``year``.

    Each month offers its Monday-to-Friday days, less the French public
    holidays falling on one of them.
    """
    _check_daily_rate(daily_rate_cents)
    _check_limit(max_working_days_limit)
    public_holidays = public_holidays_on_weekdays(year)
    months = tuple(
        build_month(month, weekdays_in_month(year, month), public_holidays[month], 0, daily_rate_cents)
        for month in range(1, 13)
    )
    return YearlyPlan(
        year=year,
        daily_rate_cents=daily_rate_cents,
        max_working_days_limit=max_working_days_limit,
        months=months,
    )


def set_daily_rate(plan: YearlyPlan, daily_rate_cents: int) -> YearlyPlan:
    """Change the TJM and re-price every month; working days are untouched."""
    _check_daily_rate(daily_rate_cents)
    months = tuple(
        replace(month, estimated_revenue_cents=round_half_up(month.working_days * daily_rate_cents))
        for month in plan.months
    )
    return replace(plan, daily_rate_cents=daily_rate_cents, months=months)


def check_month_days(
    month: MonthlyWorkPlan,
    public_holidays: Decimal,
    holidays_taken: Decimal,
    overflow_field: str = "holidays_taken",
) -> None:
    """Raise :class:`PlanValidationError` unless the day counts fit ``month``.

    ``overflow_field`` names the field blamed when the two counts together
    exceed the days the month offers.
    """
    for value, field in ((public_holidays, "public_holidays"), (holidays_taken, "holidays_taken")):
        if not value.is_finite():
            raise PlanValidationError(f"{field} must be a finite number; got {value}", field)
    if public_holidays < 0:
        raise PlanValidationError("Public holidays must not be negative", "public_holidays")
    if public_holidays != public_holidays.to_integral_value():
        raise PlanValidationError("Public holidays must be a whole number of days", "public_holidays")
    if holidays_taken < 0:
        raise PlanValidationError("Holidays taken must not be negative", "holidays_taken")
    if holidays_taken % Decimal("0.5") != 0:
        raise PlanValidationError("Holidays taken must be a whole or half number of days", "holidays_taken")
    if holidays_taken + public_holidays > month.max_working_days:
        raise PlanValidationError(
            f"Holidays taken ({holidays_taken}) and public holidays ({public_holidays}) exceed the "
            f"{month.max_working_days} days available in month {month.month}",
            overflow_field,
        )


def set_month_days(
    plan: YearlyPlan,
    month_index: int,
    public_holidays: Optional[Number] = None,
    holidays_taken: Optional[Number] = None,
) -> YearlyPlan:
    """Change the day counts of one month at once.

    Fields left to ``None`` keep their current value; the combined result is
    validated before the month is rebuilt.
    """
    month = _month_at(plan, month_index)
    public = month.public_holidays if public_holidays is None else Decimal(public_holidays)
    taken = month.holidays_taken if holidays_taken is None else Decimal(holidays_taken)
    overflow_field = "public_holidays" if holidays_taken is None else "holidays_taken"
    check_month_days(month, Decimal(public), taken, overflow_field)
    updated = build_month(month.month, month.max_working_days, int(public), taken, plan.daily_rate_cents)
    return _with_month(plan, month_index, updated)


def set_holidays_taken(plan: YearlyPlan, month_index: int, holidays_taken: Number) -> YearlyPlan:
    return set_month_days(plan, month_index, holidays_taken=holidays_taken)


def set_public_holidays(plan: YearlyPlan, month_index: int, public_holidays: Number) -> YearlyPlan:
    return set_month_days(plan, month_index, public_holidays=public_holidays)


def set_max_working_days_limit(plan: YearlyPlan, limit: int) -> YearlyPlan:
    _check_limit(limit)
    return replace(plan, max_working_days_limit=limit)


def validate_plan(plan: YearlyPlan, check_days: bool = True) -> YearlyPlan:
    """Check a plan loaded from outside (JSON, storage) and return it.

    Twelve months in calendar order are required, and the derived fields must
    match what :func:`build_month` would compute. With ``check_days`` each
    month must also pass the rules the editing helpers enforce; plans read
    back from storage skip them so rows written before those rules still load.
    """
    _check_daily_rate(plan.daily_rate_cents)
    _check_limit(plan.max_working_days_limit)
    if len(plan.months) != 12:
        raise PlanValidationError(f"A plan needs 12 months; got {len(plan.months)}", "months")
    for index, month in enumerate(plan.months):
        if month.month != index + 1:
            raise PlanValidationError(f"Month {index + 1} is out of order", "months")
        if month.max_working_days < 0 or month.public_holidays < 0 or month.holidays_taken < 0:
            raise PlanValidationError(f"Negative day count in month {month.month}", "months")
        if check_days:
            check_month_days(month, Decimal(month.public_holidays), month.holidays_taken)
        expected = build_month(
            month.month, month.max_working_days, month.public_holidays, month.holidays_taken, plan.daily_rate_cents
        )
        if expected != month:
            raise PlanValidationError(f"Derived fields of month {month.month} are inconsistent", "months")
    return plan


def _month_at(plan: YearlyPlan, month_index: int) -> MonthlyWorkPlan:
    if not 0 <= month_index < len(plan.months):
        raise PlanValidationError(f"Month index must be between 0 and 11; got {month_index}", "month_index")
    return plan.months[month_index]


def _with_month(plan: YearlyPlan, month_index: int, month: MonthlyWorkPlan) -> YearlyPlan:
    months = plan.months[:month_index] + (month,) + plan.months[month_index + 1 :]
    return replace(plan, months=months)


def _check_daily_rate(daily_rate_cents: int) -> None:
    if daily_rate_cents < 0:
        raise PlanValidationError("Daily rate must not be negative", "daily_rate_cents")


def _check_limit(limit: int) -> None:
    if limit < 0:
        raise PlanValidationError("Working days limit must not be negative", "max_working_days_limit")
