"""Cash-basis tax projection engine.

This module turns a yearly work plan into a month-by-month cash-flow
projection. An invoice issued in month M is paid in month M+1 through the
marketplace, which keeps a commission; VAT and URSSAF contributions are
computed on cash collected, so they trail invoicing by two months.

Amounts are integer cents. Each rate-derived amount is computed with
``Decimal`` and rounded once, half up, to the cent; the remaining fields are
exact integer differences of already-rounded amounts, so repeated evaluation
is bit-identical.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .data_models import DEFAULT_RATES, MonthlyTaxProjection, Period, TaxRates, YearlyPlan
from .utils import round_half_up

logger = logging.getLogger(__name__)


def previous_december_revenue(previous_plan: Optional[YearlyPlan]) -> int:
    """Return December's estimated revenue of the prior year's plan.

    Without a prior plan the figure is taken as zero, which understates the
    first two months of the projection.
    """
    if previous_plan is None or not previous_plan.months:
        return 0
    return previous_plan.months[-1].estimated_revenue_cents


def _project_month(
    month_index: int,
    period: Period,
    invoiced: int,
    one_back: int,
    two_back: int,
    rates: TaxRates,
) -> MonthlyTaxProjection:
    vat_factor = 1 + rates.vat_rate
    gross = round_half_up(Decimal(one_back) * vat_factor)
    commission = round_half_up(Decimal(one_back) * rates.commission_rate * vat_factor)
    collected_net = gross - commission
    vat_due = round_half_up(Decimal(two_back) * rates.vat_rate)
    social_due = round_half_up(Decimal(two_back) * rates.social_rate)
    total_charges = vat_due + social_due
    return MonthlyTaxProjection(
        month_index=month_index,
        period=period,
        invoiced_revenue_cents=invoiced,
        collected_cash_gross_cents=gross,
        commission_cents=commission,
        collected_cash_net_cents=collected_net,
        vat_due_cents=vat_due,
        social_contribution_due_cents=social_due,
        total_charges_cents=total_charges,
        available_cash_cents=collected_net - total_charges,
    )


def compute_projection(
    plan: YearlyPlan,
    previous_december_revenue_cents: int = 0,
    rates: TaxRates = DEFAULT_RATES,
) -> Tuple[List[MonthlyTaxProjection], Dict[str, int]]:
    """Compute the monthly cash-flow projection and yearly totals for a plan.

    Parameters
    ----------
    plan: YearlyPlan
        The plan to project. It is not modified.
    previous_december_revenue_cents: int
        Revenue invoiced in December of the previous year. It is collected in
        January and taxed in February.
    rates: TaxRates
        VAT, social contribution and commission rates.

    Returns
    -------
    months: List[MonthlyTaxProjection]
        One entry per month of the plan, January first.
    summary: Dict[str, int]
        The yearly total of each series, in cents.
    """
    # sliding window over invoiced revenue: one month back, two months back
    one_back = previous_december_revenue_cents
    two_back = 0

    months: List[MonthlyTaxProjection] = []
    for index, month in enumerate(plan.months):
        invoiced = month.estimated_revenue_cents
        months.append(_project_month(index, Period(plan.year, month.month), invoiced, one_back, two_back, rates))
        two_back, one_back = one_back, invoiced

    summary = {
        "total_invoiced_revenue": sum(m.invoiced_revenue_cents for m in months),
        "total_collected_cash_gross": sum(m.collected_cash_gross_cents for m in months),
        "total_commission": sum(m.commission_cents for m in months),
        "total_collected_cash_net": sum(m.collected_cash_net_cents for m in months),
        "total_vat_due": sum(m.vat_due_cents for m in months),
        "total_social_contribution_due": sum(m.social_contribution_due_cents for m in months),
        "total_charges": sum(m.total_charges_cents for m in months),
        "total_available_cash": sum(m.available_cash_cents for m in months),
    }
    logger.debug("Projected %s: %s", plan.year, summary)
    return months, summary


def compute_workload(plan: YearlyPlan) -> Dict[str, object]:
    """Summarise working days and revenue against the yearly days ceiling.

    ``remaining_days`` is negative when the plan goes over
    ``max_working_days_limit``; ``working_days_ratio`` is a percentage.
    """
    total_working_days = sum((m.working_days for m in plan.months), Decimal(0))
    total_revenue = sum(m.estimated_revenue_cents for m in plan.months)
    limit = plan.max_working_days_limit

    average_daily_rate = round_half_up(Decimal(total_revenue) / total_working_days) if total_working_days else 0
    ratio = total_working_days / limit * 100 if limit else Decimal(0)

    return {
        "total_working_days": total_working_days,
        "total_estimated_revenue_cents": total_revenue,
        "total_holidays_taken": sum((m.holidays_taken for m in plan.months), Decimal(0)),
        "total_public_holidays": sum(m.public_holidays for m in plan.months),
        "total_max_days": sum(m.max_working_days for m in plan.months),
        "average_daily_rate_cents": average_daily_rate,
        "working_days_ratio": ratio,
        "is_over_limit": total_working_days > limit,
        "remaining_days": limit - total_working_days,
    }
