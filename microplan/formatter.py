"""Output helpers for the planner.

This module renders projections, workload summaries and period lists in a
tabular text format for the terminal. Amounts are converted from cents to
euros here and nowhere else.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Mapping

from .data_models import MonthlyTaxProjection, PeriodInfo
from .utils import MONTH_NAMES


def format_cents(cents: int, symbol: bool = True) -> str:
    """Format an amount of cents the French way, e.g. ``"11 400,00 €"``."""
    sign = "-" if cents < 0 else ""
    euros, remainder = divmod(abs(cents), 100)
    grouped = f"{euros:,}".replace(",", " ")
    text = f"{sign}{grouped},{remainder:02d}"
    return f"{text} €" if symbol else text


def format_days(days: Decimal) -> str:
    return f"{days.normalize():f}" if days == days.to_integral_value() else f"{days:f}"


def print_projection(months: Iterable[MonthlyTaxProjection], summary: Mapping[str, int]) -> None:
    """Print the monthly cash-flow projection followed by the yearly totals."""
    headers = ["Mois", "CA HT", "Encaissé", "Commission", "TVA", "URSSAF", "Charges", "Disponible"]
    print("\t".join(headers))
    for entry in months:
        row = [
            MONTH_NAMES[entry.period.month - 1][:3],
            format_cents(entry.invoiced_revenue_cents, symbol=False),
            format_cents(entry.collected_cash_net_cents, symbol=False),
            format_cents(entry.commission_cents, symbol=False),
            format_cents(entry.vat_due_cents, symbol=False),
            format_cents(entry.social_contribution_due_cents, symbol=False),
            format_cents(entry.total_charges_cents, symbol=False),
            format_cents(entry.available_cash_cents, symbol=False),
        ]
        print("\t".join(row))
    print("-" * 72)
    print(f"CA facturé         : {format_cents(summary['total_invoiced_revenue'])}")
    print(f"Encaissé net       : {format_cents(summary['total_collected_cash_net'])}")
    print(f"Commission         : {format_cents(summary['total_commission'])}")
    print(f"TVA due            : {format_cents(summary['total_vat_due'])}")
    print(f"URSSAF due         : {format_cents(summary['total_social_contribution_due'])}")
    print(f"Trésorerie dispo.  : {format_cents(summary['total_available_cash'])}")
    print("-" * 72)


def print_workload(workload: Dict[str, object], limit: int) -> None:
    """Print the working days summary against the yearly ceiling."""
    total_days = workload["total_working_days"]
    remaining = workload["remaining_days"]
    print("Planification")
    print("-" * 72)
    print(f"Jours travaillés   : {format_days(total_days)} / {limit} ({workload['working_days_ratio']:.1f}%)")
    if workload["is_over_limit"]:
        print(f"Dépassement        : {format_days(abs(remaining))} j")
    else:
        print(f"Marge restante     : {format_days(remaining)} j")
    print(f"Jours disponibles  : {workload['total_max_days']}")
    print(f"Congés pris        : {format_days(workload['total_holidays_taken'])}")
    print(f"Jours fériés       : {workload['total_public_holidays']}")
    print(f"CA estimé          : {format_cents(workload['total_estimated_revenue_cents'])}")
    print(f"TJM moyen          : {format_cents(workload['average_daily_rate_cents'])}")
    print("-" * 72)


def print_periods(periods: Iterable[PeriodInfo]) -> None:
    """Print the selectable periods, marking the default one."""
    print("\t".join(["Période", "Libellé", "Statut", "Défaut"]))
    for info in periods:
        print("\t".join([info.key, info.label, info.status, "*" if info.is_default else ""]))
