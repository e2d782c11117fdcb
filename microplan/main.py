"""Command-line interface for the planner.

This module uses the ``click`` library to implement a multi-command
interface. Users can find the period they should declare next, list the
selectable periods, create a default yearly plan and project a plan into
monthly cash flow and tax liabilities. Ledgers and plans are read from JSON
files; results can be printed or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import DEFAULT_RATES, MonthlyTaxProjection, TaxRates, YearlyPlan
from .engine import compute_projection, compute_workload, previous_december_revenue
from .formatter import print_periods, print_projection, print_workload
from .periods import list_available_periods, resolve_default_period
from .planning import (
    DEFAULT_DAILY_RATE_CENTS,
    DEFAULT_MAX_WORKING_DAYS_LIMIT,
    create_default_plan,
    set_daily_rate,
    set_holidays_taken,
)
from .serialization import (
    ledger_from_mapping,
    period_info_to_dict,
    plan_from_dict,
    plan_to_dict,
    projection_to_dicts,
    workload_to_dict,
)
from .utils import cents_to_euros, decimal_from_str, euros_to_cents, parse_iso_date

logger = logging.getLogger(__name__)


def parse_amount(value: str) -> int:
    """Parse an amount in euros and return cents.

    Accepts plain numbers ("400", "400,50") and shorthand with a ``k``
    suffix (e.g. "8k" meaning 8 000).
    """
    value = value.strip().lower()
    factor = 1
    if value.endswith("k"):
        factor = 1_000
        value = value[:-1]
    try:
        return euros_to_cents(decimal_from_str(value) * factor)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_holiday_strings(values: Tuple[str, ...]) -> List[Tuple[int, Any]]:
    """Parse ``MM:DAYS`` entries into ``(month_index, days)`` pairs."""
    holidays = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Holiday must be in MM:DAYS format; got {item}")
        month_str, days_str = parts
        try:
            month = int(month_str)
            days = decimal_from_str(days_str)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        if not 1 <= month <= 12:
            raise click.BadParameter(f"Month must be between 1 and 12; got {month}")
        holidays.append((month - 1, days))
    return holidays


def parse_reference_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def load_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"{path} is not valid JSON: {exc}")


def load_ledger(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    return ledger_from_mapping(load_json(Path(path)))


def load_plan(path: str) -> YearlyPlan:
    try:
        return plan_from_dict(load_json(Path(path)))
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def build_plan_from_options(
    plan_path: Optional[str],
    year: Optional[int],
    tjm: Optional[str],
    holiday: Tuple[str, ...],
    limit: int = DEFAULT_MAX_WORKING_DAYS_LIMIT,
) -> YearlyPlan:
    if plan_path:
        plan = load_plan(plan_path)
    elif year is not None:
        plan = create_default_plan(year, max_working_days_limit=limit)
    else:
        raise click.UsageError("Either --plan or --year is required")
    try:
        if tjm:
            plan = set_daily_rate(plan, parse_amount(tjm))
        for month_index, days in parse_holiday_strings(holiday):
            plan = set_holidays_taken(plan, month_index, days)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return plan


def export_to_json(
    path: Path, months: List[MonthlyTaxProjection], summary: Dict[str, int], workload: Dict[str, object]
) -> None:
    """Export projection, totals and workload to a JSON file."""
    data = {"summary": summary, "workload": workload_to_dict(workload), "months": projection_to_dicts(months)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, months: List[MonthlyTaxProjection]) -> None:
    """Export the monthly projection to a CSV file, amounts in euros."""
    header = [
        "Period",
        "Invoiced_Revenue",
        "Collected_Gross",
        "Commission",
        "Collected_Net",
        "VAT_Due",
        "Social_Contribution_Due",
        "Total_Charges",
        "Available_Cash",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for m in months:
            writer.writerow(
                [
                    m.period.key,
                    f"{cents_to_euros(m.invoiced_revenue_cents):.2f}",
                    f"{cents_to_euros(m.collected_cash_gross_cents):.2f}",
                    f"{cents_to_euros(m.commission_cents):.2f}",
                    f"{cents_to_euros(m.collected_cash_net_cents):.2f}",
                    f"{cents_to_euros(m.vat_due_cents):.2f}",
                    f"{cents_to_euros(m.social_contribution_due_cents):.2f}",
                    f"{cents_to_euros(m.total_charges_cents):.2f}",
                    f"{cents_to_euros(m.available_cash_cents):.2f}",
                ]
            )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Declaration periods and cash-flow planning for micro-entrepreneurs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--ledger", "ledger_path", type=click.Path(exists=True, dir_okay=False), help="Declaration ledger (JSON)")
@click.option("--date", "reference", help="Reference date (YYYY-MM-DD), defaults to today")
def period(ledger_path: Optional[str], reference: Optional[str]) -> None:
    """Print the period to declare by default."""
    ledger = load_ledger(ledger_path)
    default, reason = resolve_default_period(ledger, parse_reference_date(reference))
    click.echo(f"{default.key}\t{default.label}\t{reason}")


@cli.command()
@click.option("--ledger", "ledger_path", type=click.Path(exists=True, dir_okay=False), help="Declaration ledger (JSON)")
@click.option("--date", "reference", help="Reference date (YYYY-MM-DD), defaults to today")
@click.option("--years-back", type=click.IntRange(min=0), default=2, show_default=True)
@click.option("--years-forward", type=click.IntRange(min=0), default=1, show_default=True)
@click.option("--output", "output", type=str, help="Output file path (.json)")
def periods(
    ledger_path: Optional[str],
    reference: Optional[str],
    years_back: int,
    years_forward: int,
    output: Optional[str],
) -> None:
    """List the selectable periods, most recent first."""
    ledger = load_ledger(ledger_path)
    infos = list_available_periods(ledger, parse_reference_date(reference), years_back, years_forward)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Period export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"periods": [period_info_to_dict(i) for i in infos]}, f, indent=2)
        click.echo(f"Periods exported to {path}")
    else:
        print_periods(infos)


@cli.command("init-plan")
@click.option("--year", "-y", "year", required=True, type=int, help="Plan year")
@click.option("--tjm", "tjm", help="Daily rate in euros", default=str(DEFAULT_DAILY_RATE_CENTS // 100), show_default=True)
@click.option("--limit", "limit", type=click.IntRange(min=0), default=DEFAULT_MAX_WORKING_DAYS_LIMIT, show_default=True, help="Yearly working days ceiling")
@click.option("--output", "output", required=True, type=str, help="Output file path (.json)")
def init_plan(year: int, tjm: str, limit: int, output: str) -> None:
    """Write a default plan (weekdays less public holidays) to a JSON file."""
    plan = create_default_plan(year, parse_amount(tjm), limit)
    path = Path(output)
    with path.open("w", encoding="utf-8") as f:
        json.dump(plan_to_dict(plan), f, indent=2)
    click.echo(f"Plan for {year} written to {path}")


@cli.command()
@click.option("--plan", "plan_path", type=click.Path(exists=True, dir_okay=False), help="Yearly plan (JSON)")
@click.option("--year", "-y", "year", type=int, help="Project a default plan for this year")
@click.option("--tjm", "tjm", help="Override the daily rate (euros)")
@click.option("--holiday", "holiday", multiple=True, help="Holidays taken in MM:DAYS format")
@click.option("--limit", "limit", type=click.IntRange(min=0), default=DEFAULT_MAX_WORKING_DAYS_LIMIT, show_default=True, help="Yearly working days ceiling for default plans")
@click.option("--previous-december", "previous_december", help="Revenue invoiced in December of the previous year (euros)")
@click.option("--previous-plan", "previous_plan_path", type=click.Path(exists=True, dir_okay=False), help="Previous year's plan (JSON)")
@click.option("--vat-rate", type=float, default=float(DEFAULT_RATES.vat_rate), show_default=True)
@click.option("--social-rate", type=float, default=float(DEFAULT_RATES.social_rate), show_default=True)
@click.option("--commission-rate", type=float, default=float(DEFAULT_RATES.commission_rate), show_default=True)
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def project(
    plan_path: Optional[str],
    year: Optional[int],
    tjm: Optional[str],
    holiday: Tuple[str, ...],
    limit: int,
    previous_december: Optional[str],
    previous_plan_path: Optional[str],
    vat_rate: float,
    social_rate: float,
    commission_rate: float,
    output: Optional[str],
) -> None:
    """Project a yearly plan into monthly cash flow, VAT and URSSAF."""
    plan = build_plan_from_options(plan_path, year, tjm, holiday, limit)
    if previous_december and previous_plan_path:
        raise click.UsageError("Use either --previous-december or --previous-plan, not both")
    if previous_december:
        seed = parse_amount(previous_december)
    else:
        seed = previous_december_revenue(load_plan(previous_plan_path) if previous_plan_path else None)
    logger.debug("Projecting %s from a previous December of %s cents", plan.year, seed)
    rates = TaxRates(
        vat_rate=decimal_from_str(str(vat_rate)),
        social_rate=decimal_from_str(str(social_rate)),
        commission_rate=decimal_from_str(str(commission_rate)),
    )
    months, summary = compute_projection(plan, seed, rates)
    workload = compute_workload(plan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, months, summary, workload)
            click.echo(f"Projection exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, months)
            click.echo(f"Projection exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        print_workload(workload, plan.max_working_days_limit)
        print_projection(months, summary)


if __name__ == "__main__":
    cli()
