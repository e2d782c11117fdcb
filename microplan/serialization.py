"""Conversion between the core dataclasses and JSON-friendly dictionaries.

Used by the command-line interface for plan and ledger files, and by the web
package to persist plans and answer API requests. Parsing functions validate
their input and raise ``ValueError`` (or its subclass
:class:`~microplan.planning.PlanValidationError`) on malformed data.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .data_models import (
    DeclarationRecord,
    DeclarationStage,
    MonthlyTaxProjection,
    Period,
    PeriodInfo,
    YearlyPlan,
)
from .planning import PlanValidationError, build_month, validate_plan

logger = logging.getLogger(__name__)


def _days(value: Decimal) -> float:
    return float(value)


def plan_to_dict(plan: YearlyPlan) -> Dict[str, Any]:
    return {
        "year": plan.year,
        "daily_rate_cents": plan.daily_rate_cents,
        "max_working_days_limit": plan.max_working_days_limit,
        "months": [
            {
                "month": m.month,
                "max_working_days": m.max_working_days,
                "holidays_taken": _days(m.holidays_taken),
                "public_holidays": m.public_holidays,
                "working_days": _days(m.working_days),
                "estimated_revenue_cents": m.estimated_revenue_cents,
            }
            for m in plan.months
        ],
    }


def plan_from_dict(data: Mapping[str, Any], check_days: bool = True) -> YearlyPlan:
    """Build a plan from a dictionary produced by :func:`plan_to_dict`.

    Only the input fields of each month are read; ``working_days`` and
    ``estimated_revenue_cents`` are recomputed from them. ``check_days`` is
    passed on to :func:`~microplan.planning.validate_plan`.
    """
    try:
        year = int(data["year"])
        daily_rate_cents = int(data["daily_rate_cents"])
        limit = int(data.get("max_working_days_limit", 214))
        raw_months = data["months"]
        months = tuple(
            build_month(
                int(m["month"]),
                int(m["max_working_days"]),
                int(m.get("public_holidays", 0)),
                Decimal(str(m.get("holidays_taken", 0))),
                daily_rate_cents,
            )
            for m in raw_months
        )
    except (KeyError, TypeError, ArithmeticError, ValueError) as exc:
        raise PlanValidationError(f"Malformed plan: {exc}", "plan") from exc
    return validate_plan(
        YearlyPlan(year=year, daily_rate_cents=daily_rate_cents, max_working_days_limit=limit, months=months),
        check_days,
    )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; ``PlanValidationError`` on anything else."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise PlanValidationError(f"Timestamp must be an ISO 8601 string; got {value!r}", "closed_at")
    try:
        # fromisoformat only accepts a trailing "Z" from Python 3.11
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise PlanValidationError(f"Invalid timestamp: {value!r}", "closed_at") from exc


def record_from_mapping(raw: Mapping[str, Any]) -> DeclarationRecord:
    """Parse one ledger entry; ``ValueError`` on an unknown stage.

    An unreadable ``closed_at`` is logged and dropped; the stage is kept.
    """
    stage = DeclarationStage(raw.get("stage", raw.get("current_step")))
    if stage is not DeclarationStage.CLOSED:
        return DeclarationRecord(stage=stage)
    raw_closed_at = raw.get("closed_at", raw.get("closedAt"))
    try:
        closed_at = parse_timestamp(raw_closed_at)
    except PlanValidationError as exc:
        logger.warning("Keeping closed entry without its closing time: %s", exc)
        closed_at = None
    return DeclarationRecord(stage=stage, closed_at=closed_at)


def ledger_from_mapping(raw: Mapping[str, Mapping[str, Any]]) -> Dict[str, DeclarationRecord]:
    """Parse a raw ledger, dropping entries that cannot be understood.

    Dropped entries are logged; they are never treated as closed.
    """
    ledger: Dict[str, DeclarationRecord] = {}
    for key, entry in raw.items():
        try:
            period = Period.from_key(key)
            ledger[period.key] = record_from_mapping(entry)
        except (ValueError, AttributeError) as exc:
            logger.warning("Ignoring ledger entry %r: %s", key, exc)
    return ledger


def record_to_dict(record: DeclarationRecord) -> Dict[str, Any]:
    return {
        "stage": record.stage.value,
        "closed_at": record.closed_at.isoformat() if record.closed_at else None,
    }


def ledger_to_mapping(ledger: Mapping[str, DeclarationRecord]) -> Dict[str, Dict[str, Any]]:
    return {key: record_to_dict(record) for key, record in sorted(ledger.items())}


def period_info_to_dict(info: PeriodInfo) -> Dict[str, Any]:
    return {
        "period_key": info.key,
        "year": info.period.year,
        "month": info.period.month,
        "label": info.label,
        "is_default": info.is_default,
        "reason": info.reason,
        "status": info.status,
    }


def projection_to_dicts(months: Iterable[MonthlyTaxProjection]) -> List[Dict[str, Any]]:
    return [
        {
            "month_index": m.month_index,
            "period_key": m.period.key,
            "invoiced_revenue_cents": m.invoiced_revenue_cents,
            "collected_cash_gross_cents": m.collected_cash_gross_cents,
            "commission_cents": m.commission_cents,
            "collected_cash_net_cents": m.collected_cash_net_cents,
            "vat_due_cents": m.vat_due_cents,
            "social_contribution_due_cents": m.social_contribution_due_cents,
            "total_charges_cents": m.total_charges_cents,
            "available_cash_cents": m.available_cash_cents,
        }
        for m in months
    ]


def workload_to_dict(workload: Mapping[str, Any]) -> Dict[str, Any]:
    """Replace Decimal values of a workload summary with floats."""
    return {key: float(value) if isinstance(value, Decimal) else value for key, value in workload.items()}
