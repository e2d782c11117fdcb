"""JSON API exposing the planner over the planning store.

Endpoints cover the declaration period selector, the declaration ledger and
its reports, and yearly plans with their cash-flow projection. The core
functions stay pure; this module loads their inputs from the store and
saves edited plans back.
"""

import logging
import os
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from flask import Flask, abort, current_app, jsonify, request

from microplan.data_models import DeclarationStage, Period
from microplan.engine import compute_projection, compute_workload
from microplan.periods import list_available_periods, resolve_default_period
from microplan.planning import (
    PlanValidationError,
    create_default_plan,
    set_daily_rate,
    set_month_days,
)
from microplan.serialization import (
    ledger_to_mapping,
    parse_timestamp,
    period_info_to_dict,
    plan_from_dict,
    plan_to_dict,
    projection_to_dicts,
    record_to_dict,
    workload_to_dict,
)
from microplan.utils import parse_iso_date
from microplan_web.planning_store import PlanningStore, create_store_from_env

logger = logging.getLogger(__name__)


def _store() -> PlanningStore:
    return current_app.config["PLANNING_STORE"]


def _period_or_404(key: str) -> Period:
    try:
        return Period.from_key(key)
    except ValueError:
        abort(404)


def _reference_date() -> date:
    value = request.args.get("date")
    return parse_iso_date(value) if value else date.today()


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise PlanValidationError("Request body must be a JSON object", "body")
    return body


def _load_plan(year: int):
    """Return the stored plan for a year, or an unsaved default plan."""
    plan = _store().get_plan(year)
    if plan is None:
        return create_default_plan(year), False
    return plan, True


def _day_count(body: dict, field: str) -> Decimal:
    try:
        return Decimal(str(body[field]))
    except (InvalidOperation, TypeError) as exc:
        raise PlanValidationError(f"{field} must be a number", field) from exc


def create_app(store: Optional[PlanningStore] = None) -> Flask:
    app = Flask(__name__)
    app.config["PLANNING_STORE"] = store or create_store_from_env(os.environ.get("MICROPLAN_DATABASE_URL"))

    @app.errorhandler(PlanValidationError)
    def handle_validation_error(exc: PlanValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.path, exc)
        return jsonify({"error": str(exc), "field": exc.field}), 400

    @app.errorhandler(ValueError)
    def handle_value_error(exc: ValueError):
        logger.info("Rejected %s %s: %s", request.method, request.path, exc)
        return jsonify({"error": str(exc), "field": None}), 400

    @app.get("/api/periods")
    def periods():
        reference = _reference_date()
        years_back = request.args.get("years_back", 2, type=int)
        years_forward = request.args.get("years_forward", 1, type=int)
        ledger = _store().get_ledger()
        default, reason = resolve_default_period(ledger, reference)
        infos = list_available_periods(ledger, reference, years_back, years_forward)
        return jsonify(
            {
                "default": {"period_key": default.key, "label": default.label, "reason": reason},
                "periods": [period_info_to_dict(i) for i in infos],
            }
        )

    @app.get("/api/declarations")
    def declarations():
        return jsonify(ledger_to_mapping(_store().get_ledger()))

    @app.put("/api/declarations/<key>")
    def put_declaration(key: str):
        period = _period_or_404(key)
        body = _json_body()
        try:
            stage = DeclarationStage(body.get("stage"))
        except ValueError as exc:
            raise PlanValidationError(f"Unknown stage: {body.get('stage')!r}", "stage") from exc
        record = _store().set_declaration(period, stage, parse_timestamp(body.get("closed_at")))
        return jsonify({"period_key": period.key, **record_to_dict(record)})

    @app.delete("/api/declarations/<key>")
    def delete_declaration(key: str):
        period = _period_or_404(key)
        if not _store().remove_declaration(period):
            abort(404)
        return "", 204

    @app.get("/api/declarations/<key>/summary")
    def declaration_summary(key: str):
        period = _period_or_404(key)
        record = _store().get_declaration(period)
        vat, urssaf = _store().get_reports(period)
        return jsonify(
            {
                "period_key": period.key,
                "label": period.label,
                "declaration": record_to_dict(record) if record else None,
                "vat": (
                    {"collected_cents": vat.collected_cents, "deductible_cents": vat.deductible_cents, "due_cents": vat.due_cents}
                    if vat
                    else None
                ),
                "urssaf": (
                    {"cash_collected_base_cents": urssaf.cash_collected_base_cents, "due_cents": urssaf.due_cents}
                    if urssaf
                    else None
                ),
            }
        )

    @app.get("/api/plans/<int:year>")
    def get_plan(year: int):
        plan, saved = _load_plan(year)
        return jsonify({"saved": saved, "plan": plan_to_dict(plan)})

    @app.put("/api/plans/<int:year>")
    def put_plan(year: int):
        plan = plan_from_dict({**_json_body(), "year": year})
        created = _store().save_plan(plan)
        return jsonify({"saved": True, "plan": plan_to_dict(plan)}), 201 if created else 200

    @app.patch("/api/plans/<int:year>/rate")
    def patch_rate(year: int):
        body = _json_body()
        rate = body.get("daily_rate_cents")
        if not isinstance(rate, int) or isinstance(rate, bool):
            raise PlanValidationError("daily_rate_cents must be an integer", "daily_rate_cents")
        plan, _ = _load_plan(year)
        plan = set_daily_rate(plan, rate)
        _store().save_plan(plan)
        return jsonify({"saved": True, "plan": plan_to_dict(plan)})

    @app.patch("/api/plans/<int:year>/months/<int:index>")
    def patch_month(year: int, index: int):
        body = _json_body()
        plan, _ = _load_plan(year)
        plan = set_month_days(
            plan,
            index,
            public_holidays=_day_count(body, "public_holidays") if "public_holidays" in body else None,
            holidays_taken=_day_count(body, "holidays_taken") if "holidays_taken" in body else None,
        )
        _store().save_plan(plan)
        return jsonify({"saved": True, "plan": plan_to_dict(plan)})

    @app.get("/api/plans/<int:year>/projection")
    def projection(year: int):
        plan, saved = _load_plan(year)
        seed = _store().previous_december_revenue(year)
        months, summary = compute_projection(plan, seed)
        return jsonify(
            {
                "saved": saved,
                "previous_december_revenue_cents": seed,
                "summary": summary,
                "workload": workload_to_dict(compute_workload(plan)),
                "months": projection_to_dicts(months),
            }
        )

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting planner API...")
    create_app().run()
