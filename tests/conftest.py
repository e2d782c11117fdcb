"""Shared fixtures for the planner test suite."""

from decimal import Decimal

import pytest

from microplan.data_models import YearlyPlan
from microplan.planning import build_month
from microplan_web.app import create_app
from microplan_web.planning_store import PlanningStore


def make_plan(days_per_month, year=2025, daily_rate_cents=40000, limit=214):
    """Build a plan whose months have the given working days and no holidays."""
    months = tuple(
        build_month(index + 1, days, 0, Decimal(0), daily_rate_cents) for index, days in enumerate(days_per_month)
    )
    return YearlyPlan(year=year, daily_rate_cents=daily_rate_cents, max_working_days_limit=limit, months=months)


@pytest.fixture
def flat_plan():
    """Twelve months of 20 working days at 400 EUR a day."""
    return make_plan([20] * 12)


@pytest.fixture
def store():
    return PlanningStore("sqlite://")


@pytest.fixture
def client(store):
    app = create_app(store)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def plan_factory():
    return make_plan
