from dataclasses import replace
from decimal import Decimal

import pytest

from microplan.planning import (
    PlanValidationError,
    build_month,
    create_default_plan,
    set_daily_rate,
    set_holidays_taken,
    set_max_working_days_limit,
    set_month_days,
    set_public_holidays,
    validate_plan,
)
from microplan.utils import easter_sunday, public_holidays_on_weekdays, weekdays_in_month


def test_estimated_revenue_is_working_days_times_rate():
    month = build_month(3, 21, 1, 0, 40000)
    assert month.working_days == 20
    assert month.estimated_revenue_cents == 800000


def test_working_days_never_go_negative():
    month = build_month(5, 3, 2, 4, 40000)
    assert month.working_days == 0
    assert month.estimated_revenue_cents == 0


def test_default_plan_2025():
    plan = create_default_plan(2025)
    assert plan.daily_rate_cents == 40000
    assert plan.max_working_days_limit == 214
    assert [m.month for m in plan.months] == list(range(1, 13))
    january, may, december = plan.months[0], plan.months[4], plan.months[11]
    assert (january.max_working_days, january.public_holidays, january.working_days) == (23, 1, 22)
    # 1st May, 8th May and Ascension all fall on Thursdays
    assert (may.max_working_days, may.public_holidays) == (22, 3)
    assert december.estimated_revenue_cents == 22 * 40000
    assert sum(m.public_holidays for m in plan.months) == 10
    assert all(m.holidays_taken == 0 for m in plan.months)


def test_calendar_helpers():
    assert easter_sunday(2025).isoformat() == "2025-04-20"
    assert easter_sunday(2024).isoformat() == "2024-03-31"
    assert weekdays_in_month(2024, 2) == 21
    holidays_2024 = public_holidays_on_weekdays(2024)
    # Easter Monday on 1 April, Whit Monday on 20 May
    assert holidays_2024[4] == 1
    assert holidays_2024[5] == 4


def test_set_daily_rate_reprices_every_month(flat_plan):
    plan = set_daily_rate(flat_plan, 55000)
    assert plan.daily_rate_cents == 55000
    assert [m.working_days for m in plan.months] == [m.working_days for m in flat_plan.months]
    assert all(m.estimated_revenue_cents == 20 * 55000 for m in plan.months)
    assert flat_plan.daily_rate_cents == 40000


def test_set_daily_rate_rejects_negative(flat_plan):
    with pytest.raises(PlanValidationError) as excinfo:
        set_daily_rate(flat_plan, -1)
    assert excinfo.value.field == "daily_rate_cents"


def test_set_holidays_taken_updates_only_that_month(flat_plan):
    plan = set_holidays_taken(flat_plan, 7, 5)
    august = plan.months[7]
    assert august.holidays_taken == 5
    assert august.working_days == 15
    assert august.estimated_revenue_cents == 600000
    assert plan.months[:7] == flat_plan.months[:7]
    assert plan.months[8:] == flat_plan.months[8:]


def test_half_day_holidays(flat_plan):
    plan = set_holidays_taken(flat_plan, 0, Decimal("2.5"))
    assert plan.months[0].working_days == Decimal("17.5")
    assert plan.months[0].estimated_revenue_cents == 700000


def test_holidays_exceeding_available_days_are_rejected(flat_plan):
    with pytest.raises(PlanValidationError) as excinfo:
        set_holidays_taken(flat_plan, 2, 21)
    assert excinfo.value.field == "holidays_taken"
    march = flat_plan.months[2]
    assert march.working_days == 20
    assert march.estimated_revenue_cents == 800000


def test_holidays_and_public_holidays_share_the_available_days(flat_plan):
    plan = set_public_holidays(flat_plan, 4, 3)
    assert plan.months[4].working_days == 17
    with pytest.raises(PlanValidationError):
        set_holidays_taken(plan, 4, 18)
    plan = set_holidays_taken(plan, 4, 17)
    assert plan.months[4].working_days == 0
    with pytest.raises(PlanValidationError):
        set_public_holidays(plan, 4, 4)


@pytest.mark.parametrize("value", [-1, Decimal("-0.5"), Decimal("0.3")])
def test_invalid_holiday_values_are_rejected(flat_plan, value):
    with pytest.raises(PlanValidationError):
        set_holidays_taken(flat_plan, 0, value)


@pytest.mark.parametrize("index", [-1, 12])
def test_month_index_out_of_range(flat_plan, index):
    with pytest.raises(PlanValidationError) as excinfo:
        set_holidays_taken(flat_plan, index, 1)
    assert excinfo.value.field == "month_index"


def test_public_holidays_must_be_whole_days(flat_plan):
    with pytest.raises(PlanValidationError):
        set_public_holidays(flat_plan, 0, Decimal("0.5"))
    with pytest.raises(PlanValidationError):
        set_public_holidays(flat_plan, 0, -1)


def test_set_public_holidays_recomputes_month(flat_plan):
    plan = set_public_holidays(flat_plan, 10, 2)
    assert plan.months[10].public_holidays == 2
    assert plan.months[10].working_days == 18
    assert plan.months[10].estimated_revenue_cents == 720000


def test_edits_compose_and_keep_plan_valid(flat_plan):
    plan = set_holidays_taken(flat_plan, 6, 10)
    plan = set_daily_rate(plan, 50000)
    assert plan.months[6].estimated_revenue_cents == 10 * 50000
    assert validate_plan(plan) is plan


def test_set_max_working_days_limit(flat_plan):
    assert set_max_working_days_limit(flat_plan, 218).max_working_days_limit == 218
    with pytest.raises(PlanValidationError):
        set_max_working_days_limit(flat_plan, -5)


def test_validate_plan_rejects_inconsistent_months(flat_plan):
    with pytest.raises(PlanValidationError):
        validate_plan(replace(flat_plan, months=flat_plan.months[:11]))

    tampered = replace(flat_plan.months[0], estimated_revenue_cents=1)
    with pytest.raises(PlanValidationError):
        validate_plan(replace(flat_plan, months=(tampered,) + flat_plan.months[1:]))

    swapped = (flat_plan.months[1], flat_plan.months[0]) + flat_plan.months[2:]
    with pytest.raises(PlanValidationError):
        validate_plan(replace(flat_plan, months=swapped))


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_day_counts_are_rejected(flat_plan, value):
    with pytest.raises(PlanValidationError) as excinfo:
        set_holidays_taken(flat_plan, 0, Decimal(value))
    assert excinfo.value.field == "holidays_taken"
    with pytest.raises(PlanValidationError) as excinfo:
        set_public_holidays(flat_plan, 0, Decimal(value))
    assert excinfo.value.field == "public_holidays"


def test_set_month_days_checks_the_combined_counts(flat_plan):
    plan = set_holidays_taken(flat_plan, 3, 10)
    # 15 public holidays only fit once the 10 days off are cancelled
    with pytest.raises(PlanValidationError) as excinfo:
        set_public_holidays(plan, 3, 15)
    assert excinfo.value.field == "public_holidays"
    plan = set_month_days(plan, 3, public_holidays=15, holidays_taken=0)
    april = plan.months[3]
    assert (april.public_holidays, april.holidays_taken, april.working_days) == (15, 0, 5)
    assert april.estimated_revenue_cents == 200000


def test_set_month_days_without_changes_keeps_the_month(flat_plan):
    assert set_month_days(flat_plan, 5) == flat_plan


def test_validate_plan_applies_editing_rules(flat_plan):
    overbooked = build_month(2, 20, 0, 25, flat_plan.daily_rate_cents)
    plan = replace(flat_plan, months=(flat_plan.months[0], overbooked) + flat_plan.months[2:])
    with pytest.raises(PlanValidationError) as excinfo:
        validate_plan(plan)
    assert excinfo.value.field == "holidays_taken"
    assert validate_plan(plan, check_days=False) is plan

    fractional = build_month(2, 20, 0, Decimal("0.3"), flat_plan.daily_rate_cents)
    with pytest.raises(PlanValidationError):
        validate_plan(replace(flat_plan, months=(flat_plan.months[0], fractional) + flat_plan.months[2:]))
