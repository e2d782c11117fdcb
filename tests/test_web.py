from datetime import datetime

import pytest

from microplan.data_models import DeclarationStage, Period, UrssafReport, VatReport
from microplan.planning import create_default_plan, set_holidays_taken
from microplan.serialization import plan_to_dict


class TestPlanningStore:
    def test_ledger_starts_empty(self, store):
        assert store.get_ledger() == {}

    def test_declaration_stages_move_forward(self, store):
        period = Period(2025, 6)
        store.set_declaration(period, DeclarationStage.DRAFT)
        store.set_declaration(period, DeclarationStage.DECLARED)
        record = store.set_declaration(period, DeclarationStage.CLOSED, datetime(2025, 7, 3, 10, 0))
        assert record.stage is DeclarationStage.CLOSED
        assert record.closed_at == datetime(2025, 7, 3, 10, 0)
        with pytest.raises(ValueError):
            store.set_declaration(period, DeclarationStage.DECLARED)
        assert store.get_ledger()["2025-06"].stage is DeclarationStage.CLOSED

    def test_closing_stamps_closed_at(self, store):
        record = store.set_declaration(Period(2025, 5), DeclarationStage.CLOSED)
        assert record.closed_at is not None

    def test_remove_declaration_reopens_period(self, store):
        period = Period(2025, 6)
        store.set_declaration(period, DeclarationStage.CLOSED)
        assert store.remove_declaration(period) is True
        assert store.remove_declaration(period) is False
        assert store.get_declaration(period) is None

    def test_save_plan_creates_then_updates(self, store):
        plan = create_default_plan(2025)
        assert store.save_plan(plan) is True
        edited = set_holidays_taken(plan, 7, 10)
        assert store.save_plan(edited) is False
        assert store.get_plan(2025) == edited
        assert store.get_plan(2024) is None

    def test_previous_december_revenue(self, store):
        assert store.previous_december_revenue(2026) == 0
        plan = create_default_plan(2025)
        store.save_plan(plan)
        assert store.previous_december_revenue(2026) == plan.months[11].estimated_revenue_cents

    def test_reports(self, store):
        period = Period(2025, 6)
        assert store.get_reports(period) == (None, None)
        vat = VatReport(period, collected_cents=240000, deductible_cents=12000, due_cents=228000)
        urssaf = UrssafReport(period, cash_collected_base_cents=1200000, due_cents=313200)
        store.save_reports(vat, urssaf)
        assert store.get_reports(period) == (vat, urssaf)
        with pytest.raises(ValueError):
            store.save_reports(vat, UrssafReport(Period(2025, 7), 0, 0))


class TestApi:
    def test_periods_without_declarations(self, client):
        response = client.get("/api/periods?date=2025-08-14")
        assert response.status_code == 200
        data = response.get_json()
        assert data["default"] == {"period_key": "2025-07", "label": "Juillet 2025", "reason": "no_declarations"}
        assert len(data["periods"]) == 48
        assert [p["period_key"] for p in data["periods"] if p["is_default"]] == ["2025-07"]

    def test_closing_a_period_moves_the_default(self, client):
        response = client.put("/api/declarations/2025-06", json={"stage": "closed", "closed_at": "2025-07-05T09:00:00Z"})
        assert response.status_code == 200
        assert response.get_json()["stage"] == "closed"

        data = client.get("/api/periods?date=2025-08-15").get_json()
        assert data["default"]["period_key"] == "2025-07"
        assert data["default"]["reason"] == "next_after_closed"
        statuses = {p["period_key"]: p["status"] for p in data["periods"]}
        assert statuses["2025-06"] == "closed"
        assert statuses["2025-08"] == "current"

        assert client.get("/api/declarations").get_json()["2025-06"]["stage"] == "closed"

    def test_declaration_errors(self, client):
        assert client.put("/api/declarations/2025-13", json={"stage": "closed"}).status_code == 404
        response = client.put("/api/declarations/2025-06", json={"stage": "archived"})
        assert response.status_code == 400
        assert response.get_json()["field"] == "stage"

        client.put("/api/declarations/2025-06", json={"stage": "closed"})
        assert client.put("/api/declarations/2025-06", json={"stage": "draft"}).status_code == 400
        assert client.delete("/api/declarations/2025-06").status_code == 204
        assert client.delete("/api/declarations/2025-06").status_code == 404

    def test_declaration_summary(self, client, store):
        period = Period(2025, 6)
        store.set_declaration(period, DeclarationStage.DECLARED)
        store.save_reports(VatReport(period, 240000, 12000, 228000), UrssafReport(period, 1200000, 313200))
        data = client.get("/api/declarations/2025-06/summary").get_json()
        assert data["declaration"]["stage"] == "declared"
        assert data["vat"] == {"collected_cents": 240000, "deductible_cents": 12000, "due_cents": 228000}
        assert data["urssaf"] == {"cash_collected_base_cents": 1200000, "due_cents": 313200}

        empty = client.get("/api/declarations/2025-01/summary").get_json()
        assert empty["declaration"] is None and empty["vat"] is None

    def test_unsaved_plan_is_a_default_plan(self, client):
        data = client.get("/api/plans/2026").get_json()
        assert data["saved"] is False
        assert data["plan"] == plan_to_dict(create_default_plan(2026))

    def test_put_plan_creates_then_updates(self, client):
        body = plan_to_dict(create_default_plan(2025))
        assert client.put("/api/plans/2025", json=body).status_code == 201
        assert client.put("/api/plans/2025", json=body).status_code == 200
        assert client.get("/api/plans/2025").get_json()["saved"] is True

    def test_put_plan_rejects_malformed_body(self, client):
        response = client.put("/api/plans/2025", json={"daily_rate_cents": 40000, "months": []})
        assert response.status_code == 400
        assert client.put("/api/plans/2025", data="not json").status_code == 400

    def test_edit_rate_and_month(self, client):
        response = client.patch("/api/plans/2025/rate", json={"daily_rate_cents": 60000})
        assert response.status_code == 200
        plan = response.get_json()["plan"]
        assert plan["daily_rate_cents"] == 60000

        response = client.patch("/api/plans/2025/months/7", json={"holidays_taken": 10})
        assert response.status_code == 200
        august = response.get_json()["plan"]["months"][7]
        assert august["holidays_taken"] == 10.0
        assert august["working_days"] == 10.0
        assert august["estimated_revenue_cents"] == 600000

    def test_rejected_edit_leaves_stored_plan_unchanged(self, client):
        client.patch("/api/plans/2025/months/1", json={"holidays_taken": 2})
        response = client.patch("/api/plans/2025/months/1", json={"holidays_taken": 40})
        assert response.status_code == 400
        assert response.get_json()["field"] == "holidays_taken"
        february = client.get("/api/plans/2025").get_json()["plan"]["months"][1]
        assert february["holidays_taken"] == 2.0

        assert client.patch("/api/plans/2025/months/12", json={"holidays_taken": 1}).status_code == 400
        assert client.patch("/api/plans/2025/months/0", json={"holidays_taken": "many"}).status_code == 400
        assert client.patch("/api/plans/2025/rate", json={"daily_rate_cents": "400"}).status_code == 400

    def test_projection_uses_previous_december(self, client, store):
        previous = create_default_plan(2025)
        store.save_plan(previous)
        data = client.get("/api/plans/2026/projection").get_json()
        seed = previous.months[11].estimated_revenue_cents
        assert data["saved"] is False
        assert data["previous_december_revenue_cents"] == seed
        assert len(data["months"]) == 12
        assert data["months"][0]["collected_cash_gross_cents"] == seed * 12 // 10
        assert data["months"][1]["vat_due_cents"] == seed // 5
        assert data["summary"]["total_invoiced_revenue"] == sum(m["invoiced_revenue_cents"] for m in data["months"])
        assert "is_over_limit" in data["workload"]


class TestApiValidation:
    @pytest.mark.parametrize("value", ["NaN", "Infinity"])
    def test_non_finite_holidays_are_rejected(self, client, value):
        response = client.patch("/api/plans/2025/months/0", json={"holidays_taken": value})
        assert response.status_code == 400
        assert response.get_json()["field"] == "holidays_taken"
        response = client.patch("/api/plans/2025/months/0", json={"public_holidays": value})
        assert response.status_code == 400
        assert response.get_json()["field"] == "public_holidays"

    def test_put_plan_applies_editing_rules(self, client):
        body = plan_to_dict(create_default_plan(2025))
        body["months"][1]["holidays_taken"] = 40
        response = client.put("/api/plans/2025", json=body)
        assert response.status_code == 400
        assert response.get_json()["field"] == "holidays_taken"

        body["months"][1]["holidays_taken"] = 0.3
        assert client.put("/api/plans/2025", json=body).status_code == 400
        assert client.get("/api/plans/2025").get_json()["saved"] is False

    def test_month_edit_checks_both_fields_together(self, client):
        # August 2025: 21 weekdays, 15 August on a Friday
        client.patch("/api/plans/2025/months/7", json={"holidays_taken": 10})
        response = client.patch("/api/plans/2025/months/7", json={"public_holidays": 15, "holidays_taken": 0})
        assert response.status_code == 200
        august = response.get_json()["plan"]["months"][7]
        assert (august["public_holidays"], august["holidays_taken"], august["working_days"]) == (15, 0.0, 6.0)

    @pytest.mark.parametrize("closed_at", [123, "early July"])
    def test_declaration_with_bad_closing_time(self, client, closed_at):
        response = client.put("/api/declarations/2025-06", json={"stage": "closed", "closed_at": closed_at})
        assert response.status_code == 400
        assert response.get_json()["field"] == "closed_at"
        assert client.get("/api/declarations").get_json() == {}
