"""Persistence layer for declarations, yearly plans and monthly reports.

This module keeps the data the planner core reads but never stores itself:
the declaration ledger, one yearly plan per year and the VAT/URSSAF figures
computed per period by the bookkeeping side. It defaults to SQLite for local
use, but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from microplan.data_models import (
    DeclarationRecord,
    DeclarationStage,
    Period,
    UrssafReport,
    VatReport,
    YearlyPlan,
)
from microplan.engine import previous_december_revenue
from microplan.serialization import plan_from_dict, plan_to_dict

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeclarationModel(Base):
    __tablename__ = "declarations"

    period_key = Column(String(7), primary_key=True)
    stage = Column(String(16), nullable=False)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class YearlyPlanModel(Base):
    __tablename__ = "yearly_plans"

    year = Column(Integer, primary_key=True)
    plan_json = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class MonthlyReportModel(Base):
    __tablename__ = "monthly_reports"

    period_key = Column(String(7), primary_key=True)
    vat_collected_cents = Column(Integer, nullable=False, default=0)
    vat_deductible_cents = Column(Integer, nullable=False, default=0)
    vat_due_cents = Column(Integer, nullable=False, default=0)
    urssaf_base_cents = Column(Integer, nullable=False, default=0)
    urssaf_due_cents = Column(Integer, nullable=False, default=0)


class PlanningStore:
    """Database-backed store for the planner's external data."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    # Declarations

    def get_ledger(self) -> Dict[str, DeclarationRecord]:
        with self._session_factory() as session:
            rows = session.execute(select(DeclarationModel)).scalars()
            ledger = {}
            for row in rows:
                try:
                    ledger[row.period_key] = self._to_record(row)
                except ValueError:
                    logger.warning("Ignoring declaration %s with unknown stage %r", row.period_key, row.stage)
            return ledger

    def get_declaration(self, period: Period) -> Optional[DeclarationRecord]:
        with self._session_factory() as session:
            row = session.get(DeclarationModel, period.key)
            return self._to_record(row) if row else None

    def set_declaration(
        self, period: Period, stage: DeclarationStage, closed_at: Optional[datetime] = None
    ) -> DeclarationRecord:
        """Create or advance the declaration of a period.

        Stages only move forward (draft, declared, closed); use
        :meth:`remove_declaration` to reopen a period.
        """
        with self._session_factory() as session:
            row = session.get(DeclarationModel, period.key)
            if row is not None and DeclarationStage(row.stage).rank > stage.rank:
                raise ValueError(f"Declaration {period.key} cannot go back from {row.stage} to {stage.value}")
            if row is None:
                row = DeclarationModel(period_key=period.key)
                session.add(row)
            row.stage = stage.value
            if stage is DeclarationStage.CLOSED:
                row.closed_at = closed_at or row.closed_at or _utcnow()
            else:
                row.closed_at = None
            session.commit()
            logger.info("Declaration %s set to %s", period.key, stage.value)
            return self._to_record(row)

    def remove_declaration(self, period: Period) -> bool:
        with self._session_factory() as session:
            row = session.get(DeclarationModel, period.key)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            logger.info("Declaration %s removed", period.key)
            return True

    # Plans

    def get_plan(self, year: int) -> Optional[YearlyPlan]:
        with self._session_factory() as session:
            row = session.get(YearlyPlanModel, year)
            return plan_from_dict(json.loads(row.plan_json), check_days=False) if row else None

    def save_plan(self, plan: YearlyPlan) -> bool:
        """Store a plan, creating it when the year has none. Returns True on create."""
        payload = json.dumps(plan_to_dict(plan))
        with self._session_factory() as session:
            row = session.get(YearlyPlanModel, plan.year)
            created = row is None
            if created:
                session.add(YearlyPlanModel(year=plan.year, plan_json=payload))
            else:
                row.plan_json = payload
            session.commit()
        logger.info("Plan %s %s", plan.year, "created" if created else "updated")
        return created

    def previous_december_revenue(self, year: int) -> int:
        return previous_december_revenue(self.get_plan(year - 1))

    # Reports

    def save_reports(self, vat: VatReport, urssaf: UrssafReport) -> None:
        if vat.period != urssaf.period:
            raise ValueError("VAT and URSSAF reports must cover the same period")
        with self._session_factory() as session:
            row = session.get(MonthlyReportModel, vat.period.key)
            if row is None:
                row = MonthlyReportModel(period_key=vat.period.key)
                session.add(row)
            row.vat_collected_cents = vat.collected_cents
            row.vat_deductible_cents = vat.deductible_cents
            row.vat_due_cents = vat.due_cents
            row.urssaf_base_cents = urssaf.cash_collected_base_cents
            row.urssaf_due_cents = urssaf.due_cents
            session.commit()

    def get_reports(self, period: Period) -> Tuple[Optional[VatReport], Optional[UrssafReport]]:
        with self._session_factory() as session:
            row = session.get(MonthlyReportModel, period.key)
            if row is None:
                return None, None
            vat = VatReport(
                period=period,
                collected_cents=row.vat_collected_cents,
                deductible_cents=row.vat_deductible_cents,
                due_cents=row.vat_due_cents,
            )
            urssaf = UrssafReport(
                period=period,
                cash_collected_base_cents=row.urssaf_base_cents,
                due_cents=row.urssaf_due_cents,
            )
            return vat, urssaf

    @staticmethod
    def _to_record(row: DeclarationModel) -> DeclarationRecord:
        stage = DeclarationStage(row.stage)
        return DeclarationRecord(stage=stage, closed_at=row.closed_at if stage is DeclarationStage.CLOSED else None)


def create_store_from_env(url: str | None) -> PlanningStore:
    return PlanningStore(url or "sqlite:///microplan.sqlite3")
