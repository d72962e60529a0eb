"""
Tests per SequencingGuard e SummaryService.
"""

import datetime
from decimal import Decimal

from freight_cash.core.timeutils import business_date
from freight_cash.schemas.cash_closure import CashClosureCreate
from freight_cash.services.cash_closure_service import CashClosureService
from freight_cash.services.sequencing_guard import SequencingGuard
from freight_cash.services.summary_service import SummaryService

from conftest import COLLECTOR, OTHER_COLLECTOR, add_payment

DAY_1 = datetime.date(2024, 1, 1)
DAY_2 = datetime.date(2024, 1, 2)
DAY_3 = datetime.date(2024, 1, 3)


# ============================================================
# Tests per il guard
# ============================================================


class TestSequencingGuard:
    async def test_no_payments_allows(self, db):
        decision = await SequencingGuard.check(COLLECTOR, db, today=DAY_1)
        assert decision.allow is True
        assert decision.required_closure_date is None
        assert decision.message is None

    async def test_today_unclosed_allows(self, db):
        """Test i pagamenti di oggi non ancora chiusi non bloccano."""
        await add_payment(db, DAY_2, "10.00")
        decision = await SequencingGuard.check(COLLECTOR, db, today=DAY_2)
        assert decision.allow is True
        assert decision.outstanding_dates == (DAY_2,)

    async def test_earliest_unclosed_day_required(self, db):
        """Test con più giornate aperte va chiusa per prima la più vecchia."""
        await add_payment(db, DAY_2, "10.00")
        await add_payment(db, DAY_1, "10.00")
        decision = await SequencingGuard.check(COLLECTOR, db, today=DAY_3)

        assert decision.allow is False
        assert decision.required_closure_date == DAY_1
        assert decision.outstanding_dates == (DAY_1, DAY_2)
        assert "2024-01-01" in decision.message

    async def test_partial_closure_counts_as_closed_day(self, db, engine):
        """Test una giornata con una chiusura sigillata non è più in sospeso."""
        p1 = await add_payment(db, DAY_1, "10.00", method="card")
        await add_payment(db, DAY_1, "10.00", method="card")
        await CashClosureService.create_closure(
            COLLECTOR, CashClosureCreate(payment_ids=[p1.id]), db, engine
        )

        decision = await SequencingGuard.check(COLLECTOR, db, today=DAY_2)
        assert decision.allow is True

    async def test_isolated_per_collector(self, db):
        await add_payment(db, DAY_1, "10.00", collector_id=OTHER_COLLECTOR)
        assert (await SequencingGuard.check(COLLECTOR, db, today=DAY_2)).allow is True
        assert (await SequencingGuard.check(OTHER_COLLECTOR, db, today=DAY_2)).allow is False

    async def test_to_schema(self, db):
        await add_payment(db, DAY_1, "10.00")
        status = (await SequencingGuard.check(COLLECTOR, db, today=DAY_2)).to_schema()
        body = status.model_dump(by_alias=True, mode="json")
        assert body["allow"] is False
        assert body["requiredClosureDate"] == "2024-01-01"
        assert body["outstandingDates"] == ["2024-01-01"]


class TestBusinessDate:
    def test_winter_london_equals_utc(self):
        moment = datetime.datetime(2024, 1, 1, 23, 30, tzinfo=datetime.timezone.utc)
        assert business_date(moment) == datetime.date(2024, 1, 1)

    def test_summer_london_is_utc_plus_one(self):
        moment = datetime.datetime(2024, 7, 1, 23, 30, tzinfo=datetime.timezone.utc)
        assert business_date(moment) == datetime.date(2024, 7, 2)

    def test_naive_treated_as_utc(self):
        assert business_date(datetime.datetime(2024, 7, 1, 22, 59)) == datetime.date(2024, 7, 1)


# ============================================================
# Tests per il cruscotto
# ============================================================


class TestSummary:
    async def test_summary(self, db, engine):
        p1 = await add_payment(db, DAY_1, "50.00")
        await add_payment(db, DAY_2, "12.50")
        await add_payment(db, DAY_2, "7.50", method="card")
        await CashClosureService.create_closure(
            COLLECTOR,
            CashClosureCreate(payment_ids=[p1.id], cash_breakdown={"50": 1}),
            db,
            engine,
        )

        summary = await SummaryService.get_summary(COLLECTOR, db, today=DAY_2)

        assert summary.payments_today == 2
        assert summary.collected_today == Decimal("20.00")
        assert summary.unclosed_payments == 2
        assert summary.unclosed_amount == Decimal("20.00")
        assert summary.closures_this_month == 1
        assert summary.guard.allow is True

    async def test_empty_summary(self, db):
        summary = await SummaryService.get_summary(COLLECTOR, db, today=DAY_1)
        assert summary.payments_today == 0
        assert summary.collected_today == Decimal("0.00")
        assert summary.closures_this_month == 0
