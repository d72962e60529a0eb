"""
Cruscotto incassi dell'autista
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_cash.core.timeutils import business_today
from freight_cash.models import CashClosure, Payment
from freight_cash.schemas.cash_closure import ClosureStatus
from freight_cash.schemas.collector import CollectorSummary
from freight_cash.services.payment_service import PaymentService
from freight_cash.services.sequencing_guard import SequencingGuard


def _month_bounds(day: date) -> tuple[date, date]:
    start = day.replace(day=1)
    if start.month == 12:
        return start, start.replace(year=start.year + 1, month=1)
    return start, start.replace(month=start.month + 1)


class SummaryService:
    @staticmethod
    async def get_summary(
        collector_id: str, db: AsyncSession, today: Optional[date] = None
    ) -> CollectorSummary:
        """Incassato oggi, pagamenti ancora da chiudere, chiusure del mese e stato del guard."""
        today = today or business_today()

        row = (
            await db.execute(
                select(
                    func.count(Payment.id),
                    func.coalesce(func.sum(Payment.amount), 0),
                ).where(
                    Payment.collector_id == collector_id,
                    Payment.business_date == today,
                )
            )
        ).one()
        payments_today, collected_today = row

        unclosed = await PaymentService.unclosed_payments(db, collector_id)
        unclosed_amount = sum((Decimal(p.amount) for p in unclosed), Decimal("0.00"))

        month_start, next_month = _month_bounds(today)
        closures_this_month = (
            await db.execute(
                select(func.count(CashClosure.id)).where(
                    CashClosure.collector_id == collector_id,
                    CashClosure.status == ClosureStatus.CLOSED.value,
                    CashClosure.closure_date >= month_start,
                    CashClosure.closure_date < next_month,
                )
            )
        ).scalar_one()

        guard = await SequencingGuard.check(collector_id, db, today=today)

        return CollectorSummary(
            collector_id=collector_id,
            today=today,
            payments_today=payments_today,
            collected_today=Decimal(str(collected_today)).quantize(Decimal("0.01")),
            unclosed_payments=len(unclosed),
            unclosed_amount=unclosed_amount.quantize(Decimal("0.01")),
            closures_this_month=closures_this_month,
            guard=guard.to_schema(),
        )
