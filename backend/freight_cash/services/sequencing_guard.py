"""
Controllo sequenza chiusure cassa
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Un autista deve chiudere la cassa di ogni giornata prima di incassare in
una giornata successiva. Lo stato (ALLOW / LOCKED) non è salvato: viene
ricalcolato dallo storico di pagamenti e chiusure a ogni richiesta.

Una giornata è "in sospeso" se ha pagamenti e nessuna chiusura con stato
closed per quella data. Se la più vecchia giornata in sospeso è precedente
a oggi l'autista è bloccato; le giornate odierne non ancora chiuse sono
tollerate. Il blocco riguarda solo la registrazione di nuovi pagamenti,
mai la creazione delle chiusure.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_cash.core.exceptions import ClosurePendingError, closure_pending_message
from freight_cash.core.timeutils import business_today
from freight_cash.models import CashClosure, Payment
from freight_cash.schemas.cash_closure import ClosureStatus
from freight_cash.schemas.collector import GuardStatusRead

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardDecision:
    """Esito del controllo per un autista in una data."""

    allow: bool
    required_closure_date: Optional[date] = None
    outstanding_dates: tuple[date, ...] = ()

    @property
    def message(self) -> Optional[str]:
        if self.required_closure_date is None:
            return None
        return closure_pending_message(self.required_closure_date)

    def to_schema(self) -> GuardStatusRead:
        return GuardStatusRead(
            allow=self.allow,
            required_closure_date=self.required_closure_date,
            message=self.message,
            outstanding_dates=list(self.outstanding_dates),
        )


class SequencingGuard:
    @staticmethod
    async def outstanding_dates(collector_id: str, db: AsyncSession) -> list[date]:
        """Giornate con pagamenti e senza chiusura sigillata, in ordine crescente."""
        payment_days = await db.execute(
            select(Payment.business_date)
            .where(Payment.collector_id == collector_id)
            .distinct()
        )
        closed_days = await db.execute(
            select(CashClosure.closure_date)
            .where(
                CashClosure.collector_id == collector_id,
                CashClosure.status == ClosureStatus.CLOSED.value,
            )
            .distinct()
        )
        closed = set(closed_days.scalars().all())
        return sorted(d for d in payment_days.scalars().all() if d not in closed)

    @staticmethod
    async def check(
        collector_id: str, db: AsyncSession, today: Optional[date] = None
    ) -> GuardDecision:
        """Restituisce ALLOW oppure LOCKED con la giornata più vecchia da chiudere."""
        today = today or business_today()
        outstanding = tuple(await SequencingGuard.outstanding_dates(collector_id, db))

        if outstanding and outstanding[0] < today:
            return GuardDecision(
                allow=False,
                required_closure_date=outstanding[0],
                outstanding_dates=outstanding,
            )
        return GuardDecision(allow=True, outstanding_dates=outstanding)

    @staticmethod
    async def ensure_allowed(
        collector_id: str, db: AsyncSession, today: Optional[date] = None
    ) -> None:
        """Solleva ClosurePendingError se l'autista è bloccato."""
        decision = await SequencingGuard.check(collector_id, db, today=today)
        if not decision.allow:
            logger.info(
                "Incasso bloccato per autista %s: chiusura del %s mancante",
                collector_id,
                decision.required_closure_date,
            )
            raise ClosurePendingError(decision.required_closure_date)
