"""
Service Layer per le Chiusure Cassa
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Raggruppa un sottoinsieme dei pagamenti aperti di un autista in una
chiusura sigillata: totali per metodo, conteggio contanti per taglio e
differenza tra contanti contati e attesi.

La chiusura è tutto-o-niente: o ogni pagamento selezionato viene assegnato
alla nuova chiusura, o nessuno lo è e la chiusura non esiste.
"""

import datetime
import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from freight_cash.core.exceptions import (
    BusinessValidationError,
    MissingCashCountError,
    NotFoundError,
    PaymentAlreadyClosedError,
    PaymentNotFoundError,
)
from freight_cash.models import CashClosure, CashClosurePayment, Payment
from freight_cash.models.cash_closure import PAYMENT_CLAIM_INDEX
from freight_cash.schemas.cash_closure import (
    CashClosureCreate,
    CashClosurePreview,
    CashClosureTotals,
    ClosureStatus,
)
from freight_cash.services.denomination_service import (
    DenominationEngine,
    get_denomination_engine,
)
from freight_cash.services.payment_service import PaymentService

# Logger per questo modulo
logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Colonna di totale per metodo; assegni e altri metodi confluiscono in total_other
METHOD_TOTAL_FIELDS = {
    "cash": "total_cash",
    "card": "total_card",
    "transfer": "total_transfer",
}


class CashClosureService:
    @staticmethod
    async def resolve_payments(
        collector_id: str, payment_ids: Sequence[uuid.UUID], db: AsyncSession
    ) -> list[Payment]:
        """
        Risolve la selezione contro i pagamenti aperti dell'autista.

        Raises:
            PaymentAlreadyClosedError: pagamento dell'autista già incluso in una chiusura
            PaymentNotFoundError: pagamento inesistente o di un altro autista
        """
        if not payment_ids:
            raise BusinessValidationError(
                "Seleziona almeno un pagamento",
                error_code="EMPTY_SELECTION",
            )

        available = {
            p.id: p for p in await PaymentService.unclosed_payments(db, collector_id)
        }
        missing = [pid for pid in payment_ids if pid not in available]
        if missing:
            result = await db.execute(
                select(Payment.id).where(
                    Payment.id.in_(missing),
                    Payment.collector_id == collector_id,
                )
            )
            already_closed = set(result.scalars().all())
            if already_closed:
                raise PaymentAlreadyClosedError(already_closed)
            raise PaymentNotFoundError(missing)

        return [available[pid] for pid in payment_ids]

    @staticmethod
    def compute_totals(
        payments: Sequence[Payment],
        cash_breakdown: Optional[Mapping[str, int]],
        engine: DenominationEngine,
    ) -> CashClosureTotals:
        """Totali per metodo e riconciliazione contanti, ricalcolati dai pagamenti."""
        sums = {
            "total_cash": Decimal("0.00"),
            "total_card": Decimal("0.00"),
            "total_transfer": Decimal("0.00"),
            "total_other": Decimal("0.00"),
        }
        for p in payments:
            field = METHOD_TOTAL_FIELDS.get(p.payment_method, "total_other")
            sums[field] += Decimal(p.amount)

        sums = {k: v.quantize(CENT) for k, v in sums.items()}
        grand_total = sum(sums.values(), Decimal("0.00")).quantize(CENT)

        cash_expected_total = sums["total_cash"]
        cash_counted_total = engine.total(cash_breakdown).quantize(CENT)

        return CashClosureTotals(
            **sums,
            grand_total=grand_total,
            payments_count=len(payments),
            cash_expected_total=cash_expected_total,
            cash_counted_total=cash_counted_total,
            cash_difference=(cash_counted_total - cash_expected_total).quantize(CENT),
        )

    @staticmethod
    def resolve_closure_date(
        payments: Sequence[Payment], requested: Optional[date]
    ) -> date:
        """La chiusura rappresenta l'unica giornata contabile dei pagamenti selezionati."""
        days = sorted({p.business_date for p in payments})
        if len(days) > 1:
            raise BusinessValidationError(
                "I pagamenti selezionati appartengono a giornate diverse: "
                "crea una chiusura per ciascuna giornata",
                error_code="MIXED_CLOSURE_DATES",
                extra={"dates": [d.isoformat() for d in days]},
            )
        closure_date = days[0]
        if requested is not None and requested != closure_date:
            raise BusinessValidationError(
                f"I pagamenti selezionati sono del {closure_date.isoformat()}, "
                f"non del {requested.isoformat()}",
                error_code="CLOSURE_DATE_MISMATCH",
                extra={"closureDate": closure_date.isoformat()},
            )
        return closure_date

    @staticmethod
    async def preview(
        collector_id: str,
        data: CashClosureCreate,
        db: AsyncSession,
        engine: Optional[DenominationEngine] = None,
    ) -> CashClosurePreview:
        """Anteprima dei totali della chiusura (non sigilla nulla)."""
        engine = engine or get_denomination_engine()
        payments = await CashClosureService.resolve_payments(collector_id, data.payment_ids, db)
        closure_date = CashClosureService.resolve_closure_date(payments, data.closure_date)
        breakdown = engine.normalize(data.cash_breakdown)
        totals = CashClosureService.compute_totals(payments, breakdown, engine)

        return CashClosurePreview(
            **totals.model_dump(exclude={"is_balanced"}),
            collector_id=collector_id,
            closure_date=closure_date,
            payment_ids=[p.id for p in payments],
            cash_breakdown=breakdown,
            requires_cash_count=(
                totals.cash_expected_total > 0 and not engine.has_count(breakdown)
            ),
        )

    @staticmethod
    async def create_closure(
        collector_id: str,
        data: CashClosureCreate,
        db: AsyncSession,
        engine: Optional[DenominationEngine] = None,
    ) -> CashClosure:
        """
        Crea e sigilla una chiusura cassa.

        Steps:
        1. Risolve i pagamenti contro quelli aperti dell'autista (tutto o niente)
        2. Totali per metodo, contanti attesi = totale contanti dei pagamenti
        3. Contanti contati dal conteggio per taglio
        4. Con contanti attesi > 0 serve un conteggio non nullo
        5. Differenza contati - attesi (registrata, mai bloccante)
        6. Inserisce la chiusura e assegna ogni pagamento con un update
           condizionale; un'assegnazione fallita annulla tutto

        Raises:
            PaymentAlreadyClosedError, PaymentNotFoundError,
            UnknownDenominationError, InvalidQuantityError,
            MissingCashCountError, BusinessValidationError
        """
        engine = engine or get_denomination_engine()
        payments = await CashClosureService.resolve_payments(collector_id, data.payment_ids, db)
        closure_date = CashClosureService.resolve_closure_date(payments, data.closure_date)
        breakdown = engine.normalize(data.cash_breakdown)
        totals = CashClosureService.compute_totals(payments, breakdown, engine)

        if totals.cash_expected_total > 0 and not engine.has_count(breakdown):
            if not data.confirm_zero_count:
                raise MissingCashCountError(totals.cash_expected_total)
            logger.warning(
                "Autista %s: conteggio contanti a zero confermato su %s attesi",
                collector_id,
                totals.cash_expected_total,
            )

        CashClosureService._log_ignored_client_totals(collector_id, data, totals)

        payment_ids = [p.id for p in payments]
        closure = CashClosure(
            collector_id=collector_id,
            closure_date=closure_date,
            status=ClosureStatus.CLOSED.value,
            notes=data.notes,
            total_cash=totals.total_cash,
            total_card=totals.total_card,
            total_transfer=totals.total_transfer,
            total_other=totals.total_other,
            grand_total=totals.grand_total,
            payments_count=totals.payments_count,
            cash_breakdown=breakdown,
            cash_expected_total=totals.cash_expected_total,
            cash_counted_total=totals.cash_counted_total,
            cash_difference=totals.cash_difference,
            payment_links=[CashClosurePayment(payment_id=pid) for pid in payment_ids],
        )

        try:
            db.add(closure)
            await db.flush()
            await CashClosureService._claim_payments(closure.id, payment_ids, db)
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if CashClosureService._is_claim_conflict(e):
                # Un'altra chiusura ha preso uno dei pagamenti per prima
                raise PaymentAlreadyClosedError(payment_ids) from e
            raise
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Chiusura cassa %s sigillata: autista %s, giornata %s, %d pagamenti, totale %s",
            closure.id,
            collector_id,
            closure_date,
            totals.payments_count,
            totals.grand_total,
        )
        if totals.cash_difference != 0:
            logger.warning(
                "Chiusura cassa %s: differenza contanti %s (contati %s, attesi %s)",
                closure.id,
                totals.cash_difference,
                totals.cash_counted_total,
                totals.cash_expected_total,
            )

        return await CashClosureService.get_by_id(closure.id, db)

    @staticmethod
    def _is_claim_conflict(error: IntegrityError) -> bool:
        """True se la violazione riguarda l'indice unico pagamento-chiusura."""
        message = str(error.orig)
        # PostgreSQL riporta il nome dell'indice, SQLite la colonna
        return (
            PAYMENT_CLAIM_INDEX in message
            or "cash_closure_payments.payment_id" in message
        )

    @staticmethod
    async def _claim_payments(
        closure_id: uuid.UUID, payment_ids: Sequence[uuid.UUID], db: AsyncSession
    ) -> None:
        """
        Assegna i pagamenti alla chiusura solo se ancora liberi.

        Un update condizionale per pagamento: due chiusure in competizione
        sullo stesso pagamento non possono riuscire entrambe.
        """
        now = datetime.datetime.now(datetime.timezone.utc)
        lost = []
        for payment_id in payment_ids:
            result = await db.execute(
                update(Payment)
                .where(Payment.id == payment_id, Payment.cash_closure_id.is_(None))
                .values(cash_closure_id=closure_id, updated_at=now)
            )
            if result.rowcount != 1:
                lost.append(payment_id)
        if lost:
            raise PaymentAlreadyClosedError(lost)

    @staticmethod
    def _log_ignored_client_totals(
        collector_id: str, data: CashClosureCreate, totals: CashClosureTotals
    ) -> None:
        hints = {
            "cash_expected_total": data.cash_expected_total,
            "cash_counted_total": data.cash_counted_total,
            "cash_difference": data.cash_difference,
        }
        for name, client_value in hints.items():
            if client_value is None:
                continue
            server_value = getattr(totals, name)
            if Decimal(client_value).quantize(CENT) != server_value:
                logger.warning(
                    "Autista %s: %s inviato dal client (%s) ignorato, valore calcolato %s",
                    collector_id,
                    name,
                    client_value,
                    server_value,
                )

    @staticmethod
    async def get_by_id(closure_id: uuid.UUID, db: AsyncSession) -> CashClosure:
        """Recupera una chiusura con i pagamenti inclusi."""
        stmt = (
            select(CashClosure)
            .where(CashClosure.id == closure_id)
            .options(
                selectinload(CashClosure.payment_links).selectinload(CashClosurePayment.payment)
            )
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        closure = result.scalar_one_or_none()
        if not closure:
            raise NotFoundError(
                "Chiusura cassa non trovata",
                error_code="CASH_CLOSURE_NOT_FOUND",
                extra={"closureId": str(closure_id)},
            )
        return closure

    @staticmethod
    async def get_history(
        collector_id: str,
        db: AsyncSession,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Sequence[CashClosure]:
        """Storico delle chiusure dell'autista, dalla più recente."""
        stmt = (
            select(CashClosure)
            .where(CashClosure.collector_id == collector_id)
            .options(
                selectinload(CashClosure.payment_links).selectinload(CashClosurePayment.payment)
            )
            .order_by(CashClosure.closure_date.desc(), CashClosure.created_at.desc())
        )
        if from_date:
            stmt = stmt.where(CashClosure.closure_date >= from_date)
        if to_date:
            stmt = stmt.where(CashClosure.closure_date <= to_date)

        stmt = stmt.offset(skip).limit(limit)
        result = await db.execute(stmt)
        return result.scalars().all()
