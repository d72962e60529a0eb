"""
Service Layer per gli Incassi
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Definisce la logica di business per la registrazione degli incassi degli
autisti e per il calcolo dei pagamenti non ancora inclusi in una chiusura.
"""

import datetime
import logging
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_cash.core.exceptions import BusinessValidationError, UpstreamUnavailableError
from freight_cash.core.timeutils import business_date, now_utc
from freight_cash.models import CashClosurePayment, Payment
from freight_cash.schemas.bill import LedgerBill
from freight_cash.schemas.payment import PaymentCreate
from freight_cash.services.bill_ledger_client import BillLedgerClient
from freight_cash.services.sequencing_guard import SequencingGuard

# Logger per questo modulo
logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class PaymentService:
    """
    Service per la gestione degli incassi degli autisti.

    Implementa:
    - Registrazione incasso con controllo sequenza chiusure
    - Verifica saldo sul registro fatture esterno
    - Calcolo dei pagamenti ancora da chiudere
    """

    def __init__(self, ledger: BillLedgerClient) -> None:
        self.ledger = ledger

    async def record_payment(
        self,
        db: AsyncSession,
        collector_id: str,
        payment_data: PaymentCreate,
        now: Optional[datetime.datetime] = None,
    ) -> Payment:
        """
        Registra un incasso su una fattura.

        Steps:
        1. Controllo sequenza: l'autista non deve avere chiusure arretrate
        2. Lettura della fattura dal registro (deve avere saldo > 0)
        3. Importo di default = saldo residuo, mai oltre il saldo
        4. Inserimento pagamento, nuovo controllo sequenza, registrazione
           sul registro fatture, commit

        Args:
            db: Sessione database
            collector_id: Autista che incassa
            payment_data: Dati dell'incasso
            now: Istante dell'incasso (default: adesso)

        Returns:
            Payment: L'incasso registrato, non ancora incluso in chiusure

        Raises:
            ClosurePendingError: chiusura arretrata da creare
            UpstreamUnavailableError: registro fatture non raggiungibile
            NotFoundError: fattura inesistente
            BusinessValidationError: fattura non incassabile o importo oltre il saldo
        """
        now = now or now_utc()
        today = business_date(now)

        await SequencingGuard.ensure_allowed(collector_id, db, today=today)

        bill = await self.ledger.get_bill(payment_data.bill_id)
        amount = self._resolve_amount(bill, payment_data.amount)

        payment = Payment(
            collector_id=collector_id,
            bill_id=bill.id,
            bill_number=bill.number,
            client_name=bill.client_name,
            amount=amount,
            payment_method=payment_data.payment_method.value,
            payment_details=payment_data.payment_details,
            notes=payment_data.notes,
            payment_date=now,
            business_date=today,
        )

        post_attempted = False
        posted = False
        try:
            db.add(payment)
            await db.flush()

            # Ricontrollo subito prima del commit
            await SequencingGuard.ensure_allowed(collector_id, db, today=today)

            post_attempted = True
            updated_bill = await self.ledger.post_payment(
                bill.id,
                amount,
                payment.payment_method,
                payment.payment_details,
            )
            posted = True
            await db.commit()
        except Exception as e:
            await db.rollback()
            if posted:
                logger.error(
                    "Incasso di %s su fattura %s registrato sul registro ma non salvato localmente",
                    amount,
                    bill.id,
                )
            elif post_attempted and isinstance(e, UpstreamUnavailableError):
                # Timeout o 5xx: il registro potrebbe aver già applicato l'incasso
                logger.error(
                    "Esito sconosciuto dell'incasso di %s su fattura %s (autista %s): "
                    "verificare sul registro fatture",
                    amount,
                    bill.id,
                    collector_id,
                )
            raise

        await db.refresh(payment)
        logger.info(
            "Incasso %s registrato: autista %s, fattura %s, %s %s (saldo residuo %s, stato %s)",
            payment.id,
            collector_id,
            bill.id,
            amount,
            payment.payment_method,
            updated_bill.balance,
            updated_bill.status.value,
        )
        return payment

    @staticmethod
    def _resolve_amount(bill: LedgerBill, requested: Optional[Decimal]) -> Decimal:
        if not bill.is_payable:
            raise BusinessValidationError(
                f"La fattura {bill.number or bill.id} non ha saldo da incassare",
                error_code="BILL_NOT_PAYABLE",
                extra={
                    "billId": bill.id,
                    "status": bill.status.value,
                    "balance": str(bill.balance),
                },
            )

        amount = (requested if requested is not None else bill.balance).quantize(CENT)
        if amount <= Decimal("0"):
            raise BusinessValidationError(
                "L'importo deve essere maggiore di zero",
                error_code="INVALID_AMOUNT",
            )
        if amount > bill.balance:
            raise BusinessValidationError(
                f"Importo ({amount}) superiore al saldo della fattura ({bill.balance})",
                error_code="AMOUNT_EXCEEDS_BALANCE",
                extra={"billId": bill.id, "balance": str(bill.balance)},
            )
        return amount

    @staticmethod
    async def unclosed_payments(db: AsyncSession, collector_id: str) -> Sequence[Payment]:
        """
        Pagamenti dell'autista disponibili per una nuova chiusura.

        Sono esclusi sia i pagamenti con riferimento alla chiusura sia quelli
        citati nell'elenco pagamenti di una qualsiasi chiusura, anche se il
        loro riferimento non risulta impostato. Ricalcolato a ogni lettura.
        """
        claimed = select(CashClosurePayment.payment_id)
        stmt = (
            select(Payment)
            .where(
                Payment.collector_id == collector_id,
                Payment.cash_closure_id.is_(None),
                Payment.id.not_in(claimed),
            )
            .order_by(Payment.payment_date.asc(), Payment.created_at.asc())
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        collector_id: str,
        unclosed_only: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> Sequence[Payment]:
        """Storico incassi dell'autista, dal più recente."""
        if unclosed_only:
            payments = await PaymentService.unclosed_payments(db, collector_id)
            return list(reversed(payments))[skip:skip + limit]

        stmt = (
            select(Payment)
            .where(Payment.collector_id == collector_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return result.scalars().all()

    async def list_outstanding_bills(self, collector_id: str) -> list[LedgerBill]:
        """Fatture dell'autista con saldo ancora da incassare."""
        return await self.ledger.list_outstanding_bills(collector_id)
