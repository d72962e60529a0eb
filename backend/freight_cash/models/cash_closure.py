"""
Modelli SQLAlchemy per le Chiusure Cassa
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Contiene:
- CashClosure: Chiusura cassa sigillata di un autista
- CashClosurePayment: Pagamento incluso in una chiusura (al più una per pagamento)
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freight_cash.models import Base
from freight_cash.models.mixins import SealableMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from freight_cash.models.payment import Payment

# Indice unico che garantisce al più una chiusura per pagamento
PAYMENT_CLAIM_INDEX = "uq_cash_closure_payments_payment"


class CashClosure(Base, UUIDMixin, TimestampMixin, SealableMixin):
    """
    Modello per la chiusura cassa di un autista.

    Totali, conteggio tagli e differenza sono denormalizzati al momento
    della chiusura: lo storico resta stabile anche se i pagamenti evolvono.

    Attributes:
        id: UUID primary key, generato automaticamente
        collector_id: Autista proprietario della chiusura
        closure_date: Giornata contabile rappresentata dalla chiusura
        status: open | closed (closed è terminale)
        total_cash: Totale pagamenti in contanti
        total_card: Totale pagamenti con carta
        total_transfer: Totale bonifici
        total_other: Totale assegni e altri metodi
        grand_total: Somma dei quattro totali
        payments_count: Numero di pagamenti inclusi
        cash_breakdown: Conteggio per taglio {chiave: quantità}
        cash_expected_total: Contanti attesi (= total_cash)
        cash_counted_total: Contanti contati (dal conteggio tagli)
        cash_difference: Contati - attesi (positivo = eccedenza, negativo = ammanco)
        notes: Note libere

    Relationships:
        payment_links: Pagamenti inclusi nella chiusura
    """

    __tablename__ = "cash_closures"

    collector_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Autista proprietario della chiusura",
    )

    closure_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Giornata contabile rappresentata dalla chiusura",
    )

    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="closed",
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ------------------------------------------------------------
    # Totali per metodo
    # ------------------------------------------------------------
    total_cash: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    total_card: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    total_transfer: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    total_other: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )

    grand_total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    payments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ------------------------------------------------------------
    # Riconciliazione contanti
    # ------------------------------------------------------------
    cash_breakdown: Mapped[dict[str, int]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    cash_expected_total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    cash_counted_total: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    cash_difference: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    payment_links: Mapped[List["CashClosurePayment"]] = relationship(
        "CashClosurePayment",
        back_populates="cash_closure",
        cascade="save-update, merge",
        lazy="selectin",
        doc="Pagamenti inclusi nella chiusura",
    )

    __table_args__ = (
        Index("ix_cash_closures_collector_date", "collector_id", "closure_date"),
        CheckConstraint("status IN ('open', 'closed')", name="ck_cash_closures_status"),
        CheckConstraint(
            "ROUND(grand_total, 2) = "
            "ROUND(total_cash + total_card + total_transfer + total_other, 2)",
            name="ck_cash_closures_grand_total",
        ),
        CheckConstraint(
            "ROUND(cash_difference, 2) = "
            "ROUND(cash_counted_total - cash_expected_total, 2)",
            name="ck_cash_closures_cash_difference",
        ),
    )

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def payment_ids(self) -> list[uuid.UUID]:
        return [link.payment_id for link in self.payment_links]

    @property
    def payments(self) -> list["Payment"]:
        return [link.payment for link in self.payment_links]

    @property
    def is_balanced(self) -> bool:
        return self.cash_difference == Decimal("0")

    def is_sealed(self, committed) -> bool:
        """Una chiusura è sigillata quando il suo stato salvato è closed."""
        return committed("status") == "closed"

    def __repr__(self) -> str:
        return (
            f"<CashClosure(id={self.id}, collector={self.collector_id}, "
            f"date={self.closure_date}, total={self.grand_total})>"
        )


class CashClosurePayment(Base):
    """
    Pagamento incluso in una chiusura cassa.

    La chiave unica su payment_id garantisce a livello database che un
    pagamento compaia in una sola chiusura.
    """

    __tablename__ = "cash_closure_payments"

    cash_closure_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cash_closures.id", ondelete="RESTRICT"),
        primary_key=True,
    )

    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("payments.id", ondelete="RESTRICT"),
        primary_key=True,
    )

    cash_closure: Mapped["CashClosure"] = relationship(
        "CashClosure",
        back_populates="payment_links",
    )

    payment: Mapped["Payment"] = relationship(
        "Payment",
        lazy="selectin",
    )

    __table_args__ = (
        Index(PAYMENT_CLAIM_INDEX, "payment_id", unique=True),
    )

    def __repr__(self) -> str:
        return f"<CashClosurePayment(closure={self.cash_closure_id}, payment={self.payment_id})>"
