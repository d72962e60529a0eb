"""
Modello SQLAlchemy per gli Incassi
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Contiene:
- Payment: Pagamento raccolto da un autista su una fattura del registro esterno
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from freight_cash.models import Base
from freight_cash.models.mixins import SealableMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from freight_cash.models.cash_closure import CashClosure


class Payment(Base, UUIDMixin, TimestampMixin, SealableMixin):
    """
    Modello per i pagamenti raccolti dagli autisti.

    Il saldo della fattura vive nel registro esterno: qui si conserva solo
    l'evento di incasso, con una copia dei dati di fattura utili alla stampa.

    Attributes:
        id: UUID primary key, generato automaticamente
        collector_id: Identificativo dell'autista che ha incassato
        bill_id: Identificativo della fattura nel registro esterno
        bill_number: Numero fattura al momento dell'incasso
        client_name: Nome del cliente al momento dell'incasso
        amount: Importo incassato
        payment_method: Metodo di pagamento (cash, card, transfer, check, other)
        payment_details: Dettagli liberi (es. ultime cifre carta, riferimento bonifico)
        notes: Note aggiuntive
        payment_date: Istante dell'incasso (UTC, assegnato dal server)
        business_date: Giornata contabile dell'incasso
        cash_closure_id: Chiusura cassa che ha incluso il pagamento (assegnata una sola volta)

    Relationships:
        cash_closure: Chiusura cassa di appartenenza
    """

    __tablename__ = "payments"

    __immutable_attributes__ = (
        "collector_id",
        "bill_id",
        "amount",
        "payment_method",
        "payment_date",
        "business_date",
        "cash_closure_id",
    )

    # ------------------------------------------------------------
    # Colonne Relazione
    # ------------------------------------------------------------
    collector_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Identificativo dell'autista che ha incassato",
    )

    bill_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Identificativo della fattura nel registro esterno",
    )

    cash_closure_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("cash_closures.id", ondelete="RESTRICT"),
        nullable=True,
        doc="Chiusura cassa che ha incluso il pagamento",
    )

    # ------------------------------------------------------------
    # Colonne Dati
    # ------------------------------------------------------------
    bill_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        doc="Importo incassato",
    )

    payment_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Metodo di pagamento",
    )

    payment_details: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Dettagli del metodo di pagamento",
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Note aggiuntive sul pagamento",
    )

    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Istante dell'incasso",
    )

    business_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        doc="Giornata contabile dell'incasso nel fuso orario configurato",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    cash_closure: Mapped["CashClosure | None"] = relationship(
        "CashClosure",
        foreign_keys=[cash_closure_id],
        doc="Chiusura cassa di appartenenza",
    )

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        # Guard e pagamenti aperti filtrano sempre per autista e giornata
        Index("ix_payments_collector_business_date", "collector_id", "business_date"),
        Index("ix_payments_cash_closure_id", "cash_closure_id"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "payment_method IN ('cash', 'card', 'transfer', 'check', 'other')",
            name="ck_payments_payment_method",
        ),
    )

    # ------------------------------------------------------------
    # Metodi
    # ------------------------------------------------------------
    def is_sealed(self, committed) -> bool:
        """Un pagamento è sigillato quando è già assegnato a una chiusura."""
        return committed("cash_closure_id") is not None

    @property
    def is_closed(self) -> bool:
        return self.cash_closure_id is not None

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, method={self.payment_method})>"
