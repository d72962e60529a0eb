"""
Schemas Pydantic per le Chiusure Cassa
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Contiene:
- Enum: ClosureStatus, DenominationKind
- Schemas per tagli, anteprima e chiusura cassa
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, computed_field, field_validator

from freight_cash.schemas.base import ApiModel
from freight_cash.schemas.payment import PaymentRead


class ClosureStatus(str, Enum):
    """Stati di una chiusura cassa."""
    OPEN = "open"
    CLOSED = "closed"


class DenominationKind(str, Enum):
    NOTE = "note"
    COIN = "coin"


class DenominationRead(ApiModel):
    """Taglio ammesso nel conteggio contanti."""

    key: str
    label: str
    minor_value: int = Field(..., description="Valore facciale in centesimi/pence")
    kind: DenominationKind


class CashClosureCreate(ApiModel):
    """
    Schema per creare una chiusura cassa.

    I totali attesi/contati inviati dal client sono accettati solo come
    indicazione: il server li ricalcola sempre.
    """

    payment_ids: list[uuid.UUID] = Field(
        ...,
        min_length=1,
        description="Pagamenti da includere nella chiusura",
    )
    # Quantità validate dal DenominationEngine, che segnala il taglio errato
    cash_breakdown: Optional[dict[str, Any]] = Field(
        None,
        description="Conteggio per taglio, es. {\"20\": 2, \"10\": 1}",
    )
    notes: Optional[str] = Field(None, description="Note della chiusura")
    closure_date: Optional[date] = Field(
        None,
        description="Giornata chiusa (default: giornata dei pagamenti selezionati)",
    )
    confirm_zero_count: bool = Field(
        default=False,
        description="Conferma esplicita di un conteggio contanti a zero",
    )

    # Valori calcolati dal client: ignorati
    cash_expected_total: Optional[Decimal] = None
    cash_counted_total: Optional[Decimal] = None
    cash_difference: Optional[Decimal] = None

    @field_validator("payment_ids")
    @classmethod
    def deduplicate_payment_ids(cls, v: list[uuid.UUID]) -> list[uuid.UUID]:
        """La selezione è un insieme: rimuove i duplicati mantenendo l'ordine."""
        return list(dict.fromkeys(v))


class CashClosureTotals(ApiModel):
    """Totali per metodo e riconciliazione contanti."""

    total_cash: Decimal = Decimal("0.00")
    total_card: Decimal = Decimal("0.00")
    total_transfer: Decimal = Decimal("0.00")
    total_other: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    payments_count: int = 0
    cash_expected_total: Decimal = Decimal("0.00")
    cash_counted_total: Decimal = Decimal("0.00")
    cash_difference: Decimal = Decimal("0.00")

    @computed_field
    @property
    def is_balanced(self) -> bool:
        """True se i contanti contati coincidono con quelli attesi."""
        return self.cash_difference == Decimal("0")


class CashClosurePreview(CashClosureTotals):
    """Anteprima della chiusura (nessuna scrittura)."""

    collector_id: str
    closure_date: date
    payment_ids: list[uuid.UUID]
    cash_breakdown: dict[str, int]
    requires_cash_count: bool = Field(
        ..., description="True se servono contanti contati per sigillare"
    )


class CashClosureRead(CashClosureTotals):
    """Schema per leggere una chiusura cassa sigillata."""

    id: uuid.UUID
    collector_id: str
    closure_date: date
    status: ClosureStatus
    notes: Optional[str] = None
    cash_breakdown: dict[str, int]
    payment_ids: list[uuid.UUID]
    payments: list[PaymentRead] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
