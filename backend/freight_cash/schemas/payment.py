"""
Schemas Pydantic per gli Incassi
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Contiene:
- Enum: PaymentMethod
- Schemas per Payment
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field, computed_field, field_validator

from freight_cash.schemas.base import ApiModel


class PaymentMethod(str, Enum):
    """Metodi di pagamento supportati."""
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    CHECK = "check"
    OTHER = "other"


class PaymentCreate(ApiModel):
    """
    Schema per registrare un incasso su una fattura.

    Se l'importo è omesso si incassa l'intero saldo residuo della fattura.
    La data dell'incasso è sempre assegnata dal server.
    """

    bill_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="ID della fattura nel registro esterno",
    )
    amount: Optional[Decimal] = Field(
        None,
        gt=0,
        max_digits=10,
        decimal_places=2,
        description="Importo incassato (default: saldo residuo)",
    )
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASH,
        description="Metodo di pagamento",
    )
    payment_details: Optional[str] = Field(
        None,
        max_length=255,
        description="Dettagli (es. ultime cifre carta, riferimento bonifico)",
    )
    notes: Optional[str] = Field(
        None,
        description="Note aggiuntive sul pagamento",
    )

    @field_validator("bill_id")
    @classmethod
    def strip_bill_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("L'ID fattura non può essere vuoto")
        return v


class PaymentRead(ApiModel):
    """Schema per leggere un incasso esistente."""

    id: uuid.UUID
    collector_id: str
    bill_id: str
    bill_number: Optional[str] = None
    client_name: Optional[str] = None
    amount: Decimal
    payment_method: PaymentMethod
    payment_details: Optional[str] = None
    notes: Optional[str] = None
    payment_date: datetime
    business_date: date
    cash_closure_id: Optional[uuid.UUID] = None
    created_at: datetime

    @computed_field
    @property
    def is_closed(self) -> bool:
        """True se l'incasso è già incluso in una chiusura cassa."""
        return self.cash_closure_id is not None
