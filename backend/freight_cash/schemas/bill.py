"""
Schemas Pydantic per le Fatture del registro esterno
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Le risposte del registro fatture hanno forme variabili (es. `_id` oppure
`id`, totali a volte assenti): vengono validate e normalizzate qui, al
confine, e il resto del servizio lavora solo con `LedgerBill`.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, ConfigDict, Field

from freight_cash.schemas.base import ApiModel


class BillStatus(str, Enum):
    """Stati della fattura gestiti dal registro esterno."""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# Stati in cui una fattura accetta ancora incassi
PAYABLE_BILL_STATUSES = frozenset({BillStatus.PENDING, BillStatus.PARTIAL})


class BillTotals(ApiModel):
    """Totali della fattura."""

    model_config = ConfigDict(extra="ignore")

    total: Decimal = Field(default=Decimal("0.00"), ge=0)
    paid: Decimal = Field(default=Decimal("0.00"), ge=0)
    balance: Decimal = Field(default=Decimal("0.00"), ge=0)


class BillClient(ApiModel):
    """Riferimento al cliente intestatario."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    phone: Optional[str] = None


class LedgerBill(ApiModel):
    """Fattura così come la vede questo servizio."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("_id", "id"),
        serialization_alias="id",
    )
    number: Optional[str] = None
    status: BillStatus
    totals: BillTotals = Field(default_factory=BillTotals)
    client: Optional[BillClient] = None
    created_at: Optional[datetime] = None

    @property
    def balance(self) -> Decimal:
        return self.totals.balance

    @property
    def is_payable(self) -> bool:
        """True se la fattura può ricevere un incasso."""
        return self.status in PAYABLE_BILL_STATUSES and self.balance > Decimal("0")

    @property
    def client_name(self) -> Optional[str]:
        return self.client.name if self.client else None
