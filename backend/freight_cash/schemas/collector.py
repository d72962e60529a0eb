"""
Schemas Pydantic per lo stato dell'autista
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Contiene:
- GuardStatusRead: esito del controllo sequenza chiusure
- CollectorSummary: cruscotto incassi dell'autista
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import Field

from freight_cash.schemas.base import ApiModel


class GuardStatusRead(ApiModel):
    """Esito del controllo: ALLOW oppure LOCKED con la data da chiudere."""

    allow: bool
    required_closure_date: Optional[date] = None
    message: Optional[str] = None
    outstanding_dates: list[date] = Field(
        default_factory=list,
        description="Giornate con incassi e senza chiusura, in ordine crescente",
    )


class CollectorSummary(ApiModel):
    """Cruscotto incassi di un autista."""

    collector_id: str
    today: date
    payments_today: int
    collected_today: Decimal
    unclosed_payments: int
    unclosed_amount: Decimal
    closures_this_month: int
    guard: GuardStatusRead
