"""
Dependency Injection per i servizi
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Funzioni di dependency injection per il client del registro fatture
e il motore di conteggio contanti.
"""

from functools import lru_cache

from fastapi import Depends

from freight_cash.services.bill_ledger_client import BillLedgerClient
from freight_cash.services.denomination_service import (
    DenominationEngine,
    get_denomination_engine,
)
from freight_cash.services.payment_service import PaymentService


@lru_cache()
def get_bill_ledger() -> BillLedgerClient:
    """
    Client singleton verso il registro fatture.

    Nei test si sostituisce con `app.dependency_overrides[get_bill_ledger]`.
    """
    return BillLedgerClient()


async def close_bill_ledger() -> None:
    """Chiude il client se è stato creato. Da chiamare allo shutdown."""
    if get_bill_ledger.cache_info().currsize:
        await get_bill_ledger().close()
        get_bill_ledger.cache_clear()


def get_payment_service(
    ledger: BillLedgerClient = Depends(get_bill_ledger),
) -> PaymentService:
    return PaymentService(ledger)


def get_engine() -> DenominationEngine:
    return get_denomination_engine()


__all__ = [
    "get_bill_ledger",
    "close_bill_ledger",
    "get_payment_service",
    "get_engine",
]
