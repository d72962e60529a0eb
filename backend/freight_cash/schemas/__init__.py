"""
Schemas Pydantic per il progetto Freight Cash

Questo modulo contiene tutti gli schemi Pydantic utilizzati per la validazione
e serializzazione delle richieste e risposte API.
"""

# es: from freight_cash.schemas import PaymentRead, CashClosureRead, etc.

from freight_cash.schemas.base import ApiModel
from freight_cash.schemas.bill import BillClient, BillStatus, BillTotals, LedgerBill
from freight_cash.schemas.payment import PaymentCreate, PaymentMethod, PaymentRead
from freight_cash.schemas.cash_closure import (
    CashClosureCreate,
    CashClosurePreview,
    CashClosureRead,
    CashClosureTotals,
    ClosureStatus,
    DenominationKind,
    DenominationRead,
)
from freight_cash.schemas.collector import CollectorSummary, GuardStatusRead

__all__ = [
    "ApiModel",
    # Bill
    "BillClient",
    "BillStatus",
    "BillTotals",
    "LedgerBill",
    # Payment
    "PaymentCreate",
    "PaymentMethod",
    "PaymentRead",
    # CashClosure
    "CashClosureCreate",
    "CashClosurePreview",
    "CashClosureRead",
    "CashClosureTotals",
    "ClosureStatus",
    "DenominationKind",
    "DenominationRead",
    # Collector
    "CollectorSummary",
    "GuardStatusRead",
]
