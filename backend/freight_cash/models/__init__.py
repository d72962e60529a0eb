"""
Modelli Database SQLAlchemy
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Import centralizzato di tutti i modelli per create_all e usage generico.

Modelli:
- Payment: Incasso registrato da un autista su una fattura del registro esterno
- CashClosure: Chiusura cassa sigillata con conteggio contanti
- CashClosurePayment: Insieme dei pagamenti inclusi in una chiusura
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from freight_cash.models.cash_closure import CashClosure, CashClosurePayment
from freight_cash.models.payment import Payment

__all__ = [
    "Base",
    "Payment",
    "CashClosure",
    "CashClosurePayment",
]
