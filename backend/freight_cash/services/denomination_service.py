"""
Service per il conteggio contanti per taglio
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Converte un conteggio {taglio: quantità} nel totale monetario.
Tutti i calcoli avvengono in interi (pence) e la conversione in sterline
avviene una sola volta alla fine, così il totale non soffre di errori di
arrotondamento anche con decine di righe.
"""

from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any, Mapping, Optional

from freight_cash.core.config import settings
from freight_cash.core.exceptions import InvalidQuantityError, UnknownDenominationError
from freight_cash.schemas.cash_closure import DenominationKind, DenominationRead

# Valore dell'unità minore nella valuta principale (1p = £0.01)
MINOR_UNIT = Decimal("0.01")

# Massimo rappresentabile dalle colonne Numeric(10, 2) dei totali (99.999.999,99)
MAX_TOTAL_MINOR = 9_999_999_999


@dataclass(frozen=True)
class Denomination:
    """Taglio di banconota o moneta con valore facciale in unità minori."""

    key: str
    label: str
    minor_value: int
    kind: DenominationKind

    def to_schema(self) -> DenominationRead:
        return DenominationRead(
            key=self.key,
            label=self.label,
            minor_value=self.minor_value,
            kind=self.kind,
        )


# Banconote Bank of England e monete in circolazione
GBP_DENOMINATIONS: tuple[Denomination, ...] = (
    Denomination("50", "£50", 5000, DenominationKind.NOTE),
    Denomination("20", "£20", 2000, DenominationKind.NOTE),
    Denomination("10", "£10", 1000, DenominationKind.NOTE),
    Denomination("5", "£5", 500, DenominationKind.NOTE),
    Denomination("2", "£2", 200, DenominationKind.COIN),
    Denomination("1", "£1", 100, DenominationKind.COIN),
    Denomination("0.50", "50p", 50, DenominationKind.COIN),
    Denomination("0.20", "20p", 20, DenominationKind.COIN),
    Denomination("0.10", "10p", 10, DenominationKind.COIN),
    Denomination("0.05", "5p", 5, DenominationKind.COIN),
    Denomination("0.02", "2p", 2, DenominationKind.COIN),
    Denomination("0.01", "1p", 1, DenominationKind.COIN),
)

DENOMINATION_SETS: dict[str, tuple[Denomination, ...]] = {
    "GBP": GBP_DENOMINATIONS,
}


class DenominationEngine:
    """
    Calcolo del totale contanti a partire dal conteggio per taglio.

    Funzione pura: nessun accesso al database, nessuno stato mutabile.
    """

    def __init__(self, denominations: tuple[Denomination, ...]) -> None:
        self._denominations = denominations
        self._by_key = {d.key: d for d in denominations}

    @classmethod
    def for_currency(cls, currency: str) -> "DenominationEngine":
        try:
            return cls(DENOMINATION_SETS[currency])
        except KeyError:
            raise ValueError(f"Valuta non supportata: {currency}") from None

    @property
    def denominations(self) -> tuple[Denomination, ...]:
        return self._denominations

    def _validated_items(self, breakdown: Optional[Mapping[str, Any]]):
        running_minor = 0
        for key, quantity in (breakdown or {}).items():
            if key not in self._by_key:
                raise UnknownDenominationError(key)
            # bool è sottoclasse di int ma non è una quantità
            if isinstance(quantity, bool) or not isinstance(quantity, int):
                raise InvalidQuantityError(key, quantity)
            if quantity < 0:
                raise InvalidQuantityError(key, quantity)
            denomination = self._by_key[key]
            running_minor += denomination.minor_value * quantity
            if running_minor > MAX_TOTAL_MINOR:
                raise InvalidQuantityError(key, quantity)
            yield denomination, quantity

    def total_minor(self, breakdown: Optional[Mapping[str, Any]]) -> int:
        """Totale in unità minori (pence)."""
        return sum(d.minor_value * quantity for d, quantity in self._validated_items(breakdown))

    def total(self, breakdown: Optional[Mapping[str, Any]]) -> Decimal:
        """Totale in unità principali, esatto a due decimali."""
        return Decimal(self.total_minor(breakdown)) * MINOR_UNIT

    def normalize(self, breakdown: Optional[Mapping[str, Any]]) -> dict[str, int]:
        """Conteggio validato con tutti i tagli presenti (mancanti = 0)."""
        counts = {d.key: 0 for d in self._denominations}
        for d, quantity in self._validated_items(breakdown):
            counts[d.key] = quantity
        return counts

    def has_count(self, breakdown: Optional[Mapping[str, Any]]) -> bool:
        """True se almeno un taglio ha quantità diversa da zero."""
        return any(quantity > 0 for _, quantity in self._validated_items(breakdown))


@lru_cache()
def get_denomination_engine() -> DenominationEngine:
    """Motore di conteggio per la valuta configurata."""
    return DenominationEngine.for_currency(settings.cash_currency)
