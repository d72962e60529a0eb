"""
Eccezioni Custom per l'applicazione.
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori.

Ogni eccezione porta con sé status HTTP, codice errore e dati
aggiuntivi (extra) sufficienti al frontend per proporre l'azione
correttiva (es. la data della chiusura mancante).

NOTA: BusinessValidationError è volutamente distinta da pydantic.ValidationError.
- pydantic.ValidationError: errori di formato/tipo nei dati di input (gestiti da FastAPI → 422)
- BusinessValidationError: violazioni delle regole di business logic (gestiti dal nostro handler → 422)
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "BusinessValidationError",
    "ValidationError",       # alias di BusinessValidationError
    "ConflictError",
    "ImmutableRecordError",
    "UpstreamUnavailableError",
    "UnknownDenominationError",
    "InvalidQuantityError",
    "PaymentNotFoundError",
    "PaymentAlreadyClosedError",
    "MissingCashCountError",
    "ClosurePendingError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il frontend
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi per il frontend
    """

    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra: Dict[str, Any] = dict(extra) if extra else {}
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando una risorsa non viene trovata.
    """

    status_code: int = 404
    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Risorsa non trovata",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class BusinessValidationError(ValueError, AppException):
    """
    Eccezione sollevata per violazioni delle regole di business logic.

    Eredita da ValueError per essere catturata dai validatori Pydantic.

    Esempi di utilizzo:
        - "La fattura non ha saldo residuo"
        - "L'importo supera il saldo della fattura"
        - "I pagamenti selezionati appartengono a giornate diverse"
    """

    status_code: int = 422
    error_code: str = "BUSINESS_VALIDATION_ERROR"

    def __init__(
        self,
        detail: str = "Validazione dati fallita",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        # Chiama AppException.__init__ direttamente per evitare ValueError
        AppException.__init__(self, detail, error_code, extra)


# Alias per compatibilità
ValidationError = BusinessValidationError


class ConflictError(AppException):
    """
    Eccezione sollevata per conflitti di stato.

    Utilizzata quando un'operazione non può essere eseguita
    a causa dello stato corrente della risorsa.
    """

    status_code: int = 409
    error_code: str = "CONFLICT_STATE"

    def __init__(
        self,
        detail: str = "Conflitto di stato",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ImmutableRecordError(ConflictError):
    """Tentativo di modificare o eliminare un record sigillato."""

    error_code: str = "IMMUTABLE_RECORD"


class UpstreamUnavailableError(AppException):
    """
    Il registro fatture esterno non è raggiungibile o risponde in modo inatteso.

    Il chiamante può ritentare; questo servizio non ritenta le scritture.
    """

    status_code: int = 503
    error_code: str = "UPSTREAM_UNAVAILABLE"

    def __init__(
        self,
        detail: str = "Registro fatture non disponibile",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


# ------------------------------------------------------------
# Conteggio contanti
# ------------------------------------------------------------
class UnknownDenominationError(BusinessValidationError):
    """Taglio di banconota/moneta non previsto dalla valuta configurata."""

    error_code: str = "UNKNOWN_DENOMINATION"

    def __init__(self, denomination: str) -> None:
        super().__init__(
            f"Taglio sconosciuto: {denomination!r}",
            extra={"denomination": denomination},
        )


class InvalidQuantityError(BusinessValidationError):
    """Quantità negativa o non intera nel conteggio contanti."""

    error_code: str = "INVALID_QUANTITY"

    def __init__(self, denomination: str, quantity: Any) -> None:
        super().__init__(
            f"Quantità non valida per il taglio {denomination!r}: {quantity!r}",
            extra={"denomination": denomination},
        )


# ------------------------------------------------------------
# Pagamenti e chiusure cassa
# ------------------------------------------------------------
class PaymentNotFoundError(NotFoundError):
    """Uno o più pagamenti selezionati non esistono per questo autista."""

    error_code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_ids: Iterable[Any]) -> None:
        ids = sorted(str(p) for p in payment_ids)
        super().__init__(
            f"Pagamenti non trovati: {', '.join(ids)}",
            extra={"paymentIds": ids},
        )


class PaymentAlreadyClosedError(ConflictError):
    """
    Uno o più pagamenti sono già inclusi in una chiusura cassa.

    Il chiamante deve ricaricare l'elenco dei pagamenti aperti e riprovare.
    """

    error_code: str = "PAYMENT_ALREADY_CLOSED"

    def __init__(self, payment_ids: Iterable[Any]) -> None:
        ids = sorted(str(p) for p in payment_ids)
        super().__init__(
            f"Pagamenti già inclusi in una chiusura cassa: {', '.join(ids)}",
            extra={"paymentIds": ids},
        )


class MissingCashCountError(BusinessValidationError):
    """Chiusura con incassi in contanti ma senza conteggio dei tagli."""

    error_code: str = "MISSING_CASH_COUNT"

    def __init__(self, cash_expected_total: Decimal) -> None:
        super().__init__(
            "Inserisci il conteggio di banconote e monete prima di chiudere la cassa",
            extra={"cashExpectedTotal": str(cash_expected_total)},
        )


class ClosurePendingError(AppException):
    """
    L'autista ha una chiusura cassa arretrata: non può registrare nuovi pagamenti.

    Non va ritentata: prima occorre creare la chiusura della data richiesta.
    """

    status_code: int = 423
    error_code: str = "CLOSURE_PENDING"

    def __init__(self, required_closure_date: date, detail: Optional[str] = None) -> None:
        self.required_closure_date = required_closure_date
        super().__init__(
            detail or closure_pending_message(required_closure_date),
            extra={"requiredClosureDate": required_closure_date.isoformat()},
        )


def closure_pending_message(required_closure_date: date) -> str:
    """Messaggio mostrato all'autista quando il guard blocca i pagamenti."""
    return (
        f"Chiusura cassa del {required_closure_date.isoformat()} mancante: "
        "creala prima di registrare nuovi pagamenti"
    )
