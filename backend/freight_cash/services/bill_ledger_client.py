"""
Client HTTP per il Registro Fatture esterno
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Il saldo e lo stato delle fatture appartengono al servizio di fatturazione.
Questo client:
- legge le fatture aperte di un autista e la singola fattura
- registra un incasso sulla fattura (il registro aggiorna saldo e stato)

Le letture sono ritentate sugli errori di trasporto; le scritture mai,
per non registrare due volte lo stesso incasso.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from pydantic import TypeAdapter
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from freight_cash.core.config import settings
from freight_cash.core.exceptions import (
    BusinessValidationError,
    NotFoundError,
    UpstreamUnavailableError,
)
from freight_cash.schemas.bill import LedgerBill

# Logger per questo modulo
logger = logging.getLogger(__name__)

_bill_list_adapter = TypeAdapter(list[LedgerBill])


class BillLedgerClient:
    """
    Client asincrono verso il registro fatture.

    Ogni risposta è validata e mappata su `LedgerBill`; una risposta
    irraggiungibile o malformata diventa UpstreamUnavailableError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        retry_wait_seconds: float = 0.4,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        token = api_token if api_token is not None else settings.bill_ledger_api_token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._retry_attempts = retry_attempts or settings.bill_ledger_retry_attempts
        self._retry_wait_seconds = retry_wait_seconds
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.bill_ledger_base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds or settings.bill_ledger_timeout_seconds),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------
    # Operazioni
    # ------------------------------------------------------------
    async def list_outstanding_bills(self, collector_id: str) -> list[LedgerBill]:
        """Fatture assegnate all'autista con saldo ancora da incassare."""
        response = await self._get("/bills", params={"collector": collector_id})
        self._raise_for_status(response)
        data = self._unwrap(response)
        try:
            bills = _bill_list_adapter.validate_python(data)
        except PydanticValidationError as e:
            logger.error("Elenco fatture non valido dal registro: %s", e)
            raise UpstreamUnavailableError(
                "Risposta non valida dal registro fatture",
                error_code="UPSTREAM_INVALID_RESPONSE",
            ) from e
        return [bill for bill in bills if bill.is_payable]

    async def get_bill(self, bill_id: str) -> LedgerBill:
        """Fattura singola con stato e saldo correnti."""
        response = await self._get(f"/bills/{bill_id}")
        self._raise_for_status(response, bill_id=bill_id)
        return self._parse_bill(response)

    async def post_payment(
        self,
        bill_id: str,
        amount: Decimal,
        payment_method: str,
        payment_details: Optional[str] = None,
    ) -> LedgerBill:
        """Registra l'incasso sulla fattura e restituisce la fattura aggiornata."""
        payload = {
            "amount": str(amount),
            "paymentMethod": payment_method,
            "paymentDetails": payment_details or "",
        }
        try:
            response = await self._client.post(f"/bills/{bill_id}/payments", json=payload)
        except httpx.HTTPError as e:
            logger.error("Registro fatture non raggiungibile (POST %s): %s", bill_id, e)
            raise UpstreamUnavailableError() from e

        if 400 <= response.status_code < 500 and response.status_code != 404:
            message = self._upstream_message(response) or "Incasso rifiutato dal registro fatture"
            raise BusinessValidationError(
                message,
                error_code="BILL_PAYMENT_REJECTED",
                extra={"billId": bill_id},
            )
        self._raise_for_status(response, bill_id=bill_id)
        return self._parse_bill(response)

    # ------------------------------------------------------------
    # Helper
    # ------------------------------------------------------------
    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._retry_attempts),
                wait=wait_fixed(self._retry_wait_seconds),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    return await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.error("Registro fatture non raggiungibile (GET %s): %s", path, e)
            raise UpstreamUnavailableError() from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, bill_id: Optional[str] = None) -> None:
        if response.status_code == 404 and bill_id is not None:
            raise NotFoundError(
                f"Fattura {bill_id} non trovata",
                error_code="BILL_NOT_FOUND",
                extra={"billId": bill_id},
            )
        if response.is_success:
            return
        logger.error(
            "Registro fatture: %s %s -> HTTP %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        raise UpstreamUnavailableError(
            f"Registro fatture: risposta HTTP {response.status_code}",
        )

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        """Estrae il contenuto dalla busta {"data": ...} quando presente."""
        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError(
                "Risposta non valida dal registro fatture",
                error_code="UPSTREAM_INVALID_RESPONSE",
            ) from e
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    @classmethod
    def _parse_bill(cls, response: httpx.Response) -> LedgerBill:
        data = cls._unwrap(response)
        try:
            return LedgerBill.model_validate(data)
        except PydanticValidationError as e:
            logger.error("Fattura non valida dal registro: %s", e)
            raise UpstreamUnavailableError(
                "Risposta non valida dal registro fatture",
                error_code="UPSTREAM_INVALID_RESPONSE",
            ) from e

    @staticmethod
    def _upstream_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            message = body.get("message") or body.get("detail")
            return str(message) if message else None
        return None
