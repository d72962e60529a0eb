"""
API Incassi Autisti
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from freight_cash.core.database import get_db
from freight_cash.core.deps import get_payment_service
from freight_cash.schemas.bill import LedgerBill
from freight_cash.schemas.payment import PaymentCreate, PaymentRead
from freight_cash.services.payment_service import PaymentService

router = APIRouter(prefix="/collectors/{collector_id}", tags=["Incassi"])


@router.post(
    "/payments",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    collector_id: str,
    data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
):
    """
    Registra un incasso su una fattura.

    Risponde 423 se l'autista ha una chiusura cassa arretrata.
    """
    return await service.record_payment(db, collector_id, data)


@router.get("/payments", response_model=List[PaymentRead])
async def list_payments(
    collector_id: str,
    unclosed_only: bool = Query(False, alias="unclosedOnly"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Storico incassi dell'autista, dal più recente."""
    return await PaymentService.list_payments(
        db, collector_id, unclosed_only=unclosed_only, skip=skip, limit=limit
    )


@router.get("/payments/unclosed", response_model=List[PaymentRead])
async def list_unclosed_payments(
    collector_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Pagamenti non ancora inclusi in una chiusura, dal più vecchio."""
    return await PaymentService.unclosed_payments(db, collector_id)


@router.get("/bills", response_model=List[LedgerBill])
async def list_outstanding_bills(
    collector_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    """Fatture dell'autista con saldo da incassare (dal registro fatture)."""
    return await service.list_outstanding_bills(collector_id)
