"""
API Chiusure Cassa
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)
"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from freight_cash.core.database import get_db
from freight_cash.core.deps import get_engine
from freight_cash.schemas.cash_closure import (
    CashClosureCreate,
    CashClosurePreview,
    CashClosureRead,
    DenominationRead,
)
from freight_cash.services.cash_closure_service import CashClosureService
from freight_cash.services.denomination_service import DenominationEngine

router = APIRouter(tags=["Chiusura Cassa"])


@router.get("/denominations", response_model=List[DenominationRead])
async def list_denominations(engine: DenominationEngine = Depends(get_engine)):
    """Tagli di banconote e monete ammessi nel conteggio contanti."""
    return [d.to_schema() for d in engine.denominations]


@router.post(
    "/collectors/{collector_id}/cash-closures/preview",
    response_model=CashClosurePreview,
)
async def preview_cash_closure(
    collector_id: str,
    data: CashClosureCreate,
    db: AsyncSession = Depends(get_db),
    engine: DenominationEngine = Depends(get_engine),
):
    """Anteprima dei totali per i pagamenti selezionati (non chiude la cassa)."""
    return await CashClosureService.preview(collector_id, data, db, engine)


@router.post(
    "/collectors/{collector_id}/cash-closures",
    response_model=CashClosureRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_cash_closure(
    collector_id: str,
    data: CashClosureCreate,
    db: AsyncSession = Depends(get_db),
    engine: DenominationEngine = Depends(get_engine),
):
    """Crea e sigilla una chiusura cassa con i pagamenti selezionati."""
    return await CashClosureService.create_closure(collector_id, data, db, engine)


@router.get(
    "/collectors/{collector_id}/cash-closures",
    response_model=List[CashClosureRead],
)
async def get_cash_closure_history(
    collector_id: str,
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Storico delle chiusure dell'autista, dalla più recente."""
    return await CashClosureService.get_history(
        collector_id, db, from_date=from_date, to_date=to_date, skip=skip, limit=limit
    )


@router.get("/cash-closures/{closure_id}", response_model=CashClosureRead)
async def get_cash_closure(
    closure_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
):
    """Dettaglio di una chiusura cassa (totali, conteggio tagli, differenza)."""
    return await CashClosureService.get_by_id(closure_id, db)
