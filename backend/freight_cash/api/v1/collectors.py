"""
API Stato Autista
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from freight_cash.core.database import get_db
from freight_cash.schemas.collector import CollectorSummary, GuardStatusRead
from freight_cash.services.sequencing_guard import SequencingGuard
from freight_cash.services.summary_service import SummaryService

router = APIRouter(prefix="/collectors/{collector_id}", tags=["Autisti"])


@router.get("/guard", response_model=GuardStatusRead)
async def get_guard_status(
    collector_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Indica se l'autista può registrare incassi o quale chiusura deve creare."""
    decision = await SequencingGuard.check(collector_id, db)
    return decision.to_schema()


@router.get("/summary", response_model=CollectorSummary)
async def get_collector_summary(
    collector_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Cruscotto: incassato oggi, pagamenti da chiudere, chiusure del mese."""
    return await SummaryService.get_summary(collector_id, db)
