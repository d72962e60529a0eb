"""
API v1 Routes
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from freight_cash.api.v1 import cash_closures, collectors, payments

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(payments.router)
api_v1_router.include_router(cash_closures.router)
api_v1_router.include_router(collectors.router)

# Esportazione
__all__ = ["api_v1_router"]
