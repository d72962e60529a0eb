"""
API Routes
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Modulo per l'aggregazione dei router versionati.
"""

from freight_cash.api.v1 import api_v1_router

# Esportazione router
__all__ = ["api_v1_router"]
