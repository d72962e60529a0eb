"""
Freight Cash
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Backend per la registrazione degli incassi degli autisti e la
riconciliazione di fine giornata (chiusura cassa).
"""

__version__ = "0.1.0"
