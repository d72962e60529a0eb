"""
Utility per date e orari contabili.
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

I timestamp sono salvati in UTC; la "giornata" di un pagamento è la data
di calendario nel fuso orario contabile configurato.
"""

import datetime
from typing import Optional

from freight_cash.core.config import settings


def now_utc() -> datetime.datetime:
    """Istante corrente con timezone UTC."""
    return datetime.datetime.now(datetime.timezone.utc)


def business_date(moment: datetime.datetime) -> datetime.date:
    """
    Data contabile di un istante.

    I valori naive (es. letti da SQLite) sono interpretati come UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment.astimezone(settings.timezone).date()


def business_today(now: Optional[datetime.datetime] = None) -> datetime.date:
    """Data contabile odierna (o di `now`, se fornito)."""
    return business_date(now or now_utc())
