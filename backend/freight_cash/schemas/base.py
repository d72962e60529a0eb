"""
Schema base condiviso
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Il frontend dialoga in camelCase: gli schemi accettano sia i nomi Python
sia gli alias camelCase e serializzano con gli alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base per tutti gli schemi esposti dall'API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
