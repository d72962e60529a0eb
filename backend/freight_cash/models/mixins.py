"""
Mixin SQLAlchemy per modelli
Progetto: Freight Cash (Incassi Autisti e Chiusure Cassa)

Mixin riutilizzabili per aggiungere funzionalità comuni ai modelli.
"""

import datetime
import uuid
from typing import Any

from sqlalchemy import DateTime, Uuid
from sqlalchemy import event, inspect
from sqlalchemy.orm import Mapped, mapped_column, Session
from sqlalchemy.sql import func

from freight_cash.core.exceptions import ImmutableRecordError


class TimestampMixin:
    """
    Mixin per gestione automatica timestamp creazione e aggiornamento.

    Aggiunge i campi:
    - created_at: data/ora di creazione record (impostato automaticamente)
    - updated_at: data/ora ultimo aggiornamento (aggiornato automaticamente)
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora di creazione del record",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Data/ora ultimo aggiornamento del record",
    )


class UUIDMixin:
    """
    Mixin per ID UUID generato server-side.

    Aggiunge il campo id come UUID primary key con generazione automatica.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="UUID primary key",
    )


class SealableMixin:
    """
    Mixin per record che diventano immutabili una volta sigillati.

    Le classi che lo usano implementano `is_sealed(committed)` e possono
    restringere `__immutable_attributes__`; se vuoto, sono protette tutte
    le colonne tranne i timestamp. I record sigillabili non si eliminano mai.

    Usage:
        class MyModel(Base, SealableMixin):
            __immutable_attributes__ = ("amount",)

            def is_sealed(self, committed) -> bool:
                return committed("locked_at") is not None
    """

    __immutable_attributes__: tuple[str, ...] = ()

    def is_sealed(self, committed) -> bool:
        raise NotImplementedError

    @classmethod
    def immutable_attributes(cls) -> tuple[str, ...]:
        if cls.__immutable_attributes__:
            return cls.__immutable_attributes__
        return tuple(
            attr.key
            for attr in inspect(cls).column_attrs
            if attr.key not in ("created_at", "updated_at")
        )


def committed_value(obj: Any, attribute: str) -> Any:
    """Valore dell'attributo così com'è nel database (prima delle modifiche in sessione)."""
    history = inspect(obj).attrs[attribute].history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return None


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def protect_sealed_records(session: Session, flush_context, instances) -> None:
    """
    Impedisce modifiche ed eliminazioni dei record sigillati.

    Le scritture massive (update() con criterio) non passano da qui:
    l'unica ammessa è l'assegnazione condizionale della chiusura ai pagamenti.
    """
    for obj in session.deleted:
        if isinstance(obj, SealableMixin):
            raise ImmutableRecordError(
                f"{type(obj).__name__} {obj.id} non può essere eliminato"
            )

    for obj in session.dirty:
        if not isinstance(obj, SealableMixin):
            continue
        if not obj.is_sealed(lambda name: committed_value(obj, name)):
            continue
        state = inspect(obj)
        changed = [
            name
            for name in obj.immutable_attributes()
            if state.attrs[name].history.has_changes()
        ]
        if changed:
            raise ImmutableRecordError(
                f"{type(obj).__name__} {obj.id} è sigillato: "
                f"campi non modificabili {', '.join(changed)}"
            )


@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Event listener per aggiornare automaticamente il campo updated_at.

    Aggiorna updated_at di tutti gli oggetti modificati (dirty) e nuovi (new).
    """
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if hasattr(obj, 'updated_at'):
            # Only update if the object was actually modified
            if session.is_modified(obj, include_collections=False):
                obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, 'updated_at'):
            obj.updated_at = now
