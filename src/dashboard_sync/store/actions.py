"""Actions accepted by ``StateStore.dispatch``.

Each action is a frozen dataclass describing one discrete change.  The
reducer decides what the change means; actions carry data only.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from dashboard_sync.models import EntityType, Record, Session
from dashboard_sync.store.snapshot import Theme


@dataclass(frozen=True)
class Action:
    """Base class for store actions."""


@dataclass(frozen=True)
class SetSession(Action):
    session: Session | None


@dataclass(frozen=True)
class ResetState(Action):
    """Drop the session and every entity collection.

    UI flags are kept.
    """


@dataclass(frozen=True)
class ReplaceCollection(Action):
    """Replace a whole collection with a freshly fetched listing."""

    entity_type: EntityType
    records: Sequence[Record]


@dataclass(frozen=True)
class UpsertRecord(Action):
    """Insert ``record`` or replace the record sharing its id.

    Parameters
    ----------
    entity_type:
        Collection to change.
    record:
        The new record value.
    provisional:
        Mark the record's id as client-assigned.
    index:
        Optional target position.  When given, the record is moved there
        (clamped to the collection bounds).  Ignored for chat exchanges,
        which are always kept in timestamp order.
    """

    entity_type: EntityType
    record: Record
    provisional: bool = False
    index: int | None = None


@dataclass(frozen=True)
class ReconcileRecord(Action):
    """Replace the record at ``target_id`` with the authoritative ``record``.

    ``record.id`` may differ from ``target_id`` (a provisional id replaced
    by the server-assigned one).  The provisional mark is cleared.
    """

    entity_type: EntityType
    target_id: str
    record: Record


@dataclass(frozen=True)
class RemoveRecord(Action):
    entity_type: EntityType
    entity_id: str


@dataclass(frozen=True)
class RestoreRecord(Action):
    """Put back a fragment captured before a speculative change.

    ``record`` None means the entity did not exist; any record under
    ``entity_id`` is removed.  Otherwise the record is restored at
    ``index``.
    """

    entity_type: EntityType
    entity_id: str
    record: Record | None
    index: int | None = None
    provisional: bool = False


@dataclass(frozen=True)
class SetTheme(Action):
    theme: Theme


@dataclass(frozen=True)
class ToggleTheme(Action):
    pass


@dataclass(frozen=True)
class TogglePanel(Action):
    pass


@dataclass(frozen=True)
class SetLoading(Action):
    loading: bool
