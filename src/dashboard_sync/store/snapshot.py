"""Immutable snapshot of everything the client knows.

Classes
-------
- Theme          — light or dark presentation
- UiFlags        — UI-scoped preferences carried alongside the data
- StateSnapshot  — the value held and replaced by ``StateStore``
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from dashboard_sync.models import (
    ChatExchange,
    EntityKey,
    EntityType,
    FileAsset,
    Record,
    Session,
    Task,
    TaskStatus,
)

_COLLECTION_FIELDS: dict[EntityType, str] = {
    EntityType.TASK: "tasks",
    EntityType.CHAT: "chat",
    EntityType.FILE: "files",
}


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class UiFlags(BaseModel):
    """UI-scoped flags that survive session teardown."""

    theme: Theme = Theme.LIGHT
    panel_collapsed: bool = False

    model_config = {"frozen": True}


class StateSnapshot(BaseModel):
    """The client's view of server-owned entities at one point in time.

    Snapshots are never modified: every accepted action produces a new
    instance, so any reference a caller holds stays valid and unchanged.

    Parameters
    ----------
    tasks:
        Tasks in board order.  A column is the subsequence with a given
        status.
    chat:
        Chat exchanges ordered by non-decreasing timestamp.
    files:
        Uploaded files in listing order.
    session:
        The live session, or None when signed out.
    ui:
        Presentation flags.
    loading:
        True while a collection refresh is in progress.
    provisional:
        Keys of records that carry a client-assigned id and await
        reconciliation with the server.
    """

    tasks: tuple[Task, ...] = ()
    chat: tuple[ChatExchange, ...] = ()
    files: tuple[FileAsset, ...] = ()
    session: Session | None = None
    ui: UiFlags = Field(default_factory=UiFlags)
    loading: bool = False
    provisional: frozenset[EntityKey] = frozenset()

    model_config = {"frozen": True}

    @staticmethod
    def field_for(entity_type: EntityType) -> str:
        """Return the attribute name holding ``entity_type`` records."""
        return _COLLECTION_FIELDS[entity_type]

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None and self.session.valid

    def collection(self, entity_type: EntityType) -> tuple[Record, ...]:
        """Return the ordered records of ``entity_type``."""
        return getattr(self, _COLLECTION_FIELDS[entity_type])

    def index_of(self, entity_type: EntityType, entity_id: str) -> int | None:
        """Return the position of ``entity_id`` in its collection, or None."""
        for index, record in enumerate(self.collection(entity_type)):
            if record.id == entity_id:
                return index
        return None

    def find(self, entity_type: EntityType, entity_id: str) -> Record | None:
        """Return the record with ``entity_id``, or None if absent."""
        index = self.index_of(entity_type, entity_id)
        if index is None:
            return None
        return self.collection(entity_type)[index]

    def tasks_by_status(self, status: TaskStatus | str) -> tuple[Task, ...]:
        """Return the tasks of one kanban column in board order."""
        wanted = TaskStatus(status)
        return tuple(task for task in self.tasks if task.status is wanted)

    def is_provisional(self, entity_type: EntityType, entity_id: str) -> bool:
        return (entity_type, entity_id) in self.provisional
