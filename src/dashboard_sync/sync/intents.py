"""Mutation intents and their outcomes.

A ``MutationIntent`` is a request to change one entity.  The coordinator
applies it speculatively, sends it to the backend, and resolves a
``MutationOutcome`` describing what finally happened.

Classes
-------
- MutationKind     — create / update / delete / move
- MutationIntent   — one requested change
- OutcomeStatus    — how an intent was settled
- MutationOutcome  — the settled result of one intent
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from dashboard_sync.gateway.results import ErrorDescriptor
from dashboard_sync.models import EntityType, Record, TaskStatus, UploadFile


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MOVE = "move"


@dataclass(frozen=True)
class MutationIntent:
    """A requested change to a single entity.

    Parameters
    ----------
    entity_type:
        Collection the entity belongs to.
    entity_id:
        Target id.  None for creates, required for every other kind.
    kind:
        What to do with the entity.
    payload:
        Kind-specific data.  Creates carry the new record's fields (or
        ``file`` for uploads, ``message`` for chat), updates the changed
        fields, moves ``status`` and an optional ``position``.

    Raises
    ------
    ValueError
        If ``entity_id`` is given for a create or missing otherwise.
    """

    entity_type: EntityType
    entity_id: str | None
    kind: MutationKind
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entity_type", EntityType(self.entity_type))
        object.__setattr__(self, "kind", MutationKind(self.kind))
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))
        if self.kind is MutationKind.CREATE and self.entity_id is not None:
            raise ValueError("A create intent must not name an entity id.")
        if self.kind is not MutationKind.CREATE and not self.entity_id:
            raise ValueError(f"A {self.kind.value} intent requires an entity id.")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def create_task(
        cls,
        title: str,
        description: str = "",
        status: TaskStatus | str = TaskStatus.TODO,
    ) -> MutationIntent:
        return cls(
            EntityType.TASK,
            None,
            MutationKind.CREATE,
            {"title": title, "description": description, "status": status},
        )

    @classmethod
    def update_task(cls, task_id: str, **changes: Any) -> MutationIntent:
        return cls(EntityType.TASK, task_id, MutationKind.UPDATE, changes)

    @classmethod
    def move_task(
        cls, task_id: str, status: TaskStatus | str, position: int | None = None
    ) -> MutationIntent:
        payload: dict[str, Any] = {"status": status}
        if position is not None:
            payload["position"] = position
        return cls(EntityType.TASK, task_id, MutationKind.MOVE, payload)

    @classmethod
    def delete(cls, entity_type: EntityType, entity_id: str) -> MutationIntent:
        return cls(entity_type, entity_id, MutationKind.DELETE)

    @classmethod
    def send_chat(cls, message: str) -> MutationIntent:
        return cls(EntityType.CHAT, None, MutationKind.CREATE, {"message": message})

    @classmethod
    def upload_file(cls, file: UploadFile) -> MutationIntent:
        return cls(EntityType.FILE, None, MutationKind.CREATE, {"file": file})

    def with_entity_id(self, entity_id: str) -> MutationIntent:
        """Return a copy targeting ``entity_id``."""
        return dataclasses.replace(self, entity_id=entity_id)

    def __repr__(self) -> str:
        return (
            f"MutationIntent({self.kind.value} {self.entity_type.value}"
            f" id={self.entity_id!r})"
        )


class OutcomeStatus(str, Enum):
    """How an intent was settled.

    COMMITTED   — the backend accepted the change and the store holds its copy
    ROLLED_BACK — the backend refused; the speculative change was undone
    DISCARDED   — never sent (entity deleted, invalid payload, upload rejected)
    NOOP        — nothing to do (move to the current place)
    ABANDONED   — the session ended before the intent settled
    """

    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    DISCARDED = "discarded"
    NOOP = "noop"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class MutationOutcome:
    """Settled result of one intent.

    Parameters
    ----------
    intent:
        The intent as it was executed (re-keyed to the server id when it
        was queued behind a create).
    status:
        How the intent was settled.
    record:
        The authoritative record after a committed create, update or move.
    error:
        The failure that caused a rollback, discard or abandonment.
    provisional_id:
        Placeholder id used while a create was in flight.
    """

    intent: MutationIntent
    status: OutcomeStatus
    record: Record | None = None
    error: ErrorDescriptor | None = None
    provisional_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status in (OutcomeStatus.COMMITTED, OutcomeStatus.NOOP)
