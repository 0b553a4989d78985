"""Domain records mirrored from the dashboard backend.

All types are frozen Pydantic models: once built, a record never changes,
so a snapshot holding it can be shared freely.  Field names are snake_case;
the camelCase names used on the wire are accepted on input and produced by
``to_wire``.

Classes
-------
- TaskStatus    — the three kanban columns
- ChatSource    — which tier produced a chat response
- EntityType    — the record families held by the store
- UserProfile   — the authenticated user
- Session       — bearer token plus user profile
- Task          — a kanban card
- ChatExchange  — one message/response pair
- FileAsset     — an uploaded file
- UploadFile    — file content waiting to be uploaded
"""
from __future__ import annotations

import mimetypes
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, TypeVar, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """Kanban column a task lives in."""

    TODO = "todo"
    DOING = "doing"
    DONE = "done"


class ChatSource(str, Enum):
    """Origin of a chat response."""

    CACHE_FAST = "cache-fast"
    CACHE_DURABLE = "cache-durable"
    GENERATIVE = "generative"


# Older backends report the storage tier by product name.
_LEGACY_CHAT_SOURCES: dict[str, ChatSource] = {
    "redis": ChatSource.CACHE_FAST,
    "pg": ChatSource.CACHE_DURABLE,
    "openai": ChatSource.GENERATIVE,
}


def coerce_chat_source(value: Any) -> Any:
    """Map legacy product names (redis, pg, openai) onto ``ChatSource`` values."""
    if isinstance(value, str):
        return _LEGACY_CHAT_SOURCES.get(value.lower(), value)
    return value


class EntityType(str, Enum):
    """Record families held in a snapshot."""

    TASK = "task"
    CHAT = "chat"
    FILE = "file"


EntityKey = tuple[EntityType, str]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class _Record(BaseModel):
    """Shared configuration for server-owned records."""

    id: str

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class UserProfile(BaseModel):
    """The authenticated user.

    Parameters
    ----------
    id:
        Server-assigned user identifier.
    email:
        Login e-mail address.
    name:
        Display name.
    """

    id: str
    email: str
    name: str = ""

    model_config = {"frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class Session(BaseModel):
    """A live authenticated session.

    Parameters
    ----------
    token:
        Opaque bearer token.
    user:
        Profile of the signed-in user.
    valid:
        False once the session has been invalidated.
    """

    token: str
    user: UserProfile
    valid: bool = True

    model_config = {"frozen": True}

    def __repr__(self) -> str:
        # Keep the bearer token out of logs and tracebacks.
        return f"Session(user={self.user.email!r}, valid={self.valid})"

    __str__ = __repr__


class Task(_Record):
    """A kanban card.

    Parameters
    ----------
    id:
        Server-assigned identifier (or a provisional one while a create is
        in flight).
    title:
        Short human-readable title.
    description:
        Free-text body.
    status:
        Column the task sits in.
    created_at:
        Creation time reported by the server.
    updated_at:
        Last modification time reported by the server.
    """

    title: str
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")


class ChatExchange(_Record):
    """A user message together with the agent's response.

    ``source`` is None only while the exchange is provisional.
    """

    message: str
    response: str = ""
    source: ChatSource | None = None
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("source", mode="before")
    @classmethod
    def _map_legacy_source(cls, value: Any) -> Any:
        return coerce_chat_source(value)

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Storage order compares timestamps, so naive values must not mix
        # with aware ones.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class FileAsset(_Record):
    """An uploaded file as listed by the server."""

    name: str
    size: int = Field(ge=0)
    mime_type: str = Field(
        default="application/octet-stream",
        validation_alias=AliasChoices("mime_type", "mimeType", "type"),
        serialization_alias="mimeType",
    )
    url: str = ""
    uploaded_at: datetime = Field(default_factory=utc_now, alias="uploadedAt")


class UploadFile(BaseModel):
    """File content staged for a multipart upload.

    Parameters
    ----------
    name:
        File name sent in the multipart part.
    content:
        Raw bytes.
    mime_type:
        Content type sent with the part.
    """

    name: str
    content: bytes
    mime_type: str = "application/octet-stream"

    model_config = {"frozen": True}

    @property
    def size(self) -> int:
        """Size of the content in bytes."""
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path) -> UploadFile:
        """Read ``path`` from disk and guess its content type."""
        file_path = Path(path)
        guessed, _ = mimetypes.guess_type(file_path.name)
        return cls(
            name=file_path.name,
            content=file_path.read_bytes(),
            mime_type=guessed or "application/octet-stream",
        )

    def __repr__(self) -> str:
        return f"UploadFile(name={self.name!r}, size={self.size})"


Record = Union[Task, ChatExchange, FileAsset]
RecordT = TypeVar("RecordT", Task, ChatExchange, FileAsset)

def _field_lookup(model: type[BaseModel]) -> dict[str, str]:
    """Map every accepted input name (field name or alias) to its field name."""
    lookup: dict[str, str] = {}
    for name, info in model.model_fields.items():
        lookup[name] = name
        for alias in (info.alias, info.serialization_alias):
            if alias:
                lookup[alias] = name
    return lookup


def apply_changes(record: RecordT, changes: Mapping[str, Any]) -> RecordT:
    """Return a validated copy of ``record`` with ``changes`` applied.

    Keys may be field names or their wire aliases.  Unlike
    ``model_copy(update=...)`` the result is fully validated, so a status
    outside the closed set is rejected.

    Raises
    ------
    ValueError
        If a key does not name a field of the record type.
    pydantic.ValidationError
        If the merged data is invalid.
    """
    lookup = _field_lookup(type(record))
    data = record.model_dump()
    for key, value in changes.items():
        name = lookup.get(key)
        if name is None:
            raise ValueError(f"Unknown field {key!r} for {type(record).__name__}")
        data[name] = value
    return type(record).model_validate(data)


def to_wire(record: BaseModel) -> dict[str, Any]:
    """Serialise ``record`` with camelCase wire names and JSON-safe values."""
    return record.model_dump(mode="json", by_alias=True)


def wire_subset(record: BaseModel, keys: Iterable[str]) -> dict[str, Any]:
    """Return the wire form of just the fields named by ``keys``.

    Used to build partial update bodies.  ``keys`` may mix field names and
    aliases.
    """
    model = type(record)
    lookup = _field_lookup(model)
    wire = to_wire(record)
    subset: dict[str, Any] = {}
    for key in keys:
        name = lookup[key]
        info = model.model_fields[name]
        wire_name = info.serialization_alias or info.alias or name
        subset[wire_name] = wire[wire_name]
    return subset
