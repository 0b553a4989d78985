"""Pure transition function for ``StateSnapshot``.

``reduce(snapshot, action)`` never touches its inputs: it returns either
the same snapshot (nothing to do) or a new one.  Collections are tuples, so
sharing unchanged records between snapshots is safe.
"""
from __future__ import annotations

import bisect
import logging
from typing import Callable, Iterable

from dashboard_sync.models import ChatExchange, EntityKey, EntityType, Record
from dashboard_sync.store.actions import (
    Action,
    ReconcileRecord,
    RemoveRecord,
    ReplaceCollection,
    ResetState,
    RestoreRecord,
    SetLoading,
    SetSession,
    SetTheme,
    TogglePanel,
    ToggleTheme,
    UpsertRecord,
)
from dashboard_sync.store.snapshot import StateSnapshot, Theme

logger = logging.getLogger(__name__)

_Handler = Callable[[StateSnapshot, Action], StateSnapshot]


# ---------------------------------------------------------------------------
# Collection helpers
# ---------------------------------------------------------------------------


def _dedupe(records: Iterable[Record]) -> list[Record]:
    """Drop repeated ids; the first position wins, the last value wins."""
    positions: dict[str, int] = {}
    result: list[Record] = []
    for record in records:
        if record.id in positions:
            result[positions[record.id]] = record
        else:
            positions[record.id] = len(result)
            result.append(record)
    return result


def _position(records: list[Record], entity_id: str) -> int | None:
    for index, record in enumerate(records):
        if record.id == entity_id:
            return index
    return None


def _insert_chronological(records: list[Record], record: ChatExchange) -> None:
    """Insert after every exchange with an equal or earlier timestamp."""
    timestamps = [existing.timestamp for existing in records]  # type: ignore[union-attr]
    records.insert(bisect.bisect_right(timestamps, record.timestamp), record)


def _place(
    entity_type: EntityType,
    records: list[Record],
    record: Record,
    index: int | None,
) -> None:
    """Insert ``record`` at ``index`` (or append), keeping chat in time order."""
    if entity_type is EntityType.CHAT:
        _insert_chronological(records, record)  # type: ignore[arg-type]
    elif index is None:
        records.append(record)
    else:
        records.insert(max(0, min(index, len(records))), record)


def _with_collection(
    snapshot: StateSnapshot,
    entity_type: EntityType,
    records: list[Record],
    provisional: frozenset[EntityKey],
) -> StateSnapshot:
    return snapshot.model_copy(
        update={
            StateSnapshot.field_for(entity_type): tuple(records),
            "provisional": provisional,
        }
    )


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _set_session(snapshot: StateSnapshot, action: SetSession) -> StateSnapshot:
    return snapshot.model_copy(update={"session": action.session})


def _reset(snapshot: StateSnapshot, action: ResetState) -> StateSnapshot:
    return StateSnapshot(ui=snapshot.ui)


def _replace_collection(
    snapshot: StateSnapshot, action: ReplaceCollection
) -> StateSnapshot:
    entity_type = action.entity_type
    fetched = _dedupe(action.records)
    if entity_type is EntityType.CHAT:
        fetched.sort(key=lambda exchange: exchange.timestamp)  # type: ignore[union-attr]
    fetched_ids = {record.id for record in fetched}
    # Records created speculatively are not known to the server listing yet.
    pending = [
        record
        for record in snapshot.collection(entity_type)
        if snapshot.is_provisional(entity_type, record.id) and record.id not in fetched_ids
    ]
    for record in pending:
        _place(entity_type, fetched, record, None)
    provisional = frozenset(
        key
        for key in snapshot.provisional
        if key[0] is not entity_type or key[1] not in fetched_ids
    )
    return _with_collection(snapshot, entity_type, fetched, provisional)


def _upsert(snapshot: StateSnapshot, action: UpsertRecord) -> StateSnapshot:
    entity_type = action.entity_type
    records = list(snapshot.collection(entity_type))
    existing = _position(records, action.record.id)
    if existing is not None and action.index is None and entity_type is not EntityType.CHAT:
        records[existing] = action.record
    else:
        if existing is not None:
            del records[existing]
        _place(entity_type, records, action.record, action.index)

    key = (entity_type, action.record.id)
    if action.provisional:
        provisional = snapshot.provisional | {key}
    else:
        provisional = snapshot.provisional - {key}
    return _with_collection(snapshot, entity_type, records, provisional)


def _reconcile(snapshot: StateSnapshot, action: ReconcileRecord) -> StateSnapshot:
    entity_type = action.entity_type
    record = action.record
    records = list(snapshot.collection(entity_type))
    target = _position(records, action.target_id)

    if record.id != action.target_id:
        duplicate = _position(records, record.id)
        if duplicate is not None:
            del records[duplicate]
            if target is not None and duplicate < target:
                target -= 1

    if target is None or entity_type is EntityType.CHAT:
        if target is not None:
            del records[target]
        _place(entity_type, records, record, None)
    else:
        records[target] = record

    provisional = snapshot.provisional - {
        (entity_type, action.target_id),
        (entity_type, record.id),
    }
    return _with_collection(snapshot, entity_type, records, provisional)


def _remove(snapshot: StateSnapshot, action: RemoveRecord) -> StateSnapshot:
    entity_type = action.entity_type
    records = list(snapshot.collection(entity_type))
    index = _position(records, action.entity_id)
    key = (entity_type, action.entity_id)
    if index is None and key not in snapshot.provisional:
        return snapshot
    if index is not None:
        del records[index]
    return _with_collection(snapshot, entity_type, records, snapshot.provisional - {key})


def _restore(snapshot: StateSnapshot, action: RestoreRecord) -> StateSnapshot:
    entity_type = action.entity_type
    records = list(snapshot.collection(entity_type))
    current = _position(records, action.entity_id)
    if current is not None:
        del records[current]

    key = (entity_type, action.entity_id)
    if action.record is None:
        provisional = snapshot.provisional - {key}
    else:
        _place(entity_type, records, action.record, action.index)
        if action.provisional:
            provisional = snapshot.provisional | {key}
        else:
            provisional = snapshot.provisional - {key}
    return _with_collection(snapshot, entity_type, records, provisional)


def _set_theme(snapshot: StateSnapshot, action: SetTheme) -> StateSnapshot:
    ui = snapshot.ui.model_copy(update={"theme": Theme(action.theme)})
    return snapshot.model_copy(update={"ui": ui})


def _toggle_theme(snapshot: StateSnapshot, action: ToggleTheme) -> StateSnapshot:
    theme = Theme.DARK if snapshot.ui.theme is Theme.LIGHT else Theme.LIGHT
    ui = snapshot.ui.model_copy(update={"theme": theme})
    return snapshot.model_copy(update={"ui": ui})


def _toggle_panel(snapshot: StateSnapshot, action: TogglePanel) -> StateSnapshot:
    ui = snapshot.ui.model_copy(update={"panel_collapsed": not snapshot.ui.panel_collapsed})
    return snapshot.model_copy(update={"ui": ui})


def _set_loading(snapshot: StateSnapshot, action: SetLoading) -> StateSnapshot:
    if snapshot.loading == action.loading:
        return snapshot
    return snapshot.model_copy(update={"loading": action.loading})


_HANDLERS: dict[type[Action], _Handler] = {
    SetSession: _set_session,  # type: ignore[dict-item]
    ResetState: _reset,  # type: ignore[dict-item]
    ReplaceCollection: _replace_collection,  # type: ignore[dict-item]
    UpsertRecord: _upsert,  # type: ignore[dict-item]
    ReconcileRecord: _reconcile,  # type: ignore[dict-item]
    RemoveRecord: _remove,  # type: ignore[dict-item]
    RestoreRecord: _restore,  # type: ignore[dict-item]
    SetTheme: _set_theme,  # type: ignore[dict-item]
    ToggleTheme: _toggle_theme,  # type: ignore[dict-item]
    TogglePanel: _toggle_panel,  # type: ignore[dict-item]
    SetLoading: _set_loading,  # type: ignore[dict-item]
}


def reduce(snapshot: StateSnapshot, action: object) -> StateSnapshot:
    """Apply ``action`` to ``snapshot`` and return the resulting snapshot.

    Unknown action kinds are ignored: the input snapshot is returned
    unchanged.

    Parameters
    ----------
    snapshot:
        The current snapshot.  It is never modified.
    action:
        The action to apply.

    Returns
    -------
    StateSnapshot
        ``snapshot`` itself when nothing changes, otherwise a new snapshot.
    """
    handler = _HANDLERS.get(type(action))
    if handler is None:
        logger.debug("reduce: ignoring unknown action %r", action)
        return snapshot
    return handler(snapshot, action)  # type: ignore[arg-type]
