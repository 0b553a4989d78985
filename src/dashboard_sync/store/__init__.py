"""State store subpackage.

Public surface
--------------
- StateStore      — single-writer container with dispatch/subscribe
- StateSnapshot   — immutable view of all client-side state
- UiFlags, Theme  — UI-scoped flags held in the snapshot
- reduce          — the pure transition function
- actions         — the action dataclasses accepted by ``dispatch``
"""
from __future__ import annotations

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
from dashboard_sync.store.reducer import reduce
from dashboard_sync.store.snapshot import StateSnapshot, Theme, UiFlags
from dashboard_sync.store.store import StateStore

__all__ = [
    "Action",
    "ReconcileRecord",
    "RemoveRecord",
    "ReplaceCollection",
    "ResetState",
    "RestoreRecord",
    "SetLoading",
    "SetSession",
    "SetTheme",
    "StateSnapshot",
    "StateStore",
    "Theme",
    "TogglePanel",
    "ToggleTheme",
    "UiFlags",
    "UpsertRecord",
    "reduce",
]
