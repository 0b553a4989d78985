"""Synchronisation subpackage.

Public surface
--------------
- OptimisticMutationCoordinator  — speculative apply, reconcile, rollback
- MutationIntent / MutationKind  — requested changes
- MutationOutcome / OutcomeStatus — how a change settled
- CollectionLoader                — full collection loads
- NotificationChannel             — user-visible messages
"""
from __future__ import annotations

from dashboard_sync.sync.coordinator import (
    PROVISIONAL_PREFIX,
    SUPPORTED_KINDS,
    OptimisticMutationCoordinator,
)
from dashboard_sync.sync.intents import (
    MutationIntent,
    MutationKind,
    MutationOutcome,
    OutcomeStatus,
)
from dashboard_sync.sync.loader import CollectionLoader
from dashboard_sync.sync.notifications import (
    Notification,
    NotificationChannel,
    NotificationLevel,
)

__all__ = [
    "CollectionLoader",
    "MutationIntent",
    "MutationKind",
    "MutationOutcome",
    "Notification",
    "NotificationChannel",
    "NotificationLevel",
    "OptimisticMutationCoordinator",
    "OutcomeStatus",
    "PROVISIONAL_PREFIX",
    "SUPPORTED_KINDS",
]
