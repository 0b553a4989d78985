"""Initial and on-demand collection loads.

Classes
-------
- CollectionLoader  — fetch task, file and chat lists into the store
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Sequence

from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.gateway.endpoints import ChatEndpoints, FileEndpoints, TaskEndpoints
from dashboard_sync.gateway.results import ApiResult
from dashboard_sync.models import EntityType, Record
from dashboard_sync.store.actions import ReplaceCollection, SetLoading
from dashboard_sync.store.store import StateStore
from dashboard_sync.sync.notifications import NotificationChannel

logger = logging.getLogger(__name__)


class CollectionLoader:
    """Replace whole collections with the backend's listing.

    Every load raises the store's ``loading`` flag for its duration.
    Records still being created speculatively survive a refresh.  A
    listing that arrives after ``reset`` belongs to the previous session
    and is dropped.

    Parameters
    ----------
    store:
        Store receiving ``ReplaceCollection``.
    gateway:
        Gateway used for the list calls.
    notifications:
        Channel on which failed loads are published.
    """

    def __init__(
        self,
        store: StateStore,
        gateway: ApiGateway,
        *,
        notifications: NotificationChannel | None = None,
    ) -> None:
        self._store = store
        self._tasks = TaskEndpoints(gateway)
        self._files = FileEndpoints(gateway)
        self._chat = ChatEndpoints(gateway)
        self._notifications = notifications or NotificationChannel()
        self._generation = 0

    def reset(self) -> None:
        """Ignore the results of loads started before this call."""
        self._generation += 1

    async def refresh_tasks(self) -> ApiResult[Any]:
        return await self._load(EntityType.TASK, self._tasks.list, "Could not load tasks")

    async def refresh_files(self) -> ApiResult[Any]:
        return await self._load(EntityType.FILE, self._files.list, "Could not load files")

    async def load_chat_history(self) -> ApiResult[Any]:
        return await self._load(
            EntityType.CHAT, self._chat.history, "Could not load chat history"
        )

    async def refresh_all(self) -> list[ApiResult[Any]]:
        """Load tasks, files and chat history one after another."""
        return [
            await self.refresh_tasks(),
            await self.refresh_files(),
            await self.load_chat_history(),
        ]

    async def _load(
        self,
        entity_type: EntityType,
        fetch: Callable[[], Awaitable[ApiResult[Any]]],
        context: str,
    ) -> ApiResult[Any]:
        generation = self._generation
        self._store.dispatch(SetLoading(True))
        try:
            result = await fetch()
        finally:
            self._store.dispatch(SetLoading(False))

        if generation != self._generation:
            logger.debug("CollectionLoader: dropped %s listing after reset", entity_type.value)
        elif result.success:
            records: Sequence[Record] = result.data or []
            self._store.dispatch(ReplaceCollection(entity_type, records))
            logger.debug("CollectionLoader: loaded %d %s records", len(records), entity_type.value)
        elif result.error is not None:
            self._notifications.report(result.error, context)
        return result

    def __repr__(self) -> str:
        return f"CollectionLoader(generation={self._generation})"
