"""One-object client for the dashboard backend.

Example
-------
::

    from dashboard_sync import DashboardClient

    async with DashboardClient() as client:
        await client.login("ada@example.com", "secret")
        await client.refresh()
        outcome = await client.create_task("Write report")
        print(client.snapshot.tasks)

"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from dashboard_sync.config import SyncConfig, load_config
from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.gateway.results import ApiResult
from dashboard_sync.models import EntityType, Session, TaskStatus, UploadFile
from dashboard_sync.session.manager import Navigator, SessionManager
from dashboard_sync.storage.base import CredentialStore
from dashboard_sync.storage.filesystem import FileCredentialStore
from dashboard_sync.storage.memory import InMemoryCredentialStore
from dashboard_sync.store.snapshot import StateSnapshot
from dashboard_sync.store.store import StateStore
from dashboard_sync.sync.coordinator import OptimisticMutationCoordinator
from dashboard_sync.sync.intents import MutationIntent, MutationOutcome
from dashboard_sync.sync.loader import CollectionLoader
from dashboard_sync.sync.notifications import NotificationChannel

logger = logging.getLogger(__name__)


def _default_credentials(config: SyncConfig) -> CredentialStore:
    if config.credential_path is None:
        return InMemoryCredentialStore()
    return FileCredentialStore(config.credential_path)


class DashboardClient:
    """Wire the store, gateway, session and sync components together.

    Every component is built explicitly and exposed as a property, so
    callers can subscribe to the store or the notification channel
    directly.

    Parameters
    ----------
    config:
        Settings.  Loaded with ``load_config()`` when omitted.
    credentials:
        Token slot.  Defaults to a file at ``config.credential_path``, or
        an in-memory slot when that is None.
    transport:
        Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
    navigator:
        Receives the login route after the session is torn down.

    Example
    -------
    ::

        client = DashboardClient(SyncConfig(credential_path=None))
        client.store.subscribe(lambda snapshot: print(len(snapshot.tasks)))
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        *,
        credentials: CredentialStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        navigator: Navigator | None = None,
    ) -> None:
        self._config = config or load_config()
        self._credentials = credentials or _default_credentials(self._config)
        self._store = StateStore()
        self._notifications = NotificationChannel(self._config.notification_history)
        self._gateway = ApiGateway(self._config, self._credentials, transport=transport)
        self._session = SessionManager(
            self._gateway,
            self._store,
            self._credentials,
            notifications=self._notifications,
            navigator=navigator,
        )
        self._coordinator = OptimisticMutationCoordinator(
            self._store, self._gateway, notifications=self._notifications
        )
        self._session.add_teardown_listener(self._coordinator.reset)
        self._loader = CollectionLoader(
            self._store, self._gateway, notifications=self._notifications
        )
        self._session.add_teardown_listener(self._loader.reset)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def store(self) -> StateStore:
        return self._store

    @property
    def snapshot(self) -> StateSnapshot:
        """The store's current snapshot."""
        return self._store.get_snapshot()

    @property
    def gateway(self) -> ApiGateway:
        return self._gateway

    @property
    def session(self) -> SessionManager:
        return self._session

    @property
    def coordinator(self) -> OptimisticMutationCoordinator:
        return self._coordinator

    @property
    def loader(self) -> CollectionLoader:
        return self._loader

    @property
    def notifications(self) -> NotificationChannel:
        return self._notifications

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> ApiResult[Session]:
        return await self._session.login(email, password)

    async def restore(self) -> ApiResult[Session]:
        return await self._session.restore()

    def logout(self) -> None:
        self._session.logout()

    async def refresh(self) -> list[ApiResult[Any]]:
        """Load tasks, files and chat history into the store."""
        return await self._loader.refresh_all()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_task(
        self,
        title: str,
        description: str = "",
        status: TaskStatus | str = TaskStatus.TODO,
    ) -> MutationOutcome:
        return await self._coordinator.apply(
            MutationIntent.create_task(title, description, status)
        )

    async def update_task(self, task_id: str, **changes: Any) -> MutationOutcome:
        return await self._coordinator.apply(MutationIntent.update_task(task_id, **changes))

    async def move_task(
        self, task_id: str, status: TaskStatus | str, position: int | None = None
    ) -> MutationOutcome:
        return await self._coordinator.apply(
            MutationIntent.move_task(task_id, status, position)
        )

    async def delete_task(self, task_id: str) -> MutationOutcome:
        return await self._coordinator.apply(MutationIntent.delete(EntityType.TASK, task_id))

    async def send_chat(self, message: str) -> MutationOutcome:
        return await self._coordinator.apply(MutationIntent.send_chat(message))

    async def upload_file(self, file: UploadFile | str | Path) -> MutationOutcome:
        """Upload ``file``; a path is read from disk first."""
        if not isinstance(file, UploadFile):
            file = UploadFile.from_path(file)
        return await self._coordinator.apply(MutationIntent.upload_file(file))

    async def delete_file(self, file_id: str) -> MutationOutcome:
        return await self._coordinator.apply(MutationIntent.delete(EntityType.FILE, file_id))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Wait for running mutations, then close the HTTP client."""
        await self._coordinator.drain()
        await self._gateway.aclose()

    async def __aenter__(self) -> DashboardClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"DashboardClient(base_url={self._config.base_url!r},"
            f" authenticated={self._session.is_authenticated})"
        )
