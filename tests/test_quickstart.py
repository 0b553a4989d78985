"""End-to-end tests for the DashboardClient facade.

The client runs against the in-process fake backend: sign in, load the
board, mutate it optimistically, and lose the session.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeBackend
from dashboard_sync import (
    DashboardClient,
    EntityType,
    ErrorKind,
    FileCredentialStore,
    InMemoryCredentialStore,
    OutcomeStatus,
    SyncConfig,
    TaskStatus,
)
from dashboard_sync.session import LOGIN_ROUTE


@pytest.fixture()
def routes() -> list[str]:
    return []


@pytest.fixture()
def client(config: SyncConfig, backend: FakeBackend, routes: list[str]) -> DashboardClient:
    return DashboardClient(config, transport=backend.transport, navigator=routes.append)


class TestQuickstart:
    def test_default_components(self, client: DashboardClient) -> None:
        assert client.session.session is None
        assert client.snapshot.tasks == ()
        assert "authenticated=False" in repr(client)

    def test_credential_slot_follows_config(self, tmp_path: Path) -> None:
        client = DashboardClient(SyncConfig(credential_path=tmp_path / "token"))
        assert isinstance(client._credentials, FileCredentialStore)
        client = DashboardClient(SyncConfig(credential_path=None))
        assert isinstance(client._credentials, InMemoryCredentialStore)

    @pytest.mark.asyncio
    async def test_board_workflow(self, client: DashboardClient, backend: FakeBackend) -> None:
        backend.add_task("1", "Existing")
        async with client:
            assert (await client.login("ada@example.com", "secret")).success
            await client.refresh()
            assert [task.id for task in client.snapshot.tasks] == ["1"]

            created = await client.create_task("Write docs")
            assert created.status is OutcomeStatus.COMMITTED
            new_id = created.record.id

            moved = await client.move_task(new_id, TaskStatus.DOING)
            assert moved.status is OutcomeStatus.COMMITTED
            updated = await client.update_task("1", description="details")
            assert updated.status is OutcomeStatus.COMMITTED
            deleted = await client.delete_task("1")
            assert deleted.status is OutcomeStatus.COMMITTED

            snapshot = client.snapshot
            assert [task.id for task in snapshot.tasks] == [new_id]
            assert snapshot.tasks[0].status is TaskStatus.DOING
            assert backend.tasks[new_id]["status"] == "doing"

    @pytest.mark.asyncio
    async def test_chat_and_files(
        self, client: DashboardClient, backend: FakeBackend, tmp_path: Path
    ) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        async with client:
            await client.login("ada@example.com", "secret")
            reply = await client.send_chat("ping")
            assert reply.record.response == "echo: ping"

            uploaded = await client.upload_file(path)
            assert uploaded.status is OutcomeStatus.COMMITTED
            file_id = uploaded.record.id
            assert client.snapshot.find(EntityType.FILE, file_id) is not None

            removed = await client.delete_file(file_id)
            assert removed.status is OutcomeStatus.COMMITTED
            assert client.snapshot.files == ()

    @pytest.mark.asyncio
    async def test_expired_session_tears_everything_down(
        self, client: DashboardClient, backend: FakeBackend, routes: list[str]
    ) -> None:
        backend.add_task("1", "Existing")
        async with client:
            await client.login("ada@example.com", "secret")
            await client.refresh()
            backend.fail("PUT", "/tasks/1", 401, {"error": "expired"})

            outcome = await client.update_task("1", title="x")

            assert outcome.status is OutcomeStatus.ABANDONED
            assert client.snapshot.tasks == ()
            assert client.snapshot.session is None
            assert client.session.is_authenticated is False
            assert routes == [LOGIN_ROUTE]
            assert all(n.error_kind is not ErrorKind.AUTH for n in client.notifications.recent())

    @pytest.mark.asyncio
    async def test_restore_and_logout(self, config: SyncConfig, backend: FakeBackend) -> None:
        credentials = InMemoryCredentialStore("tok-u1")
        async with DashboardClient(
            config, credentials=credentials, transport=backend.transport
        ) as client:
            assert (await client.restore()).success
            assert client.snapshot.is_authenticated
            client.logout()
            assert credentials.read() is None
            assert not client.snapshot.is_authenticated
