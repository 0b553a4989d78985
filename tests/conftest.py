"""Shared fixtures: an in-process fake of the dashboard backend.

``FakeBackend`` answers the dashboard routes from dictionaries through
``httpx.MockTransport``, so no server or network is required.  Tests can
make a route fail, or hold its requests until released to control the
order in which responses arrive.
"""
from __future__ import annotations

import asyncio
import json
import re
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest

from dashboard_sync.config import SyncConfig
from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.models import EntityType, Task
from dashboard_sync.storage.memory import InMemoryCredentialStore
from dashboard_sync.store.actions import ReplaceCollection
from dashboard_sync.store.store import StateStore
from dashboard_sync.sync.notifications import NotificationChannel

BASE_URL = "http://dashboard.test/api"
STAMP = "2024-01-01T09:00:00Z"

_PUBLIC_ROUTES = {"/auth/login", "/auth/forgot-password", "/auth/reset-password"}


class Gate:
    """Holds requests to one route until ``release`` is called."""

    def __init__(self) -> None:
        self.arrived = asyncio.Event()
        self.count = 0
        self._released = asyncio.Event()

    def release(self) -> None:
        self._released.set()

    async def wait(self) -> None:
        self.count += 1
        self.arrived.set()
        await self._released.wait()


class FakeBackend:
    """In-memory dashboard backend."""

    def __init__(self) -> None:
        self.users: dict[str, tuple[str, dict[str, Any]]] = {
            "ada@example.com": ("secret", {"id": "u1", "email": "ada@example.com", "name": "Ada"}),
            "bob@example.com": ("hunter2", {"id": "u2", "email": "bob@example.com", "name": "Bob"}),
        }
        self.tasks: dict[str, dict[str, Any]] = {}
        self.files: dict[str, dict[str, Any]] = {}
        self.history: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self._failures: dict[tuple[str, str], tuple[Any, Any]] = {}
        self._gates: dict[tuple[str, str], Gate] = {}
        self._next_id = 100

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add_task(self, task_id: str, title: str, status: str = "todo") -> dict[str, Any]:
        task = {
            "id": task_id,
            "title": title,
            "description": "",
            "status": status,
            "createdAt": STAMP,
            "updatedAt": STAMP,
        }
        self.tasks[task_id] = task
        return task

    def add_file(self, file_id: str, name: str, size: int = 3) -> dict[str, Any]:
        asset = {"id": file_id, "name": name, "size": size, "mimeType": "text/plain"}
        self.files[file_id] = asset
        return asset

    def fail(self, method: str, path: str, status: Any, body: Any = None) -> None:
        """Answer ``method path`` with ``status``; ``"network"`` drops the connection."""
        self._failures[(method, path)] = (status, body)

    def recover(self, method: str, path: str) -> None:
        self._failures.pop((method, path), None)

    def hold(self, method: str, path: str) -> Gate:
        gate = Gate()
        self._gates[(method, path)] = gate
        return gate

    def sent(self, method: str, path: str) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.method == method and self._route(request) == path
        ]

    def bodies(self, method: str, path: str) -> list[Any]:
        return [json.loads(request.content) for request in self.sent(method, path)]

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    @staticmethod
    def _route(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api")

    def _user_for(self, request: httpx.Request) -> dict[str, Any] | None:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        for _, profile in self.users.values():
            if token == f"tok-{profile['id']}":
                return profile
        return None

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, self._route(request)

        # The failure is decided on arrival, so a held request keeps it.
        failure = self._failures.get((method, path))
        gate = self._gates.get((method, path))
        if gate is not None:
            await gate.wait()

        if failure is not None:
            status, body = failure
            if status == "network":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(status, json=body)

        if path not in _PUBLIC_ROUTES:
            user = self._user_for(request)
            if user is None:
                return httpx.Response(401, json={"error": "Invalid or expired token"})
        else:
            user = None
        return self._dispatch(method, path, request, user)

    def _dispatch(
        self,
        method: str,
        path: str,
        request: httpx.Request,
        user: dict[str, Any] | None,
    ) -> httpx.Response:
        body: Any = None
        if request.headers.get("content-type", "").startswith("application/json"):
            body = json.loads(request.content)

        if (method, path) == ("POST", "/auth/login"):
            entry = self.users.get(body["email"])
            if entry is None or entry[0] != body["password"]:
                return httpx.Response(401, json={"error": "Invalid credentials"})
            profile = entry[1]
            return httpx.Response(200, json={"token": f"tok-{profile['id']}", "user": profile})
        if (method, path) == ("GET", "/auth/me"):
            return httpx.Response(200, json=user)
        if path.startswith("/auth/"):
            return httpx.Response(200, json={"success": True})

        if (method, path) == ("GET", "/tasks"):
            return httpx.Response(200, json=list(self.tasks.values()))
        if (method, path) == ("POST", "/tasks"):
            task = self.add_task(self._new_id(), body["title"], body.get("status", "todo"))
            task["description"] = body.get("description", "")
            return httpx.Response(201, json=task)
        match = re.fullmatch(r"/tasks/([^/]+)", path)
        if match:
            task_id = match.group(1)
            if task_id not in self.tasks:
                return httpx.Response(404, json={"error": "Task not found"})
            if method == "PUT":
                self.tasks[task_id].update(body)
                self.tasks[task_id]["updatedAt"] = "2024-01-02T09:00:00Z"
                return httpx.Response(200, json=self.tasks[task_id])
            if method == "DELETE":
                del self.tasks[task_id]
                return httpx.Response(200, json={"success": True})

        if (method, path) == ("GET", "/files"):
            return httpx.Response(200, json=list(self.files.values()))
        if (method, path) == ("POST", "/files/upload"):
            found = re.search(rb'filename="([^"]+)"', request.content)
            name = found.group(1).decode() if found else "upload.bin"
            asset = self.add_file(self._new_id(), name, size=len(request.content))
            return httpx.Response(201, json=asset)
        match = re.fullmatch(r"/files/([^/]+)", path)
        if match and method == "DELETE":
            if self.files.pop(match.group(1), None) is None:
                return httpx.Response(404, json={"error": "File not found"})
            return httpx.Response(200, json={"success": True})

        if (method, path) == ("GET", "/chat/history"):
            return httpx.Response(200, json=self.history)
        if (method, path) == ("POST", "/chat"):
            exchange = {
                "id": f"c{self._new_id()}",
                "message": body["message"],
                "response": f"echo: {body['message']}",
                "source": "openai",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            self.history.append(exchange)
            reply = {key: exchange[key] for key in ("id", "response", "source", "timestamp")}
            return httpx.Response(200, json=reply)

        return httpx.Response(404, json={"error": f"No route for {method} {path}"})


def load_tasks(store: StateStore, backend: FakeBackend) -> None:
    """Mirror the backend's tasks into ``store``."""
    records = [Task.model_validate(task) for task in backend.tasks.values()]
    store.dispatch(ReplaceCollection(EntityType.TASK, records))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def config() -> SyncConfig:
    return SyncConfig(base_url=BASE_URL, credential_path=None)


@pytest.fixture()
def credentials() -> InMemoryCredentialStore:
    return InMemoryCredentialStore("tok-u1")


@pytest.fixture()
def store() -> StateStore:
    return StateStore()


@pytest.fixture()
def notifications() -> NotificationChannel:
    return NotificationChannel()


@pytest.fixture()
def gateway(
    config: SyncConfig, credentials: InMemoryCredentialStore, backend: FakeBackend
) -> ApiGateway:
    return ApiGateway(config, credentials, transport=backend.transport)
