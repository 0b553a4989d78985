"""Typed wrappers over the dashboard HTTP surface.

Each wrapper names one backend operation and the model its response is
validated against.  Request bodies use the camelCase names the backend
expects.

Classes
-------
- LoginResponse   — body of a successful sign-in
- ChatReply       — body of a chat send
- ApiKeyResponse  — body of an API key regeneration
- AuthEndpoints   — /auth/*
- ChatEndpoints   — /chat, /chat/history
- TaskEndpoints   — /tasks
- FileEndpoints   — /files
"""
from __future__ import annotations

from datetime import datetime
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator

from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.gateway.results import ApiResult
from dashboard_sync.models import (
    ChatExchange,
    ChatSource,
    FileAsset,
    Task,
    TaskStatus,
    UploadFile,
    UserProfile,
    coerce_chat_source,
)


def _item_path(collection: str, entity_id: str) -> str:
    return f"{collection}/{quote(entity_id, safe='')}"


class LoginResponse(BaseModel):
    token: str
    user: UserProfile

    model_config = {"frozen": True}


class ChatReply(BaseModel):
    """Response to a chat message.  Newer backends also return an id and timestamp."""

    response: str
    source: ChatSource
    id: str | None = None
    timestamp: datetime | None = None

    model_config = {"frozen": True}

    @field_validator("source", mode="before")
    @classmethod
    def _map_legacy_source(cls, value: Any) -> Any:
        return coerce_chat_source(value)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ApiKeyResponse(BaseModel):
    api_key: str = Field(alias="apiKey")

    model_config = {"frozen": True, "populate_by_name": True}


class _Endpoints:
    def __init__(self, gateway: ApiGateway) -> None:
        self._gateway = gateway


class AuthEndpoints(_Endpoints):
    """Sign-in and account management."""

    async def login(self, email: str, password: str) -> ApiResult[LoginResponse]:
        return await self._gateway.request(
            "POST",
            "/auth/login",
            {"email": email, "password": password},
            response_model=LoginResponse,
            authenticate=False,
        )

    async def profile(self) -> ApiResult[UserProfile]:
        return await self._gateway.request("GET", "/auth/me", response_model=UserProfile)

    async def forgot_password(self, email: str) -> ApiResult[Any]:
        return await self._gateway.request(
            "POST", "/auth/forgot-password", {"email": email}, authenticate=False
        )

    async def reset_password(self, token: str, password: str) -> ApiResult[Any]:
        return await self._gateway.request(
            "POST",
            "/auth/reset-password",
            {"token": token, "password": password},
            authenticate=False,
        )

    async def change_password(
        self, current_password: str, new_password: str
    ) -> ApiResult[Any]:
        return await self._gateway.request(
            "POST",
            "/auth/change-password",
            {"currentPassword": current_password, "newPassword": new_password},
        )

    async def regenerate_api_key(self) -> ApiResult[ApiKeyResponse]:
        return await self._gateway.request(
            "POST", "/auth/regen-key", response_model=ApiKeyResponse
        )


class ChatEndpoints(_Endpoints):
    async def send(self, message: str) -> ApiResult[ChatReply]:
        return await self._gateway.request(
            "POST", "/chat", {"message": message}, response_model=ChatReply
        )

    async def history(self) -> ApiResult[list[ChatExchange]]:
        return await self._gateway.request(
            "GET", "/chat/history", response_model=list[ChatExchange]
        )


class TaskEndpoints(_Endpoints):
    async def list(self) -> ApiResult[list[Task]]:
        return await self._gateway.request("GET", "/tasks", response_model=list[Task])

    async def create(
        self,
        title: str,
        description: str = "",
        status: TaskStatus | str = TaskStatus.TODO,
    ) -> ApiResult[Task]:
        body = {
            "title": title,
            "description": description,
            "status": TaskStatus(status).value,
        }
        return await self._gateway.request("POST", "/tasks", body, response_model=Task)

    async def update(self, task_id: str, changes: dict[str, Any]) -> ApiResult[Task]:
        """Send a partial task; ``changes`` must already use wire names."""
        return await self._gateway.request(
            "PUT", _item_path("/tasks", task_id), changes, response_model=Task
        )

    async def delete(self, task_id: str) -> ApiResult[Any]:
        return await self._gateway.request("DELETE", _item_path("/tasks", task_id))


class FileEndpoints(_Endpoints):
    async def list(self) -> ApiResult[list[FileAsset]]:
        return await self._gateway.request("GET", "/files", response_model=list[FileAsset])

    async def upload(self, file: UploadFile) -> ApiResult[FileAsset]:
        return await self._gateway.upload("/files/upload", file, response_model=FileAsset)

    async def delete(self, file_id: str) -> ApiResult[Any]:
        return await self._gateway.request("DELETE", _item_path("/files", file_id))
