"""HTTP gateway subpackage.

Public surface
--------------
- ApiGateway       — async client returning ``ApiResult`` values
- ApiResult        — success flag plus data or error
- ErrorDescriptor  — kind, message, optional HTTP status
- ErrorKind        — ValidationError / NetworkError / ServerError / AuthError
- AuthEndpoints, ChatEndpoints, TaskEndpoints, FileEndpoints
                   — typed wrappers over the backend routes
"""
from __future__ import annotations

from dashboard_sync.gateway.results import ApiResult, ErrorDescriptor, ErrorKind
from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.gateway.endpoints import (
    ApiKeyResponse,
    AuthEndpoints,
    ChatEndpoints,
    ChatReply,
    FileEndpoints,
    LoginResponse,
    TaskEndpoints,
)

__all__ = [
    "ApiGateway",
    "ApiKeyResponse",
    "ApiResult",
    "AuthEndpoints",
    "ChatEndpoints",
    "ChatReply",
    "ErrorDescriptor",
    "ErrorKind",
    "FileEndpoints",
    "LoginResponse",
    "TaskEndpoints",
]
