"""Uniform result envelope returned by every gateway call.

Classes
-------
- ErrorKind        — the four failure classes
- ErrorDescriptor  — kind, human-readable message, optional HTTP status
- ApiResult        — success flag plus either data or an error
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from dashboard_sync.errors import ResultError

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure taxonomy.

    ``VALIDATION`` never reaches the network.  ``NETWORK`` and ``SERVER``
    are recoverable.  ``AUTH`` ends the session.
    """

    VALIDATION = "ValidationError"
    NETWORK = "NetworkError"
    SERVER = "ServerError"
    AUTH = "AuthError"

    @property
    def recoverable(self) -> bool:
        return self is not ErrorKind.AUTH


GENERIC_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "The request is invalid.",
    ErrorKind.NETWORK: "Could not reach the server.",
    ErrorKind.SERVER: "The server could not complete the request.",
    ErrorKind.AUTH: "Your session has expired.",
}


class ErrorDescriptor(BaseModel):
    kind: ErrorKind
    message: str
    status_code: int | None = None

    model_config = {"frozen": True}


class ApiResult(BaseModel, Generic[T]):
    """Outcome of one gateway call.

    Exactly one of ``data`` (on success) or ``error`` (on failure) is
    meaningful.  ``data`` may be None on success for endpoints without a
    response body.
    """

    success: bool
    data: Any = None
    error: ErrorDescriptor | None = None

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @classmethod
    def ok(cls, data: T | None = None) -> ApiResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> ApiResult[T]:
        """Build a failed result, falling back to the generic message."""
        return cls(
            success=False,
            error=ErrorDescriptor(
                kind=kind,
                message=message or GENERIC_MESSAGES[kind],
                status_code=status_code,
            ),
        )

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return ``data`` or raise ``ResultError`` if the call failed."""
        if not self.success:
            assert self.error is not None
            raise ResultError(self.error.kind.value, self.error.message)
        return self.data  # type: ignore[return-value]
