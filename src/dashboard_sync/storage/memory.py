"""In-memory credential slot.

The token is lost when the process exits.  Useful for tests and for
clients that must not touch the disk.

Classes
-------
- InMemoryCredentialStore  — token held in an attribute
"""
from __future__ import annotations

from dashboard_sync.storage.base import CredentialStore


class InMemoryCredentialStore(CredentialStore):
    """Token slot that lives only as long as this object.

    Parameters
    ----------
    token:
        Optional initial token.
    """

    def __init__(self, token: str | None = None) -> None:
        self._token: str | None = token or None

    def read(self) -> str | None:
        return self._token

    def write(self, token: str) -> None:
        if not token:
            raise ValueError("token must be a non-empty string")
        self._token = token

    def clear(self) -> None:
        self._token = None

    def __repr__(self) -> str:
        return f"InMemoryCredentialStore(has_token={self._token is not None})"
