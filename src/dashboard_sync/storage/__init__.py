"""Credential storage subpackage.

All slots implement the ``CredentialStore`` ABC.

Public surface
--------------
- CredentialStore          — abstract base class
- InMemoryCredentialStore  — in-process token slot (useful for testing)
- FileCredentialStore      — token persisted to a single file
"""
from __future__ import annotations

from dashboard_sync.storage.base import CredentialStore
from dashboard_sync.storage.filesystem import FileCredentialStore
from dashboard_sync.storage.memory import InMemoryCredentialStore

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "InMemoryCredentialStore",
]
