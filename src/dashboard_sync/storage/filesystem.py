"""Filesystem credential slot.

Persists the bearer token to a single file so a session can be resumed
after a restart.  Defaults to ``~/.dashboard-sync/token``.

Classes
-------
- FileCredentialStore  — one-file token storage
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from dashboard_sync.storage.base import CredentialStore

logger = logging.getLogger(__name__)

_DEFAULT_TOKEN_PATH: Path = Path.home() / ".dashboard-sync" / "token"


class FileCredentialStore(CredentialStore):
    """Stores the token in one file readable by the owner only.

    Parameters
    ----------
    path:
        Location of the token file.  Its parent directory is created on
        first write.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path: Path = Path(path) if path is not None else _DEFAULT_TOKEN_PATH

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        """Return the token from disk, or None if the file is absent or blank."""
        if not self._path.exists():
            return None
        token = self._path.read_text(encoding="utf-8").strip()
        return token or None

    def write(self, token: str) -> None:
        """Write ``token`` to the file, creating it with mode 0600."""
        if not token:
            raise ValueError("token must be a non-empty string")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(token)
        logger.debug("FileCredentialStore: wrote token to %s", self._path)

    def clear(self) -> None:
        """Delete the token file if it exists."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
        logger.debug("FileCredentialStore: removed %s", self._path)

    def __repr__(self) -> str:
        return f"FileCredentialStore(path={str(self._path)!r})"
