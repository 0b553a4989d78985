"""Unit tests for the credential slots in dashboard_sync.storage.

Uses pytest's tmp_path fixture to isolate all file I/O.
"""
from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

import pytest

from dashboard_sync.storage import (
    CredentialStore,
    FileCredentialStore,
    InMemoryCredentialStore,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def token_path(tmp_path: Path) -> Path:
    return tmp_path / "nested" / "token"


@pytest.fixture(params=["memory", "file"])
def slot(request: pytest.FixtureRequest, token_path: Path) -> CredentialStore:
    if request.param == "memory":
        return InMemoryCredentialStore()
    return FileCredentialStore(token_path)


# ---------------------------------------------------------------------------
# Shared contract
# ---------------------------------------------------------------------------


class TestCredentialContract:
    def test_starts_empty(self, slot: CredentialStore) -> None:
        assert slot.read() is None
        assert slot.has_token() is False

    def test_write_then_read(self, slot: CredentialStore) -> None:
        slot.write("abc")
        assert slot.read() == "abc"
        assert slot.has_token() is True

    def test_write_replaces(self, slot: CredentialStore) -> None:
        slot.write("abc")
        slot.write("def")
        assert slot.read() == "def"

    def test_clear(self, slot: CredentialStore) -> None:
        slot.write("abc")
        slot.clear()
        assert slot.read() is None

    def test_clear_empty_slot_is_noop(self, slot: CredentialStore) -> None:
        slot.clear()
        assert slot.read() is None

    def test_empty_token_is_rejected(self, slot: CredentialStore) -> None:
        with pytest.raises(ValueError):
            slot.write("")


# ---------------------------------------------------------------------------
# FileCredentialStore specifics
# ---------------------------------------------------------------------------


class TestFileCredentialStore:
    def test_parent_directory_is_created(self, token_path: Path) -> None:
        FileCredentialStore(token_path).write("abc")
        assert token_path.read_text(encoding="utf-8") == "abc"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_file_is_private(self, token_path: Path) -> None:
        FileCredentialStore(token_path).write("abc")
        mode = stat.S_IMODE(os.stat(token_path).st_mode)
        assert mode & 0o077 == 0

    def test_whitespace_only_file_reads_as_empty(self, token_path: Path) -> None:
        token_path.parent.mkdir(parents=True)
        token_path.write_text("  \n", encoding="utf-8")
        assert FileCredentialStore(token_path).read() is None

    def test_token_survives_new_instance(self, token_path: Path) -> None:
        FileCredentialStore(token_path).write("abc")
        assert FileCredentialStore(str(token_path)).read() == "abc"

    def test_default_path_is_in_home(self) -> None:
        assert ".dashboard-sync" in str(FileCredentialStore().path)

    def test_repr_contains_path(self, token_path: Path) -> None:
        assert "token" in repr(FileCredentialStore(token_path))


class TestInMemoryCredentialStore:
    def test_initial_token(self) -> None:
        assert InMemoryCredentialStore("abc").read() == "abc"

    def test_repr_hides_token(self) -> None:
        assert "abc" not in repr(InMemoryCredentialStore("abc"))
