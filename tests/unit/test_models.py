"""Unit tests for dashboard_sync.models."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from dashboard_sync.models import (
    ChatExchange,
    ChatSource,
    FileAsset,
    Session,
    Task,
    TaskStatus,
    UploadFile,
    UserProfile,
    apply_changes,
    to_wire,
    wire_subset,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def task() -> Task:
    return Task.model_validate(
        {
            "id": 7,
            "title": "Write report",
            "status": "doing",
            "createdAt": "2024-01-01T09:00:00Z",
            "updatedAt": "2024-01-01T10:00:00Z",
        }
    )


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------


class TestTask:
    def test_numeric_id_becomes_string(self, task: Task) -> None:
        assert task.id == "7"

    def test_camel_case_fields_are_read(self, task: Task) -> None:
        assert task.status is TaskStatus.DOING
        assert task.updated_at == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_snake_case_fields_are_accepted(self) -> None:
        task = Task(id="1", title="t", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        assert task.created_at.year == 2024

    def test_unknown_status_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Task(id="1", title="t", status="blocked")

    def test_records_are_frozen(self, task: Task) -> None:
        with pytest.raises(ValidationError):
            task.title = "changed"  # type: ignore[misc]

    def test_to_wire_uses_camel_case(self, task: Task) -> None:
        wire = to_wire(task)
        assert wire["status"] == "doing"
        assert "updatedAt" in wire
        assert "updated_at" not in wire


# ---------------------------------------------------------------------------
# apply_changes / wire_subset
# ---------------------------------------------------------------------------


class TestApplyChanges:
    def test_returns_new_record(self, task: Task) -> None:
        changed = apply_changes(task, {"title": "Final report"})
        assert changed.title == "Final report"
        assert task.title == "Write report"

    def test_alias_keys_are_accepted(self, task: Task) -> None:
        stamp = datetime(2025, 5, 5, tzinfo=timezone.utc)
        assert apply_changes(task, {"updatedAt": stamp}).updated_at == stamp

    def test_unknown_key_raises_value_error(self, task: Task) -> None:
        with pytest.raises(ValueError, match="Unknown field"):
            apply_changes(task, {"priority": 1})

    def test_invalid_value_is_rejected(self, task: Task) -> None:
        with pytest.raises(ValidationError):
            apply_changes(task, {"status": "archived"})

    def test_wire_subset_contains_only_named_fields(self, task: Task) -> None:
        changed = apply_changes(task, {"status": TaskStatus.DONE})
        assert wire_subset(changed, ["status"]) == {"status": "done"}

    def test_wire_subset_maps_to_wire_names(self) -> None:
        asset = FileAsset(id="f", name="a.txt", size=1, mime_type="text/plain")
        assert wire_subset(asset, ["mime_type"]) == {"mimeType": "text/plain"}


# ---------------------------------------------------------------------------
# ChatExchange
# ---------------------------------------------------------------------------


class TestChatExchange:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("redis", ChatSource.CACHE_FAST),
            ("pg", ChatSource.CACHE_DURABLE),
            ("openai", ChatSource.GENERATIVE),
            ("cache-durable", ChatSource.CACHE_DURABLE),
        ],
    )
    def test_source_names(self, raw: str, expected: ChatSource) -> None:
        exchange = ChatExchange(id="c1", message="hi", response="hello", source=raw)
        assert exchange.source is expected

    def test_unknown_source_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ChatExchange(id="c1", message="hi", source="carrier-pigeon")

    def test_provisional_exchange_has_no_source(self) -> None:
        assert ChatExchange(id="c1", message="hi").source is None

    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        exchange = ChatExchange(id="c1", message="hi", timestamp=datetime(2024, 1, 1, 12))
        assert exchange.timestamp.tzinfo is timezone.utc


# ---------------------------------------------------------------------------
# FileAsset / UploadFile
# ---------------------------------------------------------------------------


class TestFiles:
    @pytest.mark.parametrize("key", ["mime_type", "mimeType", "type"])
    def test_mime_type_aliases(self, key: str) -> None:
        asset = FileAsset.model_validate({"id": 1, "name": "a.png", "size": 10, key: "image/png"})
        assert asset.mime_type == "image/png"

    def test_negative_size_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FileAsset(id="f", name="a", size=-1)

    def test_upload_file_size(self) -> None:
        assert UploadFile(name="a.bin", content=b"abcd").size == 4

    def test_upload_file_from_path_guesses_type(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        upload = UploadFile.from_path(path)
        assert upload.name == "notes.txt"
        assert upload.mime_type == "text/plain"
        assert upload.content == b"hello"

    def test_upload_file_repr_omits_content(self) -> None:
        assert "abcd" not in repr(UploadFile(name="a.bin", content=b"abcd"))


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class TestSession:
    def test_repr_hides_token(self) -> None:
        session = Session(token="s3cr3t", user=UserProfile(id=1, email="ada@example.com"))
        assert "s3cr3t" not in repr(session)
        assert "s3cr3t" not in str(session)
        assert "ada@example.com" in repr(session)

    def test_user_id_is_string(self) -> None:
        assert UserProfile(id=1, email="a@b.c").id == "1"
