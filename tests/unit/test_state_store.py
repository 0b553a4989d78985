"""Unit tests for dashboard_sync.store.store.StateStore."""
from __future__ import annotations

import logging

import pytest

from dashboard_sync.models import EntityType, Task
from dashboard_sync.store.actions import SetLoading, ToggleTheme, UpsertRecord
from dashboard_sync.store.snapshot import StateSnapshot, Theme
from dashboard_sync.store.store import StateStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def store() -> StateStore:
    return StateStore()


def _add(task_id: str) -> UpsertRecord:
    return UpsertRecord(EntityType.TASK, Task(id=task_id, title=task_id))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_initial_snapshot_is_empty(self, store: StateStore) -> None:
        assert store.get_snapshot() == StateSnapshot()

    def test_dispatch_returns_new_snapshot(self, store: StateStore) -> None:
        result = store.dispatch(_add("1"))
        assert result is store.get_snapshot()
        assert [task.id for task in result.tasks] == ["1"]

    def test_previous_snapshots_stay_unchanged(self, store: StateStore) -> None:
        before = store.get_snapshot()
        store.dispatch(_add("1"))
        assert before.tasks == ()

    def test_custom_initial_snapshot(self) -> None:
        initial = StateSnapshot(loading=True)
        assert StateStore(initial).get_snapshot() is initial

    def test_repr(self, store: StateStore) -> None:
        store.dispatch(_add("1"))
        assert "tasks=1" in repr(store)


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------


class TestSubscribe:
    def test_listeners_receive_new_snapshot_in_order(self, store: StateStore) -> None:
        calls: list[tuple[str, StateSnapshot]] = []
        store.subscribe(lambda snapshot: calls.append(("a", snapshot)))
        store.subscribe(lambda snapshot: calls.append(("b", snapshot)))
        result = store.dispatch(_add("1"))
        assert calls == [("a", result), ("b", result)]

    def test_unchanged_snapshot_notifies_nobody(self, store: StateStore) -> None:
        calls: list[StateSnapshot] = []
        store.subscribe(calls.append)
        store.dispatch(object())
        store.dispatch(SetLoading(False))
        assert calls == []

    def test_unsubscribe(self, store: StateStore) -> None:
        calls: list[StateSnapshot] = []
        unsubscribe = store.subscribe(calls.append)
        unsubscribe()
        unsubscribe()
        store.dispatch(_add("1"))
        assert calls == []

    def test_failing_listener_does_not_stop_others(
        self, store: StateStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        calls: list[StateSnapshot] = []

        def broken(snapshot: StateSnapshot) -> None:
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(calls.append)
        with caplog.at_level(logging.ERROR, logger="dashboard_sync.store.store"):
            store.dispatch(_add("1"))
        assert len(calls) == 1
        assert "listener" in caplog.text


# ---------------------------------------------------------------------------
# Re-entrant dispatch
# ---------------------------------------------------------------------------


class TestNestedDispatch:
    def test_nested_dispatch_runs_after_current_transition(self, store: StateStore) -> None:
        seen_a: list[list[str]] = []
        seen_b: list[list[str]] = []
        nested_results: list[StateSnapshot] = []

        def chain(snapshot: StateSnapshot) -> None:
            seen_a.append([task.id for task in snapshot.tasks])
            if len(snapshot.tasks) == 1:
                nested_results.append(store.dispatch(_add("2")))

        store.subscribe(chain)
        store.subscribe(lambda snapshot: seen_b.append([task.id for task in snapshot.tasks]))
        final = store.dispatch(_add("1"))

        assert seen_a == [["1"], ["1", "2"]]
        assert seen_b == seen_a
        # The nested call returned before its action was applied.
        assert [task.id for task in nested_results[0].tasks] == ["1"]
        assert [task.id for task in final.tasks] == ["1", "2"]

    def test_store_accepts_dispatch_after_listener_error(self, store: StateStore) -> None:
        def broken(snapshot: StateSnapshot) -> None:
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.dispatch(ToggleTheme())
        assert store.dispatch(ToggleTheme()).ui.theme is Theme.LIGHT

    def test_failed_action_drops_queued_actions(
        self, store: StateStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from dashboard_sync.store.reducer import reduce as real_reduce

        def reduce(snapshot: StateSnapshot, action: object) -> StateSnapshot:
            if isinstance(action, ToggleTheme):
                raise RuntimeError("broken reducer")
            return real_reduce(snapshot, action)

        monkeypatch.setattr("dashboard_sync.store.store.reduce", reduce)

        def chain(snapshot: StateSnapshot) -> None:
            if len(snapshot.tasks) == 1 and not snapshot.loading:
                store.dispatch(ToggleTheme())
                store.dispatch(SetLoading(True))

        store.subscribe(chain)
        with pytest.raises(RuntimeError):
            store.dispatch(_add("1"))

        after = store.dispatch(_add("2"))
        assert [task.id for task in after.tasks] == ["1", "2"]
        assert after.loading is False
