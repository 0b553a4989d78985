"""Single-writer state container.

Classes
-------
- StateStore  — holds the current snapshot, applies actions, notifies listeners
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable

from dashboard_sync.store.reducer import reduce
from dashboard_sync.store.snapshot import StateSnapshot

logger = logging.getLogger(__name__)

Listener = Callable[[StateSnapshot], None]
Unsubscribe = Callable[[], None]


class StateStore:
    """Hold the current ``StateSnapshot`` and serialize every change to it.

    Actions are applied one at a time.  A transition, including the
    notification of every listener, runs to completion before the next
    action is accepted.  An action dispatched from inside a listener is
    queued and applied once the current transition has finished, so all
    listeners observe snapshots in the same order.

    The store performs no I/O: it is a pure state container.

    Parameters
    ----------
    initial:
        Starting snapshot.  Defaults to an empty ``StateSnapshot``.
    """

    def __init__(self, initial: StateSnapshot | None = None) -> None:
        self._snapshot: StateSnapshot = initial if initial is not None else StateSnapshot()
        self._listeners: list[Listener] = []
        self._pending: deque[object] = deque()
        self._dispatching: bool = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_snapshot(self) -> StateSnapshot:
        """Return the current snapshot."""
        return self._snapshot

    def dispatch(self, action: object) -> StateSnapshot:
        """Apply ``action`` and return the resulting snapshot.

        Unknown action kinds leave the snapshot unchanged and notify nobody.
        When called re-entrantly (from a listener) the action is queued and
        the snapshot current at the time of the call is returned.  If an
        action raises, the exception propagates and queued actions are
        dropped.

        Parameters
        ----------
        action:
            The action to apply.

        Returns
        -------
        StateSnapshot
            The snapshot after ``action`` was applied.
        """
        self._pending.append(action)
        if self._dispatching:
            logger.debug("StateStore: queued nested dispatch %s", type(action).__name__)
            return self._snapshot

        self._dispatching = True
        try:
            while self._pending:
                self._apply(self._pending.popleft())
        finally:
            self._dispatching = False
            if self._pending:
                # Only reached when an action raised; the rest are not applied.
                logger.warning(
                    "StateStore: dropped %d queued actions after a failed dispatch",
                    len(self._pending),
                )
                self._pending.clear()
        return self._snapshot

    def subscribe(self, listener: Listener) -> Unsubscribe:
        """Register ``listener`` and return a function that removes it.

        The listener is called with the new snapshot after every accepted
        dispatch.  Calling the returned function more than once is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply(self, action: object) -> None:
        previous = self._snapshot
        snapshot = reduce(previous, action)
        if snapshot is previous:
            return
        self._snapshot = snapshot
        logger.debug("StateStore: applied %s", type(action).__name__)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("StateStore: listener %r failed", listener)

    def __repr__(self) -> str:
        return (
            f"StateStore(tasks={len(self._snapshot.tasks)}, "
            f"chat={len(self._snapshot.chat)}, files={len(self._snapshot.files)}, "
            f"listeners={len(self._listeners)})"
        )
