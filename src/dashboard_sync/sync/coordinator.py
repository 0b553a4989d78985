"""Optimistic mutation coordinator.

Applies task, chat and file mutations to the store before the backend has
answered, then reconciles the store with the backend's answer or rolls the
speculative change back.

Mutations are serialized per entity: at most one request per
``(entity_type, id)`` is in flight, later intents for the same entity wait
in a FIFO queue, and different entities proceed independently.  A rollback
restores exactly the fragment the failed mutation replaced, so changes to
other entities that landed in the meantime survive.

Classes
-------
- OptimisticMutationCoordinator  — submit / apply / reset
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from dashboard_sync.errors import UnsupportedIntentError
from dashboard_sync.gateway.client import ApiGateway
from dashboard_sync.gateway.endpoints import (
    ChatEndpoints,
    ChatReply,
    FileEndpoints,
    TaskEndpoints,
)
from dashboard_sync.gateway.results import ApiResult, ErrorDescriptor, ErrorKind
from dashboard_sync.models import (
    ChatExchange,
    EntityKey,
    EntityType,
    FileAsset,
    Record,
    Task,
    TaskStatus,
    UploadFile,
    apply_changes,
    utc_now,
    wire_subset,
)
from dashboard_sync.store.actions import (
    ReconcileRecord,
    RemoveRecord,
    RestoreRecord,
    UpsertRecord,
)
from dashboard_sync.store.snapshot import StateSnapshot
from dashboard_sync.store.store import StateStore
from dashboard_sync.sync.intents import (
    MutationIntent,
    MutationKind,
    MutationOutcome,
    OutcomeStatus,
)
from dashboard_sync.sync.notifications import NotificationChannel

logger = logging.getLogger(__name__)

PROVISIONAL_PREFIX = "tmp-"
ALIAS_LIMIT = 256

SUPPORTED_KINDS: dict[EntityType, frozenset[MutationKind]] = {
    EntityType.TASK: frozenset(MutationKind),
    EntityType.FILE: frozenset({MutationKind.CREATE, MutationKind.DELETE}),
    EntityType.CHAT: frozenset({MutationKind.CREATE}),
}

_NOUNS: dict[EntityType, str] = {
    EntityType.TASK: "task",
    EntityType.FILE: "file",
    EntityType.CHAT: "message",
}

_VERBS: dict[MutationKind, str] = {
    MutationKind.CREATE: "create",
    MutationKind.UPDATE: "update",
    MutationKind.DELETE: "delete",
    MutationKind.MOVE: "move",
}


def _new_provisional_id() -> str:
    return f"{PROVISIONAL_PREFIX}{uuid.uuid4().hex}"


class _Discard(Exception):
    """Internal signal: settle the intent as DISCARDED without a request."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.VALIDATION) -> None:
        super().__init__(message)
        self.error = ErrorDescriptor(kind=kind, message=message)


class _NoOp(Exception):
    """Internal signal: settle the intent as NOOP without a request."""


@dataclass(frozen=True)
class _Fragment:
    """What a speculative change replaced: a record at an index, or absence."""

    record: Record | None
    index: int | None
    provisional: bool


@dataclass
class _Pending:
    intent: MutationIntent
    future: asyncio.Future[MutationOutcome]
    generation: int
    provisional_id: str | None = None
    fragment: _Fragment | None = None
    speculative: Record | None = None
    request: dict[str, Any] = field(default_factory=dict)

    @property
    def target_id(self) -> str:
        """Id the entity currently has in the store."""
        return self.intent.entity_id or self.provisional_id  # type: ignore[return-value]


Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


class OptimisticMutationCoordinator:
    """Serialize, speculatively apply, and reconcile entity mutations.

    Parameters
    ----------
    store:
        Store the speculative, reconciled and restored records go to.
    gateway:
        Gateway used for the backend calls.
    notifications:
        Channel on which failures are published.  A private channel is
        created when omitted.
    clock:
        Source of the timestamps stamped on speculative records.
    id_factory:
        Source of provisional ids for creates.
    alias_limit:
        Number of committed provisional ids that still resolve to their
        server id.  The oldest are forgotten first.

    Example
    -------
    ::

        coordinator = OptimisticMutationCoordinator(store, gateway)
        outcome = await coordinator.apply(MutationIntent.move_task("42", "done"))
        if not outcome.succeeded:
            ...
    """

    def __init__(
        self,
        store: StateStore,
        gateway: ApiGateway,
        *,
        notifications: NotificationChannel | None = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = _new_provisional_id,
        alias_limit: int = ALIAS_LIMIT,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._tasks_api = TaskEndpoints(gateway)
        self._files_api = FileEndpoints(gateway)
        self._chat_api = ChatEndpoints(gateway)
        self._notifications = notifications or NotificationChannel()
        self._clock = clock
        self._id_factory = id_factory
        self._alias_limit = alias_limit

        # A key is present while a mutation for it is in flight; the deque
        # holds the intents waiting behind it.
        self._queues: dict[EntityKey, deque[_Pending]] = {}
        # Deleted keys with a queue.  True once the backend confirmed the
        # delete; dropped with the queue.
        self._tombstones: dict[EntityKey, bool] = {}
        # Provisional id -> server id, for intents submitted after reconcile.
        self._aliases: OrderedDict[EntityKey, str] = OrderedDict()
        self._generation = 0
        self._running: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, intent: MutationIntent) -> asyncio.Future[MutationOutcome]:
        """Queue ``intent`` and return a future resolving to its outcome.

        The speculative change is applied before this method returns when
        the entity has no mutation in flight.  Must be called from a
        running event loop.

        Raises
        ------
        UnsupportedIntentError
            If ``intent.kind`` is not available for its entity type.
        """
        if intent.kind not in SUPPORTED_KINDS[intent.entity_type]:
            raise UnsupportedIntentError(intent.entity_type.value, intent.kind.value)

        loop = asyncio.get_running_loop()
        if intent.entity_id is not None:
            alias = self._aliases.get((intent.entity_type, intent.entity_id))
            if alias is not None:
                intent = intent.with_entity_id(alias)

        pending = _Pending(intent, loop.create_future(), self._generation)
        if intent.kind is MutationKind.CREATE:
            pending.provisional_id = self._id_factory()
        key: EntityKey = (intent.entity_type, pending.target_id)

        queue = self._queues.get(key)
        if queue is not None:
            queue.append(pending)
            logger.debug("Coordinator: queued %r behind %d pending", intent, len(queue))
            return pending.future

        self._queues[key] = deque()
        self._start(key, pending)
        return pending.future

    async def apply(self, intent: MutationIntent) -> MutationOutcome:
        """Submit ``intent`` and wait for its outcome."""
        return await self.submit(intent)

    def is_busy(self, entity_type: EntityType, entity_id: str) -> bool:
        """Return True while a mutation for the entity is in flight."""
        return (EntityType(entity_type), entity_id) in self._queues

    @property
    def pending_count(self) -> int:
        """Number of intents in flight or queued."""
        return sum(1 + len(queue) for queue in self._queues.values())

    async def drain(self) -> None:
        """Wait until every running mutation has settled."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def reset(self) -> None:
        """Abandon all queued intents and forget per-entity state.

        Called on session teardown.  Requests already in flight are not
        cancelled; their results are ignored when they arrive.
        """
        self._generation += 1
        abandoned = 0
        for queue in self._queues.values():
            while queue:
                pending = queue.popleft()
                self._resolve(pending, self._outcome(pending, OutcomeStatus.ABANDONED))
                abandoned += 1
        self._queues.clear()
        self._tombstones.clear()
        self._aliases.clear()
        if abandoned:
            logger.info("Coordinator: reset abandoned %d queued intents", abandoned)

    # ------------------------------------------------------------------
    # Queue handling
    # ------------------------------------------------------------------

    def _start(self, key: EntityKey, pending: _Pending) -> None:
        """Begin ``pending``; settle immediately-resolved intents in a loop."""
        current: _Pending | None = pending
        while current is not None:
            outcome = self._begin(key, current)
            if outcome is None:
                task = asyncio.ensure_future(self._run(key, current))
                self._running.add(task)
                task.add_done_callback(self._running.discard)
                return
            self._resolve(current, outcome)
            current = self._next(key)

    def _next(self, key: EntityKey) -> _Pending | None:
        queue = self._queues.get(key)
        if queue is None:
            return None
        if queue:
            return queue.popleft()
        del self._queues[key]
        # Once drained, the store no longer holds a deleted or failed record
        # and later intents are discarded as not loaded.
        self._tombstones.pop(key, None)
        return None

    def _advance(self, key: EntityKey) -> None:
        following = self._next(key)
        if following is not None:
            self._start(key, following)

    def _rekey(self, old_key: EntityKey, new_key: EntityKey) -> EntityKey | None:
        """Move the queue behind a committed create to the server id.

        Returns the key to advance, or None when another mutation already
        owns ``new_key`` and will advance the merged queue itself.
        """
        queue = self._queues.pop(old_key, deque())
        self._aliases[old_key] = new_key[1]
        while len(self._aliases) > self._alias_limit:
            self._aliases.popitem(last=False)
        for waiting in queue:
            waiting.intent = waiting.intent.with_entity_id(new_key[1])
        existing = self._queues.get(new_key)
        if existing is not None:
            existing.extend(queue)
            return None
        self._queues[new_key] = queue
        return new_key

    # ------------------------------------------------------------------
    # Speculative apply
    # ------------------------------------------------------------------

    def _begin(self, key: EntityKey, pending: _Pending) -> MutationOutcome | None:
        """Apply ``pending`` speculatively.

        Returns an outcome when the intent settles without a request,
        otherwise None after the speculative change was dispatched.
        """
        intent = pending.intent
        if key in self._tombstones:
            noun = _NOUNS[intent.entity_type]
            return self._discard(pending, _Discard(f"The {noun} has been deleted."))

        snapshot = self._store.get_snapshot()
        try:
            if intent.kind is MutationKind.CREATE:
                self._speculate_create(pending, snapshot)
            elif intent.kind is MutationKind.DELETE:
                self._speculate_delete(pending, snapshot)
                self._tombstones[key] = False
            elif intent.kind is MutationKind.MOVE:
                self._speculate_move(pending, snapshot)
            else:
                self._speculate_update(pending, snapshot)
        except _Discard as signal:
            return self._discard(pending, signal)
        except _NoOp:
            logger.debug("Coordinator: %r is a no-op", intent)
            return self._outcome(pending, OutcomeStatus.NOOP, record=pending.speculative)
        logger.debug("Coordinator: applied %r speculatively", intent)
        return None

    def _existing(self, pending: _Pending, snapshot: StateSnapshot) -> Record:
        intent = pending.intent
        assert intent.entity_id is not None
        record = snapshot.find(intent.entity_type, intent.entity_id)
        if record is None:
            noun = _NOUNS[intent.entity_type]
            raise _Discard(f"The {noun} {intent.entity_id!r} is not loaded.")
        pending.fragment = _Fragment(
            record=record,
            index=snapshot.index_of(intent.entity_type, intent.entity_id),
            provisional=snapshot.is_provisional(intent.entity_type, intent.entity_id),
        )
        return record

    def _speculate_create(self, pending: _Pending, snapshot: StateSnapshot) -> None:
        intent = pending.intent
        payload = intent.payload
        now = self._clock()
        provisional_id = pending.provisional_id
        record: Record

        if intent.entity_type is EntityType.TASK:
            title = str(payload.get("title") or "").strip()
            if not title:
                raise _Discard("A task title is required.")
            try:
                record = Task(
                    id=provisional_id,
                    title=title,
                    description=payload.get("description") or "",
                    status=payload.get("status") or TaskStatus.TODO,
                    created_at=now,
                    updated_at=now,
                )
            except ValidationError as exc:
                raise _Discard(f"Invalid task: {exc.errors()[0]['msg']}") from exc
        elif intent.entity_type is EntityType.FILE:
            upload = payload.get("file")
            if not isinstance(upload, UploadFile):
                raise _Discard("No file to upload.")
            rejected = self._gateway.check_upload(upload)
            if rejected is not None:
                assert rejected.error is not None
                raise _Discard(rejected.error.message, rejected.error.kind)
            record = FileAsset(
                id=provisional_id,
                name=upload.name,
                size=upload.size,
                mime_type=upload.mime_type,
                uploaded_at=now,
            )
        else:
            message = str(payload.get("message") or "").strip()
            if not message:
                raise _Discard("Message cannot be empty.")
            if snapshot.chat and snapshot.chat[-1].timestamp > now:
                # Keep the new exchange at the end of the conversation.
                now = snapshot.chat[-1].timestamp
            record = ChatExchange(id=provisional_id, message=message, timestamp=now)

        pending.fragment = _Fragment(record=None, index=None, provisional=False)
        pending.speculative = record
        self._store.dispatch(UpsertRecord(intent.entity_type, record, provisional=True))

    def _speculate_delete(self, pending: _Pending, snapshot: StateSnapshot) -> None:
        self._existing(pending, snapshot)
        intent = pending.intent
        self._store.dispatch(RemoveRecord(intent.entity_type, intent.entity_id))  # type: ignore[arg-type]

    def _speculate_update(self, pending: _Pending, snapshot: StateSnapshot) -> None:
        intent = pending.intent
        if not intent.payload:
            raise _NoOp()
        if "id" in intent.payload:
            raise _Discard("The id of a record cannot be changed.")
        current = self._existing(pending, snapshot)
        try:
            updated = apply_changes(current, {**intent.payload, "updated_at": self._clock()})
            pending.request = wire_subset(updated, intent.payload.keys())
        except (ValueError, ValidationError) as exc:
            raise _Discard(f"Invalid change: {exc}") from exc
        pending.speculative = updated
        self._store.dispatch(UpsertRecord(intent.entity_type, updated))

    def _speculate_move(self, pending: _Pending, snapshot: StateSnapshot) -> None:
        intent = pending.intent
        current = self._existing(pending, snapshot)
        assert isinstance(current, Task)
        try:
            target = TaskStatus(intent.payload.get("status"))
        except ValueError as exc:
            raise _Discard(f"Unknown status {intent.payload.get('status')!r}.") from exc
        position = intent.payload.get("position")
        if position is not None and (not isinstance(position, int) or position < 0):
            raise _Discard("Position must be a non-negative integer.")

        others = [task for task in snapshot.tasks if task.id != current.id]
        column = [index for index, task in enumerate(others) if task.status is target]
        if position is not None:
            position = min(position, len(column))

        if current.status is target:
            here = [task.id for task in snapshot.tasks_by_status(target)].index(current.id)
            if position is None or position == here:
                pending.speculative = current
                raise _NoOp()

        index: int | None = None
        if position is not None and column:
            index = column[position] if position < len(column) else column[-1] + 1

        moved = apply_changes(current, {"status": target, "updated_at": self._clock()})
        pending.speculative = moved
        pending.request = {"status": target.value}
        self._store.dispatch(UpsertRecord(EntityType.TASK, moved, index=index))

    # ------------------------------------------------------------------
    # Remote call and settlement
    # ------------------------------------------------------------------

    async def _run(self, key: EntityKey, pending: _Pending) -> None:
        try:
            result = await self._remote(pending)
        except Exception as exc:
            logger.exception("Coordinator: %r failed unexpectedly", pending.intent)
            if pending.generation == self._generation:
                self._rollback(pending)
            if not pending.future.done():
                pending.future.set_exception(exc)
            if pending.generation == self._generation:
                self._advance(key)
            return

        if pending.generation != self._generation:
            logger.debug("Coordinator: ignoring result for %r after reset", pending.intent)
            self._resolve(pending, self._outcome(pending, OutcomeStatus.ABANDONED))
            return

        if result.success:
            outcome, advance_key = self._commit(key, pending, result.data)
        else:
            outcome, advance_key = self._fail(key, pending, result.error), key  # type: ignore[arg-type]
        self._resolve(pending, outcome)
        if advance_key is not None and pending.generation == self._generation:
            self._advance(advance_key)

    async def _remote(self, pending: _Pending) -> ApiResult[Any]:
        intent = pending.intent
        record = pending.speculative

        if intent.entity_type is EntityType.TASK:
            if intent.kind is MutationKind.CREATE:
                assert isinstance(record, Task)
                return await self._tasks_api.create(
                    record.title, record.description, record.status
                )
            if intent.kind is MutationKind.DELETE:
                return await self._tasks_api.delete(intent.entity_id)  # type: ignore[arg-type]
            return await self._tasks_api.update(intent.entity_id, pending.request)  # type: ignore[arg-type]

        if intent.entity_type is EntityType.FILE:
            if intent.kind is MutationKind.CREATE:
                return await self._files_api.upload(intent.payload["file"])
            return await self._files_api.delete(intent.entity_id)  # type: ignore[arg-type]

        assert isinstance(record, ChatExchange)
        return await self._chat_api.send(record.message)

    def _commit(
        self, key: EntityKey, pending: _Pending, data: Any
    ) -> tuple[MutationOutcome, EntityKey | None]:
        intent = pending.intent

        if intent.kind is MutationKind.DELETE:
            self._tombstones[key] = True
            self._store.dispatch(RemoveRecord(intent.entity_type, pending.target_id))
            logger.debug("Coordinator: committed %r", intent)
            return self._outcome(pending, OutcomeStatus.COMMITTED), key

        record = self._authoritative(pending, data)
        self._store.dispatch(ReconcileRecord(intent.entity_type, pending.target_id, record))
        logger.debug("Coordinator: committed %r as %s", intent, record.id)

        advance_key: EntityKey | None = key
        if intent.kind is MutationKind.CREATE and record.id != pending.provisional_id:
            advance_key = self._rekey(key, (intent.entity_type, record.id))
        return self._outcome(pending, OutcomeStatus.COMMITTED, record=record), advance_key

    def _authoritative(self, pending: _Pending, data: Any) -> Record:
        if isinstance(data, ChatReply):
            provisional = pending.speculative
            assert isinstance(provisional, ChatExchange)
            return ChatExchange(
                id=data.id or f"chat-{provisional.id.removeprefix(PROVISIONAL_PREFIX)}",
                message=provisional.message,
                response=data.response,
                source=data.source,
                timestamp=data.timestamp or provisional.timestamp,
            )
        return data

    def _fail(
        self, key: EntityKey, pending: _Pending, error: ErrorDescriptor
    ) -> MutationOutcome:
        intent = pending.intent
        if error.kind is ErrorKind.AUTH:
            # Session teardown owns the store from here on.
            logger.info("Coordinator: abandoning %r after auth failure", intent)
            return self._outcome(pending, OutcomeStatus.ABANDONED, error=error)

        self._rollback(pending)
        if intent.kind is MutationKind.CREATE:
            # Anything queued behind a failed create targets an id that
            # will never exist.
            self._tombstones[key] = True
        logger.warning(
            "Coordinator: rolled back %r (%s: %s)", intent, error.kind.value, error.message
        )
        self._notifications.report(error, self._context(intent))
        return self._outcome(pending, OutcomeStatus.ROLLED_BACK, error=error)

    def _rollback(self, pending: _Pending) -> None:
        fragment = pending.fragment
        if fragment is None:
            return
        self._store.dispatch(
            RestoreRecord(
                pending.intent.entity_type,
                pending.target_id,
                fragment.record,
                index=fragment.index,
                provisional=fragment.provisional,
            )
        )

    # ------------------------------------------------------------------
    # Outcomes
    # ------------------------------------------------------------------

    def _discard(self, pending: _Pending, signal: _Discard) -> MutationOutcome:
        logger.info("Coordinator: discarded %r (%s)", pending.intent, signal.error.message)
        self._notifications.report(signal.error, self._context(pending.intent))
        return self._outcome(pending, OutcomeStatus.DISCARDED, error=signal.error)

    def _outcome(
        self,
        pending: _Pending,
        status: OutcomeStatus,
        *,
        record: Record | None = None,
        error: ErrorDescriptor | None = None,
    ) -> MutationOutcome:
        return MutationOutcome(
            intent=pending.intent,
            status=status,
            record=record,
            error=error,
            provisional_id=pending.provisional_id,
        )

    @staticmethod
    def _resolve(pending: _Pending, outcome: MutationOutcome) -> None:
        if not pending.future.done():
            pending.future.set_result(outcome)

    @staticmethod
    def _context(intent: MutationIntent) -> str:
        if intent.entity_type is EntityType.CHAT:
            return "Could not send message"
        return f"Could not {_VERBS[intent.kind]} {_NOUNS[intent.entity_type]}"

    def __repr__(self) -> str:
        return (
            f"OptimisticMutationCoordinator(pending={self.pending_count},"
            f" generation={self._generation})"
        )
