"""Notification channel for user-visible messages.

The core never talks to a presentation layer directly.  It publishes
``Notification`` values here; a UI adapter subscribes and renders them as
toasts, status lines, or anything else.

Classes
-------
- NotificationLevel    — info / success / error
- Notification         — one message
- NotificationChannel  — publish/subscribe with a bounded history
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from dashboard_sync.gateway.results import ErrorDescriptor, ErrorKind

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient, human-readable message.

    Parameters
    ----------
    level:
        Severity used by the presentation layer to pick a style.
    message:
        Text to show.
    error_kind:
        The failure class, for error notifications that came from a result.
    created_at:
        When the notification was published (UTC).
    """

    level: NotificationLevel
    message: str
    error_kind: ErrorKind | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


NotificationListener = Callable[[Notification], None]


class NotificationChannel:
    """Fan notifications out to subscribers and keep the most recent ones.

    Parameters
    ----------
    history:
        Number of notifications retained for ``recent``.  Zero keeps none.
    """

    def __init__(self, history: int = 50) -> None:
        self._recent: deque[Notification] = deque(maxlen=history)
        self._listeners: list[NotificationListener] = []

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register ``listener``; return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, notification: Notification) -> None:
        self._recent.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                logger.exception("NotificationChannel: listener %r failed", listener)

    def info(self, message: str) -> None:
        self.publish(Notification(NotificationLevel.INFO, message))

    def success(self, message: str) -> None:
        self.publish(Notification(NotificationLevel.SUCCESS, message))

    def error(self, message: str, kind: ErrorKind | None = None) -> None:
        self.publish(Notification(NotificationLevel.ERROR, message, error_kind=kind))

    def report(self, error: ErrorDescriptor, context: str = "") -> None:
        """Publish a recoverable failure.

        Auth failures are not published: the session teardown replaces
        them with navigation to the login surface.
        """
        if error.kind is ErrorKind.AUTH:
            return
        message = f"{context}: {error.message}" if context else error.message
        self.error(message, error.kind)

    def recent(self) -> list[Notification]:
        """Return retained notifications, oldest first."""
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()
