"""Exception hierarchy for programmer-facing errors.

Expected network and server failures are never raised: they travel as
``ApiResult`` values.  The exceptions here signal misuse of the library
(bad configuration, an intent the coordinator cannot perform, unwrapping a
failed result).

Classes
-------
- DashboardSyncError      — base class for every library exception
- ConfigError             — configuration could not be loaded or validated
- UnsupportedIntentError  — mutation intent not supported for its entity type
- ResultError             — raised by ``ApiResult.unwrap`` on a failed result
"""
from __future__ import annotations


class DashboardSyncError(Exception):
    """Base class for all dashboard-sync exceptions."""


class ConfigError(DashboardSyncError, ValueError):
    """Raised when configuration is missing, malformed, or out of range."""


class UnsupportedIntentError(DashboardSyncError, ValueError):
    """Raised when a mutation kind is not available for an entity type.

    Parameters
    ----------
    entity_type:
        The entity type named by the intent.
    kind:
        The mutation kind named by the intent.
    reason:
        Optional extra explanation appended to the message.
    """

    def __init__(self, entity_type: str, kind: str, reason: str = "") -> None:
        self.entity_type = entity_type
        self.kind = kind
        message = f"Cannot {kind} {entity_type!r} records."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class ResultError(DashboardSyncError):
    """Raised when ``unwrap`` is called on an unsuccessful ``ApiResult``."""

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(f"{kind}: {message}")
