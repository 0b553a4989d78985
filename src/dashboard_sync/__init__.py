"""dashboard-sync — Optimistic client-side state for the agent dashboard.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import dashboard_sync
>>> dashboard_sync.__version__
'0.1.0'
"""
from __future__ import annotations

__version__ = "0.1.0"

# Errors and configuration
from dashboard_sync.errors import (
    ConfigError,
    DashboardSyncError,
    ResultError,
    UnsupportedIntentError,
)
from dashboard_sync.config import SyncConfig, load_config

# Domain records
from dashboard_sync.models import (
    ChatExchange,
    ChatSource,
    EntityType,
    FileAsset,
    Session,
    Task,
    TaskStatus,
    UploadFile,
    UserProfile,
)

# State store
from dashboard_sync.store import (
    StateSnapshot,
    StateStore,
    Theme,
    UiFlags,
    reduce,
)

# Gateway
from dashboard_sync.gateway import ApiGateway, ApiResult, ErrorDescriptor, ErrorKind

# Credential slots
from dashboard_sync.storage import (
    CredentialStore,
    FileCredentialStore,
    InMemoryCredentialStore,
)

# Session and synchronisation
from dashboard_sync.session import SessionManager
from dashboard_sync.sync import (
    CollectionLoader,
    MutationIntent,
    MutationKind,
    MutationOutcome,
    Notification,
    NotificationChannel,
    OptimisticMutationCoordinator,
    OutcomeStatus,
)

# Facade
from dashboard_sync.client import DashboardClient

__all__ = [
    "__version__",
    "ApiGateway",
    "ApiResult",
    "ChatExchange",
    "ChatSource",
    "CollectionLoader",
    "ConfigError",
    "CredentialStore",
    "DashboardClient",
    "DashboardSyncError",
    "EntityType",
    "ErrorDescriptor",
    "ErrorKind",
    "FileAsset",
    "FileCredentialStore",
    "InMemoryCredentialStore",
    "MutationIntent",
    "MutationKind",
    "MutationOutcome",
    "Notification",
    "NotificationChannel",
    "OptimisticMutationCoordinator",
    "OutcomeStatus",
    "ResultError",
    "Session",
    "SessionManager",
    "StateSnapshot",
    "StateStore",
    "SyncConfig",
    "Task",
    "TaskStatus",
    "Theme",
    "UiFlags",
    "UnsupportedIntentError",
    "UploadFile",
    "UserProfile",
    "load_config",
    "reduce",
]
