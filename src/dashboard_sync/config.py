"""Runtime configuration.

Settings come from three layers, later ones winning: field defaults, an
optional YAML file, and ``DASHBOARD_SYNC_*`` environment variables.

Classes
-------
- SyncConfig  — validated settings for the gateway, credentials and channel

Functions
---------
- load_config  — build a ``SyncConfig`` from file and environment
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from dashboard_sync.errors import ConfigError

ENV_PREFIX = "DASHBOARD_SYNC_"
DEFAULT_CONFIG_PATH: Path = Path.home() / ".dashboard-sync" / "config.yaml"
DEFAULT_CREDENTIAL_PATH: Path = Path.home() / ".dashboard-sync" / "token"
MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024


class SyncConfig(BaseModel):
    """Configuration for a ``DashboardClient``.

    Parameters
    ----------
    base_url:
        Root URL of the dashboard API; every request path is appended to it.
    timeout_seconds:
        Per-request timeout passed to the HTTP client.
    max_upload_bytes:
        Largest file accepted for upload.  Larger files are rejected
        before any request is made.  Default: 10 MiB.
    credential_path:
        File holding the persisted bearer token.  None keeps the token in
        memory only.
    notification_history:
        Number of notifications retained by the notification channel.
    """

    base_url: str = "http://localhost:8000/api"
    timeout_seconds: float = Field(default=30.0, gt=0)
    max_upload_bytes: int = Field(default=MAX_UPLOAD_BYTES, gt=0)
    credential_path: Path | None = DEFAULT_CREDENTIAL_PATH
    notification_history: int = Field(default=50, ge=0)

    model_config = {"frozen": True}

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")


def _from_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect overrides from ``DASHBOARD_SYNC_<FIELD>`` variables."""
    overrides: dict[str, Any] = {}
    for name in SyncConfig.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if name == "credential_path" and raw.strip() == "":
            overrides[name] = None
        else:
            overrides[name] = raw
    return overrides


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    **overrides: Any,
) -> SyncConfig:
    """Load configuration from YAML, environment, and keyword overrides.

    Parameters
    ----------
    path:
        YAML file to read.  When None, ``~/.dashboard-sync/config.yaml`` is
        used if it exists.  An explicit path that does not exist is an
        error.
    environ:
        Environment mapping to read overrides from.  Defaults to
        ``os.environ``.
    **overrides:
        Final field values, applied last.

    Returns
    -------
    SyncConfig
        The validated configuration.

    Raises
    ------
    ConfigError
        If the file is missing or malformed, or a value fails validation.
    """
    data: dict[str, Any] = {}
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if config_path.exists():
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping at top level")
        data.update(loaded or {})
    elif path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    data.update(_from_environment(os.environ if environ is None else environ))
    data.update(overrides)

    unknown = set(data) - set(SyncConfig.model_fields)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")
    try:
        return SyncConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
