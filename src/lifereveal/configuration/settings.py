"""Typed engine settings for the Life Reveal notification engine.

Engine settings describe *where* and *how* the scheduler runs (workspace
directory, timezone, per-call timeout). The user's notification preferences
live separately in the workspace, see
:class:`lifereveal.notifications.config.JsonSettingsStore`.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, ValidationError, field_validator

from lifereveal.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".lifereveal" / "config.json"
DEFAULT_WORKSPACE_PATH = Path.home() / ".lifereveal" / "workspace"


class EngineSettings(BaseModel):
    """Root engine configuration."""

    workspace_path: Path = Field(default=DEFAULT_WORKSPACE_PATH, description="Workspace directory")
    timezone: Optional[str] = Field(
        default=None, description="IANA timezone for triggers; local time when unset"
    )
    call_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Timeout for each register/cancel call"
    )
    misfire_grace_seconds: int = Field(300, ge=1, description="Late-fire tolerance for triggers")

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @property
    def notifications_path(self) -> Path:
        return self.workspace_path.expanduser() / "notifications"


def load_settings(path: Path = DEFAULT_CONFIG_PATH) -> EngineSettings:
    """Load settings from disk or raise if invalid.

    Raises:
        FileNotFoundError: If no config file exists at ``path``
        ConfigurationError: If the file is not valid JSON or fails validation
    """
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found at {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid configuration JSON in {path}: {exc}") from exc
    try:
        return EngineSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration: {exc}", details={"path": str(path)}
        ) from exc


def save_settings(settings: EngineSettings, path: Path = DEFAULT_CONFIG_PATH) -> None:
    """Persist settings to disk."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.model_dump(mode="json"), indent=2), encoding="utf-8")


def bootstrap_settings(
    *,
    path: Path = DEFAULT_CONFIG_PATH,
    overrides: Optional[Dict[str, Any]] = None,
    persist: bool = True,
) -> EngineSettings:
    """Create or load settings respecting explicit and environment overrides.

    Precedence, lowest first: file (or defaults), ``overrides``, environment.
    """
    if path.exists():
        settings = load_settings(path)
    else:
        settings = EngineSettings()
        logger.info(f"No engine config at {path}, using defaults")

    merged = settings.model_dump(mode="python")
    merged = _apply_overrides(merged, overrides or {})
    merged = _apply_env_overrides(merged)

    try:
        resolved = EngineSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    resolved.workspace_path.expanduser().mkdir(parents=True, exist_ok=True)
    if persist:
        save_settings(resolved, path)
    return resolved


def _apply_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    _set_env_override(data, "workspace_path", "LIFEREVEAL_WORKSPACE")
    _set_env_override(data, "timezone", "LIFEREVEAL_TIMEZONE")
    _set_env_override(data, "call_timeout_seconds", "LIFEREVEAL_CALL_TIMEOUT", cast_float=True)
    _set_env_override(data, "misfire_grace_seconds", "LIFEREVEAL_MISFIRE_GRACE", cast_int=True)
    return data


def _set_env_override(
    mapping: Dict[str, Any],
    key: str,
    env_name: str,
    *,
    cast_int: bool = False,
    cast_float: bool = False,
) -> None:
    raw = os.getenv(env_name)
    if raw is None:
        return
    try:
        if cast_int:
            mapping[key] = int(raw)
        elif cast_float:
            mapping[key] = float(raw)
        else:
            mapping[key] = raw
    except ValueError as exc:
        raise ConfigurationError(f"{env_name} must be numeric, got {raw!r}") from exc
