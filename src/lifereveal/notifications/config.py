"""Notification preferences and their persistence.

User notification preferences including:
- Hourly check-ins with quiet hours
- Morning/evening micro-log reminders
- Weekly review reminder
- Snooze behaviour

Preferences are immutable pydantic models. Changing a preference produces a
new value through :func:`update_settings`; the scheduling engine always
receives a complete settings object.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import time
from pathlib import Path
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_serializer,
    model_validator,
)

from lifereveal.errors import InvalidSettingsError, InvalidTimeOfDayError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def _split_hhmm(text: str) -> tuple[int, int]:
    parts = text.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise InvalidTimeOfDayError(f"Expected HH:MM, got {text!r}")
    return int(parts[0]), int(parts[1])


class TimeOfDay(BaseModel):
    """Wall-clock hour:minute on a 24-hour clock, serialized as ``HH:MM``."""

    model_config = ConfigDict(frozen=True)

    hour: int
    minute: int = 0

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> Any:
        if isinstance(value, str):
            hour, minute = _split_hhmm(value)
            return {"hour": hour, "minute": minute}
        if isinstance(value, time):
            return {"hour": value.hour, "minute": value.minute}
        return value

    @field_validator("hour")
    @classmethod
    def _check_hour(cls, value: int) -> int:
        if not 0 <= value <= 23:
            raise InvalidTimeOfDayError(f"hour must be in 0..23, got {value}")
        return value

    @field_validator("minute")
    @classmethod
    def _check_minute(cls, value: int) -> int:
        if not 0 <= value <= 59:
            raise InvalidTimeOfDayError(f"minute must be in 0..59, got {value}")
        return value

    @model_serializer
    def _serialize(self) -> str:
        return str(self)

    @classmethod
    def parse(cls, value: Any) -> "TimeOfDay":
        """Build from ``"HH:MM"``, ``datetime.time`` or a mapping.

        Raises:
            InvalidTimeOfDayError: If the value is not a valid clock time
        """
        if isinstance(value, cls):
            return value
        try:
            return cls.model_validate(value)
        except ValidationError as exc:
            raise InvalidTimeOfDayError(f"Invalid time of day {value!r}: {exc}") from exc

    @property
    def minute_of_day(self) -> int:
        return self.hour * 60 + self.minute

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


class QuietHours(BaseModel):
    """Daily window during which hourly check-ins are suppressed.

    Attributes:
        enabled: Whether the window applies at all
        start: First quiet minute (inclusive)
        end: Minute notifications resume (exclusive); ``end < start`` spans midnight
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = True
    start: TimeOfDay = Field(default=TimeOfDay(hour=22), alias="startTime")
    end: TimeOfDay = Field(default=TimeOfDay(hour=8), alias="endTime")

    @property
    def spans_midnight(self) -> bool:
        return self.start.minute_of_day > self.end.minute_of_day


class NotificationSettings(BaseModel):
    """Complete notification preferences passed into every scheduling pass.

    Hourly check-ins and the morning/evening logs are alternatives; when
    both are switched on the hourly loop wins.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hourly_enabled: bool = Field(True, alias="hourlyNotificationsEnabled")
    quiet_hours: QuietHours = Field(default_factory=QuietHours, alias="quietHours")

    morning_enabled: bool = Field(False, alias="morningLogEnabled")
    morning_time: TimeOfDay = Field(default=TimeOfDay(hour=9), alias="morningLogTime")
    evening_enabled: bool = Field(False, alias="eveningLogEnabled")
    evening_time: TimeOfDay = Field(default=TimeOfDay(hour=21), alias="eveningLogTime")

    weekly_review_enabled: bool = Field(True, alias="weeklyReviewEnabled")
    weekly_review_day: int = Field(0, ge=0, le=6, alias="weeklyReviewDay")  # 0 = Sunday
    weekly_review_time: TimeOfDay = Field(default=TimeOfDay(hour=19), alias="weeklyReviewTime")

    reminders_enabled: bool = Field(True, alias="remindersEnabled")
    allow_snooze: bool = Field(True, alias="allowSnooze")
    snooze_duration_minutes: int = Field(15, gt=0, alias="snoozeDuration")

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted camelCase dictionary."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationSettings":
        """Create from a persisted dictionary (camelCase or field names)."""
        return cls.model_validate(data)


DEFAULT_NOTIFICATION_SETTINGS = NotificationSettings()


def _resolve_field(model: type[BaseModel], name: str) -> str:
    if name in model.model_fields:
        return name
    for field_name, info in model.model_fields.items():
        if info.alias == name:
            return field_name
    raise KeyError(f"Unknown {model.__name__} field: {name}")


def update_settings(
    prior: NotificationSettings, field: str, value: Any
) -> NotificationSettings:
    """Return a copy of ``prior`` with one field replaced and re-validated.

    Args:
        prior: Current settings
        field: Field name or its camelCase alias
        value: New value; strings like ``"07:30"`` are accepted for times

    Raises:
        KeyError: If ``field`` is not a settings field
        pydantic.ValidationError: If the new value does not validate
    """
    name = _resolve_field(NotificationSettings, field)
    data = prior.model_dump()
    data[name] = value.model_dump() if isinstance(value, BaseModel) else value
    return NotificationSettings.model_validate(data)


def update_quiet_hours(
    prior: NotificationSettings, field: str, value: Any
) -> NotificationSettings:
    """Replace one quiet-hours field (``enabled``, ``start``/``startTime``, ``end``/``endTime``)."""
    name = _resolve_field(QuietHours, field)
    quiet = prior.quiet_hours.model_dump()
    quiet[name] = value.model_dump() if isinstance(value, BaseModel) else value
    return update_settings(prior, "quiet_hours", quiet)


# ============================================================================
# Settings stores
# ============================================================================


class SettingsStore(ABC):
    """Persistence for notification settings.

    The store decides defaults for a never-configured user; the engine never
    interprets missing values.
    """

    @abstractmethod
    def load(self, *, strict: bool = False) -> NotificationSettings:
        """Return the persisted settings (or the defaults).

        With ``strict`` an unreadable store raises :class:`InvalidSettingsError`
        instead of falling back to the defaults.
        """

    @abstractmethod
    def save(self, settings: NotificationSettings) -> None:
        """Persist a full replacement of the settings."""


class MemorySettingsStore(SettingsStore):
    """Process-local store, handy for embedding and previews."""

    def __init__(self, settings: Optional[NotificationSettings] = None) -> None:
        self._settings = settings or DEFAULT_NOTIFICATION_SETTINGS
        self.saves = 0

    def load(self, *, strict: bool = False) -> NotificationSettings:
        return self._settings

    def save(self, settings: NotificationSettings) -> None:
        self._settings = settings
        self.saves += 1


class JsonSettingsStore(SettingsStore):
    """Settings persisted as JSON.

    Stores preferences in ``<workspace>/notifications/settings.json`` using
    the app's camelCase keys.
    """

    FILENAME = "settings.json"

    def __init__(self, path: Path) -> None:
        self._path = Path(path).expanduser()

    @classmethod
    def for_workspace(cls, workspace: Path) -> "JsonSettingsStore":
        return cls(Path(workspace).expanduser() / "notifications" / cls.FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, strict: bool = False) -> NotificationSettings:
        if not self._path.exists():
            logger.debug(f"No settings at {self._path}, using defaults")
            return DEFAULT_NOTIFICATION_SETTINGS

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            if strict:
                raise InvalidSettingsError(
                    f"Unreadable notification settings in {self._path}: {e}",
                    details={"path": str(self._path)},
                ) from e
            logger.warning(f"Failed to read notification settings: {e}")
            return DEFAULT_NOTIFICATION_SETTINGS

        try:
            return NotificationSettings.from_dict(data)
        except ValidationError as exc:
            raise InvalidSettingsError(
                f"Invalid notification settings in {self._path}: {exc}",
                details={"path": str(self._path)},
            ) from exc

    def save(self, settings: NotificationSettings) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp_path, self._path)
        logger.debug(f"Saved notification settings to {self._path}")
