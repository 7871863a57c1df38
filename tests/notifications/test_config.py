"""Tests for notification preferences and the settings stores."""

from __future__ import annotations

import json
from datetime import time
from pathlib import Path

import pytest
from pydantic import ValidationError

from lifereveal.errors import InvalidSettingsError, InvalidTimeOfDayError
from lifereveal.notifications.config import (
    DEFAULT_NOTIFICATION_SETTINGS,
    JsonSettingsStore,
    MemorySettingsStore,
    NotificationSettings,
    QuietHours,
    TimeOfDay,
    update_quiet_hours,
    update_settings,
)


def test_time_of_day_parses_hhmm() -> None:
    parsed = TimeOfDay.parse("07:05")

    assert (parsed.hour, parsed.minute) == (7, 5)
    assert parsed.minute_of_day == 425
    assert str(parsed) == "07:05"


def test_time_of_day_from_datetime_time() -> None:
    assert TimeOfDay.parse(time(21, 30)) == TimeOfDay(hour=21, minute=30)


@pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "7", "-1:00"])
def test_invalid_time_of_day_is_rejected(value: str) -> None:
    with pytest.raises(InvalidTimeOfDayError):
        TimeOfDay.parse(value)


def test_invalid_time_of_day_is_value_error() -> None:
    with pytest.raises(ValueError):
        TimeOfDay.parse("25:00")


def test_defaults() -> None:
    settings = DEFAULT_NOTIFICATION_SETTINGS

    assert settings.hourly_enabled
    assert settings.quiet_hours.enabled
    assert str(settings.quiet_hours.start) == "22:00"
    assert str(settings.quiet_hours.end) == "08:00"
    assert settings.quiet_hours.spans_midnight
    assert not settings.morning_enabled and str(settings.morning_time) == "09:00"
    assert not settings.evening_enabled and str(settings.evening_time) == "21:00"
    assert settings.weekly_review_enabled
    assert settings.weekly_review_day == 0
    assert str(settings.weekly_review_time) == "19:00"
    assert settings.allow_snooze and settings.snooze_duration_minutes == 15


def test_to_dict_uses_camel_case_keys() -> None:
    data = DEFAULT_NOTIFICATION_SETTINGS.to_dict()

    assert data["hourlyNotificationsEnabled"] is True
    assert data["quietHours"] == {"enabled": True, "startTime": "22:00", "endTime": "08:00"}
    assert data["morningLogTime"] == "09:00"
    assert data["weeklyReviewDay"] == 0
    assert data["snoozeDuration"] == 15


def test_from_dict_accepts_aliases_and_field_names() -> None:
    from_aliases = NotificationSettings.from_dict(
        {"hourlyNotificationsEnabled": False, "quietHours": {"startTime": "23:00"}}
    )
    from_names = NotificationSettings.from_dict(
        {"hourly_enabled": False, "quiet_hours": {"start": "23:00"}}
    )

    assert from_aliases == from_names
    assert str(from_aliases.quiet_hours.start) == "23:00"
    assert str(from_aliases.quiet_hours.end) == "08:00"


def test_settings_are_immutable() -> None:
    with pytest.raises(ValidationError):
        DEFAULT_NOTIFICATION_SETTINGS.hourly_enabled = False  # type: ignore[misc]


def test_update_settings_returns_new_value() -> None:
    updated = update_settings(DEFAULT_NOTIFICATION_SETTINGS, "morning_time", "07:30")

    assert str(updated.morning_time) == "07:30"
    assert str(DEFAULT_NOTIFICATION_SETTINGS.morning_time) == "09:00"
    assert updated.quiet_hours == DEFAULT_NOTIFICATION_SETTINGS.quiet_hours


def test_update_settings_accepts_alias() -> None:
    updated = update_settings(DEFAULT_NOTIFICATION_SETTINGS, "weeklyReviewDay", 3)

    assert updated.weekly_review_day == 3


def test_update_settings_rejects_unknown_field() -> None:
    with pytest.raises(KeyError):
        update_settings(DEFAULT_NOTIFICATION_SETTINGS, "monthly_review_enabled", True)


@pytest.mark.parametrize(
    "field,value",
    [("weekly_review_day", 7), ("snooze_duration_minutes", 0), ("evening_time", "21:75")],
)
def test_update_settings_revalidates(field: str, value) -> None:
    with pytest.raises(ValidationError):
        update_settings(DEFAULT_NOTIFICATION_SETTINGS, field, value)


def test_update_quiet_hours() -> None:
    updated = update_quiet_hours(DEFAULT_NOTIFICATION_SETTINGS, "startTime", TimeOfDay(hour=23))
    disabled = update_quiet_hours(updated, "enabled", False)

    assert str(updated.quiet_hours.start) == "23:00"
    assert not disabled.quiet_hours.enabled
    assert str(disabled.quiet_hours.start) == "23:00"


def test_quiet_hours_spans_midnight() -> None:
    assert not QuietHours(start="09:00", end="17:00").spans_midnight
    assert not QuietHours(start="00:00", end="00:00").spans_midnight


def test_memory_store_counts_saves() -> None:
    store = MemorySettingsStore()
    updated = update_settings(store.load(), "allow_snooze", False)

    store.save(updated)

    assert store.load() is updated
    assert store.saves == 1


def test_json_store_defaults_when_missing(tmp_path: Path) -> None:
    store = JsonSettingsStore.for_workspace(tmp_path)

    assert store.path == tmp_path / "notifications" / "settings.json"
    assert store.load() == DEFAULT_NOTIFICATION_SETTINGS


def test_json_store_round_trip(tmp_path: Path) -> None:
    store = JsonSettingsStore.for_workspace(tmp_path)
    settings = update_settings(DEFAULT_NOTIFICATION_SETTINGS, "hourly_enabled", False)
    settings = update_settings(settings, "evening_enabled", True)

    store.save(settings)

    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert raw["hourlyNotificationsEnabled"] is False
    assert raw["eveningLogEnabled"] is True
    assert store.load() == settings


def test_json_store_unreadable_file_falls_back_to_defaults(tmp_path: Path) -> None:
    store = JsonSettingsStore.for_workspace(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load() == DEFAULT_NOTIFICATION_SETTINGS


def test_json_store_invalid_content_raises(tmp_path: Path) -> None:
    store = JsonSettingsStore.for_workspace(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"weeklyReviewDay": 9}), encoding="utf-8")

    with pytest.raises(InvalidSettingsError) as exc_info:
        store.load()

    assert exc_info.value.details["path"] == str(store.path)


def test_json_store_strict_load_rejects_unreadable_file(tmp_path: Path) -> None:
    store = JsonSettingsStore.for_workspace(tmp_path)
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(InvalidSettingsError):
        store.load(strict=True)


def test_json_store_save_replaces_file_atomically(tmp_path: Path) -> None:
    store = JsonSettingsStore.for_workspace(tmp_path)
    store.save(DEFAULT_NOTIFICATION_SETTINGS)
    store.save(update_settings(DEFAULT_NOTIFICATION_SETTINGS, "allow_snooze", False))

    assert [p.name for p in store.path.parent.iterdir()] == ["settings.json"]
    assert store.load().allow_snooze is False
