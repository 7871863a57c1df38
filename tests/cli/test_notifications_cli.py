"""Tests for the notifications and config CLI commands."""

import asyncio
import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from lifereveal.cli import cli
from lifereveal.cli.notifications import _watch_settings
from lifereveal.notifications.config import (
    DEFAULT_NOTIFICATION_SETTINGS,
    JsonSettingsStore,
    update_settings,
)
from lifereveal.notifications.coordinator import SettingsChangeCoordinator
from lifereveal.notifications.triggers import APSchedulerTriggerRegistry, StaticPermissionGate


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_args(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Options pointing every command at a temporary workspace."""
    for name in ("LIFEREVEAL_WORKSPACE", "LIFEREVEAL_TIMEZONE", "LIFEREVEAL_CALL_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    return ["--workspace", str(tmp_path / "workspace"), "--config", str(tmp_path / "config.json")]


def _invoke_json(runner, args):
    result = runner.invoke(cli, args + ["--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_preferences_show_defaults(runner, cli_args):
    result = runner.invoke(cli, ["notifications", "preferences", *cli_args])

    assert result.exit_code == 0
    assert "Notification Preferences" in result.output
    assert "Quiet hours: 22:00 - 08:00" in result.output
    assert "Weekly review: Sunday 19:00" in result.output


def test_plan_defaults_json(runner, cli_args):
    data = _invoke_json(runner, ["notifications", "plan", *cli_args])

    assert data["count"] == 15
    assert data["notifications"][0]["role"] == "hourly-log-8"
    assert data["notifications"][-1]["when"] == "every Sunday at 19:00"


def test_plan_table(runner, cli_args):
    result = runner.invoke(cli, ["notifications", "plan", *cli_args])

    assert result.exit_code == 0
    assert "Scheduled Notifications" in result.output


def test_quiet_hours_change_is_persisted(runner, cli_args, tmp_path: Path):
    result = runner.invoke(
        cli, ["notifications", "set-quiet-hours", "--start", "23:00", "--end", "07:00", *cli_args]
    )
    assert result.exit_code == 0
    assert "8 hourly slots skipped" in result.output

    stored = json.loads((tmp_path / "workspace" / "notifications" / "settings.json").read_text())
    assert stored["quietHours"] == {"enabled": True, "startTime": "23:00", "endTime": "07:00"}

    data = _invoke_json(runner, ["notifications", "plan", *cli_args])
    assert data["count"] == 17


def test_switch_to_morning_and_evening(runner, cli_args):
    runner.invoke(cli, ["notifications", "set-hourly", "--disabled", *cli_args])
    runner.invoke(cli, ["notifications", "set-morning", "--enabled", "--time", "07:30", *cli_args])
    runner.invoke(cli, ["notifications", "set-evening", "--enabled", *cli_args])

    data = _invoke_json(runner, ["notifications", "plan", *cli_args])

    assert [n["role"] for n in data["notifications"]] == ["morning-log", "evening-log", "weekly-review"]
    assert data["notifications"][0]["when"] == "daily at 07:30"


def test_set_weekly_accepts_day_name(runner, cli_args):
    data = _invoke_json(
        runner, ["notifications", "set-weekly", "--day", "monday", "--time", "18:30", *cli_args]
    )

    assert data["settings"]["weeklyReviewDay"] == 1
    assert data["settings"]["weeklyReviewTime"] == "18:30"


def test_invalid_time_exits_with_error(runner, cli_args):
    result = runner.invoke(cli, ["notifications", "set-morning", "--time", "25:00", *cli_args])

    assert result.exit_code == 1
    assert "INVALID_TIME_OF_DAY" in result.output


def test_set_snooze_and_reset(runner, cli_args):
    data = _invoke_json(runner, ["notifications", "set-snooze", "--no-allow", "--minutes", "30", *cli_args])
    assert data["settings"]["allowSnooze"] is False
    assert data["settings"]["snoozeDuration"] == 30

    data = _invoke_json(runner, ["notifications", "reset", *cli_args])
    assert data["settings"]["allowSnooze"] is True
    assert data["settings"]["snoozeDuration"] == 15


def test_permission_grant_and_revoke(runner, cli_args):
    assert _invoke_json(runner, ["notifications", "permission", *cli_args])["granted"] is False
    assert _invoke_json(runner, ["notifications", "permission", "--grant", *cli_args])["granted"] is True
    assert _invoke_json(runner, ["notifications", "permission", "--revoke", *cli_args])["granted"] is False


def test_test_notification_lands_in_inbox(runner, cli_args):
    result = runner.invoke(cli, ["notifications", "test", "--type", "WEEKLY_SUMMARY", *cli_args])
    assert result.exit_code == 0

    data = _invoke_json(runner, ["notifications", "inbox", *cli_args])

    assert len(data["notifications"]) == 1
    assert data["notifications"][0]["title"] == "📊 Weekly Review (Test)"


def test_config_validate_missing_file(runner, tmp_path: Path):
    result = runner.invoke(cli, ["config", "validate", "--config-path", str(tmp_path / "nope.json")])

    assert result.exit_code == 1


def test_config_init_and_set(runner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for name in ("LIFEREVEAL_WORKSPACE", "LIFEREVEAL_TIMEZONE", "LIFEREVEAL_CALL_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    config_path = tmp_path / "config.json"

    result = runner.invoke(
        cli,
        ["config", "init", "--config-path", str(config_path), "--workspace", str(tmp_path / "ws")],
    )
    assert result.exit_code == 0

    result = runner.invoke(cli, ["config", "set", "timezone", "UTC", "--config-path", str(config_path)])
    assert result.exit_code == 0
    assert json.loads(config_path.read_text())["timezone"] == "UTC"

    result = runner.invoke(cli, ["config", "set", "colour", "blue", "--config-path", str(config_path)])
    assert result.exit_code == 1


async def _watch_once(coordinator, path: Path, change) -> None:
    """Run the settings watcher around a single change to ``path``."""
    stop = asyncio.Event()
    watcher = asyncio.create_task(_watch_settings(coordinator, path, 0.01, stop))
    await asyncio.sleep(0.03)
    change()
    os.utime(path, (1_000_000, 1_000_000))
    await asyncio.sleep(0.1)
    stop.set()
    await watcher


@pytest.fixture
def daemon_parts(tmp_path: Path):
    store = JsonSettingsStore.for_workspace(tmp_path)
    store.save(update_settings(DEFAULT_NOTIFICATION_SETTINGS, "hourly_enabled", False))
    registry = APSchedulerTriggerRegistry(AsyncIOScheduler(timezone="UTC"))
    coordinator = SettingsChangeCoordinator(
        store=store, triggers=registry, permissions=StaticPermissionGate(True)
    )
    return store, registry, coordinator


@pytest.mark.asyncio()
async def test_watcher_reschedules_after_external_write(daemon_parts):
    store, registry, coordinator = daemon_parts
    await coordinator.start()
    other_process = JsonSettingsStore(store.path)

    await _watch_once(coordinator, store.path, lambda: other_process.save(DEFAULT_NOTIFICATION_SETTINGS))

    assert len(coordinator.registry) == 15
    assert len(await registry.enumerate()) == 15


@pytest.mark.asyncio()
async def test_watcher_leaves_torn_file_and_schedule_alone(daemon_parts):
    store, registry, coordinator = daemon_parts
    await coordinator.start()
    torn = '{"hourlyNotificationsEnabled": fal'

    await _watch_once(coordinator, store.path, lambda: store.path.write_text(torn, encoding="utf-8"))

    assert store.path.read_text(encoding="utf-8") == torn
    assert len(coordinator.registry) == 1
    assert len(await registry.enumerate()) == 1
