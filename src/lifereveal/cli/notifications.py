"""Notification CLI commands.

Provides commands for:
- Viewing and updating notification preferences
- Previewing the schedule those preferences produce
- Sending a test notification and snoozing
- Running the scheduler daemon
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from lifereveal.configuration.settings import (
    DEFAULT_CONFIG_PATH,
    EngineSettings,
    bootstrap_settings,
)
from lifereveal.errors import LifeRevealError, format_error_for_cli
from lifereveal.notifications.channels import DesktopChannel, InboxChannel
from lifereveal.notifications.config import (
    DEFAULT_NOTIFICATION_SETTINGS,
    JsonSettingsStore,
    NotificationSettings,
    TimeOfDay,
    update_quiet_hours,
    update_settings,
)
from lifereveal.notifications.coordinator import SettingsChangeCoordinator
from lifereveal.notifications.models import WEEKDAY_NAMES, NotificationType
from lifereveal.notifications.policy import build_schedule
from lifereveal.notifications.quiet_hours import is_quiet_now, suppressed_hours
from lifereveal.notifications.triggers import APSchedulerTriggerRegistry, FilePermissionGate

logger = logging.getLogger(__name__)
console = Console()

notifications_app = typer.Typer(help="Notification preferences and scheduling commands")


def _engine_settings(workspace: Optional[Path], config_path: Path) -> EngineSettings:
    overrides = {"workspace_path": str(workspace)} if workspace else None
    return bootstrap_settings(path=config_path, overrides=overrides, persist=False)


def _store(engine: EngineSettings) -> JsonSettingsStore:
    return JsonSettingsStore.for_workspace(engine.workspace_path)


def _coordinator(engine: EngineSettings, registry: APSchedulerTriggerRegistry, *, prompt=None):
    return SettingsChangeCoordinator(
        store=_store(engine),
        triggers=registry,
        permissions=FilePermissionGate(engine.notifications_path, prompt=prompt),
        call_timeout=engine.call_timeout_seconds,
    )


def _registry(engine: EngineSettings) -> APSchedulerTriggerRegistry:
    directory = engine.notifications_path
    return APSchedulerTriggerRegistry(
        channels=[InboxChannel(directory), DesktopChannel(directory / "pending")],
        timezone=engine.timezone,
        misfire_grace_seconds=engine.misfire_grace_seconds,
    )


def _fail(error: Exception, output_json: bool) -> None:
    logger.error(f"Notification command failed: {error}")
    if output_json:
        payload: Dict[str, Any] = {"success": False, "error": str(error)}
        if isinstance(error, LifeRevealError):
            payload["code"] = error.code
        print(json.dumps(payload))
    elif isinstance(error, LifeRevealError):
        print(format_error_for_cli(error))
    else:
        print(f"Error: {error}")
    raise typer.Exit(code=1)


def _parse_weekday(value: str) -> int:
    """Accept 0..6 (0 = Sunday) or a weekday name/prefix."""
    if value.isdigit():
        day = int(value)
        if not 0 <= day <= 6:
            raise ValueError(f"Weekday must be 0..6 (0 = Sunday), got {day}")
        return day
    for index, name in enumerate(WEEKDAY_NAMES):
        if len(value) >= 3 and name.lower().startswith(value.lower()):
            return index
    raise ValueError(f"Unknown weekday '{value}'")


def _apply(
    store: JsonSettingsStore, settings: NotificationSettings, output_json: bool, message: str
) -> None:
    store.save(settings)
    if output_json:
        print(json.dumps({"success": True, "settings": settings.to_dict()}))
    else:
        print(message)


# ============================================================================
# Preferences Commands
# ============================================================================


@notifications_app.command("preferences")
def show_preferences(
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show current notification preferences.

    Examples:
        lifereveal notifications preferences
        lifereveal notifications preferences --json
    """
    try:
        settings = _store(_engine_settings(workspace, config_path)).load()
    except Exception as e:
        _fail(e, output_json)
        return

    quiet = settings.quiet_hours
    if output_json:
        data = settings.to_dict()
        data["quietHours"]["isActive"] = is_quiet_now(quiet)
        print(json.dumps({"success": True, "settings": data}))
        return

    print("\nNotification Preferences")
    print("-" * 40)
    print(f"Hourly check-ins: {'on' if settings.hourly_enabled else 'off'}")
    print(f"Quiet hours: {quiet.start} - {quiet.end} ({'enabled' if quiet.enabled else 'disabled'})")
    if quiet.enabled:
        print(f"  Status: {'ACTIVE' if is_quiet_now(quiet) else 'inactive'}")
    print(f"Morning log: {settings.morning_time} ({'on' if settings.morning_enabled else 'off'})")
    print(f"Evening log: {settings.evening_time} ({'on' if settings.evening_enabled else 'off'})")
    print(
        f"Weekly review: {WEEKDAY_NAMES[settings.weekly_review_day]} "
        f"{settings.weekly_review_time} ({'on' if settings.weekly_review_enabled else 'off'})"
    )
    snooze = f"{settings.snooze_duration_minutes} min" if settings.allow_snooze else "disabled"
    print(f"Snooze: {snooze}")
    if settings.hourly_enabled and (settings.morning_enabled or settings.evening_enabled):
        print("\nNote: hourly check-ins replace the morning/evening logs while enabled.")


@notifications_app.command("set-hourly")
def set_hourly(
    enabled: bool = typer.Option(..., "--enabled/--disabled", help="Hourly check-ins on or off"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Turn hourly check-ins on or off."""
    try:
        store = _store(_engine_settings(workspace, config_path))
        settings = update_settings(store.load(), "hourly_enabled", enabled)
        _apply(store, settings, output_json, f"Hourly check-ins {'enabled' if enabled else 'disabled'}")
    except Exception as e:
        _fail(e, output_json)


@notifications_app.command("set-quiet-hours")
def set_quiet_hours(
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Enable or disable quiet hours"),
    start: Optional[str] = typer.Option(None, "--start", help="Start time (HH:MM)"),
    end: Optional[str] = typer.Option(None, "--end", help="End time (HH:MM)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Set the quiet-hours window.

    Examples:
        lifereveal notifications set-quiet-hours --start 22:00 --end 08:00
        lifereveal notifications set-quiet-hours --disabled
    """
    try:
        store = _store(_engine_settings(workspace, config_path))
        settings = store.load()
        if enabled is not None:
            settings = update_quiet_hours(settings, "enabled", enabled)
        if start is not None:
            settings = update_quiet_hours(settings, "start", TimeOfDay.parse(start))
        if end is not None:
            settings = update_quiet_hours(settings, "end", TimeOfDay.parse(end))

        quiet = settings.quiet_hours
        skipped = len(suppressed_hours(quiet))
        _apply(
            store,
            settings,
            output_json,
            f"Quiet hours: {quiet.start} - {quiet.end} "
            f"({'enabled' if quiet.enabled else 'disabled'}, {skipped} hourly slots skipped)",
        )
    except Exception as e:
        _fail(e, output_json)


def _set_daily_log(
    prefix: str,
    label: str,
    enabled: Optional[bool],
    at: Optional[str],
    workspace: Optional[Path],
    config_path: Path,
    output_json: bool,
) -> None:
    try:
        store = _store(_engine_settings(workspace, config_path))
        settings = store.load()
        if enabled is not None:
            settings = update_settings(settings, f"{prefix}_enabled", enabled)
        if at is not None:
            settings = update_settings(settings, f"{prefix}_time", TimeOfDay.parse(at))
        state = "on" if getattr(settings, f"{prefix}_enabled") else "off"
        _apply(
            store,
            settings,
            output_json,
            f"{label} log: {getattr(settings, f'{prefix}_time')} ({state})",
        )
    except Exception as e:
        _fail(e, output_json)


@notifications_app.command("set-morning")
def set_morning(
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Morning log on or off"),
    at: Optional[str] = typer.Option(None, "--time", help="Reminder time (HH:MM)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Configure the morning micro-log reminder."""
    _set_daily_log("morning", "Morning", enabled, at, workspace, config_path, output_json)


@notifications_app.command("set-evening")
def set_evening(
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Evening log on or off"),
    at: Optional[str] = typer.Option(None, "--time", help="Reminder time (HH:MM)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Configure the evening micro-log reminder."""
    _set_daily_log("evening", "Evening", enabled, at, workspace, config_path, output_json)


@notifications_app.command("set-weekly")
def set_weekly(
    enabled: Optional[bool] = typer.Option(None, "--enabled/--disabled", help="Weekly review on or off"),
    day: Optional[str] = typer.Option(None, "--day", help="Weekday: 0-6 (0 = Sunday) or name"),
    at: Optional[str] = typer.Option(None, "--time", help="Reminder time (HH:MM)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Configure the weekly review reminder.

    Examples:
        lifereveal notifications set-weekly --day sunday --time 19:00
    """
    try:
        store = _store(_engine_settings(workspace, config_path))
        settings = store.load()
        if enabled is not None:
            settings = update_settings(settings, "weekly_review_enabled", enabled)
        if day is not None:
            settings = update_settings(settings, "weekly_review_day", _parse_weekday(day))
        if at is not None:
            settings = update_settings(settings, "weekly_review_time", TimeOfDay.parse(at))
        _apply(
            store,
            settings,
            output_json,
            f"Weekly review: {WEEKDAY_NAMES[settings.weekly_review_day]} "
            f"{settings.weekly_review_time} ({'on' if settings.weekly_review_enabled else 'off'})",
        )
    except Exception as e:
        _fail(e, output_json)


@notifications_app.command("set-snooze")
def set_snooze(
    allow: Optional[bool] = typer.Option(None, "--allow/--no-allow", help="Allow snoozing"),
    minutes: Optional[int] = typer.Option(None, "--minutes", help="Default snooze duration"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Configure snooze behaviour."""
    try:
        store = _store(_engine_settings(workspace, config_path))
        settings = store.load()
        if allow is not None:
            settings = update_settings(settings, "allow_snooze", allow)
        if minutes is not None:
            settings = update_settings(settings, "snooze_duration_minutes", minutes)
        status = f"{settings.snooze_duration_minutes} min" if settings.allow_snooze else "disabled"
        _apply(store, settings, output_json, f"Snooze: {status}")
    except Exception as e:
        _fail(e, output_json)


@notifications_app.command("reset")
def reset_preferences(
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Restore the default notification preferences."""
    try:
        store = _store(_engine_settings(workspace, config_path))
        _apply(store, DEFAULT_NOTIFICATION_SETTINGS, output_json, "Notification preferences reset to defaults")
    except Exception as e:
        _fail(e, output_json)


# ============================================================================
# Schedule Commands
# ============================================================================


@notifications_app.command("plan")
def show_plan(
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Preview the notifications the current preferences schedule."""
    try:
        settings = _store(_engine_settings(workspace, config_path)).load()
    except Exception as e:
        _fail(e, output_json)
        return

    schedule = build_schedule(settings)
    if output_json:
        print(json.dumps({
            "success": True,
            "count": len(schedule),
            "notifications": [
                {
                    "role": item.role.key,
                    "when": item.fires_at.describe(),
                    "title": item.content.title,
                    "body": item.content.body,
                }
                for item in schedule
            ],
        }))
        return

    if not schedule:
        console.print("[yellow]No notifications scheduled with the current preferences[/yellow]")
        return

    table = Table(title=f"Scheduled Notifications ({len(schedule)} total)")
    table.add_column("Role", style="cyan")
    table.add_column("When", style="green")
    table.add_column("Title")
    table.add_column("Body", style="dim")
    for item in schedule:
        table.add_row(item.role.key, item.fires_at.describe(), item.content.title, item.content.body)
    console.print(table)


@notifications_app.command("test")
def send_test(
    notification_type: NotificationType = typer.Option(
        NotificationType.HOURLY_MICRO_LOG, "--type", help="Notification type to preview"
    ),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Send a test notification right away."""
    try:
        engine = _engine_settings(workspace, config_path)
        coordinator = _coordinator(engine, _registry(engine))
        notification_id = asyncio.run(coordinator.send_test_notification(notification_type))
    except Exception as e:
        _fail(e, output_json)
        return

    if output_json:
        print(json.dumps({"success": True, "notificationId": notification_id}))
    else:
        print(f"Test notification sent ({notification_type.value})")


@notifications_app.command("snooze")
def snooze(
    minutes: Optional[int] = typer.Option(None, "--minutes", help="Override the snooze duration"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Snooze: wait, then deliver a one-off reminder.

    The command stays in the foreground until the reminder fires.
    """
    try:
        engine = _engine_settings(workspace, config_path)
        asyncio.run(_snooze_and_wait(engine, minutes, output_json))
    except KeyboardInterrupt:
        print("Snooze cancelled")
    except Exception as e:
        _fail(e, output_json)


async def _snooze_and_wait(engine: EngineSettings, minutes: Optional[int], output_json: bool) -> None:
    registry = _registry(engine)
    coordinator = _coordinator(engine, registry)
    registry.scheduler.start()
    try:
        external_id = await coordinator.snooze(minutes)
        duration = minutes if minutes is not None else coordinator.settings.snooze_duration_minutes
        if output_json:
            print(json.dumps({"success": True, "id": external_id, "minutes": duration}))
        else:
            print(f"Snoozed for {duration} minutes")
        while external_id in await registry.enumerate():
            await asyncio.sleep(1)
    finally:
        registry.scheduler.shutdown(wait=False)


@notifications_app.command("permission")
def permission(
    grant: Optional[bool] = typer.Option(None, "--grant/--revoke", help="Grant or revoke permission"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show or change notification permission."""
    try:
        engine = _engine_settings(workspace, config_path)
        gate = FilePermissionGate(engine.notifications_path)
        if grant is True:
            gate.grant()
        elif grant is False:
            gate.revoke()
        granted = asyncio.run(gate.has_permission())
    except Exception as e:
        _fail(e, output_json)
        return

    if output_json:
        print(json.dumps({"success": True, "granted": granted}))
    else:
        print(f"Notifications {'allowed' if granted else 'not allowed'}")


@notifications_app.command("inbox")
def show_inbox(
    unread: bool = typer.Option(False, "--unread", help="Only unread notifications"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum notifications to show"),
    clear: bool = typer.Option(False, "--clear", help="Delete all inbox notifications"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    output_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show notifications delivered to the in-app inbox."""
    try:
        inbox = InboxChannel(_engine_settings(workspace, config_path).notifications_path)
    except Exception as e:
        _fail(e, output_json)
        return

    if clear:
        count = inbox.clear()
        if output_json:
            print(json.dumps({"success": True, "cleared": count}))
        else:
            print(f"Cleared {count} notifications")
        return

    items = inbox.recent(limit, unread_only=unread)
    if output_json:
        print(json.dumps({"success": True, "notifications": [n.to_dict() for n in items]}))
        return

    if not items:
        console.print("[yellow]Inbox is empty[/yellow]")
        return

    table = Table(title=f"Inbox ({len(items)} shown)")
    table.add_column("Delivered", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Body")
    table.add_column("Read")
    for n in items:
        delivered = n.delivered_at.strftime("%Y-%m-%d %H:%M") if n.delivered_at else "-"
        table.add_row(delivered, n.title, n.body, "yes" if n.read else "")
    console.print(table)


# ============================================================================
# Daemon
# ============================================================================


@notifications_app.command("run")
def run_scheduler(
    workspace: Optional[Path] = typer.Option(None, "--workspace", help="Workspace directory"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", help="Path to engine config"),
    poll_seconds: float = typer.Option(5.0, "--poll", help="Seconds between settings checks"),
    allow: bool = typer.Option(False, "--allow", help="Grant notification permission if not yet decided"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the notification scheduler in the foreground.

    Preference changes made with the other commands are picked up while it
    runs. Press Ctrl+C to stop.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        engine = _engine_settings(workspace, config_path)
        asyncio.run(_run_daemon(engine, poll_seconds, allow))
    except LifeRevealError as e:
        console.print(f"[bold red]{format_error_for_cli(e)}[/bold red]")
        raise typer.Exit(1)
    console.print("[bold green]Notification scheduler stopped[/bold green]")


async def _run_daemon(engine: EngineSettings, poll_seconds: float, allow: bool) -> None:
    registry = _registry(engine)
    coordinator = _coordinator(engine, registry, prompt=(lambda: True) if allow else None)
    store = _store(engine)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler(sig, frame):
        console.print("\n[bold yellow]Shutting down notification scheduler...[/bold yellow]")
        loop.call_soon_threadsafe(shutdown_event.set)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    registry.scheduler.start()
    try:
        result = await coordinator.start()
        console.print(
            f"[bold green]Notification scheduler started[/bold green] "
            f"({len(result.scheduled)} notifications registered)"
        )
        console.print("Press Ctrl+C to stop\n")

        await _watch_settings(coordinator, store.path, poll_seconds, shutdown_event)
    finally:
        await coordinator.shutdown()
        registry.scheduler.shutdown(wait=False)


async def _watch_settings(
    coordinator: SettingsChangeCoordinator,
    path: Path,
    poll_seconds: float,
    stop: asyncio.Event,
) -> None:
    """Reschedule whenever the settings file changes, until ``stop`` is set.

    The file is only read here, never written back. A file that cannot be
    read keeps the current schedule in place.
    """
    last_seen = _mtime(path)
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=poll_seconds)
        except asyncio.TimeoutError:
            pass
        current = _mtime(path)
        if current == last_seen or stop.is_set():
            continue
        last_seen = current
        logger.info("Notification settings changed, rescheduling")
        try:
            await coordinator.reload()
        except LifeRevealError as e:
            logger.warning(f"Keeping current schedule: {e}")


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None


__all__ = ["notifications_app"]
