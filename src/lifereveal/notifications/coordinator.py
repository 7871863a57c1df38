"""Settings change coordinator.

The single entry point that (re)schedules notifications:

- once at start, after notification permission is confirmed
- after every persisted settings write (full replace)

Rebuilds are serialized: only one pass runs at a time, and when several
updates queue up behind a running pass only the newest settings are
applied. Every waiting caller receives that newest result.

Usage:
    coordinator = SettingsChangeCoordinator(
        store=JsonSettingsStore.for_workspace(workspace),
        triggers=APSchedulerTriggerRegistry(channels=[inbox]),
        permissions=FilePermissionGate(workspace / "notifications"),
    )
    await coordinator.start()
    await coordinator.update_field("hourly_enabled", False)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Optional

from lifereveal.errors import PermissionDeniedError, SnoozeDisabledError
from lifereveal.notifications.config import (
    DEFAULT_NOTIFICATION_SETTINGS,
    NotificationSettings,
    SettingsStore,
    update_quiet_hours,
    update_settings,
)
from lifereveal.notifications.content import content_for_test_notification
from lifereveal.notifications.events import (
    ActivationDispatcher,
    ActivationListener,
    NotificationActivated,
)
from lifereveal.notifications.lifecycle import CoordinatorLifecycle, CoordinatorState
from lifereveal.notifications.models import NotificationType, ScheduleResult
from lifereveal.notifications.policy import SchedulingPolicy
from lifereveal.notifications.registry import ScheduleRegistry
from lifereveal.notifications.triggers import PermissionGate, TriggerRegistry

logger = logging.getLogger(__name__)


class SettingsChangeCoordinator:
    """Keeps the registered notifications in step with persisted settings."""

    def __init__(
        self,
        *,
        store: SettingsStore,
        triggers: TriggerRegistry,
        permissions: PermissionGate,
        registry: Optional[ScheduleRegistry] = None,
        call_timeout: Optional[float] = None,
    ) -> None:
        self._store = store
        self._permissions = permissions
        self._policy = SchedulingPolicy(
            triggers, registry or ScheduleRegistry(), call_timeout=call_timeout
        )
        self._lifecycle = CoordinatorLifecycle()
        self._activations = ActivationDispatcher()

        self._lock = asyncio.Lock()
        self._pending: Optional[NotificationSettings] = None
        self._settings: Optional[NotificationSettings] = None
        self._last_result: Optional[ScheduleResult] = None
        self._start_done = asyncio.Event()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> CoordinatorState:
        return self._lifecycle.state

    @property
    def lifecycle(self) -> CoordinatorLifecycle:
        return self._lifecycle

    @property
    def policy(self) -> SchedulingPolicy:
        return self._policy

    @property
    def registry(self) -> ScheduleRegistry:
        return self._policy.registry

    @property
    def settings(self) -> NotificationSettings:
        """Last settings seen by the coordinator (loads from the store if none)."""
        if self._settings is None:
            self._settings = self._store.load()
        return self._settings

    @property
    def last_result(self) -> Optional[ScheduleResult]:
        return self._last_result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> ScheduleResult:
        """Confirm permission, load settings and register the first generation.

        Settings written while start is running are applied before start
        returns. When anything other than a refused permission fails, the
        coordinator goes back to UNINITIALIZED and start may be called again.

        Raises:
            PermissionDeniedError: If notification permission is refused;
                nothing is scheduled in that case
            InvalidSettingsError: If the persisted settings do not validate
        """
        self._lifecycle.transition(CoordinatorState.LOADING, reason="start")
        self._start_done = asyncio.Event()
        try:
            granted = await self._permissions.has_permission()
            if not granted:
                granted = await self._permissions.request_permission()
            if not granted:
                self._lifecycle.transition(CoordinatorState.PERMISSION_DENIED)
                logger.info("Notification permissions not granted")
                raise PermissionDeniedError()

            self._settings = self._store.load()
            return await self._reschedule(self._settings)
        except PermissionDeniedError:
            self._pending = None
            raise
        except Exception as exc:
            self._pending = None
            if self.state is CoordinatorState.LOADING:
                self._lifecycle.transition(CoordinatorState.UNINITIALIZED, reason="start failed")
            logger.warning(f"Notification coordinator failed to start: {exc}")
            raise
        finally:
            self._start_done.set()

    async def shutdown(self) -> List[str]:
        """Cancel the generation and pending snoozes; returns failed cancels."""
        async with self._lock:
            failures: List[str] = []
            if self.state is not CoordinatorState.STOPPED:
                failures = await self._policy.cancel_everything()
            self._lifecycle.transition(CoordinatorState.STOPPED, reason="shutdown")
        logger.info("Notification coordinator stopped")
        return failures

    # ------------------------------------------------------------------
    # Settings writes
    # ------------------------------------------------------------------

    async def update_settings(self, settings: NotificationSettings) -> Optional[ScheduleResult]:
        """Persist ``settings`` (full replace) and rebuild the schedule.

        Before :meth:`start` has been called, and after :meth:`shutdown`, the
        settings are only persisted and None is returned. A write made while
        start is still running waits for it and is then applied.
        """
        self._store.save(settings)
        return await self._apply(settings)

    async def reload(self) -> Optional[ScheduleResult]:
        """Reschedule from whatever the store holds now, without saving.

        Used when another process has written the settings.

        Raises:
            InvalidSettingsError: If the store cannot be read or does not
                validate; the current schedule is left in place
        """
        return await self._apply(self._store.load(strict=True))

    async def _apply(self, settings: NotificationSettings) -> Optional[ScheduleResult]:
        self._settings = settings

        if self.state is CoordinatorState.LOADING:
            self._pending = settings
            await self._start_done.wait()
            if self.state is not CoordinatorState.SCHEDULED:
                return None
            if self._pending is None:
                # The first pass already ran with these (or newer) settings.
                return self._last_result
            return await self._reschedule(self._pending)

        if self.state is not CoordinatorState.SCHEDULED:
            logger.debug(f"Settings saved without scheduling (state={self.state.value})")
            return None
        return await self._reschedule(settings)

    async def update_field(self, field: str, value: Any) -> Optional[ScheduleResult]:
        return await self.update_settings(update_settings(self.settings, field, value))

    async def update_quiet_hours(self, field: str, value: Any) -> Optional[ScheduleResult]:
        return await self.update_settings(update_quiet_hours(self.settings, field, value))

    async def reset_settings(self) -> Optional[ScheduleResult]:
        return await self.update_settings(DEFAULT_NOTIFICATION_SETTINGS)

    async def _reschedule(self, settings: NotificationSettings) -> Optional[ScheduleResult]:
        self._pending = settings
        async with self._lock:
            pending = self._pending
            if pending is None:
                # A caller queued ahead of us already applied the newest settings.
                return self._last_result
            if self.state is CoordinatorState.STOPPED:
                self._pending = None
                return self._last_result
            self._pending = None

            result = await self._policy.apply_schedule(pending)
            self._last_result = result
            self._lifecycle.transition(CoordinatorState.SCHEDULED)

        summary = result.user_summary()
        if summary:
            logger.warning(summary, extra={"failed": [r.key for r in result.failed]})
        return result

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    async def snooze(self, minutes: Optional[int] = None) -> str:
        """Snooze using the configured duration unless ``minutes`` is given.

        Raises:
            SnoozeDisabledError: If the user switched snooze off
        """
        settings = self.settings
        if not settings.allow_snooze:
            raise SnoozeDisabledError()
        return await self._policy.snooze(
            minutes if minutes is not None else settings.snooze_duration_minutes
        )

    async def send_test_notification(
        self, notification_type: NotificationType = NotificationType.HOURLY_MICRO_LOG
    ) -> str:
        """Deliver a test notification immediately, bypassing the schedule."""
        content = content_for_test_notification(notification_type)
        return await self._policy.triggers.send_now(
            content, {"type": NotificationType(notification_type).value, "test": True}
        )

    async def scheduled_triggers(self) -> List[str]:
        """Identifiers currently held by the trigger registry."""
        return await self._policy.triggers.enumerate()

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def on_activation(self, listener: ActivationListener):
        """Subscribe to taps on delivered notifications; returns unsubscribe."""
        return self._activations.subscribe(listener)

    def handle_response(self, payload: Mapping[str, Any]) -> Optional[NotificationActivated]:
        """Called by the host when the user taps a notification."""
        return self._activations.dispatch(payload)
