"""Activation events raised when the user taps a notification.

The engine does not navigate anywhere; it turns the tapped notification's
payload into a :class:`NotificationActivated` event and hands it to whoever
subscribed (typically the UI layer, which opens the micro-log modal).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from lifereveal.notifications.models import NotificationRole, NotificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationActivated:
    role: NotificationRole
    payload: Dict[str, Any] = field(default_factory=dict)

    @property
    def notification_type(self) -> NotificationType:
        return NotificationType(self.payload.get("type", self.role.notification_type.value))


ActivationListener = Callable[[NotificationActivated], None]


class ActivationDispatcher:
    """Fan-out of activation events to subscribed listeners."""

    def __init__(self) -> None:
        self._listeners: List[ActivationListener] = []

    def subscribe(self, listener: ActivationListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def dispatch(self, payload: Mapping[str, Any]) -> Optional[NotificationActivated]:
        """Emit an event for a tapped notification payload.

        Payloads without a recognisable role (e.g. test notifications) are
        logged and dropped.
        """
        role_key = payload.get("role")
        if not role_key:
            logger.debug(f"Ignoring activation without role: {dict(payload)}")
            return None
        try:
            role = NotificationRole.from_key(str(role_key))
        except ValueError:
            logger.warning(f"Ignoring activation with unknown role: {role_key}")
            return None

        event = NotificationActivated(role=role, payload=dict(payload))
        logger.info(f"Notification activated: {role.key}")
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Activation listener failed", extra={"role": role.key})
        return event
