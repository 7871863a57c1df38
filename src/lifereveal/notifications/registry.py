"""Bookkeeping of the currently registered notification generation."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional

from lifereveal.notifications.models import NotificationRole
from lifereveal.notifications.triggers import TriggerRegistry

logger = logging.getLogger(__name__)


class ScheduleRegistry:
    """Maps logical roles to the identifiers the trigger registry returned.

    Holds at most one generation. Pending snoozes are tracked apart from the
    generation so that a rebuild never cancels them.
    """

    def __init__(self) -> None:
        self._active: Dict[NotificationRole, str] = {}
        self._snoozed: List[str] = []

    def record_active(self, role: NotificationRole, external_id: str) -> None:
        previous = self._active.get(role)
        if previous is not None and previous != external_id:
            logger.debug(f"Replacing trigger for {role.key}: {previous} -> {external_id}")
        self._active[role] = external_id

    def active_roles(self) -> FrozenSet[NotificationRole]:
        return frozenset(self._active)

    def external_id_for(self, role: NotificationRole) -> Optional[str]:
        return self._active.get(role)

    def snapshot(self) -> Dict[NotificationRole, str]:
        return dict(self._active)

    def __len__(self) -> int:
        return len(self._active)

    async def cancel_all(
        self, client: TriggerRegistry, *, timeout: Optional[float] = None
    ) -> List[str]:
        """Cancel every stored trigger, then clear the map.

        Individual failures are logged and swallowed; the map is cleared
        regardless.

        Returns:
            External ids whose cancellation failed
        """
        failures: List[str] = []
        for role, external_id in list(self._active.items()):
            if not await _cancel_one(client, external_id, timeout, role.key):
                failures.append(external_id)
        self._active.clear()
        return failures

    # Snoozes

    def record_snoozed(self, external_id: str) -> None:
        self._snoozed.append(external_id)

    def snoozed_ids(self) -> List[str]:
        return list(self._snoozed)

    def forget_fired_snoozes(self, live_ids: Iterable[str]) -> List[str]:
        """Drop snoozes the trigger registry no longer holds (already fired).

        Returns:
            The ids that were dropped
        """
        live = set(live_ids)
        fired = [external_id for external_id in self._snoozed if external_id not in live]
        if fired:
            self._snoozed = [external_id for external_id in self._snoozed if external_id in live]
            logger.debug(f"Forgot {len(fired)} fired snooze(s)")
        return fired

    async def cancel_snoozes(
        self, client: TriggerRegistry, *, timeout: Optional[float] = None
    ) -> List[str]:
        failures = [
            external_id
            for external_id in list(self._snoozed)
            if not await _cancel_one(client, external_id, timeout, "snoozed-log")
        ]
        self._snoozed.clear()
        return failures


async def _cancel_one(
    client: TriggerRegistry, external_id: str, timeout: Optional[float], role_key: str
) -> bool:
    try:
        if timeout is None:
            await client.cancel(external_id)
        else:
            await asyncio.wait_for(client.cancel(external_id), timeout)
        return True
    except Exception as exc:
        logger.warning(
            f"Failed to cancel trigger {external_id}: {exc}",
            extra={"role": role_key, "external_id": external_id},
        )
        return False
