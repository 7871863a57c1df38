"""Where fired reminders end up.

- Inbox: JSON history the app reads to list recent reminders
- Desktop: one file per reminder in a hand-off directory; the host app shows
  it as a native notification and removes the file
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from lifereveal.notifications.models import NotificationContent

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass
class DeliveredNotification:
    """A reminder handed to a channel.

    ``payload`` is the trigger payload (role key, type, hour) and is echoed
    back to the engine when the user taps the notification.
    """

    title: str
    body: str
    payload: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid4().hex)
    fired_at: datetime = field(default_factory=_now)
    delivered_at: Optional[datetime] = None
    read: bool = False

    @classmethod
    def from_content(
        cls, content: NotificationContent, payload: Optional[Mapping[str, Any]] = None
    ) -> "DeliveredNotification":
        return cls(title=content.title, body=content.body, payload=dict(payload or {}))

    @property
    def role_key(self) -> Optional[str]:
        return self.payload.get("role")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "payload": self.payload,
            "firedAt": self.fired_at.isoformat(),
            "deliveredAt": self.delivered_at.isoformat() if self.delivered_at else None,
            "read": self.read,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeliveredNotification":
        return cls(
            id=data["id"],
            title=data["title"],
            body=data["body"],
            payload=dict(data.get("payload") or {}),
            fired_at=_parse_time(data.get("firedAt")) or _now(),
            delivered_at=_parse_time(data.get("deliveredAt")),
            read=bool(data.get("read", False)),
        )


class NotificationChannel(ABC):
    """Destination for fired reminders."""

    @abstractmethod
    def deliver(self, notification: DeliveredNotification) -> bool:
        """Hand over one reminder; False when it could not be stored."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the channel can currently take deliveries."""


def _write_json_atomic(path: Path, data: Any) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    os.replace(tmp, path)


class InboxChannel(NotificationChannel):
    """Bounded history of delivered reminders in ``inbox.json``.

    Oldest entries are dropped once ``CAPACITY`` is reached.
    """

    FILENAME = "inbox.json"
    CAPACITY = 100

    def __init__(self, directory: Path) -> None:
        self._path = Path(directory).expanduser() / self.FILENAME
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._entries = self._read()
        logger.debug(f"Inbox opened with {len(self._entries)} entries")

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> List[DeliveredNotification]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return [DeliveredNotification.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Inbox at {self._path} is unreadable, starting empty: {e}")
            return []

    def _flush(self) -> bool:
        del self._entries[: -self.CAPACITY]
        try:
            _write_json_atomic(self._path, [entry.to_dict() for entry in self._entries])
            return True
        except OSError as e:
            logger.warning(f"Could not write inbox: {e}", extra={"path": str(self._path)})
            return False

    def deliver(self, notification: DeliveredNotification) -> bool:
        notification.delivered_at = _now()
        self._entries.append(notification)
        stored = self._flush()
        if stored:
            logger.info(f"Inbox received: {notification.title[:50]}", extra={"role": notification.role_key})
        return stored

    def is_available(self) -> bool:
        return self._path.parent.is_dir()

    def recent(self, limit: int = 50, *, unread_only: bool = False) -> List[DeliveredNotification]:
        """Newest first."""
        entries = [e for e in self._entries if not (unread_only and e.read)]
        return entries[::-1][:limit]

    def acknowledge(self, notification_id: str) -> bool:
        """Mark one entry read; False when the id is unknown."""
        entry = next((e for e in self._entries if e.id == notification_id), None)
        if entry is None:
            return False
        entry.read = True
        self._flush()
        return True

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries = []
        self._flush()
        return removed


class DesktopChannel(NotificationChannel):
    """Drops ``<id>.json`` files for the host app to show natively."""

    def __init__(self, handoff_dir: Path) -> None:
        self._dir = Path(handoff_dir).expanduser()

    def deliver(self, notification: DeliveredNotification) -> bool:
        notification.delivered_at = _now()
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            _write_json_atomic(self._dir / f"{notification.id}.json", notification.to_dict())
        except OSError as e:
            logger.warning(f"Desktop hand-off failed: {e}", extra={"notification_id": notification.id})
            return False
        logger.debug(f"Desktop hand-off written for {notification.role_key or 'test'}")
        return True

    def is_available(self) -> bool:
        return self._dir.is_dir()

    def pending(self) -> List[Path]:
        return sorted(self._dir.glob("*.json")) if self._dir.is_dir() else []

    def drain(self) -> List[DeliveredNotification]:
        """Load and remove every pending hand-off file (what the host app does)."""
        drained = []
        for path in self.pending():
            try:
                drained.append(DeliveredNotification.from_dict(json.loads(path.read_text(encoding="utf-8"))))
                path.unlink()
            except (OSError, ValueError, KeyError) as e:
                logger.warning(f"Skipping hand-off file {path.name}: {e}")
        return drained
