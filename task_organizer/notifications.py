"""User-visible notifications (toasts) queued for the client."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(slots=True)
class Notification:
    """A single toast message."""

    level: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "createdAt": self.created_at.isoformat(),
        }


class Notifier:
    """Collects notifications until the next response drains them."""

    def __init__(self) -> None:
        self._pending: List[Notification] = []

    def success(self, message: str) -> None:
        logger.info("Notify success: %s", message)
        self._pending.append(Notification(NotificationLevel.SUCCESS.value, message))

    def error(self, message: str) -> None:
        logger.warning("Notify error: %s", message)
        self._pending.append(Notification(NotificationLevel.ERROR.value, message))

    def info(self, message: str) -> None:
        logger.info("Notify info: %s", message)
        self._pending.append(Notification(NotificationLevel.INFO.value, message))

    @property
    def pending(self) -> List[Notification]:
        return list(self._pending)

    def drain(self) -> List[Notification]:
        """Return and clear all pending notifications."""
        drained, self._pending = self._pending, []
        return drained
