"""User-facing notification feed."""

from __future__ import annotations

from collections import deque
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional

from pydantic import BaseModel, Field

from plume.core.config import settings
from plume.core.logging import get_logger

logger = get_logger(__name__)


class NotificationLevel(str, Enum):
    success = "success"
    info = "info"
    error = "error"


class Notification(BaseModel):
    """A message meant for the person driving the batch."""

    level: NotificationLevel
    message: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class NotificationCenter:
    """Keeps the most recent notifications and mirrors them to the log."""

    def __init__(self, history: Optional[int] = None) -> None:
        self._items: Deque[Notification] = deque(maxlen=history or settings.notification_history)

    def success(self, message: str) -> Notification:
        return self._push(NotificationLevel.success, message)

    def info(self, message: str) -> Notification:
        return self._push(NotificationLevel.info, message)

    def error(self, message: str) -> Notification:
        return self._push(NotificationLevel.error, message)

    def recent(self, limit: Optional[int] = None) -> List[Notification]:
        items = list(self._items)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._items.clear()

    def _push(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self._items.append(notification)
        logger.info("notification", level=level.value, message=message)
        return notification
