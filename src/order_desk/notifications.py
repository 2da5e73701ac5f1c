"""
Process-wide notification channel.

NotificationCenter keeps the list of notifications currently on display,
removes each one after a display duration, and pushes the updated list to
subscribers. Its push() method has the ``(message, kind)`` signature the
ErrorNormalizer expects from a notification sink.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable, List, Optional

from .models import Notification, NotificationKind
from .scheduling import LoopScheduler, Scheduler

logger = logging.getLogger(__name__)

Listener = Callable[[List[Notification]], None]


class NotificationCenter:
    def __init__(self, scheduler: Optional[Scheduler] = None, display_seconds: float = 5.0) -> None:
        self.display_seconds = display_seconds
        self._scheduler = scheduler or LoopScheduler()
        self._notifications: List[Notification] = []
        self._listeners: List[Listener] = []
        self._ids = itertools.count(1)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener, send it the current list, and return an unsubscribe callable."""
        self._listeners.append(listener)
        listener(list(self._notifications))

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def push(self, message: str, kind: NotificationKind | str = NotificationKind.INFO) -> str:
        notification = Notification(
            id=f"notification-{next(self._ids)}",
            kind=NotificationKind(kind),
            message=message,
            created_at=self._scheduler.now(),
        )
        self._notifications.append(notification)
        logger.debug(f"Notification {notification.id} ({notification.kind.value}): {message}")
        self._notify_listeners()

        if self.display_seconds > 0:
            self._scheduler.call_later(self.display_seconds, self.remove, notification.id)
        return notification.id

    def success(self, message: str) -> str:
        return self.push(message, NotificationKind.SUCCESS)

    def error(self, message: str) -> str:
        return self.push(message, NotificationKind.ERROR)

    def warning(self, message: str) -> str:
        return self.push(message, NotificationKind.WARNING)

    def info(self, message: str) -> str:
        return self.push(message, NotificationKind.INFO)

    def remove(self, notification_id: str) -> bool:
        for index, notification in enumerate(self._notifications):
            if notification.id == notification_id:
                del self._notifications[index]
                self._notify_listeners()
                return True
        return False

    def clear(self) -> None:
        self._notifications = []
        self._notify_listeners()

    def list(self) -> List[Notification]:
        return list(self._notifications)

    def _notify_listeners(self) -> None:
        snapshot = list(self._notifications)
        for listener in list(self._listeners):
            listener(snapshot)
