from __future__ import annotations

from typing import Protocol

from .model import NewNotification, Notification


class NotificationRepository(Protocol):
    def insert(self, new: NewNotification) -> Notification:
        raise NotImplementedError
