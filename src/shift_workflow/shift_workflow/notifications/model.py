from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationSeverity


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    title: str
    message: str
    severity: NotificationSeverity
    link_url: Optional[str] = None
    is_read: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewNotification:
    user_id: int
    title: str
    message: str
    severity: NotificationSeverity
    link_url: Optional[str] = None
