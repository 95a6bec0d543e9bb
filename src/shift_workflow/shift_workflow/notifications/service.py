from __future__ import annotations

import logging
from typing import Optional

from ..core.enums import NotificationSeverity
from ..tenants.model import TenantStores
from .fanout import Publisher, safe_publish, user_room
from .model import NewNotification, Notification

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, publisher: Publisher):
        self._publisher = publisher

    def notify(
        self,
        tenant: TenantStores,
        *,
        user_id: int,
        title: str,
        message: str,
        severity: NotificationSeverity,
        link_url: Optional[str] = None,
    ) -> Optional[Notification]:
        """Persist a notification in the user's tenant and push it to their room.

        Never raises: a failed notification is logged and reported as None.
        """
        try:
            notification = tenant.notifications.insert(
                NewNotification(
                    user_id=int(user_id),
                    title=title,
                    message=message,
                    severity=severity,
                    link_url=link_url,
                )
            )
        except Exception:
            logger.exception("Failed to store notification %r for user %s in %s", title, user_id, tenant.name)
            return None

        safe_publish(self._publisher, tenant.name, user_room(user_id), "notification:new", notification)
        return notification
