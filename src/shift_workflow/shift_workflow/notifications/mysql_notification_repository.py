from __future__ import annotations

from ..core.enums import NotificationSeverity
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import NewNotification, Notification
from .repository import NotificationRepository


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(self, new: NewNotification) -> Notification:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO employee_notifications(user_id, title, message, type, link_url)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(new.user_id), new.title, new.message, new.severity.value, new.link_url),
            )
            cur.execute(
                "SELECT id, user_id, title, message, type, link_url, is_read, created_at FROM employee_notifications WHERE id=%s",
                (int(cur.lastrowid),),
            )
            r = fetchone(cur)
            return Notification(
                notification_id=int(r["id"]),
                user_id=int(r["user_id"]),
                title=str(r["title"]),
                message=str(r["message"]),
                severity=NotificationSeverity(r["type"]),
                link_url=r.get("link_url"),
                is_read=bool(r.get("is_read")),
                created_at=r.get("created_at"),
            )
