from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import NotificationType, Priority
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_utc, db_cursor, fetchall, fetchone, from_json, to_db_datetime, to_json
from .model import Notification
from .repository import NotificationRepository

_COLUMNS = (
    "notification_id, tenant_id, user_id, user_name, title, message, type, priority, category, "
    "channels, action_url, action_label, data, is_read, created_at, read_at"
)


def _row_to_notification(r: dict) -> Notification:
    return Notification(
        notification_id=str(r["notification_id"]),
        tenant_id=str(r["tenant_id"]),
        user_id=str(r["user_id"]),
        user_name=r["user_name"],
        title=r["title"],
        message=r["message"],
        type=NotificationType(r["type"]),
        priority=Priority(r["priority"]),
        category=r["category"],
        channels=tuple(from_json(r.get("channels"), ["in-app"])),
        action_url=r.get("action_url"),
        action_label=r.get("action_label"),
        data=from_json(r.get("data")),
        read=bool(r.get("is_read")),
        created_at=as_utc(r["created_at"]),
        read_at=as_utc(r.get("read_at")),
    )


def _user_filter(
    tenant_id: str, user_id: str, is_read: Optional[bool], category: Optional[str]
) -> tuple[str, list]:
    where = ["tenant_id=%s", "user_id=%s"]
    params: list = [tenant_id, user_id]
    if is_read is not None:
        where.append("is_read=%s")
        params.append(1 if is_read else 0)
    if category:
        where.append("category=%s")
        params.append(category)
    return " AND ".join(where), params


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, notification: Notification) -> None:
        n = notification
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO notifications({_COLUMNS}) VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)",
                (
                    n.notification_id,
                    n.tenant_id,
                    n.user_id,
                    n.user_name,
                    n.title,
                    n.message,
                    n.type.value,
                    n.priority.value,
                    n.category,
                    to_json(list(n.channels)),
                    n.action_url,
                    n.action_label,
                    to_json(n.data),
                    1 if n.read else 0,
                    to_db_datetime(n.created_at),
                    to_db_datetime(n.read_at),
                ),
            )

    def list_for_user(
        self,
        tenant_id: str,
        user_id: str,
        *,
        is_read: Optional[bool] = None,
        category: Optional[str] = None,
        limit: int,
        skip: int = 0,
    ) -> Sequence[Notification]:
        where, params = _user_filter(tenant_id, user_id, is_read, category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM notifications WHERE {where} ORDER BY created_at DESC LIMIT %s OFFSET %s",
                (*params, int(limit), int(skip)),
            )
            return [_row_to_notification(r) for r in fetchall(cur)]

    def count_for_user(
        self, tenant_id: str, user_id: str, *, is_read: Optional[bool] = None, category: Optional[str] = None
    ) -> int:
        where, params = _user_filter(tenant_id, user_id, is_read, category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS cnt FROM notifications WHERE {where}", tuple(params))
            r = fetchone(cur)
            return int(r["cnt"]) if r else 0

    def get_for_user(self, tenant_id: str, user_id: str, notification_id: str) -> Optional[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM notifications WHERE tenant_id=%s AND user_id=%s AND notification_id=%s",
                (tenant_id, user_id, notification_id),
            )
            r = fetchone(cur)
            return _row_to_notification(r) if r else None

    def mark_read(self, tenant_id: str, user_id: str, notification_id: str, read_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE notifications SET is_read=1, read_at=%s
                WHERE tenant_id=%s AND user_id=%s AND notification_id=%s AND is_read=0
                """,
                (to_db_datetime(read_at), tenant_id, user_id, notification_id),
            )

    def mark_all_read(self, tenant_id: str, user_id: str, read_at: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE notifications SET is_read=1, read_at=%s WHERE tenant_id=%s AND user_id=%s AND is_read=0",
                (to_db_datetime(read_at), tenant_id, user_id),
            )
            return int(cur.rowcount or 0)
