from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_WORKFLOW_PAGE_SIZE
from ..core.enums import NotificationType, Priority
from ..core.exceptions import NotFoundError, ValidationError
from .model import Notification
from .repository import NotificationRepository
from .templates import NOTIFICATION_TEMPLATES, render_template

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates and reads in-app notifications."""

    def __init__(self, notifications: NotificationRepository, *, clock: Callable = utc_now):
        self._notifications = notifications
        self._clock = clock

    def create_notification(
        self,
        *,
        tenant_id: str,
        user_id: str,
        user_name: str,
        template_key: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
        title: Optional[str] = None,
        message: Optional[str] = None,
        type: Optional[NotificationType] = None,
        priority: Optional[Priority] = None,
        category: Optional[str] = None,
        channels: Sequence[str] = ("in-app",),
        action_url: Optional[str] = None,
        action_label: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Notification:
        """Render ``template_key`` with ``variables``; explicit arguments override the template."""
        fields: dict = dict(
            title="",
            message="",
            type=NotificationType.INFO,
            priority=Priority.NORMAL,
            category="system",
            action_label=None,
        )
        if template_key is not None:
            template = NOTIFICATION_TEMPLATES.get(template_key)
            if template is None:
                raise ValidationError(f"Unknown notification template: {template_key}")
            fields.update(
                title=render_template(template.title, variables),
                message=render_template(template.message, variables),
                type=template.type,
                priority=template.priority,
                category=template.category,
                action_label=template.action_label,
            )

        overrides = dict(
            title=title,
            message=message,
            type=type,
            priority=priority,
            category=category,
            action_label=action_label,
        )
        fields.update({k: v for k, v in overrides.items() if v})

        notification = Notification(
            notification_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            user_id=require_non_empty(user_id, "user_id"),
            user_name=user_name or "",
            title=require_non_empty(fields["title"], "title"),
            message=require_non_empty(fields["message"], "message"),
            type=fields["type"],
            priority=fields["priority"],
            category=fields["category"],
            channels=tuple(channels),
            action_url=action_url,
            action_label=fields["action_label"],
            data=data,
            created_at=self._clock(),
        )
        self._notifications.create(notification)
        logger.debug(
            "notification %s -> %s",
            template_key or notification.category,
            user_id,
            extra={"tenant_id": tenant_id},
        )
        return notification

    def list_for_user(
        self,
        *,
        tenant_id: str,
        user_id: str,
        is_read: Optional[bool] = None,
        category: Optional[str] = None,
        limit: int = DEFAULT_WORKFLOW_PAGE_SIZE,
        skip: int = 0,
    ) -> dict:
        items = self._notifications.list_for_user(
            tenant_id, user_id, is_read=is_read, category=category, limit=limit, skip=skip
        )
        total = self._notifications.count_for_user(tenant_id, user_id, is_read=is_read, category=category)
        return {"notifications": list(items), "total": total, "limit": limit, "skip": skip}

    def mark_read(self, *, tenant_id: str, user_id: str, notification_id: str) -> None:
        if not self._notifications.get_for_user(tenant_id, user_id, notification_id):
            raise NotFoundError("Notification not found")
        self._notifications.mark_read(tenant_id, user_id, notification_id, self._clock())

    def mark_all_read(self, *, tenant_id: str, user_id: str) -> int:
        return self._notifications.mark_all_read(tenant_id, user_id, self._clock())
