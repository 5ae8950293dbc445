from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Notification, Workflow


class NotificationRepository(Protocol):
    def create(self, notification: Notification) -> None:
        raise NotImplementedError

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
        """Newest first."""

        raise NotImplementedError

    def count_for_user(
        self, tenant_id: str, user_id: str, *, is_read: Optional[bool] = None, category: Optional[str] = None
    ) -> int:
        raise NotImplementedError

    def get_for_user(self, tenant_id: str, user_id: str, notification_id: str) -> Optional[Notification]:
        raise NotImplementedError

    def mark_read(self, tenant_id: str, user_id: str, notification_id: str, read_at: datetime) -> None:
        raise NotImplementedError

    def mark_all_read(self, tenant_id: str, user_id: str, read_at: datetime) -> int:
        raise NotImplementedError


class WorkflowRepository(Protocol):
    def create(self, workflow: Workflow) -> None:
        raise NotImplementedError

    def get_by_id(self, tenant_id: str, workflow_id: str) -> Optional[Workflow]:
        raise NotImplementedError

    def save(self, workflow: Workflow) -> None:
        raise NotImplementedError

    def list_in_progress(self, tenant_id: str, *, assigned_to: Optional[str] = None) -> Sequence[Workflow]:
        """In-progress workflows, optionally only those with any step assigned to ``assigned_to``."""

        raise NotImplementedError

    def list_involving(self, tenant_id: str, user_id: Optional[str] = None) -> Sequence[Workflow]:
        """All workflows, or those requested by or assigned to ``user_id``."""

        raise NotImplementedError
