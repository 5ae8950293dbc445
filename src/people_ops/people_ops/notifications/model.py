from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_datetime
from ..core.enums import NotificationType, Priority, StepStatus, WorkflowStatus, WorkflowType
from ..core.exceptions import ValidationError


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class Notification:
    """In-app notification record. Delivery over other channels is out of scope;
    ``channels`` only records what the sender asked for."""

    notification_id: str
    tenant_id: str
    user_id: str
    user_name: str
    title: str
    message: str
    type: NotificationType
    priority: Priority
    category: str
    created_at: datetime
    channels: tuple[str, ...] = ("in-app",)
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    read: bool = False
    read_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "userId": self.user_id,
            "userName": self.user_name,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "priority": self.priority.value,
            "category": self.category,
            "channels": list(self.channels),
            "actionUrl": self.action_url,
            "actionLabel": self.action_label,
            "data": self.data,
            "isRead": self.read,
            "createdAt": _iso(self.created_at),
            "readAt": _iso(self.read_at),
        }


@dataclass(frozen=True)
class WorkflowStep:
    step_id: str
    name: str
    assigned_to: str
    assigned_to_name: str
    assigned_to_role: Optional[str] = None
    status: StepStatus = StepStatus.PENDING
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    completed_by_name: Optional[str] = None
    comments: Optional[str] = None
    data: Optional[dict[str, Any]] = None
    notification_sent: bool = False
    reminders_sent: int = 0

    def to_dict(self) -> dict:
        return {
            "stepId": self.step_id,
            "name": self.name,
            "assignedTo": self.assigned_to,
            "assignedToName": self.assigned_to_name,
            "assignedToRole": self.assigned_to_role,
            "status": self.status.value,
            "dueDate": _iso(self.due_date),
            "completedAt": _iso(self.completed_at),
            "completedBy": self.completed_by,
            "completedByName": self.completed_by_name,
            "comments": self.comments,
            "data": self.data,
            "notificationSent": self.notification_sent,
            "remindersSent": self.reminders_sent,
        }


@dataclass(frozen=True)
class NewWorkflowStep:
    name: str
    assigned_to: str
    assigned_to_name: str
    assigned_to_role: Optional[str] = None
    due_date: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NewWorkflowStep":
        if not isinstance(data, Mapping):
            raise ValidationError("Each step must be an object")
        due = data.get("dueDate")
        return cls(
            name=str(data.get("name") or ""),
            assigned_to=str(data.get("assignedTo") or ""),
            assigned_to_name=str(data.get("assignedToName") or ""),
            assigned_to_role=data.get("assignedToRole"),
            due_date=parse_iso_datetime(due, "dueDate") if due else None,
        )


@dataclass(frozen=True)
class Workflow:
    """Sequential approval process; only the step at ``current_step_index`` is actionable."""

    workflow_id: str
    tenant_id: str
    type: WorkflowType
    name: str
    resource_type: str
    resource_id: str
    requested_by: str
    requested_by_name: str
    started_at: datetime
    status: WorkflowStatus = WorkflowStatus.IN_PROGRESS
    current_step_index: int = 0
    steps: tuple[WorkflowStep, ...] = field(default_factory=tuple)
    priority: Priority = Priority.NORMAL
    description: Optional[str] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None

    @property
    def current_step(self) -> Optional[WorkflowStep]:
        if 0 <= self.current_step_index < len(self.steps):
            return self.steps[self.current_step_index]
        return None

    def step_index(self, step_id: str) -> int:
        for i, s in enumerate(self.steps):
            if s.step_id == step_id:
                return i
        return -1

    def with_step(self, index: int, step: WorkflowStep) -> "Workflow":
        steps = list(self.steps)
        steps[index] = step
        return replace(self, steps=tuple(steps))

    def awaits(self, user_id: str) -> bool:
        """True when the current step is pending on ``user_id``."""
        step = self.current_step
        return (
            self.status == WorkflowStatus.IN_PROGRESS
            and step is not None
            and step.assigned_to == user_id
            and step.status == StepStatus.PENDING
        )

    def to_dict(self) -> dict:
        return {
            "id": self.workflow_id,
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "resourceType": self.resource_type,
            "resourceId": self.resource_id,
            "requestedBy": self.requested_by,
            "requestedByName": self.requested_by_name,
            "status": self.status.value,
            "currentStepIndex": self.current_step_index,
            "steps": [s.to_dict() for s in self.steps],
            "priority": self.priority.value,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "cancelledAt": _iso(self.cancelled_at),
            "cancelledBy": self.cancelled_by,
            "cancellationReason": self.cancellation_reason,
        }
