from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_WORKFLOW_PAGE_SIZE
from ..core.enums import NotificationType, Priority, StepStatus, WorkflowStatus, WorkflowType
from ..core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from .model import NewWorkflowStep, Workflow, WorkflowStep
from .repository import WorkflowRepository
from .service import NotificationService

logger = logging.getLogger(__name__)

_PRIORITY_RANK = {Priority.URGENT: 3, Priority.HIGH: 2, Priority.NORMAL: 1, Priority.LOW: 0}
_NOTIFY_CHANNELS = ("in-app", "email")


class WorkflowService:
    """Sequential approval workflows; each assignee is notified when their step becomes current."""

    def __init__(
        self,
        workflows: WorkflowRepository,
        notifications: NotificationService,
        *,
        clock: Callable = utc_now,
    ):
        self._workflows = workflows
        self._notifications = notifications
        self._clock = clock

    def get_workflow(self, *, tenant_id: str, workflow_id: str) -> Workflow:
        workflow = self._workflows.get_by_id(tenant_id, workflow_id)
        if not workflow:
            raise NotFoundError("Workflow not found")
        return workflow

    def _notify_assignee(self, workflow: Workflow, step: WorkflowStep) -> None:
        self._notifications.create_notification(
            tenant_id=workflow.tenant_id,
            user_id=step.assigned_to,
            user_name=step.assigned_to_name,
            template_key="WORKFLOW_STEP_ASSIGNED",
            variables={"stepName": step.name, "workflowName": workflow.name},
            channels=_NOTIFY_CHANNELS,
            priority=Priority.URGENT if workflow.priority == Priority.URGENT else Priority.HIGH,
            action_url=f"/workflows/{workflow.workflow_id}",
            data={
                "workflowId": workflow.workflow_id,
                "stepId": step.step_id,
                "resourceType": workflow.resource_type,
                "resourceId": workflow.resource_id,
            },
        )

    def _notify_requester(self, workflow: Workflow, template_key: str, **variables) -> None:
        self._notifications.create_notification(
            tenant_id=workflow.tenant_id,
            user_id=workflow.requested_by,
            user_name=workflow.requested_by_name,
            template_key=template_key,
            variables={"workflowName": workflow.name, **variables},
            channels=_NOTIFY_CHANNELS,
            action_url=f"/workflows/{workflow.workflow_id}",
            data={
                "workflowId": workflow.workflow_id,
                "resourceType": workflow.resource_type,
                "resourceId": workflow.resource_id,
            },
        )

    def create_workflow(
        self,
        *,
        tenant_id: str,
        type: WorkflowType,
        name: str,
        resource_type: str,
        resource_id: str,
        requested_by: str,
        requested_by_name: str,
        steps: Sequence[NewWorkflowStep],
        priority: Priority = Priority.NORMAL,
        description: Optional[str] = None,
    ) -> Workflow:
        if not steps:
            raise ValidationError("A workflow needs at least one step")

        workflow = Workflow(
            workflow_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            type=type,
            name=require_non_empty(name, "name"),
            description=description,
            resource_type=require_non_empty(resource_type, "resource_type"),
            resource_id=require_non_empty(resource_id, "resource_id"),
            requested_by=requested_by,
            requested_by_name=requested_by_name,
            status=WorkflowStatus.IN_PROGRESS,
            current_step_index=0,
            steps=tuple(
                WorkflowStep(
                    step_id=str(uuid.uuid4()),
                    name=require_non_empty(s.name, "step name"),
                    assigned_to=require_non_empty(s.assigned_to, "assigned_to"),
                    assigned_to_name=s.assigned_to_name,
                    assigned_to_role=s.assigned_to_role,
                    due_date=s.due_date,
                )
                for s in steps
            ),
            priority=priority,
            started_at=self._clock(),
        )
        self._workflows.create(workflow)

        first = workflow.steps[0]
        self._notify_assignee(workflow, first)
        workflow = workflow.with_step(0, replace(first, notification_sent=True))
        self._workflows.save(workflow)

        logger.info("workflow %s created with %d steps", workflow.workflow_id, len(steps), extra={"tenant_id": tenant_id})
        return workflow

    def _actionable_step(self, workflow: Workflow, step_id: str, user_id: str, action: str) -> int:
        index = workflow.step_index(step_id)
        if index == -1:
            raise NotFoundError("Step not found")
        step = workflow.steps[index]
        if step.assigned_to != user_id:
            raise AuthorizationError(f"You are not authorized to {action} this step")
        if workflow.status != WorkflowStatus.IN_PROGRESS:
            raise InvalidStateError(
                "Workflow is not in progress", expected=WorkflowStatus.IN_PROGRESS, actual=workflow.status
            )
        if index != workflow.current_step_index or step.status != StepStatus.PENDING:
            raise InvalidStateError("Step is not awaiting action", expected=StepStatus.PENDING, actual=step.status)
        return index

    def complete_step(
        self,
        *,
        tenant_id: str,
        workflow_id: str,
        step_id: str,
        completed_by: str,
        completed_by_name: str,
        comments: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Workflow:
        workflow = self.get_workflow(tenant_id=tenant_id, workflow_id=workflow_id)
        index = self._actionable_step(workflow, step_id, completed_by, "complete")
        now = self._clock()

        step = workflow.steps[index]
        workflow = workflow.with_step(
            index,
            replace(
                step,
                status=StepStatus.COMPLETED,
                completed_at=now,
                completed_by=completed_by,
                completed_by_name=completed_by_name,
                comments=comments or step.comments,
                data=data or step.data,
            ),
        )

        if index == len(workflow.steps) - 1:
            workflow = replace(workflow, status=WorkflowStatus.COMPLETED, completed_at=now)
            self._notify_requester(workflow, "WORKFLOW_COMPLETED")
            logger.info("workflow %s completed", workflow_id, extra={"tenant_id": tenant_id})
        else:
            next_index = index + 1
            next_step = replace(workflow.steps[next_index], status=StepStatus.PENDING)
            workflow = replace(workflow, current_step_index=next_index)
            self._notify_assignee(workflow, next_step)
            workflow = workflow.with_step(next_index, replace(next_step, notification_sent=True))

        self._workflows.save(workflow)
        return workflow

    def reject_step(
        self,
        *,
        tenant_id: str,
        workflow_id: str,
        step_id: str,
        rejected_by: str,
        rejected_by_name: str,
        reason: str,
    ) -> Workflow:
        reason = require_non_empty(reason, "reason")
        workflow = self.get_workflow(tenant_id=tenant_id, workflow_id=workflow_id)
        index = self._actionable_step(workflow, step_id, rejected_by, "reject")
        now = self._clock()

        step = replace(
            workflow.steps[index],
            status=StepStatus.REJECTED,
            completed_at=now,
            completed_by=rejected_by,
            completed_by_name=rejected_by_name,
            comments=reason,
        )
        workflow = replace(
            workflow.with_step(index, step),
            status=WorkflowStatus.CANCELLED,
            cancelled_at=now,
            cancelled_by=rejected_by,
            cancellation_reason=f"Rejected at step: {step.name}. Reason: {reason}",
        )
        self._workflows.save(workflow)
        self._notify_requester(workflow, "WORKFLOW_REJECTED", stepName=step.name, reason=reason)
        logger.info("workflow %s rejected at %s", workflow_id, step.name, extra={"tenant_id": tenant_id})
        return workflow

    def cancel_workflow(self, *, tenant_id: str, workflow_id: str, cancelled_by: str, reason: str) -> Workflow:
        workflow = self.get_workflow(tenant_id=tenant_id, workflow_id=workflow_id)
        if workflow.status in (WorkflowStatus.COMPLETED, WorkflowStatus.CANCELLED):
            raise InvalidStateError(f"Workflow is already {workflow.status.value}", actual=workflow.status)
        workflow = replace(
            workflow,
            status=WorkflowStatus.CANCELLED,
            cancelled_at=self._clock(),
            cancelled_by=cancelled_by,
            cancellation_reason=reason,
        )
        self._workflows.save(workflow)
        return workflow

    def pending_for_user(
        self, *, tenant_id: str, user_id: str, limit: int = DEFAULT_WORKFLOW_PAGE_SIZE, skip: int = 0
    ) -> dict:
        """Workflows whose current step waits on ``user_id``, most urgent first."""
        waiting = [w for w in self._workflows.list_in_progress(tenant_id, assigned_to=user_id) if w.awaits(user_id)]
        # Newest first from the repository; stable sort keeps that within a priority.
        waiting.sort(key=lambda w: _PRIORITY_RANK[w.priority], reverse=True)
        page = waiting[skip : skip + limit]
        return {"workflows": page, "total": len(waiting)}

    def stats(self, *, tenant_id: str, user_id: Optional[str] = None) -> dict:
        workflows = self._workflows.list_involving(tenant_id, user_id)

        def count(status: WorkflowStatus) -> int:
            return sum(1 for w in workflows if w.status == status)

        return {
            "total": len(workflows),
            "pending": count(WorkflowStatus.PENDING),
            "inProgress": count(WorkflowStatus.IN_PROGRESS),
            "completed": count(WorkflowStatus.COMPLETED),
            "cancelled": count(WorkflowStatus.CANCELLED),
            "pendingTasks": sum(1 for w in workflows if w.awaits(user_id)) if user_id else 0,
        }

    def send_overdue_reminders(self, *, tenant_id: str) -> int:
        """Remind assignees whose current step is past its due date; returns reminders sent."""
        now = self._clock()
        sent = 0
        for workflow in self._workflows.list_in_progress(tenant_id):
            step = workflow.current_step
            if step is None or step.status != StepStatus.PENDING or step.due_date is None or step.due_date >= now:
                continue

            self._notifications.create_notification(
                tenant_id=tenant_id,
                user_id=step.assigned_to,
                user_name=step.assigned_to_name,
                title="Tarea Vencida",
                message=(
                    f'La tarea "{step.name}" en el proceso "{workflow.name}" está vencida '
                    f"desde {step.due_date.strftime('%d/%m/%Y')}."
                ),
                type=NotificationType.WARNING,
                priority=Priority.URGENT,
                category="workflow",
                channels=_NOTIFY_CHANNELS,
                action_url=f"/workflows/{workflow.workflow_id}",
                action_label="Ver Tarea",
                data={"workflowId": workflow.workflow_id, "stepId": step.step_id},
            )
            updated = workflow.with_step(
                workflow.current_step_index, replace(step, reminders_sent=step.reminders_sent + 1)
            )
            self._workflows.save(updated)
            sent += 1

        if sent:
            logger.info("sent %d overdue workflow reminders", sent, extra={"tenant_id": tenant_id})
        return sent
