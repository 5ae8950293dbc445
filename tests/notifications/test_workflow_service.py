from __future__ import annotations

from datetime import datetime, timezone

import pytest

from src.people_ops.people_ops.core.enums import (
    NotificationType,
    Priority,
    StepStatus,
    WorkflowStatus,
    WorkflowType,
)
from src.people_ops.people_ops.core.exceptions import AuthorizationError, InvalidStateError, NotFoundError, ValidationError
from src.people_ops.people_ops.notifications.model import NewWorkflowStep
from src.people_ops.people_ops.notifications.service import NotificationService
from src.people_ops.people_ops.notifications.workflow_service import WorkflowService
from tests.fakes import FixedClock, InMemoryNotifications, InMemoryWorkflows


@pytest.fixture
def notifications():
    return InMemoryNotifications()


@pytest.fixture
def svc(notifications):
    clock = FixedClock()
    return WorkflowService(InMemoryWorkflows(), NotificationService(notifications, clock=clock), clock=clock)


TWO_STEPS = [
    NewWorkflowStep(name="Jefe", assigned_to="boss", assigned_to_name="Bruno"),
    NewWorkflowStep(name="RRHH", assigned_to="hr", assigned_to_name="Helena"),
]


def _create(svc, priority=Priority.NORMAL, name="Alta de beneficio", steps=None):
    return svc.create_workflow(
        tenant_id="t1",
        type=WorkflowType.BENEFIT_ENROLLMENT,
        name=name,
        resource_type="benefit",
        resource_id="b-1",
        requested_by="req",
        requested_by_name="Rita",
        priority=priority,
        steps=TWO_STEPS if steps is None else steps,
    )


def test_create_notifies_first_assignee(svc, notifications):
    wf = _create(svc)

    assert wf.status == WorkflowStatus.IN_PROGRESS
    assert wf.current_step_index == 0
    assert wf.steps[0].notification_sent
    assert not wf.steps[1].notification_sent

    [n] = notifications.for_user("boss")
    assert n.title == "Nueva Tarea Asignada"
    assert n.priority == Priority.HIGH
    assert n.channels == ("in-app", "email")
    assert n.action_url == f"/workflows/{wf.workflow_id}"
    assert notifications.for_user("hr") == []


def test_urgent_workflow_sends_urgent_notice(svc, notifications):
    _create(svc, priority=Priority.URGENT)
    assert notifications.for_user("boss")[0].priority == Priority.URGENT


def test_create_without_steps(svc):
    with pytest.raises(ValidationError):
        _create(svc, steps=[])
    with pytest.raises(ValidationError):
        NewWorkflowStep.from_dict({"name": "x", "assignedTo": "u", "dueDate": "tomorrow"})


def test_complete_all_steps(svc, notifications):
    wf = _create(svc)

    wf = svc.complete_step(
        tenant_id="t1", workflow_id=wf.workflow_id, step_id=wf.steps[0].step_id,
        completed_by="boss", completed_by_name="Bruno", comments="ok",
    )
    assert wf.current_step_index == 1
    assert wf.steps[0].status == StepStatus.COMPLETED
    assert wf.steps[0].comments == "ok"
    assert len(notifications.for_user("hr")) == 1

    wf = svc.complete_step(
        tenant_id="t1", workflow_id=wf.workflow_id, step_id=wf.steps[1].step_id,
        completed_by="hr", completed_by_name="Helena",
    )
    assert wf.status == WorkflowStatus.COMPLETED
    assert wf.completed_at == FixedClock().now
    [done] = notifications.for_user("req")
    assert done.title == "Proceso Completado"


def test_reject_cancels_and_tells_requester(svc, notifications):
    wf = _create(svc)

    wf = svc.reject_step(
        tenant_id="t1", workflow_id=wf.workflow_id, step_id=wf.steps[0].step_id,
        rejected_by="boss", rejected_by_name="Bruno", reason="Sin presupuesto",
    )

    assert wf.status == WorkflowStatus.CANCELLED
    assert wf.steps[0].status == StepStatus.REJECTED
    assert wf.cancellation_reason == "Rejected at step: Jefe. Reason: Sin presupuesto"
    [n] = notifications.for_user("req")
    assert n.title == "Proceso Rechazado"
    assert 'paso "Jefe"' in n.message


def test_only_assignee_of_current_step_can_act(svc):
    wf = _create(svc)
    with pytest.raises(AuthorizationError):
        svc.complete_step(
            tenant_id="t1", workflow_id=wf.workflow_id, step_id=wf.steps[0].step_id,
            completed_by="hr", completed_by_name="Helena",
        )
    with pytest.raises(InvalidStateError):
        svc.complete_step(
            tenant_id="t1", workflow_id=wf.workflow_id, step_id=wf.steps[1].step_id,
            completed_by="hr", completed_by_name="Helena",
        )
    with pytest.raises(NotFoundError):
        svc.complete_step(
            tenant_id="t1", workflow_id=wf.workflow_id, step_id="nope",
            completed_by="hr", completed_by_name="Helena",
        )


def test_cancel(svc):
    wf = _create(svc)
    wf = svc.cancel_workflow(tenant_id="t1", workflow_id=wf.workflow_id, cancelled_by="req", reason="ya no")
    assert wf.status == WorkflowStatus.CANCELLED

    with pytest.raises(InvalidStateError):
        svc.cancel_workflow(tenant_id="t1", workflow_id=wf.workflow_id, cancelled_by="req", reason="otra vez")
    with pytest.raises(InvalidStateError):
        svc.reject_step(
            tenant_id="t1", workflow_id=wf.workflow_id, step_id=wf.steps[0].step_id,
            rejected_by="boss", rejected_by_name="Bruno", reason="tarde",
        )


def test_pending_for_user_orders_by_priority(svc):
    for priority, name in [
        (Priority.LOW, "low"),
        (Priority.NORMAL, "normal"),
        (Priority.URGENT, "urgent"),
        (Priority.NORMAL, "normal2"),
    ]:
        _create(svc, priority, name=name)

    result = svc.pending_for_user(tenant_id="t1", user_id="boss")

    assert result["total"] == 4
    assert [w.name for w in result["workflows"]] == ["urgent", "normal2", "normal", "low"]
    assert svc.pending_for_user(tenant_id="t1", user_id="hr")["total"] == 0


def test_stats(svc):
    first = _create(svc)
    _create(svc)
    svc.cancel_workflow(tenant_id="t1", workflow_id=first.workflow_id, cancelled_by="req", reason="x")

    assert svc.stats(tenant_id="t1") == {
        "total": 2, "pending": 0, "inProgress": 1, "completed": 0, "cancelled": 1, "pendingTasks": 0,
    }
    assert svc.stats(tenant_id="t1", user_id="boss")["pendingTasks"] == 1
    assert svc.stats(tenant_id="t1", user_id="nobody")["total"] == 0


def test_overdue_reminders(svc, notifications):
    overdue = datetime(2025, 3, 1, tzinfo=timezone.utc)
    later = datetime(2025, 4, 1, tzinfo=timezone.utc)
    late = _create(svc, steps=[NewWorkflowStep(name="Firma", assigned_to="boss", assigned_to_name="Bruno", due_date=overdue)])
    _create(svc, steps=[NewWorkflowStep(name="Firma", assigned_to="hr", assigned_to_name="Helena", due_date=later)])

    assert svc.send_overdue_reminders(tenant_id="t1") == 1

    reminder = notifications.for_user("boss")[-1]
    assert reminder.title == "Tarea Vencida"
    assert reminder.type == NotificationType.WARNING
    assert reminder.priority == Priority.URGENT
    assert reminder.message == 'La tarea "Firma" en el proceso "Alta de beneficio" está vencida desde 01/03/2025.'
    assert svc.get_workflow(tenant_id="t1", workflow_id=late.workflow_id).steps[0].reminders_sent == 1
