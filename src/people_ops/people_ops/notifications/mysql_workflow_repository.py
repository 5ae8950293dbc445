from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Priority, StepStatus, WorkflowStatus, WorkflowType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_utc, db_cursor, fetchall, fetchone, from_json, to_db_datetime, to_json
from .model import Workflow, WorkflowStep
from .repository import WorkflowRepository

_COLUMNS = (
    "workflow_id, tenant_id, type, name, description, resource_type, resource_id, requested_by, "
    "requested_by_name, status, current_step_index, steps, priority, started_at, completed_at, "
    "cancelled_at, cancelled_by, cancellation_reason"
)

# steps JSON holds WorkflowStep.to_dict() items
_ASSIGNED_TO = "JSON_SEARCH(steps, 'one', %s, NULL, '$[*].assignedTo') IS NOT NULL"


def _step_from_dict(d: dict) -> WorkflowStep:
    return WorkflowStep(
        step_id=d["stepId"],
        name=d["name"],
        assigned_to=d["assignedTo"],
        assigned_to_name=d.get("assignedToName") or "",
        assigned_to_role=d.get("assignedToRole"),
        status=StepStatus(d.get("status") or StepStatus.PENDING.value),
        due_date=as_utc(d.get("dueDate")),
        completed_at=as_utc(d.get("completedAt")),
        completed_by=d.get("completedBy"),
        completed_by_name=d.get("completedByName"),
        comments=d.get("comments"),
        data=d.get("data"),
        notification_sent=bool(d.get("notificationSent")),
        reminders_sent=int(d.get("remindersSent") or 0),
    )


def _row_to_workflow(r: dict) -> Workflow:
    return Workflow(
        workflow_id=str(r["workflow_id"]),
        tenant_id=str(r["tenant_id"]),
        type=WorkflowType(r["type"]),
        name=r["name"],
        description=r.get("description"),
        resource_type=r["resource_type"],
        resource_id=str(r["resource_id"]),
        requested_by=str(r["requested_by"]),
        requested_by_name=r["requested_by_name"],
        status=WorkflowStatus(r["status"]),
        current_step_index=int(r.get("current_step_index") or 0),
        steps=tuple(_step_from_dict(d) for d in from_json(r.get("steps"), [])),
        priority=Priority(r.get("priority") or Priority.NORMAL.value),
        started_at=as_utc(r["started_at"]),
        completed_at=as_utc(r.get("completed_at")),
        cancelled_at=as_utc(r.get("cancelled_at")),
        cancelled_by=r.get("cancelled_by"),
        cancellation_reason=r.get("cancellation_reason"),
    )


def _params(w: Workflow) -> tuple:
    return (
        w.type.value,
        w.name,
        w.description,
        w.resource_type,
        w.resource_id,
        w.requested_by,
        w.requested_by_name,
        w.status.value,
        w.current_step_index,
        to_json([s.to_dict() for s in w.steps]),
        w.priority.value,
        to_db_datetime(w.started_at),
        to_db_datetime(w.completed_at),
        to_db_datetime(w.cancelled_at),
        w.cancelled_by,
        w.cancellation_reason,
    )


class MySQLWorkflowRepository(WorkflowRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, workflow: Workflow) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO workflows({_COLUMNS}) "
                "VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)",
                (workflow.workflow_id, workflow.tenant_id, *_params(workflow)),
            )

    def get_by_id(self, tenant_id: str, workflow_id: str) -> Optional[Workflow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM workflows WHERE tenant_id=%s AND workflow_id=%s",
                (tenant_id, workflow_id),
            )
            r = fetchone(cur)
            return _row_to_workflow(r) if r else None

    def save(self, workflow: Workflow) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE workflows SET
                    type=%s, name=%s, description=%s, resource_type=%s, resource_id=%s,
                    requested_by=%s, requested_by_name=%s, status=%s, current_step_index=%s, steps=%s,
                    priority=%s, started_at=%s, completed_at=%s, cancelled_at=%s, cancelled_by=%s,
                    cancellation_reason=%s
                WHERE tenant_id=%s AND workflow_id=%s
                """,
                (*_params(workflow), workflow.tenant_id, workflow.workflow_id),
            )

    def list_in_progress(self, tenant_id: str, *, assigned_to: Optional[str] = None) -> Sequence[Workflow]:
        sql = f"SELECT {_COLUMNS} FROM workflows WHERE tenant_id=%s AND status=%s"
        params: list = [tenant_id, WorkflowStatus.IN_PROGRESS.value]
        if assigned_to:
            sql += f" AND {_ASSIGNED_TO}"
            params.append(assigned_to)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY started_at DESC", tuple(params))
            return [_row_to_workflow(r) for r in fetchall(cur)]

    def list_involving(self, tenant_id: str, user_id: Optional[str] = None) -> Sequence[Workflow]:
        sql = f"SELECT {_COLUMNS} FROM workflows WHERE tenant_id=%s"
        params: list = [tenant_id]
        if user_id:
            sql += f" AND (requested_by=%s OR {_ASSIGNED_TO})"
            params.extend([user_id, user_id])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY started_at DESC", tuple(params))
            return [_row_to_workflow(r) for r in fetchall(cur)]
