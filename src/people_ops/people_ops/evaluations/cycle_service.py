from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..common.events import DomainEvent, EventOutbox
from ..common.money import plain_sum, round_score
from ..core.enums import CycleStatus, EvaluationStatus, EvaluatorRole
from ..core.exceptions import InvalidStateError, NotFoundError, ValidationError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .model import CycleStats, EvaluationCycle, EvaluationInstance, EvaluationTemplate
from .repository import (
    EvaluationCycleRepository,
    EvaluationFilters,
    EvaluationRepository,
    EvaluationTemplateRepository,
)
from .service import EVALUATION_ASSIGNED, evaluation_event

logger = logging.getLogger(__name__)

_IN_PROGRESS = (
    EvaluationStatus.IN_PROGRESS,
    EvaluationStatus.SUBMITTED,
    EvaluationStatus.MANAGER_REVIEW,
    EvaluationStatus.HR_REVIEW,
)


def compute_cycle_stats(instances: Sequence[EvaluationInstance]) -> CycleStats:
    assigned = len(instances)
    completed = [e for e in instances if e.status == EvaluationStatus.COMPLETED]
    rated = [e.overall_rating for e in completed if e.overall_rating is not None]

    average = None
    if rated:
        mean = plain_sum(rated) / len(rated)
        # A zero average is stored as "no score".
        average = round_score(mean) if mean else None

    return CycleStats(
        total_assigned=assigned,
        total_completed=len(completed),
        total_in_progress=sum(1 for e in instances if e.status in _IN_PROGRESS),
        total_pending=sum(1 for e in instances if e.status == EvaluationStatus.PENDING),
        average_score=average,
        completion_rate=round_score(len(completed) / assigned * 100) if assigned else 0,
    )


def _check_period(cycle: EvaluationCycle) -> None:
    if cycle.start_date > cycle.end_date:
        raise ValidationError("startDate must be on or before endDate")


def _new_instance(
    cycle: EvaluationCycle, template: EvaluationTemplate, employee: Employee, evaluator: Employee, role: EvaluatorRole
) -> EvaluationInstance:
    return EvaluationInstance(
        evaluation_id=str(uuid.uuid4()),
        tenant_id=cycle.tenant_id,
        cycle_id=cycle.cycle_id,
        template_id=template.template_id,
        evaluated_employee_id=employee.employee_id,
        evaluated_employee_name=employee.name,
        evaluated_employee_department=employee.department,
        evaluated_employee_position=employee.position,
        evaluator_id=evaluator.employee_id,
        evaluator_name=evaluator.name,
        evaluator_role=role,
        status=EvaluationStatus.PENDING,
        due_date=cycle.evaluation_deadline,
    )


class CycleService:
    def __init__(
        self,
        cycles: EvaluationCycleRepository,
        evaluations: EvaluationRepository,
        templates: EvaluationTemplateRepository,
        employees: EmployeeRepository,
        outbox: EventOutbox,
        *,
        clock: Callable = utc_now,
    ):
        self._cycles = cycles
        self._evaluations = evaluations
        self._templates = templates
        self._employees = employees
        self._outbox = outbox
        self._clock = clock

    def _require_template(self, tenant_id: str, template_id: str) -> EvaluationTemplate:
        template = self._templates.get_by_id(tenant_id, template_id)
        if not template:
            raise NotFoundError("Template not found")
        if not template.is_active:
            raise ValidationError("Template is not active")
        return template

    def create_cycle(
        self, *, tenant_id: str, user_id: str, user_name: str, data: Mapping[str, Any]
    ) -> EvaluationCycle:
        fields = EvaluationCycle.fields_from_dict(data)
        self._require_template(tenant_id, fields["template_id"])
        cycle = EvaluationCycle(
            cycle_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            status=CycleStatus.DRAFT,
            created_by=user_id,
            created_by_name=user_name,
            created_at=self._clock(),
            **fields,
        )
        _check_period(cycle)
        self._cycles.create(cycle)
        logger.info("cycle %s created", cycle.cycle_id, extra={"tenant_id": tenant_id})
        return cycle

    def list_cycles(self, *, tenant_id: str, status: Optional[CycleStatus] = None) -> Sequence[EvaluationCycle]:
        return self._cycles.find(tenant_id, status=status)

    def get_cycle(self, *, tenant_id: str, cycle_id: str) -> EvaluationCycle:
        cycle = self._cycles.get_by_id(tenant_id, cycle_id)
        if not cycle:
            raise NotFoundError("Cycle not found")
        return cycle

    def update_cycle(self, *, tenant_id: str, cycle_id: str, updates: Mapping[str, Any]) -> EvaluationCycle:
        """Edit name, description, template or dates. The template is fixed once the cycle is launched."""
        cycle = self.get_cycle(tenant_id=tenant_id, cycle_id=cycle_id)
        fields = EvaluationCycle.fields_from_dict(updates, partial=True)
        if fields.get("template_id", cycle.template_id) != cycle.template_id:
            if cycle.status != CycleStatus.DRAFT:
                raise InvalidStateError(
                    "Template can only be changed before launch", expected=CycleStatus.DRAFT, actual=cycle.status
                )
            self._require_template(tenant_id, fields["template_id"])

        updated = replace(cycle, **fields, updated_at=self._clock())
        _check_period(updated)
        self._cycles.save(updated)
        return updated

    def delete_cycle(self, *, tenant_id: str, cycle_id: str) -> None:
        if self._evaluations.count_for_cycle(tenant_id, cycle_id):
            raise ValidationError("Cannot delete cycle with assigned evaluations")
        if not self._cycles.delete(tenant_id, cycle_id):
            raise NotFoundError("Cycle not found")
        logger.info("cycle %s deleted", cycle_id, extra={"tenant_id": tenant_id})

    def update_cycle_stats(self, *, tenant_id: str, cycle_id: str) -> EvaluationCycle:
        """Recount the cycle's evaluations; an active cycle whose evaluations are all completed closes."""
        cycle = self.get_cycle(tenant_id=tenant_id, cycle_id=cycle_id)
        stats = compute_cycle_stats(self._evaluations.find(tenant_id, EvaluationFilters(cycle_id=cycle_id)))

        changes: dict = {"stats": stats}
        if (
            stats.total_assigned > 0
            and stats.total_completed == stats.total_assigned
            and cycle.status == CycleStatus.ACTIVE
        ):
            changes["status"] = CycleStatus.COMPLETED
            changes["completed_at"] = self._clock()
            logger.info("cycle completed", extra={"tenant_id": tenant_id})

        updated = replace(cycle, **changes)
        self._cycles.save(updated)
        return updated

    def on_evaluation_changed(self, event: DomainEvent) -> None:
        """Outbox handler: keep cycle statistics current after any review step."""
        self.update_cycle_stats(tenant_id=event.tenant_id, cycle_id=event.payload["cycle_id"])

    def _employees_to_assign(
        self, tenant_id: str, template: EvaluationTemplate, employee_ids: Optional[Sequence[str]]
    ) -> list[Employee]:
        if employee_ids:
            return [e for e in self._employees.list_by_ids(tenant_id, employee_ids) if e.is_active]
        scope = template.applicable_to
        if scope.all:
            return list(self._employees.list_active(tenant_id))
        return list(
            self._employees.list_active(
                tenant_id,
                departments=scope.departments or None,
                positions=scope.positions or None,
            )
        )

    def launch_cycle(
        self,
        *,
        tenant_id: str,
        cycle_id: str,
        employee_ids: Optional[Sequence[str]] = None,
        include_self_evaluation: bool = True,
    ) -> dict:
        cycle = self.get_cycle(tenant_id=tenant_id, cycle_id=cycle_id)
        if cycle.status != CycleStatus.DRAFT:
            raise InvalidStateError("Cycle has already been launched", expected=CycleStatus.DRAFT, actual=cycle.status)

        template = self._templates.get_by_id(tenant_id, cycle.template_id)
        if not template:
            raise NotFoundError("Template not found")

        employees = self._employees_to_assign(tenant_id, template, employee_ids)
        if not employees:
            raise ValidationError("No employees found to assign evaluations")

        managers: dict[str, Optional[Employee]] = {}
        instances: list[EvaluationInstance] = []
        for emp in employees:
            if include_self_evaluation and template.config.allow_self_evaluation:
                instances.append(_new_instance(cycle, template, emp, emp, EvaluatorRole.SELF))

            if emp.manager_id:
                if emp.manager_id not in managers:
                    managers[emp.manager_id] = self._employees.get_by_id(tenant_id, emp.manager_id)
                manager = managers[emp.manager_id]
                if manager:
                    instances.append(_new_instance(cycle, template, emp, manager, EvaluatorRole.MANAGER))

        self._evaluations.insert_many(instances)

        launched = replace(
            cycle,
            status=CycleStatus.ACTIVE,
            launched_at=self._clock(),
            stats=replace(cycle.stats, total_assigned=len(instances), total_pending=len(instances)),
        )
        self._cycles.save(launched)
        logger.info(
            "cycle launched: %d evaluations for %d employees",
            len(instances),
            len(employees),
            extra={"tenant_id": tenant_id},
        )

        for instance in instances:
            self._outbox.publish(evaluation_event(EVALUATION_ASSIGNED, instance, cycle_name=cycle.name))
        self._outbox.flush()

        return {"cycle": launched, "assignedCount": len(instances), "employeeCount": len(employees)}
