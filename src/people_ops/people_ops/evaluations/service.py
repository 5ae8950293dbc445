from __future__ import annotations

import logging
from typing import Callable, Optional

from ..common.datetime_utils import utc_now
from ..common.events import DomainEvent, EventOutbox
from ..common.money import plain_sum, round_score
from ..core.enums import EvaluationStatus, EvaluatorRole
from ..core.exceptions import NotFoundError
from . import state_machine
from .model import EvaluationInstance, EvaluationTemplate, EvaluationUpdate
from .repository import EvaluationFilters, EvaluationRepository, EvaluationTemplateRepository

logger = logging.getLogger(__name__)

EVALUATION_SUBMITTED = "evaluation.submitted"
EVALUATION_MANAGER_REVIEWED = "evaluation.manager_reviewed"
EVALUATION_HR_REVIEWED = "evaluation.hr_reviewed"
EVALUATION_ASSIGNED = "evaluation.assigned"


def evaluation_event(name: str, instance: EvaluationInstance, **extra) -> DomainEvent:
    payload = {
        "evaluation_id": instance.evaluation_id,
        "cycle_id": instance.cycle_id,
        "status": instance.status.value,
        "evaluated_employee_id": instance.evaluated_employee_id,
        "evaluated_employee_name": instance.evaluated_employee_name,
        "evaluator_id": instance.evaluator_id,
        "evaluator_name": instance.evaluator_name,
        "overall_rating": instance.overall_rating,
        "due_date": instance.due_date,
    }
    payload.update(extra)
    return DomainEvent(name=name, tenant_id=instance.tenant_id, payload=payload)


class EvaluationService:
    """Loads an evaluation, applies a transition, saves it, then dispatches events.

    Event handlers (cycle statistics, notifications) run after the save and
    cannot undo it; their failures stay on the outbox.
    """

    def __init__(
        self,
        evaluations: EvaluationRepository,
        templates: EvaluationTemplateRepository,
        outbox: EventOutbox,
        *,
        clock: Callable = utc_now,
    ):
        self._evaluations = evaluations
        self._templates = templates
        self._outbox = outbox
        self._clock = clock

    def get_evaluation(self, *, tenant_id: str, evaluation_id: str) -> EvaluationInstance:
        instance = self._evaluations.get_by_id(tenant_id, evaluation_id)
        if not instance:
            raise NotFoundError("Evaluation not found")
        return instance

    def list_evaluations(
        self, *, tenant_id: str, filters: Optional[EvaluationFilters] = None
    ) -> list[EvaluationInstance]:
        return list(self._evaluations.find(tenant_id, filters or EvaluationFilters()))

    def _for_evaluator(self, tenant_id: str, evaluation_id: str) -> EvaluationInstance:
        instance = self._evaluations.get_by_id(tenant_id, evaluation_id)
        if not instance:
            raise NotFoundError("Evaluation not found or you are not the evaluator")
        return instance

    def _template(self, tenant_id: str, template_id: str) -> EvaluationTemplate:
        template = self._templates.get_by_id(tenant_id, template_id)
        if not template:
            raise NotFoundError("Template not found")
        return template

    def _commit(self, instance: EvaluationInstance, event: Optional[DomainEvent] = None) -> EvaluationInstance:
        self._evaluations.save(instance)
        if event is not None:
            self._outbox.publish(event)
            self._outbox.flush()
        return instance

    def start_evaluation(self, *, tenant_id: str, evaluation_id: str, user_id: str) -> EvaluationInstance:
        instance = self._for_evaluator(tenant_id, evaluation_id)
        started = state_machine.start(instance, user_id=user_id, now=self._clock())
        logger.info("evaluation started", extra={"tenant_id": tenant_id, "evaluation_id": evaluation_id})
        return self._commit(started)

    def update_evaluation(
        self, *, tenant_id: str, evaluation_id: str, user_id: str, updates: EvaluationUpdate
    ) -> EvaluationInstance:
        instance = self._for_evaluator(tenant_id, evaluation_id)
        return self._commit(state_machine.update(instance, user_id=user_id, updates=updates, now=self._clock()))

    def submit_evaluation(
        self, *, tenant_id: str, evaluation_id: str, user_id: str, user_name: str = ""
    ) -> EvaluationInstance:
        instance = self._for_evaluator(tenant_id, evaluation_id)
        state_machine.require_evaluator(instance, user_id)
        template = self._template(tenant_id, instance.template_id)

        submitted = state_machine.submit(instance, template, user_id=user_id, now=self._clock())
        logger.info(
            "evaluation submitted by %s -> %s",
            user_name or user_id,
            submitted.status.value,
            extra={"tenant_id": tenant_id, "evaluation_id": evaluation_id},
        )
        return self._commit(submitted, evaluation_event(EVALUATION_SUBMITTED, submitted))

    def manager_review(
        self,
        *,
        tenant_id: str,
        evaluation_id: str,
        manager_id: str,
        manager_name: str,
        approved: bool,
        comments: Optional[str] = None,
        overall_rating: Optional[float] = None,
    ) -> EvaluationInstance:
        instance = self.get_evaluation(tenant_id=tenant_id, evaluation_id=evaluation_id)
        template = self._templates.get_by_id(tenant_id, instance.template_id)
        reviewed = state_machine.manager_review(
            instance,
            template,
            reviewer_id=manager_id,
            reviewer_name=manager_name,
            approved=approved,
            comments=comments,
            overall_rating=overall_rating,
            now=self._clock(),
        )
        logger.info(
            "manager review approved=%s -> %s",
            approved,
            reviewed.status.value,
            extra={"tenant_id": tenant_id, "evaluation_id": evaluation_id},
        )
        return self._commit(
            reviewed, evaluation_event(EVALUATION_MANAGER_REVIEWED, reviewed, approved=approved, reviewer=manager_name)
        )

    def hr_review(
        self,
        *,
        tenant_id: str,
        evaluation_id: str,
        hr_id: str,
        hr_name: str,
        approved: bool,
        comments: Optional[str] = None,
    ) -> EvaluationInstance:
        instance = self.get_evaluation(tenant_id=tenant_id, evaluation_id=evaluation_id)
        reviewed = state_machine.hr_review(
            instance,
            reviewer_id=hr_id,
            reviewer_name=hr_name,
            approved=approved,
            comments=comments,
            now=self._clock(),
        )
        logger.info(
            "hr review approved=%s -> %s",
            approved,
            reviewed.status.value,
            extra={"tenant_id": tenant_id, "evaluation_id": evaluation_id},
        )
        return self._commit(
            reviewed, evaluation_event(EVALUATION_HR_REVIEWED, reviewed, approved=approved, reviewer=hr_name)
        )

    def employee_summary(self, *, tenant_id: str, cycle_id: str, employee_id: str) -> Optional[dict]:
        """All evaluations of one employee in a cycle; ``None`` when there are none."""
        evaluations = self._evaluations.find(
            tenant_id, EvaluationFilters(cycle_id=cycle_id, evaluated_employee_id=employee_id)
        )
        if not evaluations:
            return None

        completed = [e for e in evaluations if e.status == EvaluationStatus.COMPLETED and e.overall_rating]
        average = round_score(plain_sum(e.overall_rating for e in completed) / len(completed)) if completed else 0

        def first(role: EvaluatorRole) -> Optional[dict]:
            for e in evaluations:
                if e.evaluator_role == role:
                    return {"status": e.status.value, "overallRating": e.overall_rating}
            return None

        return {
            "employeeId": employee_id,
            "cycleId": cycle_id,
            "totalEvaluations": len(evaluations),
            "completedEvaluations": len(completed),
            "pendingEvaluations": sum(1 for e in evaluations if e.status == EvaluationStatus.PENDING),
            "averageScore": average,
            "selfEvaluation": first(EvaluatorRole.SELF),
            "managerEvaluation": first(EvaluatorRole.MANAGER),
            "peerEvaluationsCount": sum(1 for e in evaluations if e.evaluator_role == EvaluatorRole.PEER),
            "evaluations": [e.to_dict() for e in evaluations],
        }
