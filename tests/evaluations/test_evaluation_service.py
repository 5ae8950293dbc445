from __future__ import annotations

import pytest

from src.people_ops.people_ops.container import build_services
from src.people_ops.people_ops.core.enums import CycleStatus, EvaluationStatus, EvaluatorRole
from src.people_ops.people_ops.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from src.people_ops.people_ops.evaluations.model import EvaluationUpdate
from src.people_ops.people_ops.evaluations.repository import EvaluationFilters
from src.people_ops.people_ops.evaluations.service import EVALUATION_SUBMITTED
from tests.evaluations.builders import cycle, instance, ratings, template
from tests.fakes import FixedClock, InMemoryCycles, InMemoryEvaluations, InMemoryTemplates, make_repos


def _container(*instances, cycles=None, tpl=None):
    repos = make_repos(
        evaluations=InMemoryEvaluations(instances),
        templates=InMemoryTemplates([tpl or template()]),
        cycles=InMemoryCycles([cycle(status=CycleStatus.ACTIVE)] if cycles is None else cycles),
    )
    return build_services(repos, clock=FixedClock())


def test_submit_then_manager_approval_completes_and_notifies():
    c = _container(instance(competency_ratings=ratings(c1=3, c2=4)))

    submitted = c.evaluation_service.submit_evaluation(tenant_id="t1", evaluation_id="ev-1", user_id="e1")
    assert submitted.status == EvaluationStatus.MANAGER_REVIEW
    assert c.repos.evaluations.get_by_id("t1", "ev-1").status == EvaluationStatus.MANAGER_REVIEW
    assert c.repos.cycles.get_by_id("t1", "cy-1").stats.total_in_progress == 1
    # Self-evaluations do not notify their own author.
    assert c.repos.notifications.for_user("e1") == []

    reviewed = c.evaluation_service.manager_review(
        tenant_id="t1", evaluation_id="ev-1", manager_id="m1", manager_name="Marta", approved=True
    )
    assert reviewed.status == EvaluationStatus.COMPLETED
    assert reviewed.overall_rating == 3.33

    stored_cycle = c.repos.cycles.get_by_id("t1", "cy-1")
    assert stored_cycle.stats.total_completed == 1
    assert stored_cycle.stats.average_score == 3.33
    assert stored_cycle.stats.completion_rate == 100
    assert stored_cycle.status == CycleStatus.COMPLETED

    notices = c.repos.notifications.for_user("e1")
    assert [n.title for n in notices] == ["Evaluación Aprobada"]
    assert "Marta" in notices[0].message
    assert "3.33" in notices[0].message
    assert c.outbox.failed == []


def test_manager_submission_notifies_evaluated_employee():
    c = _container(
        instance(
            evaluator_id="m1", evaluator_name="Marta", evaluator_role=EvaluatorRole.MANAGER,
            competency_ratings=ratings(c1=4, c2=4),
        )
    )

    c.evaluation_service.submit_evaluation(tenant_id="t1", evaluation_id="ev-1", user_id="m1")

    notices = c.repos.notifications.for_user("e1")
    assert [n.message for n in notices][0] == "Marta ha completado tu evaluación de desempeño."


def test_wrong_user_cannot_submit():
    c = _container(instance(competency_ratings=ratings(c1=3, c2=4)))
    with pytest.raises(NotFoundError):
        c.evaluation_service.submit_evaluation(tenant_id="t1", evaluation_id="ev-1", user_id="intruder")
    with pytest.raises(NotFoundError):
        c.evaluation_service.submit_evaluation(tenant_id="other", evaluation_id="ev-1", user_id="e1")


def test_failed_guard_does_not_save():
    c = _container(instance(status=EvaluationStatus.IN_PROGRESS))

    with pytest.raises(InvalidStateError):
        c.evaluation_service.manager_review(
            tenant_id="t1", evaluation_id="ev-1", manager_id="m1", manager_name="Marta", approved=True
        )
    assert c.repos.evaluations.saves == 0


def test_handler_failure_does_not_undo_transition():
    c = _container(instance(competency_ratings=ratings(c1=3, c2=4)))
    calls = []

    def broken(event):
        calls.append(event.name)
        raise RuntimeError("mail relay down")

    c.outbox.subscribe(EVALUATION_SUBMITTED, broken)

    submitted = c.evaluation_service.submit_evaluation(tenant_id="t1", evaluation_id="ev-1", user_id="e1")

    assert submitted.status == EvaluationStatus.MANAGER_REVIEW
    assert c.repos.evaluations.get_by_id("t1", "ev-1").status == EvaluationStatus.MANAGER_REVIEW
    assert c.repos.cycles.get_by_id("t1", "cy-1").stats.total_in_progress == 1
    assert calls == [EVALUATION_SUBMITTED]
    assert len(c.outbox.failed) == 1
    assert c.outbox.failed[0].error == "mail relay down"


def test_failed_delivery_can_be_retried():
    c = _container(instance(competency_ratings=ratings(c1=3, c2=4)), cycles=[])

    c.evaluation_service.submit_evaluation(tenant_id="t1", evaluation_id="ev-1", user_id="e1")
    assert len(c.outbox.failed) == 1

    c.repos.cycles.save(cycle(status=CycleStatus.ACTIVE))
    assert c.outbox.retry_failed() == 0
    assert c.outbox.failed == []
    assert c.repos.cycles.get_by_id("t1", "cy-1").stats.total_assigned == 1


def test_update_evaluation_saves_partial_input():
    c = _container(instance(status=EvaluationStatus.PENDING))

    updated = c.evaluation_service.update_evaluation(
        tenant_id="t1",
        evaluation_id="ev-1",
        user_id="e1",
        updates=EvaluationUpdate.from_dict({"competencyRatings": [{"competencyId": "c1", "rating": 4}]}),
    )

    assert updated.status == EvaluationStatus.IN_PROGRESS
    assert c.repos.evaluations.get_by_id("t1", "ev-1").competency_ratings == ratings(c1=4)


def test_list_and_employee_summary():
    c = _container(
        instance("ev-1", status=EvaluationStatus.COMPLETED, overall_rating=4.0),
        instance(
            "ev-2", evaluator_id="m1", evaluator_name="Marta", evaluator_role=EvaluatorRole.MANAGER,
            status=EvaluationStatus.COMPLETED, overall_rating=3.5,
        ),
        instance("ev-3", evaluated_employee_id="e2", evaluator_id="e2", status=EvaluationStatus.PENDING),
    )

    mine = c.evaluation_service.list_evaluations(tenant_id="t1", filters=EvaluationFilters(evaluator_id="m1"))
    assert [e.evaluation_id for e in mine] == ["ev-2"]

    summary = c.evaluation_service.employee_summary(tenant_id="t1", cycle_id="cy-1", employee_id="e1")
    assert summary["totalEvaluations"] == 2
    assert summary["completedEvaluations"] == 2
    assert summary["averageScore"] == 3.75
    assert summary["selfEvaluation"] == {"status": "completed", "overallRating": 4.0}
    assert summary["managerEvaluation"]["overallRating"] == 3.5

    assert c.evaluation_service.employee_summary(tenant_id="t1", cycle_id="cy-1", employee_id="nobody") is None


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), True, "4"])
def test_ratings_must_be_finite_numbers(bad):
    with pytest.raises(ValidationError, match="rating must be a number"):
        EvaluationUpdate.from_dict({"competencyRatings": [{"competencyId": "c1", "rating": bad}]})
