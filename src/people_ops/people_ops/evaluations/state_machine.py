"""Evaluation instance transitions.

Every function takes the current instance and returns a new one; nothing here
performs I/O. A failed guard raises before any field is touched, so the caller's
copy is never partially changed.

    pending -> in-progress -> manager-review -> hr-review -> completed
                    ^               |   ^            |
                    +-- rejected ---+   +- rejected -+
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..common.money import round_score
from ..core.enums import EvaluationStatus, EvaluatorRole
from ..core.exceptions import (
    AlreadyStartedError,
    InvalidStateError,
    MissingRequiredCompetencyError,
    NotFoundError,
)
from .model import (
    Competency,
    CompetencyRating,
    EvaluationInstance,
    EvaluationTemplate,
    EvaluationUpdate,
    Review,
)

_UNDER_REVIEW = (EvaluationStatus.MANAGER_REVIEW, EvaluationStatus.HR_REVIEW)


def require_evaluator(instance: EvaluationInstance, user_id: str) -> None:
    if instance.evaluator_id != user_id:
        raise NotFoundError("Evaluation not found or you are not the evaluator")


def _require_status(instance: EvaluationInstance, expected: EvaluationStatus, message: str) -> None:
    if instance.status != expected:
        raise InvalidStateError(message, expected=expected, actual=instance.status)


def weighted_rating(ratings: Sequence[CompetencyRating], competencies: Sequence[Competency]) -> float:
    """Weighted mean over ratings whose competency is in the template; 0 without weight."""
    by_id = {}
    for c in competencies:
        by_id.setdefault(c.id, c)

    total_weight = 0
    weighted_sum = 0
    for r in ratings:
        competency = by_id.get(r.competency_id)
        if competency:
            weighted_sum += r.rating * competency.weight
            total_weight += competency.weight

    if total_weight == 0:
        return 0
    return round_score(weighted_sum / total_weight)


def start(instance: EvaluationInstance, *, user_id: str, now: datetime) -> EvaluationInstance:
    require_evaluator(instance, user_id)
    if instance.status != EvaluationStatus.PENDING:
        raise AlreadyStartedError(
            "Evaluation has already been started", expected=EvaluationStatus.PENDING, actual=instance.status
        )
    return auto_start(instance, now=now)


def auto_start(instance: EvaluationInstance, *, now: datetime) -> EvaluationInstance:
    _require_status(instance, EvaluationStatus.PENDING, "Only pending evaluations can be started")
    return replace(instance, status=EvaluationStatus.IN_PROGRESS, started_at=now)


def update(
    instance: EvaluationInstance, *, user_id: str, updates: EvaluationUpdate, now: datetime
) -> EvaluationInstance:
    require_evaluator(instance, user_id)
    if instance.status == EvaluationStatus.COMPLETED:
        raise InvalidStateError("Cannot update completed evaluation", actual=instance.status)
    if instance.status in _UNDER_REVIEW:
        raise InvalidStateError("Cannot update an evaluation while it is under review", actual=instance.status)

    changes: dict = {}
    if updates.competency_ratings is not None:
        changes["competency_ratings"] = updates.competency_ratings
    if updates.objective_ratings is not None:
        changes["objective_ratings"] = updates.objective_ratings
    if updates.general_answers is not None:
        changes["general_answers"] = updates.general_answers
    if updates.overall_comment is not None:
        changes["overall_comment"] = updates.overall_comment

    updated = replace(instance, **changes)
    if updated.status == EvaluationStatus.PENDING:
        updated = auto_start(updated, now=now)
    return updated


def submit(
    instance: EvaluationInstance, template: EvaluationTemplate, *, user_id: str, now: datetime
) -> EvaluationInstance:
    require_evaluator(instance, user_id)
    if instance.status == EvaluationStatus.COMPLETED:
        raise InvalidStateError("Evaluation already completed", actual=instance.status)

    rated = {r.competency_id for r in instance.competency_ratings}
    for competency in template.competencies:
        if competency.required and competency.id not in rated:
            raise MissingRequiredCompetencyError(competency.name)

    changes: dict = dict(
        overall_rating=weighted_rating(instance.competency_ratings, template.competencies),
        submitted_at=now,
        submitted_by=user_id,
    )
    if template.config.require_manager_approval and instance.evaluator_role == EvaluatorRole.SELF:
        changes["status"] = EvaluationStatus.MANAGER_REVIEW
    elif template.config.require_hr_approval:
        changes["status"] = EvaluationStatus.HR_REVIEW
    else:
        changes["status"] = EvaluationStatus.COMPLETED
        changes["completed_at"] = now
    return replace(instance, **changes)


def manager_review(
    instance: EvaluationInstance,
    template: Optional[EvaluationTemplate],
    *,
    reviewer_id: str,
    reviewer_name: str,
    approved: bool,
    comments: Optional[str] = None,
    overall_rating: Optional[float] = None,
    now: datetime,
) -> EvaluationInstance:
    _require_status(instance, EvaluationStatus.MANAGER_REVIEW, "Evaluation is not in manager review status")

    changes: dict = dict(
        manager_review=Review(
            reviewed_at=now,
            reviewed_by=reviewer_id,
            reviewer_name=reviewer_name,
            approved=approved,
            comments=comments,
            overall_rating=overall_rating,
        )
    )
    # 0 and None both leave the computed rating in place.
    if overall_rating:
        changes["overall_rating"] = overall_rating

    if not approved:
        changes["status"] = EvaluationStatus.IN_PROGRESS
    elif template is not None and template.config.require_hr_approval:
        changes["status"] = EvaluationStatus.HR_REVIEW
    else:
        changes["status"] = EvaluationStatus.COMPLETED
        changes["completed_at"] = now
    return replace(instance, **changes)


def hr_review(
    instance: EvaluationInstance,
    *,
    reviewer_id: str,
    reviewer_name: str,
    approved: bool,
    comments: Optional[str] = None,
    now: datetime,
) -> EvaluationInstance:
    _require_status(instance, EvaluationStatus.HR_REVIEW, "Evaluation is not in HR review status")

    review = Review(
        reviewed_at=now,
        reviewed_by=reviewer_id,
        reviewer_name=reviewer_name,
        approved=approved,
        comments=comments,
    )
    if approved:
        return replace(instance, hr_review=review, status=EvaluationStatus.COMPLETED, completed_at=now)
    return replace(instance, hr_review=review, status=EvaluationStatus.MANAGER_REVIEW)
