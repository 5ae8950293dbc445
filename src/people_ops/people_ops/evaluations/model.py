"""Evaluation templates, cycles and instances.

Nested values (ratings, reviews, template parts) serialize to the same camelCase
shape on the wire and in the JSON columns, so ``from_dict`` reads both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.validators import require_bool, require_number
from ..core.enums import CycleStatus, EvaluationStatus, EvaluatorRole, TemplateType
from ..core.exceptions import ValidationError


def _iso(value: Optional[datetime | date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _number(data: Mapping[str, Any], key: str) -> float:
    return require_number(data.get(key), key)


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"{key} is required")
    return value


def _mapping(value: Any, key: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{key} must be an object")
    return value


def _items(data: Mapping[str, Any], key: str, parse) -> tuple:
    value = data.get(key)
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list")
    return tuple(parse(_mapping(v, key)) for v in value)


def _optional_text(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _weight(data: Mapping[str, Any]) -> float:
    weight = _number(data, "weight")
    if not 0 <= weight <= 100:
        raise ValidationError("weight must be between 0 and 100")
    return weight


@dataclass(frozen=True)
class Competency:
    id: str
    name: str
    category: str
    weight: float
    required: bool = True
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Competency":
        return cls(
            id=_text(data, "id"),
            name=_text(data, "name"),
            category=data.get("category") or "",
            weight=_weight(data),
            required=bool(data.get("required", True)),
            description=data.get("description") or "",
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "weight": self.weight,
            "required": self.required,
        }


@dataclass(frozen=True)
class Objective:
    id: str
    description: str
    weight: float
    metric: Optional[str] = None
    target: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Objective":
        return cls(
            id=_text(data, "id"),
            description=data.get("description") or "",
            weight=_weight(data),
            metric=_optional_text(data, "metric"),
            target=_optional_text(data, "target"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "metric": self.metric,
            "target": self.target,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class GeneralQuestion:
    id: str
    question: str
    required: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GeneralQuestion":
        return cls(
            id=_text(data, "id"), question=data.get("question") or "", required=bool(data.get("required", False))
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "question": self.question, "required": self.required}


@dataclass(frozen=True)
class RatingLevel:
    value: float
    label: str
    description: str = ""
    color: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RatingLevel":
        return cls(
            value=_number(data, "value"),
            label=_text(data, "label"),
            description=data.get("description") or "",
            color=_optional_text(data, "color"),
        )

    def to_dict(self) -> dict:
        return {"value": self.value, "label": self.label, "description": self.description, "color": self.color}


@dataclass(frozen=True)
class RatingScale:
    min: float = 1
    max: float = 5
    levels: tuple[RatingLevel, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RatingScale":
        data = _mapping(data or {}, "ratingScale")
        low = _number(data, "min") if "min" in data else 1
        high = _number(data, "max") if "max" in data else 5
        if low >= high:
            raise ValidationError("ratingScale.min must be lower than ratingScale.max")
        levels = _items(data, "scales", RatingLevel.from_dict) if data.get("scales") is not None else ()
        return cls(min=low, max=high, levels=levels)

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max, "scales": [level.to_dict() for level in self.levels]}


@dataclass(frozen=True)
class TemplateConfig:
    allow_self_evaluation: bool = True
    require_manager_approval: bool = True
    require_hr_approval: bool = False
    allow_comments: bool = True
    anonymous_for_360: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "TemplateConfig":
        data = _mapping(data or {}, "config")
        return cls(
            allow_self_evaluation=bool(data.get("allowSelfEvaluation", True)),
            require_manager_approval=bool(data.get("requireManagerApproval", True)),
            require_hr_approval=bool(data.get("requireHRApproval", False)),
            allow_comments=bool(data.get("allowComments", True)),
            anonymous_for_360=bool(data.get("anonymousFor360", False)),
        )

    def to_dict(self) -> dict:
        return {
            "allowSelfEvaluation": self.allow_self_evaluation,
            "requireManagerApproval": self.require_manager_approval,
            "requireHRApproval": self.require_hr_approval,
            "allowComments": self.allow_comments,
            "anonymousFor360": self.anonymous_for_360,
        }


@dataclass(frozen=True)
class ApplicableTo:
    """Which employees a cycle launch assigns when no explicit list is given."""

    all: bool = True
    departments: tuple[str, ...] = ()
    positions: tuple[str, ...] = ()
    employment_types: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ApplicableTo":
        data = _mapping(data or {}, "applicableTo")
        return cls(
            all=bool(data.get("all", True)),
            departments=tuple(data.get("departments") or ()),
            positions=tuple(data.get("positions") or ()),
            employment_types=tuple(data.get("employmentTypes") or ()),
        )

    def to_dict(self) -> dict:
        return {
            "all": self.all,
            "departments": list(self.departments),
            "positions": list(self.positions),
            "employmentTypes": list(self.employment_types),
        }


@dataclass(frozen=True)
class EvaluationTemplate:
    template_id: str
    tenant_id: str
    name: str
    competencies: tuple[Competency, ...] = ()
    objectives: tuple[Objective, ...] = ()
    general_questions: tuple[GeneralQuestion, ...] = ()
    config: TemplateConfig = field(default_factory=TemplateConfig)
    applicable_to: ApplicableTo = field(default_factory=ApplicableTo)
    description: str = ""
    type: TemplateType = TemplateType.ANNUAL
    rating_scale: RatingScale = field(default_factory=RatingScale)
    is_active: bool = True
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def fields_from_dict(data: Mapping[str, Any], *, partial: bool = False) -> dict:
        """Dataclass fields from the camelCase body.

        With ``partial`` only the keys present are returned, so the result can
        be applied with ``dataclasses.replace``.
        """
        out: dict[str, Any] = {}
        if not partial or "name" in data:
            out["name"] = _text(data, "name")
        if not partial or "type" in data:
            raw = data.get("type")
            try:
                out["type"] = TemplateType(raw)
            except ValueError:
                raise ValidationError(f"Unknown template type: {raw}") from None
        if "description" in data:
            out["description"] = _optional_text(data, "description") or ""
        if "ratingScale" in data:
            out["rating_scale"] = RatingScale.from_dict(data["ratingScale"])
        for key, attr, parse in (
            ("competencies", "competencies", Competency.from_dict),
            ("objectives", "objectives", Objective.from_dict),
            ("generalQuestions", "general_questions", GeneralQuestion.from_dict),
        ):
            if key in data:
                out[attr] = _items(data, key, parse)
        if "config" in data:
            out["config"] = TemplateConfig.from_dict(data["config"])
        if "applicableTo" in data:
            out["applicable_to"] = ApplicableTo.from_dict(data["applicableTo"])
        if "isActive" in data:
            out["is_active"] = require_bool(data["isActive"], "isActive")
        return out

    def competency(self, competency_id: str) -> Optional[Competency]:
        for c in self.competencies:
            if c.id == competency_id:
                return c
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.template_id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "ratingScale": self.rating_scale.to_dict(),
            "competencies": [c.to_dict() for c in self.competencies],
            "objectives": [o.to_dict() for o in self.objectives],
            "generalQuestions": [q.to_dict() for q in self.general_questions],
            "config": self.config.to_dict(),
            "applicableTo": self.applicable_to.to_dict(),
            "isActive": self.is_active,
            "createdBy": self.created_by,
            "createdByName": self.created_by_name,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class CompetencyRating:
    competency_id: str
    rating: float
    comment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompetencyRating":
        return cls(
            competency_id=_text(data, "competencyId"), rating=_number(data, "rating"), comment=data.get("comment")
        )

    def to_dict(self) -> dict:
        return {"competencyId": self.competency_id, "rating": self.rating, "comment": self.comment}


@dataclass(frozen=True)
class ObjectiveRating:
    objective_id: str
    rating: float
    achievement: Optional[str] = None
    comment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ObjectiveRating":
        return cls(
            objective_id=_text(data, "objectiveId"),
            rating=_number(data, "rating"),
            achievement=data.get("achievement"),
            comment=data.get("comment"),
        )

    def to_dict(self) -> dict:
        return {
            "objectiveId": self.objective_id,
            "rating": self.rating,
            "achievement": self.achievement,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class GeneralAnswer:
    question_id: str
    answer: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GeneralAnswer":
        return cls(question_id=_text(data, "questionId"), answer=str(data.get("answer") or ""))

    def to_dict(self) -> dict:
        return {"questionId": self.question_id, "answer": self.answer}


@dataclass(frozen=True)
class Review:
    reviewed_at: datetime
    reviewed_by: str
    reviewer_name: str
    approved: bool
    comments: Optional[str] = None
    overall_rating: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional["Review"]:
        if not data:
            return None
        return cls(
            reviewed_at=_as_datetime(data["reviewedAt"]),
            reviewed_by=str(data["reviewedBy"]),
            reviewer_name=str(data.get("reviewerName") or ""),
            approved=bool(data.get("approved")),
            comments=data.get("comments"),
            overall_rating=data.get("overallRating"),
        )

    def to_dict(self) -> dict:
        return {
            "reviewedAt": _iso(self.reviewed_at),
            "reviewedBy": self.reviewed_by,
            "reviewerName": self.reviewer_name,
            "approved": self.approved,
            "comments": self.comments,
            "overallRating": self.overall_rating,
        }


@dataclass(frozen=True)
class EvaluationUpdate:
    """Partial save of evaluator input. ``None`` means "leave as is"."""

    competency_ratings: Optional[tuple[CompetencyRating, ...]] = None
    objective_ratings: Optional[tuple[ObjectiveRating, ...]] = None
    general_answers: Optional[tuple[GeneralAnswer, ...]] = None
    overall_comment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "EvaluationUpdate":
        data = data or {}

        def items(key: str, parse):
            value = data.get(key)
            if value is None:
                return None
            if not isinstance(value, list):
                raise ValidationError(f"{key} must be a list")
            return tuple(parse(v) for v in value)

        comment = data.get("overallComment")
        if comment is not None and not isinstance(comment, str):
            raise ValidationError("overallComment must be a string")
        return cls(
            competency_ratings=items("competencyRatings", CompetencyRating.from_dict),
            objective_ratings=items("objectiveRatings", ObjectiveRating.from_dict),
            general_answers=items("generalAnswers", GeneralAnswer.from_dict),
            overall_comment=comment,
        )


@dataclass(frozen=True)
class EvaluationInstance:
    """One evaluator's evaluation of one employee within a cycle."""

    evaluation_id: str
    tenant_id: str
    cycle_id: str
    template_id: str
    evaluated_employee_id: str
    evaluated_employee_name: str
    evaluator_id: str
    evaluator_name: str
    evaluator_role: EvaluatorRole
    status: EvaluationStatus = EvaluationStatus.PENDING
    evaluated_employee_department: Optional[str] = None
    evaluated_employee_position: Optional[str] = None
    competency_ratings: tuple[CompetencyRating, ...] = ()
    objective_ratings: tuple[ObjectiveRating, ...] = ()
    general_answers: tuple[GeneralAnswer, ...] = ()
    overall_rating: Optional[float] = None
    overall_comment: Optional[str] = None
    submitted_at: Optional[datetime] = None
    submitted_by: Optional[str] = None
    manager_review: Optional[Review] = None
    hr_review: Optional[Review] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.evaluation_id,
            "cycleId": self.cycle_id,
            "templateId": self.template_id,
            "evaluatedEmployeeId": self.evaluated_employee_id,
            "evaluatedEmployeeName": self.evaluated_employee_name,
            "evaluatedEmployeeDepartment": self.evaluated_employee_department,
            "evaluatedEmployeePosition": self.evaluated_employee_position,
            "evaluatorId": self.evaluator_id,
            "evaluatorName": self.evaluator_name,
            "evaluatorRole": self.evaluator_role.value,
            "competencyRatings": [r.to_dict() for r in self.competency_ratings],
            "objectiveRatings": [r.to_dict() for r in self.objective_ratings],
            "generalAnswers": [a.to_dict() for a in self.general_answers],
            "overallRating": self.overall_rating,
            "overallComment": self.overall_comment,
            "status": self.status.value,
            "submittedAt": _iso(self.submitted_at),
            "submittedBy": self.submitted_by,
            "managerReview": self.manager_review.to_dict() if self.manager_review else None,
            "hrReview": self.hr_review.to_dict() if self.hr_review else None,
            "startedAt": _iso(self.started_at),
            "completedAt": _iso(self.completed_at),
            "dueDate": _iso(self.due_date),
        }


@dataclass(frozen=True)
class CycleStats:
    total_assigned: int = 0
    total_completed: int = 0
    total_in_progress: int = 0
    total_pending: int = 0
    average_score: Optional[float] = None
    completion_rate: float = 0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "CycleStats":
        data = data or {}
        return cls(
            total_assigned=int(data.get("totalAssigned", 0)),
            total_completed=int(data.get("totalCompleted", 0)),
            total_in_progress=int(data.get("totalInProgress", 0)),
            total_pending=int(data.get("totalPending", 0)),
            average_score=data.get("averageScore"),
            completion_rate=data.get("completionRate", 0),
        )

    def to_dict(self) -> dict:
        return {
            "totalAssigned": self.total_assigned,
            "totalCompleted": self.total_completed,
            "totalInProgress": self.total_in_progress,
            "totalPending": self.total_pending,
            "averageScore": self.average_score,
            "completionRate": self.completion_rate,
        }


@dataclass(frozen=True)
class EvaluationCycle:
    cycle_id: str
    tenant_id: str
    name: str
    template_id: str
    start_date: date
    end_date: date
    evaluation_deadline: datetime
    status: CycleStatus = CycleStatus.DRAFT
    launched_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    stats: CycleStats = field(default_factory=CycleStats)
    description: str = ""
    created_by: Optional[str] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @staticmethod
    def fields_from_dict(data: Mapping[str, Any], *, partial: bool = False) -> dict:
        """Editable fields from the camelCase body; status and stats are never taken from input."""
        out: dict[str, Any] = {}
        if not partial or "name" in data:
            out["name"] = _text(data, "name")
        if "description" in data:
            out["description"] = _optional_text(data, "description") or ""
        if not partial or "templateId" in data:
            out["template_id"] = _text(data, "templateId")
        if not partial or "startDate" in data:
            out["start_date"] = parse_iso_date(_text(data, "startDate"), "startDate")
        if not partial or "endDate" in data:
            out["end_date"] = parse_iso_date(_text(data, "endDate"), "endDate")
        if not partial or "evaluationDeadline" in data:
            out["evaluation_deadline"] = parse_iso_datetime(_text(data, "evaluationDeadline"), "evaluationDeadline")
        return out

    def to_dict(self) -> dict:
        return {
            "id": self.cycle_id,
            "name": self.name,
            "description": self.description,
            "templateId": self.template_id,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "evaluationDeadline": _iso(self.evaluation_deadline),
            "status": self.status.value,
            "launchedAt": _iso(self.launched_at),
            "completedAt": _iso(self.completed_at),
            "stats": self.stats.to_dict(),
            "createdBy": self.created_by,
            "createdByName": self.created_by_name,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
