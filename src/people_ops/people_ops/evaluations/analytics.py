from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from ..common.money import plain_sum, round_score
from ..core.constants import (
    COMPETENCY_HIGHLIGHT_COUNT,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_TOP_PERFORMERS_LIMIT,
    DEFAULT_TREND_CYCLES,
    NO_DEPARTMENT_LABEL,
)
from ..core.enums import EvaluationStatus, EvaluatorRole
from ..core.exceptions import NotFoundError
from .model import EvaluationCycle, EvaluationInstance, EvaluationTemplate
from .repository import (
    EvaluationCycleRepository,
    EvaluationFilters,
    EvaluationRepository,
    EvaluationTemplateRepository,
)

# (label, low, high, closed on the right)
SCORE_BUCKETS = (
    ("1-2", 1, 2, False),
    ("2-3", 2, 3, False),
    ("3-4", 3, 4, False),
    ("4-5", 4, 5, True),
)


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0
    return round_score(plain_sum(values) / len(values))


def _rated(instances: Iterable[EvaluationInstance]) -> list[float]:
    # A rating of 0 counts as "not rated".
    return [e.overall_rating for e in instances if e.overall_rating]


def _completed(instances: Iterable[EvaluationInstance]) -> list[EvaluationInstance]:
    return [e for e in instances if e.status == EvaluationStatus.COMPLETED]


def score_distribution(scores: Sequence[float]) -> dict[str, int]:
    out = {}
    for label, low, high, closed in SCORE_BUCKETS:
        out[label] = sum(1 for s in scores if low <= s and (s <= high if closed else s < high))
    return out


def cycle_analytics(cycle_id: str, instances: Sequence[EvaluationInstance]) -> dict:
    completed = _completed(instances)
    total = len(instances)
    scores = _rated(completed)

    by_role = {}
    avg_by_role = {}
    for role in EvaluatorRole:
        of_role = [e for e in completed if e.evaluator_role == role]
        by_role[role.value] = len(of_role)
        avg_by_role[role.value] = _mean(_rated(of_role))

    return {
        "cycleId": cycle_id,
        "totalEvaluations": total,
        "totalCompleted": len(completed),
        "totalPending": sum(1 for e in instances if e.status == EvaluationStatus.PENDING),
        "totalInProgress": sum(1 for e in instances if e.status == EvaluationStatus.IN_PROGRESS),
        "completionRate": round_score(len(completed) / total * 100) if total else 0,
        "averageScore": _mean(scores),
        "maxScore": max(scores) if scores else 0,
        "minScore": min(scores) if scores else 0,
        "scoreDistribution": score_distribution(scores),
        "byRole": by_role,
        "avgByRole": avg_by_role,
    }


def department_comparison(instances: Sequence[EvaluationInstance]) -> list[dict]:
    groups: dict[str, dict] = {}
    for e in _completed(instances):
        dept = e.evaluated_employee_department or NO_DEPARTMENT_LABEL
        g = groups.setdefault(dept, {"evaluations": 0, "employees": set(), "scores": []})
        g["evaluations"] += 1
        g["employees"].add(e.evaluated_employee_id)
        if e.overall_rating:
            g["scores"].append(e.overall_rating)

    results = [
        {
            "department": dept,
            "totalEmployees": len(g["employees"]),
            "totalEvaluations": g["evaluations"],
            "averageScore": _mean(g["scores"]),
            "maxScore": max(g["scores"]) if g["scores"] else 0,
            "minScore": min(g["scores"]) if g["scores"] else 0,
        }
        for dept, g in groups.items()
    ]
    results.sort(key=lambda r: r["averageScore"], reverse=True)
    return results


def top_performers(instances: Sequence[EvaluationInstance], limit: int = DEFAULT_TOP_PERFORMERS_LIMIT) -> list[dict]:
    groups: dict[str, dict] = {}
    for e in _completed(instances):
        g = groups.setdefault(
            e.evaluated_employee_id,
            {
                "employeeId": e.evaluated_employee_id,
                "employeeName": e.evaluated_employee_name,
                "department": e.evaluated_employee_department,
                "position": e.evaluated_employee_position,
                "evaluations": [],
            },
        )
        if e.overall_rating:
            g["evaluations"].append({"evaluatorRole": e.evaluator_role.value, "overallRating": e.overall_rating})

    results = []
    for g in groups.values():
        if not g["evaluations"]:
            continue
        results.append(
            {
                "employeeId": g["employeeId"],
                "employeeName": g["employeeName"],
                "department": g["department"],
                "position": g["position"],
                "averageScore": _mean([x["overallRating"] for x in g["evaluations"]]),
                "totalEvaluations": len(g["evaluations"]),
                "evaluationBreakdown": g["evaluations"],
            }
        )
    # list.sort is stable: equal averages keep first-seen order.
    results.sort(key=lambda r: r["averageScore"], reverse=True)
    return results[:limit]


def competency_analysis(template: EvaluationTemplate, instances: Sequence[EvaluationInstance]) -> dict:
    ratings: dict[str, list[float]] = {}
    for c in template.competencies:
        ratings.setdefault(c.id, [])
    for e in _completed(instances):
        for r in e.competency_ratings:
            if r.competency_id in ratings:
                ratings[r.competency_id].append(r.rating)

    results = []
    for competency_id, scores in ratings.items():
        c = template.competency(competency_id)
        results.append(
            {
                "competencyId": c.id,
                "competencyName": c.name,
                "category": c.category,
                "weight": c.weight,
                "totalRatings": len(scores),
                "averageScore": _mean(scores),
                "maxScore": max(scores) if scores else 0,
                "minScore": min(scores) if scores else 0,
            }
        )

    ranked = sorted((r for r in results if r["totalRatings"] > 0), key=lambda r: r["averageScore"], reverse=True)
    n = COMPETENCY_HIGHLIGHT_COUNT
    return {
        "competencies": results,
        "strengths": ranked[:n],
        "weaknesses": list(reversed(ranked[-n:])),
    }


def employee_history(
    instances: Sequence[EvaluationInstance], cycles: Mapping[str, EvaluationCycle]
) -> list[dict]:
    """Group completed evaluations by cycle, most recently ended cycle first."""
    groups: dict[str, list[EvaluationInstance]] = {}
    for e in instances:
        groups.setdefault(e.cycle_id, []).append(e)

    results = []
    for cycle_id, evals in groups.items():
        cycle = cycles.get(cycle_id)
        results.append(
            {
                "cycleId": cycle_id,
                "cycleName": cycle.name if cycle else "Unknown",
                "startDate": cycle.start_date.isoformat() if cycle else None,
                "endDate": cycle.end_date.isoformat() if cycle else None,
                "totalEvaluations": len(evals),
                "averageScore": _mean(_rated(evals)),
                "evaluations": [
                    {
                        "evaluationId": e.evaluation_id,
                        "evaluatorRole": e.evaluator_role.value,
                        "evaluatorName": e.evaluator_name,
                        "overallRating": e.overall_rating,
                        "completedAt": e.completed_at.isoformat() if e.completed_at else None,
                    }
                    for e in evals
                ],
            }
        )

    # ISO dates sort chronologically; cycles without an end date go last.
    results.sort(key=lambda r: r["endDate"] or "", reverse=True)
    return results


def score_trends(
    cycles: Sequence[EvaluationCycle], completed_by_cycle: Mapping[str, Sequence[EvaluationInstance]]
) -> list[dict]:
    """One point per cycle in chronological order; ``cycles`` come latest end date first."""
    results = []
    for cycle in cycles:
        evals = completed_by_cycle.get(cycle.cycle_id, [])
        results.append(
            {
                "cycleId": cycle.cycle_id,
                "cycleName": cycle.name,
                "endDate": cycle.end_date.isoformat(),
                "averageScore": _mean(_rated(evals)),
                "totalEvaluations": len(evals),
            }
        )
    results.reverse()
    return results


class EvaluationAnalyticsService:
    """Read-only reporting over the evaluations of a cycle."""

    def __init__(
        self,
        evaluations: EvaluationRepository,
        cycles: EvaluationCycleRepository,
        templates: EvaluationTemplateRepository,
    ):
        self._evaluations = evaluations
        self._cycles = cycles
        self._templates = templates

    def _require_cycle(self, tenant_id: str, cycle_id: str) -> EvaluationCycle:
        cycle = self._cycles.get_by_id(tenant_id, cycle_id)
        if not cycle:
            raise NotFoundError("Cycle not found")
        return cycle

    def _instances(
        self, tenant_id: str, cycle_id: str, status: Optional[EvaluationStatus] = None
    ) -> Sequence[EvaluationInstance]:
        return self._evaluations.find(tenant_id, EvaluationFilters(cycle_id=cycle_id, status=status))

    def cycle_analytics(self, *, tenant_id: str, cycle_id: str) -> dict:
        self._require_cycle(tenant_id, cycle_id)
        return cycle_analytics(cycle_id, self._instances(tenant_id, cycle_id))

    def department_comparison(self, *, tenant_id: str, cycle_id: str) -> list[dict]:
        self._require_cycle(tenant_id, cycle_id)
        return department_comparison(self._instances(tenant_id, cycle_id, EvaluationStatus.COMPLETED))

    def top_performers(
        self, *, tenant_id: str, cycle_id: str, limit: int = DEFAULT_TOP_PERFORMERS_LIMIT
    ) -> list[dict]:
        self._require_cycle(tenant_id, cycle_id)
        return top_performers(self._instances(tenant_id, cycle_id, EvaluationStatus.COMPLETED), limit)

    def competency_analysis(self, *, tenant_id: str, cycle_id: str) -> dict:
        cycle = self._require_cycle(tenant_id, cycle_id)
        template = self._templates.get_by_id(tenant_id, cycle.template_id)
        if not template:
            raise NotFoundError("Template not found")
        return competency_analysis(template, self._instances(tenant_id, cycle_id, EvaluationStatus.COMPLETED))

    def employee_history(
        self, *, tenant_id: str, employee_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[dict]:
        instances = self._evaluations.list_completed_for_employee(tenant_id, employee_id, limit=limit)
        cycle_ids = list(dict.fromkeys(e.cycle_id for e in instances))
        cycles = {c.cycle_id: c for c in self._cycles.list_by_ids(tenant_id, cycle_ids)}
        return employee_history(instances, cycles)

    def score_trends(
        self,
        *,
        tenant_id: str,
        employee_id: Optional[str] = None,
        department: Optional[str] = None,
        limit: int = DEFAULT_TREND_CYCLES,
    ) -> list[dict]:
        """Average score over the last ``limit`` completed cycles, oldest first."""
        cycles = self._cycles.list_completed(tenant_id, limit=limit)
        by_cycle = {}
        for cycle in cycles:
            filters = EvaluationFilters(
                cycle_id=cycle.cycle_id, evaluated_employee_id=employee_id, status=EvaluationStatus.COMPLETED
            )
            instances = self._evaluations.find(tenant_id, filters)
            if department:
                instances = [e for e in instances if e.evaluated_employee_department == department]
            by_cycle[cycle.cycle_id] = instances
        return score_trends(cycles, by_cycle)
