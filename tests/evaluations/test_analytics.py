from __future__ import annotations

from datetime import date

import pytest

from src.people_ops.people_ops.core.enums import CycleStatus, EvaluationStatus, EvaluatorRole
from src.people_ops.people_ops.core.exceptions import NotFoundError
from src.people_ops.people_ops.evaluations import analytics
from src.people_ops.people_ops.evaluations.analytics import EvaluationAnalyticsService
from tests.evaluations.builders import cycle, instance, ratings, template
from tests.fakes import InMemoryCycles, InMemoryEvaluations, InMemoryTemplates

DONE = EvaluationStatus.COMPLETED


def _instances():
    return [
        instance("a", status=DONE, overall_rating=4.5, evaluated_employee_department="Eng",
                 competency_ratings=ratings(c1=5, c2=4)),
        instance("b", status=DONE, overall_rating=4.0, evaluated_employee_department="Eng",
                 evaluator_id="m1", evaluator_role=EvaluatorRole.MANAGER, competency_ratings=ratings(c1=4, c2=4)),
        instance("c", status=DONE, overall_rating=2.0, evaluated_employee_id="e2", evaluated_employee_name="Bo",
                 evaluator_id="e2", competency_ratings=ratings(c1=2, c2=2)),
        instance("d", status=DONE, overall_rating=0, evaluated_employee_id="e3", evaluated_employee_name="Cy",
                 evaluator_id="e3", evaluated_employee_department="Ops"),
        instance("e", status=EvaluationStatus.PENDING, evaluated_employee_id="e4", evaluator_id="e4"),
    ]


def test_cycle_analytics():
    result = analytics.cycle_analytics("cy-1", _instances())

    assert result["totalEvaluations"] == 5
    assert result["totalCompleted"] == 4
    assert result["totalPending"] == 1
    assert result["completionRate"] == 80
    assert result["averageScore"] == 3.5
    assert result["maxScore"] == 4.5
    assert result["minScore"] == 2.0
    assert result["scoreDistribution"] == {"1-2": 0, "2-3": 1, "3-4": 0, "4-5": 2}
    assert result["byRole"] == {"self": 3, "manager": 1, "peer": 0, "subordinate": 0}
    assert result["avgByRole"]["self"] == 3.25
    assert result["avgByRole"]["peer"] == 0


def test_score_distribution_edges():
    assert analytics.score_distribution([1, 2, 3, 4, 5, 0.5]) == {"1-2": 1, "2-3": 1, "3-4": 1, "4-5": 2}


def test_department_comparison_sorted_by_average():
    result = analytics.department_comparison(_instances())

    assert [(d["department"], d["averageScore"]) for d in result] == [
        ("Eng", 4.25),
        ("Sin Departamento", 2.0),
        ("Ops", 0),
    ]
    assert result[0]["totalEmployees"] == 1
    assert result[0]["totalEvaluations"] == 2


def test_top_performers_skip_unrated_and_limit():
    result = analytics.top_performers(_instances())
    assert [(p["employeeId"], p["averageScore"]) for p in result] == [("e1", 4.25), ("e2", 2.0)]

    assert [p["employeeId"] for p in analytics.top_performers(_instances(), limit=1)] == ["e1"]


def test_competency_strengths_and_weaknesses():
    result = analytics.competency_analysis(template(), _instances())

    by_id = {c["competencyId"]: c for c in result["competencies"]}
    assert by_id["c1"]["averageScore"] == 3.67
    assert by_id["c2"]["averageScore"] == 3.33
    assert by_id["c3"]["totalRatings"] == 0
    assert [c["competencyId"] for c in result["strengths"]] == ["c1", "c2"]
    assert [c["competencyId"] for c in result["weaknesses"]] == ["c2", "c1"]


def test_service_requires_cycle():
    svc = EvaluationAnalyticsService(InMemoryEvaluations(_instances()), InMemoryCycles(), InMemoryTemplates())
    with pytest.raises(NotFoundError):
        svc.cycle_analytics(tenant_id="t1", cycle_id="cy-1")


def test_employee_history_newest_cycle_first():
    older = cycle(cycle_id="cy-0", name="2024 H2", start_date=date(2024, 7, 1), end_date=date(2024, 12, 31))
    instances = [
        instance("old", cycle_id="cy-0", status=DONE, overall_rating=3.0),
        instance("lost", cycle_id="cy-gone", status=DONE, overall_rating=2.0),
        instance("new", status=DONE, overall_rating=4.0),
    ]
    svc = EvaluationAnalyticsService(
        InMemoryEvaluations(instances), InMemoryCycles([cycle(), older]), InMemoryTemplates([template()])
    )

    history = svc.employee_history(tenant_id="t1", employee_id="e1")

    assert [h["cycleId"] for h in history] == ["cy-1", "cy-0", "cy-gone"]
    assert history[0]["endDate"] == "2025-06-30"
    assert history[2]["cycleName"] == "Unknown"


def test_score_trends_cover_recent_completed_cycles_oldest_first():
    closed = CycleStatus.COMPLETED
    cycles = [
        cycle(cycle_id="cy-a", name="2024 H1", start_date=date(2024, 1, 1), end_date=date(2024, 6, 30), status=closed),
        cycle(cycle_id="cy-b", name="2024 H2", start_date=date(2024, 7, 1), end_date=date(2024, 12, 31), status=closed),
        cycle(cycle_id="cy-c", name="2025 H1", status=closed),
        cycle(cycle_id="cy-d", name="2025 H2", start_date=date(2025, 7, 1), end_date=date(2025, 12, 31)),
    ]
    instances = [
        instance("a", cycle_id="cy-a", status=DONE, overall_rating=3.0),
        instance("b", cycle_id="cy-b", status=DONE, overall_rating=4.0, evaluated_employee_department="Eng"),
        instance("c", cycle_id="cy-b", status=DONE, overall_rating=2.0, evaluated_employee_id="e2", evaluator_id="e2"),
        instance("z", cycle_id="cy-b", status=DONE, overall_rating=0, evaluated_employee_id="e3", evaluator_id="e3"),
        instance("d", cycle_id="cy-c", status=EvaluationStatus.MANAGER_REVIEW, overall_rating=5.0),
        instance("e", cycle_id="cy-d", status=DONE, overall_rating=5.0),
    ]
    svc = EvaluationAnalyticsService(InMemoryEvaluations(instances), InMemoryCycles(cycles), InMemoryTemplates())

    trends = svc.score_trends(tenant_id="t1")

    assert [t["cycleId"] for t in trends] == ["cy-a", "cy-b", "cy-c"]
    assert trends[1] == {
        "cycleId": "cy-b",
        "cycleName": "2024 H2",
        "endDate": "2024-12-31",
        "averageScore": 3.0,
        "totalEvaluations": 3,
    }
    assert trends[2]["averageScore"] == 0
    assert [t["cycleId"] for t in svc.score_trends(tenant_id="t1", limit=2)] == ["cy-b", "cy-c"]
    assert [t["averageScore"] for t in svc.score_trends(tenant_id="t1", employee_id="e2")] == [0, 2.0, 0]
    assert [t["totalEvaluations"] for t in svc.score_trends(tenant_id="t1", department="Eng")] == [0, 1, 0]
    assert svc.score_trends(tenant_id="t2") == []
