from __future__ import annotations

from datetime import date

import pytest

from src.people_ops.people_ops.common.events import DomainEvent
from src.people_ops.people_ops.container import build_services
from src.people_ops.people_ops.core.enums import CycleStatus, EvaluationStatus
from src.people_ops.people_ops.employees.model import Employee
from src.people_ops.people_ops.main import create_app
from src.people_ops.people_ops.notifications.model import NewWorkflowStep
from tests.evaluations.builders import cycle, instance, template
from tests.fakes import FixedClock, InMemoryCycles, InMemoryEmployees, InMemoryTemplates, make_repos


@pytest.fixture
def container():
    repos = make_repos(
        employees=InMemoryEmployees(
            [
                Employee(employee_id="e1", tenant_id="t1", name="Ana", base_salary=100000, manager_id="m1"),
                Employee(employee_id="m1", tenant_id="t1", name="Marta", base_salary=150000),
            ]
        ),
        templates=InMemoryTemplates([template()]),
        cycles=InMemoryCycles([cycle()]),
    )
    return build_services(repos, clock=FixedClock())


@pytest.fixture
def client(container, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container)
    return app.test_client()


def login(client, *, user_id="u1", role="hr", permissions=()):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["tenant_id"] = "t1"
        sess["role"] = role
        sess["name"] = user_id.upper()
        sess["permissions"] = list(permissions)


def test_requires_login(client):
    resp = client.post("/payrolls/auto-calc", json={"employeeId": "e1", "period": "2025-03", "baseSalary": 1})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Unauthenticated"


def test_requires_permission(client):
    login(client, role="recruiter")
    resp = client.post("/payrolls/batch", json={"period": "2025-03"})
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Permission required: payroll.create"


def test_auto_calc(client):
    login(client, role="employee")
    resp = client.post("/payrolls/auto-calc", json={"employeeId": "e1", "period": "2025-03", "baseSalary": 100000})

    assert resp.status_code == 200
    body = resp.get_json()
    assert [(c["code"], c["amount"]) for c in body["concepts"]] == [("PRES", 10000.0)]
    assert body["summary"]["totalDeductions"] == 17000


def test_total_cost_and_batch(client):
    login(client)
    cost = client.post("/payrolls/total-cost", json={"employeeId": "e1", "period": "2025-03", "baseSalary": 100000})
    assert cost.get_json()["totalCost"] == 135110

    batch = client.post("/payrolls/batch", json={"period": "2025-03", "includeAutoCalc": False})
    assert batch.status_code == 200
    assert len(batch.get_json()["lines"]) == 2


@pytest.mark.parametrize(
    "body",
    [
        {"employeeId": "e1", "period": "2025-13", "baseSalary": 1},
        {"employeeId": "e1", "period": "2025-03", "baseSalary": "100"},
        {"employeeId": "e1", "period": "2025-03", "baseSalary": 1, "options": {"includeOvertime": "yes"}},
    ],
)
def test_bad_payroll_input(client, body):
    login(client)
    resp = client.post("/payrolls/auto-calc", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "ValidationError"


@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity", "1e400"])
@pytest.mark.parametrize("url", ["/payrolls/auto-calc", "/payrolls/employer-contributions", "/payrolls/total-cost"])
def test_non_finite_base_salary_is_a_validation_error(client, url, raw):
    login(client)
    resp = client.post(
        url,
        data='{"employeeId": "e1", "period": "2025-03", "baseSalary": %s}' % raw,
        content_type="application/json",
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "ValidationError", "message": "baseSalary must be a number"}


def test_non_finite_option_rate_is_a_validation_error(client):
    login(client)
    resp = client.post(
        "/payrolls/auto-calc",
        data='{"employeeId": "e1", "period": "2025-03", "baseSalary": 1, "options": {"overtimeRate": NaN}}',
        content_type="application/json",
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "ValidationError"


@pytest.mark.parametrize("url", ["/payrolls/auto-calc", "/payrolls/employer-contributions", "/payrolls/total-cost"])
def test_payroll_for_unknown_employee_is_not_found(client, url):
    login(client)
    resp = client.post(url, json={"employeeId": "ghost", "period": "2025-03", "baseSalary": 100000})
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "NotFound", "message": "Employee not found"}


def test_custom_role_lifecycle(client):
    login(client, role="admin")
    created = client.post("/roles", json={"name": "auditor", "permissions": ["audit.read"]})
    assert created.status_code == 201
    role_id = created.get_json()["id"]

    assert client.get("/roles/auditor").get_json()["permissions"] == ["audit.read"]
    assert client.put("/roles/hr", json={"description": "x"}).status_code == 403
    assert client.delete(f"/roles/{role_id}").get_json() == {"success": True}
    assert client.get("/roles/auditor").status_code == 404


def test_my_permissions_follow_custom_role(client):
    login(client, role="admin")
    client.post("/roles", json={"name": "auditor", "permissions": ["reports.*"]})

    login(client, role="auditor", permissions=["payroll.read"])
    assert client.get("/permissions/me").get_json()["permissions"] == ["reports.*"]
    resp = client.post("/payrolls/auto-calc", json={"employeeId": "e1", "period": "2025-03", "baseSalary": 1})
    assert resp.status_code == 403


def test_launch_and_read_notifications(client):
    login(client, role="hr")
    launched = client.post("/evaluation-cycles/cy-1/launch", json={})
    assert launched.status_code == 200
    assert launched.get_json()["assignedCount"] == 3

    login(client, user_id="m1", role="manager")
    inbox = client.get("/notifications?isRead=false").get_json()
    assert inbox["total"] == 2

    first = inbox["notifications"][0]["id"]
    assert client.patch(f"/notifications/{first}/read").status_code == 200
    assert client.patch("/notifications/nope/read").status_code == 404
    assert client.patch("/notifications/read-all").get_json()["count"] == 1


def test_analytics_for_unknown_cycle(client):
    login(client, role="manager")
    resp = client.get("/evaluation-cycles/nope/analytics")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "NotFound", "message": "Cycle not found"}


def test_workflow_routes(client, container):
    login(client, user_id="req", role="employee")
    created = client.post(
        "/workflows",
        json={
            "name": "Vacaciones",
            "type": "leave-approval",
            "resourceType": "leave",
            "resourceId": "l-1",
            "steps": [{"name": "Jefe", "assignedTo": "m1", "assignedToName": "Marta"}],
        },
    )
    assert created.status_code == 201
    wf = created.get_json()
    step_id = wf["steps"][0]["stepId"]

    forbidden = client.post(f"/workflows/{wf['id']}/steps/{step_id}/complete", json={})
    assert forbidden.status_code == 403

    login(client, user_id="m1", role="manager")
    assert client.get("/workflows/pending").get_json()["total"] == 1
    done = client.post(f"/workflows/{wf['id']}/steps/{step_id}/complete", json={"comments": "ok"})
    assert done.get_json()["status"] == "completed"
    assert client.get("/workflows/stats").get_json()["completed"] == 1
    assert container.repos.notifications.for_user("req")[0].title == "Proceso Completado"


def test_bad_workflow_step(client):
    login(client, user_id="req", role="employee")
    resp = client.post(
        "/workflows",
        json={"name": "x", "resourceType": "r", "resourceId": "1", "steps": ["not-an-object"]},
    )
    assert resp.status_code == 400


def test_unknown_route_keeps_http_status(client):
    login(client)
    assert client.get("/nowhere").status_code == 404


def test_unexpected_errors_are_hidden(client, container, monkeypatch):
    def explode(**kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(container.workflow_service, "stats", explode)
    login(client)
    resp = client.get("/workflows/stats")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "InternalError", "message": "Internal server error"}


def test_failed_events_are_listed_and_retried_per_tenant(client, container):
    state = {"broken": True}

    def flaky(event):
        if state["broken"]:
            raise RuntimeError("smtp down")

    container.outbox.subscribe("thing.happened", flaky)
    container.outbox.publish(DomainEvent(name="thing.happened", tenant_id="t1", payload={"n": 1}))
    container.outbox.publish(DomainEvent(name="thing.happened", tenant_id="t2", payload={"n": 2}))
    container.outbox.flush()

    login(client, role="hr")
    assert client.get("/events/failed").status_code == 403

    login(client, role="admin")
    listed = client.get("/events/failed").get_json()
    assert listed["total"] == 1
    assert listed["failed"][0]["error"] == "smtp down"
    assert listed["failed"][0]["payload"] == {"n": 1}

    state["broken"] = False
    assert client.post("/events/failed/retry").get_json() == {"stillFailing": 0}
    assert client.get("/events/failed").get_json()["total"] == 0
    assert [f.event.tenant_id for f in container.outbox.failed] == ["t2"]


def test_new_workflow_step_parsing():
    step = NewWorkflowStep.from_dict({"name": "Jefe", "assignedTo": "m1", "dueDate": "2025-04-01T00:00:00Z"})
    assert step.due_date.year == 2025
    assert step.assigned_to_name == ""


def test_template_and_cycle_management(client):
    login(client, role="hr")
    created = client.post(
        "/evaluation-templates",
        json={
            "name": "Probation",
            "type": "probation",
            "competencies": [{"name": "Grit", "category": "soft", "weight": 100}],
        },
    )
    assert created.status_code == 201
    tpl = created.get_json()
    assert tpl["competencies"][0]["id"]
    assert tpl["createdBy"] == "u1"
    assert client.get("/evaluation-templates?type=probation").get_json()["total"] == 1
    assert client.get("/evaluation-templates?type=weekly").status_code == 400

    toggled = client.patch(f"/evaluation-templates/{tpl['id']}/toggle-status").get_json()
    assert toggled["isActive"] is False
    assert client.get("/evaluation-templates?isActive=true").get_json()["total"] == 1

    cycle_body = {
        "name": "Probation 2025",
        "templateId": tpl["id"],
        "startDate": "2025-04-01",
        "endDate": "2025-06-30",
        "evaluationDeadline": "2025-07-10T00:00:00Z",
    }
    inactive = client.post("/evaluation-cycles", json=cycle_body)
    assert inactive.status_code == 400
    assert inactive.get_json()["message"] == "Template is not active"

    client.patch(f"/evaluation-templates/{tpl['id']}/toggle-status")
    new_cycle = client.post("/evaluation-cycles", json=cycle_body)
    assert new_cycle.status_code == 201
    cycle_id = new_cycle.get_json()["id"]
    assert new_cycle.get_json()["status"] == "draft"
    assert client.get("/evaluation-cycles?status=draft").get_json()["total"] == 2
    renamed = client.put(f"/evaluation-cycles/{cycle_id}", json={"name": "Probation Q2"})
    assert renamed.get_json()["name"] == "Probation Q2"

    assert client.delete(f"/evaluation-templates/{tpl['id']}").status_code == 400
    assert client.delete(f"/evaluation-cycles/{cycle_id}").get_json() == {"success": True}
    assert client.delete(f"/evaluation-templates/{tpl['id']}").get_json() == {"success": True}
    assert client.get(f"/evaluation-templates/{tpl['id']}").status_code == 404


def test_template_writes_need_manage_permission(client):
    login(client, role="manager")
    assert client.get("/evaluation-templates").get_json()["total"] == 1
    assert client.post("/evaluation-templates", json={"name": "x", "type": "self"}).status_code == 403
    assert client.delete("/evaluation-cycles/cy-1").status_code == 403


def test_score_trends_route(client, container):
    container.repos.cycles.save(
        cycle(cycle_id="cy-0", name="2024 H2", start_date=date(2024, 7, 1), end_date=date(2024, 12, 31),
              status=CycleStatus.COMPLETED)
    )
    container.repos.evaluations.insert_many(
        [instance("done", cycle_id="cy-0", status=EvaluationStatus.COMPLETED, overall_rating=4.25)]
    )
    login(client, role="employee")
    assert client.get("/evaluation-analytics/score-trends").status_code == 403

    login(client, role="manager")
    body = client.get("/evaluation-analytics/score-trends?employeeId=e1&limit=3").get_json()
    assert body == {
        "trends": [
            {
                "cycleId": "cy-0",
                "cycleName": "2024 H2",
                "endDate": "2024-12-31",
                "averageScore": 4.25,
                "totalEvaluations": 1,
            }
        ]
    }


def test_manager_review_rejects_non_finite_rating(client):
    login(client, user_id="m1", role="manager")
    resp = client.post(
        "/evaluations/ev-x/manager-review",
        data='{"approved": true, "overallRating": NaN}',
        content_type="application/json",
    )
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "ValidationError", "message": "overallRating must be a number"}
