from __future__ import annotations

import pytest

from src.people_ops.people_ops.core.enums import NotificationType, Priority
from src.people_ops.people_ops.core.exceptions import NotFoundError, ValidationError
from src.people_ops.people_ops.notifications.service import NotificationService
from src.people_ops.people_ops.notifications.templates import render_template
from tests.fakes import FixedClock, InMemoryNotifications


@pytest.fixture
def repo():
    return InMemoryNotifications()


@pytest.fixture
def svc(repo):
    return NotificationService(repo, clock=FixedClock())


def test_render_template():
    text = "Hola {{name}}, puntuación {{score}} ({{missing}})"
    assert render_template(text, {"name": "Ana", "score": 4.0}) == "Hola Ana, puntuación 4 ({{missing}})"
    assert render_template("sin {{x}}", None) == "sin {{x}}"


def test_create_from_template(svc, repo):
    n = svc.create_notification(
        tenant_id="t1",
        user_id="u1",
        user_name="Ana",
        template_key="EVALUATION_APPROVED",
        variables={"approverName": "Marta", "score": 4.25},
        action_url="/evaluations/ev-1",
    )

    assert n.title == "Evaluación Aprobada"
    assert n.message.endswith("por Marta. Puntuación final: 4.25")
    assert n.type == NotificationType.SUCCESS
    assert n.priority == Priority.HIGH
    assert n.category == "evaluation"
    assert n.action_label == "Ver Resultados"
    assert n.channels == ("in-app",)
    assert n.created_at == FixedClock().now
    assert repo.items == [n]


def test_explicit_values_override_template(svc):
    n = svc.create_notification(
        tenant_id="t1",
        user_id="u1",
        user_name="Ana",
        template_key="WORKFLOW_COMPLETED",
        variables={"workflowName": "Alta"},
        priority=Priority.URGENT,
        title="Listo",
    )
    assert n.title == "Listo"
    assert n.priority == Priority.URGENT
    assert "Alta" in n.message


def test_create_requires_content(svc):
    with pytest.raises(ValidationError):
        svc.create_notification(tenant_id="t1", user_id="u1", user_name="Ana", template_key="NOPE")
    with pytest.raises(ValidationError):
        svc.create_notification(tenant_id="t1", user_id="u1", user_name="Ana", title="Hola")
    with pytest.raises(ValidationError):
        svc.create_notification(tenant_id="t1", user_id="", user_name="", title="Hola", message="m")


def test_list_and_mark_read(svc):
    first = svc.create_notification(tenant_id="t1", user_id="u1", user_name="Ana", title="a", message="a")
    svc.create_notification(tenant_id="t1", user_id="u1", user_name="Ana", title="b", message="b")
    svc.create_notification(tenant_id="t1", user_id="u2", user_name="Bo", title="c", message="c")

    page = svc.list_for_user(tenant_id="t1", user_id="u1", limit=1)
    assert page["total"] == 2
    assert [n.title for n in page["notifications"]] == ["b"]

    svc.mark_read(tenant_id="t1", user_id="u1", notification_id=first.notification_id)
    assert svc.list_for_user(tenant_id="t1", user_id="u1", is_read=False)["total"] == 1

    # another user's notification is invisible
    with pytest.raises(NotFoundError):
        svc.mark_read(tenant_id="t1", user_id="u2", notification_id=first.notification_id)

    assert svc.mark_all_read(tenant_id="t1", user_id="u1") == 1
    assert svc.mark_all_read(tenant_id="t1", user_id="u1") == 0
    assert svc.list_for_user(tenant_id="t1", user_id="u2", is_read=False)["total"] == 1
