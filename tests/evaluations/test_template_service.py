from __future__ import annotations

from dataclasses import replace

import pytest

from src.people_ops.people_ops.core.enums import TemplateType
from src.people_ops.people_ops.core.exceptions import NotFoundError, ValidationError
from src.people_ops.people_ops.evaluations.template_service import TemplateService
from tests.evaluations.builders import cycle, template
from tests.fakes import FixedClock, InMemoryCycles, InMemoryTemplates

BODY = {
    "name": "Quarterly check-in",
    "type": "quarterly",
    "ratingScale": {"min": 1, "max": 5, "scales": [{"value": 1, "label": "Bajo"}, {"value": 5, "label": "Alto"}]},
    "competencies": [
        {"name": "Teamwork", "category": "soft", "weight": 60},
        {"id": "keep-me", "name": "Quality", "category": "technical", "weight": 40, "required": False},
    ],
    "objectives": [{"description": "Ship v2", "weight": 100, "metric": "releases"}],
    "generalQuestions": [{"question": "What went well?"}],
    "config": {"requireHRApproval": True},
}


def _service(*templates, cycles=()):
    repo = InMemoryTemplates(templates)
    return TemplateService(repo, InMemoryCycles(cycles), clock=FixedClock()), repo


def test_create_assigns_item_ids_and_author():
    svc, repo = _service()

    created = svc.create_template(tenant_id="t1", user_id="u1", user_name="Hana", data=BODY)

    assert repo.get_by_id("t1", created.template_id) == created
    assert created.type == TemplateType.QUARTERLY
    assert created.is_active is True
    assert (created.created_by, created.created_by_name) == ("u1", "Hana")
    assert created.created_at == FixedClock().now
    first, second = (c.id for c in created.competencies)
    assert second == "keep-me"
    assert first and first != "keep-me"
    assert created.objectives[0].id
    assert created.objectives[0].metric == "releases"
    assert created.general_questions[0].id
    assert created.config.require_hr_approval is True
    assert created.config.allow_self_evaluation is True

    body = created.to_dict()
    assert body["ratingScale"]["scales"][1] == {"value": 5, "label": "Alto", "description": "", "color": None}
    assert body["competencies"][1]["required"] is False
    assert "id" not in BODY["competencies"][0]


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": ""},
        {"type": "weekly"},
        {"type": None},
        {"competencies": "none"},
        {"competencies": ["Teamwork"]},
        {"competencies": [{"name": "X", "weight": 120}]},
        {"competencies": [{"name": "X", "weight": float("nan")}]},
        {"ratingScale": {"min": 5, "max": 1}},
        {"config": ["x"]},
        {"isActive": "yes"},
    ],
)
def test_create_rejects_invalid_body(overrides):
    svc, repo = _service()
    with pytest.raises(ValidationError):
        svc.create_template(tenant_id="t1", user_id="u1", user_name="Hana", data={**BODY, **overrides})
    assert repo.by_id == {}


def test_list_filters_by_type_and_active_flag():
    svc, _ = _service(template(), replace(template(), template_id="tpl-2", type=TemplateType.SELF, is_active=False))

    assert [t.template_id for t in svc.list_templates(tenant_id="t1")] == ["tpl-2", "tpl-1"]
    assert [t.template_id for t in svc.list_templates(tenant_id="t1", type=TemplateType.SELF)] == ["tpl-2"]
    assert [t.template_id for t in svc.list_templates(tenant_id="t1", is_active=True)] == ["tpl-1"]
    assert svc.list_templates(tenant_id="t2") == []


def test_update_replaces_only_given_fields():
    svc, repo = _service(template())

    updated = svc.update_template(
        tenant_id="t1",
        template_id="tpl-1",
        updates={"description": "2025 edition", "competencies": [{"name": "Focus", "category": "soft", "weight": 100}]},
    )

    assert updated.name == "Annual review"
    assert updated.description == "2025 edition"
    assert [c.name for c in updated.competencies] == ["Focus"]
    assert updated.competencies[0].id
    assert updated.updated_at == FixedClock().now
    assert repo.get_by_id("t1", "tpl-1") == updated

    with pytest.raises(NotFoundError, match="Template not found"):
        svc.update_template(tenant_id="t2", template_id="tpl-1", updates={})
    with pytest.raises(ValidationError):
        svc.update_template(tenant_id="t1", template_id="tpl-1", updates={"type": "weekly"})


def test_toggle_status_flips_active_flag():
    svc, repo = _service(template())

    assert svc.toggle_template_status(tenant_id="t1", template_id="tpl-1").is_active is False
    assert repo.get_by_id("t1", "tpl-1").is_active is False
    assert svc.toggle_template_status(tenant_id="t1", template_id="tpl-1").is_active is True
    with pytest.raises(NotFoundError):
        svc.toggle_template_status(tenant_id="t1", template_id="nope")


def test_delete_refuses_templates_used_by_cycles():
    svc, repo = _service(template(), replace(template(), template_id="tpl-2"), cycles=[cycle()])

    with pytest.raises(ValidationError, match="used by evaluation cycles"):
        svc.delete_template(tenant_id="t1", template_id="tpl-1")
    assert repo.get_by_id("t1", "tpl-1") is not None

    svc.delete_template(tenant_id="t1", template_id="tpl-2")
    assert repo.get_by_id("t1", "tpl-2") is None
    with pytest.raises(NotFoundError):
        svc.delete_template(tenant_id="t1", template_id="tpl-2")
