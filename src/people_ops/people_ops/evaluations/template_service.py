from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import utc_now
from ..core.enums import TemplateType
from ..core.exceptions import NotFoundError, ValidationError
from .model import EvaluationTemplate
from .repository import EvaluationCycleRepository, EvaluationTemplateRepository

logger = logging.getLogger(__name__)

_ITEM_KEYS = ("competencies", "objectives", "generalQuestions")


def with_item_ids(data: Mapping[str, Any]) -> dict:
    """Copy of ``data`` where competencies, objectives and questions without an id get one."""
    out = dict(data)
    for key in _ITEM_KEYS:
        items = out.get(key)
        if isinstance(items, list):
            out[key] = [
                {**item, "id": item.get("id") or str(uuid.uuid4())} if isinstance(item, Mapping) else item
                for item in items
            ]
    return out


class TemplateService:
    """CRUD for the evaluation templates a tenant builds its cycles from."""

    def __init__(
        self,
        templates: EvaluationTemplateRepository,
        cycles: EvaluationCycleRepository,
        *,
        clock: Callable = utc_now,
    ):
        self._templates = templates
        self._cycles = cycles
        self._clock = clock

    def create_template(
        self, *, tenant_id: str, user_id: str, user_name: str, data: Mapping[str, Any]
    ) -> EvaluationTemplate:
        fields = EvaluationTemplate.fields_from_dict(with_item_ids(data))
        template = EvaluationTemplate(
            template_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            created_by=user_id,
            created_by_name=user_name,
            created_at=self._clock(),
            **fields,
        )
        self._templates.create(template)
        logger.info("template %s created", template.template_id, extra={"tenant_id": tenant_id})
        return template

    def list_templates(
        self, *, tenant_id: str, type: Optional[TemplateType] = None, is_active: Optional[bool] = None
    ) -> Sequence[EvaluationTemplate]:
        return self._templates.find(tenant_id, type=type, is_active=is_active)

    def get_template(self, *, tenant_id: str, template_id: str) -> EvaluationTemplate:
        template = self._templates.get_by_id(tenant_id, template_id)
        if not template:
            raise NotFoundError("Template not found")
        return template

    def update_template(
        self, *, tenant_id: str, template_id: str, updates: Mapping[str, Any]
    ) -> EvaluationTemplate:
        """Replace the fields present in ``updates``; absent fields keep their value."""
        template = self.get_template(tenant_id=tenant_id, template_id=template_id)
        fields = EvaluationTemplate.fields_from_dict(with_item_ids(updates), partial=True)
        updated = replace(template, **fields, updated_at=self._clock())
        self._templates.save(updated)
        return updated

    def delete_template(self, *, tenant_id: str, template_id: str) -> None:
        if self._cycles.count_for_template(tenant_id, template_id):
            raise ValidationError("Cannot delete template used by evaluation cycles")
        if not self._templates.delete(tenant_id, template_id):
            raise NotFoundError("Template not found")
        logger.info("template %s deleted", template_id, extra={"tenant_id": tenant_id})

    def toggle_template_status(self, *, tenant_id: str, template_id: str) -> EvaluationTemplate:
        template = self.get_template(tenant_id=tenant_id, template_id=template_id)
        updated = replace(template, is_active=not template.is_active, updated_at=self._clock())
        self._templates.save(updated)
        return updated
