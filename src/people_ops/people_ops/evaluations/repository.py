from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from ..core.enums import CycleStatus, EvaluationStatus, TemplateType
from .model import EvaluationCycle, EvaluationInstance, EvaluationTemplate


@dataclass(frozen=True)
class EvaluationFilters:
    cycle_id: Optional[str] = None
    evaluated_employee_id: Optional[str] = None
    evaluator_id: Optional[str] = None
    status: Optional[EvaluationStatus] = None


class EvaluationRepository(Protocol):
    def get_by_id(self, tenant_id: str, evaluation_id: str) -> Optional[EvaluationInstance]:
        raise NotImplementedError

    def find(self, tenant_id: str, filters: EvaluationFilters) -> Sequence[EvaluationInstance]:
        """Newest first."""

        raise NotImplementedError

    def list_completed_for_employee(
        self, tenant_id: str, employee_id: str, *, limit: int
    ) -> Sequence[EvaluationInstance]:
        """Most recently completed first."""

        raise NotImplementedError

    def save(self, instance: EvaluationInstance) -> None:
        raise NotImplementedError

    def insert_many(self, instances: Sequence[EvaluationInstance]) -> None:
        raise NotImplementedError

    def count_for_cycle(self, tenant_id: str, cycle_id: str) -> int:
        raise NotImplementedError


class EvaluationTemplateRepository(Protocol):
    def get_by_id(self, tenant_id: str, template_id: str) -> Optional[EvaluationTemplate]:
        raise NotImplementedError

    def find(
        self, tenant_id: str, *, type: Optional[TemplateType] = None, is_active: Optional[bool] = None
    ) -> Sequence[EvaluationTemplate]:
        """Newest first."""

        raise NotImplementedError

    def create(self, template: EvaluationTemplate) -> None:
        raise NotImplementedError

    def save(self, template: EvaluationTemplate) -> None:
        raise NotImplementedError

    def delete(self, tenant_id: str, template_id: str) -> bool:
        raise NotImplementedError


class EvaluationCycleRepository(Protocol):
    def get_by_id(self, tenant_id: str, cycle_id: str) -> Optional[EvaluationCycle]:
        raise NotImplementedError

    def list_by_ids(self, tenant_id: str, cycle_ids: Sequence[str]) -> Sequence[EvaluationCycle]:
        raise NotImplementedError

    def save(self, cycle: EvaluationCycle) -> None:
        raise NotImplementedError

    def find(self, tenant_id: str, *, status: Optional[CycleStatus] = None) -> Sequence[EvaluationCycle]:
        """Newest first."""

        raise NotImplementedError

    def list_completed(self, tenant_id: str, *, limit: int) -> Sequence[EvaluationCycle]:
        """Completed cycles, latest end date first."""

        raise NotImplementedError

    def count_for_template(self, tenant_id: str, template_id: str) -> int:
        raise NotImplementedError

    def create(self, cycle: EvaluationCycle) -> None:
        raise NotImplementedError

    def delete(self, tenant_id: str, cycle_id: str) -> bool:
        raise NotImplementedError
