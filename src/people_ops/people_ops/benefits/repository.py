from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from ..core.enums import BenefitStatus
from .model import EmployeeBenefitAssignment


class BenefitAssignmentRepository(Protocol):
    def list_for_employee(
        self,
        *,
        tenant_id: str,
        employee_id: str,
        status: BenefitStatus,
        starts_on_or_before: date,
        ends_on_or_after: date,
    ) -> Sequence[EmployeeBenefitAssignment]:
        """Assignments in ``status`` whose interval touches the given window.

        Open-ended assignments (no end date) always satisfy ``ends_on_or_after``.
        """

        raise NotImplementedError
