from __future__ import annotations

from typing import Sequence

from ..common.datetime_utils import PeriodRange
from ..core.enums import BenefitFrequency, BenefitStatus
from .model import EmployeeBenefitAssignment
from .repository import BenefitAssignmentRepository


class BenefitCostResolver:
    """Resolves which benefit assignments carry a recurring monthly cost for a period."""

    def __init__(self, assignments: BenefitAssignmentRepository):
        self._assignments = assignments

    def active_monthly(
        self, *, tenant_id: str, employee_id: str, period: PeriodRange
    ) -> list[EmployeeBenefitAssignment]:
        found = self._assignments.list_for_employee(
            tenant_id=tenant_id,
            employee_id=employee_id,
            status=BenefitStatus.ACTIVE,
            starts_on_or_before=period.end.date(),
            ends_on_or_after=period.start.date(),
        )
        return filter_active_monthly(found, period)

    def employee_cost_lines(
        self, *, tenant_id: str, employee_id: str, period: PeriodRange
    ) -> list[EmployeeBenefitAssignment]:
        return [
            a
            for a in self.active_monthly(tenant_id=tenant_id, employee_id=employee_id, period=period)
            if a.cost_to_employee > 0
        ]

    def company_cost_lines(
        self, *, tenant_id: str, employee_id: str, period: PeriodRange
    ) -> list[EmployeeBenefitAssignment]:
        return [
            a
            for a in self.active_monthly(tenant_id=tenant_id, employee_id=employee_id, period=period)
            if a.cost_to_company > 0
        ]


def filter_active_monthly(
    assignments: Sequence[EmployeeBenefitAssignment], period: PeriodRange
) -> list[EmployeeBenefitAssignment]:
    # Only active, monthly assignments overlapping the period reach payroll.
    return [
        a
        for a in assignments
        if a.status == BenefitStatus.ACTIVE
        and a.frequency == BenefitFrequency.MONTHLY
        and period.overlaps(a.start_date, a.end_date)
    ]
