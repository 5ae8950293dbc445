from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import BenefitFrequency, BenefitStatus


@dataclass(frozen=True)
class EmployeeBenefitAssignment:
    """Links an employee to a catalog benefit, with the cost split agreed for them."""

    assignment_id: str
    tenant_id: str
    employee_id: str
    benefit_id: str
    benefit_name: str
    benefit_type: str
    status: BenefitStatus
    cost_to_employee: float
    cost_to_company: float
    frequency: BenefitFrequency
    start_date: date
    end_date: Optional[date] = None
