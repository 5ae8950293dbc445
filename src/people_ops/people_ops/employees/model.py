from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import EmployeeStatus


@dataclass(frozen=True)
class Employee:
    """Read model of an employee record, owned by the employee module."""

    employee_id: str
    tenant_id: str
    name: str
    base_salary: float
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    department: Optional[str] = None
    position: Optional[str] = None
    manager_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE
