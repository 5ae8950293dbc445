from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee


class EmployeeRepository(Protocol):
    def get_by_id(self, tenant_id: str, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def list_by_ids(self, tenant_id: str, employee_ids: Sequence[str]) -> Sequence[Employee]:
        raise NotImplementedError

    def list_active(
        self,
        tenant_id: str,
        *,
        departments: Optional[Sequence[str]] = None,
        positions: Optional[Sequence[str]] = None,
    ) -> Sequence[Employee]:
        raise NotImplementedError
