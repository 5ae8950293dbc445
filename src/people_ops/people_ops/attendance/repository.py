from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def list_for_employee(
        self,
        *,
        tenant_id: str,
        employee_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        """Records with ``start_date <= work_date <= end_date``."""

        raise NotImplementedError
