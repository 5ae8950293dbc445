from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one day.

    Written by the attendance module; payroll only reads it. Hour fields may be
    missing on partially recorded days and then count as zero.
    """

    attendance_id: int
    tenant_id: str
    employee_id: str
    work_date: date
    status: AttendanceStatus
    hours_worked: Optional[float] = None
    regular_hours: Optional[float] = None
    overtime_hours: Optional[float] = None


@dataclass(frozen=True)
class AttendanceTotals:
    """Read-model: attendance rolled up over a payroll period."""

    total_hours_worked: float = 0.0
    total_regular_hours: float = 0.0
    total_overtime_hours: float = 0.0
    days_present: int = 0
    days_absent: int = 0
    days_late: int = 0
    days_by_status: dict[str, int] = field(default_factory=dict)
