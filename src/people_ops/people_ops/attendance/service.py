from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from ..common.datetime_utils import PeriodRange
from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, AttendanceTotals
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def summarize(records: Iterable[AttendanceRecord]) -> AttendanceTotals:
    """Sum hours and count days by status. Hours are left unrounded."""
    hours_worked = 0.0
    regular_hours = 0.0
    overtime_hours = 0.0
    by_status: Counter[str] = Counter()

    for r in records:
        hours_worked += r.hours_worked or 0
        regular_hours += r.regular_hours or 0
        overtime_hours += r.overtime_hours or 0
        by_status[r.status.value] += 1

    return AttendanceTotals(
        total_hours_worked=hours_worked,
        total_regular_hours=regular_hours,
        total_overtime_hours=overtime_hours,
        days_present=by_status[AttendanceStatus.PRESENT.value],
        days_absent=by_status[AttendanceStatus.ABSENT.value],
        days_late=by_status[AttendanceStatus.LATE.value],
        days_by_status=dict(by_status),
    )


class AttendanceAggregator:
    """Use case: derive attendance totals for one employee and payroll period."""

    def __init__(self, attendance: AttendanceRepository):
        self._attendance = attendance

    def totals(self, *, tenant_id: str, employee_id: str, period: PeriodRange) -> AttendanceTotals:
        records = self._attendance.list_for_employee(
            tenant_id=tenant_id,
            employee_id=employee_id,
            start_date=period.start.date(),
            end_date=period.end.date(),
        )
        totals = summarize(records)
        logger.debug(
            "attendance %s %s: %d records, %d absent, %d late",
            employee_id,
            period.period,
            len(records),
            totals.days_absent,
            totals.days_late,
        )
        return totals
