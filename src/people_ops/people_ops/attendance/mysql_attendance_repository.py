from __future__ import annotations

from datetime import date
from typing import Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AttendanceRecord
from .repository import AttendanceRepository


def _opt_float(value):
    return float(value) if value is not None else None


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_employee(
        self,
        *,
        tenant_id: str,
        employee_id: str,
        start_date: date,
        end_date: date,
    ) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attendance_id, tenant_id, employee_id, work_date,
                       hours_worked, regular_hours, overtime_hours, status
                FROM attendance_records
                WHERE tenant_id=%s AND employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (tenant_id, employee_id, start_date, end_date),
            )
            return [
                AttendanceRecord(
                    attendance_id=int(r["attendance_id"]),
                    tenant_id=str(r["tenant_id"]),
                    employee_id=str(r["employee_id"]),
                    work_date=r["work_date"],
                    status=AttendanceStatus(r["status"]),
                    hours_worked=_opt_float(r.get("hours_worked")),
                    regular_hours=_opt_float(r.get("regular_hours")),
                    overtime_hours=_opt_float(r.get("overtime_hours")),
                )
                for r in fetchall(cur)
            ]
