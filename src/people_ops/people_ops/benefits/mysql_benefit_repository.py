from __future__ import annotations

from datetime import date
from typing import Sequence

from ..core.enums import BenefitFrequency, BenefitStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import EmployeeBenefitAssignment
from .repository import BenefitAssignmentRepository


class MySQLBenefitAssignmentRepository(BenefitAssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_employee(
        self,
        *,
        tenant_id: str,
        employee_id: str,
        status: BenefitStatus,
        starts_on_or_before: date,
        ends_on_or_after: date,
    ) -> Sequence[EmployeeBenefitAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, tenant_id, employee_id, benefit_id, benefit_name, benefit_type,
                       status, cost_to_employee, cost_to_company, frequency, start_date, end_date
                FROM employee_benefits
                WHERE tenant_id=%s AND employee_id=%s AND status=%s
                  AND start_date <= %s
                  AND (end_date IS NULL OR end_date >= %s)
                ORDER BY start_date, assignment_id
                """,
                (tenant_id, employee_id, status.value, starts_on_or_before, ends_on_or_after),
            )
            return [
                EmployeeBenefitAssignment(
                    assignment_id=str(r["assignment_id"]),
                    tenant_id=str(r["tenant_id"]),
                    employee_id=str(r["employee_id"]),
                    benefit_id=str(r["benefit_id"]),
                    benefit_name=r["benefit_name"],
                    benefit_type=r["benefit_type"],
                    status=BenefitStatus(r["status"]),
                    cost_to_employee=float(r.get("cost_to_employee") or 0),
                    cost_to_company=float(r.get("cost_to_company") or 0),
                    frequency=BenefitFrequency(r["frequency"]),
                    start_date=r["start_date"],
                    end_date=r.get("end_date"),
                )
                for r in fetchall(cur)
            ]
