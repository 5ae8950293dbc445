from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import EmployeeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = "employee_id, tenant_id, name, department, position, manager_id, base_salary, status"


def _row_to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=str(r["employee_id"]),
        tenant_id=str(r["tenant_id"]),
        name=r["name"],
        base_salary=float(r.get("base_salary") or 0),
        status=EmployeeStatus(r["status"]),
        department=r.get("department"),
        position=r.get("position"),
        manager_id=r.get("manager_id"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, tenant_id: str, employee_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees WHERE tenant_id=%s AND employee_id=%s",
                (tenant_id, employee_id),
            )
            r = fetchone(cur)
            return _row_to_employee(r) if r else None

    def list_by_ids(self, tenant_id: str, employee_ids: Sequence[str]) -> Sequence[Employee]:
        ids = list(employee_ids)
        if not ids:
            return []
        placeholders = ", ".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees WHERE tenant_id=%s AND employee_id IN ({placeholders})",
                (tenant_id, *ids),
            )
            return [_row_to_employee(r) for r in fetchall(cur)]

    def list_active(
        self,
        tenant_id: str,
        *,
        departments: Optional[Sequence[str]] = None,
        positions: Optional[Sequence[str]] = None,
    ) -> Sequence[Employee]:
        where = ["tenant_id=%s", "status=%s"]
        params: list = [tenant_id, EmployeeStatus.ACTIVE.value]

        if departments:
            where.append(f"department IN ({', '.join(['%s'] * len(departments))})")
            params.extend(departments)
        if positions:
            where.append(f"position IN ({', '.join(['%s'] * len(positions))})")
            params.extend(positions)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM employees WHERE {' AND '.join(where)} ORDER BY name",
                tuple(params),
            )
            return [_row_to_employee(r) for r in fetchall(cur)]
