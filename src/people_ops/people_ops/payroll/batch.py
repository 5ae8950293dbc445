from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..common.datetime_utils import parse_period
from ..common.money import plain_sum, round_money
from ..core.exceptions import DomainError
from ..employees.model import Employee
from ..employees.repository import EmployeeRepository
from .model import AutoCalcOptions, BatchError, BatchLine, BatchResult
from .service import PayrollAutoCalcService, compose_total_cost

logger = logging.getLogger(__name__)


class PayrollBatchService:
    """Runs the auto-calculation for many employees of one tenant.

    One employee failing is recorded in ``errors`` and does not stop the rest.
    """

    def __init__(self, employees: EmployeeRepository, auto_calc: PayrollAutoCalcService):
        self._employees = employees
        self._auto_calc = auto_calc

    def _resolve_employees(
        self, tenant_id: str, employee_ids: Optional[Sequence[str]]
    ) -> tuple[list[Employee], list[BatchError]]:
        if not employee_ids:
            return list(self._employees.list_active(tenant_id)), []

        found = {e.employee_id: e for e in self._employees.list_by_ids(tenant_id, employee_ids)}
        employees: list[Employee] = []
        errors: list[BatchError] = []
        for employee_id in employee_ids:
            emp = found.get(employee_id)
            if emp is None:
                errors.append(BatchError(employee_id=employee_id, message="Employee not found"))
            else:
                employees.append(emp)
        return employees, errors

    def run(
        self,
        *,
        tenant_id: str,
        period: str,
        employee_ids: Optional[Sequence[str]] = None,
        include_auto_calc: bool = True,
        options: Optional[AutoCalcOptions] = None,
    ) -> BatchResult:
        rng = parse_period(period)
        options = options or AutoCalcOptions()
        employees, errors = self._resolve_employees(tenant_id, employee_ids)

        lines: list[BatchLine] = []
        for emp in employees:
            if not include_auto_calc:
                lines.append(BatchLine(employee_id=emp.employee_id, employee_name=emp.name, base_salary=emp.base_salary))
                continue
            try:
                auto_calc = self._auto_calc.calculate_payroll_concepts(
                    tenant_id=tenant_id,
                    employee_id=emp.employee_id,
                    period=rng.period,
                    base_salary=emp.base_salary,
                    options=options,
                )
                employer = self._auto_calc.calculate_employer_contributions(
                    tenant_id=tenant_id, employee_id=emp.employee_id, period=rng.period, base_salary=emp.base_salary
                )
            except DomainError as exc:
                errors.append(BatchError(employee_id=emp.employee_id, message=str(exc)))
                logger.warning(
                    "payroll batch %s: %s skipped: %s",
                    rng.period,
                    emp.employee_id,
                    exc,
                    extra={"tenant_id": tenant_id, "employee_id": emp.employee_id},
                )
                continue
            except Exception as exc:
                errors.append(BatchError(employee_id=emp.employee_id, message=str(exc)))
                logger.exception(
                    "payroll batch %s: %s failed",
                    rng.period,
                    emp.employee_id,
                    extra={"tenant_id": tenant_id, "employee_id": emp.employee_id},
                )
                continue

            total = compose_total_cost(emp.base_salary, auto_calc, employer)
            lines.append(
                BatchLine(
                    employee_id=emp.employee_id,
                    employee_name=emp.name,
                    base_salary=emp.base_salary,
                    auto_calc=auto_calc,
                    employer=employer,
                    net_pay=round_money(total.net_pay),
                    total_cost=total.total_cost,
                )
            )

        result = BatchResult(
            period=rng.period,
            lines=lines,
            errors=errors,
            total_base_salary=round_money(plain_sum(line.base_salary for line in lines)),
            total_net_pay=round_money(plain_sum(line.net_pay or 0 for line in lines)),
            total_cost=round_money(plain_sum(line.total_cost or 0 for line in lines)),
        )
        logger.info(
            "payroll batch %s: %d lines, %d errors",
            rng.period,
            len(lines),
            len(errors),
            extra={"tenant_id": tenant_id},
        )
        return result
