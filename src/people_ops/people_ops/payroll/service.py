from __future__ import annotations

import logging
from typing import Optional

from ..attendance.service import AttendanceAggregator
from ..benefits.service import BenefitCostResolver
from ..common.datetime_utils import parse_period
from ..common.money import plain_sum, round_money
from ..common.validators import require_non_empty, require_non_negative
from ..core.exceptions import NotFoundError
from ..employees.repository import EmployeeRepository
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import (
    AutoCalcOptions,
    AutoCalcResult,
    AutoCalcSummary,
    EmployerContributionResult,
    TotalEmployeeCost,
)

logger = logging.getLogger(__name__)


class PayrollAutoCalcService:
    """Derives payslip lines from attendance and benefit enrolments for one month.

    With an employee repository, ids that do not belong to the tenant raise
    ``NotFoundError`` instead of producing a payslip from empty attendance.
    """

    def __init__(
        self,
        attendance: AttendanceAggregator,
        benefits: BenefitCostResolver,
        *,
        employees: Optional[EmployeeRepository] = None,
        calculator: Optional[PayrollCalculator] = None,
    ):
        self._attendance = attendance
        self._benefits = benefits
        self._employees = employees
        self._calculator = calculator or StandardPayrollCalculator()

    def _require_employee(self, tenant_id: str, employee_id: str) -> None:
        if self._employees is not None and self._employees.get_by_id(tenant_id, employee_id) is None:
            raise NotFoundError("Employee not found")

    def calculate_payroll_concepts(
        self,
        *,
        tenant_id: str,
        employee_id: str,
        period: str,
        base_salary: float,
        options: Optional[AutoCalcOptions] = None,
    ) -> AutoCalcResult:
        tenant_id = require_non_empty(tenant_id, "tenant_id")
        employee_id = require_non_empty(employee_id, "employee_id")
        base_salary = require_non_negative(base_salary, "base_salary")
        self._require_employee(tenant_id, employee_id)
        options = options or AutoCalcOptions()
        rng = parse_period(period)

        totals = self._attendance.totals(tenant_id=tenant_id, employee_id=employee_id, period=rng)
        concepts = self._calculator.concepts(base_salary=base_salary, totals=totals, options=options)

        benefit_lines = []
        if options.include_benefits_deductions:
            benefit_lines = self._benefits.employee_cost_lines(
                tenant_id=tenant_id, employee_id=employee_id, period=rng
            )
        deductions = self._calculator.deductions(
            base_salary=base_salary, totals=totals, benefit_lines=benefit_lines, options=options
        )

        summary = AutoCalcSummary(
            total_concepts=round_money(plain_sum(c.amount for c in concepts)),
            total_deductions=round_money(plain_sum(d.amount for d in deductions)),
            total_hours_worked=round_money(totals.total_hours_worked),
            total_overtime_hours=round_money(totals.total_overtime_hours),
            days_absent=totals.days_absent,
            days_late=totals.days_late,
        )
        logger.info(
            "auto-calc %s %s: %d concepts, %d deductions",
            employee_id,
            rng.period,
            len(concepts),
            len(deductions),
            extra={"tenant_id": tenant_id, "employee_id": employee_id},
        )
        return AutoCalcResult(concepts=concepts, deductions=deductions, summary=summary)

    def calculate_employer_contributions(
        self, *, tenant_id: str, employee_id: str, period: str, base_salary: float
    ) -> EmployerContributionResult:
        tenant_id = require_non_empty(tenant_id, "tenant_id")
        employee_id = require_non_empty(employee_id, "employee_id")
        base_salary = require_non_negative(base_salary, "base_salary")
        self._require_employee(tenant_id, employee_id)
        rng = parse_period(period)

        company_lines = self._benefits.company_cost_lines(tenant_id=tenant_id, employee_id=employee_id, period=rng)
        contributions = self._calculator.employer_contributions(base_salary=base_salary, company_lines=company_lines)
        return EmployerContributionResult(
            contributions=contributions,
            total=round_money(plain_sum(c.amount for c in contributions)),
        )

    def calculate_total_employee_cost(
        self, *, tenant_id: str, employee_id: str, period: str, base_salary: float
    ) -> TotalEmployeeCost:
        """Base salary plus earnings plus employer contributions.

        Always computed with the default options so the figure is comparable
        across employees.
        """
        auto_calc = self.calculate_payroll_concepts(
            tenant_id=tenant_id, employee_id=employee_id, period=period, base_salary=base_salary
        )
        employer = self.calculate_employer_contributions(
            tenant_id=tenant_id, employee_id=employee_id, period=period, base_salary=base_salary
        )
        return compose_total_cost(float(base_salary), auto_calc, employer)


def compose_total_cost(
    base_salary: float, auto_calc: AutoCalcResult, employer: EmployerContributionResult
) -> TotalEmployeeCost:
    concepts = auto_calc.summary.total_concepts
    return TotalEmployeeCost(
        base_salary=base_salary,
        concepts=concepts,
        employer_contributions=employer.total,
        total_cost=round_money(base_salary + concepts + employer.total),
        net_pay=base_salary + concepts - auto_calc.summary.total_deductions,
        auto_calc=auto_calc,
        employer=employer,
    )
