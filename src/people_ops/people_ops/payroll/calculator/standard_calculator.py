from __future__ import annotations

from typing import Sequence

from .base import PayrollCalculator
from ..model import AutoCalcOptions, Concept, Deduction, EmployerContribution
from ...attendance.model import AttendanceTotals
from ...benefits.model import EmployeeBenefitAssignment
from ...common.money import round_money
from ...core.constants import (
    EMPLOYER_CONTRIBUTIONS,
    LATE_DAYS_PER_PENALTY,
    LATE_PENALTY_RATE,
    PRESENTEEISM_BONUS_RATE,
    STATUTORY_DEDUCTIONS,
    WORKING_DAYS_PER_MONTH,
    WORKING_HOURS_PER_DAY,
)
from ...core.enums import ConceptType


def _format_rate(rate: float) -> str:
    # 2.0 prints as "2", 1.5 as "1.5"
    if float(rate).is_integer():
        return str(int(rate))
    return repr(float(rate))


def _days(n: int) -> str:
    return f"{n} día{'s' if n > 1 else ''}"


class StandardPayrollCalculator(PayrollCalculator):
    """Argentine monthly payroll rules.

    Hourly value is base / 22 days / 8 hours and daily value is base / 22.
    Every line is rounded to cents where it is computed; benefit lines keep the
    amount exactly as stored on the assignment.
    """

    def concepts(
        self, *, base_salary: float, totals: AttendanceTotals, options: AutoCalcOptions
    ) -> list[Concept]:
        out: list[Concept] = []
        overtime = totals.total_overtime_hours

        if options.include_overtime and overtime > 0:
            hourly_rate = base_salary / WORKING_DAYS_PER_MONTH / WORKING_HOURS_PER_DAY
            out.append(
                Concept(
                    code="OT",
                    label=f"Horas Extra ({round_money(overtime):.2f}hs x {_format_rate(options.overtime_rate)}x)",
                    type=ConceptType.REMUNERATIVO,
                    amount=round_money(overtime * hourly_rate * options.overtime_rate),
                    taxable=True,
                )
            )

        if options.include_presenteeism and totals.days_absent == 0 and totals.days_late == 0:
            out.append(
                Concept(
                    code="PRES",
                    label="Bono Presentismo (sin ausencias ni tardanzas)",
                    type=ConceptType.NO_REMUNERATIVO,
                    amount=round_money(base_salary * PRESENTEEISM_BONUS_RATE),
                    taxable=False,
                )
            )

        return out

    def deductions(
        self,
        *,
        base_salary: float,
        totals: AttendanceTotals,
        benefit_lines: Sequence[EmployeeBenefitAssignment],
        options: AutoCalcOptions,
    ) -> list[Deduction]:
        out: list[Deduction] = []
        absent = totals.days_absent
        late = totals.days_late

        if options.include_absence_deductions and absent > 0:
            daily_rate = base_salary / WORKING_DAYS_PER_MONTH
            out.append(
                Deduction(
                    code="ABS",
                    label=f"Ausencias ({_days(absent)})",
                    amount=round_money(absent * daily_rate * options.absence_deduction_rate),
                )
            )

        # Late penalty applies regardless of include_absence_deductions.
        if late >= LATE_DAYS_PER_PENALTY:
            out.append(
                Deduction(
                    code="LATE",
                    label=f"Tardanzas ({_days(late)})",
                    amount=round_money(base_salary * LATE_PENALTY_RATE * (late // LATE_DAYS_PER_PENALTY)),
                )
            )

        for code, label, rate in STATUTORY_DEDUCTIONS:
            out.append(Deduction(code=code, label=label, amount=round_money(base_salary * rate)))

        if options.include_benefits_deductions:
            for b in benefit_lines:
                out.append(
                    Deduction(
                        code=f"BEN_{b.benefit_type.upper()}",
                        label=f"{b.benefit_name} (Beneficio)",
                        amount=b.cost_to_employee,
                    )
                )

        return out

    def employer_contributions(
        self, *, base_salary: float, company_lines: Sequence[EmployeeBenefitAssignment]
    ) -> list[EmployerContribution]:
        out = [
            EmployerContribution(code=code, label=label, percentage=percentage, amount=round_money(base_salary * rate))
            for code, label, percentage, rate in EMPLOYER_CONTRIBUTIONS
        ]
        for b in company_lines:
            out.append(
                EmployerContribution(
                    code=f"BCOST_{b.benefit_type.upper()}",
                    label=f"{b.benefit_name} (Costo Empresa)",
                    percentage=0,
                    amount=b.cost_to_company,
                )
            )
        return out
