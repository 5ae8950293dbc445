from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..common.validators import require_bool, require_number
from ..core.constants import DEFAULT_ABSENCE_DEDUCTION_RATE, DEFAULT_OVERTIME_RATE
from ..core.enums import ConceptType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Concept:
    """An earning line on the payslip."""

    code: str
    label: str
    type: ConceptType
    amount: float
    taxable: bool

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "label": self.label,
            "type": self.type.value,
            "amount": self.amount,
            "taxable": self.taxable,
        }


@dataclass(frozen=True)
class Deduction:
    """A withholding line on the payslip."""

    code: str
    label: str
    amount: float

    def to_dict(self) -> dict:
        return {"code": self.code, "label": self.label, "amount": self.amount}


@dataclass(frozen=True)
class AutoCalcSummary:
    total_concepts: float
    total_deductions: float
    total_hours_worked: float
    total_overtime_hours: float
    days_absent: int
    days_late: int

    def to_dict(self) -> dict:
        return {
            "totalConcepts": self.total_concepts,
            "totalDeductions": self.total_deductions,
            "totalHoursWorked": self.total_hours_worked,
            "totalOvertimeHours": self.total_overtime_hours,
            "daysAbsent": self.days_absent,
            "daysLate": self.days_late,
        }


@dataclass(frozen=True)
class AutoCalcResult:
    concepts: list[Concept]
    deductions: list[Deduction]
    summary: AutoCalcSummary

    def to_dict(self) -> dict:
        return {
            "concepts": [c.to_dict() for c in self.concepts],
            "deductions": [d.to_dict() for d in self.deductions],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class AutoCalcOptions:
    """Switches for the optional payroll lines. Statutory deductions are never optional."""

    include_overtime: bool = True
    include_presenteeism: bool = True
    include_absence_deductions: bool = True
    include_benefits_deductions: bool = True
    overtime_rate: float = DEFAULT_OVERTIME_RATE
    absence_deduction_rate: float = DEFAULT_ABSENCE_DEDUCTION_RATE

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AutoCalcOptions":
        """Build from the camelCase JSON shape used by the payroll routes."""
        data = data or {}
        defaults = cls()

        def flag(key: str, default: bool) -> bool:
            return require_bool(data.get(key, default), f"options.{key}")

        def rate(key: str, default: float) -> float:
            value = require_number(data.get(key, default), f"options.{key}")
            if value < 0:
                raise ValidationError(f"options.{key} must be a non-negative number")
            return value

        return cls(
            include_overtime=flag("includeOvertime", defaults.include_overtime),
            include_presenteeism=flag("includePresenteeism", defaults.include_presenteeism),
            include_absence_deductions=flag("includeAbsenceDeductions", defaults.include_absence_deductions),
            include_benefits_deductions=flag("includeBenefitsDeductions", defaults.include_benefits_deductions),
            overtime_rate=rate("overtimeRate", defaults.overtime_rate),
            absence_deduction_rate=rate("absenceDeductionRate", defaults.absence_deduction_rate),
        )


@dataclass(frozen=True)
class EmployerContribution:
    code: str
    label: str
    percentage: float
    amount: float

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "label": self.label,
            "percentage": self.percentage,
            "amount": self.amount,
        }


@dataclass(frozen=True)
class EmployerContributionResult:
    contributions: list[EmployerContribution]
    total: float

    def to_dict(self) -> dict:
        return {
            "contributions": [c.to_dict() for c in self.contributions],
            "total": self.total,
        }


@dataclass(frozen=True)
class TotalEmployeeCost:
    """Full employer-side cost of one employee for one period."""

    base_salary: float
    concepts: float
    employer_contributions: float
    total_cost: float
    net_pay: float
    auto_calc: AutoCalcResult
    employer: EmployerContributionResult

    def to_dict(self) -> dict:
        return {
            "baseSalary": self.base_salary,
            "concepts": self.concepts,
            "employerContributions": self.employer_contributions,
            "totalCost": self.total_cost,
            "breakdown": {
                "payroll": {
                    "baseSalary": self.base_salary,
                    "concepts": [c.to_dict() for c in self.auto_calc.concepts],
                    "conceptsTotal": self.concepts,
                    "deductions": [d.to_dict() for d in self.auto_calc.deductions],
                    "deductionsTotal": self.auto_calc.summary.total_deductions,
                    "netPay": self.net_pay,
                },
                "employer": {
                    "contributions": [c.to_dict() for c in self.employer.contributions],
                    "contributionsTotal": self.employer_contributions,
                },
            },
        }


@dataclass(frozen=True)
class BatchLine:
    employee_id: str
    employee_name: str
    base_salary: float
    auto_calc: Optional[AutoCalcResult] = None
    employer: Optional[EmployerContributionResult] = None
    net_pay: Optional[float] = None
    total_cost: Optional[float] = None

    def to_dict(self) -> dict:
        out: dict = {
            "employeeId": self.employee_id,
            "employeeName": self.employee_name,
            "baseSalary": self.base_salary,
        }
        if self.auto_calc is not None:
            out["autoCalc"] = self.auto_calc.to_dict()
        if self.employer is not None:
            out["employerContributions"] = self.employer.to_dict()
        if self.net_pay is not None:
            out["netPay"] = self.net_pay
        if self.total_cost is not None:
            out["totalCost"] = self.total_cost
        return out


@dataclass(frozen=True)
class BatchError:
    employee_id: str
    message: str

    def to_dict(self) -> dict:
        return {"employeeId": self.employee_id, "message": self.message}


@dataclass(frozen=True)
class BatchResult:
    period: str
    lines: list[BatchLine] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)
    total_base_salary: float = 0.0
    total_net_pay: float = 0.0
    total_cost: float = 0.0

    def to_dict(self) -> dict:
        return {
            "period": self.period,
            "lines": [line.to_dict() for line in self.lines],
            "errors": [e.to_dict() for e in self.errors],
            "totals": {
                "baseSalary": self.total_base_salary,
                "netPay": self.total_net_pay,
                "totalCost": self.total_cost,
            },
        }
