from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ...attendance.model import AttendanceTotals
from ...benefits.model import EmployeeBenefitAssignment
from ..model import AutoCalcOptions, Concept, Deduction, EmployerContribution


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll).

    Implementations are pure: they receive already-loaded attendance totals and
    benefit lines and never touch a repository.
    """

    @abstractmethod
    def concepts(
        self, *, base_salary: float, totals: AttendanceTotals, options: AutoCalcOptions
    ) -> list[Concept]:
        raise NotImplementedError

    @abstractmethod
    def deductions(
        self,
        *,
        base_salary: float,
        totals: AttendanceTotals,
        benefit_lines: Sequence[EmployeeBenefitAssignment],
        options: AutoCalcOptions,
    ) -> list[Deduction]:
        raise NotImplementedError

    @abstractmethod
    def employer_contributions(
        self, *, base_salary: float, company_lines: Sequence[EmployeeBenefitAssignment]
    ) -> list[EmployerContribution]:
        raise NotImplementedError
