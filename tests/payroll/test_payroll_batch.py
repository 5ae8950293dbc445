from __future__ import annotations

import pytest

from src.people_ops.people_ops.attendance.service import AttendanceAggregator
from src.people_ops.people_ops.benefits.service import BenefitCostResolver
from src.people_ops.people_ops.core.enums import EmployeeStatus
from src.people_ops.people_ops.core.exceptions import ValidationError
from src.people_ops.people_ops.employees.model import Employee
from src.people_ops.people_ops.payroll.batch import PayrollBatchService
from src.people_ops.people_ops.payroll.service import PayrollAutoCalcService
from tests.fakes import InMemoryAttendance, InMemoryBenefits, InMemoryEmployees


class FlakyAttendance(InMemoryAttendance):
    def list_for_employee(self, *, tenant_id, employee_id, start_date, end_date):
        if employee_id == "boom":
            raise RuntimeError("attendance store unavailable")
        return super().list_for_employee(
            tenant_id=tenant_id, employee_id=employee_id, start_date=start_date, end_date=end_date
        )


def _employee(employee_id, base_salary, **kw):
    return Employee(employee_id=employee_id, tenant_id="t1", name=employee_id.upper(), base_salary=base_salary, **kw)


def _batch(employees):
    auto_calc = PayrollAutoCalcService(
        AttendanceAggregator(FlakyAttendance()),
        BenefitCostResolver(InMemoryBenefits()),
    )
    return PayrollBatchService(InMemoryEmployees(employees), auto_calc)


def test_batch_isolates_failures_and_unknown_employees():
    svc = _batch([_employee("e1", 100000), _employee("boom", 50000)])

    result = svc.run(tenant_id="t1", period="2025-03", employee_ids=["e1", "missing", "boom"])

    assert [line.employee_id for line in result.lines] == ["e1"]
    assert [(e.employee_id, e.message) for e in result.errors] == [
        ("missing", "Employee not found"),
        ("boom", "attendance store unavailable"),
    ]
    line = result.lines[0]
    assert line.net_pay == 93000.0
    assert line.total_cost == 135110.0
    assert result.total_base_salary == 100000.0
    assert result.total_net_pay == 93000.0
    assert result.total_cost == 135110.0


def test_batch_defaults_to_active_employees():
    svc = _batch(
        [
            _employee("e1", 100000),
            _employee("e2", 50000),
            _employee("gone", 70000, status=EmployeeStatus.TERMINATED),
        ]
    )

    result = svc.run(tenant_id="t1", period="2025-03")

    assert sorted(line.employee_id for line in result.lines) == ["e1", "e2"]
    assert result.total_base_salary == 150000.0
    assert result.total_net_pay == 139500.0
    assert result.errors == []


def test_batch_without_auto_calc_lists_base_salaries_only():
    svc = _batch([_employee("e1", 100000), _employee("e2", 50000.5)])

    result = svc.run(tenant_id="t1", period="2025-03", include_auto_calc=False)

    assert all(line.auto_calc is None for line in result.lines)
    assert result.total_base_salary == 150000.5
    assert result.total_net_pay == 0
    body = result.to_dict()
    assert "autoCalc" not in body["lines"][0]
    assert body["totals"]["baseSalary"] == 150000.5


def test_batch_rejects_malformed_period():
    with pytest.raises(ValidationError):
        _batch([]).run(tenant_id="t1", period="2025-00")
