from __future__ import annotations

from flask import Flask, jsonify

from ..api.auth import current_identity, json_body, permission_required
from ..common.validators import require_bool, require_number
from ..core.exceptions import ValidationError
from ..container import Container
from .model import AutoCalcOptions


def register(app: Flask, container: Container) -> None:
    can_read = permission_required(container, "payroll.read")
    can_create = permission_required(container, "payroll.create")

    def _employee_request(data: dict) -> dict:
        base_salary = require_number(data.get("baseSalary"), "baseSalary")
        return dict(
            tenant_id=current_identity().tenant_id,
            employee_id=str(data.get("employeeId") or ""),
            period=str(data.get("period") or ""),
            base_salary=base_salary,
        )

    @app.route("/payrolls/auto-calc", methods=["POST"], endpoint="payroll_auto_calc")
    @can_read
    def auto_calc():
        data = json_body()
        result = container.payroll_auto_calc_service.calculate_payroll_concepts(
            **_employee_request(data), options=AutoCalcOptions.from_dict(data.get("options"))
        )
        return jsonify(result.to_dict())

    @app.route("/payrolls/employer-contributions", methods=["POST"], endpoint="payroll_employer_contributions")
    @can_read
    def employer_contributions():
        result = container.payroll_auto_calc_service.calculate_employer_contributions(
            **_employee_request(json_body())
        )
        return jsonify(result.to_dict())

    @app.route("/payrolls/total-cost", methods=["POST"], endpoint="payroll_total_cost")
    @can_read
    def total_cost():
        result = container.payroll_auto_calc_service.calculate_total_employee_cost(**_employee_request(json_body()))
        return jsonify(result.to_dict())

    @app.route("/payrolls/batch", methods=["POST"], endpoint="payroll_batch")
    @can_create
    def batch():
        data = json_body()
        employee_ids = data.get("employeeIds")
        if employee_ids is not None and not isinstance(employee_ids, list):
            raise ValidationError("employeeIds must be a list")
        include_auto_calc = require_bool(data.get("includeAutoCalc", True), "includeAutoCalc")

        result = container.payroll_batch_service.run(
            tenant_id=current_identity().tenant_id,
            period=str(data.get("period") or ""),
            employee_ids=[str(e) for e in employee_ids] if employee_ids else None,
            include_auto_calc=include_auto_calc,
            options=AutoCalcOptions.from_dict(data.get("options")),
        )
        return jsonify(result.to_dict())
