from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request

from ..api.auth import bool_arg, current_identity, int_arg, json_body, permission_required
from ..common.validators import require_bool, require_number
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_TOP_PERFORMERS_LIMIT, DEFAULT_TREND_CYCLES
from ..core.enums import CycleStatus, EvaluationStatus, TemplateType
from ..core.exceptions import NotFoundError, ValidationError
from ..container import Container
from .model import EvaluationUpdate
from .repository import EvaluationFilters


def register(app: Flask, container: Container) -> None:
    can_read = permission_required(container, "evaluations.read")
    can_update = permission_required(container, "evaluations.update")
    can_approve = permission_required(container, "evaluations.approve")
    can_manage = permission_required(container, "evaluations.manage")
    can_report = permission_required(container, "reports.read")

    def _status_arg() -> Optional[EvaluationStatus]:
        raw = request.args.get("status")
        if not raw:
            return None
        try:
            return EvaluationStatus(raw)
        except ValueError:
            raise ValidationError(f"Unknown evaluation status: {raw}") from None

    def _review_fields(data: dict) -> dict:
        approved = require_bool(data.get("approved"), "approved")
        comments = data.get("comments")
        if comments is not None and not isinstance(comments, str):
            raise ValidationError("comments must be a string")
        return {"approved": approved, "comments": comments}

    @app.route("/evaluations", methods=["GET"], endpoint="evaluations_list")
    @can_read
    def list_evaluations():
        filters = EvaluationFilters(
            cycle_id=request.args.get("cycleId") or None,
            evaluated_employee_id=request.args.get("evaluatedEmployeeId") or None,
            evaluator_id=request.args.get("evaluatorId") or None,
            status=_status_arg(),
        )
        items = container.evaluation_service.list_evaluations(
            tenant_id=current_identity().tenant_id, filters=filters
        )
        return jsonify({"evaluations": [e.to_dict() for e in items], "total": len(items)})

    @app.route("/evaluations/<evaluation_id>", methods=["GET"], endpoint="evaluations_get")
    @can_read
    def get_evaluation(evaluation_id: str):
        instance = container.evaluation_service.get_evaluation(
            tenant_id=current_identity().tenant_id, evaluation_id=evaluation_id
        )
        return jsonify(instance.to_dict())

    @app.route("/evaluations/<evaluation_id>/start", methods=["POST"], endpoint="evaluations_start")
    @can_update
    def start_evaluation(evaluation_id: str):
        identity = current_identity()
        instance = container.evaluation_service.start_evaluation(
            tenant_id=identity.tenant_id, evaluation_id=evaluation_id, user_id=identity.user_id
        )
        return jsonify(instance.to_dict())

    @app.route("/evaluations/<evaluation_id>", methods=["PUT"], endpoint="evaluations_update")
    @can_update
    def update_evaluation(evaluation_id: str):
        identity = current_identity()
        instance = container.evaluation_service.update_evaluation(
            tenant_id=identity.tenant_id,
            evaluation_id=evaluation_id,
            user_id=identity.user_id,
            updates=EvaluationUpdate.from_dict(json_body()),
        )
        return jsonify(instance.to_dict())

    @app.route("/evaluations/<evaluation_id>/submit", methods=["POST"], endpoint="evaluations_submit")
    @can_update
    def submit_evaluation(evaluation_id: str):
        identity = current_identity()
        instance = container.evaluation_service.submit_evaluation(
            tenant_id=identity.tenant_id,
            evaluation_id=evaluation_id,
            user_id=identity.user_id,
            user_name=identity.name,
        )
        return jsonify(instance.to_dict())

    @app.route("/evaluations/<evaluation_id>/manager-review", methods=["POST"], endpoint="evaluations_manager_review")
    @can_approve
    def manager_review(evaluation_id: str):
        identity = current_identity()
        data = json_body()
        rating = data.get("overallRating")
        if rating is not None:
            rating = require_number(rating, "overallRating")
        instance = container.evaluation_service.manager_review(
            tenant_id=identity.tenant_id,
            evaluation_id=evaluation_id,
            manager_id=identity.user_id,
            manager_name=identity.name,
            overall_rating=rating,
            **_review_fields(data),
        )
        return jsonify(instance.to_dict())

    @app.route("/evaluations/<evaluation_id>/hr-review", methods=["POST"], endpoint="evaluations_hr_review")
    @can_approve
    def hr_review(evaluation_id: str):
        identity = current_identity()
        instance = container.evaluation_service.hr_review(
            tenant_id=identity.tenant_id,
            evaluation_id=evaluation_id,
            hr_id=identity.user_id,
            hr_name=identity.name,
            **_review_fields(json_body()),
        )
        return jsonify(instance.to_dict())

    @app.route(
        "/evaluations/employee/<employee_id>/cycle/<cycle_id>/summary",
        methods=["GET"],
        endpoint="evaluations_employee_summary",
    )
    @can_read
    def employee_summary(employee_id: str, cycle_id: str):
        summary = container.evaluation_service.employee_summary(
            tenant_id=current_identity().tenant_id, cycle_id=cycle_id, employee_id=employee_id
        )
        if summary is None:
            raise NotFoundError("No evaluations found for this employee in this cycle")
        return jsonify(summary)

    def _enum_arg(name: str, enum_cls):
        raw = request.args.get(name)
        if not raw:
            return None
        try:
            return enum_cls(raw)
        except ValueError:
            raise ValidationError(f"Unknown {name}: {raw}") from None

    @app.route("/evaluation-templates", methods=["GET"], endpoint="templates_list")
    @can_read
    def list_templates():
        templates = container.template_service.list_templates(
            tenant_id=current_identity().tenant_id,
            type=_enum_arg("type", TemplateType),
            is_active=bool_arg("isActive"),
        )
        return jsonify({"templates": [t.to_dict() for t in templates], "total": len(templates)})

    @app.route("/evaluation-templates", methods=["POST"], endpoint="templates_create")
    @can_manage
    def create_template():
        identity = current_identity()
        template = container.template_service.create_template(
            tenant_id=identity.tenant_id, user_id=identity.user_id, user_name=identity.name, data=json_body()
        )
        return jsonify(template.to_dict()), 201

    @app.route("/evaluation-templates/<template_id>", methods=["GET"], endpoint="templates_get")
    @can_read
    def get_template(template_id: str):
        template = container.template_service.get_template(
            tenant_id=current_identity().tenant_id, template_id=template_id
        )
        return jsonify(template.to_dict())

    @app.route("/evaluation-templates/<template_id>", methods=["PUT"], endpoint="templates_update")
    @can_manage
    def update_template(template_id: str):
        template = container.template_service.update_template(
            tenant_id=current_identity().tenant_id, template_id=template_id, updates=json_body()
        )
        return jsonify(template.to_dict())

    @app.route("/evaluation-templates/<template_id>", methods=["DELETE"], endpoint="templates_delete")
    @can_manage
    def delete_template(template_id: str):
        container.template_service.delete_template(tenant_id=current_identity().tenant_id, template_id=template_id)
        return jsonify({"success": True})

    @app.route("/evaluation-templates/<template_id>/toggle-status", methods=["PATCH"], endpoint="templates_toggle")
    @can_manage
    def toggle_template_status(template_id: str):
        template = container.template_service.toggle_template_status(
            tenant_id=current_identity().tenant_id, template_id=template_id
        )
        return jsonify(template.to_dict())

    @app.route("/evaluation-cycles", methods=["GET"], endpoint="cycles_list")
    @can_read
    def list_cycles():
        cycles = container.cycle_service.list_cycles(
            tenant_id=current_identity().tenant_id, status=_enum_arg("status", CycleStatus)
        )
        return jsonify({"cycles": [c.to_dict() for c in cycles], "total": len(cycles)})

    @app.route("/evaluation-cycles", methods=["POST"], endpoint="cycles_create")
    @can_manage
    def create_cycle():
        identity = current_identity()
        cycle = container.cycle_service.create_cycle(
            tenant_id=identity.tenant_id, user_id=identity.user_id, user_name=identity.name, data=json_body()
        )
        return jsonify(cycle.to_dict()), 201

    @app.route("/evaluation-cycles/<cycle_id>", methods=["GET"], endpoint="cycles_get")
    @can_read
    def get_cycle(cycle_id: str):
        cycle = container.cycle_service.get_cycle(tenant_id=current_identity().tenant_id, cycle_id=cycle_id)
        return jsonify(cycle.to_dict())

    @app.route("/evaluation-cycles/<cycle_id>", methods=["PUT"], endpoint="cycles_update")
    @can_manage
    def update_cycle(cycle_id: str):
        cycle = container.cycle_service.update_cycle(
            tenant_id=current_identity().tenant_id, cycle_id=cycle_id, updates=json_body()
        )
        return jsonify(cycle.to_dict())

    @app.route("/evaluation-cycles/<cycle_id>", methods=["DELETE"], endpoint="cycles_delete")
    @can_manage
    def delete_cycle(cycle_id: str):
        container.cycle_service.delete_cycle(tenant_id=current_identity().tenant_id, cycle_id=cycle_id)
        return jsonify({"success": True})

    @app.route("/evaluation-cycles/<cycle_id>/launch", methods=["POST"], endpoint="cycles_launch")
    @can_manage
    def launch_cycle(cycle_id: str):
        data = json_body()
        employee_ids = data.get("employeeIds")
        if employee_ids is not None and not isinstance(employee_ids, list):
            raise ValidationError("employeeIds must be a list")
        include_self = require_bool(data.get("includeSelfEvaluation", True), "includeSelfEvaluation")

        result = container.cycle_service.launch_cycle(
            tenant_id=current_identity().tenant_id,
            cycle_id=cycle_id,
            employee_ids=[str(e) for e in employee_ids] if employee_ids else None,
            include_self_evaluation=include_self,
        )
        return jsonify(
            {
                "cycle": result["cycle"].to_dict(),
                "assignedCount": result["assignedCount"],
                "employeeCount": result["employeeCount"],
            }
        )

    @app.route("/evaluation-cycles/<cycle_id>/analytics", methods=["GET"], endpoint="cycles_analytics")
    @can_report
    def cycle_analytics(cycle_id: str):
        return jsonify(
            container.evaluation_analytics_service.cycle_analytics(
                tenant_id=current_identity().tenant_id, cycle_id=cycle_id
            )
        )

    @app.route("/evaluation-cycles/<cycle_id>/analytics/departments", methods=["GET"], endpoint="cycles_departments")
    @can_report
    def department_comparison(cycle_id: str):
        departments = container.evaluation_analytics_service.department_comparison(
            tenant_id=current_identity().tenant_id, cycle_id=cycle_id
        )
        return jsonify({"departments": departments})

    @app.route(
        "/evaluation-cycles/<cycle_id>/analytics/top-performers", methods=["GET"], endpoint="cycles_top_performers"
    )
    @can_report
    def top_performers(cycle_id: str):
        performers = container.evaluation_analytics_service.top_performers(
            tenant_id=current_identity().tenant_id,
            cycle_id=cycle_id,
            limit=int_arg("limit", DEFAULT_TOP_PERFORMERS_LIMIT),
        )
        return jsonify({"topPerformers": performers})

    @app.route("/evaluation-cycles/<cycle_id>/analytics/competencies", methods=["GET"], endpoint="cycles_competencies")
    @can_report
    def competency_analysis(cycle_id: str):
        return jsonify(
            container.evaluation_analytics_service.competency_analysis(
                tenant_id=current_identity().tenant_id, cycle_id=cycle_id
            )
        )

    @app.route("/employees/<employee_id>/evaluation-history", methods=["GET"], endpoint="employee_evaluation_history")
    @can_read
    def employee_history(employee_id: str):
        history = container.evaluation_analytics_service.employee_history(
            tenant_id=current_identity().tenant_id,
            employee_id=employee_id,
            limit=int_arg("limit", DEFAULT_HISTORY_LIMIT),
        )
        return jsonify({"history": history})

    @app.route("/evaluation-analytics/score-trends", methods=["GET"], endpoint="evaluation_score_trends")
    @can_report
    def score_trends():
        trends = container.evaluation_analytics_service.score_trends(
            tenant_id=current_identity().tenant_id,
            employee_id=request.args.get("employeeId") or None,
            department=request.args.get("department") or None,
            limit=int_arg("limit", DEFAULT_TREND_CYCLES),
        )
        return jsonify({"trends": trends})
