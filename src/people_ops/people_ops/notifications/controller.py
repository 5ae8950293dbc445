from __future__ import annotations

from flask import Flask, jsonify, request

from ..api.auth import bool_arg, current_identity, int_arg, json_body, permission_required
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_WORKFLOW_PAGE_SIZE
from ..core.enums import NotificationType, Priority, WorkflowType
from ..core.exceptions import ValidationError
from ..container import Container
from .model import NewWorkflowStep


def _enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}: {value}") from None


def register(app: Flask, container: Container) -> None:
    can_read_workflows = permission_required(container, "workflows.read")
    can_manage_workflows = permission_required(container, "workflows.manage")
    can_notify = permission_required(container, "users.manage")

    @app.route("/notifications", methods=["GET"], endpoint="notifications_list")
    def list_notifications():
        identity = current_identity()
        result = container.notification_service.list_for_user(
            tenant_id=identity.tenant_id,
            user_id=identity.user_id,
            is_read=bool_arg("isRead"),
            category=request.args.get("category") or None,
            limit=int_arg("limit", DEFAULT_WORKFLOW_PAGE_SIZE),
            skip=int_arg("skip", 0),
        )
        result["notifications"] = [n.to_dict() for n in result["notifications"]]
        return jsonify(result)

    @app.route("/notifications/<notification_id>/read", methods=["PATCH"], endpoint="notifications_mark_read")
    def mark_read(notification_id: str):
        identity = current_identity()
        container.notification_service.mark_read(
            tenant_id=identity.tenant_id, user_id=identity.user_id, notification_id=notification_id
        )
        return jsonify({"success": True})

    @app.route("/notifications/read-all", methods=["PATCH"], endpoint="notifications_mark_all_read")
    def mark_all_read():
        identity = current_identity()
        count = container.notification_service.mark_all_read(tenant_id=identity.tenant_id, user_id=identity.user_id)
        return jsonify({"success": True, "count": count})

    @app.route("/notifications", methods=["POST"], endpoint="notifications_create")
    @can_notify
    def create_notification():
        data = json_body()
        variables = data.get("variables")
        if variables is not None and not isinstance(variables, dict):
            raise ValidationError("variables must be an object")
        channels = data.get("channels") or ["in-app"]
        if not isinstance(channels, list):
            raise ValidationError("channels must be a list")

        notification = container.notification_service.create_notification(
            tenant_id=current_identity().tenant_id,
            user_id=str(data.get("userId") or ""),
            user_name=str(data.get("userName") or ""),
            template_key=data.get("templateKey"),
            variables=variables,
            title=data.get("title"),
            message=data.get("message"),
            type=_enum(NotificationType, data["type"], "type") if data.get("type") else None,
            priority=_enum(Priority, data["priority"], "priority") if data.get("priority") else None,
            category=data.get("category"),
            channels=channels,
            action_url=data.get("actionUrl"),
            action_label=data.get("actionLabel"),
            data=data.get("data"),
        )
        return jsonify(notification.to_dict()), 201

    @app.route("/workflows/pending", methods=["GET"], endpoint="workflows_pending")
    @can_read_workflows
    def pending_workflows():
        identity = current_identity()
        result = container.workflow_service.pending_for_user(
            tenant_id=identity.tenant_id,
            user_id=identity.user_id,
            limit=int_arg("limit", DEFAULT_WORKFLOW_PAGE_SIZE),
            skip=int_arg("skip", 0),
        )
        return jsonify({"workflows": [w.to_dict() for w in result["workflows"]], "total": result["total"]})

    @app.route("/workflows/stats", methods=["GET"], endpoint="workflows_stats")
    @can_read_workflows
    def workflow_stats():
        identity = current_identity()
        return jsonify(container.workflow_service.stats(tenant_id=identity.tenant_id, user_id=identity.user_id))

    @app.route("/workflows/<workflow_id>", methods=["GET"], endpoint="workflows_get")
    @can_read_workflows
    def get_workflow(workflow_id: str):
        workflow = container.workflow_service.get_workflow(
            tenant_id=current_identity().tenant_id, workflow_id=workflow_id
        )
        return jsonify(workflow.to_dict())

    @app.route("/workflows", methods=["POST"], endpoint="workflows_create")
    @can_read_workflows
    def create_workflow():
        identity = current_identity()
        data = json_body()
        steps = data.get("steps")
        if not isinstance(steps, list):
            raise ValidationError("steps must be a list")

        workflow = container.workflow_service.create_workflow(
            tenant_id=identity.tenant_id,
            type=_enum(WorkflowType, data.get("type") or WorkflowType.CUSTOM.value, "type"),
            name=str(data.get("name") or ""),
            description=data.get("description"),
            resource_type=str(data.get("resourceType") or ""),
            resource_id=str(data.get("resourceId") or ""),
            requested_by=identity.user_id,
            requested_by_name=identity.name,
            steps=[NewWorkflowStep.from_dict(s) for s in steps],
            priority=_enum(Priority, data.get("priority") or Priority.NORMAL.value, "priority"),
        )
        return jsonify(workflow.to_dict()), 201

    @app.route(
        "/workflows/<workflow_id>/steps/<step_id>/complete", methods=["POST"], endpoint="workflows_complete_step"
    )
    @can_read_workflows
    def complete_step(workflow_id: str, step_id: str):
        identity = current_identity()
        data = json_body()
        workflow = container.workflow_service.complete_step(
            tenant_id=identity.tenant_id,
            workflow_id=workflow_id,
            step_id=step_id,
            completed_by=identity.user_id,
            completed_by_name=identity.name,
            comments=data.get("comments"),
            data=data.get("data"),
        )
        return jsonify(workflow.to_dict())

    @app.route("/workflows/<workflow_id>/steps/<step_id>/reject", methods=["POST"], endpoint="workflows_reject_step")
    @can_read_workflows
    def reject_step(workflow_id: str, step_id: str):
        identity = current_identity()
        workflow = container.workflow_service.reject_step(
            tenant_id=identity.tenant_id,
            workflow_id=workflow_id,
            step_id=step_id,
            rejected_by=identity.user_id,
            rejected_by_name=identity.name,
            reason=str(json_body().get("reason") or ""),
        )
        return jsonify(workflow.to_dict())

    @app.route("/workflows/<workflow_id>/cancel", methods=["POST"], endpoint="workflows_cancel")
    @can_manage_workflows
    def cancel_workflow(workflow_id: str):
        identity = current_identity()
        workflow = container.workflow_service.cancel_workflow(
            tenant_id=identity.tenant_id,
            workflow_id=workflow_id,
            cancelled_by=identity.user_id,
            reason=require_non_empty(json_body().get("reason"), "reason"),
        )
        return jsonify(workflow.to_dict())

    @app.route("/workflows/reminders", methods=["POST"], endpoint="workflows_send_reminders")
    @can_manage_workflows
    def send_reminders():
        sent = container.workflow_service.send_overdue_reminders(tenant_id=current_identity().tenant_id)
        return jsonify({"sent": sent})
