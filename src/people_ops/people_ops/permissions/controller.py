from __future__ import annotations

from flask import Flask, jsonify

from ..api.auth import current_identity, json_body, permission_required
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    can_read = permission_required(container, "users.read")
    can_manage = permission_required(container, "users.manage")

    def _permissions_field(data: dict, *, required: bool):
        perms = data.get("permissions")
        if perms is None and not required:
            return None
        if not isinstance(perms, list) or not all(isinstance(p, str) for p in perms):
            raise ValidationError("permissions must be a list of strings")
        return perms

    @app.route("/permissions", methods=["GET"], endpoint="permissions_all")
    @can_read
    def all_permissions():
        return jsonify({"permissions": container.permission_service.list_all_permissions()})

    @app.route("/permissions/me", methods=["GET"], endpoint="permissions_me")
    def my_permissions():
        identity = current_identity()
        return jsonify(
            {
                "role": identity.role,
                "permissions": container.permission_service.user_permissions(identity),
            }
        )

    @app.route("/roles", methods=["GET"], endpoint="roles_list")
    @can_read
    def list_roles():
        roles = container.permission_service.list_roles(current_identity().tenant_id)
        return jsonify({"roles": [r.to_dict() for r in roles]})

    @app.route("/roles/<name>", methods=["GET"], endpoint="roles_get")
    @can_read
    def get_role(name: str):
        return jsonify(container.permission_service.get_role(current_identity().tenant_id, name).to_dict())

    @app.route("/roles", methods=["POST"], endpoint="roles_create")
    @can_manage
    def create_role():
        data = json_body()
        role = container.permission_service.create_role(
            tenant_id=current_identity().tenant_id,
            name=str(data.get("name") or ""),
            permissions=_permissions_field(data, required=True),
            description=data.get("description"),
        )
        return jsonify(role.to_dict()), 201

    @app.route("/roles/<role_id>", methods=["PUT"], endpoint="roles_update")
    @can_manage
    def update_role(role_id: str):
        data = json_body()
        role = container.permission_service.update_role(
            tenant_id=current_identity().tenant_id,
            role_id=role_id,
            name=data.get("name"),
            description=data.get("description"),
            permissions=_permissions_field(data, required=False),
        )
        return jsonify(role.to_dict())

    @app.route("/roles/<role_id>", methods=["DELETE"], endpoint="roles_delete")
    @can_manage
    def delete_role(role_id: str):
        container.permission_service.delete_role(tenant_id=current_identity().tenant_id, role_id=role_id)
        return jsonify({"success": True})
