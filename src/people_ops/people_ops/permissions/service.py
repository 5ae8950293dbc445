from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Optional, Sequence

from ..common.validators import require_non_empty
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import (
    ALL_PERMISSIONS,
    ROLE_DESCRIPTIONS,
    ROLE_PERMISSIONS,
    Identity,
    RoleDefinition,
    is_predefined_role,
    is_valid_permission,
)
from .repository import RoleRepository
from .resolver import effective_permissions, has_permission

logger = logging.getLogger(__name__)


def _predefined(name: str) -> RoleDefinition:
    return RoleDefinition(
        name=name,
        description=ROLE_DESCRIPTIONS.get(name, "Rol del sistema"),
        permissions=ROLE_PERMISSIONS[name],
        is_custom=False,
    )


def _check_permissions(permissions: Sequence[str]) -> tuple[str, ...]:
    if isinstance(permissions, str) or not isinstance(permissions, (list, tuple)):
        raise ValidationError("permissions must be a list")
    invalid = [p for p in permissions if not isinstance(p, str) or not is_valid_permission(p)]
    if invalid:
        raise ValidationError(f"Invalid permissions: {', '.join(map(str, invalid))}")
    return tuple(permissions)


class PermissionService:
    """Tenant custom roles plus the fixed system roles."""

    def __init__(self, roles: RoleRepository):
        self._roles = roles

    def list_all_permissions(self) -> list[str]:
        return list(ALL_PERMISSIONS)

    def list_roles(self, tenant_id: str) -> list[RoleDefinition]:
        predefined = [_predefined(name) for name in ROLE_PERMISSIONS]
        return predefined + list(self._roles.list_custom(tenant_id))

    def get_role(self, tenant_id: str, name: str) -> RoleDefinition:
        custom = self._roles.get_by_name(tenant_id, name)
        if custom:
            return custom
        if name in ROLE_PERMISSIONS:
            return _predefined(name)
        raise NotFoundError("Role not found")

    def create_role(
        self, *, tenant_id: str, name: str, permissions: Sequence[str], description: Optional[str] = None
    ) -> RoleDefinition:
        name = require_non_empty(name, "name")
        if is_predefined_role(name):
            raise ValidationError(f'Cannot create a role named "{name}": it is a predefined system role')
        perms = _check_permissions(permissions)
        if self._roles.get_by_name(tenant_id, name):
            raise ValidationError(f'Role "{name}" already exists')

        role = RoleDefinition(
            role_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            name=name,
            description=description,
            permissions=perms,
            is_custom=True,
        )
        self._roles.create(role)
        logger.info("role %s created", name, extra={"tenant_id": tenant_id})
        return role

    def update_role(
        self,
        *,
        tenant_id: str,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permissions: Optional[Sequence[str]] = None,
    ) -> RoleDefinition:
        role = self._require_custom(tenant_id, role_id, action="edit")
        changes: dict = {}
        if name is not None:
            name = require_non_empty(name, "name")
            if is_predefined_role(name):
                raise ValidationError(f'Cannot rename a role to "{name}": it is a predefined system role')
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if permissions is not None:
            changes["permissions"] = _check_permissions(permissions)

        updated = replace(role, **changes)
        self._roles.update(updated)
        return updated

    def delete_role(self, *, tenant_id: str, role_id: str) -> None:
        self._require_custom(tenant_id, role_id, action="delete")
        self._roles.delete(tenant_id, role_id)
        logger.info("role %s deleted", role_id, extra={"tenant_id": tenant_id})

    def _require_custom(self, tenant_id: str, role_id: str, *, action: str) -> RoleDefinition:
        if is_predefined_role(role_id):
            raise AuthorizationError(f"Cannot {action} a predefined system role")
        role = self._roles.get_by_id(tenant_id, role_id)
        if not role:
            raise NotFoundError("Role not found")
        if not role.is_custom:
            raise AuthorizationError(f"Cannot {action} a predefined system role")
        return role

    def custom_permissions_for(self, identity: Identity) -> tuple[str, ...]:
        """A custom role's grants replace whatever the session carried."""
        if identity.role not in ROLE_PERMISSIONS:
            custom = self._roles.get_by_name(identity.tenant_id, identity.role)
            if custom:
                return custom.permissions
        return identity.permissions

    def user_permissions(self, identity: Identity) -> list[str]:
        return effective_permissions(identity.role, self.custom_permissions_for(identity))

    def check(self, identity: Identity, required: str) -> bool:
        return has_permission(identity.role, self.custom_permissions_for(identity), required)

    def require(self, identity: Identity, required: str) -> None:
        if not self.check(identity, required):
            raise AuthorizationError(f"Permission required: {required}")
