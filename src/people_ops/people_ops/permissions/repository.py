from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import RoleDefinition


class RoleRepository(Protocol):
    def list_custom(self, tenant_id: str) -> Sequence[RoleDefinition]:
        raise NotImplementedError

    def get_by_id(self, tenant_id: str, role_id: str) -> Optional[RoleDefinition]:
        raise NotImplementedError

    def get_by_name(self, tenant_id: str, name: str) -> Optional[RoleDefinition]:
        raise NotImplementedError

    def create(self, role: RoleDefinition) -> RoleDefinition:
        raise NotImplementedError

    def update(self, role: RoleDefinition) -> None:
        raise NotImplementedError

    def delete(self, tenant_id: str, role_id: str) -> None:
        raise NotImplementedError
