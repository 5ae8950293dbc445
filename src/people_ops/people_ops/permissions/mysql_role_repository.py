from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from .model import RoleDefinition
from .repository import RoleRepository

_COLUMNS = "role_id, tenant_id, name, description, permissions"


def _row_to_role(r: dict) -> RoleDefinition:
    return RoleDefinition(
        role_id=str(r["role_id"]),
        tenant_id=str(r["tenant_id"]),
        name=r["name"],
        description=r.get("description"),
        permissions=tuple(from_json(r.get("permissions"), [])),
        is_custom=True,
    )


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_custom(self, tenant_id: str) -> Sequence[RoleDefinition]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM custom_roles WHERE tenant_id=%s ORDER BY name", (tenant_id,))
            return [_row_to_role(r) for r in fetchall(cur)]

    def get_by_id(self, tenant_id: str, role_id: str) -> Optional[RoleDefinition]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM custom_roles WHERE tenant_id=%s AND role_id=%s",
                (tenant_id, role_id),
            )
            r = fetchone(cur)
            return _row_to_role(r) if r else None

    def get_by_name(self, tenant_id: str, name: str) -> Optional[RoleDefinition]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM custom_roles WHERE tenant_id=%s AND name=%s",
                (tenant_id, name),
            )
            r = fetchone(cur)
            return _row_to_role(r) if r else None

    def create(self, role: RoleDefinition) -> RoleDefinition:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO custom_roles(role_id, tenant_id, name, description, permissions)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (role.role_id, role.tenant_id, role.name, role.description, to_json(list(role.permissions))),
            )
        return role

    def update(self, role: RoleDefinition) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE custom_roles
                SET name=%s, description=%s, permissions=%s
                WHERE tenant_id=%s AND role_id=%s
                """,
                (role.name, role.description, to_json(list(role.permissions)), role.tenant_id, role.role_id),
            )

    def delete(self, tenant_id: str, role_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM custom_roles WHERE tenant_id=%s AND role_id=%s", (tenant_id, role_id))
