from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

WILDCARD = "*"

# Catalog of every grantable permission, "module.action".
ALL_PERMISSIONS: tuple[str, ...] = (
    "candidates.create", "candidates.read", "candidates.update", "candidates.delete",
    "employees.create", "employees.read", "employees.update", "employees.delete",
    "employees.export", "employees.import",
    "vacancies.create", "vacancies.read", "vacancies.update", "vacancies.delete",
    "interviews.create", "interviews.read", "interviews.update", "interviews.delete",
    "leaves.create", "leaves.read", "leaves.update", "leaves.delete", "leaves.approve",
    "attendance.create", "attendance.read", "attendance.update", "attendance.delete",
    "attendance.manage", "attendance.export",
    "payroll.create", "payroll.read", "payroll.update", "payroll.delete", "payroll.export",
    "schedules.create", "schedules.read", "schedules.update", "schedules.delete",
    "clients.create", "clients.read", "clients.update", "clients.delete",
    "reports.read", "reports.export",
    "settings.read", "settings.manage",
    "users.create", "users.read", "users.update", "users.delete", "users.manage",
    "audit.read",
    "evaluations.create", "evaluations.read", "evaluations.update", "evaluations.approve",
    "evaluations.manage",
    "workflows.read", "workflows.manage",
)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "admin": (WILDCARD,),
    "hr": (
        "candidates.create", "candidates.read", "candidates.update", "candidates.delete",
        "employees.create", "employees.read", "employees.update", "employees.delete",
        "employees.export", "employees.import",
        "vacancies.create", "vacancies.read", "vacancies.update", "vacancies.delete",
        "interviews.create", "interviews.read", "interviews.update", "interviews.delete",
        "leaves.create", "leaves.read", "leaves.update", "leaves.delete", "leaves.approve",
        "attendance.create", "attendance.read", "attendance.update", "attendance.delete",
        "attendance.manage", "attendance.export",
        "payroll.create", "payroll.read", "payroll.update", "payroll.delete", "payroll.export",
        "schedules.create", "schedules.read", "schedules.update", "schedules.delete",
        "clients.create", "clients.read", "clients.update", "clients.delete",
        "reports.read", "reports.export",
        "audit.read",
        "evaluations.create", "evaluations.read", "evaluations.update", "evaluations.approve",
        "evaluations.manage",
        "workflows.read", "workflows.manage",
    ),
    "employee": (
        "employees.read",
        "leaves.create", "leaves.read",
        "attendance.create", "attendance.read",
        "payroll.read",
        "schedules.read",
        "evaluations.read", "evaluations.update",
        "workflows.read",
    ),
    "manager": (
        "candidates.create", "candidates.read", "candidates.update",
        "employees.read", "employees.update",
        "vacancies.create", "vacancies.read", "vacancies.update",
        "interviews.create", "interviews.read", "interviews.update",
        "leaves.read", "leaves.approve",
        "attendance.read", "attendance.manage",
        "payroll.read",
        "schedules.read", "schedules.update",
        "clients.read",
        "reports.read", "reports.export",
        "evaluations.read", "evaluations.update", "evaluations.approve",
        "workflows.read",
    ),
    "recruiter": (
        "candidates.create", "candidates.read", "candidates.update", "candidates.delete",
        "vacancies.create", "vacancies.read", "vacancies.update",
        "interviews.create", "interviews.read", "interviews.update", "interviews.delete",
        "clients.read",
    ),
}

ROLE_DESCRIPTIONS: dict[str, str] = {
    "admin": "Administrador con acceso total al sistema",
    "hr": "Recursos Humanos - Gestión completa de empleados, candidatos y procesos",
    "employee": "Empleado - Acceso limitado a su información personal",
    "manager": "Gerente - Gestión de equipos y aprobaciones",
    "recruiter": "Reclutador - Gestión de candidatos y vacantes",
}


def is_predefined_role(name: str) -> bool:
    return (name or "").lower() in ROLE_PERMISSIONS


def is_valid_permission(permission: str) -> bool:
    return permission == WILDCARD or permission in ALL_PERMISSIONS or permission.endswith(".*")


@dataclass(frozen=True)
class RoleDefinition:
    """A predefined role, or a tenant's custom role when ``is_custom``."""

    name: str
    permissions: tuple[str, ...]
    description: Optional[str] = None
    is_custom: bool = True
    role_id: Optional[str] = None
    tenant_id: Optional[str] = None

    def to_dict(self) -> dict:
        out = {
            "name": self.name,
            "description": self.description,
            "permissions": list(self.permissions),
            "isCustom": self.is_custom,
        }
        if self.role_id is not None:
            out["id"] = self.role_id
        return out


@dataclass(frozen=True)
class Identity:
    """Caller attached to a request: who, in which tenant, with which role."""

    user_id: str
    tenant_id: str
    role: str
    name: str = ""
    permissions: tuple[str, ...] = field(default_factory=tuple)
