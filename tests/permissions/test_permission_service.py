from __future__ import annotations

import pytest

from src.people_ops.people_ops.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.people_ops.people_ops.permissions.model import Identity, RoleDefinition
from src.people_ops.people_ops.permissions.resolver import effective_permissions, has_permission
from src.people_ops.people_ops.permissions.service import PermissionService
from tests.fakes import InMemoryRoles


def test_admin_wildcard_grants_everything():
    assert has_permission("admin", [], "payroll.delete")
    assert has_permission("employee", ["*"], "settings.manage")


def test_exact_and_module_wildcard():
    assert has_permission("employee", [], "payroll.read")
    assert not has_permission("employee", [], "payroll.create")
    assert has_permission("employee", ["payroll.*"], "payroll.create")
    assert not has_permission("employee", ["payroll.*"], "reports.read")


def test_unknown_role_relies_on_custom_grants():
    assert not has_permission("auditor", None, "audit.read")
    assert has_permission("auditor", ["audit.read"], "audit.read")


def test_effective_permissions_keep_first_occurrence():
    perms = effective_permissions("employee", ["payroll.read", "reports.read"])
    assert perms.count("payroll.read") == 1
    assert perms[-1] == "reports.read"
    assert effective_permissions("nobody") == []


def _service(*roles):
    return PermissionService(InMemoryRoles(roles))


def test_create_custom_role():
    svc = _service()
    role = svc.create_role(tenant_id="t1", name="auditor", permissions=["audit.read", "reports.*"])

    assert role.is_custom
    assert svc.get_role("t1", "auditor") == role
    assert [r.name for r in svc.list_roles("t1")][-1] == "auditor"
    assert svc.get_role("t1", "hr").is_custom is False


@pytest.mark.parametrize(
    "name, permissions",
    [
        ("Admin", ["audit.read"]),
        ("auditor", ["audit.nope"]),
        ("auditor", "audit.read"),
        ("  ", ["audit.read"]),
    ],
)
def test_create_role_rejects_bad_input(name, permissions):
    with pytest.raises(ValidationError):
        _service().create_role(tenant_id="t1", name=name, permissions=permissions)


def test_create_role_rejects_duplicate_name():
    svc = _service()
    svc.create_role(tenant_id="t1", name="auditor", permissions=[])
    with pytest.raises(ValidationError):
        svc.create_role(tenant_id="t1", name="auditor", permissions=[])
    # other tenants have their own namespace
    svc.create_role(tenant_id="t2", name="auditor", permissions=[])


def test_update_and_delete_custom_role():
    existing = RoleDefinition(role_id="r1", tenant_id="t1", name="auditor", permissions=("audit.read",))
    svc = _service(existing)

    updated = svc.update_role(tenant_id="t1", role_id="r1", permissions=["audit.read", "reports.read"])
    assert updated.permissions == ("audit.read", "reports.read")
    assert updated.name == "auditor"

    svc.delete_role(tenant_id="t1", role_id="r1")
    with pytest.raises(NotFoundError):
        svc.get_role("t1", "auditor")


def test_predefined_roles_are_read_only():
    svc = _service()
    with pytest.raises(AuthorizationError):
        svc.update_role(tenant_id="t1", role_id="hr", description="x")
    with pytest.raises(AuthorizationError):
        svc.delete_role(tenant_id="t1", role_id="admin")
    with pytest.raises(NotFoundError):
        svc.delete_role(tenant_id="t1", role_id="missing")


def test_custom_role_grants_replace_session_permissions():
    svc = _service(RoleDefinition(role_id="r1", tenant_id="t1", name="auditor", permissions=("audit.read",)))
    user = Identity(user_id="u1", tenant_id="t1", role="auditor", permissions=("payroll.read",))

    assert svc.check(user, "audit.read")
    assert not svc.check(user, "payroll.read")
    with pytest.raises(AuthorizationError):
        svc.require(user, "payroll.read")
    assert svc.user_permissions(user) == ["audit.read"]
