from __future__ import annotations

from typing import Iterable, Optional

from .model import ROLE_PERMISSIONS, WILDCARD


def has_permission(role: str, custom_permissions: Optional[Iterable[str]], required: str) -> bool:
    """Check ``required`` against the role's grants and the user's own grants.

    Grants match when either set holds ``*``, the exact permission, or the
    ``module.*`` wildcard for the permission's module.
    """
    custom = set(custom_permissions or ())
    role_grants = set(ROLE_PERMISSIONS.get(role, ()))

    if WILDCARD in custom or required in custom:
        return True
    if WILDCARD in role_grants or required in role_grants:
        return True

    module_wildcard = f"{required.split('.', 1)[0]}.*"
    return module_wildcard in custom or module_wildcard in role_grants


def effective_permissions(role: str, custom_permissions: Optional[Iterable[str]] = None) -> list[str]:
    """Role grants followed by custom grants, without duplicates, first occurrence wins."""
    seen: dict[str, None] = {}
    for p in (*ROLE_PERMISSIONS.get(role, ()), *(custom_permissions or ())):
        seen.setdefault(p, None)
    return list(seen)
