from __future__ import annotations

from functools import wraps
from typing import Any, Optional

from flask import request, session

from ..core.exceptions import AuthenticationError, ValidationError
from ..permissions.model import Identity


def current_identity() -> Identity:
    """Caller stored in the Flask session at login."""
    if "user_id" not in session or "tenant_id" not in session:
        raise AuthenticationError("Authentication required")
    return Identity(
        user_id=str(session["user_id"]),
        tenant_id=str(session["tenant_id"]),
        role=str(session.get("role") or ""),
        name=str(session.get("name") or ""),
        permissions=tuple(session.get("permissions") or ()),
    )


def permission_required(container, permission: str):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            container.permission_service.require(current_identity(), permission)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def int_arg(name: str, default: int) -> int:
    raw: Optional[Any] = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer") from None
    if value < 0:
        raise ValidationError(f"{name} must be >= 0")
    return value


def bool_arg(name: str) -> Optional[bool]:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.lower() in {"1", "true", "yes"}
