from functools import wraps
from flask import g, jsonify

from models.user import ROLE_ADMIN


def current_role():
    if getattr(g, "user", None) is None:
        return None
    return getattr(g, "role", None)


def has_role(role_name: str) -> bool:
    return current_role() == role_name


def is_admin() -> bool:
    return has_role(ROLE_ADMIN)


def require_roles(*role_names: str):
    """
    Usage: @require_roles(ROLE_ADMIN)

    401 without an identity, 403 when the caller's role is not listed.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            role = current_role()
            if role is None:
                return jsonify(error="Authentication required"), 401
            if role not in role_names:
                return jsonify(error="Forbidden", required=list(role_names)), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
