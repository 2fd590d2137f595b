from functools import wraps
from flask import g, jsonify

from services.records import Actor, Role

def current_actor() -> Actor:
    """The signed-in user as the core sees them: id plus acting role."""
    user = g.user
    return Actor(id=user.id, role=Role(user.primary_role))

def require_roles(*role_names: str):
    """
    Usage: @require_roles("TEACHER", "ADMIN")
    ADMIN passes every check.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = user.role_names
            if "ADMIN" not in user_roles and not user_roles.intersection(role_names):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
