from functools import wraps
from flask import g

from utils.errors import AuthenticationRequired, Forbidden

# ADMIN passes every role check
SUPERUSER_ROLE = "ADMIN"
STAFF_ROLES = ("STAFF", "ADMIN")

def has_role(*role_names: str) -> bool:
    user = getattr(g, "user", None)
    if not user:
        return False
    user_roles = user.role_names()
    return SUPERUSER_ROLE in user_roles or bool(user_roles.intersection(role_names))

def is_staff() -> bool:
    return has_role(*STAFF_ROLES)

def require_roles(*role_names: str):
    """
    Usage: @require_roles("STAFF", "ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if getattr(g, "user", None) is None:
                raise AuthenticationRequired()

            if not has_role(*role_names):
                raise Forbidden()

            return fn(*args, **kwargs)
        return wrapper
    return decorator
