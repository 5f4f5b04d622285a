from typing import Iterable

from fastapi import Depends, Request

from .errors import AuthorizationError
from .models.user_model import User, UserRole
from .security import current_active_user


def ensure_role(user, allowed_roles: Iterable[UserRole]):
    """
    Check an authenticated principal against a set of allowed roles.

    Works on anything exposing a ``role`` attribute so it can be reused outside
    of a request. Raises AuthorizationError when the role is not allowed.
    """
    allowed = set(allowed_roles)
    role = getattr(user, "role", None)
    if role not in allowed:
        raise AuthorizationError("Operation not permitted")
    return user


def require_roles(*roles: UserRole):
    async def current_user_has_role(user: User = Depends(current_active_user)):
        return ensure_role(user, roles)
    return current_user_has_role


current_admin = require_roles(UserRole.ADMIN)
current_teacher = require_roles(UserRole.TEACHER)
current_student = require_roles(UserRole.STUDENT)
current_staff = require_roles(UserRole.ADMIN, UserRole.TEACHER)


async def users_router_permission(request: Request, user: User = Depends(current_active_user)):
    method = request.method.upper()
    # Admin-only methods
    if method in ("POST", "PUT", "PATCH", "DELETE"):
        ensure_role(user, [UserRole.ADMIN])
    return True
