from __future__ import annotations

from functools import wraps
from typing import Iterable, Optional

from flask import request

from ..core.enums import Role
from .service import AuthService

ADMIN_ONLY = (Role.ADMIN,)
LECTURER_OR_ADMIN = (Role.DOSEN, Role.ADMIN)
STUDENT_OR_ADMIN = (Role.MAHASISWA, Role.ADMIN)
LECTURER_ONLY = (Role.DOSEN,)
STUDENT_ONLY = (Role.MAHASISWA,)
ANY_ROLE = tuple(Role)


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def auth_required(auth_service: AuthService, roles: Iterable[Role] = ANY_ROLE, *, allow_pending_password: bool = False):
    """Authorize the request and pass the resulting AuthContext as the view's first argument.

    Errors propagate as AuthenticationError/AuthorizationError and are
    rendered by the app-level error handlers.
    """

    roles = tuple(roles)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            ctx = auth_service.authorize(
                bearer_token(),
                roles,
                allow_pending_password=allow_pending_password,
            )
            return view(ctx, *args, **kwargs)

        return wrapper

    return decorator
