"""
Dairy Sustainability Reporting Portal
Authorization decorators.

Provides:
    - ``require_auth``: the request must carry a valid bearer token
      (parsed into ``g.current_user`` by the JWT middleware)
    - ``require_role``: the authenticated user must hold a given role

Security model:
    - Every /api/v1/* endpoint except login and health requires a token
    - Admin endpoints additionally require role ADMIN
"""

import functools
import logging

from flask import g, request

from dairy_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def current_user():
    """Return the authenticated User for this request, or None."""
    return getattr(g, "current_user", None)


def require_auth(f):
    """Decorator: reject the request with 401 unless a user is authenticated."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            reason = getattr(g, "jwt_error", None) or "Authentication required. Provide a Bearer token."
            return api_error(E.UNAUTHORIZED, reason)
        return f(*args, **kwargs)

    return decorated


def require_role(role: str):
    """
    Decorator: require an exact role.

    Usage:
        @require_auth
        @require_role("ADMIN")
        def list_users(): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user is None:
                return api_error(E.UNAUTHORIZED, "Authentication required")
            if user.role != role:
                logger.warning(
                    "Access denied: role '%s' tried to access '%s' endpoint %s",
                    user.role, role, request.path,
                    extra={"user_id": user.id},
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")
            return f(*args, **kwargs)
        return decorated
    return decorator
