"""
JWT Auth Middleware — parses the Bearer token and loads ``g.current_user``.

The middleware never rejects a request on its own: a missing, expired or
invalid token simply leaves ``g.current_user = None``.  Endpoints decide
with ``require_auth`` / ``require_role`` (see ``dairy_portal.auth``).
"""

import logging

import jwt as pyjwt
from flask import g, request

from dairy_portal.models import db
from dairy_portal.models.auth import User
from dairy_portal.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]
        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token has expired"
            return
        except pyjwt.InvalidTokenError:
            g.jwt_error = "Invalid token"
            return

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            g.jwt_error = "Invalid token"
            return

        user = db.session.get(User, user_id)
        if user is None:
            # Account deleted after the token was issued
            g.jwt_error = "User no longer exists"
            logger.info("Token for deleted user rejected", extra={"user_id": user_id})
            return
        g.current_user = user
