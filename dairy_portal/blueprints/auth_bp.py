"""
Auth Blueprint — username/password login and token introspection.

  POST /api/v1/auth/login    — username + password → access token
  POST /api/v1/auth/logout   — record the logout (tokens are stateless)
  GET  /api/v1/auth/me       — current user profile
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request

from dairy_portal import limiter
from dairy_portal.auth import require_auth
from dairy_portal.models.activity import write_activity
from dairy_portal.services.jwt_service import generate_access_token
from dairy_portal.services.user_service import authenticate
from dairy_portal.utils.errors import E, api_error, register_error_handlers
from dairy_portal.utils.helpers import db_commit_or_error, require_fields

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")
register_error_handlers(auth_bp)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(lambda: current_app.config.get("LOGIN_RATE_LIMIT", "10/minute"))
def login():
    """
    Authenticate with username + password.

    Body: { "username": "...", "password": "..." }
    """
    data = request.get_json(silent=True) or {}
    missing = require_fields(data, "username", "password")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, "Username and password are required",
                         details={"missing": missing})

    user = authenticate(data["username"], data["password"])
    if user is None:
        logger.warning("Failed login for %r from %s", data["username"], request.remote_addr)
        return api_error(E.UNAUTHORIZED, "Invalid username or password")

    write_activity(
        actor=user,
        action="LOGIN",
        resource_type="LOGIN",
        resource_id=user.id,
        resource_name=user.username,
        description=f"User logged in: {user.name}",
    )
    err = db_commit_or_error()
    if err:
        return err

    tokens = generate_access_token(user)
    logger.info("User logged in", extra={"user_id": user.id, "role": user.role})
    return jsonify({**tokens, "user": user.to_dict()}), 200


@auth_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    user = g.current_user
    write_activity(
        actor=user,
        action="LOGOUT",
        resource_type="LOGOUT",
        resource_id=user.id,
        resource_name=user.username,
        description=f"User logged out: {user.name}",
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    return jsonify(g.current_user.to_dict()), 200
