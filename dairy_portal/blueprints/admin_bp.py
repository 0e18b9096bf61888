"""
Admin Blueprint — user management, upload review and portal stats.

All endpoints require role ADMIN.

  GET    /api/v1/admin/users                 — list users
  POST   /api/v1/admin/users                 — create user
  PUT    /api/v1/admin/users/<id>            — update name/username/role/password
  DELETE /api/v1/admin/users/<id>            — delete user (cascades)
  GET    /api/v1/admin/uploads               — all uploads (?status=)
  PUT    /api/v1/admin/uploads/<id>/status   — approve / reject an upload
  GET    /api/v1/admin/stats                 — dashboard counters
"""

from flask import Blueprint, g, jsonify, request

from dairy_portal.auth import require_auth, require_role
from dairy_portal.models.auth import ROLE_ADMIN
from dairy_portal.services import dashboard_service, upload_service, user_service
from dairy_portal.utils.errors import E, api_error, register_error_handlers
from dairy_portal.utils.helpers import require_fields

admin_bp = Blueprint("admin", __name__, url_prefix="/api/v1/admin")
register_error_handlers(admin_bp)


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/users", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def list_users():
    return jsonify([u.to_dict() for u in user_service.list_users()]), 200


@admin_bp.route("/users", methods=["POST"])
@require_auth
@require_role(ROLE_ADMIN)
def create_user():
    """Body: { "name", "username", "password", "role" }"""
    data = request.get_json(silent=True) or {}
    missing = require_fields(data, "name", "username", "password", "role")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, "All fields are required",
                         details={"missing": missing})
    user = user_service.create_user(
        data["name"], data["username"], data["password"], data["role"], actor=g.current_user,
    )
    return jsonify(user.to_dict()), 201


@admin_bp.route("/users/<int:user_id>", methods=["PUT"])
@require_auth
@require_role(ROLE_ADMIN)
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    user = user_service.update_user(
        user_id, g.current_user,
        name=data.get("name"),
        username=data.get("username"),
        role=data.get("role"),
        password=data.get("password"),
    )
    return jsonify(user.to_dict()), 200


@admin_bp.route("/users/<int:user_id>", methods=["DELETE"])
@require_auth
@require_role(ROLE_ADMIN)
def delete_user(user_id):
    user_service.delete_user(user_id, g.current_user)
    return jsonify({"message": "User deleted", "id": user_id}), 200


# ═══════════════════════════════════════════════════════════════
# Uploads
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/uploads", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def list_uploads():
    uploads = upload_service.list_all(status=request.args.get("status"))
    return jsonify([u.to_dict(include_refs=True) for u in uploads]), 200


@admin_bp.route("/uploads/<int:upload_id>/status", methods=["PUT"])
@require_auth
@require_role(ROLE_ADMIN)
def set_upload_status(upload_id):
    """Body: { "status": "APPROVED" | "REJECTED" | "PENDING" }"""
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    upload = upload_service.set_status(upload_id, data["status"], g.current_user)
    return jsonify(upload.to_dict(include_refs=True)), 200


# ═══════════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════════
@admin_bp.route("/stats", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def stats():
    return jsonify(dashboard_service.admin_stats()), 200
