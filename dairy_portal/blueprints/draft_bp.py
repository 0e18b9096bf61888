"""
Draft Blueprint — the admin ↔ user draft exchange.

User endpoints (/api/v1/drafts):
  GET  ""                 — own drafts (?upload_id=)
  POST ""                 — multipart: file, upload_id, comments → respond to the pending admin draft
  GET  /<id>              — one own draft
  PUT  /<id>/status       — { status, comments }
  POST /<id>/final        — accept an admin draft as final

Admin endpoints (/api/v1/admin/drafts):
  GET  ""                 — all drafts (?user_id=&upload_id=)
  POST ""                 — multipart: file, upload_id, comments → send a draft to the upload owner
  PUT  /<id>/status       — { status, comments }
  POST /<id>/accept       — accept a user draft as final
"""

from flask import Blueprint, g, jsonify, request

from dairy_portal.auth import require_auth, require_role
from dairy_portal.blueprints import request_payload
from dairy_portal.models.auth import ROLE_ADMIN
from dairy_portal.services import draft_service
from dairy_portal.utils.errors import E, api_error, register_error_handlers
from dairy_portal.utils.helpers import parse_int

draft_bp = Blueprint("drafts", __name__, url_prefix="/api/v1/drafts")
admin_draft_bp = Blueprint("admin_drafts", __name__, url_prefix="/api/v1/admin/drafts")
register_error_handlers(draft_bp)
register_error_handlers(admin_draft_bp)


def _parse_submission():
    """Return ``(upload_id, file, comments)`` or an error response tuple."""
    data = request_payload()
    upload_id = parse_int(data.get("upload_id"))
    file = request.files.get("file")
    if upload_id is None or file is None:
        missing = [n for n, v in (("upload_id", upload_id), ("file", file)) if v is None]
        return None, api_error(E.VALIDATION_REQUIRED, "file and upload_id are required",
                               details={"missing": missing})
    return (upload_id, file, data.get("comments")), None


# ═══════════════════════════════════════════════════════════════
# User side
# ═══════════════════════════════════════════════════════════════
@draft_bp.route("", methods=["GET"])
@require_auth
def list_own_drafts():
    drafts = draft_service.list_drafts(
        user_id=g.current_user.id,
        upload_id=request.args.get("upload_id", type=int),
    )
    return jsonify([d.to_dict() for d in drafts]), 200


@draft_bp.route("", methods=["POST"])
@require_auth
def submit_response():
    parsed, err = _parse_submission()
    if err:
        return err
    upload_id, file, comments = parsed
    draft = draft_service.submit_user_response(upload_id, g.current_user, file, comments)
    return jsonify(draft.to_dict()), 201


@draft_bp.route("/<int:draft_id>", methods=["GET"])
@require_auth
def get_draft(draft_id):
    return jsonify(draft_service.get_draft(draft_id, g.current_user).to_dict()), 200


@draft_bp.route("/<int:draft_id>/status", methods=["PUT"])
@require_auth
def update_own_status(draft_id):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    draft = draft_service.update_status(draft_id, data["status"], g.current_user, data.get("comments"))
    return jsonify(draft.to_dict()), 200


@draft_bp.route("/<int:draft_id>/final", methods=["POST"])
@require_auth
def mark_final(draft_id):
    draft = draft_service.mark_final(draft_id, g.current_user)
    return jsonify(draft.to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Admin side
# ═══════════════════════════════════════════════════════════════
@admin_draft_bp.route("", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def list_all_drafts():
    drafts = draft_service.list_drafts(
        user_id=request.args.get("user_id", type=int),
        upload_id=request.args.get("upload_id", type=int),
    )
    return jsonify([d.to_dict() for d in drafts]), 200


@admin_draft_bp.route("", methods=["POST"])
@require_auth
@require_role(ROLE_ADMIN)
def create_admin_draft():
    parsed, err = _parse_submission()
    if err:
        return err
    upload_id, file, comments = parsed
    draft = draft_service.create_admin_draft(upload_id, g.current_user, file, comments)
    return jsonify(draft.to_dict()), 201


@admin_draft_bp.route("/<int:draft_id>/status", methods=["PUT"])
@require_auth
@require_role(ROLE_ADMIN)
def update_status(draft_id):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    draft = draft_service.update_status(draft_id, data["status"], g.current_user, data.get("comments"))
    return jsonify(draft.to_dict()), 200


@admin_draft_bp.route("/<int:draft_id>/accept", methods=["POST"])
@require_auth
@require_role(ROLE_ADMIN)
def accept_draft(draft_id):
    draft = draft_service.mark_final(draft_id, g.current_user)
    return jsonify(draft.to_dict()), 200
