"""
Upload Blueprint — user submission of filled templates.

  POST /api/v1/uploads   — multipart: file, financial_year, template_id, description
  GET  /api/v1/uploads   — the caller's own uploads, newest first
"""

from flask import Blueprint, g, jsonify, request

from dairy_portal.auth import require_auth
from dairy_portal.blueprints import request_payload
from dairy_portal.services import upload_service
from dairy_portal.utils.errors import E, api_error, register_error_handlers
from dairy_portal.utils.helpers import parse_int

upload_bp = Blueprint("uploads", __name__, url_prefix="/api/v1/uploads")
register_error_handlers(upload_bp)


@upload_bp.route("", methods=["POST"])
@require_auth
def create_upload():
    if "file" not in request.files:
        return api_error(E.VALIDATION_REQUIRED, "file is required")
    data = request_payload()
    template_id = parse_int(data.get("template_id"))
    if data.get("template_id") and template_id is None:
        return api_error(E.VALIDATION_INVALID, "template_id must be an integer")

    upload = upload_service.create_upload(
        g.current_user,
        request.files["file"],
        financial_year=data.get("financial_year"),
        template_id=template_id,
        description=data.get("description"),
    )
    return jsonify(upload.to_dict(include_refs=True)), 201


@upload_bp.route("", methods=["GET"])
@require_auth
def list_uploads():
    uploads = upload_service.list_for_user(g.current_user.id)
    return jsonify([u.to_dict(include_refs=True) for u in uploads]), 200
