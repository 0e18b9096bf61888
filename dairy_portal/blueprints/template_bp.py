"""
Template Blueprint — report templates and their versions.

  GET  /api/v1/templates                   — active templates (?financial_year=)
  GET  /api/v1/templates/<id>              — one template
  GET  /api/v1/templates/<id>/versions     — version history of its family
  POST /api/v1/templates                   — (admin) multipart: file, name, financial_year, description
  POST /api/v1/templates/<id>/versions     — (admin) multipart: file, description
"""

from flask import Blueprint, g, jsonify, request

from dairy_portal.auth import require_auth, require_role
from dairy_portal.blueprints import request_payload
from dairy_portal.models.auth import ROLE_ADMIN
from dairy_portal.services import template_service
from dairy_portal.utils.errors import E, api_error, register_error_handlers
from dairy_portal.utils.helpers import require_fields

template_bp = Blueprint("templates", __name__, url_prefix="/api/v1/templates")
register_error_handlers(template_bp)


@template_bp.route("", methods=["GET"])
@require_auth
def list_templates():
    templates = template_service.list_active(request.args.get("financial_year"))
    return jsonify([t.to_dict() for t in templates]), 200


@template_bp.route("/<int:template_id>", methods=["GET"])
@require_auth
def get_template(template_id):
    return jsonify(template_service.get_template(template_id).to_dict()), 200


@template_bp.route("/<int:template_id>/versions", methods=["GET"])
@require_auth
def list_versions(template_id):
    versions = template_service.version_history(template_id)
    return jsonify([t.to_dict() for t in versions]), 200


@template_bp.route("", methods=["POST"])
@require_auth
@require_role(ROLE_ADMIN)
def create_template():
    data = request_payload()
    missing = require_fields(data, "name", "financial_year")
    if "file" not in request.files:
        missing.append("file")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, "file, name and financial_year are required",
                         details={"missing": missing})
    template = template_service.create_template(
        data["name"], data["financial_year"], request.files["file"], g.current_user,
        description=data.get("description"),
    )
    return jsonify(template.to_dict()), 201


@template_bp.route("/<int:template_id>/versions", methods=["POST"])
@require_auth
@require_role(ROLE_ADMIN)
def publish_version(template_id):
    if "file" not in request.files:
        return api_error(E.VALIDATION_REQUIRED, "file is required")
    data = request_payload()
    template = template_service.publish_version(
        template_id, request.files["file"], g.current_user,
        description=data.get("description"),
    )
    return jsonify(template.to_dict()), 201
