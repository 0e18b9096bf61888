"""
User Dashboard Blueprint.

  GET /api/v1/user/dashboard   — counters and five most recent items
  GET /api/v1/user/reports     — drafts and uploads merged, newest first
"""

from flask import Blueprint, g, jsonify

from dairy_portal.auth import require_auth
from dairy_portal.services import dashboard_service as svc

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/user")


@dashboard_bp.route("/dashboard", methods=["GET"])
@require_auth
def user_dashboard():
    return jsonify(svc.user_dashboard(g.current_user.id)), 200


@dashboard_bp.route("/reports", methods=["GET"])
@require_auth
def user_reports():
    return jsonify(svc.user_reports(g.current_user.id)), 200
