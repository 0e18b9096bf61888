"""
Activity Log Blueprint — read access to the activity trail.

  GET /api/v1/activity-logs   — (admin) all logs; filters: user_id, username,
                                role, action, resource_type, start_date,
                                end_date; ?include_stats=true adds aggregates
  GET /api/v1/user/activity   — the caller's own logs, same filters
"""

from flask import Blueprint, g, jsonify, request

from dairy_portal.auth import require_auth, require_role
from dairy_portal.models.auth import ROLE_ADMIN
from dairy_portal.services import activity_service
from dairy_portal.utils.errors import E, api_error, register_error_handlers
from dairy_portal.utils.helpers import parse_date

activity_bp = Blueprint("activity", __name__, url_prefix="/api/v1")
register_error_handlers(activity_bp)


def _filters():
    """Parse the shared query filters; returns ``(filters, error)``."""
    args = request.args
    filters = {
        "username": args.get("username"),
        "role": args.get("role"),
        "action": args.get("action"),
        "resource_type": args.get("resource_type"),
    }
    for key in ("start_date", "end_date"):
        raw = args.get(key)
        value = parse_date(raw)
        if raw and value is None:
            return None, api_error(E.VALIDATION_INVALID, f"{key} must be an ISO date",
                                   details={key: raw})
        filters[key] = value
    return filters, None


def _wants_stats() -> bool:
    return request.args.get("include_stats", "").lower() in ("1", "true", "yes")


@activity_bp.route("/activity-logs", methods=["GET"])
@require_auth
@require_role(ROLE_ADMIN)
def list_logs():
    filters, err = _filters()
    if err:
        return err
    user_id = request.args.get("user_id", type=int)
    logs = activity_service.list_activity(user_id=user_id, **filters)
    body = {"logs": [log.to_dict() for log in logs], "total": len(logs)}
    if _wants_stats():
        body["stats"] = activity_service.activity_stats(user_id=user_id)
    return jsonify(body), 200


@activity_bp.route("/user/activity", methods=["GET"])
@require_auth
def list_own_logs():
    filters, err = _filters()
    if err:
        return err
    logs = activity_service.list_activity(user_id=g.current_user.id, **filters)
    body = {"logs": [log.to_dict() for log in logs], "total": len(logs)}
    if _wants_stats():
        body["stats"] = activity_service.activity_stats(user_id=g.current_user.id)
    return jsonify(body), 200
