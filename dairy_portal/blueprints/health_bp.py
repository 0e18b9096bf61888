"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — simple 200 for load balancers
    GET /api/v1/health/live   — database and blob backend status
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from dairy_portal.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    return jsonify({"status": "ok", "app": "Dairy Sustainability Reporting Portal"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """Detailed liveness check with dependency status."""
    checks = {}
    overall = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1)}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check — database failed: %s", exc)

    checks["blob_storage"] = {
        "status": "ok" if "blob_storage" in current_app.extensions else "not_configured",
        "backend": current_app.config.get("BLOB_BACKEND"),
    }

    return jsonify({"status": "ok" if overall else "degraded", "checks": checks}), (200 if overall else 503)
