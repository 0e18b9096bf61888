"""
Dairy Sustainability Reporting Portal
Flask Application Factory.

Usage:
    from dairy_portal import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, current_app, request, send_from_directory
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from dairy_portal.config import config
from dairy_portal.models import db
from dairy_portal.middleware.logging_config import configure_logging
from dairy_portal.middleware.timing import init_request_timing
from dairy_portal.middleware.jwt_auth import init_jwt_middleware
from dairy_portal.integrations.blob_storage import LocalBlobStorage, init_blob_storage

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit; applied per route
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiated so ProductionConfig can refuse a missing DATABASE_URL / SECRET_KEY
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Middleware ───────────────────────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)
    init_blob_storage(app)

    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            abort(413, description="Request body too large")

    # ── Import all models so Alembic can detect them ─────────────────────
    from dairy_portal.models import auth as _auth_models          # noqa: F401
    from dairy_portal.models import template as _template_models  # noqa: F401
    from dairy_portal.models import upload as _upload_models      # noqa: F401
    from dairy_portal.models import draft as _draft_models        # noqa: F401
    from dairy_portal.models import activity as _activity_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from dairy_portal.blueprints.health_bp import health_bp
    from dairy_portal.blueprints.auth_bp import auth_bp
    from dairy_portal.blueprints.admin_bp import admin_bp
    from dairy_portal.blueprints.template_bp import template_bp
    from dairy_portal.blueprints.upload_bp import upload_bp
    from dairy_portal.blueprints.draft_bp import draft_bp, admin_draft_bp
    from dairy_portal.blueprints.activity_bp import activity_bp
    from dairy_portal.blueprints.dashboard_bp import dashboard_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(template_bp)
    app.register_blueprint(upload_bp)
    app.register_blueprint(draft_bp)
    app.register_blueprint(admin_draft_bp)
    app.register_blueprint(activity_bp)
    app.register_blueprint(dashboard_bp)

    limiter.exempt(health_bp)

    # ── Locally stored blobs ─────────────────────────────────────────────
    if isinstance(app.extensions["blob_storage"], LocalBlobStorage):
        base_url = app.config.get("BLOB_PUBLIC_BASE_URL", "/blobs").rstrip("/")

        @app.route(f"{base_url}/<path:pathname>")
        def serve_blob(pathname):
            storage = current_app.extensions["blob_storage"]
            return send_from_directory(storage.root_dir, pathname, as_attachment=True)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-users")
    def seed_users_cmd():
        """Create the default admin and demo user accounts."""
        from dairy_portal.services.user_service import seed_default_users
        count = seed_default_users()
        logger.info("Seeded %s new user(s).", count)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    return app
