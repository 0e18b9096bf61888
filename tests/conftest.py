"""
Shared pytest fixtures for the Dairy Sustainability Reporting Portal suite.

Provides:
    - app: Flask application (session-scoped)
    - blob_root: per-test local blob directory (autouse)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin_user / regular_user / other_user: pre-created accounts
    - auth_headers: callable building a Bearer header for a user
    - make_file: callable building a werkzeug FileStorage
"""

import io

import pytest
from werkzeug.datastructures import FileStorage

from dairy_portal import create_app
from dairy_portal.integrations.blob_storage import LocalBlobStorage
from dairy_portal.models import db as _db
from dairy_portal.models.auth import ROLE_ADMIN, ROLE_USER
from dairy_portal.models.upload import UPLOAD_APPROVED, Upload
from dairy_portal.services.jwt_service import generate_access_token
from dairy_portal.services.user_service import create_user


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def blob_root(app, tmp_path):
    """Per-test: a fresh local blob directory, so stored paths never leak between tests."""
    original = app.extensions["blob_storage"]
    app.extensions["blob_storage"] = LocalBlobStorage(str(tmp_path / "blobs"), "/blobs")
    yield tmp_path / "blobs"
    app.extensions["blob_storage"] = original


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Accounts ─────────────────────────────────────────────────────────────


@pytest.fixture()
def admin_user():
    return create_user("Admin User", "admin", "admin123", ROLE_ADMIN)


@pytest.fixture()
def regular_user():
    return create_user("John Doe", "john", "password123", ROLE_USER)


@pytest.fixture()
def other_user():
    return create_user("Jane Smith", "jane", "password123", ROLE_USER)


@pytest.fixture()
def auth_headers():
    """Return a function: user → {"Authorization": "Bearer ..."}."""
    def _headers(user):
        token = generate_access_token(user)["access_token"]
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ── Files ────────────────────────────────────────────────────────────────


@pytest.fixture()
def make_file():
    """Return a function building an in-memory uploaded file."""
    def _make(name="report.xlsx", content=b"dairy,report\n1,2\n", content_type="text/csv"):
        return FileStorage(stream=io.BytesIO(content), filename=name, content_type=content_type)
    return _make


@pytest.fixture()
def approved_upload(regular_user):
    """An approved upload owned by ``regular_user`` (created directly, no blob)."""
    upload = Upload(
        user_id=regular_user.id,
        file_name="john_esg_report.xlsx",
        file_url="/blobs/uploads/john_esg_report.xlsx",
        file_size=128,
        financial_year="2024-25",
        status=UPLOAD_APPROVED,
    )
    _db.session.add(upload)
    _db.session.commit()
    return upload
