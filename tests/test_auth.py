"""
Auth tests — password hashing, access tokens, login / logout / me.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from dairy_portal.models import db
from dairy_portal.models.activity import ActivityLog
from dairy_portal.services.jwt_service import ALGORITHM, decode_access_token, generate_access_token
from dairy_portal.utils.crypto import hash_password, verify_password


# ═══════════════════════════════════════════════════════════════
# Password hashing
# ═══════════════════════════════════════════════════════════════

class TestPasswordHashing:
    def test_round_trip(self):
        hashed = hash_password("s3cret!")
        assert hashed != "s3cret!"
        assert verify_password("s3cret!", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_garbage_hash_is_rejected(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False
        assert verify_password("anything", "") is False


# ═══════════════════════════════════════════════════════════════
# Tokens
# ═══════════════════════════════════════════════════════════════

class TestAccessToken:
    def test_payload(self, regular_user):
        tokens = generate_access_token(regular_user)
        payload = decode_access_token(tokens["access_token"])
        assert payload["sub"] == str(regular_user.id)
        assert payload["role"] == "USER"
        assert tokens["token_type"] == "Bearer"

    def test_expired_token(self, app, regular_user):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": str(regular_user.id), "type": "access",
             "iat": now - timedelta(hours=2), "exp": now - timedelta(hours=1)},
            app.config["JWT_SECRET_KEY"], algorithm=ALGORITHM,
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)

    def test_wrong_type_rejected(self, app, regular_user):
        token = jwt.encode({"sub": str(regular_user.id), "type": "refresh"},
                           app.config["JWT_SECRET_KEY"], algorithm=ALGORITHM)
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(token)


# ═══════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════

class TestAuthApi:
    def test_login_success_logs_activity(self, client, regular_user):
        res = client.post("/api/v1/auth/login", json={"username": "john", "password": "password123"})
        assert res.status_code == 200
        body = res.get_json()
        assert body["access_token"]
        assert body["user"]["username"] == "john"
        assert "password_hash" not in body["user"]

        db.session.expire_all()
        log = ActivityLog.query.one()
        assert (log.action, log.resource_type, log.user_id) == ("LOGIN", "LOGIN", regular_user.id)

    def test_login_bad_password(self, client, regular_user):
        res = client.post("/api/v1/auth/login", json={"username": "john", "password": "nope"})
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_login_missing_fields(self, client):
        res = client.post("/api/v1/auth/login", json={"username": "john"})
        assert res.status_code == 400
        assert res.get_json()["details"]["missing"] == ["password"]

    def test_me(self, client, regular_user, auth_headers):
        res = client.get("/api/v1/auth/me", headers=auth_headers(regular_user))
        assert res.status_code == 200
        assert res.get_json()["name"] == "John Doe"

    def test_me_without_token(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_me_with_garbage_token(self, client):
        res = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nonsense"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid token"

    def test_token_of_deleted_user(self, client, regular_user, auth_headers):
        headers = auth_headers(regular_user)
        db.session.delete(regular_user)
        db.session.commit()
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_logout_logs_activity(self, client, regular_user, auth_headers):
        res = client.post("/api/v1/auth/logout", headers=auth_headers(regular_user))
        assert res.status_code == 200
        db.session.expire_all()
        assert [log.action for log in ActivityLog.query.all()] == ["LOGOUT"]


class TestAppSurface:
    def test_health(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json()["status"] == "ok"

    def test_health_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"

    def test_unknown_api_route_is_json_404(self, client):
        res = client.get("/api/v1/does-not-exist")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/v1/does-not-exist"

    def test_request_id_header(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
