"""
User dashboard and reports tests.
"""

from datetime import datetime, timedelta, timezone

from dairy_portal.models import db
from dairy_portal.models.draft import APPROVED
from dairy_portal.models.upload import Upload
from dairy_portal.services import draft_service


def _backdate(obj, minutes):
    obj.created_at = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    db.session.commit()


class TestUserReports:
    def test_merged_newest_first(self, admin_user, regular_user, approved_upload, make_file, client,
                                 auth_headers):
        _backdate(approved_upload, 30)
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), "First")
        _backdate(draft, 10)

        res = client.get("/api/v1/user/reports", headers=auth_headers(regular_user))
        assert res.status_code == 200
        items = res.get_json()
        assert [(i["type"], i["id"]) for i in items] == [
            ("draft", draft.id), ("upload", approved_upload.id),
        ]
        assert items[0]["draft_number"] == 1
        assert items[0]["comments"] == "First"

    def test_other_users_items_hidden(self, client, other_user, approved_upload, auth_headers):
        res = client.get("/api/v1/user/reports", headers=auth_headers(other_user))
        assert res.get_json() == []


class TestUserDashboard:
    def test_counters(self, client, admin_user, regular_user, approved_upload, make_file, auth_headers):
        first = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.update_status(first.id, APPROVED, regular_user, None)
        db.session.add(Upload(
            user_id=regular_user.id, file_name="second.xlsx", file_url="/blobs/second.xlsx",
            financial_year="2024-25",
        ))
        db.session.commit()

        res = client.get("/api/v1/user/dashboard", headers=auth_headers(regular_user))
        assert res.status_code == 200
        body = res.get_json()
        assert body["total_uploads"] == 2
        assert body["total_drafts"] == 1
        assert body["approved_drafts"] == 1
        assert body["pending_drafts"] == 0
        assert len(body["recent_activity"]) == 3

    def test_empty(self, client, regular_user, auth_headers):
        body = client.get("/api/v1/user/dashboard", headers=auth_headers(regular_user)).get_json()
        assert body == {
            "total_uploads": 0, "total_drafts": 0, "pending_drafts": 0,
            "approved_drafts": 0, "recent_activity": [],
        }
