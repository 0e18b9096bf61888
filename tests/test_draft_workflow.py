"""
Draft workflow tests — service rules and the full admin ↔ user exchange.

Tests cover:
  - create_admin_draft preconditions (approved upload, open thread)
  - submit_user_response turn-taking and ownership
  - update_status guards (ownership, unknown statuses, FINAL terminal)
  - mark_final recipient rule
  - numbering race retry on the (upload_id, draft_number) constraint
  - API scenario: draft #1 → response #2 → admin accepts → FINAL
"""

import io
from unittest.mock import patch

import pytest

from dairy_portal.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from dairy_portal.models import db
from dairy_portal.models.activity import ActivityLog
from dairy_portal.models.draft import (
    ADMIN_TO_USER,
    APPROVED,
    FINAL,
    PENDING_REVIEW,
    REJECTED,
    USER_TO_ADMIN,
)
from dairy_portal.models.upload import UPLOAD_PENDING, Upload
from dairy_portal.services import draft_service
from dairy_portal.services.draft_store import DraftStore


def _actions():
    return [log.action for log in ActivityLog.query.order_by(ActivityLog.id).all()]


# ═══════════════════════════════════════════════════════════════
# Service layer
# ═══════════════════════════════════════════════════════════════

class TestCreateAdminDraft:
    def test_creates_first_draft(self, admin_user, regular_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(
            approved_upload.id, admin_user, make_file("review_v1.xlsx"), "please check",
        )
        assert draft.draft_number == 1
        assert draft.draft_type == ADMIN_TO_USER
        assert draft.status == PENDING_REVIEW
        assert draft.user_id == regular_user.id
        assert draft.file_name == "review_v1.xlsx"
        assert draft.file_url.endswith(f"drafts/{approved_upload.id}/review_v1.xlsx")
        assert draft.user_snapshot == {"id": regular_user.id, "name": "John Doe", "username": "john"}
        assert draft.upload_snapshot["id"] == approved_upload.id
        assert _actions() == ["CREATE_DRAFT"]

    def test_unknown_upload(self, admin_user, make_file):
        with pytest.raises(NotFoundError):
            draft_service.create_admin_draft(999, admin_user, make_file(), None)

    def test_upload_must_be_approved(self, admin_user, regular_user, make_file):
        upload = Upload(
            user_id=regular_user.id, file_name="a.xlsx", file_url="/blobs/a.xlsx",
            financial_year="2024-25", status=UPLOAD_PENDING,
        )
        db.session.add(upload)
        db.session.commit()
        with pytest.raises(ValidationError):
            draft_service.create_admin_draft(upload.id, admin_user, make_file(), None)

    def test_missing_file_rejected_before_write(self, admin_user, approved_upload):
        with pytest.raises(ValidationError):
            draft_service.create_admin_draft(approved_upload.id, admin_user, None, None)
        assert DraftStore().list_all() == []

    def test_snapshot_not_resynced_after_rename(self, admin_user, regular_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        regular_user.name = "Johnathan Doe"
        db.session.commit()
        db.session.expire_all()
        assert DraftStore().get(draft.id).user_snapshot["name"] == "John Doe"

    def test_finalized_thread_rejects_new_drafts(self, admin_user, regular_user, approved_upload, make_file):
        first = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.mark_final(first.id, regular_user)
        with pytest.raises(ValidationError):
            draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)


class TestSubmitUserResponse:
    def test_responds_to_pending_admin_draft(self, admin_user, regular_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file("v1.xlsx"), None)
        response = draft_service.submit_user_response(
            approved_upload.id, regular_user, make_file("v2.xlsx"), "updated figures",
        )
        assert response.draft_number == 2
        assert response.draft_type == USER_TO_ADMIN
        assert response.comments == "updated figures"

    def test_nothing_to_respond_to(self, regular_user, approved_upload, make_file):
        with pytest.raises(ValidationError):
            draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)

    def test_cannot_respond_twice_in_a_row(self, admin_user, regular_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)
        with pytest.raises(ValidationError):
            draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)

    def test_only_upload_owner_may_respond(self, admin_user, other_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        with pytest.raises(PermissionDeniedError):
            draft_service.submit_user_response(approved_upload.id, other_user, make_file(), None)


class TestUpdateStatus:
    def test_admin_approves(self, admin_user, regular_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        response = draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)
        updated = draft_service.update_status(response.id, "approved", admin_user, "thanks")
        assert updated.status == APPROVED
        assert updated.comments == "thanks"
        assert _actions()[-1] == "UPDATE_DRAFT"

    def test_user_cannot_touch_foreign_draft(self, admin_user, other_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        with pytest.raises(PermissionDeniedError):
            draft_service.update_status(draft.id, REJECTED, other_user)

    def test_unknown_status_rejected(self, admin_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        with pytest.raises(ValidationError):
            draft_service.update_status(draft.id, "ARCHIVED", admin_user)

    def test_final_not_reachable_through_update(self, admin_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        with pytest.raises(ValidationError):
            draft_service.update_status(draft.id, FINAL, admin_user)

    def test_final_draft_is_frozen(self, admin_user, regular_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.mark_final(draft.id, regular_user)
        with pytest.raises(ValidationError):
            draft_service.update_status(draft.id, APPROVED, admin_user)

    def test_unknown_draft(self, admin_user):
        with pytest.raises(NotFoundError):
            draft_service.update_status(555, APPROVED, admin_user)


class TestMarkFinal:
    def test_owner_accepts_admin_draft(self, admin_user, regular_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        final = draft_service.mark_final(draft.id, regular_user)
        assert final.status == FINAL
        assert final.accepted_by == regular_user.id
        assert _actions()[-1] == "FINALIZE_DRAFT"

    def test_admin_cannot_accept_own_draft(self, admin_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        with pytest.raises(PermissionDeniedError):
            draft_service.mark_final(draft.id, admin_user)

    def test_owner_cannot_accept_own_response(self, admin_user, regular_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        response = draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)
        with pytest.raises(PermissionDeniedError):
            draft_service.mark_final(response.id, regular_user)

    def test_non_pending_draft_cannot_be_finalized(self, admin_user, regular_user, approved_upload, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.update_status(draft.id, REJECTED, admin_user)
        with pytest.raises(ValidationError):
            draft_service.mark_final(draft.id, regular_user)

    def test_answered_draft_stays_pending_but_cannot_be_finalized(
        self, admin_user, regular_user, approved_upload, make_file,
    ):
        first = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)
        assert DraftStore().get(first.id).status == PENDING_REVIEW
        with pytest.raises(ValidationError):
            draft_service.mark_final(first.id, regular_user)

    def test_thread_has_a_single_final_draft(self, admin_user, regular_user, approved_upload, make_file):
        first = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        response = draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)
        draft_service.mark_final(response.id, admin_user)

        with pytest.raises(ValidationError):
            draft_service.mark_final(first.id, regular_user)

        db.session.expire_all()
        finals = [d.draft_number for d in DraftStore().list_by_upload(approved_upload.id)
                  if d.status == FINAL]
        assert finals == [2]
        assert DraftStore().get(first.id).status == PENDING_REVIEW


class TestSameNamedFiles:
    def test_drafts_with_same_file_name_keep_their_own_bytes(
        self, client, admin_user, regular_user, approved_upload, make_file,
    ):
        first = draft_service.create_admin_draft(
            approved_upload.id, admin_user, make_file("report.xlsx", b"DRAFT-ONE"), None,
        )
        second = draft_service.submit_user_response(
            approved_upload.id, regular_user, make_file("report.xlsx", b"DRAFT-TWO"), None,
        )
        assert first.file_url != second.file_url
        assert first.file_name == second.file_name == "report.xlsx"
        assert client.get(first.file_url).data == b"DRAFT-ONE"
        assert client.get(second.file_url).data == b"DRAFT-TWO"


class TestNumberingRace:
    def test_retries_after_collision(self, admin_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        # First read is stale (number 1 is taken), second read is fresh
        with patch.object(DraftStore, "next_draft_number", side_effect=[1, 2]):
            draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        assert draft.draft_number == 2
        assert [d.draft_number for d in DraftStore().list_by_upload(approved_upload.id)] == [1, 2]

    def test_gives_up_after_bounded_attempts(self, admin_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        stale = [1] * draft_service.MAX_NUMBERING_ATTEMPTS
        with patch.object(DraftStore, "next_draft_number", side_effect=stale):
            with pytest.raises(ConflictError):
                draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        assert len(DraftStore().list_by_upload(approved_upload.id)) == 1


class TestListDrafts:
    def test_filters(self, admin_user, regular_user, other_user, approved_upload, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        draft_service.submit_user_response(approved_upload.id, regular_user, make_file(), None)
        assert len(draft_service.list_drafts()) == 2
        assert len(draft_service.list_drafts(user_id=regular_user.id)) == 2
        assert draft_service.list_drafts(user_id=other_user.id) == []
        assert len(draft_service.list_drafts(upload_id=approved_upload.id)) == 2
        assert draft_service.list_drafts(user_id=other_user.id, upload_id=approved_upload.id) == []


# ═══════════════════════════════════════════════════════════════
# API scenario
# ═══════════════════════════════════════════════════════════════

def _file(name):
    return (io.BytesIO(b"metric,value\nmilk,1\n"), name)


class TestDraftExchangeApi:
    def test_full_exchange_ends_final(self, client, admin_user, regular_user, auth_headers):
        admin_h = auth_headers(admin_user)
        user_h = auth_headers(regular_user)

        res = client.post(
            "/api/v1/uploads",
            data={"file": _file("esg.xlsx"), "financial_year": "2024-25"},
            headers=user_h, content_type="multipart/form-data",
        )
        assert res.status_code == 201
        upload_id = res.get_json()["id"]

        res = client.put(f"/api/v1/admin/uploads/{upload_id}/status",
                         json={"status": "APPROVED"}, headers=admin_h)
        assert res.status_code == 200

        res = client.post(
            "/api/v1/admin/drafts",
            data={"file": _file("review_v1.xlsx"), "upload_id": str(upload_id), "comments": "check"},
            headers=admin_h, content_type="multipart/form-data",
        )
        assert res.status_code == 201
        first = res.get_json()
        assert first["draft_number"] == 1
        assert first["draft_type"] == ADMIN_TO_USER

        res = client.post(
            "/api/v1/drafts",
            data={"file": _file("review_v2.xlsx"), "upload_id": str(upload_id)},
            headers=user_h, content_type="multipart/form-data",
        )
        assert res.status_code == 201
        second = res.get_json()
        assert second["draft_number"] == 2
        assert second["draft_type"] == USER_TO_ADMIN

        # The sender may not accept their own draft
        res = client.post(f"/api/v1/drafts/{second['id']}/final", headers=user_h)
        assert res.status_code == 403

        res = client.post(f"/api/v1/admin/drafts/{second['id']}/accept", headers=admin_h)
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == FINAL
        assert body["is_final"] is True
        assert body["accepted_by"] == admin_user.id

        res = client.post(
            "/api/v1/admin/drafts",
            data={"file": _file("review_v3.xlsx"), "upload_id": str(upload_id)},
            headers=admin_h, content_type="multipart/form-data",
        )
        assert res.status_code == 422

    def test_user_lists_only_own_drafts(self, client, admin_user, regular_user, other_user,
                                        approved_upload, auth_headers, make_file):
        draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        res = client.get("/api/v1/drafts", headers=auth_headers(regular_user))
        assert res.status_code == 200
        assert len(res.get_json()) == 1
        res = client.get("/api/v1/drafts", headers=auth_headers(other_user))
        assert res.get_json() == []

    def test_foreign_draft_is_hidden(self, client, admin_user, other_user,
                                     approved_upload, auth_headers, make_file):
        draft = draft_service.create_admin_draft(approved_upload.id, admin_user, make_file(), None)
        res = client.get(f"/api/v1/drafts/{draft.id}", headers=auth_headers(other_user))
        assert res.status_code == 404

    def test_missing_fields(self, client, admin_user, auth_headers):
        res = client.post("/api/v1/admin/drafts", data={"comments": "x"},
                          headers=auth_headers(admin_user), content_type="multipart/form-data")
        assert res.status_code == 400
        assert set(res.get_json()["details"]["missing"]) == {"upload_id", "file"}

    def test_admin_endpoints_need_admin(self, client, regular_user, auth_headers):
        res = client.get("/api/v1/admin/drafts", headers=auth_headers(regular_user))
        assert res.status_code == 403

    def test_update_unknown_draft_is_404(self, client, admin_user, auth_headers):
        res = client.put("/api/v1/admin/drafts/999/status", json={"status": "APPROVED"},
                         headers=auth_headers(admin_user))
        assert res.status_code == 404
