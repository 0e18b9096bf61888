"""
Draft Service — business logic for the admin ↔ user draft exchange.

Extracted from the draft blueprint so that the HTTP layer only parses
input and serialises output.

Thread lifecycle (keyed by the originating Upload):
    1. Admin approves the upload.
    2. Admin sends draft #1 (ADMIN_TO_USER, PENDING_REVIEW).
    3. User responds with draft #2 (USER_TO_ADMIN), or marks #1 final.
    4. ... repeated until the receiving party marks a draft FINAL.
    5. Once a draft is FINAL the thread accepts no further drafts.

Draft numbers are contiguous per upload.  Two concurrent submissions
that read the same ``next_draft_number`` collide on the
``(upload_id, draft_number)`` unique constraint; the loser rolls back,
re-reads the number and retries.

Every mutation writes one activity row in the same transaction.
"""

import logging

from sqlalchemy.exc import IntegrityError

from dairy_portal.core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from dairy_portal.models import db
from dairy_portal.models.activity import write_activity
from dairy_portal.models.auth import ROLE_ADMIN
from dairy_portal.models.draft import (
    ADMIN_TO_USER,
    FINAL,
    PENDING_REVIEW,
    USER_TO_ADMIN,
    TemplateSnapshot,
    UploadSnapshot,
    UserSnapshot,
)
from dairy_portal.models.upload import UPLOAD_APPROVED, Upload
from dairy_portal.services.draft_rules import can_mark_final, can_respond, can_transition
from dairy_portal.services.draft_store import DraftStore
from dairy_portal.services.helpers.files import store_file

logger = logging.getLogger(__name__)

MAX_NUMBERING_ATTEMPTS = 3


# ── Internal helpers ─────────────────────────────────────────────────────────


def _get_upload(upload_id: int) -> Upload:
    upload = db.session.get(Upload, upload_id)
    if upload is None:
        raise NotFoundError(resource="Upload", resource_id=upload_id)
    return upload


def _snapshots(upload: Upload) -> dict:
    return {
        "user_snapshot": UserSnapshot.of(upload.user).to_dict(),
        "template_snapshot": (
            TemplateSnapshot.of(upload.template).to_dict() if upload.template else {}
        ),
        "upload_snapshot": UploadSnapshot.of(upload).to_dict(),
    }


def _insert_numbered(store: DraftStore, upload_id: int, fields: dict):
    """Create the next draft of ``upload_id``, retrying on a numbering race."""
    for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
        number = store.next_draft_number(upload_id)
        try:
            return store.create(upload_id=upload_id, draft_number=number, **fields)
        except IntegrityError:
            db.session.rollback()
            logger.warning(
                "Draft number %d already taken, retrying (attempt %d/%d)",
                number, attempt, MAX_NUMBERING_ATTEMPTS,
                extra={"upload_id": upload_id, "draft_number": number},
            )
    raise ConflictError(resource="Draft", field="draft_number", value=str(number))


def _require_draft(store: DraftStore, draft_id: int):
    draft = store.get(draft_id)
    if draft is None:
        raise NotFoundError(resource="Draft", resource_id=draft_id)
    return draft


# ── Creation ─────────────────────────────────────────────────────────────────


def create_admin_draft(upload_id: int, admin, file, comments: str | None = None):
    """Send an ADMIN_TO_USER draft to the owner of ``upload_id``.

    Raises:
        NotFoundError:   upload does not exist.
        ValidationError: upload not approved, or its thread is already final.
    """
    store = DraftStore()
    upload = _get_upload(upload_id)
    if upload.status != UPLOAD_APPROVED:
        raise ValidationError(
            "Drafts can only be created for approved uploads",
            details={"upload_status": upload.status},
        )
    if store.is_thread_final(upload_id):
        raise ValidationError("This review thread has already been finalized")

    fields = {
        "draft_type": ADMIN_TO_USER,
        "status": PENDING_REVIEW,
        "comments": comments or None,
        "financial_year": upload.financial_year,
        "user_id": upload.user_id,
        "template_id": upload.template_id,
        **_snapshots(upload),
    }
    # Blob failures abort here, before anything is written
    file_name, blob = store_file(file, f"drafts/{upload_id}")
    fields.update(file_name=file_name, file_url=blob.url, file_size=blob.size)

    draft = _insert_numbered(store, upload_id, fields)
    write_activity(
        actor=admin,
        action="CREATE_DRAFT",
        resource_type="DRAFT",
        resource_id=draft.id,
        resource_name=draft.file_name,
        description=f"Sent draft #{draft.draft_number} for upload {upload_id}",
        metadata={"upload_id": upload_id, "draft_number": draft.draft_number,
                  "draft_type": ADMIN_TO_USER},
    )
    db.session.commit()
    logger.info(
        "Admin draft created",
        extra={"draft_id": draft.id, "upload_id": upload_id, "draft_number": draft.draft_number},
    )
    return draft


def submit_user_response(upload_id: int, user, file, comments: str | None = None):
    """Answer the pending admin draft of the user's own upload.

    Raises:
        NotFoundError:         upload does not exist.
        PermissionDeniedError: upload belongs to someone else.
        ValidationError:       the latest draft is not awaiting a response.
    """
    store = DraftStore()
    upload = _get_upload(upload_id)
    if upload.user_id != user.id:
        raise PermissionDeniedError(
            user_id=user.id, action="respond to drafts", reason="upload belongs to another user",
        )

    latest = store.latest_for_upload(upload_id)
    if latest is None or not can_respond(latest):
        raise ValidationError(
            "There is no pending admin draft to respond to",
            details={"latest_draft_id": latest.id if latest else None},
        )

    fields = {
        "draft_type": USER_TO_ADMIN,
        "status": PENDING_REVIEW,
        "comments": comments or None,
        "financial_year": upload.financial_year,
        "user_id": user.id,
        "template_id": latest.template_id,
        **_snapshots(upload),
    }
    file_name, blob = store_file(file, f"drafts/{upload_id}")
    fields.update(file_name=file_name, file_url=blob.url, file_size=blob.size)

    draft = _insert_numbered(store, upload_id, fields)
    write_activity(
        actor=user,
        action="CREATE_DRAFT",
        resource_type="DRAFT",
        resource_id=draft.id,
        resource_name=draft.file_name,
        description=f"Responded with draft #{draft.draft_number} for upload {upload_id}",
        metadata={"upload_id": upload_id, "draft_number": draft.draft_number,
                  "draft_type": USER_TO_ADMIN},
    )
    db.session.commit()
    logger.info(
        "User draft submitted",
        extra={"draft_id": draft.id, "upload_id": upload_id, "draft_number": draft.draft_number},
    )
    return draft


# ── Reads ────────────────────────────────────────────────────────────────────


def get_draft(draft_id: int, actor):
    draft = _require_draft(DraftStore(), draft_id)
    if actor.role != ROLE_ADMIN and draft.user_id != actor.id:
        # Hide other users' drafts entirely
        raise NotFoundError(resource="Draft", resource_id=draft_id)
    return draft


def list_drafts(user_id: int | None = None, upload_id: int | None = None) -> list:
    """Drafts in creation order, optionally narrowed to a user and/or upload."""
    store = DraftStore()
    if upload_id is not None:
        drafts = store.list_by_upload(upload_id)
        if user_id is not None:
            drafts = [d for d in drafts if d.user_id == user_id]
        return drafts
    if user_id is not None:
        return store.list_by_user(user_id)
    return store.list_all()


# ── Mutations ────────────────────────────────────────────────────────────────


def update_status(draft_id: int, status: str, actor, comments: str | None = None):
    """Move a draft to APPROVED / REJECTED / PENDING_REVIEW.

    Finalization is not reachable from here; use ``mark_final``.
    """
    store = DraftStore()
    draft = _require_draft(store, draft_id)
    if actor.role != ROLE_ADMIN and draft.user_id != actor.id:
        raise PermissionDeniedError(
            user_id=actor.id, action="update this draft", reason="not the draft owner",
        )

    status = (status or "").strip().upper()
    if status == FINAL:
        raise ValidationError("Use the finalize endpoint to mark a draft final")
    if not can_transition(draft.status, status):
        raise ValidationError(
            f"Cannot change draft status from {draft.status} to {status or '<empty>'}",
            details={"current": draft.status, "requested": status},
        )

    previous = draft.status
    draft = store.update_status(draft.id, status, comments)
    write_activity(
        actor=actor,
        action="UPDATE_DRAFT",
        resource_type="DRAFT",
        resource_id=draft.id,
        resource_name=draft.file_name,
        description=f"Changed draft #{draft.draft_number} status {previous} → {status}",
        metadata={"upload_id": draft.upload_id, "from": previous, "to": status},
    )
    db.session.commit()
    return draft


def mark_final(draft_id: int, actor):
    """Accept ``draft_id`` as the final version of its thread.

    Only the receiving party may do this: the admin for a USER_TO_ADMIN
    draft, the owning user for an ADMIN_TO_USER draft.  A thread has at
    most one FINAL draft, and only its latest draft can become it.
    """
    store = DraftStore()
    draft = _require_draft(store, draft_id)

    if store.is_thread_final(draft.upload_id):
        raise ValidationError(
            "This review thread has already been finalized",
            details={"upload_id": draft.upload_id},
        )
    latest = store.latest_for_upload(draft.upload_id)
    if latest is not None and latest.id != draft.id:
        raise ValidationError(
            "Only the latest draft of a thread can be marked final",
            details={"latest_draft_id": latest.id},
        )
    if draft.status != PENDING_REVIEW:
        raise ValidationError(
            "Only drafts awaiting review can be marked final",
            details={"status": draft.status},
        )
    admin_user_id = actor.id if actor.role == ROLE_ADMIN else None
    if not can_mark_final(draft, actor.id, admin_user_id):
        raise PermissionDeniedError(
            user_id=actor.id, action="finalize this draft",
            reason="only the recipient of a draft may mark it final",
        )

    draft = store.mark_final(draft.id, accepted_by=actor.id)
    write_activity(
        actor=actor,
        action="FINALIZE_DRAFT",
        resource_type="DRAFT",
        resource_id=draft.id,
        resource_name=draft.file_name,
        description=f"Accepted draft #{draft.draft_number} as final",
        metadata={"upload_id": draft.upload_id, "draft_number": draft.draft_number},
    )
    db.session.commit()
    logger.info("Draft finalized", extra={"draft_id": draft.id, "upload_id": draft.upload_id})
    return draft
