"""
Draft Store — persistence for review-thread drafts.

Holds drafts, assigns per-upload draft numbers and applies status
mutations.  The store performs no authorization, no referential lookups
and no transition validation; those belong to ``draft_rules`` and
``draft_service``.

Missing ids are signalled by returning ``None`` (never by raising), and a
miss leaves every row untouched.

Usage:
    from dairy_portal.services.draft_store import DraftStore

    store = DraftStore()
    n = store.next_draft_number(upload_id)
    draft = store.create(upload_id=upload_id, draft_number=n, ...)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select

from dairy_portal.models import db
from dairy_portal.models.draft import FINAL, PENDING_REVIEW, Draft

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DraftStore:
    """SQLAlchemy-backed draft collection.

    Writes are flushed, not committed: the calling service owns the
    transaction so that a draft and its activity-log row land together.
    """

    def __init__(self, session=None) -> None:
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    # ── Writes ───────────────────────────────────────────────────────────────

    def create(self, **fields) -> Draft:
        """Insert a draft.  ``status`` defaults to PENDING_REVIEW.

        Snapshot dicts (``user_snapshot``, ``template_snapshot``,
        ``upload_snapshot``) are stored exactly as supplied.
        """
        fields.setdefault("status", PENDING_REVIEW)
        now = _now()
        fields.setdefault("created_at", now)
        fields.setdefault("updated_at", now)
        draft = Draft(**fields)
        self.session.add(draft)
        self.session.flush()
        logger.debug(
            "Draft created",
            extra={"draft_id": draft.id, "upload_id": draft.upload_id,
                   "draft_number": draft.draft_number},
        )
        return draft

    def update_status(self, draft_id: int, status: str, comments: str | None = None) -> Draft | None:
        """Overwrite ``status`` (and ``comments`` when given).  None → not found."""
        draft = self.get(draft_id)
        if draft is None:
            return None
        draft.status = status
        if comments is not None:
            draft.comments = comments
        draft.updated_at = _now()
        self.session.flush()
        return draft

    def mark_final(self, draft_id: int, accepted_by: int | None = None) -> Draft | None:
        """Set ``status = FINAL`` unconditionally.  None → not found."""
        draft = self.get(draft_id)
        if draft is None:
            return None
        now = _now()
        draft.status = FINAL
        draft.accepted_by = accepted_by
        draft.accepted_at = now
        draft.updated_at = now
        self.session.flush()
        return draft

    # ── Reads ────────────────────────────────────────────────────────────────

    def get(self, draft_id) -> Draft | None:
        try:
            pk = int(draft_id)
        except (TypeError, ValueError):
            return None
        return self.session.get(Draft, pk)

    def next_draft_number(self, upload_id: int) -> int:
        """1 when the upload has no drafts, else max(draft_number) + 1.

        Read from the persisted rows on every call; nothing is cached.
        """
        current = self.session.execute(
            select(func.max(Draft.draft_number)).where(Draft.upload_id == upload_id)
        ).scalar()
        return 1 if current is None else current + 1

    def latest_for_upload(self, upload_id: int) -> Draft | None:
        return self.session.execute(
            select(Draft)
            .where(Draft.upload_id == upload_id)
            .order_by(Draft.draft_number.desc())
            .limit(1)
        ).scalar_one_or_none()

    def list_all(self) -> list[Draft]:
        return list(self.session.execute(select(Draft).order_by(Draft.id)).scalars())

    def list_by_user(self, user_id: int) -> list[Draft]:
        return list(
            self.session.execute(
                select(Draft).where(Draft.user_id == user_id).order_by(Draft.id)
            ).scalars()
        )

    def list_by_upload(self, upload_id: int) -> list[Draft]:
        return list(
            self.session.execute(
                select(Draft).where(Draft.upload_id == upload_id).order_by(Draft.id)
            ).scalars()
        )

    def is_thread_final(self, upload_id: int) -> bool:
        """True once any draft of the upload's thread has been finalized."""
        count = self.session.execute(
            select(func.count(Draft.id)).where(
                Draft.upload_id == upload_id, Draft.status == FINAL,
            )
        ).scalar()
        return bool(count)
