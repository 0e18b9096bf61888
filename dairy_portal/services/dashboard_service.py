"""
Dashboard Service — read-only aggregates for the admin and user home views.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select

from dairy_portal.models import db
from dairy_portal.models.activity import ActivityLog
from dairy_portal.models.auth import User
from dairy_portal.models.draft import APPROVED, PENDING_REVIEW, Draft
from dairy_portal.models.template import Template
from dairy_portal.models.upload import VALID_UPLOAD_STATUSES, Upload

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(item: dict):
    """Newest-first key tolerant of naive timestamps (SQLite drops tzinfo)."""
    value = item.get("_created")
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _count(model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return db.session.execute(stmt).scalar_one()


def _recent(model, limit: int, *criteria) -> list:
    stmt = select(model)
    if criteria:
        stmt = stmt.where(*criteria)
    stmt = stmt.order_by(model.created_at.desc(), model.id.desc()).limit(limit)
    return list(db.session.execute(stmt).scalars())


def admin_stats() -> dict:
    by_status = dict(
        db.session.execute(
            select(Upload.status, func.count()).group_by(Upload.status)
        ).all()
    )
    return {
        "total_users": _count(User),
        "active_templates": _count(Template, Template.is_active.is_(True)),
        "total_uploads": _count(Upload),
        "total_drafts": _count(Draft),
        "total_activity_logs": _count(ActivityLog),
        "uploads_by_status": {s: by_status.get(s, 0) for s in sorted(VALID_UPLOAD_STATUSES)},
        "recent_uploads": [u.to_dict(include_refs=True) for u in _recent(Upload, 5)],
        "recent_drafts": [d.to_dict() for d in _recent(Draft, 5)],
    }


def _draft_item(draft: Draft) -> dict:
    return {
        "type": "draft",
        "id": draft.id,
        "file_name": draft.file_name,
        "status": draft.status,
        "draft_number": draft.draft_number,
        "draft_type": draft.draft_type,
        "upload_id": draft.upload_id,
        "financial_year": draft.financial_year,
        "comments": draft.comments,
        "file_url": draft.file_url,
        "file_size": draft.file_size,
        "created_at": draft.created_at.isoformat() if draft.created_at else None,
        "updated_at": draft.updated_at.isoformat() if draft.updated_at else None,
        "_created": draft.created_at,
    }


def _upload_item(upload: Upload) -> dict:
    return {
        "type": "upload",
        "id": upload.id,
        "file_name": upload.file_name,
        "status": upload.status,
        "financial_year": upload.financial_year,
        "file_url": upload.file_url,
        "file_size": upload.file_size,
        "created_at": upload.created_at.isoformat() if upload.created_at else None,
        "updated_at": upload.updated_at.isoformat() if upload.updated_at else None,
        "_created": upload.created_at,
    }


def user_reports(user_id: int) -> list[dict]:
    """The user's drafts and uploads merged into one list, newest first."""
    drafts = db.session.execute(select(Draft).where(Draft.user_id == user_id)).scalars()
    uploads = db.session.execute(select(Upload).where(Upload.user_id == user_id)).scalars()
    items = [_draft_item(d) for d in drafts] + [_upload_item(u) for u in uploads]
    items.sort(key=_sort_key, reverse=True)
    for item in items:
        item.pop("_created")
    return items


def user_dashboard(user_id: int) -> dict:
    reports = user_reports(user_id)
    drafts = [r for r in reports if r["type"] == "draft"]
    return {
        "total_uploads": len(reports) - len(drafts),
        "total_drafts": len(drafts),
        "pending_drafts": sum(1 for d in drafts if d["status"] == PENDING_REVIEW),
        "approved_drafts": sum(1 for d in drafts if d["status"] == APPROVED),
        "recent_activity": reports[:5],
    }
