"""
Activity Log Service — read side of the append-only activity trail.

Writes go through ``dairy_portal.models.activity.write_activity`` from the
service that performs the action.  This module answers the admin and
user log views: filtered listings (newest first) and aggregate stats.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone

from sqlalchemy import select

from dairy_portal.models import db
from dairy_portal.models.activity import ActivityLog


def _as_aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def list_activity(
    user_id: int | None = None,
    username: str | None = None,
    role: str | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[ActivityLog]:
    """Return activity rows matching every given filter, newest first.

    ``username`` is a case-insensitive substring match; the others are
    exact.  Date bounds are inclusive.
    """
    stmt = select(ActivityLog)
    if user_id is not None:
        stmt = stmt.where(ActivityLog.user_id == user_id)
    if username:
        stmt = stmt.where(ActivityLog.username.ilike(f"%{username}%"))
    if role:
        stmt = stmt.where(ActivityLog.user_role == role.upper())
    if action:
        stmt = stmt.where(ActivityLog.action == action)
    if resource_type:
        stmt = stmt.where(ActivityLog.resource_type == resource_type.upper())
    if start_date:
        stmt = stmt.where(ActivityLog.created_at >= _as_aware(start_date))
    if end_date:
        stmt = stmt.where(ActivityLog.created_at <= _as_aware(end_date))
    stmt = stmt.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    return list(db.session.execute(stmt).scalars())


def activity_stats(user_id: int | None = None) -> dict:
    """Totals by action and by resource type, plus the ten latest rows."""
    logs = list_activity(user_id=user_id)
    return {
        "total_actions": len(logs),
        "actions_by_type": dict(Counter(log.action for log in logs)),
        "actions_by_resource": dict(Counter(log.resource_type for log in logs)),
        "recent_activity": [log.to_dict() for log in logs[:10]],
    }
