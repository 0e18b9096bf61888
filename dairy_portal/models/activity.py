"""
Activity Log model — immutable, append-only record of portal actions.

One row per action (login, template upload, draft finalization, …).
Rows are never updated or deleted by the application; they disappear only
when the owning user is deleted.
"""

from datetime import datetime, timezone

from dairy_portal.models import db

RESOURCE_TYPES = frozenset({"TEMPLATE", "UPLOAD", "DRAFT", "USER", "LOGIN", "LOGOUT"})

ACTIVITY_ACTIONS = {
    # Session
    "LOGIN",
    "LOGOUT",
    # Templates
    "CREATE_TEMPLATE",
    "PUBLISH_TEMPLATE_VERSION",
    # Uploads
    "UPLOAD_TEMPLATE",
    "UPDATE_UPLOAD",
    # Drafts
    "CREATE_DRAFT",
    "UPDATE_DRAFT",
    "FINALIZE_DRAFT",
    # User management
    "CREATE_USER",
    "UPDATE_USER",
    "DELETE_USER",
}


class ActivityLog(db.Model):
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_user", "user_id"),
        db.Index("idx_activity_action", "action"),
        db.Index("idx_activity_created", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Actor snapshot so the trail stays readable after renames
    username = db.Column(db.String(100), nullable=False)
    user_role = db.Column(db.String(10), nullable=False)

    action = db.Column(db.String(60), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    resource_type = db.Column(
        db.String(20), nullable=False,
        comment="TEMPLATE | UPLOAD | DRAFT | USER | LOGIN | LOGOUT",
    )
    resource_id = db.Column(db.String(64))
    resource_name = db.Column(db.String(255))

    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(512))
    metadata_json = db.Column("metadata", db.JSON, default=dict)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", back_populates="activity_logs")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "user_role": self.user_role,
            "action": self.action,
            "description": self.description,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "resource_name": self.resource_name,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "metadata": self.metadata_json or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action} by {self.username}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_activity(
    *,
    actor,
    action: str,
    resource_type: str,
    description: str,
    resource_id=None,
    resource_name: str | None = None,
    metadata: dict | None = None,
) -> ActivityLog:
    """
    Append a single activity row for ``actor`` (a User instance).  Uses
    ``flush`` so callers keep transaction control.

    Request metadata (IP, user agent) is picked up when a request context
    is active.
    """
    ip_address = None
    user_agent = None
    from flask import has_request_context, request
    if has_request_context():
        forwarded_for = request.headers.get("X-Forwarded-For", "")
        ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:512] or None

    log = ActivityLog(
        user_id=actor.id,
        username=actor.username,
        user_role=actor.role,
        action=action,
        description=description,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        resource_name=resource_name,
        ip_address=ip_address,
        user_agent=user_agent,
        metadata_json=metadata or {},
    )
    db.session.add(log)
    db.session.flush()
    return log
