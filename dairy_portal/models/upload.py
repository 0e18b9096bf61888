"""
Upload model — a user's filled-template submission.

An upload opens a review thread: once an admin approves it, drafts are
exchanged against it (see ``dairy_portal.models.draft``).
"""

from datetime import datetime, timezone

from dairy_portal.models import db

UPLOAD_PENDING = "PENDING"
UPLOAD_APPROVED = "APPROVED"
UPLOAD_REJECTED = "REJECTED"
VALID_UPLOAD_STATUSES = frozenset({UPLOAD_PENDING, UPLOAD_APPROVED, UPLOAD_REJECTED})


class Upload(db.Model):
    __tablename__ = "uploads"
    __table_args__ = (
        db.Index("ix_uploads_user_status", "user_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    template_id = db.Column(
        db.Integer,
        db.ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(1024), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    financial_year = db.Column(db.String(10), nullable=False)
    description = db.Column(db.Text)
    status = db.Column(
        db.String(20),
        nullable=False,
        default=UPLOAD_PENDING,
        comment="PENDING | APPROVED | REJECTED",
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user = db.relationship("User", back_populates="uploads")
    template = db.relationship("Template")
    drafts = db.relationship(
        "Draft", back_populates="upload", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Draft.draft_number",
    )

    def to_dict(self, include_refs=False):
        d = {
            "id": self.id,
            "user_id": self.user_id,
            "template_id": self.template_id,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "financial_year": self.financial_year,
            "description": self.description,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_refs:
            d["user"] = (
                {"id": self.user.id, "name": self.user.name, "username": self.user.username}
                if self.user else None
            )
            d["template"] = (
                {"name": self.template.name, "financial_year": self.template.financial_year}
                if self.template else None
            )
        return d

    def __repr__(self):
        return f"<Upload #{self.id} {self.file_name} {self.status}>"
