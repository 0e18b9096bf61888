"""
Draft Review model — one artifact exchanged between admin and user.

A review thread is keyed by the originating Upload.  Drafts in a thread
are numbered 1, 2, 3, … in creation order; ``(upload_id, draft_number)``
is unique so two concurrent submissions cannot both claim a number.

Finality has a single source of truth: ``status == "FINAL"``.  The
``is_final`` view is derived and is not stored.

Snapshots:
    ``user_snapshot``, ``template_snapshot`` and ``upload_snapshot`` are
    copied at creation time for display and are never re-synced with the
    live rows they were taken from.  A renamed user or a new template
    version does not alter an existing draft.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from dairy_portal.models import db

# ── Constants ─────────────────────────────────────────────────────────────────

ADMIN_TO_USER = "ADMIN_TO_USER"
USER_TO_ADMIN = "USER_TO_ADMIN"
VALID_DRAFT_TYPES = frozenset({ADMIN_TO_USER, USER_TO_ADMIN})

PENDING_REVIEW = "PENDING_REVIEW"
APPROVED = "APPROVED"
REJECTED = "REJECTED"
FINAL = "FINAL"
VALID_DRAFT_STATUSES = frozenset({PENDING_REVIEW, APPROVED, REJECTED, FINAL})


# ── Snapshot value objects ────────────────────────────────────────────────────


@dataclass(frozen=True)
class UserSnapshot:
    id: int
    name: str
    username: str

    @classmethod
    def of(cls, user) -> "UserSnapshot":
        return cls(id=user.id, name=user.name, username=user.username)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TemplateSnapshot:
    id: int
    name: str
    financial_year: str
    version: int

    @classmethod
    def of(cls, template) -> "TemplateSnapshot":
        return cls(
            id=template.id,
            name=template.name,
            financial_year=template.financial_year,
            version=template.version,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class UploadSnapshot:
    id: int
    file_name: str
    uploaded_at: str | None

    @classmethod
    def of(cls, upload) -> "UploadSnapshot":
        return cls(
            id=upload.id,
            file_name=upload.file_name,
            uploaded_at=upload.created_at.isoformat() if upload.created_at else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


# ── Model ─────────────────────────────────────────────────────────────────────


class Draft(db.Model):
    __tablename__ = "drafts"
    __table_args__ = (
        db.UniqueConstraint("upload_id", "draft_number", name="uq_drafts_upload_number"),
        db.Index("ix_drafts_user_number", "user_id", "draft_number"),
    )

    id = db.Column(db.Integer, primary_key=True)
    draft_number = db.Column(db.Integer, nullable=False)
    draft_type = db.Column(
        db.String(20),
        nullable=False,
        comment="ADMIN_TO_USER | USER_TO_ADMIN — direction of this draft",
    )
    status = db.Column(
        db.String(20),
        nullable=False,
        default=PENDING_REVIEW,
        comment="PENDING_REVIEW | APPROVED | REJECTED | FINAL",
    )
    comments = db.Column(db.Text)

    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(1024), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    financial_year = db.Column(db.String(10))

    # Associations are by identifier; the snapshots below carry display data
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning (non-admin) user of the review thread",
    )
    upload_id = db.Column(
        db.Integer,
        db.ForeignKey("uploads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    template_id = db.Column(
        db.Integer,
        db.ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    user_snapshot = db.Column(db.JSON, default=dict)
    template_snapshot = db.Column(db.JSON, default=dict)
    upload_snapshot = db.Column(db.JSON, default=dict)

    accepted_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    accepted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    owner = db.relationship("User", back_populates="drafts", foreign_keys=[user_id])
    upload = db.relationship("Upload", back_populates="drafts")

    @property
    def is_final(self) -> bool:
        return self.status == FINAL

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "draft_number": self.draft_number,
            "draft_type": self.draft_type,
            "status": self.status,
            "is_final": self.is_final,
            "accepted_as_final": self.is_final,
            "comments": self.comments,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "financial_year": self.financial_year,
            "user_id": self.user_id,
            "upload_id": self.upload_id,
            "template_id": self.template_id,
            "user": self.user_snapshot or None,
            "template": self.template_snapshot or None,
            "original_upload": self.upload_snapshot or None,
            "accepted_by": self.accepted_by,
            "accepted_at": self.accepted_at.isoformat() if self.accepted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Draft #{self.id} upload={self.upload_id} n={self.draft_number} {self.status}>"
