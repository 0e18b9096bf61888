"""
Report Template model — admin-provided blank report formats.

Versioning is append-only: publishing a new version of a template inserts
a new row in the same family (``family_id`` = id of version 1) and flips
``is_active`` off on the previous row.  Rows are never overwritten, so
drafts and uploads that point at an older version keep a valid reference.
"""

from datetime import datetime, timezone

from dairy_portal.models import db


class Template(db.Model):
    __tablename__ = "templates"
    __table_args__ = (
        db.UniqueConstraint("family_id", "version", name="uq_templates_family_version"),
        db.Index("ix_templates_fy_active", "financial_year", "is_active"),
    )

    id = db.Column(db.Integer, primary_key=True)
    family_id = db.Column(
        db.Integer,
        nullable=True,
        index=True,
        comment="id of version 1 of this template; NULL only until the first flush",
    )
    version = db.Column(db.Integer, nullable=False, default=1)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    file_name = db.Column(db.String(255), nullable=False)
    file_url = db.Column(db.String(1024), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    financial_year = db.Column(db.String(10), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    uploaded_by = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "family_id": self.family_id,
            "version": self.version,
            "name": self.name,
            "description": self.description,
            "file_name": self.file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "financial_year": self.financial_year,
            "is_active": self.is_active,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Template #{self.id} {self.name!r} v{self.version}>"
