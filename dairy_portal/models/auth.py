"""
Auth Models — portal users.

Two roles exist: ADMIN (publishes templates, reviews uploads, drives the
draft exchange) and USER (fills in templates, answers admin drafts).
Uploads, drafts and activity logs are owned by a user and are removed
together with it.
"""

from datetime import datetime, timezone

from dairy_portal.models import db

ROLE_ADMIN = "ADMIN"
ROLE_USER = "USER"
VALID_ROLES = frozenset({ROLE_ADMIN, ROLE_USER})


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=ROLE_USER)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships: ORM-level cascade mirrors the ondelete=CASCADE FKs
    uploads = db.relationship(
        "Upload", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    drafts = db.relationship(
        "Draft", back_populates="owner", lazy="dynamic",
        cascade="all, delete-orphan",
        foreign_keys="Draft.user_id",
    )
    activity_logs = db.relationship(
        "ActivityLog", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<User #{self.id} {self.username} ({self.role})>"
