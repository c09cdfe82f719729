"""
User model — login identities for the two-role model (admin / user).

The primary key is the login id, always stored lower-cased so uniqueness
is case-insensitive. ``password_hash`` holds a bcrypt hash; the plain
credential is never persisted or serialized.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from changedesk.models import db

ROLE_ADMIN = "admin"
ROLE_USER = "user"
USER_ROLES = {ROLE_ADMIN, ROLE_USER}


def normalize_user_id(user_id: str | None) -> str:
    """Canonical form of a login id (trimmed, lower-cased); "" for non-strings."""
    if not isinstance(user_id, str):
        return ""
    return user_id.strip().lower()


@dataclass(frozen=True)
class Viewer:
    """The logged-in identity as held in the session."""

    id: str
    role: str
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_user(cls, user) -> "Viewer":
        return cls(id=user.id, role=user.role, name=user.name)

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role, "name": self.name}


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(100), primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)  # admin, user
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
        }

    def __repr__(self):
        return f"<User {self.id} ({self.role})>"
