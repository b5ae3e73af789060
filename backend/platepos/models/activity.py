from __future__ import annotations

from ..extensions import db
from platepos.time_utils import to_utc_z, utcnow


class Activity(db.Model):
    """Human-readable audit entry: who did what, when. Append-only."""
    __tablename__ = "activities"
    __table_args__ = (
        db.Index("ix_activities_occurred_at", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Not a foreign key: entries outlive deleted users
    user_id = db.Column(db.Integer, nullable=True)
    username = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(16), nullable=True)
    action = db.Column(db.String(512), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.username,
            "role": self.role,
            "action": self.action,
            "occurred_at": to_utc_z(self.occurred_at),
        }
