# Overview: Best-effort activity log ("who did what"); never transactional with stock.

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import Activity

logger = logging.getLogger(__name__)


def record_activity(user, action: str) -> Activity | None:
    """
    Append an activity entry for user.

    Call this AFTER the domain transaction has committed. It commits on its
    own; any failure is logged and swallowed, so a broken audit trail can
    never undo a sale or a stock change. Returns None when nothing was
    recorded.
    """
    if user is None or not getattr(user, "username", None):
        logger.warning("Skipping activity log, no acting user: %s", action)
        return None

    try:
        entry = Activity(
            user_id=user.id,
            username=user.username,
            role=getattr(user, "role", None),
            action=action[:512],
        )
        db.session.add(entry)
        db.session.commit()
        return entry
    except Exception:
        db.session.rollback()
        logger.exception("Activity log error for %s: %s", user.username, action)
        return None


def list_recent_activity(limit: int | None = None) -> list[Activity]:
    if limit is None:
        limit = current_app.config.get("ACTIVITY_FEED_LIMIT", 100)
    return (
        db.session.query(Activity)
        .order_by(Activity.occurred_at.desc(), Activity.id.desc())
        .limit(limit)
        .all()
    )
