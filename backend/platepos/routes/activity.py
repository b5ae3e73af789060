# Overview: Read-only activity log route.

from flask import Blueprint, jsonify

from ..decorators import require_auth, require_capability
from ..services.activity_service import list_recent_activity

activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("")
@require_auth
@require_capability("VIEW_ACTIVITY")
def list_activity_route():
    """Newest activity entries first (ACTIVITY_FEED_LIMIT)."""
    entries = list_recent_activity()
    return jsonify({"items": [e.to_dict() for e in entries], "count": len(entries)}), 200
