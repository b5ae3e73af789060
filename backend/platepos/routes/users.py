# Overview: Flask API routes for staff account management.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_capability
from ..models.auth import ROLE_ADMIN
from ..services import auth_service
from ..services.activity_service import record_activity
from ..services.auth_service import PasswordValidationError, PinValidationError, UserError

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_capability("MANAGE_USERS")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@users_bp.post("")
@require_auth
@require_capability("MANAGE_USERS")
def create_user_route():
    """
    Create a staff account.

    Body: {username, password, pin, site?, role? (default admin)}
    """
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role") or ROLE_ADMIN,
            pin=data.get("pin"),
            site=data.get("site"),
        )
        record_activity(g.current_user, f"Added {user.role}: {user.username}")
        return jsonify({"message": "User added successfully", "user": user.to_dict()}), 201

    except (PasswordValidationError, PinValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except UserError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_capability("MANAGE_USERS")
def delete_user_route(user_id: int):
    try:
        username = auth_service.delete_user(user_id, g.current_user)
        record_activity(g.current_user, f"Deleted user: {username}")
        return jsonify({"message": "User deleted successfully"}), 200

    except UserError as e:
        status = 404 if e.details.get("user_id") is not None else 400
        return jsonify({"error": str(e), "details": e.details}), status
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
