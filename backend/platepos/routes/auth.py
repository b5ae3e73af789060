# Overview: Flask API routes for login/logout.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import bearer_token, require_auth
from ..permissions import capabilities_for
from ..services import auth_service, session_service
from ..services.activity_service import record_activity

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a bearer session.

    Body: {username, password, pin} (pin required for admins).
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "Username and password required"}), 400

        user = auth_service.authenticate(username, password, data.get("pin"))
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(user.id)
        record_activity(user, "Logged in")

        return jsonify({
            "message": "Login successful",
            "token": token,
            "user": user.to_dict(),
            "capabilities": capabilities_for(user.role),
            "session": session.to_dict(),
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(bearer_token())
        record_activity(g.current_user, "Logged out")
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "capabilities": capabilities_for(user.role),
    }), 200
