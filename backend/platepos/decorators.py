# Overview: Request and capability decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import is_allowed
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer session.

    Sets:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext

    Returns 401 if the header is missing, the token is unknown, revoked or
    expired, or the user is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_capability(action: str):
    """Require the current user's role to grant action (see permissions.ROLE_CAPABILITIES)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not is_allowed(user.role, action):
                current_app.logger.warning(
                    "Capability %s denied for %s (%s) on %s %s",
                    action, user.username, user.role, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_capability": action,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_capability(*actions):
    """Require any of the specified capabilities."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            if not any(is_allowed(user.role, action) for action in actions):
                current_app.logger.warning(
                    "Capabilities %s denied for %s (%s) on %s %s",
                    ",".join(actions), user.username, user.role, request.method, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_capabilities": list(actions),
                    "message": f"Requires any of: {', '.join(actions)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
