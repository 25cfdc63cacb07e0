# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import User
from .principal import Principal


def _parse_user_id(raw: str | None) -> int | None:
    if not raw or not raw.strip().isdigit():
        return None
    return int(raw.strip())


def require_principal(f):
    """
    Resolve the acting user and expose it as g.principal.

    Authentication happens upstream: the gateway that validated the session
    forwards the user id in X-User-Id and an optional X-Request-Id used for
    log correlation. Returns 401 when the header is missing or the account is
    unknown or deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = _parse_user_id(request.headers.get("X-User-Id"))
        if user_id is None:
            return jsonify({"error": "Authentication required"}), 401

        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            return jsonify({"error": "Invalid or inactive user"}), 401

        g.principal = Principal.from_user(user, request_id=request.headers.get("X-Request-Id"))
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the resolved principal to be an administrator."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, 'principal'):
            return jsonify({"error": "Authentication required"}), 401
        if not g.principal.is_admin:
            return jsonify({"error": "Administrator access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
