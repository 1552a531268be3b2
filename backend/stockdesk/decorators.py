# Overview: Request and permission decorators for API routes.

from dataclasses import dataclass
from functools import wraps
from flask import current_app, request, jsonify, g

from .permissions import ADMIN_ROLE, role_has_permission


@dataclass(frozen=True)
class Caller:
    """Identity resolved from the bearer token issued by the identity provider."""
    token_id: str
    role: str


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def _resolve_caller(token: str) -> Caller | None:
    role = current_app.config.get("API_TOKENS", {}).get(token)
    if role is None:
        return None
    # Only a short prefix is kept for log lines
    return Caller(token_id=token[:6], role=role)


def require_auth(f):
    """
    Require a valid bearer token and set g.current_user.

    Identity is owned by the external provider; this service only maps a
    token to a role. AUTH_DISABLED (tests, local dev) acts as an admin caller.

    Returns 401 if:
    - No Authorization header
    - Token not recognised
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.config.get("AUTH_DISABLED"):
            g.current_user = Caller(token_id="local", role=ADMIN_ROLE)
            return f(*args, **kwargs)

        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        caller = _resolve_caller(token)

        if not caller:
            current_app.logger.warning("Rejected unknown token on %s %s", request.method, request.path)
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = caller
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission for the caller's role."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            caller = g.current_user
            if not role_has_permission(caller.role, permission_code):
                current_app.logger.warning(
                    "Permission %s denied for role %s on %s",
                    permission_code, caller.role, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
