"""
ChangeDesk — IT Change Request Tracker
Session Authentication & Authorization.

Provides:
    - Session helpers: sign a viewer in/out of the Flask session cookie
    - login_required decorator (401 without a session)
    - Role-based access control decorator (403 below the required role)
    - Content-Type enforcement for state-changing API requests

Security model:
    - Every /api/v1/* endpoint requires a signed-in session, except
      login and the health probes
    - Admin endpoints (user management, departments, review/approve/reject)
      require the 'admin' role
"""

import functools
import logging

from flask import g, jsonify, request, session

from changedesk.models.user import ROLE_ADMIN, ROLE_USER, Viewer
from changedesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

SESSION_KEY = "viewer"

# Role hierarchy: admin > user
ROLE_HIERARCHY = {
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_USER},
    ROLE_USER: {ROLE_USER},
}

# Paths reachable without a session
_PUBLIC_PATHS = frozenset({"/api/v1/auth/login", "/api/v1/auth/logout"})


# ── Session helpers ──────────────────────────────────────────────────────────

def sign_in(viewer: Viewer):
    session.clear()
    session[SESSION_KEY] = viewer.to_dict()
    session.permanent = True


def sign_out():
    session.clear()


def current_viewer() -> Viewer | None:
    """The viewer stored in the session cookie, or None."""
    data = session.get(SESSION_KEY)
    if not data:
        return None
    try:
        return Viewer(id=data["id"], role=data["role"], name=data["name"])
    except (KeyError, TypeError):
        logger.warning("Discarding malformed session payload")
        session.pop(SESSION_KEY, None)
        return None


# ── Decorators ───────────────────────────────────────────────────────────────

def login_required(f):
    """
    Decorator: require a signed-in session.

    Sets g.viewer to the session's Viewer.
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        viewer = current_viewer()
        if viewer is None:
            return api_error(E.AUTH_REQUIRED, "Authentication required")
        g.viewer = viewer
        return f(*args, **kwargs)
    return decorated


def require_role(minimum_role: str):
    """
    Decorator: require a minimum role level.

    Usage:
        @require_role("admin")
        def delete_user(user_id): ...
    """
    def decorator(f):
        @functools.wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            allowed = ROLE_HIERARCHY.get(g.viewer.role, set())
            if minimum_role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    g.viewer.role, minimum_role, request.path,
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── CSRF protection for API ──────────────────────────────────────────────────

def _check_content_type():
    """
    For state-changing requests with a body, require
    Content-Type: application/json. HTML forms cannot send it.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return jsonify({
                "error": "Content-Type must be application/json for state-changing requests"
            }), 415
    return None


def init_auth(app):
    """
    Install the API guard on the Flask app.

    - Enforces JSON bodies on state-changing API calls
    - Rejects sessionless calls outside login and health
    """
    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith("/api/v1/health"):
            return None
        if request.method == "OPTIONS":
            return None

        csrf_error = _check_content_type()
        if csrf_error:
            return csrf_error

        if request.path in _PUBLIC_PATHS:
            return None

        viewer = current_viewer()
        if viewer is None:
            return api_error(E.AUTH_REQUIRED, "Authentication required")
        g.viewer = viewer
        return None

    logger.info("Auth middleware installed")
