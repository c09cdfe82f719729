"""
Auth Blueprint — session login and self-service password change.

Endpoints:
  POST /api/v1/auth/login            — User ID + password → session cookie
  POST /api/v1/auth/logout           — Clear the session
  GET  /api/v1/auth/me               — Current viewer
  POST /api/v1/auth/change-password  — Change own password
"""

from flask import Blueprint, g, jsonify

from changedesk.auth import login_required, sign_in, sign_out
from changedesk.blueprints import (
    get_coordinator,
    handle_validation_error,
    json_body,
    result_response,
    text_field,
)
from changedesk.core.exceptions import ValidationError
from changedesk.models.user import Viewer
from changedesk.utils.errors import E, api_error

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/v1/auth")
auth_bp.register_error_handler(ValidationError, handle_validation_error)


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with user id + password, start a session.

    Body: { "id": "...", "password": "..." }
    """
    data = json_body()
    user_id = (text_field(data, "id", "user_id") or "").strip()
    password = text_field(data, "password") or ""

    if not user_id or not password:
        return api_error(E.VALIDATION_REQUIRED, "User ID and password are required")

    result = get_coordinator().login(user_id, password)
    if result.success:
        sign_in(Viewer(**result.data))
    return result_response(result)


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/logout
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/logout", methods=["POST"])
def logout():
    sign_out()
    return jsonify({"success": True, "message": "Logged out"}), 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": g.viewer.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/change-password
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    """
    Body: { "current_password": "...", "new_password": "...", "confirm_password": "..." }

    confirm_password is optional; when given it must match new_password.
    """
    data = json_body()
    result = get_coordinator().change_password(
        g.viewer,
        text_field(data, "current_password") or "",
        text_field(data, "new_password") or "",
        text_field(data, "confirm_password"),
    )
    return result_response(result)
