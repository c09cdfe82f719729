"""
Admin Blueprint — user management and the department registry.

Endpoints:
    GET    /api/v1/admin/users                 — Non-admin users, by name
    POST   /api/v1/admin/users                 — Create a user (role "user")
    PUT    /api/v1/admin/users/<id>/password   — Reset a user's password
    DELETE /api/v1/admin/users/<id>            — Delete a user
    GET    /api/v1/admin/departments           — Departments + in-use flag
    POST   /api/v1/admin/departments           — Add a department
    DELETE /api/v1/admin/departments/<name>    — Remove an unused department

Everything except the department listing requires the admin role.
"""

from flask import Blueprint, g, jsonify

from changedesk.auth import login_required, require_role
from changedesk.blueprints import (
    get_coordinator,
    handle_validation_error,
    json_body,
    result_response,
    text_field,
)
from changedesk.core.exceptions import ValidationError
from changedesk.models.user import ROLE_ADMIN

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/v1/admin")
admin_bp.register_error_handler(ValidationError, handle_validation_error)


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════

@admin_bp.route("/users", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_users():
    users = get_coordinator().managed_users()
    return jsonify({"items": users, "total": len(users)}), 200


@admin_bp.route("/users", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_user():
    """Body: { "name": "...", "id": "...", "password": "..." }"""
    data = json_body()
    result = get_coordinator().create_user(
        text_field(data, "name") or "",
        text_field(data, "id", "user_id") or "",
        text_field(data, "password") or "",
    )
    return result_response(result, 201)


@admin_bp.route("/users/<user_id>/password", methods=["PUT"])
@require_role(ROLE_ADMIN)
def set_user_password(user_id):
    """Body: { "new_password": "..." }"""
    data = json_body()
    new_password = text_field(data, "new_password", "password") or ""
    return result_response(get_coordinator().set_user_password(user_id, new_password))


@admin_bp.route("/users/<user_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_user(user_id):
    return result_response(get_coordinator().delete_user(g.viewer, user_id))


# ═══════════════════════════════════════════════════════════════
# Departments
# ═══════════════════════════════════════════════════════════════

@admin_bp.route("/departments", methods=["GET"])
@login_required
def list_departments():
    return jsonify(get_coordinator().department_overview()), 200


@admin_bp.route("/departments", methods=["POST"])
@require_role(ROLE_ADMIN)
def add_department():
    """Body: { "name": "..." }"""
    data = json_body()
    return result_response(get_coordinator().add_department(text_field(data, "name") or ""), 201)


@admin_bp.route("/departments/<path:name>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_department(name):
    return result_response(get_coordinator().delete_department(name))
