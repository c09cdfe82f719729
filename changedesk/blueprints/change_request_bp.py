"""
Change Request Blueprint — submission, listing and the review workflow.

Endpoints:
    GET  /api/v1/change-requests?status=     — Requests visible to the viewer
    POST /api/v1/change-requests             — Submit a new request
    GET  /api/v1/change-requests/<id>        — Single request (own or admin)
    POST /api/v1/change-requests/<id>/review  — Pending → Reviewed   (admin)
    POST /api/v1/change-requests/<id>/approve — → Approved           (admin)
    POST /api/v1/change-requests/<id>/reject  — → Rejected, remarks  (admin)
    GET  /api/v1/requesters                  — Names selectable as requester
"""

import logging

from flask import Blueprint, g, jsonify, request

from changedesk.auth import login_required, require_role
from changedesk.blueprints import (
    get_coordinator,
    handle_validation_error,
    json_body,
    result_response,
    text_field,
)
from changedesk.core.exceptions import NotFoundError, ValidationError
from changedesk.models.change_request import STATUS_ALL
from changedesk.models.user import ROLE_ADMIN
from changedesk.utils.errors import E, api_error

logger = logging.getLogger(__name__)

change_request_bp = Blueprint("change_request_bp", __name__, url_prefix="/api/v1")


# ── Error handlers ────────────────────────────────────────────────────────────


@change_request_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


change_request_bp.register_error_handler(ValidationError, handle_validation_error)


# ═════════════════════════════════════════════════════════════════════════
# Listing & detail
# ═════════════════════════════════════════════════════════════════════════


@change_request_bp.route("/change-requests", methods=["GET"])
@login_required
def list_change_requests():
    status = request.args.get("status", STATUS_ALL)
    coordinator = get_coordinator()
    items = coordinator.visible_requests(g.viewer, status)
    return jsonify({
        "title": coordinator.list_title(g.viewer, status),
        "status": status,
        "items": items,
        "total": len(items),
    }), 200


@change_request_bp.route("/change-requests/<request_id>", methods=["GET"])
@login_required
def get_change_request(request_id):
    return jsonify(get_coordinator().get_request(g.viewer, request_id)), 200


@change_request_bp.route("/requesters", methods=["GET"])
@login_required
def list_requesters():
    return jsonify({"requesters": get_coordinator().requester_options()}), 200


# ═════════════════════════════════════════════════════════════════════════
# Submission
# ═════════════════════════════════════════════════════════════════════════


@change_request_bp.route("/change-requests", methods=["POST"])
@login_required
def submit_change_request():
    """
    Body: { "title", "system", "requester", "department", "description",
            "reason", "impact", "priority", "implementationDate" }

    Non-admins always file under their own name; "requester" is ignored.
    """
    data = json_body()
    result = get_coordinator().submit_request(g.viewer, data)
    return result_response(result, 201)


# ═════════════════════════════════════════════════════════════════════════
# Review workflow (admin)
# ═════════════════════════════════════════════════════════════════════════


@change_request_bp.route("/change-requests/<request_id>/review", methods=["POST"])
@require_role(ROLE_ADMIN)
def review_change_request(request_id):
    return result_response(get_coordinator().mark_reviewed(request_id))


@change_request_bp.route("/change-requests/<request_id>/approve", methods=["POST"])
@require_role(ROLE_ADMIN)
def approve_change_request(request_id):
    """Body (optional): { "remarks": "..." }"""
    data = json_body()
    return result_response(get_coordinator().approve(request_id, text_field(data, "remarks")))


@change_request_bp.route("/change-requests/<request_id>/reject", methods=["POST"])
@require_role(ROLE_ADMIN)
def reject_change_request(request_id):
    """Body: { "remarks": "..." } — remarks are mandatory."""
    data = json_body()
    return result_response(get_coordinator().reject(request_id, text_field(data, "remarks") or ""))
