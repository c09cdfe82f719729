"""JSON error bodies for the ChangeDesk API.

Every failed request answers with ``{"error": <message>, "code": <E.*>}``
plus an optional ``details`` map of field → problem, e.g.::

    return api_error(E.VALIDATION_REQUIRED, "Change request is incomplete",
                     details={"reason": "Reason for change is required."})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes carried in the ``code`` field of an error body."""

    # Bad input – 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Login / session – 401
    AUTH_FAILED = "ERR_AUTH_FAILED"
    AUTH_REQUIRED = "ERR_AUTH_REQUIRED"

    # Below the admin role – 403
    FORBIDDEN = "ERR_FORBIDDEN"

    # Unknown or hidden user / change request / department – 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Duplicate user id or department, department in use, self-delete – 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"

    # Store failures – 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.AUTH_FAILED: 401,
    E.AUTH_REQUIRED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` for a failed request; status defaults from ``STATUS_BY_CODE``."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)
