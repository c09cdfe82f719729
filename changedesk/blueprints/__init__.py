"""
ChangeDesk — IT Change Request Tracker
Blueprint registry and shared view helpers.
"""

from flask import current_app, jsonify, request

from changedesk.core.exceptions import ValidationError
from changedesk.utils.errors import E, api_error


def get_coordinator():
    """The AppCoordinator built by the application factory."""
    return current_app.extensions["changedesk"]


def result_response(result, status: int = 200):
    """Render an OperationResult: JSON body on success, api_error otherwise."""
    if not result.success:
        return api_error(result.error_code, result.message, details=result.details or None)
    return jsonify(result.to_dict()), status


def json_body() -> dict:
    """The request's JSON object; {} for a missing, malformed or non-object body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def text_field(data: dict, *keys: str) -> str | None:
    """First non-empty value among ``keys``.

    Raises:
        ValidationError: that value is not a string.
    """
    for key in keys:
        value = data.get(key)
        if value is None or value == "":
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a string", details={key: "must be a string"})
        return value
    return None


def handle_validation_error(error: ValidationError):
    return api_error(E.VALIDATION_INVALID, str(error), details=error.details or None)
