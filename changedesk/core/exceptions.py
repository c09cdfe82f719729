"""
Application-wide exception hierarchy.

Services raise these types; blueprints and the coordinator translate them
into typed results / HTTP status codes in one place.

Usage:
    from changedesk.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="ChangeRequest", resource_id="1718-abc")
    raise ValidationError("Rejection remarks are required", details={"remarks": "..."})
"""


class ChangeDeskError(Exception):
    """Base class for expected domain failures."""


class NotFoundError(ChangeDeskError):
    """Raised when a referenced record does not exist.

    Args:
        resource: Human-readable entity name (e.g. "User", "ChangeRequest").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(ChangeDeskError):
    """Raised when input is well-formed but violates a business rule
    (missing rejection remarks, short password, missing request fields).

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown, keyed by field name.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(ChangeDeskError):
    """Raised when a create would duplicate a unique key (DuplicateKey).

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
        message: Optional user-facing message overriding the default.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(message or f"{resource} with {field}={value!r} already exists")


class AuthenticationError(ChangeDeskError):
    """Raised on credential mismatch.

    The message is deliberately generic: unknown id and wrong password
    are reported identically.
    """

    def __init__(self, message: str = "Invalid User ID or Password. Please try again.") -> None:
        super().__init__(message)


class ExternalServiceError(ChangeDeskError):
    """Raised when an external collaborator (LLM provider) fails.

    Callers recover locally with a fallback value; this never reaches
    an HTTP response.
    """

    def __init__(self, service: str, reason: str | None = None) -> None:
        self.service = service
        self.reason = reason
        msg = f"{service} unavailable"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
