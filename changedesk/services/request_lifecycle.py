"""
Change Request Lifecycle Service

Manages change request creation and status transitions with:
  - Transition validation (REQUEST_TRANSITIONS)
  - Mandatory remarks on reject, optional on approve
  - Summary attached at creation (external summarizer, fails soft)

3 transitions:
  mark_reviewed, approve, reject

Transitions that do not apply (terminal status, already reviewed, unknown
id) are silent no-ops: the result carries ``changed=False`` and nothing is
written. Only a reject without remarks is refused outright.

Usage:
    from changedesk.services.request_lifecycle import RequestLifecycle

    lifecycle = RequestLifecycle(store, summarizer)
    cr = lifecycle.create_request({...})
    result = lifecycle.reject(cr.id, "insufficient testing")
"""

import logging
import secrets
import string
import time

from changedesk.core.exceptions import ValidationError
from changedesk.models.change_request import (
    PRIORITIES,
    REQUEST_TRANSITIONS,
    STATUS_PENDING,
    ChangeRequest,
    utc_now,
)

logger = logging.getLogger(__name__)

# field → message shown when the field is missing
REQUIRED_FIELDS = {
    "title": "Request title is required.",
    "system": "System/Module is required.",
    "requester": "Requester name is required.",
    "department": "Department must be selected.",
    "description": "Description of change is required.",
    "reason": "Reason for change is required.",
    "impact": "Impact assessment is required.",
    "priority": "Priority must be selected.",
    "implementation_date": "Target implementation date is required.",
}

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_request_id() -> str:
    """Epoch milliseconds plus a 9-character random base36 suffix."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def validate_transition(request: ChangeRequest, action: str) -> dict:
    """
    Validate whether an action is valid for the current state.

    Returns:
        {"valid": bool, "from": str, "to": str|None, "reason": str|None}
    """
    rule = REQUEST_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": request.status, "to": None,
                "reason": f"Unknown action: {action}"}

    if request.status not in rule["from"]:
        return {"valid": False, "from": request.status, "to": rule["to"],
                "reason": f"Cannot '{action}' from status '{request.status}'"}

    return {"valid": True, "from": request.status, "to": rule["to"], "reason": None}


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


class RequestLifecycle:
    """Creation and status transitions for change requests."""

    def __init__(self, store, summarizer):
        self.store = store
        self.summarizer = summarizer

    # ── Creation ─────────────────────────────────────────────────────────

    def create_request(self, data: dict) -> ChangeRequest:
        """
        Create, summarize and persist a new change request.

        Args:
            data: title, system, requester, department, description, reason,
                  impact, priority, implementation_date (``implementationDate``
                  is accepted too).

        Returns:
            The persisted ChangeRequest (status Pending, summary attached).

        Raises:
            ValidationError: a required field is missing or priority is unknown.
        """
        fields = {key: _clean(data.get(key)) for key in REQUIRED_FIELDS}
        if not fields["implementation_date"]:
            fields["implementation_date"] = _clean(data.get("implementationDate"))

        errors = {key: msg for key, msg in REQUIRED_FIELDS.items() if not fields[key]}
        if fields["priority"] and fields["priority"] not in PRIORITIES:
            errors["priority"] = f"Priority must be one of {', '.join(PRIORITIES)}."
        if errors:
            raise ValidationError("Change request is incomplete", details=errors)

        summary = self.summarizer(
            description=fields["description"],
            reason=fields["reason"],
            impact=fields["impact"],
            system=fields["system"],
        )

        request = ChangeRequest(
            id=generate_request_id(),
            request_date=utc_now(),
            status=STATUS_PENDING,
            summary=summary,
            **fields,
        )
        self.store.add_change_request(request)
        logger.info("Change request created id=%s priority=%s", request.id, request.priority)
        return request

    # ── Transitions ──────────────────────────────────────────────────────

    def _transition(self, request_id: str, action: str, *, remarks: str | None = None) -> dict:
        result = {
            "request_id": request_id,
            "action": action,
            "previous_status": None,
            "new_status": None,
            "changed": False,
        }
        request = self.store.get_change_request_by_id(request_id)
        if request is None:
            logger.info("Transition '%s' ignored: change request %s not found", action, request_id)
            return result

        result["previous_status"] = request.status
        result["new_status"] = request.status

        validation = validate_transition(request, action)
        if not validation["valid"]:
            logger.info("Transition ignored for %s: %s", request_id, validation["reason"])
            return result

        request.status = validation["to"]
        if remarks is not None:
            request.remarks = remarks
        self.store.update_change_request(request)

        result["new_status"] = validation["to"]
        result["changed"] = True
        logger.info("Change request %s: %s → %s", request_id, validation["from"], validation["to"])
        return result

    def mark_reviewed(self, request_id: str) -> dict:
        """Pending → Reviewed; no-op for any other status."""
        return self._transition(request_id, "mark_reviewed")

    def approve(self, request_id: str, remarks: str | None = None) -> dict:
        """Pending/Reviewed → Approved. Blank remarks are stored as absent."""
        return self._transition(request_id, "approve", remarks=_clean(remarks) or None)

    def reject(self, request_id: str, remarks: str) -> dict:
        """Pending/Reviewed → Rejected.

        Raises:
            ValidationError: remarks missing or blank.
        """
        remarks = _clean(remarks)
        if not remarks:
            raise ValidationError(
                "Rejection remarks are required.",
                details={"remarks": "required"},
            )
        return self._transition(request_id, "reject", remarks=remarks)
