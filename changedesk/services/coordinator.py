"""
Application Coordinator — the single entry point the HTTP layer talks to.

Responsibilities:
  - Bootstrap: initialize the store and seed the default users
  - Route UI actions to the identity service / lifecycle engine
  - Re-read the full snapshot after every successful mutation so callers
    always see their own writes
  - Turn expected domain failures into ``OperationResult(success=False)``;
    storage-engine failures propagate

Usage:
    coordinator = AppCoordinator(store, identity, lifecycle, departments)
    coordinator.bootstrap()
    result = coordinator.reject("1718-abc123xyz", "insufficient testing")
"""

import logging
from dataclasses import dataclass, field

from changedesk.core.exceptions import (
    AuthenticationError,
    ChangeDeskError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from changedesk.models.change_request import STATUS_ALL, STATUS_OPTIONS
from changedesk.models.user import ROLE_ADMIN, ROLE_USER, Viewer, normalize_user_id
from changedesk.services.identity_service import MIN_PASSWORD_LENGTH
from changedesk.utils.errors import E

logger = logging.getLogger(__name__)


@dataclass
class Snapshot:
    """Full in-memory mirror of both collections, rebuilt on every read."""

    users: list[dict] = field(default_factory=list)
    requests: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"users": self.users, "requests": self.requests}


@dataclass
class OperationResult:
    """Outcome of a coordinator operation."""

    success: bool
    message: str = ""
    data: dict | None = None
    snapshot: Snapshot | None = None
    error_code: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def failure(cls, code: str, message: str, details: dict | None = None) -> "OperationResult":
        return cls(success=False, message=message, error_code=code, details=details or {})

    def to_dict(self) -> dict:
        d = {"success": self.success, "message": self.message}
        if self.data is not None:
            d["data"] = self.data
        if self.snapshot is not None:
            d["snapshot"] = self.snapshot.to_dict()
        return d


_ERROR_CODES = (
    (ValidationError, E.VALIDATION_REQUIRED),
    (AuthenticationError, E.AUTH_FAILED),
    (NotFoundError, E.NOT_FOUND),
    (ConflictError, E.CONFLICT_DUPLICATE),
)


def _failure_from(exc: ChangeDeskError) -> OperationResult:
    code = E.INTERNAL
    for exc_type, exc_code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            code = exc_code
            break
    return OperationResult.failure(code, str(exc), getattr(exc, "details", None))


class AppCoordinator:
    """Orchestrates store reads/writes for the HTTP layer."""

    def __init__(self, store, identity, lifecycle, departments):
        self.store = store
        self.identity = identity
        self.lifecycle = lifecycle
        self.departments = departments

    # ── Bootstrap / reads ────────────────────────────────────────────────

    def bootstrap(self) -> Snapshot:
        """Open the store, seed users on first run, return the first snapshot."""
        self.store.initialize()
        seeded = self.identity.seed_initial_users()
        if seeded:
            logger.info("Seeded %d initial users", seeded)
        return self.snapshot()

    def snapshot(self) -> Snapshot:
        return Snapshot(
            users=[u.to_dict() for u in self.store.get_all_users()],
            requests=[r.to_dict() for r in self.store.get_all_change_requests()],
        )

    def visible_requests(self, viewer: Viewer, status: str = STATUS_ALL) -> list[dict]:
        """Requests the viewer may see, newest first, optionally filtered by status.

        Admins see everything; users see the requests filed under their name.
        """
        if status not in STATUS_OPTIONS:
            raise ValidationError(
                f"Unknown status filter: {status}",
                details={"status": f"one of {', '.join(STATUS_OPTIONS)}"},
            )
        visible = []
        for cr in self.store.get_all_change_requests():
            if status != STATUS_ALL and cr.status != status:
                continue
            if not viewer.is_admin and cr.requester != viewer.name:
                continue
            visible.append(cr.to_dict())
        return visible

    def list_title(self, viewer: Viewer, status: str = STATUS_ALL) -> str:
        if viewer.is_admin:
            return "All Requests" if status == STATUS_ALL else f"{status} Requests"
        if status == STATUS_ALL:
            return f"{viewer.name}'s Requests"
        return f"{viewer.name}'s {status} Requests"

    def get_request(self, viewer: Viewer, request_id: str) -> dict:
        cr = self.store.get_change_request_by_id(request_id)
        if cr is None or (not viewer.is_admin and cr.requester != viewer.name):
            raise NotFoundError("ChangeRequest", request_id)
        return cr.to_dict()

    def requester_options(self) -> list[str]:
        """Names an admin can file a request on behalf of."""
        return sorted(u.name for u in self.store.get_all_users() if u.role == ROLE_USER)

    def managed_users(self) -> list[dict]:
        """Non-admin users, sorted by name, for the user-management view."""
        users = [u for u in self.store.get_all_users() if u.role != ROLE_ADMIN]
        return [u.to_dict() for u in sorted(users, key=lambda u: u.name.lower())]

    def department_overview(self) -> dict:
        used = self.store.get_used_departments()
        return {
            "departments": [
                {"name": d, "in_use": d in used} for d in self.departments.names()
            ],
        }

    # ── Identity ─────────────────────────────────────────────────────────

    def login(self, user_id: str, password: str) -> OperationResult:
        try:
            user = self.identity.login(user_id, password)
        except AuthenticationError as exc:
            return _failure_from(exc)
        viewer = Viewer.from_user(user)
        logger.info("Login ok id=%s role=%s", viewer.id, viewer.role)
        return OperationResult(True, f"Welcome, {viewer.name}.", data=viewer.to_dict())

    def create_user(self, name: str, user_id: str, password: str) -> OperationResult:
        try:
            user = self.identity.create_user(name, user_id, password)
        except ChangeDeskError as exc:
            return _failure_from(exc)
        return OperationResult(
            True, f'User "{user.name}" created successfully!',
            data=user.to_dict(), snapshot=self.snapshot(),
        )

    def change_password(
        self,
        viewer: Viewer | None,
        current_password: str,
        new_password: str,
        confirm_password: str | None = None,
    ) -> OperationResult:
        if viewer is None:
            return OperationResult.failure(E.AUTH_REQUIRED, "No user is logged in.")
        if not current_password or not new_password:
            return OperationResult.failure(E.VALIDATION_REQUIRED, "All password fields are required.")
        if not isinstance(new_password, str) or len(new_password) < MIN_PASSWORD_LENGTH:
            return OperationResult.failure(
                E.VALIDATION_INVALID,
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters long.",
            )
        if confirm_password is not None and new_password != confirm_password:
            return OperationResult.failure(E.VALIDATION_INVALID, "New passwords do not match.")
        try:
            self.identity.change_password(viewer.id, current_password, new_password)
        except NotFoundError:
            return OperationResult.failure(E.NOT_FOUND, "Could not find user account.")
        except ChangeDeskError as exc:
            return _failure_from(exc)
        return OperationResult(True, "Password updated successfully!", snapshot=self.snapshot())

    def set_user_password(self, user_id: str, new_password: str) -> OperationResult:
        if not isinstance(new_password, str) or len(new_password) < MIN_PASSWORD_LENGTH:
            return OperationResult.failure(
                E.VALIDATION_INVALID,
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
            )
        try:
            user = self.identity.set_password(user_id, new_password)
        except NotFoundError:
            return OperationResult.failure(E.NOT_FOUND, "User not found.")
        except ChangeDeskError as exc:
            return _failure_from(exc)
        return OperationResult(
            True, f"Password for {user.name} updated successfully!", snapshot=self.snapshot(),
        )

    def delete_user(self, viewer: Viewer, user_id: str) -> OperationResult:
        if viewer.id == normalize_user_id(user_id):
            return OperationResult.failure(E.CONFLICT_STATE, "You cannot delete your own account.")
        user = self.store.get_user_by_id(user_id)
        self.identity.delete_user(user_id)
        name = user.name if user is not None else user_id
        return OperationResult(True, f'User "{name}" has been deleted.', snapshot=self.snapshot())

    # ── Change requests ──────────────────────────────────────────────────

    def submit_request(self, viewer: Viewer, data: dict) -> OperationResult:
        data = dict(data or {})
        if not viewer.is_admin:
            data["requester"] = viewer.name
        department = data.get("department")
        department = department.strip() if isinstance(department, str) else ""
        if department and department not in self.departments:
            return OperationResult.failure(
                E.VALIDATION_INVALID, "Change request is incomplete",
                {"department": "Department must be selected."},
            )
        try:
            cr = self.lifecycle.create_request(data)
        except ChangeDeskError as exc:
            return _failure_from(exc)
        return OperationResult(
            True, "Change request submitted.", data=cr.to_dict(), snapshot=self.snapshot(),
        )

    def _transition_result(self, outcome: dict) -> OperationResult:
        if outcome["previous_status"] is None:
            message = "Change request not found; nothing to do."
        elif outcome["changed"]:
            message = f"Status changed from {outcome['previous_status']} to {outcome['new_status']}."
        else:
            message = f"No change: request is {outcome['previous_status']}."
        return OperationResult(True, message, data=outcome, snapshot=self.snapshot())

    def mark_reviewed(self, request_id: str) -> OperationResult:
        return self._transition_result(self.lifecycle.mark_reviewed(request_id))

    def approve(self, request_id: str, remarks: str | None = None) -> OperationResult:
        return self._transition_result(self.lifecycle.approve(request_id, remarks))

    def reject(self, request_id: str, remarks: str) -> OperationResult:
        try:
            outcome = self.lifecycle.reject(request_id, remarks)
        except ValidationError as exc:
            return _failure_from(exc)
        return self._transition_result(outcome)

    # ── Departments ──────────────────────────────────────────────────────

    def add_department(self, name: str) -> OperationResult:
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            return OperationResult.failure(E.VALIDATION_REQUIRED, "Department name is required.")
        if not self.departments.add(name):
            return OperationResult.failure(E.CONFLICT_DUPLICATE, f'Department "{name}" already exists.')
        return OperationResult(True, f'Department "{name}" added.', data=self.department_overview())

    def delete_department(self, name: str) -> OperationResult:
        if name not in self.departments:
            return OperationResult.failure(E.NOT_FOUND, f'Department "{name}" not found.')
        if not self.departments.delete(name, self.store.get_used_departments()):
            return OperationResult.failure(
                E.CONFLICT_STATE,
                f'Cannot delete "{name}" as it is currently assigned to one or more change requests.',
            )
        return OperationResult(True, f'Department "{name}" deleted.', data=self.department_overview())
