"""
Record Store — durable CRUD for Users and ChangeRequests.

One ``RecordStore`` is constructed by the application factory and handed
to every collaborator (identity service, lifecycle engine, coordinator).
It owns the schema bootstrap and all reads/writes of the two collections.

Guarantees:
    - ``initialize()`` creates the schema once per store, even when several
      request threads race to call it; all callers get the same store back.
    - Each mutation commits its own transaction (single-record atomicity).
      ``add_users`` writes its batch in one transaction (all-or-nothing).
    - ``get_all_change_requests()`` is ordered by request date, newest first.
    - Storage-engine failures roll the session back and propagate.

Usage:
    store = RecordStore(db)
    store.initialize()
    store.add_user(User(id="jdoe", name="Jane Doe", password_hash=..., role="user"))
"""

import logging
import threading

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from changedesk.core.exceptions import ConflictError
from changedesk.models.change_request import ChangeRequest, parse_iso
from changedesk.models.schema import SCHEMA_VERSION, SchemaVersion
from changedesk.models.user import User, normalize_user_id

logger = logging.getLogger(__name__)


def _upgrade_to_v1(db) -> None:
    """Version 1: users + change_requests with their indexes.

    The tables themselves come from ``db.create_all()``; nothing to alter.
    """
    logger.info("Schema v1: users, change_requests (indexes: requester, status, request_date)")


# Upgrade steps keyed by the version they bring the database to.
# New versions must only add tables/columns/indexes.
UPGRADES = {
    1: _upgrade_to_v1,
}


class RecordStore:
    """SQLAlchemy-backed store for the ``users`` and ``change_requests`` tables."""

    def __init__(self, db):
        self._db = db
        self._init_lock = threading.Lock()
        self._initialized = False

    @property
    def session(self):
        return self._db.session

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ── Schema bootstrap ─────────────────────────────────────────────────

    def initialize(self, *, force: bool = False) -> "RecordStore":
        """Open (or create) the schema and bring it to ``SCHEMA_VERSION``.

        Safe to call repeatedly. ``force`` re-runs the schema check after the
        tables were dropped underneath the store (test teardown).
        """
        if self._initialized and not force:
            return self
        with self._init_lock:
            if self._initialized and not force:
                return self
            self._db.create_all()
            self._apply_upgrades()
            self._initialized = True
        return self

    def schema_version(self) -> int:
        row = self.session.query(SchemaVersion).first()
        return row.version if row else 0

    def _apply_upgrades(self) -> None:
        row = self.session.query(SchemaVersion).first()
        current = row.version if row else 0
        if current > SCHEMA_VERSION:
            raise RuntimeError(
                f"Database schema v{current} is newer than this build (v{SCHEMA_VERSION})"
            )
        if current == SCHEMA_VERSION:
            return

        for version in range(current + 1, SCHEMA_VERSION + 1):
            UPGRADES[version](self._db)
            logger.info("Schema upgraded v%d → v%d", version - 1, version)

        if row is None:
            row = SchemaVersion(version=SCHEMA_VERSION)
            self.session.add(row)
        else:
            row.version = SCHEMA_VERSION
        self._commit("schema upgrade")

    # ── Transactions ─────────────────────────────────────────────────────

    def _commit(self, operation: str) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("Store operation failed: %s", operation)
            raise

    # ── Users ────────────────────────────────────────────────────────────

    def get_all_users(self) -> list[User]:
        return self.session.query(User).order_by(User.id).all()

    def get_user_by_id(self, user_id: str) -> User | None:
        key = normalize_user_id(user_id)
        if not key:
            return None
        return self.session.get(User, key)

    def count_users(self) -> int:
        return self.session.query(User).count()

    def add_user(self, user: User) -> User:
        """Insert a new user; raises ConflictError if the id is taken."""
        user.id = normalize_user_id(user.id)
        if self.session.get(User, user.id) is not None:
            raise ConflictError("User", "id", user.id)
        self.session.add(user)
        try:
            self._commit(f"add_user {user.id}")
        except IntegrityError:
            # Another writer inserted the same id between check and commit
            raise ConflictError("User", "id", user.id)
        return user

    def add_users(self, users: list[User]) -> int:
        """Insert several users in a single transaction."""
        for u in users:
            u.id = normalize_user_id(u.id)
        self.session.add_all(users)
        self._commit(f"add_users x{len(users)}")
        return len(users)

    def update_user(self, user: User) -> User:
        """Upsert by id."""
        user.id = normalize_user_id(user.id)
        merged = self.session.merge(user)
        self._commit(f"update_user {user.id}")
        return merged

    def delete_user(self, user_id: str) -> bool:
        """Delete a user; returns False (no error) when already gone."""
        user = self.get_user_by_id(user_id)
        if user is None:
            return False
        self.session.delete(user)
        self._commit(f"delete_user {user_id}")
        return True

    # ── Change requests ──────────────────────────────────────────────────

    def get_all_change_requests(self) -> list[ChangeRequest]:
        """All change requests, newest ``request_date`` first."""
        return (
            self.session.query(ChangeRequest)
            .order_by(ChangeRequest.request_date.desc(), ChangeRequest.id.desc())
            .all()
        )

    def get_change_request_by_id(self, request_id: str) -> ChangeRequest | None:
        if not request_id:
            return None
        return self.session.get(ChangeRequest, request_id)

    def get_used_departments(self) -> set[str]:
        rows = self.session.query(ChangeRequest.department).distinct().all()
        return {r[0] for r in rows}

    def add_change_request(self, request: ChangeRequest) -> ChangeRequest:
        """Insert a new change request; raises ConflictError on a duplicate id."""
        if self.session.get(ChangeRequest, request.id) is not None:
            raise ConflictError("ChangeRequest", "id", request.id)
        request.request_date = parse_iso(request.request_date)
        self.session.add(request)
        try:
            self._commit(f"add_change_request {request.id}")
        except IntegrityError:
            raise ConflictError("ChangeRequest", "id", request.id)
        return request

    def update_change_request(self, request: ChangeRequest) -> ChangeRequest:
        """Upsert by id."""
        request.request_date = parse_iso(request.request_date)
        merged = self.session.merge(request)
        self._commit(f"update_change_request {request.id}")
        return merged
