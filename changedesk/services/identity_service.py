"""
Identity Service — seeding, login, user creation and password management.

Rules:
    - Login ids are case-insensitive: normalized to lower case before every
      lookup and before storage.
    - Login failures are generic; an unknown id and a wrong password raise
      the same ``AuthenticationError``.
    - Users created through ``create_user`` always get the ``user`` role.
    - No path persists a password shorter than ``MIN_PASSWORD_LENGTH``.
"""

import logging

from changedesk.core.exceptions import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from changedesk.models.user import ROLE_ADMIN, ROLE_USER, User, normalize_user_id
from changedesk.utils.crypto import (
    MAX_PASSWORD_BYTES,
    hash_password,
    password_too_long,
    verify_password,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Bootstrap accounts written once into an empty users table
SEED_USERS = (
    {"name": "Admin", "id": "admin", "password": "adminpassword", "role": ROLE_ADMIN},
    {"name": "Alice Smith", "id": "asmith", "password": "password123", "role": ROLE_USER},
    {"name": "Bob Johnson", "id": "bjohnson", "password": "password123", "role": ROLE_USER},
    {"name": "Charlie Brown", "id": "cbrown", "password": "password123", "role": ROLE_USER},
    {"name": "Diana Prince", "id": "dprince", "password": "password123", "role": ROLE_USER},
)


def check_password_policy(password: str | None, field: str = "password") -> None:
    """Raise ValidationError unless ``password`` is a string of acceptable length."""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.",
            details={field: f"min length {MIN_PASSWORD_LENGTH}"},
        )
    if password_too_long(password):
        raise ValidationError(
            f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes.",
            details={field: f"max length {MAX_PASSWORD_BYTES} bytes"},
        )


class IdentityService:
    """User identity operations on top of a ``RecordStore``."""

    def __init__(self, store, *, bcrypt_rounds: int = 12):
        self.store = store
        self.bcrypt_rounds = bcrypt_rounds

    def _hash(self, password: str) -> str:
        return hash_password(password, rounds=self.bcrypt_rounds)

    # ── Bootstrap ────────────────────────────────────────────────────────

    def seed_initial_users(self) -> int:
        """Insert the bootstrap accounts when the users table is empty.

        Returns the number of users inserted (0 when anything already exists).
        """
        if self.store.count_users() > 0:
            return 0
        logger.info("No users found, seeding %d initial users", len(SEED_USERS))
        users = [
            User(
                id=entry["id"],
                name=entry["name"],
                password_hash=self._hash(entry["password"]),
                role=entry["role"],
            )
            for entry in SEED_USERS
        ]
        return self.store.add_users(users)

    # ── Authentication ───────────────────────────────────────────────────

    def login(self, user_id: str, password: str) -> User:
        user = self.store.get_user_by_id(user_id)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login failed for id=%r", normalize_user_id(user_id))
            raise AuthenticationError()
        return user

    # ── User management ──────────────────────────────────────────────────

    def create_user(self, name: str, user_id: str, password: str) -> User:
        key = normalize_user_id(user_id)
        name = name.strip() if isinstance(name, str) else ""
        missing = [f for f, v in (("name", name), ("id", key), ("password", password)) if not v]
        if missing:
            raise ValidationError("All fields are required.", details={f: "required" for f in missing})
        check_password_policy(password)
        if self.store.get_user_by_id(key) is not None:
            raise ConflictError(
                "User", "id", key,
                message="User ID already exists. Please choose a different one.",
            )
        user = User(id=key, name=name, password_hash=self._hash(password), role=ROLE_USER)
        try:
            self.store.add_user(user)
        except ConflictError as exc:
            raise ConflictError(
                "User", "id", key,
                message="User ID already exists. Please choose a different one.",
            ) from exc
        logger.info("User created id=%s", key)
        return user

    def change_password(self, user_id: str, current_password: str, new_password: str) -> User:
        user = self.store.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", normalize_user_id(user_id))
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password does not match.")
        check_password_policy(new_password, field="new_password")
        user.password_hash = self._hash(new_password)
        return self.store.update_user(user)

    def set_password(self, user_id: str, new_password: str) -> User:
        """Admin-initiated reset; skips the current-password check."""
        user = self.store.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User", normalize_user_id(user_id))
        check_password_policy(new_password)
        user.password_hash = self._hash(new_password)
        return self.store.update_user(user)

    def delete_user(self, user_id: str) -> bool:
        deleted = self.store.delete_user(user_id)
        if deleted:
            logger.info("User deleted id=%s", normalize_user_id(user_id))
        return deleted
