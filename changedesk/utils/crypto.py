"""
Crypto utilities — bcrypt password hashing.

Credentials are stored as salted bcrypt hashes. Login still behaves as an
exact match on the password text: ``verify_password`` is true only for the
very string that was hashed.

bcrypt reads at most ``MAX_PASSWORD_BYTES`` bytes of input, so longer
passwords are never hashed and never verify.

Legacy werkzeug (scrypt/pbkdf2) hashes are accepted on verify so records
imported from older deployments keep working.
"""

import bcrypt
from werkzeug.security import check_password_hash

MAX_PASSWORD_BYTES = 72


def password_too_long(plain_password: str) -> bool:
    return len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain_password: str, rounds: int = 12) -> str:
    """Hash a plain-text password with bcrypt (12 rounds unless overridden).

    Raises:
        ValueError: the password is longer than MAX_PASSWORD_BYTES in UTF-8.
    """
    if password_too_long(plain_password):
        raise ValueError(f"password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its hash.

    Handles both bcrypt ($2b$/$2a$) and legacy werkzeug (scrypt/pbkdf2) formats.
    """
    if not password_hash or not isinstance(plain_password, str):
        return False

    # Bcrypt hashes start with $2b$ or $2a$
    if password_hash.startswith(("$2b$", "$2a$")):
        if password_too_long(plain_password):
            return False
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )

    return check_password_hash(password_hash, plain_password)
