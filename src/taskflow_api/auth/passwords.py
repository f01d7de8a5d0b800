"""Password hashing with bcrypt."""

import bcrypt

from taskflow_api.config import settings


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with a per-password random salt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored hash.

    bcrypt compares in constant time. A malformed stored hash is treated as
    a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
