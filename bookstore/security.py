"""Password hashing for user and admin accounts."""

import secrets

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, stored: str | None) -> bool:
    if not stored:
        return False
    try:
        return check_password_hash(stored, password)
    except ValueError:
        # Unknown method or corrupt parameters in the stored hash
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(32)
