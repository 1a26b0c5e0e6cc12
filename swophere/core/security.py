"""Security utilities for hashing and verifying user passwords."""

import bcrypt


def hash_password(password: str) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password (str): The plain-text password.

    Returns:
        str: The bcrypt hash, utf-8 decoded for storage.

    Note:
        bcrypt only considers the first 72 bytes of the password, so longer
        inputs are truncated before hashing.
    """
    password_bytes = (password or "").encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a plain-text password against a stored bcrypt hash.

    Args:
        - password (str): The password to verify.
        - password_hash (str): The stored hash.

    Returns:
        - bool: Whether the password matches.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
