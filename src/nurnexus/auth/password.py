"""
Password hashing and validation using argon2id.

Argon2id is memory-hard, so it comfortably exceeds a 10-round bcrypt work
factor while resisting GPU-based attacks.
"""

from __future__ import annotations

import secrets

import argon2

from nurnexus.config import get_settings
from nurnexus.errors import ValidationError

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its argon2id hash.

    Returns True if the password matches. Never raises on mismatch.
    """
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def check_needs_rehash(password_hash: str) -> bool:
    """Check if the hash needs to be updated (parameters changed)."""
    return _hasher.check_needs_rehash(password_hash)


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows, for accounts created via Google sign-in."""
    return hash_password(secrets.token_hex(20))


def validate_password(password: str | None) -> str:
    """
    Check a submitted password against the length policy.

    Raises ValidationError if the password is missing, blank, too short, or
    too long (the upper bound keeps hashing cost bounded).
    """
    settings = get_settings()
    if not password or not password.strip():
        msg = "Please provide email and password"
        raise ValidationError(msg)
    if len(password) < settings.password_min_length:
        msg = f"Password must be at least {settings.password_min_length} characters"
        raise ValidationError(msg)
    if len(password) > settings.password_max_length:
        msg = f"Password must not exceed {settings.password_max_length} characters"
        raise ValidationError(msg)
    return password
