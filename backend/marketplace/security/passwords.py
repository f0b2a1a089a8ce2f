from __future__ import annotations

import os
import hmac
import hashlib
import secrets
from functools import lru_cache

from passlib.hash import argon2


# Explicit Argon2id configuration
_argon = argon2.using(type="ID", time_cost=3, memory_cost=65536, parallelism=2)


def _pepper_bytes() -> bytes:
    """Return the application-wide secret pepper as bytes.

    Load from env var PASSWORD_PEPPER. Keep this secret outside the DB.
    """
    val = os.getenv("PASSWORD_PEPPER", "")
    return val.encode("utf-8") if val else b""


def _pepperize(password: str) -> str:
    key = _pepper_bytes()
    if not key:
        return password
    # Use HMAC-SHA256 to combine the password with the pepper
    return hmac.new(key, password.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_password(password: str) -> str:
    if not isinstance(password, str) or not password:
        raise ValueError("Password must be a non-empty string")
    return _argon.hash(_pepperize(password))


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return _argon.verify(_pepperize(password or ""), password_hash)
    except (ValueError, TypeError):
        # Malformed or foreign hash string.
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash compared against when no account matches the email.

    It is a real Argon2id hash with the same parameters as account hashes, so
    verifying against it costs the same as verifying a wrong password.
    """
    return hash_password(secrets.token_urlsafe(32))


__all__ = ["dummy_password_hash", "hash_password", "verify_password"]
