"""Password hashing for local accounts (passlib)."""
from __future__ import annotations

from passlib.context import CryptContext

# pbkdf2_sha256 is pure-python in passlib, so no native backend is required.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False
