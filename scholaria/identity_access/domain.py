"""
Identity domain constants and simple helpers.

Why:
- Centralize allowed roles to avoid drift between services and the web layer.
- Keep terms aligned with the glossary (lecturer, student) across modules.
"""

from __future__ import annotations

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({"student", "lecturer"})

DEFAULT_ROLE = "student"


def normalize_role(value: str | None) -> str:
    """Return a valid role, defaulting to `student` when the value is empty."""
    role = (value or "").strip().lower() or DEFAULT_ROLE
    if role not in ALLOWED_ROLES:
        raise ValueError("invalid_role")
    return role


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


__all__ = ["ALLOWED_ROLES", "DEFAULT_ROLE", "normalize_role", "normalize_email"]
