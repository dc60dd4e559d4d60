"""
Error types raised by the teaching and identity_access services.

Each error carries a stable machine `code` (e.g. `course_not_found`). The web
adapter maps the class to a status code and the code to a user-facing message;
services never build HTTP responses themselves.
"""
from __future__ import annotations


class NotFoundError(LookupError):
    def __init__(self, code: str = "not_found"):
        super().__init__(code)
        self.code = code


class ForbiddenError(PermissionError):
    def __init__(self, code: str = "forbidden"):
        super().__init__(code)
        self.code = code


class InvalidInputError(ValueError):
    """Business-rule validation failure (400)."""

    def __init__(self, code: str = "invalid_input", *, field: str | None = None):
        super().__init__(code)
        self.code = code
        self.field = field


class ConflictError(InvalidInputError):
    """Duplicate unique value or repeated one-shot action (reported as 400)."""


class PayloadTooLargeError(InvalidInputError):
    pass


class AuthenticationError(Exception):
    def __init__(self, code: str = "unauthenticated"):
        super().__init__(code)
        self.code = code


__all__ = [
    "NotFoundError",
    "ForbiddenError",
    "InvalidInputError",
    "ConflictError",
    "PayloadTooLargeError",
    "AuthenticationError",
]
