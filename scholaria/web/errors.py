"""
Central mapping from service exceptions to HTTP responses.

Services raise typed errors carrying a machine `code`; this module turns the
class into a status code and the code into a readable message. Unexpected
exceptions are logged with their traceback and answered with a generic 500 so
internal details never reach the client.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from scholaria.errors import (
    AuthenticationError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PayloadTooLargeError,
)

from .responses import error

logger = logging.getLogger("scholaria.web.errors")

MESSAGES: Dict[str, str] = {
    # 400
    "invalid_input": "Invalid input",
    "duplicate_code": "Course code already exists",
    "email_taken": "User already exists with this email",
    "already_enrolled": "Already enrolled in this course",
    "mime_not_allowed": "Invalid file type. Only PDF, DOC, DOCX, JPG, PNG, GIF and TXT files are allowed",
    "file_required": "Please upload a file",
    "invalid_category": "Category must be one of: lecture, assignment, reading, other",
    "invalid_role": "Role must be either student or lecturer",
    "preview_not_supported": "Preview not available for this file type. Please download instead.",
    "current_password_incorrect": "Current password is incorrect",
    # 401
    "unauthenticated": "Not authorized to access this route",
    "token_missing": "Not authorized to access this route",
    "token_invalid": "Not authorized to access this route",
    "claims_invalid": "Not authorized to access this route",
    "token_expired": "Token expired, please log in again",
    "invalid_credentials": "Invalid credentials",
    "user_not_found": "User no longer exists",
    # 403
    "forbidden": "Not authorized to perform this action",
    "role_forbidden": "Your role is not allowed to perform this action",
    "lecturer_only": "Only lecturers can perform this action",
    "student_only": "Only students can enroll in courses",
    "course_not_member": "Not authorized to access this course",
    "course_not_owner": "Not authorized to modify this course",
    "announcement_not_owner": "Not authorized to modify this announcement",
    "material_not_owner": "Not authorized to modify this material",
    "comment_not_owner": "Not authorized to modify this comment",
    # 404
    "not_found": "Resource not found",
    "route_not_found": "Route not found",
    "course_not_found": "Course not found",
    "announcement_not_found": "Announcement not found",
    "material_not_found": "Material not found",
    "comment_not_found": "Comment not found",
    "file_not_found": "File not found on server",
    # 413
    "file_too_large": "File too large",
}


def message_for(code: str | None, default: str = "Request failed") -> str:
    return MESSAGES.get(code or "", default)


def _field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        msg = str(err.get("msg", "invalid value"))
        # pydantic prefixes messages raised from validators.
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"field": ".".join(loc) or "body", "message": msg})
    return out


async def _validation_handler(request: Request, exc: RequestValidationError):
    errors = _field_errors(exc)
    first = errors[0] if errors else {"field": "body", "message": "invalid value"}
    return error(f"{first['field']}: {first['message']}", status_code=400, errors=errors)


async def _invalid_input_handler(request: Request, exc: InvalidInputError):
    status = 413 if isinstance(exc, PayloadTooLargeError) else 400
    errors = [{"field": exc.field, "message": message_for(exc.code, exc.code)}] if exc.field else None
    return error(message_for(exc.code, exc.code), status_code=status, errors=errors)


async def _value_error_handler(request: Request, exc: ValueError):
    code = str(exc) or "invalid_input"
    return error(message_for(code, "Invalid input"), status_code=400)


async def _not_found_handler(request: Request, exc: NotFoundError):
    code = exc.code or "not_found"
    return error(message_for(code, "Resource not found"), status_code=404)


async def _forbidden_handler(request: Request, exc: ForbiddenError):
    return error(message_for(exc.code, "Not authorized to perform this action"), status_code=403)


async def _unauthenticated_handler(request: Request, exc: AuthenticationError):
    return error(message_for(exc.code, "Not authorized to access this route"), status_code=401)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error(message_for("route_not_found"), status_code=404)
    detail: Any = exc.detail
    return error(str(detail) if detail else "Request failed", status_code=exc.status_code)


async def _unexpected_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error("Server Error", status_code=500)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(InvalidInputError, _invalid_input_handler)
    app.add_exception_handler(ValueError, _value_error_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(ForbiddenError, _forbidden_handler)
    app.add_exception_handler(AuthenticationError, _unauthenticated_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unexpected_handler)


__all__ = ["install_error_handlers", "message_for", "MESSAGES"]
