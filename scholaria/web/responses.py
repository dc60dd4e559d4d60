"""JSON envelopes shared by all API routes.

Success: `{"success": true, "data": ..., "message"?: str}`; list endpoints add
`"pagination": {"page", "limit", "total", "pages"}`. Errors:
`{"success": false, "message": str, "errors"?: [...]}`.

Responses are user-scoped, so every body is sent with
`Cache-Control: private, no-store`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse

from scholaria.teaching.pagination import Page

PRIVATE_HEADERS = {"Cache-Control": "private, no-store"}


def json_private(payload: Any, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=payload, status_code=status_code, headers=dict(PRIVATE_HEADERS))


def ok(data: Any = None, *, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return json_private(body, status_code=status_code)


def paged(page: Page, *, message: Optional[str] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "data": list(page.items), "pagination": page.meta()}
    if message:
        body["message"] = message
    return json_private(body)


def error(message: str, *, status_code: int, errors: Optional[List[Dict[str, str]]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return json_private(body, status_code=status_code)


__all__ = ["json_private", "ok", "paged", "error", "PRIVATE_HEADERS"]
