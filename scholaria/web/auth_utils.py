"""Helpers for reading the authenticated user from the request state."""
from __future__ import annotations

from fastapi import Request

from scholaria.errors import AuthenticationError
from scholaria.teaching.policies import Actor


def current_actor(request: Request) -> Actor:
    """Return the requester set by the auth middleware or raise 401."""
    user = getattr(request.state, "user", None)
    if not user or not user.get("sub"):
        raise AuthenticationError("unauthenticated")
    return Actor(id=str(user["sub"]), role=str(user.get("role") or ""))


__all__ = ["current_actor"]
