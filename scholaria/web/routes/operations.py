"""Operations endpoints (liveness for load balancers and compose health checks)."""

from __future__ import annotations

from fastapi import APIRouter

from scholaria.teaching.repo_memory import InMemoryTeachingRepo

from .. import wiring
from ..responses import json_private

operations_router = APIRouter(tags=["Operations"])


@operations_router.get("/health")
async def health():
    """
    Report process liveness and which store backs the API.

    Permissions:
        Public; the body carries no user data.
    """
    repo = wiring.get_repo()
    store = "memory" if isinstance(repo, InMemoryTeachingRepo) else "mongodb"
    return json_private({"success": True, "status": "ok", "store": store})
