"""Dashboard overview for the signed-in user."""
from __future__ import annotations

from fastapi import APIRouter, Request

from scholaria.teaching.services.dashboard import DashboardService

from .. import wiring
from ..auth_utils import current_actor
from ..responses import ok

dashboard_router = APIRouter(tags=["Dashboard"])


@dashboard_router.get("/dashboard")
async def dashboard(request: Request):
    actor = current_actor(request)
    return ok(DashboardService(wiring.get_repo()).overview(actor))
