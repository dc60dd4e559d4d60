"""Comment routes. Any member of the announcement's course may comment."""
from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from pydantic.functional_validators import field_validator

from scholaria.teaching.models import COMMENT_MAX, COMMENT_MIN
from scholaria.teaching.pagination import PageRequest
from scholaria.teaching.services.comments import CommentsService

from .. import wiring
from ..auth_utils import current_actor
from ..responses import ok, paged

comments_router = APIRouter(tags=["Comments"])


def _service() -> CommentsService:
    return CommentsService(wiring.get_repo())


class CommentPayload(BaseModel):
    content: str = Field(..., min_length=COMMENT_MIN, max_length=COMMENT_MAX)

    @field_validator("content", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


@comments_router.post("/comments/{announcement_id}")
async def add_comment(request: Request, announcement_id: str, payload: CommentPayload):
    actor = current_actor(request)
    comment = _service().add(actor, announcement_id, content=payload.content)
    return ok(comment, message="Comment added successfully", status_code=201)


@comments_router.get("/comments/{announcement_id}")
async def list_comments(request: Request, announcement_id: str, page: str | None = None, limit: str | None = None):
    """Comments oldest first so threads read top to bottom."""
    actor = current_actor(request)
    return paged(_service().list_for_announcement(actor, announcement_id, PageRequest.from_query(page, limit)))


@comments_router.put("/comments/{comment_id}")
async def update_comment(request: Request, comment_id: str, payload: CommentPayload):
    actor = current_actor(request)
    comment = _service().update(actor, comment_id, content=payload.content)
    return ok(comment, message="Comment updated successfully")


@comments_router.delete("/comments/{comment_id}")
async def delete_comment(request: Request, comment_id: str):
    actor = current_actor(request)
    _service().delete(actor, comment_id)
    return ok(None, message="Comment deleted successfully")
