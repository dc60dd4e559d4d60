"""
Announcement routes.

Permissions:
    - Create: lecturer who owns the target course.
    - Read (list per course, detail, with comments): course members.
    - Update/delete: the announcement's creator. Deleting also removes its
      comments.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from pydantic.functional_validators import field_validator

from scholaria.teaching.models import (
    ANNOUNCEMENT_BODY_MAX,
    ANNOUNCEMENT_BODY_MIN,
    ANNOUNCEMENT_TITLE_MAX,
    ANNOUNCEMENT_TITLE_MIN,
)
from scholaria.teaching.pagination import PageRequest
from scholaria.teaching.services.announcements import AnnouncementsService

from .. import wiring
from ..auth_utils import current_actor
from ..responses import ok, paged

announcements_router = APIRouter(tags=["Announcements"])
logger = logging.getLogger("scholaria.web.announcements")


def _service() -> AnnouncementsService:
    return AnnouncementsService(wiring.get_repo())


class AttachmentPayload(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    fileUrl: str = Field(..., min_length=1, max_length=1024)
    fileType: str = Field(default="", max_length=255)


class AnnouncementCreate(BaseModel):
    courseId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=ANNOUNCEMENT_TITLE_MIN, max_length=ANNOUNCEMENT_TITLE_MAX)
    body: str = Field(..., min_length=ANNOUNCEMENT_BODY_MIN, max_length=ANNOUNCEMENT_BODY_MAX)
    isImportant: bool = False
    attachments: List[AttachmentPayload] = Field(default_factory=list)

    @field_validator("courseId", "title", "body", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class AnnouncementUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=ANNOUNCEMENT_TITLE_MIN, max_length=ANNOUNCEMENT_TITLE_MAX)
    body: str | None = Field(default=None, min_length=ANNOUNCEMENT_BODY_MIN, max_length=ANNOUNCEMENT_BODY_MAX)
    isImportant: bool | None = None

    @field_validator("title", "body", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


@announcements_router.get("/announcements")
async def list_announcements(request: Request, page: str | None = None, limit: str | None = None):
    """Announcements from every course the caller teaches or is enrolled in."""
    actor = current_actor(request)
    return paged(_service().list_all(actor, PageRequest.from_query(page, limit)))


@announcements_router.post("/announcements")
async def create_announcement(request: Request, payload: AnnouncementCreate):
    actor = current_actor(request)
    ann = _service().create(
        actor,
        course_id=payload.courseId,
        title=payload.title,
        body=payload.body,
        is_important=payload.isImportant,
        attachments=[a.model_dump() for a in payload.attachments],
    )
    logger.info("Announcement %s posted to course %s", ann["id"], payload.courseId)
    return ok(ann, message="Announcement created successfully", status_code=201)


@announcements_router.get("/announcements/detail/{announcement_id}")
async def get_announcement(request: Request, announcement_id: str):
    actor = current_actor(request)
    return ok(_service().get(actor, announcement_id))


@announcements_router.get("/announcements/{announcement_id}/with-comments")
async def get_announcement_with_comments(request: Request, announcement_id: str):
    actor = current_actor(request)
    return ok(_service().with_comments(actor, announcement_id))


@announcements_router.get("/announcements/{course_id}")
async def list_course_announcements(request: Request, course_id: str, page: str | None = None, limit: str | None = None):
    actor = current_actor(request)
    return paged(_service().list_for_course(actor, course_id, PageRequest.from_query(page, limit)))


@announcements_router.put("/announcements/{announcement_id}")
async def update_announcement(request: Request, announcement_id: str, payload: AnnouncementUpdate):
    actor = current_actor(request)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "isImportant" in updates:
        updates["is_important"] = updates.pop("isImportant")
    ann = _service().update(actor, announcement_id, **updates)
    return ok(ann, message="Announcement updated successfully")


@announcements_router.delete("/announcements/{announcement_id}")
async def delete_announcement(request: Request, announcement_id: str):
    actor = current_actor(request)
    _service().delete(actor, announcement_id)
    return ok(None, message="Announcement deleted successfully")
