"""
Course routes.

Why:
    Lecturers publish and maintain courses; students discover and join them.
    Business rules live in `CoursesService`; this adapter validates payloads,
    resolves the requester and shapes the JSON envelope.

Permissions:
    - Create/update: lecturer role and (update) course owner.
    - Delete: course owner (soft delete, the course leaves all listings).
    - Enroll: student role.
    - Details: course lecturer or enrolled student.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from pydantic.functional_validators import field_validator

from scholaria.teaching.models import (
    COURSE_CODE_MAX,
    COURSE_CODE_MIN,
    COURSE_DESCRIPTION_MAX,
    COURSE_DESCRIPTION_MIN,
    COURSE_TITLE_MAX,
    COURSE_TITLE_MIN,
)
from scholaria.teaching.pagination import PageRequest
from scholaria.teaching.services.courses import CoursesService

from .. import wiring
from ..auth_utils import current_actor
from ..responses import ok, paged

courses_router = APIRouter(tags=["Courses"])
logger = logging.getLogger("scholaria.web.courses")


def _service() -> CoursesService:
    return CoursesService(wiring.get_repo())


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=COURSE_TITLE_MIN, max_length=COURSE_TITLE_MAX)
    code: str = Field(..., min_length=COURSE_CODE_MIN, max_length=COURSE_CODE_MAX)
    description: str = Field(..., min_length=COURSE_DESCRIPTION_MIN, max_length=COURSE_DESCRIPTION_MAX)

    @field_validator("title", "code", "description", mode="before")
    @classmethod
    def _strip_text(cls, v):
        return _strip(v)


class CourseUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=COURSE_TITLE_MIN, max_length=COURSE_TITLE_MAX)
    code: str | None = Field(default=None, min_length=COURSE_CODE_MIN, max_length=COURSE_CODE_MAX)
    description: str | None = Field(
        default=None, min_length=COURSE_DESCRIPTION_MIN, max_length=COURSE_DESCRIPTION_MAX
    )

    @field_validator("title", "code", "description", mode="before")
    @classmethod
    def _strip_text(cls, v):
        return _strip(v)


@courses_router.get("/courses")
async def list_courses(request: Request, page: str | None = None, limit: str | None = None, search: str | None = None):
    """Active courses, newest first, optionally filtered by title/code/description."""
    current_actor(request)
    result = _service().list_courses(PageRequest.from_query(page, limit), search=search)
    return paged(result)


@courses_router.post("/courses")
async def create_course(request: Request, payload: CourseCreate):
    actor = current_actor(request)
    course = _service().create_course(actor, title=payload.title, code=payload.code, description=payload.description)
    logger.info("Course %s created by %s", course["id"], actor.id)
    return ok(course, message="Course created successfully", status_code=201)


# Registered before `/courses/{course_id}` so "mine" is not taken for an id.
@courses_router.get("/courses/mine")
@courses_router.get("/courses/user/my-courses")
async def list_my_courses(request: Request, page: str | None = None, limit: str | None = None):
    actor = current_actor(request)
    return paged(_service().list_my_courses(actor, PageRequest.from_query(page, limit)))


@courses_router.get("/courses/{course_id}")
async def get_course(request: Request, course_id: str):
    current_actor(request)
    return ok(_service().get_course(course_id))


@courses_router.get("/courses/{course_id}/details")
async def get_course_details(request: Request, course_id: str):
    actor = current_actor(request)
    return ok(_service().get_course_details(actor, course_id))


@courses_router.put("/courses/{course_id}")
async def update_course(request: Request, course_id: str, payload: CourseUpdate):
    actor = current_actor(request)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    course = _service().update_course(actor, course_id, **updates)
    return ok(course, message="Course updated successfully")


@courses_router.delete("/courses/{course_id}")
async def delete_course(request: Request, course_id: str):
    actor = current_actor(request)
    _service().delete_course(actor, course_id)
    logger.info("Course %s deactivated by %s", course_id, actor.id)
    return ok(None, message="Course deleted successfully")


@courses_router.post("/courses/{course_id}/enroll")
async def enroll(request: Request, course_id: str):
    actor = current_actor(request)
    course = _service().enroll(actor, course_id)
    return ok(course, message="Successfully enrolled in course")
