"""
Material routes: multipart upload, listings, metadata and file delivery.

Behavior:
    - Upload accepts exactly one file in the form field `file` plus `title`,
      `courseId`, optional `description` and `category`.
    - Download/preview stream the stored bytes with the recorded MIME type and
      length; `Content-Disposition` carries both an ASCII fallback and an
      RFC 5987 `filename*` so non-ASCII names survive.
    - Preview is limited to images, PDF and plain text.

Permissions:
    Upload requires the lecturer owning the course; edits and deletion the
    uploader; every read requires course membership.
"""
from __future__ import annotations

import logging
import unicodedata
from urllib.parse import quote

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from pydantic.functional_validators import field_validator

from scholaria.errors import InvalidInputError
from scholaria.teaching.models import MATERIAL_DESCRIPTION_MAX, MATERIAL_TITLE_MAX, MATERIAL_TITLE_MIN
from scholaria.teaching.pagination import PageRequest
from scholaria.teaching.services.materials import FileDelivery, MaterialsService

from .. import wiring
from ..auth_utils import current_actor
from ..responses import PRIVATE_HEADERS, ok, paged

materials_router = APIRouter(tags=["Materials"])
logger = logging.getLogger("scholaria.web.materials")


def _service() -> MaterialsService:
    return MaterialsService(wiring.get_repo(), wiring.get_storage(), settings=wiring.material_file_settings())


def content_disposition(disposition: str, filename: str) -> str:
    """Build a Content-Disposition value safe for any file name."""
    normalized = unicodedata.normalize("NFKD", filename or "file")
    fallback = normalized.encode("ascii", "ignore").decode("ascii")
    fallback = "".join(ch for ch in fallback if ch.isprintable() and ch not in '"\\') or "file"
    value = f'{disposition}; filename="{fallback}"'
    if fallback != filename:
        value += f"; filename*=UTF-8''{quote(filename, safe='')}"
    return value


def _stream(delivery: FileDelivery) -> StreamingResponse:
    headers = dict(PRIVATE_HEADERS)
    headers["Content-Disposition"] = content_disposition(delivery.disposition, delivery.filename)
    headers["Content-Length"] = str(delivery.length)
    return StreamingResponse(delivery.stream, media_type=delivery.media_type, headers=headers)


class MaterialUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=MATERIAL_TITLE_MIN, max_length=MATERIAL_TITLE_MAX)
    description: str | None = Field(default=None, max_length=MATERIAL_DESCRIPTION_MAX)
    category: str | None = None

    @field_validator("title", "description", "category", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


@materials_router.get("/materials")
async def list_materials(
    request: Request,
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    category: str | None = None,
):
    """Materials across all courses the caller teaches or is enrolled in."""
    actor = current_actor(request)
    result = _service().list_all(actor, PageRequest.from_query(page, limit), search=search, category=category)
    return paged(result)


@materials_router.post("/materials/upload")
async def upload_material(
    request: Request,
    title: str = Form(..., min_length=MATERIAL_TITLE_MIN, max_length=MATERIAL_TITLE_MAX),
    courseId: str = Form(..., min_length=1),
    description: str | None = Form(default=None, max_length=MATERIAL_DESCRIPTION_MAX),
    category: str | None = Form(default=None),
    file: UploadFile | None = File(default=None),
):
    actor = current_actor(request)
    if file is None or not file.filename:
        raise InvalidInputError("file_required", field="file")
    try:
        material = _service().upload(
            actor,
            course_id=courseId.strip(),
            title=title,
            description=description,
            category=category,
            source=file.file,
            filename=file.filename,
            content_type=file.content_type,
        )
    finally:
        await file.close()
    return ok(material, message="Material uploaded successfully", status_code=201)


@materials_router.get("/materials/detail/{material_id}")
async def get_material(request: Request, material_id: str):
    actor = current_actor(request)
    return ok(_service().get(actor, material_id))


@materials_router.get("/materials/download/{material_id}")
async def download_material(request: Request, material_id: str):
    actor = current_actor(request)
    return _stream(_service().open_file(actor, material_id))


@materials_router.get("/materials/preview/{material_id}")
async def preview_material(request: Request, material_id: str):
    actor = current_actor(request)
    return _stream(_service().open_file(actor, material_id, inline=True))


@materials_router.get("/materials/{material_id}/details")
async def get_material_details(request: Request, material_id: str):
    actor = current_actor(request)
    return ok(_service().details(actor, material_id))


@materials_router.get("/materials/{course_id}")
async def list_course_materials(
    request: Request,
    course_id: str,
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    category: str | None = None,
):
    actor = current_actor(request)
    result = _service().list_for_course(
        actor, course_id, PageRequest.from_query(page, limit), search=search, category=category
    )
    return paged(result)


@materials_router.put("/materials/{material_id}")
async def update_material(request: Request, material_id: str, payload: MaterialUpdate):
    actor = current_actor(request)
    updates = payload.model_dump(exclude_unset=True)
    material = _service().update(actor, material_id, **updates)
    return ok(material, message="Material updated successfully")


@materials_router.delete("/materials/{material_id}")
async def delete_material(request: Request, material_id: str):
    actor = current_actor(request)
    _service().delete(actor, material_id)
    logger.info("Material %s deleted by %s", material_id, actor.id)
    return ok(None, message="Material deleted successfully")


# Public file URLs (`fileUrl`) live outside the API prefix but follow the same
# membership rule as download and preview.
uploads_router = APIRouter(tags=["Materials"])


@uploads_router.get("/uploads/{stored_name}", include_in_schema=False)
async def serve_upload(request: Request, stored_name: str):
    actor = current_actor(request)
    return _stream(_service().open_stored(actor, stored_name))
