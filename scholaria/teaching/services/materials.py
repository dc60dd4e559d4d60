"""Teaching materials service layer.

Uploads are validated (role, course, ownership, MIME type) before anything is
written. The file is stored first and the record second; if the record write
fails the stored file is removed again. Deletion runs the other way round:
file first (best-effort), then the record.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Iterator, Optional, Tuple

from scholaria.errors import InvalidInputError, NotFoundError

from ..models import ACCEPTED_MIME_TYPES, DEFAULT_CATEGORY, MATERIAL_CATEGORIES, Material, can_preview
from ..pagination import Page, PageRequest, normalize_search
from ..policies import DELETE, UPDATE, Actor, Target, ensure_can_mutate, ensure_can_view, require_role
from ..ports import UNSET, TeachingRepoProtocol
from ..storage import StorageAdapterProtocol, make_stored_name
from .lookups import load_course, load_material
from .populate import Populator, iso

_log = logging.getLogger("scholaria.teaching.materials")


@dataclass
class MaterialFileSettings:
    """Configuration for file-based teaching materials."""

    accepted_mime_types: Tuple[str, ...] = ACCEPTED_MIME_TYPES
    max_size_bytes: int = 10 * 1024 * 1024
    public_prefix: str = "/uploads"


@dataclass
class FileDelivery:
    """Everything the web adapter needs to stream a stored file."""

    stream: Iterator[bytes]
    filename: str
    media_type: str
    length: int
    disposition: str


def _normalize_mime(value: Optional[str]) -> str:
    return (value or "").split(";", 1)[0].strip().lower()


def normalize_category(value: Optional[str], *, default: Optional[str] = DEFAULT_CATEGORY) -> Optional[str]:
    if value is None or not str(value).strip():
        return default
    category = str(value).strip().lower()
    if category not in MATERIAL_CATEGORIES:
        raise InvalidInputError("invalid_category", field="category")
    return category


@dataclass
class MaterialsService:
    """Encapsulate teaching materials use cases independent of web adapters."""

    repo: TeachingRepoProtocol
    storage: StorageAdapterProtocol
    settings: MaterialFileSettings = field(default_factory=MaterialFileSettings)

    @property
    def _populate(self) -> Populator:
        return Populator(self.repo)

    def upload(
        self,
        actor: Actor,
        *,
        course_id: str,
        title: str,
        source: BinaryIO,
        filename: str,
        content_type: Optional[str],
        description: Optional[str] = None,
        category: Optional[str] = None,
        fieldname: str = "file",
    ) -> Dict[str, Any]:
        require_role(actor.role, "lecturer", code="lecturer_only")
        course = load_course(self.repo, course_id)
        ensure_can_mutate(actor.id, Target.for_course(course), UPDATE, code="course_not_owner")
        mime = _normalize_mime(content_type)
        if mime not in self.settings.accepted_mime_types:
            raise InvalidInputError("mime_not_allowed", field="file")
        normalized_category = normalize_category(category)
        original_name = os.path.basename((filename or "").strip()) or "file"
        stored_name = make_stored_name(fieldname, original_name)
        size = self.storage.save(stored_name, source, max_bytes=self.settings.max_size_bytes)
        try:
            material = self.repo.create_material(
                title=title.strip(),
                description=(description or "").strip() or None,
                file_url=f"{self.settings.public_prefix.rstrip('/')}/{stored_name}",
                file_name=original_name,
                file_type=mime,
                file_size=size,
                course_id=course.id,
                uploaded_by=actor.id,
                category=normalized_category or DEFAULT_CATEGORY,
            )
        except Exception:
            _log.warning("Material record write failed; removing stored file %s", stored_name)
            self.storage.delete(stored_name)
            raise
        _log.info("Material %s uploaded to course %s (%d bytes)", material.id, course.id, size)
        return self._populate.material(material)

    def list_all(
        self,
        actor: Actor,
        req: PageRequest,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Page[Dict[str, Any]]:
        course_ids = self.repo.course_ids_for_member(actor.id)
        page = self.repo.list_materials(
            course_ids,
            req,
            search=normalize_search(search),
            category=normalize_category(category, default=None),
        )
        return Page(self._populate.materials(page.items), page.page, page.limit, page.total)

    def list_for_course(
        self,
        actor: Actor,
        course_id: str,
        req: PageRequest,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Page[Dict[str, Any]]:
        course = load_course(self.repo, course_id)
        ensure_can_view(actor.id, Target.for_course(course), code="course_not_member")
        page = self.repo.list_materials(
            [course.id],
            req,
            search=normalize_search(search),
            category=normalize_category(category, default=None),
        )
        return Page(self._populate.materials(page.items), page.page, page.limit, page.total)

    def get(self, actor: Actor, material_id: str) -> Dict[str, Any]:
        material, course = load_material(self.repo, material_id)
        ensure_can_view(actor.id, Target.for_material(material, course), code="course_not_member")
        return self._populate.material(material)

    def details(self, actor: Actor, material_id: str) -> Dict[str, Any]:
        material, course = load_material(self.repo, material_id)
        ensure_can_view(actor.id, Target.for_material(material, course), code="course_not_member")
        info = self.storage.stat(material.storage_key)
        return {
            "material": self._populate.material(material),
            "fileInfo": {
                "exists": info is not None,
                "canPreview": can_preview(material.file_type),
                "lastModified": iso(info["modified_at"]) if info else None,
                "size": info["size"] if info else None,
            },
        }

    def update(
        self,
        actor: Actor,
        material_id: str,
        *,
        title: object = UNSET,
        description: object = UNSET,
        category: object = UNSET,
    ) -> Dict[str, Any]:
        require_role(actor.role, "lecturer", code="lecturer_only")
        material, course = load_material(self.repo, material_id)
        ensure_can_mutate(actor.id, Target.for_material(material, course), UPDATE, code="material_not_owner")
        changes: Dict[str, object] = {}
        if title is not UNSET and title is not None:
            changes["title"] = str(title).strip()
        if description is not UNSET:
            changes["description"] = (str(description).strip() or None) if description is not None else None
        if category is not UNSET and category is not None:
            changes["category"] = normalize_category(str(category))
        updated = self.repo.update_material(material.id, **changes) if changes else material
        if updated is None:
            raise NotFoundError("material_not_found")
        return self._populate.material(updated)

    def delete(self, actor: Actor, material_id: str) -> None:
        material, course = load_material(self.repo, material_id)
        ensure_can_mutate(actor.id, Target.for_material(material, course), DELETE, code="material_not_owner")
        if not self.storage.delete(material.storage_key):
            _log.info("Stored file for material %s was already gone", material.id)
        if not self.repo.delete_material(material.id):
            raise NotFoundError("material_not_found")

    def open_file(self, actor: Actor, material_id: str, *, inline: bool = False) -> FileDelivery:
        """Resolve a material to a byte stream for download or inline preview."""
        material, course = load_material(self.repo, material_id)
        ensure_can_view(actor.id, Target.for_material(material, course), code="course_not_member")
        if inline and not can_preview(material.file_type):
            raise InvalidInputError("preview_not_supported")
        return self._deliver(material, "inline" if inline else "attachment")

    def open_stored(self, actor: Actor, stored_name: str) -> FileDelivery:
        """Resolve a public upload URL to its material and stream it inline to course members."""
        file_url = f"{self.settings.public_prefix.rstrip('/')}/{stored_name}"
        material = self.repo.get_material_by_file_url(file_url)
        if material is None:
            raise NotFoundError("file_not_found")
        course = load_course(self.repo, material.course_id, active_only=False)
        ensure_can_view(actor.id, Target.for_material(material, course), code="course_not_member")
        return self._deliver(material, "inline")

    def _deliver(self, material: Material, disposition: str) -> FileDelivery:
        try:
            stream = self.storage.open_stream(material.storage_key)
        except (FileNotFoundError, ValueError):
            raise NotFoundError("file_not_found") from None
        return FileDelivery(
            stream=stream,
            filename=material.file_name,
            media_type=material.file_type or "application/octet-stream",
            length=material.file_size,
            disposition=disposition,
        )


__all__ = ["MaterialsService", "MaterialFileSettings", "FileDelivery", "normalize_category"]
