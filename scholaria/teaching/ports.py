"""
Repository contract shared by the in-memory and the Mongo-backed store.

Conventions:
    - Lookups return `None` for unknown or malformed ids (callers map to 404).
    - Unique violations raise `ConflictError` (`duplicate_code`, `email_taken`).
    - List methods return a `Page` computed from a separate count over the
      same filter, so `pages` does not depend on the requested page.
    - Keyword arguments defaulting to `UNSET` are left untouched on update.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .models import Announcement, Attachment, Comment, Course, Material, User
from .pagination import Page, PageRequest


class _Unset:
    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return "UNSET"


UNSET = _Unset()


class TeachingRepoProtocol(Protocol):
    # --- Users -----------------------------------------------------------------
    def create_user(self, *, name: str, email: str, password_hash: str, role: str) -> User: ...

    def get_user(self, user_id: str) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]: ...

    def update_user(
        self, user_id: str, *, name: object = UNSET, email: object = UNSET, password_hash: object = UNSET
    ) -> Optional[User]: ...

    # --- Courses ---------------------------------------------------------------
    def create_course(self, *, title: str, code: str, description: str, lecturer_id: str) -> Course: ...

    def get_course(self, course_id: str) -> Optional[Course]: ...

    def get_courses(self, course_ids: Iterable[str]) -> Dict[str, Course]: ...

    def list_courses(self, req: PageRequest, *, search: Optional[str] = None) -> Page[Course]: ...

    def list_courses_for_member(self, user_id: str, role: str, req: PageRequest) -> Page[Course]: ...

    def course_ids_for_member(self, user_id: str) -> List[str]: ...

    def update_course(
        self, course_id: str, *, title: object = UNSET, code: object = UNSET, description: object = UNSET
    ) -> Optional[Course]: ...

    def set_course_active(self, course_id: str, active: bool) -> bool: ...

    def add_student(self, course_id: str, student_id: str) -> bool: ...

    # --- Announcements -----------------------------------------------------------
    def create_announcement(
        self,
        *,
        title: str,
        body: str,
        course_id: str,
        created_by: str,
        is_important: bool,
        attachments: Sequence[Attachment] = (),
    ) -> Announcement: ...

    def get_announcement(self, announcement_id: str) -> Optional[Announcement]: ...

    def get_announcements(self, announcement_ids: Iterable[str]) -> Dict[str, Announcement]: ...

    def list_announcements(self, course_ids: Sequence[str], req: PageRequest) -> Page[Announcement]: ...

    def recent_announcements(self, course_id: str, limit: int) -> List[Announcement]: ...

    def announcements_since(self, course_ids: Sequence[str], since: datetime) -> List[Announcement]: ...

    def count_announcements(self, course_id: str) -> int: ...

    def update_announcement(
        self, announcement_id: str, *, title: object = UNSET, body: object = UNSET, is_important: object = UNSET
    ) -> Optional[Announcement]: ...

    def delete_announcement(self, announcement_id: str) -> bool: ...

    # --- Materials ---------------------------------------------------------------
    def create_material(
        self,
        *,
        title: str,
        description: Optional[str],
        file_url: str,
        file_name: str,
        file_type: str,
        file_size: int,
        course_id: str,
        uploaded_by: str,
        category: str,
    ) -> Material: ...

    def get_material(self, material_id: str) -> Optional[Material]: ...

    def get_material_by_file_url(self, file_url: str) -> Optional[Material]: ...

    def list_materials(
        self,
        course_ids: Sequence[str],
        req: PageRequest,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Page[Material]: ...

    def list_course_materials(self, course_id: str) -> List[Material]: ...

    def update_material(
        self, material_id: str, *, title: object = UNSET, description: object = UNSET, category: object = UNSET
    ) -> Optional[Material]: ...

    def delete_material(self, material_id: str) -> bool: ...

    # --- Comments ----------------------------------------------------------------
    def create_comment(self, *, content: str, announcement_id: str, user_id: str) -> Comment: ...

    def get_comment(self, comment_id: str) -> Optional[Comment]: ...

    def list_comments(self, announcement_id: str, req: PageRequest) -> Page[Comment]: ...

    def all_comments(self, announcement_id: str) -> List[Comment]: ...

    def update_comment(self, comment_id: str, *, content: str, edited_at: datetime) -> Optional[Comment]: ...

    def delete_comment(self, comment_id: str) -> bool: ...


__all__ = ["TeachingRepoProtocol", "UNSET"]
