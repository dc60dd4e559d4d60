"""
In-memory teaching repository.

Used for tests and offline development when no MongoDB is configured. Mirrors
the Mongo repository contract (see `ports.py`) including unique constraints
and sort orders. Check-then-write sequences run under one lock so the
enrollment guard and code uniqueness hold under concurrent requests.
"""
from __future__ import annotations

import itertools
import threading
from copy import deepcopy
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar
from uuid import uuid4

from scholaria.errors import ConflictError

from .models import Announcement, Attachment, Comment, Course, Material, User, normalize_code, utcnow
from .pagination import Page, PageRequest, matches_search, paginate_sequence
from .ports import UNSET

T = TypeVar("T")


def _new_id() -> str:
    return uuid4().hex


class InMemoryTeachingRepo:
    def __init__(self) -> None:
        self.users: Dict[str, User] = {}
        self.courses: Dict[str, Course] = {}
        self.announcements: Dict[str, Announcement] = {}
        self.materials: Dict[str, Material] = {}
        self.comments: Dict[str, Comment] = {}
        # Insertion sequence breaks ties between records created in the same tick.
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.RLock()

    def _track(self, record_id: str) -> None:
        self._seq[record_id] = next(self._counter)

    def _newest_first(self, items: Iterable[T]) -> List[T]:
        return sorted(items, key=lambda r: (r.created_at, self._seq.get(r.id, 0)), reverse=True)

    def _oldest_first(self, items: Iterable[T]) -> List[T]:
        return sorted(items, key=lambda r: (r.created_at, self._seq.get(r.id, 0)))

    @staticmethod
    def _copy(record: Optional[T]) -> Optional[T]:
        # Hand out copies so callers cannot mutate stored state by accident.
        return deepcopy(record) if record is not None else None

    def _pick(self, store: Dict[str, T], ids: Iterable[str]) -> Dict[str, T]:
        return {i: deepcopy(store[i]) for i in ids if i in store}

    # --- Users -----------------------------------------------------------------
    def create_user(self, *, name: str, email: str, password_hash: str, role: str) -> User:
        with self._lock:
            if any(u.email == email for u in self.users.values()):
                raise ConflictError("email_taken", field="email")
            user = User(id=_new_id(), name=name, email=email, password_hash=password_hash, role=role)
            self.users[user.id] = user
            self._track(user.id)
            return deepcopy(user)

    def get_user(self, user_id: str) -> Optional[User]:
        return self._copy(self.users.get(user_id))

    def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email == email:
                return deepcopy(user)
        return None

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        return self._pick(self.users, user_ids)

    def update_user(self, user_id: str, *, name=UNSET, email=UNSET, password_hash=UNSET) -> Optional[User]:
        with self._lock:
            user = self.users.get(user_id)
            if user is None:
                return None
            if email is not UNSET and any(u.email == email and u.id != user_id for u in self.users.values()):
                raise ConflictError("email_taken", field="email")
            if name is not UNSET:
                user.name = name
            if email is not UNSET:
                user.email = email
            if password_hash is not UNSET:
                user.password_hash = password_hash
            user.updated_at = utcnow()
            return deepcopy(user)

    # --- Courses ---------------------------------------------------------------
    def _code_taken(self, code: str, *, exclude: str | None = None) -> bool:
        return any(c.code == code and c.id != exclude for c in self.courses.values())

    def create_course(self, *, title: str, code: str, description: str, lecturer_id: str) -> Course:
        code = normalize_code(code)
        with self._lock:
            if self._code_taken(code):
                raise ConflictError("duplicate_code", field="code")
            course = Course(id=_new_id(), title=title, code=code, description=description, lecturer_id=lecturer_id)
            self.courses[course.id] = course
            self._track(course.id)
            return deepcopy(course)

    def get_course(self, course_id: str) -> Optional[Course]:
        course = self.courses.get(course_id)
        return deepcopy(course) if course else None

    def get_courses(self, course_ids: Iterable[str]) -> Dict[str, Course]:
        return self._pick(self.courses, course_ids)

    def list_courses(self, req: PageRequest, *, search: Optional[str] = None) -> Page[Course]:
        items = [
            c
            for c in self.courses.values()
            if c.is_active and matches_search(search, (c.title, c.code, c.description))
        ]
        return paginate_sequence(self._newest_first(items), req).map(self._copy)

    def _member_filter(self, user_id: str, role: str) -> Callable[[Course], bool]:
        if role == "lecturer":
            return lambda c: c.lecturer_id == user_id
        return lambda c: user_id in c.students

    def list_courses_for_member(self, user_id: str, role: str, req: PageRequest) -> Page[Course]:
        keep = self._member_filter(user_id, role)
        items = [c for c in self.courses.values() if c.is_active and keep(c)]
        return paginate_sequence(self._newest_first(items), req).map(self._copy)

    def course_ids_for_member(self, user_id: str) -> List[str]:
        return [c.id for c in self.courses.values() if c.lecturer_id == user_id or user_id in c.students]

    def update_course(self, course_id: str, *, title=UNSET, code=UNSET, description=UNSET) -> Optional[Course]:
        with self._lock:
            course = self.courses.get(course_id)
            if course is None:
                return None
            if code is not UNSET:
                code = normalize_code(code)  # type: ignore[arg-type]
                if self._code_taken(code, exclude=course_id):
                    raise ConflictError("duplicate_code", field="code")
                course.code = code
            if title is not UNSET:
                course.title = title
            if description is not UNSET:
                course.description = description
            course.updated_at = utcnow()
            return self.get_course(course_id)

    def set_course_active(self, course_id: str, active: bool) -> bool:
        with self._lock:
            course = self.courses.get(course_id)
            if course is None:
                return False
            course.is_active = active
            course.updated_at = utcnow()
            return True

    def add_student(self, course_id: str, student_id: str) -> bool:
        with self._lock:
            course = self.courses.get(course_id)
            if course is None or student_id in course.students:
                return False
            course.students.append(student_id)
            course.updated_at = utcnow()
            return True

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
    ) -> Announcement:
        with self._lock:
            ann = Announcement(
                id=_new_id(),
                title=title,
                body=body,
                course_id=course_id,
                created_by=created_by,
                is_important=bool(is_important),
                attachments=list(attachments),
            )
            self.announcements[ann.id] = ann
            self._track(ann.id)
            return deepcopy(ann)

    def get_announcement(self, announcement_id: str) -> Optional[Announcement]:
        return self._copy(self.announcements.get(announcement_id))

    def get_announcements(self, announcement_ids: Iterable[str]) -> Dict[str, Announcement]:
        return self._pick(self.announcements, announcement_ids)

    def _important_then_newest(self, items: Iterable[Announcement]) -> List[Announcement]:
        newest = self._newest_first(items)
        # Stable sort keeps newest-first order inside each importance bucket.
        return sorted(newest, key=lambda a: not a.is_important)

    def list_announcements(self, course_ids: Sequence[str], req: PageRequest) -> Page[Announcement]:
        wanted = set(course_ids)
        items = [a for a in self.announcements.values() if a.course_id in wanted]
        return paginate_sequence(self._important_then_newest(items), req).map(self._copy)

    def recent_announcements(self, course_id: str, limit: int) -> List[Announcement]:
        items = [a for a in self.announcements.values() if a.course_id == course_id]
        return [deepcopy(a) for a in self._newest_first(items)[:limit]]

    def announcements_since(self, course_ids: Sequence[str], since: datetime) -> List[Announcement]:
        wanted = set(course_ids)
        items = [a for a in self.announcements.values() if a.course_id in wanted and a.created_at >= since]
        return [deepcopy(a) for a in self._newest_first(items)]

    def count_announcements(self, course_id: str) -> int:
        return sum(1 for a in self.announcements.values() if a.course_id == course_id)

    def update_announcement(self, announcement_id: str, *, title=UNSET, body=UNSET, is_important=UNSET) -> Optional[Announcement]:
        with self._lock:
            ann = self.announcements.get(announcement_id)
            if ann is None:
                return None
            if title is not UNSET:
                ann.title = title
            if body is not UNSET:
                ann.body = body
            if is_important is not UNSET:
                ann.is_important = bool(is_important)
            ann.updated_at = utcnow()
            return deepcopy(ann)

    def delete_announcement(self, announcement_id: str) -> bool:
        with self._lock:
            existed = self.announcements.pop(announcement_id, None) is not None
            if existed:
                for cid in [c.id for c in self.comments.values() if c.announcement_id == announcement_id]:
                    self.comments.pop(cid, None)
            return existed

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
    ) -> Material:
        with self._lock:
            material = Material(
                id=_new_id(),
                title=title,
                description=description,
                file_url=file_url,
                file_name=file_name,
                file_type=file_type,
                file_size=int(file_size),
                course_id=course_id,
                uploaded_by=uploaded_by,
                category=category,
            )
            self.materials[material.id] = material
            self._track(material.id)
            return deepcopy(material)

    def get_material(self, material_id: str) -> Optional[Material]:
        return self._copy(self.materials.get(material_id))

    def get_material_by_file_url(self, file_url: str) -> Optional[Material]:
        found = next((m for m in self.materials.values() if m.file_url == file_url), None)
        return self._copy(found)

    def list_materials(
        self,
        course_ids: Sequence[str],
        req: PageRequest,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Page[Material]:
        wanted = set(course_ids)
        items = [
            m
            for m in self.materials.values()
            if m.course_id in wanted
            and (category is None or m.category == category)
            and matches_search(search, (m.title, m.description))
        ]
        return paginate_sequence(self._newest_first(items), req).map(self._copy)

    def list_course_materials(self, course_id: str) -> List[Material]:
        items = [m for m in self.materials.values() if m.course_id == course_id]
        return [deepcopy(m) for m in self._newest_first(items)]

    def update_material(self, material_id: str, *, title=UNSET, description=UNSET, category=UNSET) -> Optional[Material]:
        with self._lock:
            material = self.materials.get(material_id)
            if material is None:
                return None
            if title is not UNSET:
                material.title = title
            if description is not UNSET:
                material.description = description
            if category is not UNSET:
                material.category = category
            material.updated_at = utcnow()
            return deepcopy(material)

    def delete_material(self, material_id: str) -> bool:
        with self._lock:
            return self.materials.pop(material_id, None) is not None

    # --- Comments ----------------------------------------------------------------
    def create_comment(self, *, content: str, announcement_id: str, user_id: str) -> Comment:
        with self._lock:
            comment = Comment(id=_new_id(), content=content, announcement_id=announcement_id, user_id=user_id)
            self.comments[comment.id] = comment
            self._track(comment.id)
            return deepcopy(comment)

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        return self._copy(self.comments.get(comment_id))

    def list_comments(self, announcement_id: str, req: PageRequest) -> Page[Comment]:
        items = [c for c in self.comments.values() if c.announcement_id == announcement_id]
        return paginate_sequence(self._oldest_first(items), req).map(self._copy)

    def all_comments(self, announcement_id: str) -> List[Comment]:
        items = [c for c in self.comments.values() if c.announcement_id == announcement_id]
        return [deepcopy(c) for c in self._oldest_first(items)]

    def update_comment(self, comment_id: str, *, content: str, edited_at: datetime) -> Optional[Comment]:
        with self._lock:
            comment = self.comments.get(comment_id)
            if comment is None:
                return None
            comment.content = content
            comment.is_edited = True
            comment.edited_at = edited_at
            comment.updated_at = edited_at
            return deepcopy(comment)

    def delete_comment(self, comment_id: str) -> bool:
        with self._lock:
            return self.comments.pop(comment_id, None) is not None


__all__ = ["InMemoryTeachingRepo"]
