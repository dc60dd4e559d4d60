"""
Population of stored references into response payloads.

Records keep references as ids. Before leaving the service layer, referenced
users, courses and announcements are fetched in bulk (one lookup per kind per
batch) and embedded as small reference objects:

- users → `{id, name, email}`
- courses → `{id, title, code}`
- announcements → `{id, title}`

Unknown references degrade to `{id}` so a dangling id never breaks a listing.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..models import Announcement, Comment, Course, Material, User
from ..ports import TeachingRepoProtocol


def iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def user_ref(user_id: str, users: Dict[str, User]) -> Dict[str, Any]:
    user = users.get(user_id)
    if user is None:
        return {"id": user_id}
    return {"id": user.id, "name": user.name, "email": user.email}


def course_ref(course_id: str, courses: Dict[str, Course]) -> Dict[str, Any]:
    course = courses.get(course_id)
    if course is None:
        return {"id": course_id}
    return {"id": course.id, "title": course.title, "code": course.code}


def announcement_ref(announcement_id: str, announcements: Dict[str, Announcement]) -> Dict[str, Any]:
    ann = announcements.get(announcement_id)
    if ann is None:
        return {"id": announcement_id}
    return {"id": ann.id, "title": ann.title}


def serialize_user(user: User, *, enrolled: List[Dict[str, Any]] | None = None, created: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
    """Public profile; the password hash never leaves the service layer."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "avatar": user.avatar,
        "enrolledCourses": enrolled or [],
        "createdCourses": created or [],
        "createdAt": iso(user.created_at),
        "updatedAt": iso(user.updated_at),
    }


def serialize_course(course: Course, users: Dict[str, User]) -> Dict[str, Any]:
    return {
        "id": course.id,
        "title": course.title,
        "code": course.code,
        "description": course.description,
        "lecturer": user_ref(course.lecturer_id, users),
        "students": [user_ref(s, users) for s in course.students],
        "isActive": course.is_active,
        "createdAt": iso(course.created_at),
        "updatedAt": iso(course.updated_at),
    }


def serialize_announcement(ann: Announcement, users: Dict[str, User], courses: Dict[str, Course]) -> Dict[str, Any]:
    return {
        "id": ann.id,
        "title": ann.title,
        "body": ann.body,
        "course": course_ref(ann.course_id, courses),
        "createdBy": user_ref(ann.created_by, users),
        "isImportant": ann.is_important,
        "attachments": [
            {"filename": a.filename, "fileUrl": a.file_url, "fileType": a.file_type} for a in ann.attachments
        ],
        "createdAt": iso(ann.created_at),
        "updatedAt": iso(ann.updated_at),
    }


def serialize_material(material: Material, users: Dict[str, User], courses: Dict[str, Course]) -> Dict[str, Any]:
    return {
        "id": material.id,
        "title": material.title,
        "description": material.description,
        "fileUrl": material.file_url,
        "fileName": material.file_name,
        "fileType": material.file_type,
        "fileSize": material.file_size,
        "course": course_ref(material.course_id, courses),
        "uploadedBy": user_ref(material.uploaded_by, users),
        "category": material.category or "other",
        "isPublic": material.is_public,
        "createdAt": iso(material.created_at),
        "updatedAt": iso(material.updated_at),
    }


def serialize_comment(comment: Comment, users: Dict[str, User], announcements: Dict[str, Announcement]) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "content": comment.content,
        "announcement": announcement_ref(comment.announcement_id, announcements),
        "user": user_ref(comment.user_id, users),
        "isEdited": comment.is_edited,
        "editedAt": iso(comment.edited_at),
        "createdAt": iso(comment.created_at),
        "updatedAt": iso(comment.updated_at),
    }


class Populator:
    """Bulk-resolve references for batches of records."""

    def __init__(self, repo: TeachingRepoProtocol) -> None:
        self.repo = repo

    def _users(self, ids: Iterable[str]) -> Dict[str, User]:
        return self.repo.get_users({i for i in ids if i})

    def _courses(self, ids: Iterable[str]) -> Dict[str, Course]:
        return self.repo.get_courses({i for i in ids if i})

    def courses(self, items: List[Course]) -> List[Dict[str, Any]]:
        users = self._users(uid for c in items for uid in (c.lecturer_id, *c.students))
        return [serialize_course(c, users) for c in items]

    def course(self, item: Course) -> Dict[str, Any]:
        return self.courses([item])[0]

    def announcements(self, items: List[Announcement]) -> List[Dict[str, Any]]:
        users = self._users(a.created_by for a in items)
        courses = self._courses(a.course_id for a in items)
        return [serialize_announcement(a, users, courses) for a in items]

    def announcement(self, item: Announcement) -> Dict[str, Any]:
        return self.announcements([item])[0]

    def materials(self, items: List[Material]) -> List[Dict[str, Any]]:
        users = self._users(m.uploaded_by for m in items)
        courses = self._courses(m.course_id for m in items)
        return [serialize_material(m, users, courses) for m in items]

    def material(self, item: Material) -> Dict[str, Any]:
        return self.materials([item])[0]

    def comments(self, items: List[Comment]) -> List[Dict[str, Any]]:
        users = self._users(c.user_id for c in items)
        announcements = self.repo.get_announcements({c.announcement_id for c in items})
        return [serialize_comment(c, users, announcements) for c in items]

    def comment(self, item: Comment) -> Dict[str, Any]:
        return self.comments([item])[0]

    def profile(self, user: User) -> Dict[str, Any]:
        """User payload with course memberships derived from the courses themselves."""
        member_of = self.repo.get_courses(self.repo.course_ids_for_member(user.id)).values()
        enrolled = [course_ref(c.id, {c.id: c}) for c in member_of if user.id in c.students]
        created = [course_ref(c.id, {c.id: c}) for c in member_of if c.lecturer_id == user.id]
        return serialize_user(user, enrolled=enrolled, created=created)


__all__ = [
    "Populator",
    "iso",
    "serialize_user",
    "serialize_course",
    "serialize_announcement",
    "serialize_material",
    "serialize_comment",
    "course_ref",
    "user_ref",
]
