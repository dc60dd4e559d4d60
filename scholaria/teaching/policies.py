"""
Access-control predicates for teaching resources.

Why:
    Every route needs the same two questions answered: "may this user read
    the resource?" and "may this user change it?". The rules are defined once
    per resource kind (strategy objects below) and callers use the generic
    entry points `can_view` / `can_mutate` (or their raising variants).

Rules:
    - View: course lecturer or enrolled student. Announcements, materials and
      comments inherit visibility from their course.
    - Mutate: the owner field of the resource (`course.lecturer_id`,
      `announcement.created_by`, `material.uploaded_by`, `comment.user_id`).
    - Comment delete: comment author or the announcement creator.
    - Role gates (`require_role`) run before any resource rule.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

from scholaria.errors import ForbiddenError

from .models import Announcement, Comment, Course, Material

VIEW = "view"
UPDATE = "update"
DELETE = "delete"


@dataclass(frozen=True)
class Actor:
    """The authenticated requester as seen by the services."""

    id: str
    role: str


@dataclass(frozen=True)
class Target:
    """A resource together with the parents its rules depend on."""

    kind: str
    resource: Any
    course: Course
    announcement: Optional[Announcement] = None

    @classmethod
    def for_course(cls, course: Course) -> "Target":
        return cls(kind="course", resource=course, course=course)

    @classmethod
    def for_announcement(cls, announcement: Announcement, course: Course) -> "Target":
        return cls(kind="announcement", resource=announcement, course=course, announcement=announcement)

    @classmethod
    def for_material(cls, material: Material, course: Course) -> "Target":
        return cls(kind="material", resource=material, course=course)

    @classmethod
    def for_comment(cls, comment: Comment, announcement: Optional[Announcement], course: Course) -> "Target":
        return cls(kind="comment", resource=comment, course=course, announcement=announcement)


def course_member_ids(course: Course) -> FrozenSet[str]:
    return frozenset([course.lecturer_id, *course.students])


class _Policy:
    def viewers(self, target: Target) -> FrozenSet[str]:
        return course_member_ids(target.course)

    def owners(self, target: Target, action: str) -> FrozenSet[str]:
        raise NotImplementedError


class _CoursePolicy(_Policy):
    def owners(self, target: Target, action: str) -> FrozenSet[str]:
        return frozenset([target.course.lecturer_id])


class _AnnouncementPolicy(_Policy):
    def owners(self, target: Target, action: str) -> FrozenSet[str]:
        return frozenset([target.resource.created_by])


class _MaterialPolicy(_Policy):
    def owners(self, target: Target, action: str) -> FrozenSet[str]:
        return frozenset([target.resource.uploaded_by])


class _CommentPolicy(_Policy):
    def owners(self, target: Target, action: str) -> FrozenSet[str]:
        owners = {target.resource.user_id}
        if action == DELETE and target.announcement is not None:
            owners.add(target.announcement.created_by)
        return frozenset(owners)


_POLICIES: Dict[str, _Policy] = {
    "course": _CoursePolicy(),
    "announcement": _AnnouncementPolicy(),
    "material": _MaterialPolicy(),
    "comment": _CommentPolicy(),
}


def _policy(kind: str) -> _Policy:
    try:
        return _POLICIES[kind]
    except KeyError:
        raise ValueError(f"unknown_resource_kind:{kind}") from None


def can_view(user_id: str, target: Target) -> bool:
    return bool(user_id) and user_id in _policy(target.kind).viewers(target)


def can_mutate(user_id: str, target: Target, action: str = UPDATE) -> bool:
    return bool(user_id) and user_id in _policy(target.kind).owners(target, action)


def ensure_can_view(user_id: str, target: Target, *, code: str = "forbidden") -> None:
    if not can_view(user_id, target):
        raise ForbiddenError(code)


def ensure_can_mutate(user_id: str, target: Target, action: str = UPDATE, *, code: str = "forbidden") -> None:
    if not can_mutate(user_id, target, action):
        raise ForbiddenError(code)


def require_role(role: str | None, expected: str, *, code: str = "role_forbidden") -> None:
    if (role or "") != expected:
        raise ForbiddenError(code)


__all__ = [
    "Actor",
    "Target",
    "VIEW",
    "UPDATE",
    "DELETE",
    "course_member_ids",
    "can_view",
    "can_mutate",
    "ensure_can_view",
    "ensure_can_mutate",
    "require_role",
]
