"""Existence checks shared by the teaching services.

Each loader returns the record together with the parents its access rules
need, or raises `NotFoundError` with a resource-specific code.
"""
from __future__ import annotations

from typing import Optional, Tuple

from scholaria.errors import NotFoundError

from ..models import Announcement, Comment, Course, Material
from ..ports import TeachingRepoProtocol


def load_course(repo: TeachingRepoProtocol, course_id: str, *, active_only: bool = True) -> Course:
    course = repo.get_course(course_id)
    if course is None or (active_only and not course.is_active):
        raise NotFoundError("course_not_found")
    return course


def load_announcement(repo: TeachingRepoProtocol, announcement_id: str) -> Tuple[Announcement, Course]:
    ann = repo.get_announcement(announcement_id)
    if ann is None:
        raise NotFoundError("announcement_not_found")
    # Children of a soft-deleted course stay readable for its members.
    return ann, load_course(repo, ann.course_id, active_only=False)


def load_material(repo: TeachingRepoProtocol, material_id: str) -> Tuple[Material, Course]:
    material = repo.get_material(material_id)
    if material is None:
        raise NotFoundError("material_not_found")
    return material, load_course(repo, material.course_id, active_only=False)


def load_comment(repo: TeachingRepoProtocol, comment_id: str) -> Tuple[Comment, Optional[Announcement], Optional[Course]]:
    comment = repo.get_comment(comment_id)
    if comment is None:
        raise NotFoundError("comment_not_found")
    ann = repo.get_announcement(comment.announcement_id)
    course = repo.get_course(ann.course_id) if ann is not None else None
    return comment, ann, course
