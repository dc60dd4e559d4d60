"""Course use cases: catalogue, ownership, enrollment and the details view."""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from scholaria.errors import ConflictError, NotFoundError

from ..models import DEFAULT_CATEGORY, normalize_code
from ..pagination import Page, PageRequest, normalize_search
from ..policies import DELETE, UPDATE, Actor, Target, ensure_can_mutate, ensure_can_view, require_role
from ..ports import UNSET, TeachingRepoProtocol
from .lookups import load_course
from .populate import Populator

RECENT_ANNOUNCEMENTS = 5


@dataclass
class CoursesService:
    repo: TeachingRepoProtocol

    @property
    def _populate(self) -> Populator:
        return Populator(self.repo)

    def create_course(self, actor: Actor, *, title: str, code: str, description: str) -> Dict[str, Any]:
        require_role(actor.role, "lecturer", code="lecturer_only")
        course = self.repo.create_course(
            title=title.strip(),
            code=normalize_code(code),
            description=description.strip(),
            lecturer_id=actor.id,
        )
        return self._populate.course(course)

    def list_courses(self, req: PageRequest, *, search: Optional[str] = None) -> Page[Dict[str, Any]]:
        page = self.repo.list_courses(req, search=normalize_search(search))
        return Page(self._populate.courses(page.items), page.page, page.limit, page.total)

    def list_my_courses(self, actor: Actor, req: PageRequest) -> Page[Dict[str, Any]]:
        """Lecturers see the courses they teach, students the ones they joined."""
        page = self.repo.list_courses_for_member(actor.id, actor.role, req)
        return Page(self._populate.courses(page.items), page.page, page.limit, page.total)

    def get_course(self, course_id: str) -> Dict[str, Any]:
        return self._populate.course(load_course(self.repo, course_id))

    def get_course_details(self, actor: Actor, course_id: str) -> Dict[str, Any]:
        course = load_course(self.repo, course_id)
        ensure_can_view(actor.id, Target.for_course(course), code="course_not_member")
        populate = self._populate
        recent = self.repo.recent_announcements(course.id, RECENT_ANNOUNCEMENTS)
        materials = populate.materials(self.repo.list_course_materials(course.id))
        grouped: Dict[str, List[Dict[str, Any]]] = OrderedDict()
        for item in materials:
            grouped.setdefault(item["category"] or DEFAULT_CATEGORY, []).append(item)
        return {
            "course": populate.course(course),
            "recentAnnouncements": populate.announcements(recent),
            "materialsByCategory": grouped,
            "stats": {
                "totalStudents": len(course.students),
                "totalAnnouncements": self.repo.count_announcements(course.id),
                "totalMaterials": len(materials),
                "materialsByCategory": len(grouped),
            },
        }

    def update_course(
        self,
        actor: Actor,
        course_id: str,
        *,
        title: object = UNSET,
        code: object = UNSET,
        description: object = UNSET,
    ) -> Dict[str, Any]:
        require_role(actor.role, "lecturer", code="lecturer_only")
        course = load_course(self.repo, course_id)
        ensure_can_mutate(actor.id, Target.for_course(course), UPDATE, code="course_not_owner")
        changes: Dict[str, object] = {}
        if title is not UNSET and title is not None:
            changes["title"] = str(title).strip()
        if description is not UNSET and description is not None:
            changes["description"] = str(description).strip()
        if code is not UNSET and code is not None:
            normalized = normalize_code(str(code))
            if normalized != course.code:
                changes["code"] = normalized
        updated = self.repo.update_course(course.id, **changes) if changes else course
        if updated is None:
            raise NotFoundError("course_not_found")
        return self._populate.course(updated)

    def delete_course(self, actor: Actor, course_id: str) -> None:
        """Soft delete: the course disappears from listings, children stay."""
        course = load_course(self.repo, course_id)
        ensure_can_mutate(actor.id, Target.for_course(course), DELETE, code="course_not_owner")
        if not self.repo.set_course_active(course.id, False):
            raise NotFoundError("course_not_found")

    def enroll(self, actor: Actor, course_id: str) -> Dict[str, Any]:
        require_role(actor.role, "student", code="student_only")
        course = load_course(self.repo, course_id)
        if not self.repo.add_student(course.id, actor.id):
            raise ConflictError("already_enrolled")
        return self._populate.course(load_course(self.repo, course.id, active_only=False))


__all__ = ["CoursesService", "RECENT_ANNOUNCEMENTS"]
