"""Per-user overview: recent courses, fresh announcements and counters."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from ..models import utcnow
from ..pagination import PageRequest
from ..policies import Actor
from ..ports import TeachingRepoProtocol
from .populate import Populator

RECENT_COURSES = 5
ANNOUNCEMENT_WINDOW = timedelta(days=7)


@dataclass
class DashboardService:
    repo: TeachingRepoProtocol

    def overview(self, actor: Actor, *, now: Optional[datetime] = None) -> Dict[str, Any]:
        populate = Populator(self.repo)
        recent = self.repo.list_courses_for_member(actor.id, actor.role, PageRequest(page=1, limit=RECENT_COURSES))
        member_ids = self.repo.course_ids_for_member(actor.id)
        since = (now or utcnow()) - ANNOUNCEMENT_WINDOW
        fresh = self.repo.announcements_since(member_ids, since)
        data: Dict[str, Any] = {
            "recentCourses": populate.courses(recent.items),
            "recentAnnouncements": populate.announcements(fresh),
            "stats": {
                "totalCourses": recent.total,
                "recentAnnouncements": len(fresh),
            },
        }
        if actor.role == "lecturer":
            taught = [c for c in self.repo.get_courses(member_ids).values() if c.is_active and c.lecturer_id == actor.id]
            data["stats"]["totalStudents"] = sum(len(c.students) for c in taught)
        return data


__all__ = ["DashboardService", "RECENT_COURSES", "ANNOUNCEMENT_WINDOW"]
