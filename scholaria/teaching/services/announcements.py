"""Announcement use cases."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

from scholaria.errors import NotFoundError

from ..models import Attachment
from ..pagination import Page, PageRequest
from ..policies import DELETE, UPDATE, Actor, Target, ensure_can_mutate, ensure_can_view, require_role
from ..ports import UNSET, TeachingRepoProtocol
from .lookups import load_announcement, load_course
from .populate import Populator


def _attachments(items: Iterable[Mapping[str, Any]] | None) -> list[Attachment]:
    out = []
    for item in items or ():
        out.append(
            Attachment(
                filename=str(item.get("filename") or ""),
                file_url=str(item.get("fileUrl") or item.get("file_url") or ""),
                file_type=str(item.get("fileType") or item.get("file_type") or ""),
            )
        )
    return out


@dataclass
class AnnouncementsService:
    repo: TeachingRepoProtocol

    @property
    def _populate(self) -> Populator:
        return Populator(self.repo)

    def list_all(self, actor: Actor, req: PageRequest) -> Page[Dict[str, Any]]:
        """Announcements across every course the requester teaches or attends."""
        course_ids = self.repo.course_ids_for_member(actor.id)
        page = self.repo.list_announcements(course_ids, req)
        return Page(self._populate.announcements(page.items), page.page, page.limit, page.total)

    def create(
        self,
        actor: Actor,
        *,
        course_id: str,
        title: str,
        body: str,
        is_important: bool = False,
        attachments: Iterable[Mapping[str, Any]] | None = None,
    ) -> Dict[str, Any]:
        require_role(actor.role, "lecturer", code="lecturer_only")
        course = load_course(self.repo, course_id)
        ensure_can_mutate(actor.id, Target.for_course(course), UPDATE, code="course_not_owner")
        ann = self.repo.create_announcement(
            title=title.strip(),
            body=body.strip(),
            course_id=course.id,
            created_by=actor.id,
            is_important=bool(is_important),
            attachments=_attachments(attachments),
        )
        return self._populate.announcement(ann)

    def list_for_course(self, actor: Actor, course_id: str, req: PageRequest) -> Page[Dict[str, Any]]:
        course = load_course(self.repo, course_id)
        ensure_can_view(actor.id, Target.for_course(course), code="course_not_member")
        page = self.repo.list_announcements([course.id], req)
        return Page(self._populate.announcements(page.items), page.page, page.limit, page.total)

    def get(self, actor: Actor, announcement_id: str) -> Dict[str, Any]:
        ann, course = load_announcement(self.repo, announcement_id)
        ensure_can_view(actor.id, Target.for_announcement(ann, course), code="course_not_member")
        return self._populate.announcement(ann)

    def with_comments(self, actor: Actor, announcement_id: str) -> Dict[str, Any]:
        ann, course = load_announcement(self.repo, announcement_id)
        ensure_can_view(actor.id, Target.for_announcement(ann, course), code="course_not_member")
        populate = self._populate
        comments = populate.comments(self.repo.all_comments(ann.id))
        return {
            "announcement": populate.announcement(ann),
            "comments": comments,
            "commentCount": len(comments),
        }

    def update(
        self,
        actor: Actor,
        announcement_id: str,
        *,
        title: object = UNSET,
        body: object = UNSET,
        is_important: object = UNSET,
    ) -> Dict[str, Any]:
        require_role(actor.role, "lecturer", code="lecturer_only")
        ann, course = load_announcement(self.repo, announcement_id)
        ensure_can_mutate(actor.id, Target.for_announcement(ann, course), UPDATE, code="announcement_not_owner")
        changes: Dict[str, object] = {}
        if title is not UNSET and title is not None:
            changes["title"] = str(title).strip()
        if body is not UNSET and body is not None:
            changes["body"] = str(body).strip()
        if is_important is not UNSET and is_important is not None:
            changes["is_important"] = bool(is_important)
        updated = self.repo.update_announcement(ann.id, **changes) if changes else ann
        if updated is None:
            raise NotFoundError("announcement_not_found")
        return self._populate.announcement(updated)

    def delete(self, actor: Actor, announcement_id: str) -> None:
        ann, course = load_announcement(self.repo, announcement_id)
        ensure_can_mutate(actor.id, Target.for_announcement(ann, course), DELETE, code="announcement_not_owner")
        if not self.repo.delete_announcement(ann.id):
            raise NotFoundError("announcement_not_found")


__all__ = ["AnnouncementsService"]
