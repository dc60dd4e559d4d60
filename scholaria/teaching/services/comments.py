"""Comment use cases. Readers of an announcement may comment on it."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from scholaria.errors import NotFoundError

from ..models import utcnow
from ..pagination import Page, PageRequest
from ..policies import DELETE, UPDATE, Actor, Target, ensure_can_mutate, ensure_can_view
from ..ports import TeachingRepoProtocol
from .lookups import load_announcement, load_comment
from .populate import Populator


@dataclass
class CommentsService:
    repo: TeachingRepoProtocol

    @property
    def _populate(self) -> Populator:
        return Populator(self.repo)

    def add(self, actor: Actor, announcement_id: str, *, content: str) -> Dict[str, Any]:
        ann, course = load_announcement(self.repo, announcement_id)
        ensure_can_view(actor.id, Target.for_announcement(ann, course), code="course_not_member")
        comment = self.repo.create_comment(content=content.strip(), announcement_id=ann.id, user_id=actor.id)
        return self._populate.comment(comment)

    def list_for_announcement(self, actor: Actor, announcement_id: str, req: PageRequest) -> Page[Dict[str, Any]]:
        ann, course = load_announcement(self.repo, announcement_id)
        ensure_can_view(actor.id, Target.for_announcement(ann, course), code="course_not_member")
        page = self.repo.list_comments(ann.id, req)
        return Page(self._populate.comments(page.items), page.page, page.limit, page.total)

    def _target(self, comment_id: str):
        comment, ann, course = load_comment(self.repo, comment_id)
        if course is None:
            # Orphaned comment: no course left to authorize against.
            raise NotFoundError("announcement_not_found")
        return comment, Target.for_comment(comment, ann, course)

    def update(self, actor: Actor, comment_id: str, *, content: str) -> Dict[str, Any]:
        comment, target = self._target(comment_id)
        ensure_can_mutate(actor.id, target, UPDATE, code="comment_not_owner")
        updated = self.repo.update_comment(comment.id, content=content.strip(), edited_at=utcnow())
        if updated is None:
            raise NotFoundError("comment_not_found")
        return self._populate.comment(updated)

    def delete(self, actor: Actor, comment_id: str) -> None:
        comment, target = self._target(comment_id)
        ensure_can_mutate(actor.id, target, DELETE, code="comment_not_owner")
        if not self.repo.delete_comment(comment.id):
            raise NotFoundError("comment_not_found")


__all__ = ["CommentsService"]
