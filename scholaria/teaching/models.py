"""
Teaching domain records: users, courses, announcements, materials, comments.

Records are plain dataclasses so both repositories (in-memory and Mongo) can
return the same shapes and the web adapter stays independent of the driver.
References to other records are stored as ids; population happens in the
service layer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

# Canonical material categories. Anything else is rejected on write.
MATERIAL_CATEGORIES = ("lecture", "assignment", "reading", "other")
DEFAULT_CATEGORY = "other"

ACCEPTED_MIME_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
    "image/gif",
    "text/plain",
)

# Field limits shared by request schemas and repositories.
COURSE_TITLE_MIN, COURSE_TITLE_MAX = 3, 100
COURSE_CODE_MIN, COURSE_CODE_MAX = 2, 20
COURSE_DESCRIPTION_MIN, COURSE_DESCRIPTION_MAX = 10, 500
ANNOUNCEMENT_TITLE_MIN, ANNOUNCEMENT_TITLE_MAX = 3, 200
ANNOUNCEMENT_BODY_MIN, ANNOUNCEMENT_BODY_MAX = 10, 2000
MATERIAL_TITLE_MIN, MATERIAL_TITLE_MAX = 3, 200
MATERIAL_DESCRIPTION_MAX = 500
COMMENT_MIN, COMMENT_MAX = 1, 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def can_preview(mime_type: str | None) -> bool:
    """Images, PDF and plain text render safely inline; everything else downloads."""
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    return mime.startswith("image/") or mime in ("application/pdf", "text/plain")


@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str
    role: str
    avatar: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Course:
    id: str
    title: str
    code: str
    description: str
    lecturer_id: str
    students: List[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Attachment:
    filename: str
    file_url: str
    file_type: str


@dataclass
class Announcement:
    id: str
    title: str
    body: str
    course_id: str
    created_by: str
    is_important: bool = False
    attachments: List[Attachment] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Material:
    id: str
    title: str
    file_url: str
    file_name: str
    file_type: str
    file_size: int
    course_id: str
    uploaded_by: str
    description: Optional[str] = None
    category: str = DEFAULT_CATEGORY
    is_public: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def storage_key(self) -> str:
        """Stored file name, derived from `/uploads/<name>`."""
        return self.file_url.rsplit("/", 1)[-1]


@dataclass
class Comment:
    id: str
    content: str
    announcement_id: str
    user_id: str
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


__all__ = [
    "MATERIAL_CATEGORIES",
    "DEFAULT_CATEGORY",
    "ACCEPTED_MIME_TYPES",
    "User",
    "Course",
    "Attachment",
    "Announcement",
    "Material",
    "Comment",
    "utcnow",
    "normalize_code",
    "can_preview",
]
