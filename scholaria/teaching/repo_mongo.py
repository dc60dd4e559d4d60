"""
MongoDB-backed repository for the teaching domain.

Design:
- Minimal pymongo usage; one `MongoClient` (with its own pool) per repository.
- Documents keep the public camelCase field names (`isActive`, `createdBy`,
  `fileUrl` …) and ObjectId references; records leave this module as the
  plain dataclasses from `models.py` so the web adapter stays driver-agnostic.
- Unique indexes on `users.email` and `courses.code` back the conflict errors,
  so a racing insert fails the same way as the explicit pre-check.
- Enrollment is a single conditional `$addToSet` on the course document, which
  MongoDB applies atomically; the user side is derived by query, never written.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from scholaria.errors import ConflictError

from .models import Announcement, Attachment, Comment, Course, Material, User, normalize_code, utcnow
from .pagination import Page, PageRequest, search_filter
from .ports import UNSET

logger = logging.getLogger("scholaria.teaching.repo")

DEFAULT_DB_NAME = "scholaria"


def _oid(value: str | None) -> Optional[ObjectId]:
    if not value:
        return None
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def _oids(values: Iterable[str]) -> List[ObjectId]:
    return [oid for oid in (_oid(v) for v in values) if oid is not None]


def _sid(value: Any) -> str:
    return str(value) if value is not None else ""


# --- Document <-> record mapping ----------------------------------------------


def _user(doc: Dict[str, Any]) -> User:
    return User(
        id=_sid(doc["_id"]),
        name=doc.get("name", ""),
        email=doc.get("email", ""),
        password_hash=doc.get("password", ""),
        role=doc.get("role", "student"),
        avatar=doc.get("avatar"),
        created_at=doc.get("createdAt") or utcnow(),
        updated_at=doc.get("updatedAt") or utcnow(),
    )


def _course(doc: Dict[str, Any]) -> Course:
    return Course(
        id=_sid(doc["_id"]),
        title=doc.get("title", ""),
        code=doc.get("code", ""),
        description=doc.get("description", ""),
        lecturer_id=_sid(doc.get("lecturer")),
        students=[_sid(s) for s in doc.get("students") or []],
        is_active=bool(doc.get("isActive", True)),
        created_at=doc.get("createdAt") or utcnow(),
        updated_at=doc.get("updatedAt") or utcnow(),
    )


def _announcement(doc: Dict[str, Any]) -> Announcement:
    return Announcement(
        id=_sid(doc["_id"]),
        title=doc.get("title", ""),
        body=doc.get("body", ""),
        course_id=_sid(doc.get("course")),
        created_by=_sid(doc.get("createdBy")),
        is_important=bool(doc.get("isImportant", False)),
        attachments=[
            Attachment(filename=a.get("filename", ""), file_url=a.get("fileUrl", ""), file_type=a.get("fileType", ""))
            for a in doc.get("attachments") or []
        ],
        created_at=doc.get("createdAt") or utcnow(),
        updated_at=doc.get("updatedAt") or utcnow(),
    )


def _material(doc: Dict[str, Any]) -> Material:
    return Material(
        id=_sid(doc["_id"]),
        title=doc.get("title", ""),
        description=doc.get("description"),
        file_url=doc.get("fileUrl", ""),
        file_name=doc.get("fileName", ""),
        file_type=doc.get("fileType", ""),
        file_size=int(doc.get("fileSize") or 0),
        course_id=_sid(doc.get("course")),
        uploaded_by=_sid(doc.get("uploadedBy")),
        category=doc.get("category") or "other",
        is_public=bool(doc.get("isPublic", True)),
        created_at=doc.get("createdAt") or utcnow(),
        updated_at=doc.get("updatedAt") or utcnow(),
    )


def _comment(doc: Dict[str, Any]) -> Comment:
    return Comment(
        id=_sid(doc["_id"]),
        content=doc.get("content", ""),
        announcement_id=_sid(doc.get("announcement")),
        user_id=_sid(doc.get("user")),
        is_edited=bool(doc.get("isEdited", False)),
        edited_at=doc.get("editedAt"),
        created_at=doc.get("createdAt") or utcnow(),
        updated_at=doc.get("updatedAt") or utcnow(),
    )


_ANNOUNCEMENT_SORT = [("isImportant", DESCENDING), ("createdAt", DESCENDING), ("_id", DESCENDING)]
_NEWEST_SORT = [("createdAt", DESCENDING), ("_id", DESCENDING)]
_OLDEST_SORT = [("createdAt", ASCENDING), ("_id", ASCENDING)]


class MongoTeachingRepo:
    def __init__(self, uri: Optional[str] = None, db_name: Optional[str] = None, *, client: Optional[MongoClient] = None) -> None:
        """Bind to a MongoDB database; call `ensure_indexes` once after connecting.

        Parameters:
            uri: Connection string; defaults to `MONGO_URI`.
            db_name: Database name; defaults to `MONGO_DB` or `scholaria`.
            client: Pre-built client (tests); takes precedence over `uri`.
        """
        if client is None:
            uri = uri or os.getenv("MONGO_URI")
            if not uri:
                raise RuntimeError("MONGO_URI not configured for MongoTeachingRepo")
            client = MongoClient(uri, serverSelectionTimeoutMS=3000, tz_aware=True)
        self._client = client
        self._db = client[db_name or os.getenv("MONGO_DB") or DEFAULT_DB_NAME]
        self.users = self._db["users"]
        self.courses = self._db["courses"]
        self.announcements = self._db["announcements"]
        self.materials = self._db["materials"]
        self.comments = self._db["comments"]

    def ping(self) -> None:
        self._client.admin.command("ping")

    def ensure_indexes(self) -> None:
        self.users.create_index("email", unique=True)
        self.courses.create_index("code", unique=True)
        self.courses.create_index("lecturer")
        self.courses.create_index("students")
        self.announcements.create_index([("course", ASCENDING), ("createdAt", DESCENDING)])
        self.announcements.create_index("createdBy")
        self.materials.create_index([("course", ASCENDING), ("createdAt", DESCENDING)])
        self.materials.create_index("uploadedBy")
        self.materials.create_index("category")
        self.materials.create_index("fileUrl")
        self.comments.create_index([("announcement", ASCENDING), ("createdAt", ASCENDING)])
        self.comments.create_index("user")

    def _page(self, collection, query: Dict[str, Any], sort, req: PageRequest, mapper) -> Page:
        total = collection.count_documents(query)
        cursor = collection.find(query).sort(sort).skip(req.offset).limit(req.limit)
        return Page(items=[mapper(d) for d in cursor], page=req.page, limit=req.limit, total=total)

    def _find_one(self, collection, record_id: str, mapper):
        oid = _oid(record_id)
        if oid is None:
            return None
        doc = collection.find_one({"_id": oid})
        return mapper(doc) if doc else None

    def _find_many(self, collection, record_ids: Iterable[str], mapper) -> Dict[str, Any]:
        oids = _oids(set(record_ids))
        if not oids:
            return {}
        return {_sid(d["_id"]): mapper(d) for d in collection.find({"_id": {"$in": oids}})}

    def _update(self, collection, record_id: str, changes: Dict[str, Any], mapper):
        oid = _oid(record_id)
        if oid is None:
            return None
        changes["updatedAt"] = utcnow()
        doc = collection.find_one_and_update(
            {"_id": oid}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        return mapper(doc) if doc else None

    def _delete(self, collection, record_id: str) -> bool:
        oid = _oid(record_id)
        if oid is None:
            return False
        return collection.delete_one({"_id": oid}).deleted_count == 1

    # --- Users -----------------------------------------------------------------
    def create_user(self, *, name: str, email: str, password_hash: str, role: str) -> User:
        now = utcnow()
        doc = {
            "name": name,
            "email": email,
            "password": password_hash,
            "role": role,
            "avatar": None,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.users.insert_one(doc).inserted_id
        except DuplicateKeyError as exc:
            raise ConflictError("email_taken", field="email") from exc
        return _user(doc)

    def get_user(self, user_id: str) -> Optional[User]:
        return self._find_one(self.users, user_id, _user)

    def get_user_by_email(self, email: str) -> Optional[User]:
        doc = self.users.find_one({"email": email})
        return _user(doc) if doc else None

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        return self._find_many(self.users, user_ids, _user)

    def update_user(self, user_id: str, *, name=UNSET, email=UNSET, password_hash=UNSET) -> Optional[User]:
        changes: Dict[str, Any] = {}
        if name is not UNSET:
            changes["name"] = name
        if email is not UNSET:
            changes["email"] = email
        if password_hash is not UNSET:
            changes["password"] = password_hash
        try:
            return self._update(self.users, user_id, changes, _user)
        except DuplicateKeyError as exc:
            raise ConflictError("email_taken", field="email") from exc

    # --- Courses ---------------------------------------------------------------
    def create_course(self, *, title: str, code: str, description: str, lecturer_id: str) -> Course:
        code = normalize_code(code)
        if self.courses.find_one({"code": code}, {"_id": 1}):
            raise ConflictError("duplicate_code", field="code")
        now = utcnow()
        doc = {
            "title": title,
            "code": code,
            "description": description,
            "lecturer": _oid(lecturer_id),
            "students": [],
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        try:
            doc["_id"] = self.courses.insert_one(doc).inserted_id
        except DuplicateKeyError as exc:
            raise ConflictError("duplicate_code", field="code") from exc
        return _course(doc)

    def get_course(self, course_id: str) -> Optional[Course]:
        return self._find_one(self.courses, course_id, _course)

    def get_courses(self, course_ids: Iterable[str]) -> Dict[str, Course]:
        return self._find_many(self.courses, course_ids, _course)

    def list_courses(self, req: PageRequest, *, search: Optional[str] = None) -> Page[Course]:
        query: Dict[str, Any] = {"isActive": True}
        query.update(search_filter(search, ("title", "code", "description")))
        return self._page(self.courses, query, _NEWEST_SORT, req, _course)

    def list_courses_for_member(self, user_id: str, role: str, req: PageRequest) -> Page[Course]:
        oid = _oid(user_id)
        field = "lecturer" if role == "lecturer" else "students"
        query = {"isActive": True, field: oid}
        return self._page(self.courses, query, _NEWEST_SORT, req, _course)

    def course_ids_for_member(self, user_id: str) -> List[str]:
        oid = _oid(user_id)
        if oid is None:
            return []
        cursor = self.courses.find({"$or": [{"students": oid}, {"lecturer": oid}]}, {"_id": 1})
        return [_sid(d["_id"]) for d in cursor]

    def update_course(self, course_id: str, *, title=UNSET, code=UNSET, description=UNSET) -> Optional[Course]:
        changes: Dict[str, Any] = {}
        if code is not UNSET:
            changes["code"] = normalize_code(code)  # type: ignore[arg-type]
            clash = self.courses.find_one({"code": changes["code"], "_id": {"$ne": _oid(course_id)}}, {"_id": 1})
            if clash:
                raise ConflictError("duplicate_code", field="code")
        if title is not UNSET:
            changes["title"] = title
        if description is not UNSET:
            changes["description"] = description
        try:
            return self._update(self.courses, course_id, changes, _course)
        except DuplicateKeyError as exc:
            raise ConflictError("duplicate_code", field="code") from exc

    def set_course_active(self, course_id: str, active: bool) -> bool:
        oid = _oid(course_id)
        if oid is None:
            return False
        res = self.courses.update_one({"_id": oid}, {"$set": {"isActive": bool(active), "updatedAt": utcnow()}})
        return res.matched_count == 1

    def add_student(self, course_id: str, student_id: str) -> bool:
        oid, sid = _oid(course_id), _oid(student_id)
        if oid is None or sid is None:
            return False
        res = self.courses.update_one(
            {"_id": oid, "students": {"$ne": sid}},
            {"$addToSet": {"students": sid}, "$set": {"updatedAt": utcnow()}},
        )
        return res.modified_count == 1

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
        now = utcnow()
        doc = {
            "title": title,
            "body": body,
            "course": _oid(course_id),
            "createdBy": _oid(created_by),
            "isImportant": bool(is_important),
            "attachments": [
                {"filename": a.filename, "fileUrl": a.file_url, "fileType": a.file_type} for a in attachments
            ],
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.announcements.insert_one(doc).inserted_id
        return _announcement(doc)

    def get_announcement(self, announcement_id: str) -> Optional[Announcement]:
        return self._find_one(self.announcements, announcement_id, _announcement)

    def get_announcements(self, announcement_ids: Iterable[str]) -> Dict[str, Announcement]:
        return self._find_many(self.announcements, announcement_ids, _announcement)

    def list_announcements(self, course_ids: Sequence[str], req: PageRequest) -> Page[Announcement]:
        query = {"course": {"$in": _oids(course_ids)}}
        return self._page(self.announcements, query, _ANNOUNCEMENT_SORT, req, _announcement)

    def recent_announcements(self, course_id: str, limit: int) -> List[Announcement]:
        cursor = self.announcements.find({"course": _oid(course_id)}).sort(_NEWEST_SORT).limit(limit)
        return [_announcement(d) for d in cursor]

    def announcements_since(self, course_ids: Sequence[str], since: datetime) -> List[Announcement]:
        query = {"course": {"$in": _oids(course_ids)}, "createdAt": {"$gte": since}}
        return [_announcement(d) for d in self.announcements.find(query).sort(_NEWEST_SORT)]

    def count_announcements(self, course_id: str) -> int:
        return self.announcements.count_documents({"course": _oid(course_id)})

    def update_announcement(self, announcement_id: str, *, title=UNSET, body=UNSET, is_important=UNSET) -> Optional[Announcement]:
        changes: Dict[str, Any] = {}
        if title is not UNSET:
            changes["title"] = title
        if body is not UNSET:
            changes["body"] = body
        if is_important is not UNSET:
            changes["isImportant"] = bool(is_important)
        return self._update(self.announcements, announcement_id, changes, _announcement)

    def delete_announcement(self, announcement_id: str) -> bool:
        deleted = self._delete(self.announcements, announcement_id)
        if deleted:
            self.comments.delete_many({"announcement": _oid(announcement_id)})
        return deleted

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
        now = utcnow()
        doc = {
            "title": title,
            "description": description,
            "fileUrl": file_url,
            "fileName": file_name,
            "fileType": file_type,
            "fileSize": int(file_size),
            "course": _oid(course_id),
            "uploadedBy": _oid(uploaded_by),
            "category": category,
            "isPublic": True,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.materials.insert_one(doc).inserted_id
        return _material(doc)

    def get_material(self, material_id: str) -> Optional[Material]:
        return self._find_one(self.materials, material_id, _material)

    def get_material_by_file_url(self, file_url: str) -> Optional[Material]:
        doc = self.materials.find_one({"fileUrl": file_url})
        return _material(doc) if doc else None

    def list_materials(
        self,
        course_ids: Sequence[str],
        req: PageRequest,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Page[Material]:
        query: Dict[str, Any] = {"course": {"$in": _oids(course_ids)}}
        if category:
            query["category"] = category
        query.update(search_filter(search, ("title", "description")))
        return self._page(self.materials, query, _NEWEST_SORT, req, _material)

    def list_course_materials(self, course_id: str) -> List[Material]:
        cursor = self.materials.find({"course": _oid(course_id)}).sort(_NEWEST_SORT)
        return [_material(d) for d in cursor]

    def update_material(self, material_id: str, *, title=UNSET, description=UNSET, category=UNSET) -> Optional[Material]:
        changes: Dict[str, Any] = {}
        if title is not UNSET:
            changes["title"] = title
        if description is not UNSET:
            changes["description"] = description
        if category is not UNSET:
            changes["category"] = category
        return self._update(self.materials, material_id, changes, _material)

    def delete_material(self, material_id: str) -> bool:
        return self._delete(self.materials, material_id)

    # --- Comments ----------------------------------------------------------------
    def create_comment(self, *, content: str, announcement_id: str, user_id: str) -> Comment:
        now = utcnow()
        doc = {
            "content": content,
            "announcement": _oid(announcement_id),
            "user": _oid(user_id),
            "isEdited": False,
            "editedAt": None,
            "createdAt": now,
            "updatedAt": now,
        }
        doc["_id"] = self.comments.insert_one(doc).inserted_id
        return _comment(doc)

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        return self._find_one(self.comments, comment_id, _comment)

    def list_comments(self, announcement_id: str, req: PageRequest) -> Page[Comment]:
        query = {"announcement": _oid(announcement_id)}
        return self._page(self.comments, query, _OLDEST_SORT, req, _comment)

    def all_comments(self, announcement_id: str) -> List[Comment]:
        cursor = self.comments.find({"announcement": _oid(announcement_id)}).sort(_OLDEST_SORT)
        return [_comment(d) for d in cursor]

    def update_comment(self, comment_id: str, *, content: str, edited_at: datetime) -> Optional[Comment]:
        changes = {"content": content, "isEdited": True, "editedAt": edited_at}
        return self._update(self.comments, comment_id, changes, _comment)

    def delete_comment(self, comment_id: str) -> bool:
        return self._delete(self.comments, comment_id)


__all__ = ["MongoTeachingRepo"]
