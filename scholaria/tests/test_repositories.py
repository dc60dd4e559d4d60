"""
Repository contract tests, run against the in-memory store and, when a server
is reachable, MongoDB.
"""
from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from scholaria.errors import ConflictError
from scholaria.teaching.models import utcnow
from scholaria.teaching.pagination import PageRequest
from scholaria.teaching.repo_memory import InMemoryTeachingRepo
from utils.db import mongo_client_or_skip, scratch_db_name


@pytest.fixture(params=["memory", "mongo"])
def store(request):
    if request.param == "memory":
        yield InMemoryTeachingRepo()
        return
    from scholaria.teaching.repo_mongo import MongoTeachingRepo

    client = mongo_client_or_skip()
    name = scratch_db_name()
    repo = MongoTeachingRepo(db_name=name, client=client)
    repo.ensure_indexes()
    try:
        yield repo
    finally:
        client.drop_database(name)
        client.close()


def _people(store):
    lecturer = store.create_user(name="Lee", email="lee@example.com", password_hash="h", role="lecturer")
    student = store.create_user(name="Sam", email="sam@example.com", password_hash="h", role="student")
    return lecturer, student


def test_unique_email_and_course_code(store):
    lecturer, _ = _people(store)
    with pytest.raises(ConflictError):
        store.create_user(name="Again", email="lee@example.com", password_hash="h", role="student")
    course = store.create_course(title="Databases", code="db101", description="Tables", lecturer_id=lecturer.id)
    assert course.code == "DB101"
    with pytest.raises(ConflictError):
        store.create_course(title="Other", code="DB101", description="x", lecturer_id=lecturer.id)
    other = store.create_course(title="Other", code="DB102", description="x", lecturer_id=lecturer.id)
    with pytest.raises(ConflictError):
        store.update_course(other.id, code="db101")
    # Keeping one's own code is not a clash.
    assert store.update_course(course.id, code="DB101").code == "DB101"


def test_enrollment_is_idempotent_and_derives_membership(store):
    lecturer, student = _people(store)
    course = store.create_course(title="Algebra", code="ALG", description="Groups", lecturer_id=lecturer.id)
    assert store.add_student(course.id, student.id) is True
    assert store.add_student(course.id, student.id) is False
    assert store.get_course(course.id).students == [student.id]
    assert store.course_ids_for_member(student.id) == [course.id]
    assert store.course_ids_for_member(lecturer.id) == [course.id]
    page = store.list_courses_for_member(student.id, "student", PageRequest())
    assert [c.id for c in page.items] == [course.id]


def test_concurrent_enrollment_adds_student_once(store):
    lecturer, student = _people(store)
    course = store.create_course(title="Logic", code="LOG", description="Proofs", lecturer_id=lecturer.id)
    results = []
    barrier = threading.Barrier(8)

    def _enroll():
        barrier.wait()
        results.append(store.add_student(course.id, student.id))

    threads = [threading.Thread(target=_enroll) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 1
    assert store.get_course(course.id).students == [student.id]


def test_inactive_courses_leave_listings(store):
    lecturer, _ = _people(store)
    course = store.create_course(title="Retired", code="OLD1", description="x", lecturer_id=lecturer.id)
    assert store.set_course_active(course.id, False) is True
    assert store.get_course(course.id).is_active is False
    assert store.list_courses(PageRequest()).total == 0
    assert store.list_courses_for_member(lecturer.id, "lecturer", PageRequest()).total == 0


def test_search_is_literal_and_case_insensitive(store):
    lecturer, _ = _people(store)
    store.create_course(title="C++ (advanced)", code="CPP", description="Templates", lecturer_id=lecturer.id)
    store.create_course(title="Cooking", code="COOK", description="Pasta", lecturer_id=lecturer.id)
    hits = store.list_courses(PageRequest(), search="c++ (ADV")
    assert [c.code for c in hits.items] == ["CPP"]
    assert store.list_courses(PageRequest(), search="pasta").total == 1


def test_announcement_window_and_cascade(store):
    lecturer, student = _people(store)
    course = store.create_course(title="Physics", code="PHY", description="Motion", lecturer_id=lecturer.id)
    ann = store.create_announcement(course_id=course.id, created_by=lecturer.id, title="Lab", body="Bring goggles please", is_important=False)
    store.create_comment(content="ok", announcement_id=ann.id, user_id=student.id)
    store.create_comment(content="thanks", announcement_id=ann.id, user_id=student.id)
    assert [c.content for c in store.all_comments(ann.id)] == ["ok", "thanks"]
    assert [a.id for a in store.announcements_since([course.id], utcnow() - timedelta(days=7))] == [ann.id]
    assert store.announcements_since([course.id], utcnow() + timedelta(minutes=1)) == []
    assert store.delete_announcement(ann.id) is True
    assert store.all_comments(ann.id) == []
    assert store.get_announcement(ann.id) is None


def test_unknown_ids_resolve_to_none(store):
    assert store.get_course("does-not-exist") is None
    assert store.get_user("does-not-exist") is None
    assert store.add_student("does-not-exist", "nobody") is False
    assert store.delete_comment("does-not-exist") is False


def test_material_lookup_by_public_url(store):
    lecturer, _ = _people(store)
    course = store.create_course(title="Optics", code="OPT", description="Lenses", lecturer_id=lecturer.id)
    material = store.create_material(
        title="Slides",
        description=None,
        file_url="/uploads/file-1-2.pdf",
        file_name="slides.pdf",
        file_type="application/pdf",
        file_size=3,
        course_id=course.id,
        uploaded_by=lecturer.id,
        category="lecture",
    )
    assert store.get_material_by_file_url("/uploads/file-1-2.pdf").id == material.id
    assert store.get_material_by_file_url("/uploads/file-9-9.pdf") is None
