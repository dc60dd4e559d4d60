"""
Announcements and comments: ownership rules, ordering, edit markers and the
with-comments aggregate.
"""
from __future__ import annotations

import pytest

from utils.api import API, auth, classroom, client, create_course, post_announcement, register

pytestmark = pytest.mark.anyio("asyncio")


async def _comment(c, token, announcement_id, content):
    resp = await c.post(f"{API}/comments/{announcement_id}", json={"content": content}, headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_only_course_owner_can_post_announcements():
    async with client() as c:
        room = await classroom(c)
        _, other_lt = await register(c, "lecturer")
        payload = {"courseId": room["course"]["id"], "title": "Heads up", "body": "Room change for Friday."}
        by_student = await c.post(f"{API}/announcements", json=payload, headers=auth(room["student_token"]))
        by_other = await c.post(f"{API}/announcements", json=payload, headers=auth(other_lt))
        by_owner = await c.post(f"{API}/announcements", json=payload, headers=auth(room["lecturer_token"]))
        missing = await c.post(
            f"{API}/announcements", json={**payload, "courseId": "nope"}, headers=auth(room["lecturer_token"])
        )
    assert by_student.status_code == 403
    assert by_other.status_code == 403
    assert by_owner.status_code == 201
    data = by_owner.json()["data"]
    assert data["createdBy"]["id"] == room["lecturer"]["id"]
    assert data["course"] == {"id": room["course"]["id"], "title": room["course"]["title"], "code": room["course"]["code"]}
    assert data["isImportant"] is False
    assert missing.status_code == 404


async def test_announcement_attachments_are_kept():
    async with client() as c:
        _, lt = await register(c, "lecturer")
        course = await create_course(c, lt)
        resp = await c.post(
            f"{API}/announcements",
            json={
                "courseId": course["id"],
                "title": "Reading list",
                "body": "See the attached syllabus for details.",
                "attachments": [{"filename": "syllabus.pdf", "fileUrl": "/uploads/file-1-2.pdf", "fileType": "application/pdf"}],
            },
            headers=auth(lt),
        )
    assert resp.status_code == 201
    assert resp.json()["data"]["attachments"] == [
        {"filename": "syllabus.pdf", "fileUrl": "/uploads/file-1-2.pdf", "fileType": "application/pdf"}
    ]


async def test_course_announcements_list_important_first_then_newest():
    async with client() as c:
        room = await classroom(c)
        lt, course_id = room["lecturer_token"], room["course"]["id"]
        await post_announcement(c, lt, course_id, title="Old news")
        await post_announcement(c, lt, course_id, title="Exam date", important=True)
        await post_announcement(c, lt, course_id, title="Fresh news")
        resp = await c.get(f"{API}/announcements/{course_id}", headers=auth(room["student_token"]))
    assert [a["title"] for a in resp.json()["data"]] == ["Exam date", "Fresh news", "Old news"]
    assert resp.json()["pagination"] == {"page": 1, "limit": 10, "total": 3, "pages": 1}


async def test_update_and_delete_by_creator_only():
    async with client() as c:
        room = await classroom(c)
        ann = await post_announcement(c, room["lecturer_token"], room["course"]["id"])
        _, other_lt = await register(c, "lecturer")
        denied = await c.put(f"{API}/announcements/{ann['id']}", json={"title": "Not yours"}, headers=auth(other_lt))
        updated = await c.put(
            f"{API}/announcements/{ann['id']}",
            json={"title": "Updated title", "isImportant": True},
            headers=auth(room["lecturer_token"]),
        )
        student_delete = await c.delete(f"{API}/announcements/{ann['id']}", headers=auth(room["student_token"]))
    assert denied.status_code == 403
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Updated title"
    assert updated.json()["data"]["isImportant"] is True
    assert student_delete.status_code == 403


async def test_comments_oldest_first_and_with_comments_aggregate():
    async with client() as c:
        room = await classroom(c)
        ann = await post_announcement(c, room["lecturer_token"], room["course"]["id"])
        await _comment(c, room["student_token"], ann["id"], "first")
        await _comment(c, room["lecturer_token"], ann["id"], "second")
        await _comment(c, room["student_token"], ann["id"], "third")
        listing = await c.get(f"{API}/comments/{ann['id']}", params={"limit": 2}, headers=auth(room["student_token"]))
        agg = await c.get(f"{API}/announcements/{ann['id']}/with-comments", headers=auth(room["student_token"]))
    assert [x["content"] for x in listing.json()["data"]] == ["first", "second"]
    assert listing.json()["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    data = agg.json()["data"]
    assert data["announcement"]["id"] == ann["id"]
    assert data["commentCount"] == 3
    assert [x["content"] for x in data["comments"]] == ["first", "second", "third"]
    assert data["comments"][0]["user"]["id"] == room["student"]["id"]
    assert data["comments"][0]["announcement"] == {"id": ann["id"], "title": ann["title"]}


async def test_comment_edit_marks_edited_and_rejects_others():
    async with client() as c:
        room = await classroom(c)
        ann = await post_announcement(c, room["lecturer_token"], room["course"]["id"])
        comment = await _comment(c, room["student_token"], ann["id"], "typo herre")
        assert comment["isEdited"] is False and comment["editedAt"] is None
        by_lecturer = await c.put(
            f"{API}/comments/{comment['id']}", json={"content": "edited by someone else"}, headers=auth(room["lecturer_token"])
        )
        by_author = await c.put(
            f"{API}/comments/{comment['id']}", json={"content": "typo here"}, headers=auth(room["student_token"])
        )
        empty = await c.put(f"{API}/comments/{comment['id']}", json={"content": "   "}, headers=auth(room["student_token"]))
    assert by_lecturer.status_code == 403
    assert by_author.status_code == 200
    edited = by_author.json()["data"]
    assert edited["content"] == "typo here"
    assert edited["isEdited"] is True
    assert edited["editedAt"]
    assert empty.status_code == 400


async def test_comment_delete_by_author_or_announcement_creator():
    async with client() as c:
        room = await classroom(c)
        lt, st = room["lecturer_token"], room["student_token"]
        _, st2 = await register(c, "student")
        await c.post(f"{API}/courses/{room['course']['id']}/enroll", headers=auth(st2))
        ann = await post_announcement(c, lt, room["course"]["id"])
        mine = await _comment(c, st, ann["id"], "mine")
        moderated = await _comment(c, st, ann["id"], "off topic")
        by_peer = await c.delete(f"{API}/comments/{mine['id']}", headers=auth(st2))
        by_author = await c.delete(f"{API}/comments/{mine['id']}", headers=auth(st))
        by_creator = await c.delete(f"{API}/comments/{moderated['id']}", headers=auth(lt))
        left = await c.get(f"{API}/comments/{ann['id']}", headers=auth(st))
    assert by_peer.status_code == 403
    assert by_author.status_code == 200
    assert by_creator.status_code == 200
    assert left.json()["data"] == []


async def test_deleting_announcement_removes_its_comments(repo):
    async with client() as c:
        room = await classroom(c)
        ann = await post_announcement(c, room["lecturer_token"], room["course"]["id"])
        comment = await _comment(c, room["student_token"], ann["id"], "bye")
        resp = await c.delete(f"{API}/announcements/{ann['id']}", headers=auth(room["lecturer_token"]))
        gone = await c.get(f"{API}/announcements/detail/{ann['id']}", headers=auth(room["student_token"]))
    assert resp.status_code == 200
    assert gone.status_code == 404
    assert repo.get_comment(comment["id"]) is None
