"""
Reads of announcements, materials and comments are limited to course members
(lecturer or enrolled student). Unknown ids answer 404 before any rule runs.
"""
from __future__ import annotations

import logging

import pytest

from utils.api import API, auth, classroom, client, post_announcement, upload

pytestmark = pytest.mark.anyio("asyncio")


async def _seed(c):
    room = await classroom(c)
    lt, course_id = room["lecturer_token"], room["course"]["id"]
    ann = await post_announcement(c, lt, course_id)
    material = (await upload(c, lt, course_id)).json()["data"]
    comment = (
        await c.post(f"{API}/comments/{ann['id']}", json={"content": "Looking forward"}, headers=auth(room["student_token"]))
    ).json()["data"]
    return room, ann, material, comment


async def test_non_member_gets_403_on_every_read():
    async with client() as c:
        room, ann, material, _ = await _seed(c)
        course_id = room["course"]["id"]
        headers = auth(room["outsider_token"])
        reads = [
            await c.get(f"{API}/announcements/{course_id}", headers=headers),
            await c.get(f"{API}/announcements/detail/{ann['id']}", headers=headers),
            await c.get(f"{API}/announcements/{ann['id']}/with-comments", headers=headers),
            await c.get(f"{API}/materials/{course_id}", headers=headers),
            await c.get(f"{API}/materials/detail/{material['id']}", headers=headers),
            await c.get(f"{API}/materials/{material['id']}/details", headers=headers),
            await c.get(f"{API}/materials/download/{material['id']}", headers=headers),
            await c.get(f"{API}/materials/preview/{material['id']}", headers=headers),
            await c.get(f"{API}/comments/{ann['id']}", headers=headers),
            await c.post(f"{API}/comments/{ann['id']}", json={"content": "let me in"}, headers=headers),
        ]
    for resp in reads:
        assert resp.status_code == 403, resp.request.url
        assert resp.json() == {"success": False, "message": "Not authorized to access this course"}


async def test_members_can_read_everything():
    async with client() as c:
        room, ann, material, _ = await _seed(c)
        course_id = room["course"]["id"]
        for token in (room["lecturer_token"], room["student_token"]):
            headers = auth(token)
            assert (await c.get(f"{API}/announcements/{course_id}", headers=headers)).status_code == 200
            assert (await c.get(f"{API}/announcements/detail/{ann['id']}", headers=headers)).status_code == 200
            assert (await c.get(f"{API}/materials/{course_id}", headers=headers)).status_code == 200
            assert (await c.get(f"{API}/materials/detail/{material['id']}", headers=headers)).status_code == 200
            assert (await c.get(f"{API}/comments/{ann['id']}", headers=headers)).status_code == 200


async def test_cross_course_listings_only_include_member_courses():
    async with client() as c:
        room, ann, material, _ = await _seed(c)
        outsider = auth(room["outsider_token"])
        student = auth(room["student_token"])
        anns_out = await c.get(f"{API}/announcements", headers=outsider)
        mats_out = await c.get(f"{API}/materials", headers=outsider)
        anns_in = await c.get(f"{API}/announcements", headers=student)
        mats_in = await c.get(f"{API}/materials", headers=student)
    assert anns_out.json()["data"] == [] and mats_out.json()["data"] == []
    assert [a["id"] for a in anns_in.json()["data"]] == [ann["id"]]
    assert [m["id"] for m in mats_in.json()["data"]] == [material["id"]]


async def test_unknown_ids_return_404():
    async with client() as c:
        room = await classroom(c)
        headers = auth(room["student_token"])
        responses = [
            await c.get(f"{API}/courses/nope", headers=headers),
            await c.get(f"{API}/courses/nope/details", headers=headers),
            await c.get(f"{API}/announcements/nope", headers=headers),
            await c.get(f"{API}/announcements/detail/nope", headers=headers),
            await c.get(f"{API}/materials/detail/nope", headers=headers),
            await c.get(f"{API}/materials/download/nope", headers=headers),
            await c.get(f"{API}/comments/nope", headers=headers),
            await c.put(f"{API}/comments/nope", json={"content": "x"}, headers=headers),
        ]
    for resp in responses:
        assert resp.status_code == 404, resp.request.url
        assert resp.json()["success"] is False


async def test_unknown_route_uses_error_envelope():
    async with client() as c:
        room = await classroom(c)
        resp = await c.get(f"{API}/nothing-here", headers=auth(room["student_token"]))
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Route not found"}


async def test_internal_lookup_errors_are_logged_as_server_errors(repo, monkeypatch, caplog):
    async with client(raise_app_exceptions=False) as c:
        room = await classroom(c)

        def _broken(*args, **kwargs):
            raise KeyError("internal")

        monkeypatch.setattr(repo, "list_courses", _broken)
        with caplog.at_level(logging.ERROR, logger="scholaria.web.errors"):
            resp = await c.get(f"{API}/courses", headers=auth(room["student_token"]))
    assert resp.status_code == 500
    assert resp.json() == {"success": False, "message": "Server Error"}
    logged = [r for r in caplog.records if r.name == "scholaria.web.errors" and r.levelno == logging.ERROR]
    assert logged and logged[0].exc_info[0] is KeyError


async def test_children_of_inactive_course_stay_readable_for_members():
    async with client() as c:
        room, ann, material, _ = await _seed(c)
        await c.delete(f"{API}/courses/{room['course']['id']}", headers=auth(room["lecturer_token"]))
        headers = auth(room["student_token"])
        by_course = await c.get(f"{API}/announcements/{room['course']['id']}", headers=headers)
        detail = await c.get(f"{API}/announcements/detail/{ann['id']}", headers=headers)
        download = await c.get(f"{API}/materials/download/{material['id']}", headers=headers)
    assert by_course.status_code == 404
    assert detail.status_code == 200
    assert download.status_code == 200
