"""
Materials API: multipart upload, byte-identical delivery, preview rules, MIME
and size limits, metadata edits and deletion.
"""
from __future__ import annotations

import pytest

from scholaria.teaching.services.materials import MaterialFileSettings
from scholaria.web import wiring
from utils.api import API, auth, classroom, client, create_course, register, upload

pytestmark = pytest.mark.anyio("asyncio")

PDF_BYTES = b"%PDF-1.4\n" + bytes(range(256)) * 8 + b"\n%%EOF\n"


async def test_upload_then_download_round_trip(upload_dir):
    async with client() as c:
        room = await classroom(c)
        resp = await upload(
            c, room["lecturer_token"], room["course"]["id"], content=PDF_BYTES, filename="week1.pdf", mime="application/pdf"
        )
        assert resp.status_code == 201
        material = resp.json()["data"]
        download = await c.get(f"{API}/materials/download/{material['id']}", headers=auth(room["student_token"]))
    assert material["fileName"] == "week1.pdf"
    assert material["fileType"] == "application/pdf"
    assert material["fileSize"] == len(PDF_BYTES)
    assert material["category"] == "other"
    assert material["uploadedBy"]["id"] == room["lecturer"]["id"]
    assert material["course"]["id"] == room["course"]["id"]
    stored = material["fileUrl"].rsplit("/", 1)[-1]
    assert material["fileUrl"] == f"/uploads/{stored}"
    assert stored.startswith("file-") and stored.endswith(".pdf")
    assert (upload_dir / stored).read_bytes() == PDF_BYTES

    assert download.status_code == 200
    assert download.content == PDF_BYTES
    assert download.headers["content-type"] == "application/pdf"
    assert download.headers["content-length"] == str(len(PDF_BYTES))
    assert download.headers["content-disposition"] == 'attachment; filename="week1.pdf"'


async def test_preview_inline_for_text_and_rejected_for_word():
    async with client() as c:
        room = await classroom(c)
        lt, course_id = room["lecturer_token"], room["course"]["id"]
        text = (await upload(c, lt, course_id, content=b"plain words", filename="readme.txt")).json()["data"]
        doc = (
            await upload(
                c,
                lt,
                course_id,
                content=b"PK\x03\x04 not really a docx",
                filename="essay.docx",
                mime="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            )
        ).json()["data"]
        ok = await c.get(f"{API}/materials/preview/{text['id']}", headers=auth(room["student_token"]))
        rejected = await c.get(f"{API}/materials/preview/{doc['id']}", headers=auth(room["student_token"]))
    assert ok.status_code == 200
    assert ok.content == b"plain words"
    assert ok.headers["content-disposition"].startswith("inline;")
    assert rejected.status_code == 400
    assert "download" in rejected.json()["message"].lower()


async def test_unsupported_type_leaves_no_record_and_no_file(repo, upload_dir):
    async with client() as c:
        room = await classroom(c)
        resp = await upload(
            c, room["lecturer_token"], room["course"]["id"], content=b"MZ...", filename="setup.exe", mime="application/x-msdownload"
        )
        listing = await c.get(f"{API}/materials/{room['course']['id']}", headers=auth(room["lecturer_token"]))
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Invalid file type")
    assert listing.json()["data"] == []
    assert repo.materials == {}
    assert list(upload_dir.iterdir()) == []


async def test_oversize_upload_returns_413_and_cleans_up(monkeypatch, repo, upload_dir):
    monkeypatch.setattr(wiring, "material_file_settings", lambda: MaterialFileSettings(max_size_bytes=1024))
    async with client() as c:
        room = await classroom(c)
        resp = await upload(c, room["lecturer_token"], room["course"]["id"], content=b"x" * 4096)
    assert resp.status_code == 413
    assert resp.json() == {
        "success": False,
        "message": "File too large",
        "errors": [{"field": "file", "message": "File too large"}],
    }
    assert repo.materials == {}
    assert list(upload_dir.iterdir()) == []


async def test_upload_requires_file_role_and_ownership():
    async with client() as c:
        room = await classroom(c)
        course_id = room["course"]["id"]
        _, other_lt = await register(c, "lecturer")
        no_file = await c.post(
            f"{API}/materials/upload",
            data={"title": "Nothing attached", "courseId": course_id},
            headers=auth(room["lecturer_token"]),
        )
        by_student = await upload(c, room["student_token"], course_id)
        by_other = await upload(c, other_lt, course_id)
        bad_category = await upload(c, room["lecturer_token"], course_id, category="gossip")
        no_course = await upload(c, room["lecturer_token"], "missing-course")
    assert no_file.status_code == 400
    assert by_student.status_code == 403
    assert by_other.status_code == 403
    assert bad_category.status_code == 400
    assert no_course.status_code == 404


async def test_category_filter_search_and_pagination():
    async with client() as c:
        room = await classroom(c)
        lt, course_id = room["lecturer_token"], room["course"]["id"]
        await upload(c, lt, course_id, title="Week 1 slides", category="lecture")
        await upload(c, lt, course_id, title="Week 2 slides", category="lecture")
        await upload(c, lt, course_id, title="Problem set", category="assignment")
        headers = auth(room["student_token"])
        lectures = await c.get(f"{API}/materials/{course_id}", params={"category": "lecture"}, headers=headers)
        searched = await c.get(
            f"{API}/materials", params={"search": "WEEK 2", "category": "lecture"}, headers=headers
        )
        paged = await c.get(f"{API}/materials/{course_id}", params={"limit": 2, "page": 2}, headers=headers)
    assert [m["title"] for m in lectures.json()["data"]] == ["Week 2 slides", "Week 1 slides"]
    assert [m["title"] for m in searched.json()["data"]] == ["Week 2 slides"]
    assert paged.json()["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    assert [m["title"] for m in paged.json()["data"]] == ["Week 1 slides"]


async def test_details_report_file_info(upload_dir):
    async with client() as c:
        room = await classroom(c)
        material = (await upload(c, room["lecturer_token"], room["course"]["id"], content=b"12345")).json()["data"]
        before = await c.get(f"{API}/materials/{material['id']}/details", headers=auth(room["student_token"]))
        (upload_dir / material["fileUrl"].rsplit("/", 1)[-1]).unlink()
        after = await c.get(f"{API}/materials/{material['id']}/details", headers=auth(room["student_token"]))
        download = await c.get(f"{API}/materials/download/{material['id']}", headers=auth(room["student_token"]))
    info = before.json()["data"]["fileInfo"]
    assert info["exists"] is True
    assert info["canPreview"] is True
    assert info["size"] == 5
    assert info["lastModified"]
    assert after.json()["data"]["fileInfo"] == {"exists": False, "canPreview": True, "lastModified": None, "size": None}
    assert download.status_code == 404
    assert download.json()["message"] == "File not found on server"


async def test_update_and_delete_by_uploader_only(repo, upload_dir):
    async with client() as c:
        room = await classroom(c)
        lt = room["lecturer_token"]
        material = (await upload(c, lt, room["course"]["id"])).json()["data"]
        by_student = await c.put(f"{API}/materials/{material['id']}", json={"title": "Mine now"}, headers=auth(room["student_token"]))
        bad_category = await c.put(f"{API}/materials/{material['id']}", json={"category": "memes"}, headers=auth(lt))
        updated = await c.put(
            f"{API}/materials/{material['id']}",
            json={"title": "Revised notes", "category": "reading", "description": "Updated after class"},
            headers=auth(lt),
        )
        denied = await c.delete(f"{API}/materials/{material['id']}", headers=auth(room["student_token"]))
        deleted = await c.delete(f"{API}/materials/{material['id']}", headers=auth(lt))
        after = await c.get(f"{API}/materials/detail/{material['id']}", headers=auth(lt))
    assert by_student.status_code == 403
    assert bad_category.status_code == 400
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert (data["title"], data["category"], data["description"]) == ("Revised notes", "reading", "Updated after class")
    assert denied.status_code == 403
    assert deleted.status_code == 200
    assert after.status_code == 404
    assert list(upload_dir.iterdir()) == []


async def test_delete_tolerates_missing_file(upload_dir):
    async with client() as c:
        room = await classroom(c)
        lt = room["lecturer_token"]
        material = (await upload(c, lt, room["course"]["id"])).json()["data"]
        (upload_dir / material["fileUrl"].rsplit("/", 1)[-1]).unlink()
        resp = await c.delete(f"{API}/materials/{material['id']}", headers=auth(lt))
    assert resp.status_code == 200


async def test_non_ascii_file_name_uses_rfc5987_disposition():
    async with client() as c:
        _, lt = await register(c, "lecturer")
        course = await create_course(c, lt)
        material = (await upload(c, lt, course["id"], filename="Übung €.txt")).json()["data"]
        resp = await c.get(f"{API}/materials/download/{material['id']}", headers=auth(lt))
    assert material["fileName"] == "Übung €.txt"
    disposition = resp.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="Ubung .txt"')
    assert "filename*=UTF-8''%C3%9Cbung%20%E2%82%AC.txt" in disposition


async def test_uploaded_file_url_requires_course_membership():
    async with client() as c:
        room = await classroom(c)
        material = (await upload(c, room["lecturer_token"], room["course"]["id"], content=b"members only")).json()["data"]
        anonymous = await c.get(material["fileUrl"])
        outsider = await c.get(material["fileUrl"], headers=auth(room["outsider_token"]))
        outsider_download = await c.get(f"{API}/materials/download/{material['id']}", headers=auth(room["outsider_token"]))
        member = await c.get(material["fileUrl"], headers=auth(room["student_token"]))
        unknown = await c.get("/uploads/file-1-2.txt", headers=auth(room["student_token"]))
    assert anonymous.status_code == 401
    assert outsider.status_code == 403
    assert outsider.json()["message"] == "Not authorized to access this course"
    assert outsider_download.status_code == 403
    assert member.status_code == 200
    assert member.content == b"members only"
    assert member.headers["content-type"].startswith("text/plain")
    assert member.headers["content-disposition"].startswith("inline")
    assert unknown.status_code == 404
