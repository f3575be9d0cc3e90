import pytest

import db as db_module
import routers.pdftobrainrot as pdf_router
from conftest import OTHER_USER_ID, USER_ID, seed


def valid_save_payload(**overrides):
    payload = {
        "pdfUrl": "https://ucarecdn.com/abc/notes.pdf",
        "pdfName": "notes.pdf",
        "extractedText": "Photosynthesis turns light into chemical energy.",
        "script": "Plants eat light. Then they grow.",
        "audioUrl": "https://res.cloudinary.com/demo/video/upload/narration.mp3",
        "voiceId": "BFqnCBsd6RMkjVDRZzb",
        "captions": [
            {"word": "Plants", "start": 0, "end": 300},
            {"text": "eat", "start": 300, "end": 520},
        ],
        "disableCaptions": False,
        "screenRatio": "9/16",
        "bgVideo": "minecraft.mp4",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def pdf_db(databases):
    return databases[db_module.pdf_brainrot_db]


class FakePdfResponse:
    content = b"%PDF-1.7 fake"


def test_pdfcontent_extracts_text(client, fakes, monkeypatch):
    downloads = []

    def fake_download(service, method, url, **kwargs):
        downloads.append(url)
        return FakePdfResponse()

    monkeypatch.setattr(pdf_router, "upstream_request", fake_download)

    res = client.post("/api/pdftobrainrot/pdfcontent", json={
        "pdfUrl": "https://ucarecdn.com/abc/notes.pdf",
        "fileName": "notes.pdf",
        "identifierId": "abc",
    })

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["data"] == {
        "extractedText": "Photosynthesis turns light into chemical energy.",
        "fileName": "notes.pdf",
    }
    assert downloads == ["https://ucarecdn.com/abc/notes.pdf"]
    assert fakes["ai"].pdf_bytes == b"%PDF-1.7 fake"


def test_pdfcontent_requires_identifier(client):
    res = client.post("/api/pdftobrainrot/pdfcontent", json={"pdfUrl": "https://x.test/a.pdf"})

    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Missing required fields: identifierId"}


def test_videoscript_returns_script(client):
    res = client.post("/api/pdftobrainrot/videoscript", json={"extractedText": "Cells divide."})

    assert res.status_code == 200
    assert res.json()["data"]["script"] == "Script about: Cells divide."


def test_getcaptions_rejects_non_http_audio(client):
    res = client.post("/api/pdftobrainrot/getcaptions", json={"audioUrl": "ftp://host/a.mp3"})

    assert res.status_code == 400
    assert res.json()["error"] == "Valid audio URL is required"


def test_getcaptions_returns_words(client):
    res = client.post("/api/pdftobrainrot/getcaptions",
                      json={"audioUrl": "https://cdn.test/narration.mp3"})

    assert res.status_code == 200
    data = res.json()["data"]
    assert data["text"] == "Hello world."
    assert [w["text"] for w in data["words"]] == ["Hello", "world."]


def test_getcaptions_maps_transcription_failure(client, fakes):
    fakes["speech"].fail = True

    res = client.post("/api/pdftobrainrot/getcaptions",
                      json={"audioUrl": "https://cdn.test/silence.mp3"})

    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "AssemblyAI error: No words detected in the audio"}


def test_save_creates_completed_record(client, pdf_db):
    res = client.post("/api/pdftobrainrot/save", json=valid_save_payload())

    assert res.status_code == 201
    record_id = res.json()["data"]["id"]
    stored = pdf_db.get(record_id)
    assert stored["userId"] == USER_ID
    assert stored["status"] == "completed"
    assert stored["pdfName"] == "notes.pdf"
    assert stored["captions"] == [
        {"text": "Plants", "start": 0, "end": 300},
        {"text": "eat", "start": 300, "end": 520},
    ]
    assert "createdAt" in stored and "updatedAt" in stored


def test_save_lists_missing_fields(client, pdf_db):
    payload = valid_save_payload()
    del payload["script"]
    del payload["bgVideo"]

    res = client.post("/api/pdftobrainrot/save", json=payload)

    assert res.status_code == 400
    assert res.json()["error"] == "Missing required fields: script, bgVideo"
    assert pdf_db.docs == []


def test_save_rejects_caption_ending_before_start(client):
    payload = valid_save_payload(captions=[{"text": "oops", "start": 500, "end": 100}])

    res = client.post("/api/pdftobrainrot/save", json=payload)

    assert res.status_code == 400
    assert "End time must be greater than start time" in res.json()["error"]


def test_history_returns_own_completed_videos_newest_first(client, pdf_db):
    older = seed(pdf_db, status="completed", pdfName="old.pdf")
    seed(pdf_db, status="pending", pdfName="draft.pdf")
    seed(pdf_db, user_id=OTHER_USER_ID, status="completed", pdfName="theirs.pdf")
    newer = seed(pdf_db, status="completed", pdfName="new.pdf")

    res = client.get("/api/pdftobrainrot/history")

    assert res.status_code == 200
    videos = res.json()["data"]["videos"]
    assert [v["id"] for v in videos] == [newer, older]


def test_history_filters_by_status(client, pdf_db):
    draft = seed(pdf_db, status="pending")
    seed(pdf_db, status="completed")

    res = client.get("/api/pdftobrainrot/history", params={"status": "pending"})

    assert [v["id"] for v in res.json()["data"]["videos"]] == [draft]


def test_delete_requires_id(client):
    res = client.delete("/api/pdftobrainrot/delete")

    assert res.status_code == 400
    assert res.json()["error"] == "Video ID is required"


def test_delete_removes_own_record(client, pdf_db):
    record_id = seed(pdf_db, status="completed")

    res = client.delete("/api/pdftobrainrot/delete", params={"id": record_id})

    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Video deleted successfully"}
    assert pdf_db.get(record_id) is None


def test_delete_of_foreign_record_is_not_found(client, pdf_db):
    record_id = seed(pdf_db, user_id=OTHER_USER_ID, status="completed")

    res = client.delete("/api/pdftobrainrot/delete", params={"id": record_id})

    assert res.status_code == 404
    assert pdf_db.get(record_id) is not None


def test_delete_with_malformed_id_is_not_found(client):
    res = client.delete("/api/pdftobrainrot/delete", params={"id": "not-an-object-id"})

    assert res.status_code == 404


def test_routes_require_session(anon_client):
    res = anon_client.get("/api/pdftobrainrot/history")

    assert res.status_code == 401
    assert res.json() == {"success": False, "error": "Unauthorized"}
