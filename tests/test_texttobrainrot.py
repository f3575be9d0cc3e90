import pytest

import db as db_module
from conftest import OTHER_USER_ID, USER_ID, seed


@pytest.fixture
def text_db(databases):
    return databases[db_module.text_brainrot_db]


def save_payload(**overrides):
    payload = {
        "inputText": "Why do cats knock things off tables?",
        "textName": "cats",
        "script": "Cats knock things off tables to test gravity.",
        "audioUrl": "https://res.cloudinary.com/demo/video/upload/cats.mp3",
        "voiceId": "BFqnCBsd6RMkjVDRZzb",
        "captions": [{"text": "Cats", "start": 0, "end": 350}],
        "disableCaptions": False,
        "screenRatio": "9/16",
        "bgVideo": "subway-surfers.mp4",
    }
    payload.update(overrides)
    return payload


def test_save_applies_caption_defaults(client, text_db):
    res = client.post("/api/texttobrainrot/save", json=save_payload())

    assert res.status_code == 201
    stored = text_db.get(res.json()["data"]["id"])
    assert stored["userId"] == USER_ID
    assert stored["captionPreset"] == "BASIC"
    assert stored["captionAlignment"] == "bottom"
    assert stored["status"] == "completed"


def test_save_accepts_known_preset(client, text_db):
    res = client.post("/api/texttobrainrot/save",
                      json=save_payload(captionPreset="WRAP 1", captionAlignment="top"))

    assert res.status_code == 201
    stored = text_db.get(res.json()["data"]["id"])
    assert stored["captionPreset"] == "WRAP 1"
    assert stored["captionAlignment"] == "top"


def test_save_rejects_unknown_preset(client, text_db):
    res = client.post("/api/texttobrainrot/save", json=save_payload(captionPreset="COMIC SANS"))

    assert res.status_code == 400
    assert res.json()["success"] is False
    assert text_db.docs == []


def test_save_requires_boolean_disable_captions(client):
    res = client.post("/api/texttobrainrot/save", json=save_payload(disableCaptions="yes"))

    assert res.status_code == 400
    assert res.json()["error"] == "Missing required fields: disableCaptions"


def test_history_is_scoped_to_user(client, text_db):
    mine = seed(text_db, status="completed")
    seed(text_db, user_id=OTHER_USER_ID, status="completed")

    res = client.get("/api/texttobrainrot/history")

    assert [v["id"] for v in res.json()["data"]["videos"]] == [mine]


def test_history_rejects_unknown_status(client):
    res = client.get("/api/texttobrainrot/history", params={"status": "archived"})

    assert res.status_code == 400


def test_delete_missing_record_is_not_found(client):
    res = client.delete("/api/texttobrainrot/delete", params={"id": "65f1c0ffee0123456789abcd"})

    assert res.status_code == 404
    assert res.json()["error"] == "Video not found or unauthorized"


def test_saved_video_is_listed_in_history(client, text_db):
    saved = client.post("/api/texttobrainrot/save", json=save_payload()).json()["data"]["id"]

    res = client.get("/api/texttobrainrot/history")

    assert len(text_db.docs) == 1
    assert [v["id"] for v in res.json()["data"]["videos"]] == [saved]
