"""Shared fixtures: in-memory collections, fake service clients and a test client.

Every route dependency that reaches outside the process is overridden:
the MongoDB collections, the Clerk session check and the third-party
service clients.
"""

import copy
import os
from datetime import timedelta
from typing import Any, Dict, List, Optional

# Keep tests away from real credentials and databases
os.environ.setdefault("MONGO_URL", "mongodb://localhost:1")
os.environ.setdefault("CLERK_JWT_KEY", "")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import db as db_module
from ai_service import get_ai_service
from auth import get_current_user_id
from content_service import get_content_service
from db import DatabaseService, utcnow
from errors import ExternalServiceError
from main import app
from render_service import get_creatomate_client, get_lambda_client
from speech_service import get_speech_service
from storage_service import get_storage_client

USER_ID = "user_test_1"
OTHER_USER_ID = "user_test_2"


class FakeDatabase(DatabaseService):
    """DatabaseService over a list of dicts; queries match on field equality."""

    def __init__(self):
        self.docs: List[Dict[str, Any]] = []
        self._clock = utcnow()

    def _tick(self):
        self._clock += timedelta(milliseconds=1)
        return self._clock

    @staticmethod
    def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
        return all(doc.get(key) == value for key, value in query.items())

    @staticmethod
    def _out(doc: Dict[str, Any], projection: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        doc = copy.deepcopy(doc)
        for key, keep in (projection or {}).items():
            if not keep:
                doc.pop(key, None)
        doc["_id"] = str(doc["_id"])
        return doc

    def insert(self, data, **kwargs):
        doc = copy.deepcopy(data)
        doc.setdefault("_id", ObjectId())
        now = self._tick()
        doc.setdefault("createdAt", now)
        doc.setdefault("updatedAt", now)
        self.docs.append(doc)
        return {"success": True, "inserted_id": str(doc["_id"])}

    def find(self, query, **kwargs):
        found = [d for d in self.docs if self._matches(d, query)]
        for key, direction in reversed(kwargs.get("sort") or []):
            found.sort(key=lambda d: d.get(key), reverse=direction < 0)
        skip = kwargs.get("skip") or 0
        limit = kwargs.get("limit") or 0
        found = found[skip:skip + limit] if limit else found[skip:]
        return [self._out(d, kwargs.get("projection")) for d in found]

    def find_one(self, query, **kwargs):
        for doc in self.docs:
            if self._matches(doc, query):
                return self._out(doc)
        return None

    def count(self, query):
        return len([d for d in self.docs if self._matches(d, query)])

    def update(self, query, update_data, **kwargs):
        changes = update_data.get("$set", update_data)
        matched = 0
        for doc in self.docs:
            if self._matches(doc, query):
                doc.update(copy.deepcopy(changes))
                doc["updatedAt"] = self._tick()
                matched += 1
                break
        return {"success": True, "matched_count": matched, "modified_count": matched}

    def delete(self, query, **kwargs):
        for i, doc in enumerate(self.docs):
            if self._matches(doc, query):
                del self.docs[i]
                return {"success": True, "deleted_count": 1}
        return {"success": True, "deleted_count": 0}

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        for doc in self.docs:
            if str(doc["_id"]) == record_id:
                return doc
        return None


class FakeAI:
    def __init__(self):
        self.image_calls = []
        self.pdf_bytes = None

    def extract_pdf_text(self, pdf_bytes):
        self.pdf_bytes = pdf_bytes
        return "Photosynthesis turns light into chemical energy."

    def write_video_script(self, text):
        return f"Script about: {text}"

    def segment_script(self, script):
        return [
            {"ContextText": "Plants eat light.", "ImagePrompt": "a leaf in sunlight"},
            {"ContextText": "Then they grow.", "ImagePrompt": "a growing tree"},
        ]

    def generate_image(self, prompt, preset=None, screen_ratio=None, no_text=False, folder="tiktok-videos"):
        self.image_calls.append({
            "prompt": prompt, "preset": preset, "screen_ratio": screen_ratio,
            "no_text": no_text, "folder": folder,
        })
        return "https://res.cloudinary.com/demo/image/upload/generated.png"


class FakeSpeech:
    def __init__(self):
        self.fail = False
        self.transcribe_calls = []

    def synthesize(self, text, voice_id):
        return b"ID3fake-mp3"

    def list_voices(self):
        return [{"voice_id": "BFqnCBsd6RMkjVDRZzb", "name": "Narrator"}]

    def transcribe(self, media_url, word_boost=None):
        self.transcribe_calls.append({"media_url": media_url, "word_boost": word_boost})
        if self.fail:
            raise ExternalServiceError("AssemblyAI", "No words detected in the audio", 500)
        return {
            "text": "Hello world.",
            "words": [
                {"text": "Hello", "start": 0, "end": 420, "confidence": 0.98},
                {"text": "world.", "start": 420, "end": 900, "confidence": 0.97},
            ],
        }


class FakeContent:
    def fetch_page_text(self, url):
        return "just setting up my twttr"


class FakeStorage:
    def __init__(self):
        self.uploads = []

    def upload(self, source, resource_type="auto", folder="uploads", mime_type=None, **options):
        self.uploads.append({"source": source, "resource_type": resource_type,
                             "folder": folder, "mime_type": mime_type})
        return {
            "secure_url": f"https://res.cloudinary.com/demo/{resource_type}/upload/{folder}/file",
            "public_id": f"{folder}/file",
            "format": "mp3" if mime_type == "audio/mpeg" else "mp4",
            "resource_type": resource_type,
            "bytes": len(source) if isinstance(source, bytes) else 2048,
            "duration": 12.5,
            "original_filename": "file",
        }


class FakeCreatomate:
    def __init__(self):
        self.sources = []
        self.render = {"id": "render-1", "status": "rendering"}

    def start_render(self, source):
        self.sources.append(source)
        return {"id": "render-1", "status": "planned"}

    def get_render(self, render_id):
        return dict(self.render, id=render_id)


class FakeLambda:
    def __init__(self):
        self.started = []
        self.progress = {"type": "progress", "progress": 0.42}

    def start_render(self, composition, input_props):
        self.started.append((composition, input_props))
        return {"renderId": "lambda-render-1", "bucketName": "remotionlambda-bucket"}

    def get_progress(self, render_id):
        return self.progress


def provide(instance):
    """Dependency override returning `instance`; takes no parameters FastAPI could bind."""
    return lambda: instance


@pytest.fixture
def databases():
    return {
        dependency: FakeDatabase()
        for dependency in (
            db_module.pdf_brainrot_db,
            db_module.text_brainrot_db,
            db_module.tiktok_video_db,
            db_module.tweet_video_db,
            db_module.video_captions_db,
        )
    }


@pytest.fixture
def fakes():
    return {
        "ai": FakeAI(),
        "speech": FakeSpeech(),
        "content": FakeContent(),
        "storage": FakeStorage(),
        "creatomate": FakeCreatomate(),
        "lambda": FakeLambda(),
    }


@pytest.fixture
def override_services(databases, fakes):
    for dependency, fake_db in databases.items():
        app.dependency_overrides[dependency] = provide(fake_db)
    app.dependency_overrides[get_ai_service] = lambda: fakes["ai"]
    app.dependency_overrides[get_speech_service] = lambda: fakes["speech"]
    app.dependency_overrides[get_content_service] = lambda: fakes["content"]
    app.dependency_overrides[get_storage_client] = lambda: fakes["storage"]
    app.dependency_overrides[get_creatomate_client] = lambda: fakes["creatomate"]
    app.dependency_overrides[get_lambda_client] = lambda: fakes["lambda"]
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(override_services):
    """Test client authenticated as USER_ID."""
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def anon_client(override_services):
    return TestClient(app, raise_server_exceptions=False)


def seed(fake_db: FakeDatabase, user_id: str = USER_ID, **fields) -> str:
    return fake_db.insert({"userId": user_id, **fields})["inserted_id"]
