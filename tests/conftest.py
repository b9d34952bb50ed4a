"""
Lehrershow Song Submissions - Pytest Configuration & Shared Fixtures

Provides reusable fixtures for:
- A fresh SQLite database per test (DB_PATH patched to tmp_path)
- A fixed upload tenant so upload URLs can be validated
- Fake Turnstile verifiers and YouTube metadata fetchers
- A FastAPI TestClient and a signed staff session cookie
- Sample submission payloads for each submission type
"""

from pathlib import Path
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from src.auth import _create_session_cookie
from src.config import SESSION_COOKIE_NAME
from src.services.turnstile import TurnstileResult
from src.services.youtube import VideoMetadata

TEST_TENANT = "tenant123"
TEST_UPLOAD_DOMAIN = "example-upload.sh"
VALID_UPLOAD_URL = f"https://{TEST_TENANT}.{TEST_UPLOAD_DOMAIN}/f/AbCdEfGh12345678"
RICK_ID = "dQw4w9WgXcQ"
STAFF_USER = "staff"


# ---------------------------------------------------------------------------
# Environment fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def upload_tenant(monkeypatch):
    """Pin the upload tenant and provider domain for every test."""
    monkeypatch.setattr("src.services.uploads.UPLOADTHING_ID", TEST_TENANT)
    monkeypatch.setattr("src.services.uploads.UPLOAD_PROVIDER_DOMAIN", TEST_UPLOAD_DOMAIN)
    return TEST_TENANT


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch) -> Path:
    """Point the database module at a fresh SQLite file and create the schema."""
    from src import database

    path = tmp_path / "submissions.db"
    monkeypatch.setattr(database, "DB_PATH", path)
    monkeypatch.setattr("src.routes.api.DB_PATH", path)
    database.init_db()
    return path


# ---------------------------------------------------------------------------
# Fakes for the external services
# ---------------------------------------------------------------------------


class FakeVerifier:
    """Records calls and returns a fixed Turnstile result (or raises)."""

    def __init__(self, success: bool = True, exc: Exception | None = None):
        self.success = success
        self.exc = exc
        self.calls: list[Dict[str, Any]] = []

    async def __call__(self, token, remote_ip=None):
        self.calls.append({"token": token, "remote_ip": remote_ip})
        if self.exc is not None:
            raise self.exc
        return TurnstileResult(
            success=self.success,
            error_codes=[] if self.success else ["invalid-input-response"],
        )


class FakeMetadataFetcher:
    def __init__(self, metadata: VideoMetadata | None = None, exc: Exception | None = None):
        self.metadata = metadata or VideoMetadata()
        self.exc = exc
        self.calls: list[str] = []

    async def __call__(self, video_id):
        self.calls.append(video_id)
        if self.exc is not None:
            raise self.exc
        return self.metadata


@pytest.fixture
def passing_verifier() -> FakeVerifier:
    return FakeVerifier(success=True)


@pytest.fixture
def failing_verifier() -> FakeVerifier:
    return FakeVerifier(success=False)


@pytest.fixture
def rick_metadata() -> FakeMetadataFetcher:
    return FakeMetadataFetcher(
        VideoMetadata(title="Never Gonna Give You Up", channel_name="Rick Astley")
    )


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client(db_path) -> TestClient:
    """TestClient over a fresh app (lifespan not run; DB already initialized)."""
    from src.main import create_app

    return TestClient(create_app())


@pytest.fixture
def staff_cookies() -> Dict[str, str]:
    return {SESSION_COOKIE_NAME: _create_session_cookie(STAFF_USER)}


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def search_payload() -> Dict[str, Any]:
    return {
        "name": "Anna",
        "email": "anna@example.com",
        "submissionType": "search",
        "songSearch": "Bohemian Rhapsody - Queen",
        "additionalInfo": "  Bitte mit Playback  ",
        "turnstileToken": "valid",
    }


@pytest.fixture
def youtube_payload() -> Dict[str, Any]:
    return {
        "name": "Anna",
        "email": "anna@example.com",
        "submissionType": "youtube",
        "youtubeUrl": f"https://www.youtube.com/watch?v={RICK_ID}",
        "turnstileToken": "valid",
    }


@pytest.fixture
def file_payload() -> Dict[str, Any]:
    return {
        "name": "Ben",
        "email": "ben@example.org",
        "submissionType": "file",
        "songFile": VALID_UPLOAD_URL,
        "songName": "Unser Schullied",
        "turnstileToken": "valid",
    }
