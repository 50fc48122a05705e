"""Shared test fixtures for pytest suite.

Provides fixtures for:
- settings: Settings with dummy credentials and no settle delay
- tmp_db: Fresh database instance per test
- fake_client: Anthropic stand-in that replays scripted responses
- fake_session: requests stand-in for the search API
- make_app / client: Flask test app with injected collaborators
"""
import struct
import zlib
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from config import Settings
from core.pipeline import Pipeline
from storage.db import Database
from web.app import create_app


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

def make_png(width, height):
    """Minimal PNG signature + IHDR chunk with the given dimensions."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    chunk = b"IHDR" + ihdr
    return (b"\x89PNG\r\n\x1a\n" + struct.pack(">I", len(ihdr)) + chunk
            + struct.pack(">I", zlib.crc32(chunk) & 0xFFFFFFFF))


def png_size(data):
    """(width, height) read from a PNG IHDR chunk."""
    return struct.unpack(">II", data[16:24])


class FakeMessages:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(item, Exception):
            raise item
        return SimpleNamespace(
            content=[SimpleNamespace(type="text", text=item)],
            usage=SimpleNamespace(input_tokens=100, output_tokens=50),
        )


class FakeClient:
    """Anthropic client stand-in; the last response repeats once the script runs out."""

    def __init__(self, *responses):
        self.messages = FakeMessages(responses)

    @property
    def calls(self):
        return self.messages.calls


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, payload=None, status_code=200, exc=None):
        self.payload = payload if payload is not None else {}
        self.status_code = status_code
        self.exc = exc
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc:
            raise self.exc
        return FakeResponse(self.payload, self.status_code)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    return Settings(
        google_api_key="test-key",
        google_cx="test-cx",
        anthropic_api_key="test-anthropic-key",
        settle_delay_ms=0,
        screenshots_dir=tmp_path / "screenshots",
    )


@pytest.fixture
def tmp_db(tmp_path):
    """Create a fresh Database backed by a temp file."""
    return Database(db_path=tmp_path / "test.db")


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture
def fake_session():
    return FakeSession


# ---------------------------------------------------------------------------
# Flask app fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_app(settings, tmp_db):
    """Factory: Flask test app with the given pipeline (MagicMock by default)."""

    def _make(pipeline=None, **settings_overrides):
        for key, value in settings_overrides.items():
            setattr(settings, key, value)
        if pipeline is None:
            pipeline = MagicMock(spec=Pipeline)
            pipeline.client = FakeClient("[]")
        application = create_app(settings=settings, pipeline=pipeline, db=tmp_db)
        application.config["TESTING"] = True
        application.config["RATELIMIT_ENABLED"] = False
        return application

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()
