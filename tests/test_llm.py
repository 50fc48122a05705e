"""Tests for the Anthropic call wrapper: text joining, error mapping, transport retries.

Run: pytest tests/test_llm.py -v
Markers: extraction
"""
from types import SimpleNamespace

import anthropic
import httpx
import pytest

from core import llm
from core.errors import UpstreamError

pytestmark = [pytest.mark.extraction]

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    monkeypatch.setattr(llm._create.retry, "sleep", lambda seconds: None)


class TestRunMessages:

    def test_joins_text_blocks(self, fake_client):
        client = fake_client("hello")
        assert llm.run_messages(client, "m", "prompt") == "hello"
        call = client.calls[0]
        assert call["messages"] == [{"role": "user", "content": "prompt"}]
        assert "system" not in call

    def test_system_prompt_passed(self, fake_client):
        client = fake_client("ok")
        llm.run_messages(client, "m", "prompt", system="be terse")
        assert client.calls[0]["system"] == "be terse"

    def test_ignores_non_text_blocks(self):
        response = SimpleNamespace(
            content=[SimpleNamespace(type="thinking", thinking="..."),
                     SimpleNamespace(type="text", text="[1]")],
            usage=None,
        )
        client = SimpleNamespace(messages=SimpleNamespace(create=lambda **kw: response))
        assert llm.run_messages(client, "m", "prompt") == "[1]"

    def test_transient_error_retried(self, fake_client):
        client = fake_client(anthropic.APIConnectionError(request=_REQUEST), "recovered")
        assert llm.run_messages(client, "m", "prompt") == "recovered"
        assert len(client.calls) == 2

    def test_persistent_transient_error_becomes_upstream(self, fake_client):
        client = fake_client(anthropic.APITimeoutError(request=_REQUEST))
        with pytest.raises(UpstreamError):
            llm.run_messages(client, "m", "prompt")
        assert len(client.calls) == 3

    def test_status_error_not_retried(self, fake_client):
        response = httpx.Response(429, request=_REQUEST)
        client = fake_client(anthropic.RateLimitError("rate limited", response=response, body=None))
        with pytest.raises(UpstreamError) as exc_info:
            llm.run_messages(client, "m", "prompt")
        assert len(client.calls) == 1
        assert exc_info.value.details.startswith("HTTP 429")


class TestHelpers:

    def test_image_block_is_base64(self):
        block = llm.image_block(b"abc")
        assert block["type"] == "image"
        assert block["source"] == {"type": "base64", "media_type": "image/png", "data": "YWJj"}

    def test_make_client_uses_settings(self, settings):
        client = llm.make_client(settings)
        assert isinstance(client, anthropic.Anthropic)
        assert client.api_key == "test-anthropic-key"
        assert client.max_retries == 0
