"""Tests for the Google Text-to-Speech engine that run fully offline."""
from __future__ import annotations

import base64
import json
from types import SimpleNamespace

import httpx
import pytest

from resource_tts.core import (
    ConfigurationError,
    RetryConfig,
    SpeechEngineError,
    SyncHttpClient,
    TransientEngineError,
    VoiceConfig,
)
from resource_tts.engines import EngineConfig, GoogleSpeechEngine

HINDI = VoiceConfig(language_code="hi-IN", voice_name="hi-IN-Wavenet-A")
FAST_RETRY = RetryConfig(attempts=3, min_backoff=0.01, backoff_factor=2.0, max_backoff=1.0, jitter=0.0)


def _audio_response(data: bytes = b"ID3audio"):
    return {"audioContent": base64.b64encode(data).decode("ascii")}


def _status_error(status: int, body: str = "nope") -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.com/v1/text:synthesize")
    response = httpx.Response(status, text=body, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


@pytest.fixture()
def google_engine():
    return GoogleSpeechEngine(EngineConfig(base_url="https://example.com/", api_key="secret", retry=FAST_RETRY))


def test_google_engine_builds_request(google_engine):
    captured = {}

    def fake_post(url, headers=None, params=None, json_body=None):  # pragma: no cover - exercised via test
        captured.update({"url": url, "headers": headers, "params": params, "json": json_body})
        return _audio_response()

    google_engine._client = SimpleNamespace(post_json=fake_post, close=lambda: None)

    audio = google_engine.synthesize('Say <sub alias="eg.">e.g.</sub>', HINDI)

    assert audio == b"ID3audio"
    assert captured["url"] == "https://example.com/v1/text:synthesize"
    assert captured["params"] == {"key": "secret"}
    assert "Authorization" not in captured["headers"]
    assert captured["json"] == {
        "input": {"ssml": 'Say <sub alias="eg.">e.g.</sub>'},
        "voice": {"languageCode": "hi-IN", "name": "hi-IN-Wavenet-A", "ssmlGender": "FEMALE"},
        "audioConfig": {"audioEncoding": "MP3"},
    }


def test_access_token_uses_bearer_header():
    engine = GoogleSpeechEngine(
        EngineConfig(base_url="https://example.com", api_key="secret", access_token="token-1")
    )

    assert engine.headers()["Authorization"] == "Bearer token-1"
    assert engine.params() == {}


def test_missing_credentials_fail_without_a_request():
    engine = GoogleSpeechEngine(EngineConfig(base_url="https://example.com"))
    calls = []
    engine._client = SimpleNamespace(post_json=lambda *a, **k: calls.append(a), close=lambda: None)

    with pytest.raises(ConfigurationError, match="credentials"):
        engine.synthesize("hello", HINDI)

    assert calls == []


def test_transient_errors_are_retried_with_backoff(monkeypatch, google_engine):
    attempts = {"count": 0}
    delays: list[float] = []

    def flaky_post(*_, **__):  # pragma: no cover - exercised via test
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise _status_error(503, "backend unavailable")
        return _audio_response(b"ok")

    google_engine._client = SimpleNamespace(post_json=flaky_post, close=lambda: None)
    monkeypatch.setattr("resource_tts.core._sleep", delays.append)

    assert google_engine.synthesize("hello", HINDI) == b"ok"
    assert attempts["count"] == 3
    assert delays == pytest.approx([0.01, 0.02])


def test_transport_errors_are_retried(monkeypatch, google_engine):
    attempts = {"count": 0}

    def flaky_post(*_, **__):  # pragma: no cover - exercised via test
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ConnectError("connection refused")
        return _audio_response()

    google_engine._client = SimpleNamespace(post_json=flaky_post, close=lambda: None)
    monkeypatch.setattr("resource_tts.core._sleep", lambda _: None)

    assert google_engine.synthesize("hello", HINDI) == b"ID3audio"
    assert attempts["count"] == 2


def test_exhausted_retries_surface_the_transient_error(monkeypatch, google_engine):
    def throttled(*_, **__):  # pragma: no cover - exercised via test
        raise _status_error(429, "rate limited")

    google_engine._client = SimpleNamespace(post_json=throttled, close=lambda: None)
    monkeypatch.setattr("resource_tts.core._sleep", lambda _: None)

    with pytest.raises(TransientEngineError, match="HTTP 429"):
        google_engine.synthesize("hello", HINDI)


def test_client_errors_are_not_retried(monkeypatch, google_engine):
    attempts = {"count": 0}
    delays: list[float] = []

    def rejected(*_, **__):  # pragma: no cover - exercised via test
        attempts["count"] += 1
        raise _status_error(400, "Invalid SSML")

    google_engine._client = SimpleNamespace(post_json=rejected, close=lambda: None)
    monkeypatch.setattr("resource_tts.core._sleep", delays.append)

    with pytest.raises(SpeechEngineError, match="Invalid SSML") as excinfo:
        google_engine.synthesize("<bad", HINDI)

    assert not isinstance(excinfo.value, TransientEngineError)
    assert attempts["count"] == 1
    assert delays == []


@pytest.mark.parametrize("payload", [{}, {"audioContent": ""}, {"audioContent": "***"}])
def test_unusable_audio_content_raises(google_engine, payload):
    google_engine._client = SimpleNamespace(post_json=lambda *a, **k: payload, close=lambda: None)

    with pytest.raises(SpeechEngineError, match="audioContent"):
        google_engine.synthesize("hello", HINDI)


def test_round_trip_through_httpx_transport():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_audio_response(b"mp3-bytes"))

    engine = GoogleSpeechEngine(EngineConfig(base_url="https://tts.test", api_key="k"))
    engine._client = SyncHttpClient(transport=httpx.MockTransport(handler))

    with engine:
        assert engine.synthesize("hello", HINDI) == b"mp3-bytes"
        assert engine._client.is_open

    assert not engine._client.is_open
    assert seen["url"] == "https://tts.test/v1/text:synthesize?key=k"
    assert seen["body"]["voice"]["name"] == "hi-IN-Wavenet-A"


def test_http_error_from_transport_carries_status():
    engine = GoogleSpeechEngine(
        EngineConfig(base_url="https://tts.test", api_key="k", retry=RetryConfig(attempts=1))
    )
    engine._client = SyncHttpClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(403, text="API key not valid"))
    )

    with pytest.raises(SpeechEngineError, match="HTTP 403: API key not valid"):
        engine.synthesize("hello", HINDI)


def test_extra_headers_are_sent():
    engine = GoogleSpeechEngine(
        EngineConfig(base_url="https://example.com", api_key="k", extra_headers={"X-Goog-User-Project": "demo"})
    )

    assert engine.headers()["X-Goog-User-Project"] == "demo"
    assert engine.headers()["Content-Type"].startswith("application/json")
