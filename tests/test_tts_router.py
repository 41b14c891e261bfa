from __future__ import annotations

import re

import httpx
import pytest
from fastapi.testclient import TestClient


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def upstream_calls() -> list[httpx.Request]:
    return []


@pytest.fixture
def audio_handler(upstream_calls):
    def handler(request: httpx.Request) -> httpx.Response:
        upstream_calls.append(request)
        return httpx.Response(
            200, content=b"ID3fake-mp3", headers={"content-type": "audio/mpeg"}
        )

    return handler


@pytest.fixture
def elevenlabs_env(monkeypatch) -> None:
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-key")
    monkeypatch.setenv("DAILY_CHAR_LIMIT", "20")


def test_quota_scenario_for_signed_in_user(
    elevenlabs_env, make_app, audio_handler, upstream_calls, register_user
) -> None:
    with TestClient(make_app(audio_handler)) as client:
        token = register_user(client)
        body = {"text": "  Hello world  ", "voiceId": "voice-1", "voiceName": "Rachel"}

        first = client.post("/api/tts", json=body, headers=bearer(token))

        assert first.status_code == 200
        assert first.content == b"ID3fake-mp3"
        assert first.headers["content-type"] == "audio/mpeg"
        assert first.headers["cache-control"] == "no-store"
        assert first.headers["x-usage-used"] == "11"
        assert first.headers["x-usage-limit"] == "20"
        assert re.fullmatch(
            r'attachment; filename="voice-clip-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}\.\d{3}Z\.mp3"',
            first.headers["content-disposition"],
        )

        second = client.post("/api/tts", json=body, headers=bearer(token))

        assert second.status_code == 429
        assert second.json() == {
            "error": "Daily character limit reached (11/20). Try again tomorrow."
        }
        assert len(upstream_calls) == 1

        usage = client.get("/api/usage", headers=bearer(token)).json()["usage"]
        assert usage["used"] == 11
        assert usage["limit"] == 20


def test_successful_synthesis_is_recorded_in_history(
    elevenlabs_env, make_app, audio_handler, register_user
) -> None:
    with TestClient(make_app(audio_handler)) as client:
        token = register_user(client)
        client.post(
            "/api/tts",
            json={"text": "Hello world", "voiceId": "voice-1", "voiceName": "Rachel"},
            headers=bearer(token),
        )
        client.post(
            "/api/tts",
            json={"text": "Bye", "voiceId": "voice-2"},
            headers=bearer(token),
        )

        clips = client.get("/api/clips", headers=bearer(token)).json()["clips"]

    assert [(clip["text"], clip["voiceName"]) for clip in clips] == [
        ("Bye", "voice-2"),
        ("Hello world", "Rachel"),
    ]
    assert clips[1]["chars"] == 11


def test_anonymous_callers_share_a_smaller_quota_per_address(
    monkeypatch, make_app, audio_handler
) -> None:
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-key")
    monkeypatch.setenv("ANON_DAILY_CHAR_LIMIT", "15")
    body = {"text": "Hello world", "voiceId": "voice-1"}
    home = {"X-Forwarded-For": "203.0.113.9, 10.0.0.1"}

    with TestClient(make_app(audio_handler)) as client:
        first = client.post("/api/tts", json=body, headers=home)
        second = client.post("/api/tts", json=body, headers=home)
        elsewhere = client.post(
            "/api/tts", json=body, headers={"CF-Connecting-IP": "198.51.100.7"}
        )

    assert first.status_code == 200
    assert "x-usage-used" not in first.headers
    assert second.status_code == 429
    assert second.json()["error"] == (
        "Daily character limit reached (11/15). Try again tomorrow."
    )
    assert elsewhere.status_code == 200


def test_invalid_token_is_treated_as_anonymous(
    elevenlabs_env, make_app, audio_handler
) -> None:
    with TestClient(make_app(audio_handler)) as client:
        response = client.post(
            "/api/tts",
            json={"text": "Hi", "voiceId": "voice-1"},
            headers=bearer("garbage.token.value"),
        )

    assert response.status_code == 200
    assert "x-usage-used" not in response.headers


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ({"text": "   ", "voiceId": "voice-1"}, "Text is required."),
        ({"text": 42, "voiceId": "voice-1"}, "Text is required."),
        ({"text": "x" * 1201, "voiceId": "voice-1"}, "Text must be 1200 characters or fewer."),
        ({"text": "Hello"}, "Voice selection is required."),
        (["not", "an", "object"], "Request body must be valid JSON."),
    ],
)
def test_invalid_requests_never_reach_upstream(
    elevenlabs_env, make_app, audio_handler, upstream_calls, body, message
) -> None:
    with TestClient(make_app(audio_handler)) as client:
        response = client.post("/api/tts", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": message}
    assert upstream_calls == []


def test_undecodable_body_is_a_validation_error(
    elevenlabs_env, make_app, audio_handler
) -> None:
    with TestClient(make_app(audio_handler)) as client:
        response = client.post(
            "/api/tts",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Request body must be valid JSON."}


def test_missing_credential_is_a_server_error(make_app, audio_handler) -> None:
    with TestClient(make_app(audio_handler)) as client:
        response = client.post("/api/tts", json={"text": "Hi", "voiceId": "voice-1"})

    assert response.status_code == 500
    assert response.json() == {"error": "Server is missing ELEVENLABS_API_KEY."}


def test_empty_audio_is_not_charged(elevenlabs_env, make_app, register_user) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"")

    with TestClient(make_app(handler)) as client:
        token = register_user(client)
        response = client.post(
            "/api/tts", json={"text": "Hello", "voiceId": "voice-1"}, headers=bearer(token)
        )
        usage = client.get("/api/usage", headers=bearer(token)).json()["usage"]

    assert response.status_code == 502
    assert response.json() == {"error": "ElevenLabs returned empty audio for this request."}
    assert usage["used"] == 0


@pytest.mark.parametrize(("status", "expected"), [(401, 401), (429, 429), (400, 400), (500, 502)])
def test_upstream_failures_use_the_error_envelope(
    elevenlabs_env, make_app, status, expected
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"detail": {"status": "secret_vendor_detail"}})

    with TestClient(make_app(handler)) as client:
        response = client.post("/api/tts", json={"text": "Hello", "voiceId": "voice-1"})

    assert response.status_code == expected
    assert set(response.json()) == {"error"}
    assert "secret_vendor_detail" not in response.text


def test_deepgram_is_used_when_preferred(monkeypatch, make_app, audio_handler, upstream_calls) -> None:
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-key")
    monkeypatch.setenv("DEEPGRAM_API_KEY", "dg-key")
    monkeypatch.setenv("TTS_PROVIDER", "deepgram")

    with TestClient(make_app(audio_handler)) as client:
        response = client.post(
            "/api/tts", json={"text": "Hello", "voiceId": "aura-2-thalia-en"}
        )

    assert response.status_code == 200
    assert upstream_calls[0].url.path == "/v1/speak"
