from __future__ import annotations

import httpx
import pytest

from voiceclip.config import get_settings
from voiceclip.errors import ServerMisconfigured
from voiceclip.services.tts import (
    DeepgramProvider,
    ElevenLabsProvider,
    build_provider,
    resolve_provider,
)


@pytest.mark.parametrize(
    ("preference", "has_elevenlabs", "has_deepgram", "expected"),
    [
        ("elevenlabs", True, True, "elevenlabs"),
        ("deepgram", True, True, "deepgram"),
        ("elevenlabs", False, True, "deepgram"),
        ("deepgram", True, False, "elevenlabs"),
        (None, True, True, "deepgram"),
        (None, True, False, "elevenlabs"),
        (None, False, True, "deepgram"),
        ("deepgram", False, False, "deepgram"),
        (None, False, False, "elevenlabs"),
    ],
)
def test_resolve_provider(preference, has_elevenlabs, has_deepgram, expected) -> None:
    assert (
        resolve_provider(
            preference, has_elevenlabs=has_elevenlabs, has_deepgram=has_deepgram
        )
        == expected
    )


def test_build_provider_honours_preference(monkeypatch) -> None:
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-key")
    monkeypatch.setenv("DEEPGRAM_API_KEY", "dg-key")
    monkeypatch.setenv("TTS_PROVIDER", " ElevenLabs ")
    get_settings.cache_clear()

    provider = build_provider(get_settings(), httpx.AsyncClient())

    assert isinstance(provider, ElevenLabsProvider)


def test_build_provider_falls_back_to_configured_vendor(monkeypatch) -> None:
    monkeypatch.setenv("DEEPGRAM_API_KEY", "dg-key")
    monkeypatch.setenv("TTS_PROVIDER", "elevenlabs")
    get_settings.cache_clear()

    provider = build_provider(get_settings(), httpx.AsyncClient())

    assert isinstance(provider, DeepgramProvider)


def test_build_provider_without_credentials_is_misconfigured() -> None:
    with pytest.raises(ServerMisconfigured) as excinfo:
        build_provider(get_settings(), httpx.AsyncClient())

    assert excinfo.value.message == "Server is missing ELEVENLABS_API_KEY."
    assert excinfo.value.status_code == 500
