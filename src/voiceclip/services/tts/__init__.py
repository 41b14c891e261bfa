"""Upstream TTS providers and provider selection.

Exactly one provider serves a request. ``resolve_provider`` picks it from
the configured preference and the credentials that are actually present;
``build_provider`` turns that choice into a ready client.
"""

from __future__ import annotations

import httpx

from ...config import Settings
from ...errors import ServerMisconfigured
from ...schemas.tts import ProviderName
from .base import SynthesizedAudio, TTSProvider, map_upstream_status
from .deepgram import DEEPGRAM_VOICES, DeepgramProvider
from .elevenlabs import ElevenLabsProvider

# Used when no preference is set and both credentials exist.
PROVIDER_PRIORITY: tuple[ProviderName, ...] = ("deepgram", "elevenlabs")


def resolve_provider(
    preference: ProviderName | None,
    *,
    has_elevenlabs: bool,
    has_deepgram: bool,
) -> ProviderName:
    """Honor ``preference`` only when its credential exists, else fall back."""

    available = {"elevenlabs": has_elevenlabs, "deepgram": has_deepgram}
    if preference is not None:
        if available[preference]:
            return preference
        fallback = next(
            (name for name in PROVIDER_PRIORITY if name != preference and available[name]),
            None,
        )
        return fallback or preference

    for name in PROVIDER_PRIORITY:
        if available[name]:
            return name
    return PROVIDER_PRIORITY[-1]


def resolve_from_settings(settings: Settings) -> ProviderName:
    return resolve_provider(
        settings.tts_provider,  # type: ignore[arg-type]
        has_elevenlabs=bool(settings.elevenlabs_key),
        has_deepgram=bool(settings.deepgram_key),
    )


def build_provider(settings: Settings, client: httpx.AsyncClient) -> TTSProvider:
    """Instantiate the resolved provider or fail with ``ServerMisconfigured``."""

    name = resolve_from_settings(settings)
    if name == "deepgram":
        key = settings.deepgram_key
        if not key:
            raise ServerMisconfigured("Server is missing DEEPGRAM_API_KEY.")
        return DeepgramProvider(
            key,
            client,
            base_url=settings.deepgram_base_url,
            timeout=settings.upstream_timeout,
        )

    key = settings.elevenlabs_key
    if not key:
        raise ServerMisconfigured("Server is missing ELEVENLABS_API_KEY.")
    return ElevenLabsProvider(
        key,
        client,
        base_url=settings.elevenlabs_base_url,
        default_model=settings.elevenlabs_model_id,
        timeout=settings.upstream_timeout,
    )


__all__ = [
    "DEEPGRAM_VOICES",
    "DeepgramProvider",
    "ElevenLabsProvider",
    "PROVIDER_PRIORITY",
    "SynthesizedAudio",
    "TTSProvider",
    "build_provider",
    "map_upstream_status",
    "resolve_from_settings",
    "resolve_provider",
]
