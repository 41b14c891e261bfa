"""ElevenLabs text-to-speech provider."""

from __future__ import annotations

import logging
from typing import Any, List
from urllib.parse import quote

import httpx

from ...errors import RateLimited, Unauthorized, UpstreamUnavailable
from ...schemas.tts import ProviderCapabilities, PublicVoice, VoiceSettings
from .base import SynthesizedAudio, TTSProvider, map_upstream_status

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "mp3_44100_128"

# Tried in order until one succeeds; auth and rate-limit failures stop the loop.
VOICE_LIST_PATHS = (
    "/v2/voices?page_size=100&include_total_count=false",
    "/v1/voices?show_legacy=true",
    "/v1/voices/search?page_size=100",
)


def _parse_voices(payload: Any) -> list[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("voices"), list):
        return payload["voices"]
    return []


def _string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def to_public_voice(voice: Any) -> PublicVoice | None:
    if not isinstance(voice, dict):
        return None
    voice_id = _string_or_none(voice.get("voice_id"))
    name = _string_or_none(voice.get("name"))
    if not voice_id or not name:
        return None
    labels = voice.get("labels") if isinstance(voice.get("labels"), dict) else {}
    return PublicVoice(
        id=voice_id,
        name=name,
        category=_string_or_none(voice.get("category")) or "general",
        accent=_string_or_none(labels.get("accent")),
        gender=_string_or_none(labels.get("gender")),
        age=_string_or_none(labels.get("age")),
        preview_url=_string_or_none(voice.get("preview_url")),
    )


class ElevenLabsProvider(TTSProvider):
    name = "elevenlabs"
    label = "ElevenLabs"
    capabilities = ProviderCapabilities(model_selection=True, voice_settings=True)

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        *,
        base_url: str = "https://api.elevenlabs.io",
        default_model: str = "eleven_multilingual_v2",
        timeout: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._default_model = default_model
        self._timeout = timeout

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        *,
        model_id: str | None,
        settings: VoiceSettings,
    ) -> SynthesizedAudio:
        url = f"{self._base_url}/v1/text-to-speech/{quote(voice_id, safe='')}"
        headers = {
            "xi-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        payload = {
            "text": text,
            "model_id": model_id or self._default_model,
            "voice_settings": settings.to_upstream(),
        }

        try:
            response = await self._client.post(
                url,
                params={"output_format": OUTPUT_FORMAT},
                headers=headers,
                json=payload,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            logger.error("ElevenLabs request timed out: %s", exc)
            raise UpstreamUnavailable("ElevenLabs timed out. Try again.") from exc
        except httpx.HTTPError as exc:
            logger.error("Network error contacting ElevenLabs: %s", exc)
            raise UpstreamUnavailable(
                "Network issue while reaching ElevenLabs. Try again."
            ) from exc

        if not response.is_success:
            logger.warning(
                "ElevenLabs rejected synthesis with status %s", response.status_code
            )
            raise map_upstream_status(response.status_code, self.label)

        logger.info(
            "ElevenLabs synthesized %d bytes for %d characters",
            len(response.content),
            len(text),
        )
        return SynthesizedAudio(
            content=response.content,
            content_type=response.headers.get("content-type") or "audio/mpeg",
        )

    async def list_voices(self) -> List[PublicVoice]:
        headers = {"xi-api-key": self._api_key, "Accept": "application/json"}
        last_status: int | None = None
        had_network_failure = False

        for path in VOICE_LIST_PATHS:
            try:
                response = await self._client.get(
                    f"{self._base_url}{path}", headers=headers, timeout=self._timeout
                )
            except httpx.HTTPError as exc:
                logger.warning("Voice listing via %s failed: %s", path, exc)
                had_network_failure = True
                continue

            if response.is_success:
                try:
                    payload = response.json()
                except ValueError:
                    logger.warning("Voice listing via %s returned invalid JSON", path)
                    continue
                voices = [
                    voice
                    for voice in map(to_public_voice, _parse_voices(payload))
                    if voice is not None
                ]
                return sorted(voices, key=lambda voice: voice.name.casefold())

            last_status = response.status_code
            if last_status in (401, 403, 429):
                break

        if last_status in (401, 403):
            raise Unauthorized("ElevenLabs rejected authentication. Check your API key.")
        if last_status == 429:
            raise RateLimited("Rate limited by ElevenLabs. Try again in a moment.")
        if had_network_failure:
            raise UpstreamUnavailable("Network issue while reaching ElevenLabs. Try again.")
        raise UpstreamUnavailable("Unable to load voices from ElevenLabs right now.")


__all__ = ["ElevenLabsProvider", "to_public_voice"]
