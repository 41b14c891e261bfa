"""Deepgram Aura text-to-speech provider."""

from __future__ import annotations

import logging
from typing import List

import httpx

from ...errors import UpstreamUnavailable
from ...schemas.tts import ProviderCapabilities, PublicVoice, VoiceSettings
from .base import SynthesizedAudio, TTSProvider, map_upstream_status

logger = logging.getLogger(__name__)

# (voice id, name, language, accent, gender, age)
_AURA_VOICES = [
    ("aura-2-thalia-en", "Thalia", "English", "American", "feminine", "Adult"),
    ("aura-2-andromeda-en", "Andromeda", "English", "American", "feminine", "Adult"),
    ("aura-2-helena-en", "Helena", "English", "American", "feminine", "Adult"),
    ("aura-2-apollo-en", "Apollo", "English", "American", "masculine", "Adult"),
    ("aura-2-arcas-en", "Arcas", "English", "American", "masculine", "Adult"),
    ("aura-2-aries-en", "Aries", "English", "American", "masculine", "Adult"),
    ("aura-2-asteria-en", "Asteria", "English", "American", "feminine", "Adult"),
    ("aura-2-athena-en", "Athena", "English", "American", "feminine", "Mature"),
    ("aura-2-draco-en", "Draco", "English", "British", "masculine", "Adult"),
    ("aura-2-hyperion-en", "Hyperion", "English", "Australian", "masculine", "Adult"),
    ("aura-2-luna-en", "Luna", "English", "American", "feminine", "Young Adult"),
    ("aura-2-orion-en", "Orion", "English", "American", "masculine", "Adult"),
    ("aura-2-pandora-en", "Pandora", "English", "British", "feminine", "Adult"),
    ("aura-2-zeus-en", "Zeus", "English", "American", "masculine", "Adult"),
    ("aura-2-celeste-es", "Celeste", "Spanish", "Colombian", "feminine", "Young Adult"),
    ("aura-2-estrella-es", "Estrella", "Spanish", "Mexican", "feminine", "Mature"),
    ("aura-2-nestor-es", "Nestor", "Spanish", "Peninsular", "masculine", "Adult"),
    ("aura-2-javier-es", "Javier", "Spanish", "Mexican", "masculine", "Adult"),
    ("aura-2-rhea-nl", "Rhea", "Dutch", "Dutch", "feminine", "Adult"),
    ("aura-2-sander-nl", "Sander", "Dutch", "Dutch", "masculine", "Adult"),
    ("aura-2-agathe-fr", "Agathe", "French", "French", "feminine", "Adult"),
    ("aura-2-hector-fr", "Hector", "French", "French", "masculine", "Adult"),
    ("aura-2-julius-de", "Julius", "German", "German", "masculine", "Adult"),
    ("aura-2-viktoria-de", "Viktoria", "German", "German", "feminine", "Adult"),
    ("aura-2-livia-it", "Livia", "Italian", "Italian", "feminine", "Adult"),
    ("aura-2-dionisio-it", "Dionisio", "Italian", "Italian", "masculine", "Adult"),
    ("aura-2-fujin-ja", "Fujin", "Japanese", "Japanese", "masculine", "Adult"),
    ("aura-2-izanami-ja", "Izanami", "Japanese", "Japanese", "feminine", "Adult"),
]

DEEPGRAM_VOICES: List[PublicVoice] = [
    PublicVoice(
        id=voice_id,
        name=name,
        category=language,
        accent=accent,
        gender=gender,
        age=age,
    )
    for voice_id, name, language, accent, gender, age in _AURA_VOICES
]


class DeepgramProvider(TTSProvider):
    """Aura voices. The voice id doubles as the model; settings are ignored."""

    name = "deepgram"
    label = "Deepgram"
    capabilities = ProviderCapabilities(model_selection=False, voice_settings=False)

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        *,
        base_url: str = "https://api.deepgram.com",
        timeout: float = 15.0,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        *,
        model_id: str | None,
        settings: VoiceSettings,
    ) -> SynthesizedAudio:
        params = {"model": voice_id, "encoding": "mp3"}
        headers = {
            "Authorization": f"Token {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

        try:
            response = await self._client.post(
                f"{self._base_url}/v1/speak",
                params=params,
                headers=headers,
                json={"text": text},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            logger.error("Deepgram request timed out: %s", exc)
            raise UpstreamUnavailable("Deepgram timed out. Try again.") from exc
        except httpx.HTTPError as exc:
            logger.error("Network error contacting Deepgram: %s", exc)
            raise UpstreamUnavailable(
                "Network issue while reaching Deepgram. Try again."
            ) from exc

        if not response.is_success:
            request_id = response.headers.get("dg-request-id")
            logger.warning(
                "Deepgram rejected synthesis with status %s%s",
                response.status_code,
                f" (request_id: {request_id})" if request_id else "",
            )
            raise map_upstream_status(response.status_code, self.label)

        logger.info(
            "Deepgram synthesized %d bytes for %d characters",
            len(response.content),
            len(text),
        )
        return SynthesizedAudio(
            content=response.content,
            content_type=response.headers.get("content-type") or "audio/mpeg",
        )

    async def list_voices(self) -> List[PublicVoice]:
        return sorted(DEEPGRAM_VOICES, key=lambda voice: voice.name.casefold())


__all__ = ["DEEPGRAM_VOICES", "DeepgramProvider"]
