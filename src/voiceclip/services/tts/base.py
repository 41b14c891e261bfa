"""Common contract for upstream text-to-speech vendors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from ...errors import (
    InvalidRequest,
    RateLimited,
    ServiceError,
    Unauthorized,
    UpstreamUnavailable,
)
from ...schemas.tts import ProviderCapabilities, ProviderName, PublicVoice, VoiceSettings


@dataclass(frozen=True)
class SynthesizedAudio:
    content: bytes
    content_type: str = "audio/mpeg"


def map_upstream_status(status_code: int, vendor: str) -> ServiceError:
    """Translate a non-2xx vendor status into the uniform error taxonomy."""

    if status_code in (401, 403):
        return Unauthorized(f"{vendor} authentication failed. Check your API key.")
    if status_code == 429:
        return RateLimited(f"{vendor} rate limit reached. Try again shortly.")
    if 400 <= status_code < 500:
        return InvalidRequest()
    return UpstreamUnavailable(f"{vendor} could not generate audio right now.")


class TTSProvider(ABC):
    """One upstream vendor behind the synthesize/list-voices contract.

    Implementations raise ``ServiceError`` subclasses only; raw vendor
    payloads never leave the provider.
    """

    name: ProviderName
    label: str
    capabilities: ProviderCapabilities

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice_id: str,
        *,
        model_id: str | None,
        settings: VoiceSettings,
    ) -> SynthesizedAudio:
        """Return encoded audio for ``text`` spoken by ``voice_id``."""

    @abstractmethod
    async def list_voices(self) -> List[PublicVoice]:
        """Return the vendor's voices sorted by name."""


__all__ = ["SynthesizedAudio", "TTSProvider", "map_upstream_status"]
