"""Synthesis request and voice catalog schemas."""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator

from .cloud import CamelModel

ProviderName = Literal["elevenlabs", "deepgram"]

MAX_TEXT_LENGTH = 1200

# field -> (minimum, maximum, default)
VOICE_SETTING_RANGES: dict[str, tuple[float, float, float]] = {
    "stability": (0.0, 1.0, 0.45),
    "similarity_boost": (0.0, 1.0, 0.75),
    "style": (0.0, 1.0, 0.25),
    "speed": (0.7, 1.2, 1.0),
}


class VoiceSettings(CamelModel):
    """Per-request voice shaping. Missing or non-numeric values use defaults."""

    stability: float = 0.45
    similarity_boost: float = 0.75
    style: float = 0.25
    speed: float = 1.0
    use_speaker_boost: bool = True

    @field_validator("stability", "similarity_boost", "style", "speed", mode="before")
    @classmethod
    def _clamp(cls, value: Any, info: ValidationInfo) -> float:
        low, high, default = VOICE_SETTING_RANGES[info.field_name]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        if not math.isfinite(value):
            return default
        return min(high, max(low, float(value)))

    @field_validator("use_speaker_boost", mode="before")
    @classmethod
    def _boolean(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else True

    def to_upstream(self) -> dict[str, Any]:
        """Return the snake_case body ElevenLabs expects."""

        return self.model_dump(by_alias=False)


class TtsRequest(CamelModel):
    text: str = ""
    voice_id: str = ""
    model_id: str | None = None
    voice_name: str | None = None
    voice_settings: VoiceSettings = Field(default_factory=VoiceSettings)

    @field_validator("text", "voice_id", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("model_id", "voice_name", mode="before")
    @classmethod
    def _optional_strip(cls, value: Any) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("voice_settings", mode="before")
    @classmethod
    def _settings_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}


class PublicVoice(CamelModel):
    id: str
    name: str
    category: str = "general"
    accent: str | None = None
    gender: str | None = None
    age: str | None = None
    preview_url: str | None = None


class ProviderCapabilities(CamelModel):
    model_selection: bool
    voice_settings: bool


class VoiceCatalog(CamelModel):
    provider: ProviderName
    capabilities: ProviderCapabilities
    voices: list[PublicVoice]


__all__ = [
    "MAX_TEXT_LENGTH",
    "ProviderCapabilities",
    "ProviderName",
    "PublicVoice",
    "TtsRequest",
    "VOICE_SETTING_RANGES",
    "VoiceCatalog",
    "VoiceSettings",
]
