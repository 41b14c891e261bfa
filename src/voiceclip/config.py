"""Application configuration using environment variables."""

import math
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DEFAULT_DAILY_CHAR_LIMIT = 5500
DEFAULT_ANON_DAILY_CHAR_LIMIT = 1400
DEFAULT_SESSION_TTL_SECONDS = 60 * 60 * 24 * 30


def _positive_int_or(value: object, fallback: int) -> int:
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed) or parsed <= 0:
        return fallback
    return int(parsed)


def _secret_value(value: SecretStr | None) -> str | None:
    if value is None:
        return None
    raw = value.get_secret_value().strip()
    return raw or None


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ElevenLabs
    elevenlabs_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ELEVENLABS_API_KEY", "elevenlabs_api_key"),
    )
    elevenlabs_base_url: str = Field(
        default="https://api.elevenlabs.io",
        validation_alias=AliasChoices("ELEVENLABS_BASE_URL", "elevenlabs_base_url"),
    )
    elevenlabs_model_id: str = Field(
        default="eleven_multilingual_v2",
        validation_alias=AliasChoices("ELEVENLABS_MODEL_ID", "elevenlabs_model_id"),
    )

    # Deepgram Aura
    deepgram_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("DEEPGRAM_API_KEY", "deepgram_api_key"),
    )
    deepgram_base_url: str = Field(
        default="https://api.deepgram.com",
        validation_alias=AliasChoices("DEEPGRAM_BASE_URL", "deepgram_base_url"),
    )

    tts_provider: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("TTS_PROVIDER", "tts_provider"),
    )
    upstream_timeout: float = Field(
        default=15.0,
        ge=1,
        validation_alias=AliasChoices("UPSTREAM_TIMEOUT", "upstream_timeout"),
    )

    # Daily quotas
    daily_char_limit: int = Field(
        default=DEFAULT_DAILY_CHAR_LIMIT,
        validation_alias=AliasChoices("DAILY_CHAR_LIMIT", "daily_char_limit"),
    )
    anon_daily_char_limit: int = Field(
        default=DEFAULT_ANON_DAILY_CHAR_LIMIT,
        validation_alias=AliasChoices(
            "ANON_DAILY_CHAR_LIMIT", "anon_daily_char_limit"
        ),
    )

    # Sessions and credentials
    session_secret: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SESSION_SECRET", "CLOUD_SYNC_JWT_SECRET", "session_secret"
        ),
    )
    session_ttl_seconds: int = Field(
        default=DEFAULT_SESSION_TTL_SECONDS,
        ge=60,
        validation_alias=AliasChoices("SESSION_TTL_SECONDS", "session_ttl_seconds"),
    )
    anon_identity_salt: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ANON_IDENTITY_SALT", "anon_identity_salt"),
    )
    password_hash_iterations: int = Field(
        default=120_000,
        ge=1000,
        validation_alias=AliasChoices(
            "PASSWORD_HASH_ITERATIONS", "password_hash_iterations"
        ),
    )

    allowed_origin: str = Field(
        default="*",
        validation_alias=AliasChoices("ALLOWED_ORIGIN", "allowed_origin"),
    )

    # Storage
    storage_backend: Literal["file", "kv"] = Field(
        default="file",
        validation_alias=AliasChoices("STORAGE_BACKEND", "storage_backend"),
    )
    storage_path: Path = Field(
        default_factory=lambda: Path("data/cloud-sync.json"),
        validation_alias=AliasChoices("STORAGE_PATH", "storage_path"),
    )
    kv_database_path: Path = Field(
        default_factory=lambda: Path("data/cloud-kv.db"),
        validation_alias=AliasChoices("KV_DATABASE_PATH", "kv_database_path"),
    )

    @field_validator("daily_char_limit", mode="before")
    @classmethod
    def _coerce_daily_limit(cls, value: object) -> int:
        return _positive_int_or(value, DEFAULT_DAILY_CHAR_LIMIT)

    @field_validator("anon_daily_char_limit", mode="before")
    @classmethod
    def _coerce_anon_limit(cls, value: object) -> int:
        return _positive_int_or(value, DEFAULT_ANON_DAILY_CHAR_LIMIT)

    @field_validator("elevenlabs_base_url", "deepgram_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("tts_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: object) -> str | None:
        if not isinstance(value, str):
            return None
        candidate = value.strip().lower()
        return candidate if candidate in {"elevenlabs", "deepgram"} else None

    @field_validator("allowed_origin")
    @classmethod
    def _default_origin(cls, value: str) -> str:
        return value.strip() or "*"

    @property
    def elevenlabs_key(self) -> str | None:
        return _secret_value(self.elevenlabs_api_key)

    @property
    def deepgram_key(self) -> str | None:
        return _secret_value(self.deepgram_api_key)

    @property
    def session_secret_value(self) -> str | None:
        return _secret_value(self.session_secret)

    @property
    def anon_salt(self) -> str:
        return _secret_value(self.anon_identity_salt) or self.session_secret_value or ""


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["Settings", "get_settings"]
