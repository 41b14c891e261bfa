"""Schemas for accounts, clip history and usage snapshots."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _stripped(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


class PublicUser(CamelModel):
    id: str
    email: str


class StoredUser(PublicUser):
    password_hash: str
    salt: str
    created_at: str

    def to_public(self) -> PublicUser:
        return PublicUser(id=self.id, email=self.email)


class Clip(CamelModel):
    id: str
    text: str
    voice_id: str
    voice_name: str
    chars: int
    created_at: str


class UsageSnapshot(CamelModel):
    day: str
    used: int
    limit: int


class CredentialsPayload(CamelModel):
    """Login/registration body. Non-string values read as empty."""

    email: str = ""
    password: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: Any) -> str:
        return _stripped(value).lower()

    @field_validator("password", mode="before")
    @classmethod
    def _password_string(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class AuthResponse(CamelModel):
    token: str
    user: PublicUser


class UserResponse(CamelModel):
    user: PublicUser


class ClipPayload(CamelModel):
    text: str = ""
    voice_id: str = ""
    voice_name: str = ""
    chars: float | None = None

    @field_validator("text", "voice_id", "voice_name", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> str:
        return _stripped(value)

    @field_validator("chars", mode="before")
    @classmethod
    def _finite_number(cls, value: Any) -> float | None:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value) if math.isfinite(value) else None


class ClipListResponse(CamelModel):
    clips: list[Clip] = Field(default_factory=list)


class UsageResponse(CamelModel):
    usage: UsageSnapshot


__all__ = [
    "AuthResponse",
    "CamelModel",
    "Clip",
    "ClipListResponse",
    "ClipPayload",
    "CredentialsPayload",
    "PublicUser",
    "StoredUser",
    "UsageResponse",
    "UsageSnapshot",
    "UserResponse",
]
