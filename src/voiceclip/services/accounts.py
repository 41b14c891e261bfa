"""Account registration and password verification."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..errors import ConflictError, ValidationError
from ..schemas.cloud import PublicUser, StoredUser
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_HASH_ITERATIONS = 120_000
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 72
SALT_BYTES = 16

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def hash_password(
    password: str, salt: str, *, iterations: int = DEFAULT_HASH_ITERATIONS
) -> str:
    """Derive a 32-byte PBKDF2-HMAC-SHA256 key and return it as hex."""

    derived = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        dklen=32,
    )
    return derived.hex()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email))


def user_key(user_id: str) -> str:
    return f"user:id:{user_id}"


def email_key(email: str) -> str:
    return f"user:email:{email}"


class AccountService:
    """Create accounts and check credentials against the key/value store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        iterations: int = DEFAULT_HASH_ITERATIONS,
    ) -> None:
        self._store = store
        self._iterations = iterations

    async def _hash(self, password: str, salt: str) -> str:
        return await asyncio.to_thread(
            hash_password, password, salt, iterations=self._iterations
        )

    async def register(self, email: str, password: str) -> PublicUser:
        normalized = normalize_email(email)
        if not is_valid_email(normalized):
            raise ValidationError("A valid email is required.")
        if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be {MIN_PASSWORD_LENGTH}-{MAX_PASSWORD_LENGTH} characters."
            )

        salt = secrets.token_hex(SALT_BYTES)
        user = StoredUser(
            id=str(uuid.uuid4()),
            email=normalized,
            password_hash=await self._hash(password, salt),
            salt=salt,
            created_at=datetime.now(timezone.utc).isoformat(),
        )

        def _claim(existing: Any | None) -> str:
            if existing:
                raise ConflictError()
            return user.id

        await self._store.put(user_key(user.id), user.model_dump(by_alias=True))
        try:
            await self._store.update(email_key(normalized), _claim)
        except Exception:
            await self._store.delete(user_key(user.id))
            raise
        logger.info("Registered account %s", user.id)
        return user.to_public()

    async def authenticate(self, email: str, password: str) -> PublicUser | None:
        """Return the user for valid credentials, otherwise ``None``.

        Unknown emails and wrong passwords are indistinguishable to the caller.
        """

        normalized = normalize_email(email)
        if not normalized or not password:
            return None
        user_id = await self._store.get(email_key(normalized))
        user = await self._load(user_id) if isinstance(user_id, str) else None
        if user is None:
            return None
        attempted = await self._hash(password, user.salt)
        if not hmac.compare_digest(attempted, user.password_hash):
            return None
        return user.to_public()

    async def get_user(self, user_id: str) -> PublicUser | None:
        user = await self._load(user_id)
        return user.to_public() if user else None

    async def _load(self, user_id: str) -> StoredUser | None:
        raw = await self._store.get(user_key(user_id))
        if not isinstance(raw, dict):
            return None
        try:
            return StoredUser.model_validate(raw)
        except PydanticValidationError as exc:
            logger.warning("Skipping invalid user record %s: %s", user_id, exc)
            return None


__all__ = [
    "AccountService",
    "DEFAULT_HASH_ITERATIONS",
    "hash_password",
    "is_valid_email",
    "normalize_email",
]
