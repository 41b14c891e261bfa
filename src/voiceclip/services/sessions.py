"""Stateless HMAC-signed session tokens."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Callable

from ..errors import ServerMisconfigured
from ..schemas.cloud import PublicUser
from .accounts import AccountService

logger = logging.getLogger(__name__)

_HEADER = {"alg": "HS256", "typ": "JWT"}
_BEARER_PREFIX = "Bearer "


def base64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def base64url_decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class SessionTokenService:
    """Issue and verify ``header.payload.signature`` bearer tokens.

    Nothing is stored server-side: a token is valid while its signature
    matches and its ``exp`` claim has not passed.
    """

    def __init__(
        self,
        secret: str | None,
        *,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def ensure_configured(self) -> None:
        self._key()

    def _key(self) -> bytes:
        if not self._secret:
            raise ServerMisconfigured("Server is missing SESSION_SECRET.")
        return self._secret.encode("utf-8")

    def _sign(self, signing_input: str) -> str:
        digest = hmac.new(self._key(), signing_input.encode("ascii"), hashlib.sha256)
        return base64url_encode(digest.digest())

    def issue_token(self, user: PublicUser) -> str:
        now = int(self._clock())
        payload = {
            "sub": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + self._ttl_seconds,
        }
        header = base64url_encode(json.dumps(_HEADER, separators=(",", ":")).encode())
        body = base64url_encode(json.dumps(payload, separators=(",", ":")).encode())
        return f"{header}.{body}.{self._sign(f'{header}.{body}')}"

    def verify_token(self, token: str) -> str | None:
        """Return the subject id of a valid token, ``None`` for anything else."""

        key = self._key()
        if not isinstance(token, str):
            return None
        parts = token.split(".")
        if len(parts) != 3:
            return None
        header, body, signature = parts
        try:
            signing_input = f"{header}.{body}".encode("ascii")
        except UnicodeEncodeError:
            return None
        expected = base64url_encode(
            hmac.new(key, signing_input, hashlib.sha256).digest()
        )
        if not hmac.compare_digest(expected.encode(), signature.encode("utf-8", "replace")):
            return None

        try:
            payload = json.loads(base64url_decode(body))
        except (binascii.Error, ValueError, UnicodeDecodeError):
            return None
        if not isinstance(payload, dict):
            return None

        subject = payload.get("sub")
        expires = payload.get("exp")
        if not isinstance(subject, str) or not subject or not _is_int(expires):
            return None
        if expires < int(self._clock()):
            return None
        return subject


def parse_bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX):].strip()
    return token or None


async def require_user(
    authorization: str | None,
    sessions: SessionTokenService,
    accounts: AccountService,
) -> PublicUser | None:
    """Resolve an ``Authorization`` header to a stored user, or ``None``."""

    token = parse_bearer(authorization)
    if token is None:
        return None
    user_id = sessions.verify_token(token)
    if user_id is None:
        logger.debug("Rejected bearer token")
        return None
    return await accounts.get_user(user_id)


__all__ = [
    "SessionTokenService",
    "base64url_decode",
    "base64url_encode",
    "parse_bearer",
    "require_user",
]
