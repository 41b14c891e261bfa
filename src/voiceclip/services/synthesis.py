"""Synthesis gateway: validate, meter, dispatch to one provider, record."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from ..errors import QuotaExceeded, UpstreamUnavailable, ValidationError
from ..schemas.cloud import PublicUser, UsageSnapshot
from ..schemas.tts import MAX_TEXT_LENGTH, TtsRequest
from .clips import ClipHistoryService
from .tts import TTSProvider
from .usage import UsageLedger, current_day_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    """Who is asking, and the daily character budget that applies to them."""

    identity: str
    limit: int
    user: PublicUser | None = None

    @property
    def authenticated(self) -> bool:
        return self.user is not None


@dataclass(frozen=True)
class SynthesisResult:
    audio: bytes
    content_type: str
    filename: str
    usage: UsageSnapshot
    provider: str


def clip_filename(moment: datetime) -> str:
    """``voice-clip-<ISO timestamp with colons as dashes>.mp3``."""

    stamp = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    stamp = stamp.replace("+00:00", "Z").replace(":", "-")
    return f"voice-clip-{stamp}.mp3"


def validate_request(request: TtsRequest) -> None:
    if not request.text:
        raise ValidationError("Text is required.")
    if len(request.text) > MAX_TEXT_LENGTH:
        raise ValidationError(f"Text must be {MAX_TEXT_LENGTH} characters or fewer.")
    if not request.voice_id:
        raise ValidationError("Voice selection is required.")


class SynthesisGateway:
    """Run one synthesis request through its full lifecycle.

    Usage is only charged after the provider returned non-empty audio, so a
    failed request never costs the caller anything. The quota check and the
    increment are separate store operations; see ``UsageLedger``.
    """

    def __init__(
        self,
        provider_factory: Callable[[], TTSProvider],
        ledger: UsageLedger,
        clips: ClipHistoryService,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider_factory = provider_factory
        self._ledger = ledger
        self._clips = clips
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def synthesize(self, request: TtsRequest, caller: Caller) -> SynthesisResult:
        provider = self._provider_factory()
        validate_request(request)

        text = request.text
        chars = len(text)
        now = self._clock()
        day = current_day_key(now)

        used, exceeded = await self._ledger.check_quota(
            caller.identity, day, chars, caller.limit
        )
        if exceeded:
            logger.info(
                "Quota exceeded for %s identity (%d + %d > %d)",
                "user" if caller.authenticated else "anonymous",
                used,
                chars,
                caller.limit,
            )
            raise QuotaExceeded(used, caller.limit)

        audio = await provider.synthesize(
            text,
            request.voice_id,
            model_id=request.model_id,
            settings=request.voice_settings,
        )
        if not audio.content:
            logger.warning("%s returned an empty audio body", provider.label)
            raise UpstreamUnavailable(
                f"{provider.label} returned empty audio for this request."
            )

        total = await self._ledger.increment(caller.identity, day, chars)

        if caller.user is not None:
            await self._clips.record(
                caller.user.id,
                text=text,
                voice_id=request.voice_id,
                voice_name=request.voice_name or request.voice_id,
                chars=chars,
            )

        return SynthesisResult(
            audio=audio.content,
            content_type=audio.content_type,
            filename=clip_filename(now),
            usage=UsageSnapshot(day=day, used=total, limit=caller.limit),
            provider=provider.name,
        )


__all__ = [
    "Caller",
    "SynthesisGateway",
    "SynthesisResult",
    "clip_filename",
    "validate_request",
]
