"""Bounded, de-duplicated history of recent scripts per user."""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, List

from pydantic import ValidationError as PydanticValidationError

from ..schemas.cloud import Clip
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

MAX_CLIPS = 30
MAX_CLIP_TEXT = 1200
MAX_VOICE_FIELD = 120


def clips_key(user_id: str) -> str:
    return f"clips:{user_id}"


def _parse_clips(raw: Any) -> List[Clip]:
    if not isinstance(raw, list):
        return []
    clips: List[Clip] = []
    for item in raw:
        try:
            clips.append(Clip.model_validate(item))
        except PydanticValidationError as exc:
            logger.warning("Skipping invalid clip entry: %s", exc)
    return clips


class ClipHistoryService:
    """Newest-first list capped at ``MAX_CLIPS`` with unique (text, voice) pairs."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def list_clips(self, user_id: str) -> List[Clip]:
        return _parse_clips(await self._store.get(clips_key(user_id)))[:MAX_CLIPS]

    async def record(
        self,
        user_id: str,
        *,
        text: str,
        voice_id: str,
        voice_name: str,
        chars: float,
    ) -> List[Clip]:
        entry = Clip(
            id=str(uuid.uuid4()),
            text=text[:MAX_CLIP_TEXT],
            voice_id=voice_id[:MAX_VOICE_FIELD],
            voice_name=voice_name[:MAX_VOICE_FIELD],
            chars=max(0, min(MAX_CLIP_TEXT, math.floor(chars))),
            created_at=datetime.now(timezone.utc).isoformat(),
        )

        def _prepend(current: Any | None) -> list[dict[str, Any]]:
            existing = [
                clip
                for clip in _parse_clips(current)
                if not (clip.text == entry.text and clip.voice_id == entry.voice_id)
            ]
            ordered = [entry, *existing][:MAX_CLIPS]
            return [clip.model_dump(by_alias=True) for clip in ordered]

        stored = await self._store.update(clips_key(user_id), _prepend)
        return _parse_clips(stored)


__all__ = ["ClipHistoryService", "MAX_CLIPS"]
