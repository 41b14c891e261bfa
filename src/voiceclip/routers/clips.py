"""Per-user history of recently synthesized scripts."""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends

from ..errors import ValidationError
from ..schemas.cloud import ClipListResponse, ClipPayload, PublicUser
from ..services.clips import ClipHistoryService
from .deps import get_clip_history, required_user

router = APIRouter(prefix="/api/clips", tags=["clips"])


@router.get("", response_model=ClipListResponse)
async def list_clips(
    user: PublicUser = Depends(required_user),
    history: ClipHistoryService = Depends(get_clip_history),
) -> ClipListResponse:
    return ClipListResponse(clips=await history.list_clips(user.id))


@router.post("")
async def save_clip(
    payload: ClipPayload,
    user: PublicUser = Depends(required_user),
    history: ClipHistoryService = Depends(get_clip_history),
) -> Dict[str, bool]:
    if (
        not payload.text
        or not payload.voice_id
        or not payload.voice_name
        or payload.chars is None
    ):
        raise ValidationError("text, voiceId, voiceName, and chars are required.")

    await history.record(
        user.id,
        text=payload.text,
        voice_id=payload.voice_id,
        voice_name=payload.voice_name,
        chars=payload.chars,
    )
    return {"ok": True}


__all__ = ["router"]
