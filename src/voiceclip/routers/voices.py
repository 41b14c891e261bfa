"""Voice catalog for the active provider."""

from __future__ import annotations

from fastapi import APIRouter, Request

from ..schemas.tts import VoiceCatalog
from ..services.tts import TTSProvider

router = APIRouter(prefix="/api", tags=["voices"])


def get_provider(request: Request) -> TTSProvider:
    factory = getattr(request.app.state, "provider_factory", None)
    if factory is None:  # pragma: no cover - defensive
        raise RuntimeError("TTS provider factory is not configured")
    return factory()


@router.get("/voices", response_model=VoiceCatalog)
async def list_voices(request: Request) -> VoiceCatalog:
    provider = get_provider(request)
    voices = await provider.list_voices()
    return VoiceCatalog(
        provider=provider.name,
        capabilities=provider.capabilities,
        voices=voices,
    )


__all__ = ["router"]
