"""Text-to-speech synthesis endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..schemas.tts import TtsRequest
from ..services.synthesis import Caller, SynthesisGateway
from .deps import get_caller, get_gateway

router = APIRouter(prefix="/api", tags=["tts"])


@router.post(
    "/tts",
    response_class=Response,
    responses={200: {"content": {"audio/mpeg": {}}}},
)
async def synthesize(
    payload: TtsRequest,
    caller: Caller = Depends(get_caller),
    gateway: SynthesisGateway = Depends(get_gateway),
) -> Response:
    result = await gateway.synthesize(payload, caller)

    headers = {
        "Cache-Control": "no-store",
        "Content-Disposition": f'attachment; filename="{result.filename}"',
    }
    if caller.authenticated:
        headers["X-Usage-Used"] = str(result.usage.used)
        headers["X-Usage-Limit"] = str(result.usage.limit)

    return Response(
        content=result.audio,
        media_type=result.content_type,
        headers=headers,
    )


__all__ = ["router"]
