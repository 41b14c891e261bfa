"""Daily usage lookup for the signed-in account."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..config import Settings
from ..schemas.cloud import PublicUser, UsageResponse
from ..services.usage import UsageLedger, current_day_key, user_identity
from .deps import get_app_settings, get_ledger, required_user

router = APIRouter(prefix="/api/usage", tags=["usage"])


@router.get("", response_model=UsageResponse)
async def read_usage(
    user: PublicUser = Depends(required_user),
    ledger: UsageLedger = Depends(get_ledger),
    settings: Settings = Depends(get_app_settings),
) -> UsageResponse:
    snapshot = await ledger.snapshot(
        user_identity(user.id), settings.daily_char_limit, current_day_key()
    )
    return UsageResponse(usage=snapshot)


__all__ = ["router"]
