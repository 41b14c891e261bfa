"""Request-scoped dependencies shared by the API routers."""

from __future__ import annotations

from fastapi import Depends, Header, Request

from ..config import Settings
from ..errors import Unauthorized
from ..schemas.cloud import PublicUser
from ..services.accounts import AccountService
from ..services.clips import ClipHistoryService
from ..services.sessions import SessionTokenService, require_user
from ..services.synthesis import Caller, SynthesisGateway
from ..services.usage import UsageLedger, anonymous_identity, user_identity


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:  # pragma: no cover - defensive
        raise RuntimeError(f"{name} is not configured")
    return value


def get_app_settings(request: Request) -> Settings:
    return _state(request, "settings")


def get_accounts(request: Request) -> AccountService:
    return _state(request, "account_service")


def get_sessions(request: Request) -> SessionTokenService:
    return _state(request, "session_service")


def get_ledger(request: Request) -> UsageLedger:
    return _state(request, "usage_ledger")


def get_clip_history(request: Request) -> ClipHistoryService:
    return _state(request, "clip_history")


def get_gateway(request: Request) -> SynthesisGateway:
    return _state(request, "synthesis_gateway")


def client_ip(request: Request) -> str | None:
    """Best-effort client address: edge header, proxy chain, then socket peer."""

    edge = request.headers.get("cf-connecting-ip", "").strip()
    if edge:
        return edge
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client is not None and request.client.host:
        return request.client.host
    return None


async def optional_user(
    authorization: str | None = Header(default=None),
    sessions: SessionTokenService = Depends(get_sessions),
    accounts: AccountService = Depends(get_accounts),
) -> PublicUser | None:
    return await require_user(authorization, sessions, accounts)


async def required_user(
    user: PublicUser | None = Depends(optional_user),
) -> PublicUser:
    if user is None:
        raise Unauthorized()
    return user


async def get_caller(
    request: Request,
    user: PublicUser | None = Depends(optional_user),
    settings: Settings = Depends(get_app_settings),
) -> Caller:
    """Authenticated callers meter by user id; everyone else by hashed address."""

    if user is not None:
        return Caller(
            identity=user_identity(user.id),
            limit=settings.daily_char_limit,
            user=user,
        )
    return Caller(
        identity=anonymous_identity(client_ip(request), settings.anon_salt),
        limit=settings.anon_daily_char_limit,
    )


__all__ = [
    "client_ip",
    "get_accounts",
    "get_app_settings",
    "get_caller",
    "get_clip_history",
    "get_gateway",
    "get_ledger",
    "get_sessions",
    "optional_user",
    "required_user",
]
