"""Account registration, login and profile lookup."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from ..errors import Unauthorized, ValidationError
from ..schemas.cloud import AuthResponse, CredentialsPayload, PublicUser, UserResponse
from ..services.accounts import AccountService
from ..services.sessions import SessionTokenService
from .deps import get_accounts, get_sessions, required_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse)
async def register(
    payload: CredentialsPayload,
    accounts: AccountService = Depends(get_accounts),
    sessions: SessionTokenService = Depends(get_sessions),
) -> AuthResponse:
    sessions.ensure_configured()
    user = await accounts.register(payload.email, payload.password)
    return AuthResponse(token=sessions.issue_token(user), user=user)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: CredentialsPayload,
    accounts: AccountService = Depends(get_accounts),
    sessions: SessionTokenService = Depends(get_sessions),
) -> AuthResponse:
    if not payload.email or not payload.password:
        raise ValidationError("Email and password are required.")
    sessions.ensure_configured()

    user = await accounts.authenticate(payload.email, payload.password)
    if user is None:
        logger.info("Rejected login attempt")
        raise Unauthorized("Invalid email or password.")
    return AuthResponse(token=sessions.issue_token(user), user=user)


@router.get("/me", response_model=UserResponse)
async def me(user: PublicUser = Depends(required_user)) -> UserResponse:
    return UserResponse(user=user)


__all__ = ["router"]
