"""Player and coach login/profile route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_coach, require_player
from sportmanager.api.routes import (
    INVALID_CREDENTIALS_RESPONSE,
    MISSING_CREDENTIALS_RESPONSE,
    envelope,
    limiter,
    service_error,
)
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import LoginRequest
from sportmanager.services import member_auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_credentials(payload: LoginRequest) -> None:
    if not (payload.email or "").strip() or not (payload.password or "").strip():
        raise MISSING_CREDENTIALS_RESPONSE


@router.post("/api/player-auth/login")
@limiter.limit("10/minute")
async def login_player(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Player login: email plus full name as the password."""
    _check_credentials(payload)
    try:
        result = await member_auth_service.login_player(session, payload.email, payload.password)
    except Exception as e:
        raise service_error(e, "logging in")
    if result is None:
        raise INVALID_CREDENTIALS_RESPONSE
    return envelope(result, "Login successful!")


@router.get("/api/player-auth/me")
async def player_profile(
    principal: dict = Depends(require_player),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        profile = await member_auth_service.get_player_profile(session, principal["id"])
        return envelope({"player": profile}, "Profile retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching profile")


@router.post("/api/coach-auth/login")
@limiter.limit("10/minute")
async def login_coach(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Coach login: email plus full name as the password."""
    _check_credentials(payload)
    try:
        result = await member_auth_service.login_coach(session, payload.email, payload.password)
    except Exception as e:
        raise service_error(e, "logging in")
    if result is None:
        raise INVALID_CREDENTIALS_RESPONSE
    return envelope(result, "Login successful!")


@router.get("/api/coach-auth/me")
async def coach_profile(
    principal: dict = Depends(require_coach),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        profile = await member_auth_service.get_coach_profile(session, principal["id"])
        return envelope({"coach": profile}, "Profile retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching profile")
