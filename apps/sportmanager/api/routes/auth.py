"""Team account and platform admin auth route handlers."""

import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import (
    require_platform_admin,
    require_team_admin,
    require_team_staff,
)
from sportmanager.api.routes import (
    INVALID_CREDENTIALS_RESPONSE,
    MISSING_CREDENTIALS_RESPONSE,
    envelope,
    limiter,
    service_error,
)
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import LoginRequest, TeamProfileUpdate, TeamRegisterRequest
from sportmanager.services import team_service, upload_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/auth/register", status_code=201)
@limiter.limit("5/minute")
async def register_team(
    request: Request,
    payload: TeamRegisterRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Register a team. Returns the team with a team_admin token.

    Missing or malformed fields are all reported together in `errors`.
    """
    try:
        team = await team_service.register_team(session, payload.model_dump())
        return envelope(team, "Team registered successfully!")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "registering team")


@router.post("/api/auth/login")
@limiter.limit("10/minute")
async def login_team(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Team admin login with email and password."""
    if not (payload.email or "").strip() or not (payload.password or "").strip():
        raise MISSING_CREDENTIALS_RESPONSE
    try:
        team = await team_service.login_team(session, payload.email, payload.password)
    except Exception as e:
        raise service_error(e, "logging in")
    if team is None:
        raise INVALID_CREDENTIALS_RESPONSE
    return envelope(team, "Login successful!")


@router.get("/api/auth/me")
async def get_me(
    principal: dict = Depends(require_team_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Current team's profile."""
    try:
        team = await team_service.get_team(session, principal["team_id"])
        return envelope(
            {"team_name": team["team_name"], "email": team["email"], "team": team},
            "Profile retrieved successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching profile")


@router.put("/api/auth/me")
async def update_me(
    payload: TeamProfileUpdate,
    principal: dict = Depends(require_team_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Rename the current team."""
    try:
        team = await team_service.update_team_profile(session, principal["team_id"], team_name=payload.team_name)
        return envelope(
            {"team_name": team["team_name"], "logo": team["logo"], "team": team},
            "Profile updated successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating profile")


@router.post("/api/auth/me/logo")
@limiter.limit("10/minute")
async def upload_logo(
    request: Request,
    file: UploadFile = File(...),
    principal: dict = Depends(require_team_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Upload or replace the team logo.

    Accepts JPEG, PNG, GIF or WebP images up to 5MB.
    """
    try:
        file_bytes = await file.read()
        loop = asyncio.get_event_loop()
        logo_path = await loop.run_in_executor(
            None, upload_service.save_image, file_bytes, file.content_type, "logo"
        )
        previous = await team_service.get_team(session, principal["team_id"])
        team = await team_service.update_team_profile(session, principal["team_id"], logo=logo_path)
        if previous["logo"] and previous["logo"] != logo_path:
            upload_service.delete_image(previous["logo"])
        return envelope({"team_name": team["team_name"], "logo": team["logo"], "team": team}, "Logo updated")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "uploading logo")


@router.get("/api/auth/teams")
async def list_teams(
    principal: dict = Depends(require_platform_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """All teams (platform admin only)."""
    try:
        teams = await team_service.list_teams(session)
        return envelope({"count": len(teams), "teams": teams}, "Teams retrieved successfully")
    except Exception as e:
        raise service_error(e, "fetching teams")


@router.get("/api/auth/teams/{team_id}")
async def get_team(
    team_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """One team. Team admins may only read their own."""
    if principal["role"] != "admin" and principal["team_id"] != team_id:
        raise HTTPException(status_code=404, detail="Team not found")
    try:
        team = await team_service.get_team(session, team_id)
        return envelope({"team": team}, "Team retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching team")


@router.post("/api/auth/admin/login")
@limiter.limit("10/minute")
async def login_admin(
    request: Request,
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Platform admin login with email and password."""
    if not (payload.email or "").strip() or not (payload.password or "").strip():
        raise MISSING_CREDENTIALS_RESPONSE
    try:
        admin = await team_service.login_admin(session, payload.email, payload.password)
    except Exception as e:
        raise service_error(e, "logging in")
    if admin is None:
        raise INVALID_CREDENTIALS_RESPONSE
    return envelope(admin, "Login successful!")
