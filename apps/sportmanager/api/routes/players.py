"""Player route handlers."""

import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_attendance_taker, require_team_staff
from sportmanager.api.routes import envelope, limiter, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import PlayerCreate, PlayerUpdate, PublicPlayerCreate
from sportmanager.services import player_service, upload_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/players")
async def list_players(
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    """All players of the caller's team, newest first, each with billing."""
    try:
        players = await player_service.list_players(session, principal["team_id"])
        return envelope({"count": len(players), "players": players}, "Players retrieved successfully")
    except Exception as e:
        raise service_error(e, "fetching players")


@router.post("/api/players", status_code=201)
async def create_player(
    payload: PlayerCreate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a player.

    When `session_id` is omitted the team's current session is used for the
    registration payment, if there is one.
    """
    try:
        data = payload.model_dump(exclude={"session_id"})
        player = await player_service.create_player(
            session, principal["team_id"], data, session_id=payload.session_id
        )
        return envelope({"player": player}, "Player created successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "creating player")


@router.post("/api/players/register", status_code=201)
@limiter.limit("10/minute")
async def register_player(
    request: Request,
    payload: PublicPlayerCreate,
    session: AsyncSession = Depends(get_db_session),
):
    """Public self-registration into an explicitly named team."""
    try:
        data = payload.model_dump(exclude={"session_id", "team_id"})
        player = await player_service.create_player(
            session, payload.team_id, data, session_id=payload.session_id
        )
        return envelope({"player": player}, "Player registered successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "registering player")


@router.get("/api/players/{player_id}")
async def get_player(
    player_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        player = await player_service.get_player(session, principal["team_id"], player_id)
        return envelope({"player": player}, "Player retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching player")


@router.put("/api/players/{player_id}")
async def update_player(
    player_id: int,
    payload: PlayerUpdate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updates = payload.model_dump(exclude_unset=True)
        player = await player_service.update_player(session, principal["team_id"], player_id, updates)
        return envelope({"player": player}, "Player updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating player")


@router.delete("/api/players/{player_id}")
async def delete_player(
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await player_service.delete_player(session, principal["team_id"], player_id)
        return envelope(message="Player deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "deleting player")


@router.post("/api/players/{player_id}/mark-paid")
async def mark_player_paid(
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark the current month paid; the returned player carries fresh billing."""
    try:
        player = await player_service.mark_player_month_paid(session, principal["team_id"], player_id)
        return envelope({"player": player}, "Player marked as paid")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "marking player paid")


@router.post("/api/players/{player_id}/photo")
@limiter.limit("10/minute")
async def upload_player_photo(
    request: Request,
    player_id: int,
    file: UploadFile = File(...),
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """Upload or replace a player's photo (JPEG, PNG, GIF or WebP, max 5MB)."""
    try:
        player = await player_service.get_team_player(session, principal["team_id"], player_id)
        previous_photo = player.photo

        file_bytes = await file.read()
        loop = asyncio.get_event_loop()
        photo_path = await loop.run_in_executor(
            None, upload_service.save_image, file_bytes, file.content_type, f"player-{player_id}"
        )
        updated = await player_service.set_player_photo(session, principal["team_id"], player_id, photo_path)
        if previous_photo and previous_photo != photo_path:
            upload_service.delete_image(previous_photo)
        return envelope({"player": updated}, "Photo updated")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "uploading player photo")
