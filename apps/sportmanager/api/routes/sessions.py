"""Session (season) route handlers."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_attendance_taker, require_team_staff
from sportmanager.api.routes import envelope, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import SessionCreate, SessionUpdate
from sportmanager.services import session_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/sessions")
async def list_sessions(
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    """Team sessions, latest start first."""
    try:
        sessions = await session_service.list_sessions(session, principal["team_id"])
        return envelope({"count": len(sessions), "sessions": sessions}, "Sessions retrieved successfully")
    except Exception as e:
        raise service_error(e, "fetching sessions")


@router.post("/api/sessions", status_code=201)
async def create_session(
    payload: SessionCreate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        created = await session_service.create_session(
            session,
            principal["team_id"],
            name=payload.name,
            start_date=payload.start_date,
            end_date=payload.end_date,
            description=payload.description or "",
            session_type=payload.session_type,
        )
        return envelope({"session": created}, "Session created successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "creating session")


@router.get("/api/sessions/{session_id}")
async def get_session(
    session_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        found = await session_service.get_session(session, principal["team_id"], session_id)
        return envelope({"session": found}, "Session retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching session")


@router.put("/api/sessions/{session_id}")
async def update_session(
    session_id: int,
    payload: SessionUpdate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updated = await session_service.update_session(
            session, principal["team_id"], session_id, payload.model_dump(exclude_unset=True)
        )
        return envelope({"session": updated}, "Session updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating session")


@router.delete("/api/sessions/{session_id}")
async def delete_session(
    session_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await session_service.delete_session(session, principal["team_id"], session_id)
        return envelope(message="Session deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "deleting session")


# ============================================================================
# Roster
# ============================================================================

@router.post("/api/sessions/{session_id}/players/{player_id}")
async def add_session_player(
    session_id: int,
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updated = await session_service.add_player(session, principal["team_id"], session_id, player_id)
        return envelope({"session": updated}, "Player added to session")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "adding player to session")


@router.delete("/api/sessions/{session_id}/players/{player_id}")
async def remove_session_player(
    session_id: int,
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updated = await session_service.remove_player(session, principal["team_id"], session_id, player_id)
        return envelope({"session": updated}, "Player removed from session")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "removing player from session")


@router.post("/api/sessions/{session_id}/coaches/{coach_id}")
async def add_session_coach(
    session_id: int,
    coach_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updated = await session_service.add_coach(session, principal["team_id"], session_id, coach_id)
        return envelope({"session": updated}, "Coach added to session")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "adding coach to session")


@router.delete("/api/sessions/{session_id}/coaches/{coach_id}")
async def remove_session_coach(
    session_id: int,
    coach_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updated = await session_service.remove_coach(session, principal["team_id"], session_id, coach_id)
        return envelope({"session": updated}, "Coach removed from session")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "removing coach from session")
