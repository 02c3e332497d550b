"""Subgroup route handlers: CRUD, member assignment and availability lists."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_attendance_taker, require_team_staff
from sportmanager.api.routes import envelope, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import SubgroupCreate, SubgroupUpdate
from sportmanager.services import subgroup_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/subgroups/session/{session_id}")
async def list_subgroups(
    session_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    """Subgroups of a session ordered by category, then name."""
    try:
        subgroups = await subgroup_service.list_subgroups(session, principal["team_id"], session_id)
        return envelope({"count": len(subgroups), "subgroups": subgroups}, "Subgroups retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching subgroups")


@router.post("/api/subgroups/session/{session_id}", status_code=201)
async def create_subgroup(
    session_id: int,
    payload: SubgroupCreate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        subgroup = await subgroup_service.create_subgroup(
            session,
            principal["team_id"],
            session_id,
            name=payload.name,
            category=payload.category,
            description=payload.description or "",
            max_players=payload.max_players or 0,
        )
        return envelope({"subgroup": subgroup}, "Subgroup created successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "creating subgroup")


@router.get("/api/subgroups/session/{session_id}/available-players/{category}")
async def list_available_players(
    session_id: int,
    category: str,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """Players of a category that no subgroup of the session has taken yet."""
    try:
        players = await subgroup_service.list_available_players(session, principal["team_id"], session_id, category)
        return envelope({"count": len(players), "players": players}, "Available players retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching available players")


@router.get("/api/subgroups/{subgroup_id}")
async def get_subgroup(
    subgroup_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        subgroup = await subgroup_service.get_subgroup(session, principal["team_id"], subgroup_id)
        return envelope({"subgroup": subgroup}, "Subgroup retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching subgroup")


@router.put("/api/subgroups/{subgroup_id}")
async def update_subgroup(
    subgroup_id: int,
    payload: SubgroupUpdate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        subgroup = await subgroup_service.update_subgroup(
            session, principal["team_id"], subgroup_id, payload.model_dump(exclude_unset=True)
        )
        return envelope({"subgroup": subgroup}, "Subgroup updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating subgroup")


@router.delete("/api/subgroups/{subgroup_id}")
async def delete_subgroup(
    subgroup_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await subgroup_service.delete_subgroup(session, principal["team_id"], subgroup_id)
        return envelope(message="Subgroup deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "deleting subgroup")


@router.get("/api/subgroups/{subgroup_id}/available-coaches")
async def list_available_coaches(
    subgroup_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        coaches = await subgroup_service.list_available_coaches(session, principal["team_id"], subgroup_id)
        return envelope({"count": len(coaches), "coaches": coaches}, "Available coaches retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching available coaches")


# ============================================================================
# Assignment
# ============================================================================

@router.post("/api/subgroups/{subgroup_id}/players/{player_id}")
async def assign_player(
    subgroup_id: int,
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Put a player in a subgroup.

    The player leaves any other subgroup of the same session first.
    """
    try:
        subgroup = await subgroup_service.assign_player(session, principal["team_id"], subgroup_id, player_id)
        return envelope({"subgroup": subgroup}, "Player assigned to subgroup")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "assigning player")


@router.delete("/api/subgroups/{subgroup_id}/players/{player_id}")
async def remove_player(
    subgroup_id: int,
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        subgroup = await subgroup_service.remove_player(session, principal["team_id"], subgroup_id, player_id)
        return envelope({"subgroup": subgroup}, "Player removed from subgroup")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "removing player")


@router.post("/api/subgroups/{subgroup_id}/coaches/{coach_id}")
async def assign_coach(
    subgroup_id: int,
    coach_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        subgroup = await subgroup_service.assign_coach(session, principal["team_id"], subgroup_id, coach_id)
        return envelope({"subgroup": subgroup}, "Coach assigned to subgroup")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "assigning coach")


@router.delete("/api/subgroups/{subgroup_id}/coaches/{coach_id}")
async def remove_coach(
    subgroup_id: int,
    coach_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        subgroup = await subgroup_service.remove_coach(session, principal["team_id"], subgroup_id, coach_id)
        return envelope({"subgroup": subgroup}, "Coach removed from subgroup")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "removing coach")
