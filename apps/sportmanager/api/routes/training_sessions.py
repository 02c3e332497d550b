"""Training session route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_attendance_taker, require_team_staff
from sportmanager.api.routes import envelope, parse_optional_int, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import TrainingAttendanceUpdate, TrainingSessionCreate, TrainingSessionUpdate
from sportmanager.services import attendance_service, training_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/api/training-sessions", status_code=201)
async def create_training_session(
    payload: TrainingSessionCreate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Create a training session inside a session.

    `day_of_week` may be left out when `date` is given.
    """
    try:
        data = payload.model_dump(exclude={"on_date"})
        data["date"] = payload.on_date
        training = await training_service.create_training_session(session, principal["team_id"], data)
        return envelope({"training_session": training}, "Training session created successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "creating training session")


@router.get("/api/training-sessions/session/{session_id}")
async def list_training_sessions(
    session_id: int,
    group: Optional[str] = Query(None),
    subgroup_id: Optional[str] = Query(None),
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        trainings = await training_service.list_training_sessions(
            session,
            principal["team_id"],
            session_id,
            group=group or None,
            subgroup_id=parse_optional_int(subgroup_id, "subgroup_id"),
        )
        return envelope(
            {"count": len(trainings), "training_sessions": trainings},
            "Training sessions retrieved successfully",
        )
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching training sessions")


@router.get("/api/training-sessions/{training_id}")
async def get_training_session(
    training_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        training = await training_service.get_training_session(session, principal["team_id"], training_id)
        return envelope({"training_session": training}, "Training session retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching training session")


@router.put("/api/training-sessions/{training_id}")
async def update_training_session(
    training_id: int,
    payload: TrainingSessionUpdate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """Partial update; `player_ids`, when sent, replaces the registered players."""
    try:
        training = await training_service.update_training_session(
            session, principal["team_id"], training_id, payload.model_dump(exclude_unset=True)
        )
        return envelope({"training_session": training}, "Training session updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating training session")


@router.delete("/api/training-sessions/{training_id}")
async def delete_training_session(
    training_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await training_service.delete_training_session(session, principal["team_id"], training_id)
        return envelope(message="Training session deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "deleting training session")


@router.post("/api/training-sessions/{training_id}/players/{player_id}")
async def add_training_player(
    training_id: int,
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        training = await training_service.add_player(session, principal["team_id"], training_id, player_id)
        return envelope({"training_session": training}, "Player added to training session")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "adding player to training session")


@router.delete("/api/training-sessions/{training_id}/players/{player_id}")
async def remove_training_player(
    training_id: int,
    player_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        training = await training_service.remove_player(session, principal["team_id"], training_id, player_id)
        return envelope({"training_session": training}, "Player removed from training session")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "removing player from training session")


# Older clients record attendance here; marks land in the same attendance table.

@router.put("/api/training-sessions/{training_id}/attendance")
async def update_training_attendance(
    training_id: int,
    payload: TrainingAttendanceUpdate,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        record = await attendance_service.record_registered_attendance(
            session, principal["team_id"], training_id, payload.player_id, payload.status
        )
        return envelope({"attendance": record}, "Attendance updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating attendance")


@router.get("/api/training-sessions/{training_id}/attendance")
async def list_training_attendance(
    training_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        records = await attendance_service.list_training_attendance(session, principal["team_id"], training_id)
        return envelope({"count": len(records), "attendance": records}, "Attendance retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching attendance")
