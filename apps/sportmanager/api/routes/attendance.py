"""Attendance route handlers: roster, marking and statistics."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_attendance_taker
from sportmanager.api.routes import envelope, parse_optional_int, service_error
from sportmanager.database.db import get_db_session
from sportmanager.database.models import UserRole
from sportmanager.models.schemas import AttendanceMark, BulkAttendanceRequest
from sportmanager.services import attendance_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _marking_coach(principal: dict, requested: Optional[int]) -> Optional[int]:
    """A coach always marks as themselves; staff may name a coach explicitly."""
    if principal["role"] == UserRole.COACH.value:
        return principal["id"]
    return requested


@router.get("/api/attendance/{training_id}")
async def get_attendance(
    training_id: int,
    coach_id: Optional[str] = Query(None),
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Attendance roster of a training session.

    Players come from the subgroups of the training's group; passing a coach
    narrows them to that coach's subgroups. Unmarked players report
    `not_marked`.
    """
    try:
        coach = _marking_coach(principal, parse_optional_int(coach_id, "coach_id"))
        data = await attendance_service.get_attendance(session, principal["team_id"], training_id, coach_id=coach)
        return envelope(data, "Attendance retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching attendance")


@router.post("/api/attendance/{training_id}/players/{player_id}")
async def mark_attendance(
    training_id: int,
    player_id: int,
    payload: AttendanceMark,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        record = await attendance_service.mark_attendance(
            session,
            principal["team_id"],
            training_id,
            player_id,
            payload.status,
            notes=payload.notes,
            coach_id=_marking_coach(principal, payload.coach_id),
        )
        return envelope({"attendance": record}, "Attendance marked successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "marking attendance")


@router.post("/api/attendance/{training_id}/bulk")
async def mark_bulk_attendance(
    training_id: int,
    payload: BulkAttendanceRequest,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    """Mark several players at once; per-player problems come back in `errors`."""
    try:
        data = await attendance_service.mark_bulk_attendance(
            session,
            principal["team_id"],
            training_id,
            [item.model_dump() for item in payload.attendance_data],
            coach_id=_marking_coach(principal, payload.coach_id),
        )
        return envelope(data, f"Marked attendance for {len(data['results'])} players")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "marking attendance")


@router.get("/api/attendance/{training_id}/stats")
async def get_attendance_stats(
    training_id: int,
    principal: dict = Depends(require_attendance_taker),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        data = await attendance_service.get_attendance_stats(session, principal["team_id"], training_id)
        return envelope(data, "Attendance statistics retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching attendance statistics")
