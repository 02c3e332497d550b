"""Coach route handlers."""

import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_team_staff
from sportmanager.api.routes import envelope, limiter, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import CoachCreate, CoachUpdate
from sportmanager.services import coach_service, upload_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/coaches")
async def list_coaches(
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        coaches = await coach_service.list_coaches(session, principal["team_id"])
        return envelope({"count": len(coaches), "coaches": coaches}, "Coaches retrieved successfully")
    except Exception as e:
        raise service_error(e, "fetching coaches")


@router.post("/api/coaches", status_code=201)
async def create_coach(
    payload: CoachCreate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a coach. Emails are unique within a team."""
    try:
        coach = await coach_service.create_coach(session, principal["team_id"], payload.model_dump())
        return envelope({"coach": coach}, "Coach created successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "creating coach")


@router.get("/api/coaches/{coach_id}")
async def get_coach(
    coach_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        coach = await coach_service.get_coach(session, principal["team_id"], coach_id)
        return envelope({"coach": coach}, "Coach retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching coach")


@router.put("/api/coaches/{coach_id}")
async def update_coach(
    coach_id: int,
    payload: CoachUpdate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        updates = payload.model_dump(exclude_unset=True)
        coach = await coach_service.update_coach(session, principal["team_id"], coach_id, updates)
        return envelope({"coach": coach}, "Coach updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating coach")


@router.delete("/api/coaches/{coach_id}")
async def delete_coach(
    coach_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await coach_service.delete_coach(session, principal["team_id"], coach_id)
        return envelope(message="Coach deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "deleting coach")


@router.post("/api/coaches/{coach_id}/photo")
@limiter.limit("10/minute")
async def upload_coach_photo(
    request: Request,
    coach_id: int,
    file: UploadFile = File(...),
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        coach = await coach_service.get_team_coach(session, principal["team_id"], coach_id)
        previous_photo = coach.photo

        file_bytes = await file.read()
        loop = asyncio.get_event_loop()
        photo_path = await loop.run_in_executor(
            None, upload_service.save_image, file_bytes, file.content_type, f"coach-{coach_id}"
        )
        updated = await coach_service.set_coach_photo(session, principal["team_id"], coach_id, photo_path)
        if previous_photo and previous_photo != photo_path:
            upload_service.delete_image(previous_photo)
        return envelope({"coach": updated}, "Photo updated")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "uploading coach photo")
