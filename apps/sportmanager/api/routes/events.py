"""Event route handlers."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.api.auth_dependencies import require_member, require_team_staff
from sportmanager.api.routes import envelope, service_error
from sportmanager.database.db import get_db_session
from sportmanager.models.schemas import EventCreate, EventUpdate
from sportmanager.services import event_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/events")
async def list_events(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    principal: dict = Depends(require_member),
    session: AsyncSession = Depends(get_db_session),
):
    """Team events, earliest first, optionally limited to a start date window."""
    try:
        events = await event_service.list_events(session, principal["team_id"], start_date, end_date)
        return envelope({"count": len(events), "events": events}, "Events retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching events")


@router.post("/api/events", status_code=201)
async def create_event(
    payload: EventCreate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        event = await event_service.create_event(session, principal["team_id"], payload.model_dump())
        return envelope({"event": event}, "Event created successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "creating event")


@router.get("/api/events/{event_id}")
async def get_event(
    event_id: int,
    principal: dict = Depends(require_member),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        event = await event_service.get_event(session, principal["team_id"], event_id)
        return envelope({"event": event}, "Event retrieved successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "fetching event")


@router.put("/api/events/{event_id}")
async def update_event(
    event_id: int,
    payload: EventUpdate,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        event = await event_service.update_event(
            session, principal["team_id"], event_id, payload.model_dump(exclude_unset=True)
        )
        return envelope({"event": event}, "Event updated successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "updating event")


@router.delete("/api/events/{event_id}")
async def delete_event(
    event_id: int,
    principal: dict = Depends(require_team_staff),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await event_service.delete_event(session, principal["team_id"], event_id)
        return envelope(message="Event deleted successfully")
    except HTTPException:
        raise
    except Exception as e:
        raise service_error(e, "deleting event")
