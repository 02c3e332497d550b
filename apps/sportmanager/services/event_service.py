"""
Event service: matches, tournaments and other dated team events.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.database.lookups import get_team_record
from sportmanager.database.models import Event, EventType
from sportmanager.utils.datetime_utils import isoformat_or_none, to_utc

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "event_type", "start_date", "end_date", "location", "notes")


def event_to_dict(event: Event) -> Dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "event_type": event.event_type.value,
        "start_date": isoformat_or_none(event.start_date),
        "end_date": isoformat_or_none(event.end_date),
        "location": event.location,
        "team_id": event.team_id,
        "notes": event.notes,
        "created_at": isoformat_or_none(event.created_at),
        "updated_at": isoformat_or_none(event.updated_at),
    }


def _parse_event_type(value) -> EventType:
    try:
        return EventType(value)
    except ValueError:
        raise ValueError("Event type must be Match, Tournament, Training Camp, Meeting, or Other")


def _check_range(start_date: datetime, end_date: datetime) -> None:
    if to_utc(end_date) <= to_utc(start_date):
        raise ValueError("End date must be after start date")


async def list_events(
    session: AsyncSession,
    team_id: int,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Dict]:
    """Team events whose start falls in the optional window, earliest first."""
    stmt = select(Event).where(Event.team_id == team_id)
    if start_date is not None:
        stmt = stmt.where(Event.start_date >= to_utc(start_date))
    if end_date is not None:
        stmt = stmt.where(Event.start_date <= to_utc(end_date))
    result = await session.execute(stmt.order_by(Event.start_date, Event.id))
    return [event_to_dict(e) for e in result.scalars().all()]


async def get_event(session: AsyncSession, team_id: int, event_id: int) -> Dict:
    return event_to_dict(await get_team_record(session, Event, team_id, event_id))


async def create_event(session: AsyncSession, team_id: int, data: Dict) -> Dict:
    """
    Create an event.

    Raises:
        ValueError: If title/type/dates are missing or end is not after start
    """
    if not (data.get("title") or "").strip():
        raise ValueError("Event title is required")
    if not data.get("start_date") or not data.get("end_date"):
        raise ValueError("Start date and end date are required")
    _check_range(data["start_date"], data["end_date"])

    event = Event(
        team_id=team_id,
        title=data["title"].strip(),
        description=data.get("description") or "",
        event_type=_parse_event_type(data.get("event_type")),
        start_date=to_utc(data["start_date"]),
        end_date=to_utc(data["end_date"]),
        location=(data.get("location") or "").strip(),
        notes=data.get("notes") or "",
    )
    session.add(event)
    await session.commit()
    return await get_event(session, team_id, event.id)


async def update_event(session: AsyncSession, team_id: int, event_id: int, updates: Dict) -> Dict:
    event = await get_team_record(session, Event, team_id, event_id)

    for field in UPDATABLE_FIELDS:
        if updates.get(field) is None:
            continue
        value = updates[field]
        if field == "event_type":
            value = _parse_event_type(value)
        elif field in ("start_date", "end_date"):
            value = to_utc(value)
        elif field in ("title", "location"):
            value = value.strip()
        setattr(event, field, value)
    _check_range(event.start_date, event.end_date)

    await session.commit()
    return await get_event(session, team_id, event_id)


async def delete_event(session: AsyncSession, team_id: int, event_id: int) -> None:
    await get_team_record(session, Event, team_id, event_id)
    await session.execute(delete(Event).where(Event.id == event_id))
    await session.commit()
