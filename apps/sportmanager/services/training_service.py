"""
Training session service: weekly practice slots within a session.
"""

import logging
import re
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportmanager.database.lookups import get_team_record
from sportmanager.database.models import (
    DayOfWeek,
    Player,
    Subgroup,
    TrainingGroup,
    TrainingSession,
    training_session_players,
)
from sportmanager.services import session_service
from sportmanager.utils.constants import TIME_PATTERN
from sportmanager.utils.datetime_utils import isoformat_or_none

logger = logging.getLogger(__name__)

_TIME_RE = re.compile(TIME_PATTERN)
_WITH_PLAYERS = (selectinload(TrainingSession.players), selectinload(TrainingSession.session))

UPDATABLE_FIELDS = (
    "title",
    "description",
    "notes",
    "start_time",
    "end_time",
    "day_of_week",
    "location",
    "group",
    "subgroup_id",
    "is_weekly",
)


def training_to_dict(training: TrainingSession) -> Dict:
    return {
        "id": training.id,
        "title": training.title,
        "description": training.description,
        "notes": training.notes,
        "start_time": training.start_time,
        "end_time": training.end_time,
        "day_of_week": training.day_of_week.value,
        "location": training.location,
        "group": training.group.value,
        "subgroup_id": training.subgroup_id,
        "session_id": training.session_id,
        "session": {
            "id": training.session.id,
            "name": training.session.name,
            "start_date": isoformat_or_none(training.session.start_date),
            "end_date": isoformat_or_none(training.session.end_date),
        },
        "team_id": training.team_id,
        "is_weekly": training.is_weekly,
        "players": [
            {"id": p.id, "full_name": p.full_name, "group": p.group.value} for p in training.players
        ],
        "created_at": isoformat_or_none(training.created_at),
        "updated_at": isoformat_or_none(training.updated_at),
    }


def _parse_time(value: str, field: str) -> str:
    if not value or not _TIME_RE.match(value):
        raise ValueError(f"{field} must be in HH:MM format")
    return value


def _parse_day(value) -> DayOfWeek:
    try:
        return DayOfWeek(value)
    except ValueError:
        raise ValueError(f"Invalid day_of_week '{value}'")


def _parse_group(value) -> TrainingGroup:
    try:
        return TrainingGroup(value)
    except ValueError:
        raise ValueError(f"Invalid group '{value}'")


def day_of_week_for(value: date) -> DayOfWeek:
    """Weekday name of a calendar date."""
    return DayOfWeek(value.strftime("%A"))


async def _check_players(session: AsyncSession, team_id: int, player_ids: Iterable[int]) -> List[int]:
    ids = list(dict.fromkeys(player_ids))
    if not ids:
        return []
    result = await session.execute(select(Player.id).where(Player.team_id == team_id, Player.id.in_(ids)))
    found = set(result.scalars().all())
    missing = [i for i in ids if i not in found]
    if missing:
        raise ValueError(f"Unknown players: {', '.join(str(i) for i in missing)}")
    return ids


async def get_team_training_session(
    session: AsyncSession, team_id: int, training_id: int, with_players: bool = False
) -> TrainingSession:
    return await get_team_record(
        session,
        TrainingSession,
        team_id,
        training_id,
        _WITH_PLAYERS if with_players else (),
        label="Training session",
    )


async def get_training_session(session: AsyncSession, team_id: int, training_id: int) -> Dict:
    return training_to_dict(await get_team_training_session(session, team_id, training_id, with_players=True))


async def create_training_session(session: AsyncSession, team_id: int, data: Dict) -> Dict:
    """
    Create a training session.

    day_of_week may be omitted when a calendar date is given. The team is
    taken from the parent session.

    Raises:
        ValueError: If the session/day is missing or a field is malformed
        NotFoundError: If the session or subgroup is not the team's
    """
    if not data.get("session_id"):
        raise ValueError("Session is required")
    day = data.get("day_of_week")
    if not day and data.get("date"):
        day = day_of_week_for(data["date"])
    if not day:
        raise ValueError("Day of week is required")
    if not (data.get("title") or "").strip():
        raise ValueError("Title is required")

    team_session = await session_service.get_team_session(session, team_id, data["session_id"])
    if data.get("subgroup_id") is not None:
        await get_team_record(session, Subgroup, team_id, data["subgroup_id"])
    player_ids = await _check_players(session, team_id, data.get("player_ids") or [])

    training = TrainingSession(
        title=data["title"].strip(),
        description=data.get("description") or "",
        notes=data.get("notes") or "",
        start_time=_parse_time(data.get("start_time"), "start_time"),
        end_time=_parse_time(data.get("end_time"), "end_time"),
        day_of_week=_parse_day(day),
        location=data.get("location") or "",
        group=_parse_group(data.get("group") or TrainingGroup.MINIMUM.value),
        subgroup_id=data.get("subgroup_id"),
        session_id=team_session.id,
        team_id=team_session.team_id,
        is_weekly=bool(data.get("is_weekly")),
    )
    session.add(training)
    await session.flush()
    if player_ids:
        await session.execute(
            insert(training_session_players),
            [{"training_session_id": training.id, "player_id": pid} for pid in player_ids],
        )
    await session.commit()
    logger.info(f"Created training session {training.id} in session {team_session.id}")
    return await get_training_session(session, team_id, training.id)


async def list_training_sessions(
    session: AsyncSession,
    team_id: int,
    session_id: int,
    group: Optional[str] = None,
    subgroup_id: Optional[int] = None,
) -> List[Dict]:
    """Training sessions of a session, optionally filtered by group and subgroup."""
    stmt = (
        select(TrainingSession)
        .where(TrainingSession.session_id == session_id, TrainingSession.team_id == team_id)
        .options(*_WITH_PLAYERS)
        .order_by(TrainingSession.id)
    )
    if group:
        stmt = stmt.where(TrainingSession.group == _parse_group(group))
    if subgroup_id:
        stmt = stmt.where(TrainingSession.subgroup_id == subgroup_id)
    result = await session.execute(stmt)
    return [training_to_dict(t) for t in result.scalars().all()]


async def update_training_session(session: AsyncSession, team_id: int, training_id: int, updates: Dict) -> Dict:
    """Partial update; player_ids, when given, replaces the assigned players."""
    training = await get_team_training_session(session, team_id, training_id)

    for field in UPDATABLE_FIELDS:
        if field not in updates:
            continue
        value = updates[field]
        if value is None and field != "subgroup_id":
            continue
        if field in ("start_time", "end_time"):
            value = _parse_time(value, field)
        elif field == "day_of_week":
            value = _parse_day(value)
        elif field == "group":
            value = _parse_group(value)
        elif field == "subgroup_id" and value is not None:
            await get_team_record(session, Subgroup, team_id, value)
        setattr(training, field, value)

    if updates.get("player_ids") is not None:
        player_ids = await _check_players(session, team_id, updates["player_ids"])
        await session.execute(
            delete(training_session_players).where(training_session_players.c.training_session_id == training_id)
        )
        if player_ids:
            await session.execute(
                insert(training_session_players),
                [{"training_session_id": training_id, "player_id": pid} for pid in player_ids],
            )

    await session.commit()
    return await get_training_session(session, team_id, training_id)


async def delete_training_session(session: AsyncSession, team_id: int, training_id: int) -> None:
    """Delete a training session together with its attendance marks."""
    await get_team_training_session(session, team_id, training_id)
    await session.execute(delete(TrainingSession).where(TrainingSession.id == training_id))
    await session.commit()
    logger.info(f"Deleted training session {training_id} of team {team_id}")


async def add_player(session: AsyncSession, team_id: int, training_id: int, player_id: int) -> Dict:
    training = await get_team_training_session(session, team_id, training_id, with_players=True)
    await get_team_record(session, Player, team_id, player_id)
    if not any(p.id == player_id for p in training.players):
        await session.execute(
            insert(training_session_players).values(training_session_id=training_id, player_id=player_id)
        )
        await session.commit()
    return await get_training_session(session, team_id, training_id)


async def remove_player(session: AsyncSession, team_id: int, training_id: int, player_id: int) -> Dict:
    await get_team_training_session(session, team_id, training_id)
    await session.execute(
        delete(training_session_players).where(
            training_session_players.c.training_session_id == training_id,
            training_session_players.c.player_id == player_id,
        )
    )
    await session.commit()
    return await get_training_session(session, team_id, training_id)
