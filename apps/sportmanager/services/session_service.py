"""
Session (season) service: CRUD and roster membership.

A session owns the date range payment schedules are built over, plus the
players and coaches on its roster.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportmanager.database.lookups import get_team_record
from sportmanager.database.models import Coach, Player, Session, SessionType
from sportmanager.utils.datetime_utils import isoformat_or_none, now_local

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "start_date", "end_date", "type")


def _player_summary(player: Player) -> Dict:
    return {
        "id": player.id,
        "full_name": player.full_name,
        "group": player.group.value,
        "email": player.email,
        "monthly_fee": player.monthly_fee,
    }


def _coach_summary(coach: Coach) -> Dict:
    return {
        "id": coach.id,
        "full_name": coach.full_name,
        "specialization": coach.specialization,
        "email": coach.email,
        "agreed_salary": coach.agreed_salary,
    }


def session_to_dict(team_session: Session, include_roster: bool = True) -> Dict:
    data = {
        "id": team_session.id,
        "name": team_session.name,
        "description": team_session.description,
        "start_date": isoformat_or_none(team_session.start_date),
        "end_date": isoformat_or_none(team_session.end_date),
        "type": team_session.type.value,
        "team_id": team_session.team_id,
        "created_at": isoformat_or_none(team_session.created_at),
        "updated_at": isoformat_or_none(team_session.updated_at),
    }
    if include_roster:
        data["players"] = [_player_summary(p) for p in team_session.players]
        data["coaches"] = [_coach_summary(c) for c in team_session.coaches]
    return data


async def get_team_session(
    session: AsyncSession, team_id: int, session_id: int, with_roster: bool = False
) -> Session:
    """
    Load a session owned by the given team.

    Raises:
        NotFoundError: If it does not exist or belongs to another team
    """
    options = (selectinload(Session.players), selectinload(Session.coaches)) if with_roster else ()
    return await get_team_record(session, Session, team_id, session_id, options)


async def find_active_session(
    session: AsyncSession, team_id: int, today: Optional[date] = None
) -> Optional[Session]:
    """The team's session whose date range contains today (latest start wins)."""
    today = today or now_local().date()
    result = await session.execute(
        select(Session)
        .where(
            Session.team_id == team_id,
            Session.start_date <= today,
            Session.end_date >= today,
        )
        .order_by(Session.start_date.desc(), Session.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def _check_date_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise ValueError("Start date must be on or before end date")


async def create_session(
    session: AsyncSession,
    team_id: int,
    name: str,
    start_date: date,
    end_date: date,
    description: str = "",
    session_type: str = "yearly",
) -> Dict:
    """Create a session for a team."""
    if not (name or "").strip():
        raise ValueError("Session name is required")
    _check_date_range(start_date, end_date)

    team_session = Session(
        team_id=team_id,
        name=name.strip(),
        description=description or "",
        start_date=start_date,
        end_date=end_date,
        type=SessionType(session_type),
    )
    session.add(team_session)
    await session.commit()
    return await get_session(session, team_id, team_session.id)


async def list_sessions(session: AsyncSession, team_id: int) -> List[Dict]:
    """All sessions of a team with rosters, newest start first."""
    result = await session.execute(
        select(Session)
        .where(Session.team_id == team_id)
        .options(selectinload(Session.players), selectinload(Session.coaches))
        .order_by(Session.start_date.desc(), Session.id.desc())
    )
    return [session_to_dict(s) for s in result.scalars().all()]


async def get_session(session: AsyncSession, team_id: int, session_id: int) -> Dict:
    team_session = await get_team_session(session, team_id, session_id, with_roster=True)
    return session_to_dict(team_session)


async def update_session(session: AsyncSession, team_id: int, session_id: int, updates: Dict) -> Dict:
    """
    Apply a partial update.

    Raises:
        NotFoundError: If the session is not the team's
        ValueError: If the resulting date range is inverted
    """
    team_session = await get_team_session(session, team_id, session_id)
    for field in UPDATABLE_FIELDS:
        if field in updates and updates[field] is not None:
            value = updates[field]
            if field == "type":
                value = SessionType(value)
            setattr(team_session, field, value)
    _check_date_range(team_session.start_date, team_session.end_date)

    await session.commit()
    return await get_session(session, team_id, session_id)


async def delete_session(session: AsyncSession, team_id: int, session_id: int) -> None:
    """Delete a session; members keep existing but lose their session reference."""
    await get_team_session(session, team_id, session_id)
    await session.execute(update(Player).where(Player.session_id == session_id).values(session_id=None))
    await session.execute(update(Coach).where(Coach.session_id == session_id).values(session_id=None))
    await session.execute(delete(Session).where(Session.id == session_id))
    await session.commit()
    logger.info(f"Deleted session {session_id} of team {team_id}")


# ============================================================================
# Roster
# ============================================================================

async def add_player(session: AsyncSession, team_id: int, session_id: int, player_id: int) -> Dict:
    """Add a player to the roster (no-op if already there) and point the player at this session."""
    player = await get_team_record(session, Player, team_id, player_id)
    team_session = await get_team_session(session, team_id, session_id, with_roster=True)
    if player not in team_session.players:
        team_session.players.append(player)
    player.session_id = team_session.id
    await session.commit()
    return await get_session(session, team_id, session_id)


async def remove_player(session: AsyncSession, team_id: int, session_id: int, player_id: int) -> Dict:
    team_session = await get_team_session(session, team_id, session_id, with_roster=True)
    for player in list(team_session.players):
        if player.id == player_id:
            team_session.players.remove(player)
            if player.session_id == team_session.id:
                player.session_id = None
    await session.commit()
    return await get_session(session, team_id, session_id)


async def add_coach(session: AsyncSession, team_id: int, session_id: int, coach_id: int) -> Dict:
    coach = await get_team_record(session, Coach, team_id, coach_id)
    team_session = await get_team_session(session, team_id, session_id, with_roster=True)
    if coach not in team_session.coaches:
        team_session.coaches.append(coach)
    coach.session_id = team_session.id
    await session.commit()
    return await get_session(session, team_id, session_id)


async def remove_coach(session: AsyncSession, team_id: int, session_id: int, coach_id: int) -> Dict:
    team_session = await get_team_session(session, team_id, session_id, with_roster=True)
    for coach in list(team_session.coaches):
        if coach.id == coach_id:
            team_session.coaches.remove(coach)
            if coach.session_id == team_session.id:
                coach.session_id = None
    await session.commit()
    return await get_session(session, team_id, session_id)
