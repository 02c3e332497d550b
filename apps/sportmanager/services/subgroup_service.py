"""
Subgroup service: per-session subdivisions of a player category.

A player belongs to at most one subgroup per session; assigning them to a new
one removes them from the others first.
"""

import logging
from typing import Dict, List

from sqlalchemy import delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportmanager.database.lookups import get_team_record
from sportmanager.database.models import (
    Coach,
    Player,
    PlayerGroup,
    Subgroup,
    subgroup_coaches,
    subgroup_players,
)
from sportmanager.services import session_service
from sportmanager.utils.datetime_utils import isoformat_or_none
from sportmanager.utils.errors import DuplicateError

logger = logging.getLogger(__name__)

_WITH_MEMBERS = (selectinload(Subgroup.coaches), selectinload(Subgroup.players))


def subgroup_to_dict(subgroup: Subgroup) -> Dict:
    return {
        "id": subgroup.id,
        "name": subgroup.name,
        "category": subgroup.category.value,
        "session_id": subgroup.session_id,
        "team_id": subgroup.team_id,
        "description": subgroup.description,
        "max_players": subgroup.max_players,
        "is_active": subgroup.is_active,
        "coaches": [
            {"id": c.id, "full_name": c.full_name, "email": c.email, "specialization": c.specialization}
            for c in subgroup.coaches
        ],
        "players": [
            {
                "id": p.id,
                "full_name": p.full_name,
                "date_of_birth": isoformat_or_none(p.date_of_birth),
                "group": p.group.value,
            }
            for p in subgroup.players
        ],
        "created_at": isoformat_or_none(subgroup.created_at),
        "updated_at": isoformat_or_none(subgroup.updated_at),
    }


def _parse_category(value) -> PlayerGroup:
    try:
        return PlayerGroup(value)
    except ValueError:
        raise ValueError(f"Invalid category '{value}'")


async def get_team_subgroup(
    session: AsyncSession, team_id: int, subgroup_id: int, with_members: bool = False
) -> Subgroup:
    return await get_team_record(
        session, Subgroup, team_id, subgroup_id, _WITH_MEMBERS if with_members else ()
    )


async def get_subgroup(session: AsyncSession, team_id: int, subgroup_id: int) -> Dict:
    return subgroup_to_dict(await get_team_subgroup(session, team_id, subgroup_id, with_members=True))


async def list_subgroups(session: AsyncSession, team_id: int, session_id: int) -> List[Dict]:
    """Subgroups of a session ordered by category, then name."""
    result = await session.execute(
        select(Subgroup)
        .where(Subgroup.session_id == session_id, Subgroup.team_id == team_id)
        .options(*_WITH_MEMBERS)
        .order_by(Subgroup.category, Subgroup.name)
    )
    return [subgroup_to_dict(s) for s in result.scalars().all()]


async def _name_taken(session: AsyncSession, team_id: int, session_id: int, category: PlayerGroup, name: str) -> bool:
    result = await session.execute(
        select(Subgroup.id).where(
            Subgroup.team_id == team_id,
            Subgroup.session_id == session_id,
            Subgroup.category == category,
            Subgroup.name == name,
        )
    )
    return result.first() is not None


async def create_subgroup(
    session: AsyncSession,
    team_id: int,
    session_id: int,
    name: str,
    category: str,
    description: str = "",
    max_players: int = 0,
) -> Dict:
    """
    Create a subgroup in a session.

    Raises:
        NotFoundError: If the session is not the team's
        DuplicateError: If the name is taken for this category and session
        ValueError: If name/category/max_players are invalid
    """
    await session_service.get_team_session(session, team_id, session_id)
    name = (name or "").strip()
    if not name:
        raise ValueError("Subgroup name is required")
    parsed_category = _parse_category(category)
    if max_players is not None and max_players < 0:
        raise ValueError("max_players must not be negative")

    if await _name_taken(session, team_id, session_id, parsed_category, name):
        raise DuplicateError("A subgroup with this name already exists for this category and session")

    subgroup = Subgroup(
        name=name,
        category=parsed_category,
        session_id=session_id,
        team_id=team_id,
        description=description or "",
        max_players=max_players or 0,
    )
    session.add(subgroup)
    await session.commit()
    return await get_subgroup(session, team_id, subgroup.id)


async def update_subgroup(session: AsyncSession, team_id: int, subgroup_id: int, updates: Dict) -> Dict:
    """Update name, description, max_players and is_active; other keys are ignored."""
    subgroup = await get_team_subgroup(session, team_id, subgroup_id)

    if updates.get("name") is not None:
        name = updates["name"].strip()
        if not name:
            raise ValueError("Subgroup name is required")
        if name != subgroup.name and await _name_taken(
            session, team_id, subgroup.session_id, subgroup.category, name
        ):
            raise DuplicateError("A subgroup with this name already exists for this category and session")
        subgroup.name = name
    if updates.get("description") is not None:
        subgroup.description = updates["description"]
    if updates.get("max_players") is not None:
        if updates["max_players"] < 0:
            raise ValueError("max_players must not be negative")
        subgroup.max_players = updates["max_players"]
    if updates.get("is_active") is not None:
        subgroup.is_active = updates["is_active"]

    await session.commit()
    return await get_subgroup(session, team_id, subgroup_id)


async def delete_subgroup(session: AsyncSession, team_id: int, subgroup_id: int) -> None:
    """Delete a subgroup; its players lose their subgroup reference."""
    await get_team_subgroup(session, team_id, subgroup_id)
    await session.execute(update(Player).where(Player.subgroup_id == subgroup_id).values(subgroup_id=None))
    await session.execute(delete(Subgroup).where(Subgroup.id == subgroup_id))
    await session.commit()
    logger.info(f"Deleted subgroup {subgroup_id} of team {team_id}")


async def assign_player(session: AsyncSession, team_id: int, subgroup_id: int, player_id: int) -> Dict:
    """
    Put a player in a subgroup.

    Raises:
        NotFoundError: If the subgroup or player is not the team's
        ValueError: If already assigned here or the subgroup is full
    """
    subgroup = await get_team_subgroup(session, team_id, subgroup_id, with_members=True)
    player = await get_team_record(session, Player, team_id, player_id)

    if any(p.id == player_id for p in subgroup.players):
        raise ValueError("Player is already assigned to this subgroup")
    if subgroup.max_players > 0 and len(subgroup.players) >= subgroup.max_players:
        raise ValueError("Subgroup has reached maximum capacity")

    same_session = select(Subgroup.id).where(
        Subgroup.session_id == subgroup.session_id, Subgroup.team_id == team_id
    )
    await session.execute(
        delete(subgroup_players).where(
            subgroup_players.c.player_id == player_id,
            subgroup_players.c.subgroup_id.in_(same_session),
        )
    )
    await session.execute(insert(subgroup_players).values(subgroup_id=subgroup_id, player_id=player_id))
    player.subgroup_id = subgroup_id
    await session.commit()
    return await get_subgroup(session, team_id, subgroup_id)


async def remove_player(session: AsyncSession, team_id: int, subgroup_id: int, player_id: int) -> Dict:
    await get_team_subgroup(session, team_id, subgroup_id)
    await session.execute(
        delete(subgroup_players).where(
            subgroup_players.c.subgroup_id == subgroup_id,
            subgroup_players.c.player_id == player_id,
        )
    )
    await session.execute(
        update(Player)
        .where(Player.id == player_id, Player.team_id == team_id, Player.subgroup_id == subgroup_id)
        .values(subgroup_id=None)
    )
    await session.commit()
    return await get_subgroup(session, team_id, subgroup_id)


async def assign_coach(session: AsyncSession, team_id: int, subgroup_id: int, coach_id: int) -> Dict:
    subgroup = await get_team_subgroup(session, team_id, subgroup_id, with_members=True)
    await get_team_record(session, Coach, team_id, coach_id)
    if any(c.id == coach_id for c in subgroup.coaches):
        raise ValueError("Coach is already assigned to this subgroup")

    await session.execute(insert(subgroup_coaches).values(subgroup_id=subgroup_id, coach_id=coach_id))
    await session.commit()
    return await get_subgroup(session, team_id, subgroup_id)


async def remove_coach(session: AsyncSession, team_id: int, subgroup_id: int, coach_id: int) -> Dict:
    await get_team_subgroup(session, team_id, subgroup_id)
    await session.execute(
        delete(subgroup_coaches).where(
            subgroup_coaches.c.subgroup_id == subgroup_id,
            subgroup_coaches.c.coach_id == coach_id,
        )
    )
    await session.commit()
    return await get_subgroup(session, team_id, subgroup_id)


async def list_available_players(
    session: AsyncSession, team_id: int, session_id: int, category: str
) -> List[Dict]:
    """Team players of a category not yet in any subgroup of that session and category."""
    parsed_category = _parse_category(category)
    assigned = (
        select(subgroup_players.c.player_id)
        .join(Subgroup, Subgroup.id == subgroup_players.c.subgroup_id)
        .where(
            Subgroup.session_id == session_id,
            Subgroup.team_id == team_id,
            Subgroup.category == parsed_category,
        )
    )
    result = await session.execute(
        select(Player)
        .where(
            Player.team_id == team_id,
            Player.group == parsed_category,
            Player.id.not_in(assigned),
        )
        .order_by(Player.full_name)
    )
    return [
        {
            "id": p.id,
            "full_name": p.full_name,
            "date_of_birth": isoformat_or_none(p.date_of_birth),
            "group": p.group.value,
        }
        for p in result.scalars().all()
    ]


async def list_available_coaches(session: AsyncSession, team_id: int, subgroup_id: int) -> List[Dict]:
    """Team coaches not yet assigned to the subgroup."""
    await get_team_subgroup(session, team_id, subgroup_id)
    assigned = select(subgroup_coaches.c.coach_id).where(subgroup_coaches.c.subgroup_id == subgroup_id)
    result = await session.execute(
        select(Coach)
        .where(Coach.team_id == team_id, Coach.id.not_in(assigned))
        .order_by(Coach.full_name)
    )
    return [
        {"id": c.id, "full_name": c.full_name, "email": c.email, "specialization": c.specialization}
        for c in result.scalars().all()
    ]
