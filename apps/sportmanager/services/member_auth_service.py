"""
Player and coach sign-in.

Members have no password of their own: they sign in with their email and
their full name, compared case-insensitively.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportmanager.database.models import Coach, Player
from sportmanager.services import auth_service
from sportmanager.utils.datetime_utils import isoformat_or_none
from sportmanager.utils.errors import NotFoundError

logger = logging.getLogger(__name__)


def _team_summary(team) -> Dict:
    return {
        "id": team.id,
        "team_name": team.team_name,
        "logo": team.logo,
        "discipline": team.discipline.value,
    }


def _session_summary(team_session) -> Optional[Dict]:
    if team_session is None:
        return None
    return {
        "id": team_session.id,
        "name": team_session.name,
        "start_date": isoformat_or_none(team_session.start_date),
        "end_date": isoformat_or_none(team_session.end_date),
    }


def player_profile(player: Player) -> Dict:
    return {
        "id": player.id,
        "full_name": player.full_name,
        "email": player.email,
        "group": player.group.value,
        "team": _team_summary(player.team),
        "session": _session_summary(player.session),
        "subgroup": {"id": player.subgroup.id, "name": player.subgroup.name} if player.subgroup else None,
        "role": "player",
    }


def coach_profile(coach: Coach) -> Dict:
    return {
        "id": coach.id,
        "full_name": coach.full_name,
        "email": coach.email,
        "specialization": coach.specialization,
        "team": _team_summary(coach.team),
        "session": _session_summary(coach.session),
        "role": "coach",
    }


_PLAYER_OPTIONS = (selectinload(Player.team), selectinload(Player.session), selectinload(Player.subgroup))
_COACH_OPTIONS = (selectinload(Coach.team), selectinload(Coach.session))


async def login_player(session: AsyncSession, email: str, password: str) -> Optional[Dict]:
    """
    Sign a player in.

    Returns:
        {"token", "user"} or None when no player matches
    """
    result = await session.execute(
        select(Player)
        .where(Player.email == email.strip().lower())
        .options(*_PLAYER_OPTIONS)
        .order_by(Player.id)
    )
    for player in result.scalars().all():
        if auth_service.full_name_matches(password, player.full_name):
            return {"token": auth_service.build_token_for_player(player), "user": player_profile(player)}
    return None


async def login_coach(session: AsyncSession, email: str, password: str) -> Optional[Dict]:
    result = await session.execute(
        select(Coach)
        .where(Coach.email == email.strip().lower())
        .options(*_COACH_OPTIONS)
        .order_by(Coach.id)
    )
    for coach in result.scalars().all():
        if auth_service.full_name_matches(password, coach.full_name):
            return {"token": auth_service.build_token_for_coach(coach), "user": coach_profile(coach)}
    return None


async def get_player_profile(session: AsyncSession, player_id: int) -> Dict:
    result = await session.execute(select(Player).where(Player.id == player_id).options(*_PLAYER_OPTIONS))
    player = result.scalar_one_or_none()
    if player is None:
        raise NotFoundError("Player")
    return player_profile(player)


async def get_coach_profile(session: AsyncSession, coach_id: int) -> Dict:
    result = await session.execute(select(Coach).where(Coach.id == coach_id).options(*_COACH_OPTIONS))
    coach = result.scalar_one_or_none()
    if coach is None:
        raise NotFoundError("Coach")
    return coach_profile(coach)
