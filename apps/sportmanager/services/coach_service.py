"""
Coach service: CRUD for a team's coaches.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.database.lookups import get_team_record
from sportmanager.database.models import Coach, Payment, SubjectType
from sportmanager.utils.constants import MIN_NAME_LENGTH
from sportmanager.utils.datetime_utils import isoformat_or_none
from sportmanager.utils.errors import DuplicateError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("full_name", "email", "date_of_birth", "specialization")
UPDATABLE_FIELDS = (
    "full_name",
    "email",
    "date_of_birth",
    "specialization",
    "years_of_experience",
    "agreed_salary",
    "contact_number",
)


def coach_to_dict(coach: Coach) -> Dict:
    return {
        "id": coach.id,
        "full_name": coach.full_name,
        "email": coach.email,
        "date_of_birth": isoformat_or_none(coach.date_of_birth),
        "specialization": coach.specialization,
        "years_of_experience": coach.years_of_experience,
        "agreed_salary": coach.agreed_salary,
        "contact_number": coach.contact_number,
        "photo": coach.photo,
        "team_id": coach.team_id,
        "session_id": coach.session_id,
        "created_at": isoformat_or_none(coach.created_at),
        "updated_at": isoformat_or_none(coach.updated_at),
    }


def _validate_fields(data: Dict) -> None:
    if "full_name" in data and data["full_name"] is not None:
        if len(data["full_name"].strip()) < MIN_NAME_LENGTH:
            raise ValueError(f"Full name must be at least {MIN_NAME_LENGTH} characters")
    for field in ("years_of_experience", "agreed_salary"):
        value = data.get(field)
        if value is not None and value < 0:
            raise ValueError(f"{field} must not be negative")


async def _email_taken(
    session: AsyncSession, team_id: int, email: str, exclude_id: Optional[int] = None
) -> bool:
    stmt = select(Coach.id).where(Coach.team_id == team_id, Coach.email == email)
    if exclude_id is not None:
        stmt = stmt.where(Coach.id != exclude_id)
    result = await session.execute(stmt)
    return result.first() is not None


async def get_team_coach(session: AsyncSession, team_id: int, coach_id: int) -> Coach:
    return await get_team_record(session, Coach, team_id, coach_id)


async def list_coaches(session: AsyncSession, team_id: int) -> List[Dict]:
    """All coaches of a team, newest first."""
    result = await session.execute(
        select(Coach).where(Coach.team_id == team_id).order_by(Coach.created_at.desc(), Coach.id.desc())
    )
    return [coach_to_dict(c) for c in result.scalars().all()]


async def get_coach(session: AsyncSession, team_id: int, coach_id: int) -> Dict:
    return coach_to_dict(await get_team_coach(session, team_id, coach_id))


async def create_coach(session: AsyncSession, team_id: int, data: Dict) -> Dict:
    """
    Create a coach.

    Raises:
        ValueError: If a required field is missing or a number is negative
        DuplicateError: If the team already has a coach with this email
    """
    missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
    if missing:
        raise ValueError("Missing required fields: full_name, email, date_of_birth, specialization")
    _validate_fields(data)

    email = data["email"].strip().lower()
    if await _email_taken(session, team_id, email):
        raise DuplicateError("Coach with this email already exists")

    coach = Coach(
        team_id=team_id,
        full_name=data["full_name"].strip(),
        email=email,
        date_of_birth=data["date_of_birth"],
        specialization=data["specialization"].strip(),
        years_of_experience=data.get("years_of_experience") or 0,
        agreed_salary=float(data.get("agreed_salary") or 0),
        contact_number=data.get("contact_number") or "",
        photo=data.get("photo") or "",
    )
    session.add(coach)
    await session.commit()
    logger.info(f"Created coach {coach.id} for team {team_id}")
    return await get_coach(session, team_id, coach.id)


async def update_coach(session: AsyncSession, team_id: int, coach_id: int, updates: Dict) -> Dict:
    coach = await get_team_coach(session, team_id, coach_id)
    _validate_fields(updates)

    if updates.get("email"):
        email = updates["email"].strip().lower()
        if await _email_taken(session, team_id, email, exclude_id=coach_id):
            raise DuplicateError("Another coach with this email already exists")
        updates = {**updates, "email": email}

    for field in UPDATABLE_FIELDS:
        if updates.get(field) is not None:
            value = updates[field]
            setattr(coach, field, value.strip() if isinstance(value, str) else value)

    await session.commit()
    return await get_coach(session, team_id, coach_id)


async def delete_coach(session: AsyncSession, team_id: int, coach_id: int) -> None:
    """Delete a coach and their salary records."""
    await get_team_coach(session, team_id, coach_id)
    await session.execute(
        delete(Payment).where(Payment.subject_type == SubjectType.COACH, Payment.subject_id == coach_id)
    )
    await session.execute(delete(Coach).where(Coach.id == coach_id))
    await session.commit()
    logger.info(f"Deleted coach {coach_id} of team {team_id}")


async def set_coach_photo(session: AsyncSession, team_id: int, coach_id: int, photo_path: str) -> Dict:
    coach = await get_team_coach(session, team_id, coach_id)
    coach.photo = photo_path
    await session.commit()
    return await get_coach(session, team_id, coach_id)
