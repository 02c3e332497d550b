"""
Team service: registration, login, profile and the platform admin account.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.database.models import Admin, Discipline, Team
from sportmanager.services import auth_service
from sportmanager.utils.constants import MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH
from sportmanager.utils.datetime_utils import isoformat_or_none
from sportmanager.utils.errors import DuplicateError, NotFoundError, ValidationErrors

logger = logging.getLogger(__name__)

DISCIPLINES = [d.value for d in Discipline]


def team_to_dict(team: Team) -> Dict:
    """Public view of a team (no password hash)."""
    return {
        "id": team.id,
        "team_name": team.team_name,
        "discipline": team.discipline.value,
        "email": team.email,
        "phone": team.phone,
        "logo": team.logo,
        "created_at": isoformat_or_none(team.created_at),
        "updated_at": isoformat_or_none(team.updated_at),
    }


def admin_to_dict(admin: Admin) -> Dict:
    return {
        "id": admin.id,
        "admin_name": admin.admin_name,
        "email": admin.email,
        "team_id": admin.team_id,
        "created_at": isoformat_or_none(admin.created_at),
    }


def validate_registration(data: Dict) -> List[str]:
    """
    Collect every problem with a registration payload.

    Returns:
        List of human-readable messages; empty when the payload is valid.
    """
    errors = []
    team_name = (data.get("team_name") or "").strip()
    discipline = (data.get("discipline") or "").strip()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    phone = (data.get("phone") or "").strip()

    if not team_name:
        errors.append("Team name is required")
    elif len(team_name) < MIN_NAME_LENGTH:
        errors.append(f"Team name must be at least {MIN_NAME_LENGTH} characters")
    if not discipline:
        errors.append("Discipline is required")
    elif discipline not in DISCIPLINES:
        errors.append(f"Discipline must be one of: {', '.join(DISCIPLINES)}")
    if not email:
        errors.append("Email is required")
    elif not auth_service.validate_email(email):
        errors.append("Invalid email format")
    if not password.strip():
        errors.append("Password is required")
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not phone:
        errors.append("Phone number is required")
    return errors


async def get_team_by_email(session: AsyncSession, email: str) -> Optional[Team]:
    result = await session.execute(select(Team).where(Team.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def register_team(session: AsyncSession, data: Dict) -> Dict:
    """
    Create a team account.

    Raises:
        ValidationErrors: If the payload has missing or malformed fields
        DuplicateError: If the email is already registered
    """
    errors = validate_registration(data)
    if errors:
        raise ValidationErrors(errors)

    email = data["email"].strip().lower()
    if await get_team_by_email(session, email) is not None:
        raise DuplicateError("Email already registered. Please use a different email or try logging in.")

    team = Team(
        team_name=data["team_name"].strip(),
        discipline=Discipline(data["discipline"].strip()),
        email=email,
        password_hash=auth_service.hash_password(data["password"]),
        phone=data["phone"].strip(),
        logo=data.get("logo"),
    )
    session.add(team)
    await session.commit()
    await session.refresh(team)
    logger.info(f"Registered team {team.id} ({team.team_name})")
    return {**team_to_dict(team), "token": auth_service.build_token_for_team(team)}


async def login_team(session: AsyncSession, email: str, password: str) -> Optional[Dict]:
    """
    Check team credentials.

    Returns:
        Team dict with a fresh token, or None if the credentials are wrong
    """
    team = await get_team_by_email(session, email)
    if team is None or not auth_service.verify_password(password, team.password_hash):
        return None
    return {**team_to_dict(team), "token": auth_service.build_token_for_team(team)}


async def get_team(session: AsyncSession, team_id: int) -> Dict:
    team = await session.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team")
    return team_to_dict(team)


async def list_teams(session: AsyncSession) -> List[Dict]:
    """All teams, newest first."""
    result = await session.execute(select(Team).order_by(Team.created_at.desc(), Team.id.desc()))
    return [team_to_dict(t) for t in result.scalars().all()]


async def update_team_profile(
    session: AsyncSession,
    team_id: int,
    team_name: Optional[str] = None,
    logo: Optional[str] = None,
) -> Dict:
    """
    Update the team name and/or logo path.

    Raises:
        ValueError: If nothing to update
        NotFoundError: If the team does not exist
    """
    team = await session.get(Team, team_id)
    if team is None:
        raise NotFoundError("Team")

    updated = False
    if team_name is not None and team_name.strip():
        if len(team_name.strip()) < MIN_NAME_LENGTH:
            raise ValueError(f"Team name must be at least {MIN_NAME_LENGTH} characters")
        team.team_name = team_name.strip()
        updated = True
    if logo is not None:
        team.logo = logo
        updated = True
    if not updated:
        raise ValueError("No updates provided")

    await session.commit()
    await session.refresh(team)
    return team_to_dict(team)


# ============================================================================
# Platform admin
# ============================================================================

async def create_admin(
    session: AsyncSession, team_id: int, admin_name: str, email: str, password: str
) -> Dict:
    """Create a platform admin account attached to a team."""
    if len((admin_name or "").strip()) < MIN_NAME_LENGTH:
        raise ValueError(f"Admin name must be at least {MIN_NAME_LENGTH} characters")
    email = auth_service.normalize_email(email)
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    existing = await session.execute(select(Admin.id).where(Admin.email == email))
    if existing.scalar_one_or_none() is not None:
        raise DuplicateError("Admin email already registered")

    admin = Admin(
        admin_name=admin_name.strip(),
        email=email,
        password_hash=auth_service.hash_password(password),
        team_id=team_id,
    )
    session.add(admin)
    await session.commit()
    await session.refresh(admin)
    return admin_to_dict(admin)


async def login_admin(session: AsyncSession, email: str, password: str) -> Optional[Dict]:
    result = await session.execute(select(Admin).where(Admin.email == email.strip().lower()))
    admin = result.scalar_one_or_none()
    if admin is None or not auth_service.verify_password(password, admin.password_hash):
        return None
    return {**admin_to_dict(admin), "token": auth_service.build_token_for_admin(admin)}
