"""
Authentication dependencies for FastAPI routes.

Tokens carry a role; each role has its own loader that resolves the principal
and the team it acts for.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.database.db import get_db_session
from sportmanager.database.models import Admin, Coach, Player, Team, UserRole
from sportmanager.services import auth_service

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _load_team_admin(session: AsyncSession, principal_id: int) -> Optional[Dict]:
    team = await session.get(Team, principal_id)
    if team is None:
        return None
    return {"id": team.id, "role": UserRole.TEAM_ADMIN.value, "team_id": team.id, "email": team.email, "name": team.team_name}


async def _load_coach(session: AsyncSession, principal_id: int) -> Optional[Dict]:
    coach = await session.get(Coach, principal_id)
    if coach is None:
        return None
    return {"id": coach.id, "role": UserRole.COACH.value, "team_id": coach.team_id, "email": coach.email, "name": coach.full_name}


async def _load_player(session: AsyncSession, principal_id: int) -> Optional[Dict]:
    player = await session.get(Player, principal_id)
    if player is None:
        return None
    return {"id": player.id, "role": UserRole.PLAYER.value, "team_id": player.team_id, "email": player.email, "name": player.full_name}


async def _load_admin(session: AsyncSession, principal_id: int) -> Optional[Dict]:
    admin = await session.get(Admin, principal_id)
    if admin is None:
        return None
    return {"id": admin.id, "role": UserRole.ADMIN.value, "team_id": admin.team_id, "email": admin.email, "name": admin.admin_name}


PRINCIPAL_LOADERS: Dict[str, Callable[[AsyncSession, int], Awaitable[Optional[Dict]]]] = {
    UserRole.TEAM_ADMIN.value: _load_team_admin,
    UserRole.COACH.value: _load_coach,
    UserRole.PLAYER.value: _load_player,
    UserRole.ADMIN.value: _load_admin,
}


async def get_current_principal(
    session: AsyncSession = Depends(get_db_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict:
    """
    Dependency resolving the authenticated principal from the bearer token.

    Returns:
        Dict with id, role, team_id, email and name

    Raises:
        HTTPException: 401 if the token is missing, invalid, has an unknown
            role, or its subject no longer exists
    """
    if credentials is None:
        raise _unauthorized("Access token required")

    payload = auth_service.verify_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid authentication token")

    loader = PRINCIPAL_LOADERS.get(payload.get("role"))
    principal_id = payload.get("id")
    if loader is None or principal_id is None:
        raise _unauthorized("Invalid token payload")

    principal = await loader(session, principal_id)
    if principal is None:
        raise _unauthorized("User not found")
    return principal


def make_require_roles(*roles: str):
    """
    Build a dependency that only lets the given roles through.

    Usage:
        principal: dict = Depends(make_require_roles("team_admin", "coach"))
    """
    allowed = set(roles)

    async def _require(principal: dict = Depends(get_current_principal)) -> dict:
        if principal["role"] not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied for this role",
            )
        return principal

    return _require


require_team_staff = make_require_roles(UserRole.TEAM_ADMIN.value, UserRole.ADMIN.value)
require_team_admin = make_require_roles(UserRole.TEAM_ADMIN.value)
require_platform_admin = make_require_roles(UserRole.ADMIN.value)
require_attendance_taker = make_require_roles(
    UserRole.TEAM_ADMIN.value, UserRole.ADMIN.value, UserRole.COACH.value
)
require_player = make_require_roles(UserRole.PLAYER.value)
require_coach = make_require_roles(UserRole.COACH.value)


async def require_member(principal: dict = Depends(get_current_principal)) -> dict:
    """Any authenticated principal of any role."""
    return principal
