"""
Authentication service: password hashing, JWT tokens and email helpers.
"""

import logging
import os
import re
from datetime import timedelta
from typing import Any, Dict, Optional

import bcrypt
from dotenv import load_dotenv
from jose import JWTError, jwt

from sportmanager.utils.constants import EMAIL_PATTERN, JWT_AUDIENCE, JWT_ISSUER
from sportmanager.utils.datetime_utils import utcnow

load_dotenv()

logger = logging.getLogger(__name__)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    JWT_SECRET_KEY = "dev-secret-change-me"
    logger.warning("JWT_SECRET_KEY is not set; using an insecure development secret")

JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRATION_DAYS = int(os.getenv("ACCESS_TOKEN_EXPIRATION_DAYS", "7"))

_EMAIL_RE = re.compile(EMAIL_PATTERN)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a plain password against a bcrypt hash.

    Returns False for empty passwords or malformed hashes.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to include (id, role, team_id, ...)
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRATION_DAYS

    Returns:
        Encoded JWT string
    """
    to_encode = data.copy()
    expire = utcnow() + (expires_delta if expires_delta is not None else timedelta(days=ACCESS_TOKEN_EXPIRATION_DAYS))
    to_encode.update({
        "exp": expire,
        "iat": utcnow(),
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
    })
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT token.

    Returns:
        The payload dict, or None if the token is invalid, expired or was
        issued for another audience.
    """
    try:
        return jwt.decode(
            token,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except JWTError as e:
        logger.debug(f"Token verification failed: {e}")
        return None


def validate_email(email: str) -> bool:
    """Loose shape check: something@something.tld with no whitespace."""
    if not email:
        return False
    return bool(_EMAIL_RE.match(email))


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address; raises ValueError if invalid."""
    normalized = (email or "").strip().lower()
    if not validate_email(normalized):
        raise ValueError("Please provide a valid email")
    return normalized


def full_name_matches(candidate: str, full_name: str) -> bool:
    """Member login check: the password is the member's full name, case-insensitive."""
    if not candidate or not full_name:
        return False
    return candidate.strip().lower() == full_name.strip().lower()


def build_token_for_team(team) -> str:
    return create_access_token({
        "id": team.id,
        "role": "team_admin",
        "team_id": team.id,
        "email": team.email,
        "team_name": team.team_name,
        "discipline": team.discipline.value,
    })


def build_token_for_player(player) -> str:
    return create_access_token({
        "id": player.id,
        "role": "player",
        "team_id": player.team_id,
        "email": player.email,
    })


def build_token_for_coach(coach) -> str:
    return create_access_token({
        "id": coach.id,
        "role": "coach",
        "team_id": coach.team_id,
        "email": coach.email,
    })


def build_token_for_admin(admin) -> str:
    return create_access_token({
        "id": admin.id,
        "role": "admin",
        "team_id": admin.team_id,
        "email": admin.email,
    })
