"""
Player service: roster CRUD, registration payment side effects and billing.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.database.lookups import get_team_record
from sportmanager.database.models import (
    Payment,
    PaymentStatus,
    Player,
    PlayerGroup,
    Subgroup,
    SubjectType,
    Team,
    session_players,
)
from sportmanager.services import billing_service, payment_service, session_service
from sportmanager.utils.constants import MIN_NAME_LENGTH, REGISTRATION_PAYMENT_NOTE
from sportmanager.utils.datetime_utils import isoformat_or_none, now_local, utcnow
from sportmanager.utils.errors import NotFoundError

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "full_name",
    "date_of_birth",
    "group",
    "subgroup_id",
    "email",
    "phone",
    "contact_number",
    "positions",
    "jersey_number",
    "height_cm",
    "weight_kg",
    "monthly_fee",
    "inscription_fee",
)

NON_NEGATIVE_FIELDS = ("jersey_number", "height_cm", "weight_kg", "monthly_fee", "inscription_fee")


def player_to_dict(player: Player, now=None) -> Dict:
    """Player fields plus the derived billing block."""
    return {
        "id": player.id,
        "full_name": player.full_name,
        "date_of_birth": isoformat_or_none(player.date_of_birth),
        "group": player.group.value,
        "subgroup_id": player.subgroup_id,
        "email": player.email,
        "phone": player.phone,
        "contact_number": player.contact_number,
        "positions": list(player.positions or []),
        "jersey_number": player.jersey_number,
        "height_cm": player.height_cm,
        "weight_kg": player.weight_kg,
        "inscription_fee": player.inscription_fee,
        "inscription_paid_at": isoformat_or_none(player.inscription_paid_at),
        "monthly_fee": player.monthly_fee,
        "last_payment_date": isoformat_or_none(player.last_payment_date),
        "photo": player.photo,
        "team_id": player.team_id,
        "session_id": player.session_id,
        "created_at": isoformat_or_none(player.created_at),
        "updated_at": isoformat_or_none(player.updated_at),
        "billing": billing_service.build_monthly_billing(player, now=now),
    }


def _validate_fields(data: Dict) -> None:
    if "full_name" in data:
        if len((data["full_name"] or "").strip()) < MIN_NAME_LENGTH:
            raise ValueError(f"Full name must be at least {MIN_NAME_LENGTH} characters")
    for field in NON_NEGATIVE_FIELDS:
        value = data.get(field)
        if value is not None and value < 0:
            raise ValueError(f"{field} must not be negative")
    if data.get("group") is not None:
        try:
            PlayerGroup(data["group"])
        except ValueError:
            raise ValueError(f"Invalid group '{data['group']}'")


async def _check_subgroup(session: AsyncSession, team_id: int, subgroup_id: Optional[int]) -> None:
    if subgroup_id is not None:
        await get_team_record(session, Subgroup, team_id, subgroup_id)


async def get_team_player(session: AsyncSession, team_id: int, player_id: int) -> Player:
    return await get_team_record(session, Player, team_id, player_id)


async def list_players(session: AsyncSession, team_id: int) -> List[Dict]:
    """All players of a team, newest first, each with billing."""
    result = await session.execute(
        select(Player).where(Player.team_id == team_id).order_by(Player.created_at.desc(), Player.id.desc())
    )
    now = now_local()
    return [player_to_dict(p, now=now) for p in result.scalars().all()]


async def get_player(session: AsyncSession, team_id: int, player_id: int) -> Dict:
    return player_to_dict(await get_team_player(session, team_id, player_id))


async def _record_registration_payment(
    session: AsyncSession, player: Player, session_id: Optional[int]
) -> Optional[Payment]:
    """
    Attach a new player to a session and mark the current month paid.

    Uses the requested session, else the team's session running today.
    Returns the payment, or None when no session applies.
    """
    if session_id is not None:
        try:
            team_session = await session_service.get_team_session(session, player.team_id, session_id)
        except NotFoundError:
            logger.warning(f"Session {session_id} not found for team {player.team_id}; skipping registration payment")
            return None
    else:
        team_session = await session_service.find_active_session(session, player.team_id)
    if team_session is None:
        return None

    await session.execute(insert(session_players).values(session_id=team_session.id, player_id=player.id))
    player.session_id = team_session.id

    now = utcnow()
    local_now = now_local()
    inscription_amount = float(player.inscription_fee or 0)
    payment = await payment_service.upsert_payment(
        session,
        team_id=team_session.team_id,
        session_id=team_session.id,
        subject_type=SubjectType.PLAYER,
        subject_id=player.id,
        year=local_now.year,
        month=local_now.month,
        values={
            "amount": float(player.monthly_fee or 0),
            "inscription_included": inscription_amount > 0,
            "inscription_amount": inscription_amount if inscription_amount > 0 else 0,
            "status": PaymentStatus.PAID,
            "paid_at": now,
            "notes": REGISTRATION_PAYMENT_NOTE,
        },
    )
    player.last_payment_date = now
    player.inscription_paid_at = now if inscription_amount > 0 else None
    await session.commit()
    return payment


async def create_player(
    session: AsyncSession, team_id: int, data: Dict, session_id: Optional[int] = None
) -> Dict:
    """
    Create a player and run the registration payment step.

    The payment step is best effort: its failures are logged and the player
    is still returned.

    Raises:
        ValueError: If fields are invalid
        NotFoundError: If the team or the given subgroup does not exist
    """
    if await session.get(Team, team_id) is None:
        raise NotFoundError("Team")
    if not data.get("full_name") or not data.get("date_of_birth"):
        raise ValueError("full_name and date_of_birth are required")
    _validate_fields(data)
    await _check_subgroup(session, team_id, data.get("subgroup_id"))

    player = Player(
        team_id=team_id,
        full_name=data["full_name"].strip(),
        date_of_birth=data["date_of_birth"],
        group=PlayerGroup(data.get("group") or PlayerGroup.MINIMUM.value),
        subgroup_id=data.get("subgroup_id"),
        email=(data.get("email") or "").strip().lower(),
        phone=data.get("phone") or "",
        contact_number=data.get("contact_number") or "",
        positions=list(data.get("positions") or []),
        jersey_number=data.get("jersey_number") or 0,
        height_cm=data.get("height_cm") or 0,
        weight_kg=data.get("weight_kg") or 0,
        monthly_fee=float(data.get("monthly_fee") or 0),
        inscription_fee=float(data.get("inscription_fee") or 0),
        photo=data.get("photo") or "",
    )
    session.add(player)
    await session.commit()
    player_id = player.id
    logger.info(f"Created player {player_id} for team {team_id}")

    initial_payment = None
    try:
        payment = await _record_registration_payment(session, player, session_id)
        if payment is not None:
            initial_payment = payment_service.payment_to_dict(payment)
    except Exception as e:
        await session.rollback()
        logger.error(f"Error creating initial payment for player {player_id}: {e}")

    data = player_to_dict(await get_team_player(session, team_id, player_id))
    if initial_payment is not None:
        data["initial_payment"] = initial_payment
    return data


async def update_player(session: AsyncSession, team_id: int, player_id: int, updates: Dict) -> Dict:
    """Apply a partial update; keys absent from updates are left alone."""
    player = await get_team_player(session, team_id, player_id)
    _validate_fields(updates)
    if "subgroup_id" in updates:
        await _check_subgroup(session, team_id, updates["subgroup_id"])

    for field in UPDATABLE_FIELDS:
        if field not in updates:
            continue
        value = updates[field]
        if value is None and field != "subgroup_id":
            continue
        if field == "group":
            value = PlayerGroup(value)
        elif field == "full_name":
            value = value.strip()
        elif field == "email":
            value = value.strip().lower()
        elif field == "positions":
            value = list(value)
        setattr(player, field, value)

    await session.commit()
    return await get_player(session, team_id, player_id)


async def delete_player(session: AsyncSession, team_id: int, player_id: int) -> None:
    """Delete a player and their payment records."""
    await get_team_player(session, team_id, player_id)
    await session.execute(
        delete(Payment).where(Payment.subject_type == SubjectType.PLAYER, Payment.subject_id == player_id)
    )
    await session.execute(delete(Player).where(Player.id == player_id))
    await session.commit()
    logger.info(f"Deleted player {player_id} of team {team_id}")


async def mark_player_month_paid(session: AsyncSession, team_id: int, player_id: int) -> Dict:
    """Stamp last_payment_date with now; billing then reads paid for this month."""
    player = await get_team_player(session, team_id, player_id)
    player.last_payment_date = utcnow()
    await session.commit()
    return await get_player(session, team_id, player_id)


async def set_player_photo(session: AsyncSession, team_id: int, player_id: int, photo_path: str) -> Dict:
    player = await get_team_player(session, team_id, player_id)
    player.photo = photo_path
    await session.commit()
    return await get_player(session, team_id, player_id)
