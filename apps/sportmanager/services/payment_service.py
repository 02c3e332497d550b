"""
Payment service: composite-key upserts, listing and the session schedule.

A payment is identified by (session, subject_type, subject, year, month);
writes use INSERT ... ON CONFLICT DO UPDATE so repeating a write updates the
same row instead of adding another.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.database.lookups import dialect_insert, get_team_record
from sportmanager.database.models import Coach, Payment, PaymentStatus, Player, SubjectType
from sportmanager.services import billing_service, session_service
from sportmanager.utils.datetime_utils import current_year_month, isoformat_or_none, utcnow

logger = logging.getLogger(__name__)

PAYMENT_KEY_COLUMNS = ["session_id", "subject_type", "subject_id", "year", "month"]

_SUBJECT_MODELS = {
    SubjectType.PLAYER: Player,
    SubjectType.COACH: Coach,
}


def payment_to_dict(payment: Payment) -> Dict:
    return {
        "id": payment.id,
        "team_id": payment.team_id,
        "session_id": payment.session_id,
        "subject_type": payment.subject_type.value,
        "subject_id": payment.subject_id,
        "year": payment.year,
        "month": payment.month,
        "amount": payment.amount,
        "inscription_included": payment.inscription_included,
        "inscription_amount": payment.inscription_amount,
        "status": payment.status.value,
        "paid_at": isoformat_or_none(payment.paid_at),
        "notes": payment.notes,
        "created_at": isoformat_or_none(payment.created_at),
        "updated_at": isoformat_or_none(payment.updated_at),
    }


def parse_subject_type(value) -> SubjectType:
    try:
        return SubjectType(value)
    except ValueError:
        raise ValueError("Invalid subject_type")


def parse_status(value) -> PaymentStatus:
    try:
        return PaymentStatus(value)
    except ValueError:
        raise ValueError("Invalid status")


async def upsert_payment(
    session: AsyncSession,
    team_id: int,
    session_id: int,
    subject_type: SubjectType,
    subject_id: int,
    year: int,
    month: int,
    values: Dict,
) -> Payment:
    """
    Insert or update the payment for one composite key.

    Only the columns in values are written on conflict, so omitted fields keep
    their stored value. Does not commit.

    Returns:
        The stored Payment row
    """
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")

    insert = dialect_insert(session)
    row = dict(
        team_id=team_id,
        session_id=session_id,
        subject_type=subject_type,
        subject_id=subject_id,
        year=year,
        month=month,
        **values,
    )
    stmt = insert(Payment).values(**row)
    stmt = stmt.on_conflict_do_update(
        index_elements=PAYMENT_KEY_COLUMNS,
        set_=dict(team_id=team_id, updated_at=func.now(), **values),
    )
    await session.execute(stmt)

    result = await session.execute(
        select(Payment)
        .where(
            Payment.session_id == session_id,
            Payment.subject_type == subject_type,
            Payment.subject_id == subject_id,
            Payment.year == year,
            Payment.month == month,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _check_subject(session: AsyncSession, team_id: int, subject_type: SubjectType, subject_id: int) -> None:
    await get_team_record(session, _SUBJECT_MODELS[subject_type], team_id, subject_id)


async def mark_paid(
    session: AsyncSession,
    team_id: int,
    session_id: int,
    subject_id: Optional[int],
    subject_type: Optional[str],
    amount: Optional[float] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
    notes: Optional[str] = None,
) -> Dict:
    """
    Record a month as paid (defaults to the current month).

    Raises:
        ValueError: If subject id/type are missing or invalid
        NotFoundError: If the session or subject is not the team's
    """
    if not subject_id or not subject_type:
        raise ValueError("subject_id and subject_type are required")
    parsed_type = parse_subject_type(subject_type)

    team_session = await session_service.get_team_session(session, team_id, session_id)
    await _check_subject(session, team_id, parsed_type, subject_id)

    current_year, current_month = current_year_month()
    payment = await upsert_payment(
        session,
        team_id=team_session.team_id,
        session_id=team_session.id,
        subject_type=parsed_type,
        subject_id=subject_id,
        year=year or current_year,
        month=month or current_month,
        values={
            "amount": float(amount or 0),
            "status": PaymentStatus.PAID,
            "paid_at": utcnow(),
            "notes": notes or "",
        },
    )
    await session.commit()
    logger.info(
        f"Marked {parsed_type.value} {subject_id} paid for {payment.year}-{payment.month:02d} "
        f"in session {session_id}"
    )
    return payment_to_dict(payment)


async def set_payment_status(
    session: AsyncSession,
    team_id: int,
    session_id: int,
    subject_id: Optional[int],
    subject_type: Optional[str],
    year: Optional[int],
    month: Optional[int],
    status: Optional[str],
    amount: Optional[float] = None,
    notes: Optional[str] = None,
) -> Dict:
    """
    Set a month's status explicitly. Any status may follow any other.

    paid stamps paid_at with the current time; every other status clears it.
    amount is only written when given.
    """
    if not subject_id or not subject_type or not year or not month or not status:
        raise ValueError("subject_id, subject_type, year, month, status are required")
    parsed_type = parse_subject_type(subject_type)
    parsed_status = parse_status(status)

    team_session = await session_service.get_team_session(session, team_id, session_id)
    await _check_subject(session, team_id, parsed_type, subject_id)

    values = {
        "status": parsed_status,
        "notes": notes or "",
        "paid_at": utcnow() if parsed_status == PaymentStatus.PAID else None,
    }
    if amount is not None:
        values["amount"] = float(amount)

    payment = await upsert_payment(
        session,
        team_id=team_session.team_id,
        session_id=team_session.id,
        subject_type=parsed_type,
        subject_id=subject_id,
        year=year,
        month=month,
        values=values,
    )
    await session.commit()
    return payment_to_dict(payment)


async def list_payments(session: AsyncSession, team_id: int, session_id: int) -> List[Dict]:
    """All payments of a session, latest month first."""
    await session_service.get_team_session(session, team_id, session_id)
    result = await session.execute(
        select(Payment)
        .where(Payment.session_id == session_id, Payment.team_id == team_id)
        .order_by(Payment.year.desc(), Payment.month.desc(), Payment.id)
    )
    return [payment_to_dict(p) for p in result.scalars().all()]


async def get_payment_schedule(
    session: AsyncSession, team_id: int, session_id: int, subject_type: Optional[str], now=None
) -> Dict:
    """
    Build the month-by-month schedule of a session roster.

    Args:
        subject_type: "player" (monthly fees) or "coach" (salaries)
        now: Evaluation time, for tests
    """
    parsed_type = parse_subject_type(subject_type)
    team_session = await session_service.get_team_session(session, team_id, session_id, with_roster=True)
    subjects = team_session.players if parsed_type == SubjectType.PLAYER else team_session.coaches

    result = await session.execute(
        select(Payment).where(Payment.session_id == session_id, Payment.subject_type == parsed_type)
    )
    payments = {(p.subject_id, p.year, p.month): p for p in result.scalars().all()}

    return billing_service.build_payment_schedule(
        team_session.start_date,
        team_session.end_date,
        subjects,
        parsed_type.value,
        payments,
        now=now,
    )
