"""
Attendance service: roster resolution, marking and statistics.

The roster of a training session comes from the subgroups of its category in
the parent session, narrowed to the training session's own subgroup when it
has one and to the coach's subgroups when a coach is asking. Sessions with no
subgroup players fall back to the players assigned directly.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportmanager.database.lookups import dialect_insert
from sportmanager.database.models import Attendance, AttendanceStatus, PlayerGroup, Subgroup, TrainingSession
from sportmanager.services import training_service
from sportmanager.utils.datetime_utils import isoformat_or_none, utcnow

logger = logging.getLogger(__name__)

NOT_MARKED = "not_marked"


def attendance_to_dict(record: Attendance) -> Dict:
    return {
        "id": record.id,
        "training_session_id": record.training_session_id,
        "player_id": record.player_id,
        "status": record.status.value,
        "notes": record.notes,
        "marked_by": record.marked_by,
        "marked_at": isoformat_or_none(record.marked_at),
    }


def parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise ValueError("Invalid attendance status")


async def _category_subgroups(
    session: AsyncSession, training: TrainingSession, restrict_to_own: bool = True
) -> List[Subgroup]:
    """Subgroups of the training session's category in its session, members loaded."""
    stmt = (
        select(Subgroup)
        .where(
            Subgroup.session_id == training.session_id,
            Subgroup.team_id == training.team_id,
            Subgroup.category == PlayerGroup(training.group.value),
        )
        .options(selectinload(Subgroup.players), selectinload(Subgroup.coaches))
        .order_by(Subgroup.name)
        .execution_options(populate_existing=True)
    )
    if restrict_to_own and training.subgroup_id is not None:
        stmt = stmt.where(Subgroup.id == training.subgroup_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


def _coach_subgroups(subgroups: List[Subgroup], coach_id: Optional[int]) -> List[Subgroup]:
    if coach_id is None:
        return subgroups
    return [s for s in subgroups if any(c.id == coach_id for c in s.coaches)]


async def _is_authorized(
    session: AsyncSession, training: TrainingSession, player_id: int, coach_id: Optional[int]
) -> bool:
    """A coach may mark players of their subgroups; otherwise the player must be assigned directly."""
    if coach_id is not None:
        subgroups = _coach_subgroups(await _category_subgroups(session, training, restrict_to_own=False), coach_id)
        return any(p.id == player_id for s in subgroups for p in s.players)
    return any(p.id == player_id for p in training.players)


async def _upsert_attendance(
    session: AsyncSession,
    training_id: int,
    player_id: int,
    status: AttendanceStatus,
    notes: str,
    coach_id: Optional[int],
) -> Attendance:
    insert = dialect_insert(session)
    values = dict(status=status, notes=notes or "", marked_at=utcnow(), marked_by=coach_id)
    stmt = insert(Attendance).values(training_session_id=training_id, player_id=player_id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["training_session_id", "player_id"],
        set_=dict(updated_at=func.now(), **values),
    )
    await session.execute(stmt)
    result = await session.execute(
        select(Attendance)
        .where(Attendance.training_session_id == training_id, Attendance.player_id == player_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_attendance(
    session: AsyncSession, team_id: int, training_id: int, coach_id: Optional[int] = None
) -> Dict:
    """
    Attendance sheet of a training session.

    Returns:
        Dict with training_session summary, attendance rows (one per roster
        player, status not_marked when unmarked) and the subgroups used.
    """
    training = await training_service.get_team_training_session(session, team_id, training_id, with_players=True)
    subgroups = _coach_subgroups(await _category_subgroups(session, training), coach_id)

    roster = {}
    for subgroup in subgroups:
        for player in subgroup.players:
            roster.setdefault(player.id, player)
    if not roster:
        roster = {p.id: p for p in training.players}

    result = await session.execute(
        select(Attendance)
        .where(Attendance.training_session_id == training_id)
        .execution_options(populate_existing=True)
    )
    records = {r.player_id: r for r in result.scalars().all()}

    rows = []
    for player in roster.values():
        record = records.get(player.id)
        rows.append({
            "player": {
                "id": player.id,
                "full_name": player.full_name,
                "group": player.group.value,
                "photo": player.photo,
            },
            "status": record.status.value if record else NOT_MARKED,
            "notes": record.notes if record else "",
            "marked_by": record.marked_by if record else None,
            "marked_at": isoformat_or_none(record.marked_at) if record else None,
        })

    return {
        "training_session": {
            "id": training.id,
            "title": training.title,
            "group": training.group.value,
            "day_of_week": training.day_of_week.value,
            "start_time": training.start_time,
            "end_time": training.end_time,
        },
        "attendance": rows,
        "subgroups": [
            {"id": s.id, "name": s.name, "category": s.category.value, "player_count": len(s.players)}
            for s in subgroups
        ],
    }


async def mark_attendance(
    session: AsyncSession,
    team_id: int,
    training_id: int,
    player_id: int,
    status: str,
    notes: Optional[str] = None,
    coach_id: Optional[int] = None,
) -> Dict:
    """
    Mark one player.

    Raises:
        ValueError: If status is not present/absent/late
        NotFoundError: If the training session is not the team's
        PermissionError: If the player is outside the coach's subgroups, or
            not assigned to the training session when no coach is given
    """
    parsed_status = parse_status(status)
    training = await training_service.get_team_training_session(session, team_id, training_id, with_players=True)

    if not await _is_authorized(session, training, player_id, coach_id):
        if coach_id is not None:
            raise PermissionError("Player is not in a subgroup you are responsible for")
        raise PermissionError("Player is not assigned to this training session")

    record = await _upsert_attendance(session, training_id, player_id, parsed_status, notes, coach_id)
    await session.commit()
    return attendance_to_dict(record)


async def mark_bulk_attendance(
    session: AsyncSession,
    team_id: int,
    training_id: int,
    items: List[Dict],
    coach_id: Optional[int] = None,
) -> Dict:
    """
    Mark several players; problems with one item are collected, not raised.

    Returns:
        {"results": [...], "errors": [...] or None}
    """
    training = await training_service.get_team_training_session(session, team_id, training_id, with_players=True)

    results = []
    errors = []
    for item in items:
        player_id = item.get("player_id")
        try:
            parsed_status = parse_status(item.get("status"))
        except ValueError:
            errors.append(f"Invalid status for player {player_id}")
            continue
        if not await _is_authorized(session, training, player_id, coach_id):
            errors.append(f"Player {player_id} is not authorized for this coach")
            continue
        record = await _upsert_attendance(session, training_id, player_id, parsed_status, item.get("notes"), coach_id)
        results.append(attendance_to_dict(record))

    await session.commit()
    return {"results": results, "errors": errors or None}


async def get_attendance_stats(session: AsyncSession, team_id: int, training_id: int) -> Dict:
    """Counts per status over the directly assigned players, with the present+late rate."""
    training = await training_service.get_team_training_session(session, team_id, training_id, with_players=True)
    result = await session.execute(
        select(Attendance.status, func.count())
        .where(Attendance.training_session_id == training_id)
        .group_by(Attendance.status)
    )
    counts = {status: count for status, count in result.all()}

    total = len(training.players)
    present = counts.get(AttendanceStatus.PRESENT, 0)
    absent = counts.get(AttendanceStatus.ABSENT, 0)
    late = counts.get(AttendanceStatus.LATE, 0)
    rate = round((present + late) / total * 100, 1) if total > 0 else 0.0

    return {
        "training_session": {"id": training.id, "title": training.title},
        "stats": {
            "total": total,
            "present": present,
            "absent": absent,
            "late": late,
            "not_marked": max(0, total - (present + absent + late)),
            "attendance_rate": rate,
        },
    }


# ============================================================================
# Per-training-session attendance (registered players only)
# ============================================================================

async def record_registered_attendance(
    session: AsyncSession, team_id: int, training_id: int, player_id: int, status: str
) -> Dict:
    """
    Record attendance for a player registered on the training session.

    Raises:
        ValueError: If the status is invalid or the player is not registered
    """
    parsed_status = parse_status(status)
    training = await training_service.get_team_training_session(session, team_id, training_id, with_players=True)
    if not any(p.id == player_id for p in training.players):
        raise ValueError("Player is not registered for this training session")

    record = await _upsert_attendance(session, training_id, player_id, parsed_status, "", None)
    await session.commit()
    return attendance_to_dict(record)


async def list_training_attendance(session: AsyncSession, team_id: int, training_id: int) -> List[Dict]:
    """Every attendance mark of a training session with player names."""
    await training_service.get_team_training_session(session, team_id, training_id)
    result = await session.execute(
        select(Attendance)
        .where(Attendance.training_session_id == training_id)
        .options(selectinload(Attendance.player))
        .order_by(Attendance.id)
    )
    rows = []
    for record in result.scalars().all():
        row = attendance_to_dict(record)
        row["player"] = {"id": record.player.id, "full_name": record.player.full_name}
        rows.append(row)
    return rows
