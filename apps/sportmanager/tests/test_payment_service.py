"""
Tests for payment_service against a real (SQLite) database.
Composite-key upserts, paid_at stamping and the session schedule.
"""
from datetime import date, datetime

import pytest
import pytz
from sqlalchemy import func, select

from sportmanager.database.models import Payment
from sportmanager.services import payment_service, session_service
from sportmanager.utils.datetime_utils import now_local
from sportmanager.utils.errors import NotFoundError


async def _count_payments(db_session) -> int:
    result = await db_session.execute(select(func.count(Payment.id)))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_mark_paid_defaults_to_current_month(db_session, team, team_session, make_coach):
    coach = await make_coach()

    payment = await payment_service.mark_paid(
        db_session, team["id"], team_session["id"], coach["id"], "coach"
    )

    today = now_local()
    assert payment["status"] == "paid"
    assert payment["subject_type"] == "coach"
    assert payment["year"] == today.year
    assert payment["month"] == today.month
    assert payment["amount"] == 0
    assert payment["notes"] == ""
    assert payment["paid_at"] is not None


@pytest.mark.asyncio
async def test_upsert_same_key_keeps_one_record(db_session, team, team_session, make_coach):
    coach = await make_coach()
    args = (db_session, team["id"], team_session["id"], coach["id"], "coach")

    await payment_service.mark_paid(*args, amount=100, year=2025, month=3, notes="first")
    latest = await payment_service.mark_paid(*args, amount=120, year=2025, month=3, notes="second")

    assert await _count_payments(db_session) == 1
    assert latest["amount"] == 120
    assert latest["notes"] == "second"


@pytest.mark.asyncio
async def test_status_transitions_toggle_paid_at(db_session, team, team_session, make_coach):
    coach = await make_coach()
    key = dict(subject_id=coach["id"], subject_type="coach", year=2025, month=4)

    paid = await payment_service.set_payment_status(
        db_session, team["id"], team_session["id"], status="paid", amount=300, **key
    )
    assert paid["paid_at"] is not None

    delayed = await payment_service.set_payment_status(
        db_session, team["id"], team_session["id"], status="delayed", **key
    )
    assert delayed["status"] == "delayed"
    assert delayed["paid_at"] is None
    # amount was not supplied, so the stored one is kept
    assert delayed["amount"] == 300

    unpaid = await payment_service.set_payment_status(
        db_session, team["id"], team_session["id"], status="unpaid", amount=0, **key
    )
    assert unpaid["amount"] == 0
    assert await _count_payments(db_session) == 1


@pytest.mark.asyncio
async def test_set_status_requires_all_fields(db_session, team, team_session):
    with pytest.raises(ValueError, match="required"):
        await payment_service.set_payment_status(
            db_session, team["id"], team_session["id"], 1, "player", 2025, None, "paid"
        )


@pytest.mark.asyncio
async def test_invalid_subject_type_and_status(db_session, team, team_session, make_coach):
    coach = await make_coach()
    with pytest.raises(ValueError):
        await payment_service.mark_paid(db_session, team["id"], team_session["id"], coach["id"], "referee")
    with pytest.raises(ValueError, match="Invalid status"):
        await payment_service.set_payment_status(
            db_session, team["id"], team_session["id"], coach["id"], "coach", 2025, 1, "refunded"
        )


@pytest.mark.asyncio
async def test_missing_session_or_subject_is_not_found(db_session, team, team_session, make_coach):
    coach = await make_coach()
    with pytest.raises(NotFoundError):
        await payment_service.mark_paid(db_session, team["id"], 9999, coach["id"], "coach")
    with pytest.raises(NotFoundError):
        await payment_service.mark_paid(db_session, team["id"], team_session["id"], 9999, "player")


@pytest.mark.asyncio
async def test_list_payments_latest_month_first(db_session, team, team_session, make_coach):
    coach = await make_coach()
    for month in (1, 3, 2):
        await payment_service.mark_paid(
            db_session, team["id"], team_session["id"], coach["id"], "coach", year=2025, month=month
        )

    payments = await payment_service.list_payments(db_session, team["id"], team_session["id"])
    assert [p["month"] for p in payments] == [3, 2, 1]


@pytest.mark.asyncio
async def test_payment_schedule_for_session_roster(db_session, team, make_coach):
    created = await session_service.create_session(
        db_session, team["id"], name="Winter 2025", start_date=date(2025, 1, 1), end_date=date(2025, 3, 31)
    )
    coach = await make_coach(agreed_salary=250.0)
    await session_service.add_coach(db_session, team["id"], created["id"], coach["id"])
    await payment_service.mark_paid(
        db_session, team["id"], created["id"], coach["id"], "coach", amount=200, year=2025, month=1
    )

    result = await payment_service.get_payment_schedule(
        db_session, team["id"], created["id"], "coach", now=pytz.UTC.localize(datetime(2025, 2, 15))
    )

    assert len(result["months"]) == 3
    rows = result["schedule"][0]["rows"]
    assert [r["status"] for r in rows] == ["paid", "pending", "pending"]
    assert [r["amount"] for r in rows] == [200, 250.0, 250.0]
    assert result["schedule"][0]["subject"]["specialization"] == "Goalkeepers"
