"""
Tests for player_service.
Player CRUD and the registration payment that runs when a player is created.
"""
from datetime import date

import pytest
from sqlalchemy import select

from sportmanager.database.models import Payment, PaymentStatus, SubjectType
from sportmanager.services import player_service, session_service
from sportmanager.utils.constants import REGISTRATION_PAYMENT_NOTE
from sportmanager.utils.datetime_utils import now_local
from sportmanager.utils.errors import NotFoundError


@pytest.mark.asyncio
async def test_create_player_without_session_skips_payment(db_session, make_player):
    player = await make_player()

    assert player["full_name"] == "Yassine Amrani"
    assert player["group"] == "Cadet"
    assert player["session_id"] is None
    assert "initial_payment" not in player
    assert player["billing"]["status"] == "not_due"


@pytest.mark.asyncio
async def test_create_player_in_active_session_records_registration_payment(
    db_session, team_session, make_player
):
    player = await make_player(monthly_fee=40.0, inscription_fee=100.0)

    assert player["session_id"] == team_session["id"]
    assert player["last_payment_date"] is not None
    assert player["inscription_paid_at"] is not None

    payment = player["initial_payment"]
    today = now_local()
    assert payment["status"] == "paid"
    assert payment["amount"] == 40.0
    assert payment["inscription_included"] is True
    assert payment["inscription_amount"] == 100.0
    assert payment["notes"] == REGISTRATION_PAYMENT_NOTE
    assert (payment["year"], payment["month"]) == (today.year, today.month)

    roster = await session_service.get_session(db_session, player["team_id"], team_session["id"])
    assert [p["id"] for p in roster["players"]] == [player["id"]]


@pytest.mark.asyncio
async def test_create_player_without_inscription_fee(db_session, team_session, make_player):
    player = await make_player(inscription_fee=0)

    assert player["initial_payment"]["inscription_included"] is False
    assert player["inscription_paid_at"] is None


@pytest.mark.asyncio
async def test_create_player_with_unknown_session_still_creates(db_session, team, make_player):
    player = await player_service.create_player(
        db_session,
        team["id"],
        {"full_name": "Lina Haddad", "date_of_birth": date(2012, 1, 1), "monthly_fee": 30},
        session_id=4242,
    )
    assert player["id"] is not None
    assert "initial_payment" not in player


@pytest.mark.asyncio
async def test_registration_payment_failure_keeps_player(db_session, team, team_session, make_player, monkeypatch):
    async def failing_upsert(*args, **kwargs):
        raise RuntimeError("payments table unavailable")

    monkeypatch.setattr(player_service.payment_service, "upsert_payment", failing_upsert)

    player = await make_player(full_name="Nour Belkadi", inscription_fee=80.0)

    assert player["id"] is not None
    assert "initial_payment" not in player
    assert player["session_id"] is None
    assert player["last_payment_date"] is None

    stored = await player_service.get_player(db_session, team["id"], player["id"])
    assert stored["full_name"] == "Nour Belkadi"
    result = await db_session.execute(select(Payment).where(Payment.subject_id == player["id"]))
    assert result.scalars().all() == []
    roster = await session_service.get_session(db_session, team["id"], team_session["id"])
    assert roster["players"] == []


@pytest.mark.asyncio
async def test_create_player_validation(db_session, team):
    with pytest.raises(ValueError):
        await player_service.create_player(db_session, team["id"], {"full_name": "A", "date_of_birth": date(2010, 1, 1)})
    with pytest.raises(ValueError):
        await player_service.create_player(db_session, team["id"], {"full_name": "Sami"})
    with pytest.raises(NotFoundError):
        await player_service.create_player(
            db_session, 999, {"full_name": "Sami Kaddour", "date_of_birth": date(2010, 1, 1)}
        )


@pytest.mark.asyncio
async def test_update_player_partial(db_session, team, make_player):
    player = await make_player()

    updated = await player_service.update_player(
        db_session, team["id"], player["id"], {"jersey_number": 10, "positions": ["Forward"]}
    )

    assert updated["jersey_number"] == 10
    assert updated["positions"] == ["Forward"]
    assert updated["full_name"] == player["full_name"]


@pytest.mark.asyncio
async def test_players_are_scoped_to_team(db_session, team, make_player):
    player = await make_player()
    with pytest.raises(NotFoundError):
        await player_service.get_player(db_session, team["id"] + 1, player["id"])


@pytest.mark.asyncio
async def test_mark_player_month_paid(db_session, team, make_player):
    player = await make_player()
    updated = await player_service.mark_player_month_paid(db_session, team["id"], player["id"])
    assert updated["last_payment_date"] is not None


@pytest.mark.asyncio
async def test_delete_player_removes_payments(db_session, team, team_session, make_player):
    player = await make_player()
    assert "initial_payment" in player

    await player_service.delete_player(db_session, team["id"], player["id"])

    result = await db_session.execute(
        select(Payment).where(Payment.subject_type == SubjectType.PLAYER, Payment.subject_id == player["id"])
    )
    assert result.scalars().all() == []
    with pytest.raises(NotFoundError):
        await player_service.get_player(db_session, team["id"], player["id"])


@pytest.mark.asyncio
async def test_list_players_newest_first(db_session, team, make_player):
    first = await make_player(full_name="First Player")
    second = await make_player(full_name="Second Player")

    players = await player_service.list_players(db_session, team["id"])
    assert {p["id"] for p in players} == {first["id"], second["id"]}
    assert all(p["billing"]["status"] in ("not_due", "na") for p in players)


@pytest.mark.asyncio
async def test_registration_payment_status_enum_stored(db_session, team, team_session, make_player):
    player = await make_player()
    result = await db_session.execute(select(Payment).where(Payment.subject_id == player["id"]))
    payment = result.scalar_one()
    assert payment.status == PaymentStatus.PAID
