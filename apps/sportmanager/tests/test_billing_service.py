"""
Unit tests for the billing calculations.
Covers the monthly billing status of a player and the session payment schedule.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytz

from sportmanager.services import billing_service


def utc(*args):
    return pytz.UTC.localize(datetime(*args))


def make_player(monthly_fee=50.0, created_at=None, last_payment_date=None, player_id=1, **extra):
    return SimpleNamespace(
        id=player_id,
        full_name=extra.pop("full_name", "Test Player"),
        group=extra.pop("group", "Cadet"),
        monthly_fee=monthly_fee,
        created_at=created_at or utc(2024, 1, 10),
        last_payment_date=last_payment_date,
        **extra,
    )


class TestMonthlyBilling:
    """Tests for build_monthly_billing."""

    def test_no_fee_is_not_applicable(self):
        billing = billing_service.build_monthly_billing(make_player(monthly_fee=0), now=utc(2025, 3, 20))
        assert billing == {"status": "na", "label": "No monthly fee", "due_month": None, "days_overdue": 0}

    def test_missing_fee_is_not_applicable(self):
        billing = billing_service.build_monthly_billing(make_player(monthly_fee=None), now=utc(2025, 3, 20))
        assert billing["status"] == "na"

    def test_first_month_is_free(self):
        player = make_player(created_at=utc(2025, 3, 5, 12, 0))
        billing = billing_service.build_monthly_billing(player, now=utc(2025, 4, 5, 11, 59))
        assert billing["status"] == "not_due"
        assert billing["label"] == "Not due yet (first month)"
        assert billing["due_month"] is None

    def test_due_exactly_one_month_after_creation(self):
        player = make_player(created_at=utc(2025, 3, 5, 12, 0))
        billing = billing_service.build_monthly_billing(player, now=utc(2025, 4, 5, 12, 0))
        assert billing["status"] == "pending"
        assert billing["due_month"] == "2025-04"

    def test_paid_this_month(self):
        player = make_player(last_payment_date=utc(2025, 3, 1, 0, 0))
        billing = billing_service.build_monthly_billing(player, now=utc(2025, 3, 25))
        assert billing["status"] == "paid"
        assert billing["due_month"] == "2025-03"
        assert billing["days_overdue"] == 0

    def test_payment_last_month_does_not_count(self):
        player = make_player(last_payment_date=utc(2025, 2, 28, 23, 0))
        billing = billing_service.build_monthly_billing(player, now=utc(2025, 3, 5))
        assert billing["status"] == "pending"

    def test_pending_within_grace_days(self):
        billing = billing_service.build_monthly_billing(make_player(), now=utc(2025, 3, 11, 8, 0))
        assert billing["status"] == "pending"
        assert billing["days_overdue"] == 0

    def test_overdue_after_grace_days(self):
        billing = billing_service.build_monthly_billing(make_player(), now=utc(2025, 3, 15, 8, 0))
        assert billing["status"] == "overdue"
        assert billing["due_month"] == "2025-03"
        assert billing["days_overdue"] == 4

    def test_custom_grace_days(self):
        billing = billing_service.build_monthly_billing(make_player(), now=utc(2025, 3, 15), grace_days=3)
        assert billing["status"] == "overdue"
        assert billing["days_overdue"] == 11

    def test_naive_datetimes_are_treated_as_utc(self):
        player = make_player(created_at=datetime(2024, 1, 1), last_payment_date=datetime(2025, 3, 2))
        billing = billing_service.build_monthly_billing(player, now=datetime(2025, 3, 20))
        assert billing["status"] == "paid"

    def test_month_start_uses_its_own_dst_offset(self):
        # Paris switches to summer time on 2025-03-30; March starts at +01:00
        paris = pytz.timezone("Europe/Paris")
        player = make_player(last_payment_date=paris.localize(datetime(2025, 2, 28, 23, 30)))
        now = paris.localize(datetime(2025, 3, 31, 12, 0))
        billing = billing_service.build_monthly_billing(player, now=now)
        assert billing["status"] == "overdue"
        assert billing["due_month"] == "2025-03"
        assert billing["days_overdue"] == 20

    def test_payment_just_after_local_midnight_counts(self):
        paris = pytz.timezone("Europe/Paris")
        player = make_player(last_payment_date=paris.localize(datetime(2025, 3, 1, 0, 15)))
        billing = billing_service.build_monthly_billing(player, now=paris.localize(datetime(2025, 3, 31, 12, 0)))
        assert billing["status"] == "paid"

    def test_bad_record_yields_error_status(self):
        player = make_player(monthly_fee="not a number")
        billing = billing_service.build_monthly_billing(player, now=utc(2025, 3, 20))
        assert billing == {"status": "error", "label": "Error calculating billing", "due_month": None, "days_overdue": 0}


class TestSessionMonths:
    """Tests for month enumeration."""

    def test_inclusive_month_range(self):
        months = billing_service.iter_session_months(date(2024, 9, 15), date(2025, 6, 1))
        assert len(months) == 10
        assert months[0] == {"year": 2024, "month": 9}
        assert months[-1] == {"year": 2025, "month": 6}

    def test_single_month(self):
        assert billing_service.iter_session_months(date(2025, 2, 3), date(2025, 2, 20)) == [
            {"year": 2025, "month": 2}
        ]

    def test_month_past(self):
        assert billing_service.is_month_past(2025, 1, now=utc(2025, 2, 1, 0, 0)) is True
        assert billing_service.is_month_past(2025, 1, now=utc(2025, 1, 31, 23, 59)) is False


class TestPaymentSchedule:
    """Tests for build_payment_schedule."""

    def test_session_without_payments(self):
        player = make_player(monthly_fee=50.0, player_id=7, full_name="Amine", group="Junior")
        result = billing_service.build_payment_schedule(
            date(2025, 1, 1), date(2025, 3, 31), [player], "player", {}, now=utc(2025, 2, 15)
        )

        assert result["months"] == [
            {"year": 2025, "month": 1},
            {"year": 2025, "month": 2},
            {"year": 2025, "month": 3},
        ]
        entry = result["schedule"][0]
        assert entry["subject"] == {"id": 7, "full_name": "Amine", "base_amount": 50.0, "group": "Junior"}
        assert [row["status"] for row in entry["rows"]] == ["delayed", "pending", "pending"]
        assert all(row["amount"] == 50.0 for row in entry["rows"])
        assert all(row["paid_at"] is None for row in entry["rows"])

    def test_existing_payment_overrides_derived_row(self):
        player = make_player(monthly_fee=50.0, player_id=3)
        payment = SimpleNamespace(status="paid", amount=45.0, paid_at=datetime(2025, 1, 20, 10, 0), notes="cash")
        result = billing_service.build_payment_schedule(
            date(2025, 1, 1), date(2025, 2, 28), [player], "player", {(3, 2025, 1): payment}, now=utc(2025, 3, 1)
        )

        january, february = result["schedule"][0]["rows"]
        assert january["status"] == "paid"
        assert january["amount"] == 45.0
        assert january["notes"] == "cash"
        assert january["paid_at"].startswith("2025-01-20T10:00:00")
        assert february["status"] == "delayed"
        assert february["amount"] == 50.0

    def test_coach_schedule_uses_salary(self):
        coach = SimpleNamespace(id=2, full_name="Coach Sara", specialization="Fitness", agreed_salary=400.0)
        result = billing_service.build_payment_schedule(
            date(2025, 5, 1), date(2025, 5, 31), [coach], "coach", {}, now=utc(2025, 5, 2)
        )
        entry = result["schedule"][0]
        assert entry["subject"]["specialization"] == "Fitness"
        assert entry["subject"]["base_amount"] == 400.0
        assert entry["rows"][0]["status"] == "pending"

    def test_empty_roster(self):
        result = billing_service.build_payment_schedule(
            date(2025, 1, 1), date(2025, 12, 31), [], "player", {}, now=utc(2025, 6, 1)
        )
        assert len(result["months"]) == 12
        assert result["schedule"] == []
