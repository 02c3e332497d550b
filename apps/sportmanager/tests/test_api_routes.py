"""
API route tests.
Requests go through the FastAPI app with the database dependency pointed at
the per-test SQLite database.
"""
from datetime import datetime
from io import BytesIO

import pytest
import pytz
from PIL import Image
from sqlalchemy.exc import IntegrityError

from sportmanager.services import auth_service, billing_service, payment_service


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (4, 4), color=(0, 120, 200)).save(buffer, format="PNG")
    return buffer.getvalue()


# ============================================================================
# Health & auth
# ============================================================================

class TestHealthAndTeamAuth:
    @pytest.mark.asyncio
    async def test_health(self, api_client):
        response = api_client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_register_collects_validation_errors(self, api_client):
        response = api_client.post("/api/auth/register", json={"team_name": "X", "email": "bad"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "Team name must be at least 2 characters" in body["errors"]
        assert "Invalid email format" in body["errors"]
        assert "Discipline is required" in body["errors"]

    @pytest.mark.asyncio
    async def test_register_login_and_me(self, api_client):
        payload = {
            "team_name": "Handball Club",
            "discipline": "Handball",
            "email": "Club@Example.com",
            "password": "secret123",
            "phone": "0612345678",
        }
        response = api_client.post("/api/auth/register", json=payload)
        assert response.status_code == 201
        assert response.json()["data"]["email"] == "club@example.com"

        duplicate = api_client.post("/api/auth/register", json=payload)
        assert duplicate.status_code == 400

        login = api_client.post("/api/auth/login", json={"email": "club@example.com", "password": "secret123"})
        assert login.status_code == 200
        token = login.json()["data"]["token"]

        me = api_client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json()["data"]["team_name"] == "Handball Club"

    @pytest.mark.asyncio
    async def test_login_failures(self, api_client, team):
        missing = api_client.post("/api/auth/login", json={"email": team["email"]})
        assert missing.status_code == 400

        wrong = api_client.post("/api/auth/login", json={"email": team["email"], "password": "nope"})
        assert wrong.status_code == 401
        assert wrong.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_token_required(self, api_client):
        response = api_client.get("/api/players")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Access token required"}

    @pytest.mark.asyncio
    async def test_invalid_token(self, api_client):
        response = api_client.get("/api/players", headers=auth_headers("garbage"))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, api_client):
        token = auth_service.create_access_token({"id": 1, "role": "superuser", "team_id": 1})
        response = api_client.get("/api/players", headers=auth_headers(token))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_update_profile(self, api_client, team_headers):
        response = api_client.put("/api/auth/me", json={"team_name": "Renamed FC"}, headers=team_headers)
        assert response.status_code == 200
        assert response.json()["data"]["team_name"] == "Renamed FC"

    @pytest.mark.asyncio
    async def test_logo_upload(self, api_client, team_headers):
        response = api_client.post(
            "/api/auth/me/logo",
            files={"file": ("logo.png", _png_bytes(), "image/png")},
            headers=team_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["logo"].startswith("/uploads/logo-")

    @pytest.mark.asyncio
    async def test_logo_upload_rejects_non_image(self, api_client, team_headers):
        response = api_client.post(
            "/api/auth/me/logo",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=team_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_team_listing_is_platform_admin_only(self, api_client, team_headers):
        response = api_client.get("/api/auth/teams", headers=team_headers)
        assert response.status_code == 403


# ============================================================================
# Players, coaches and member auth
# ============================================================================

class TestPlayerRoutes:
    @pytest.mark.asyncio
    async def test_player_crud(self, api_client, team_headers):
        created = api_client.post(
            "/api/players",
            json={"full_name": "Nora Alaoui", "date_of_birth": "2011-04-02", "group": "Ecole", "monthly_fee": 35},
            headers=team_headers,
        )
        assert created.status_code == 201
        player = created.json()["data"]["player"]
        assert player["billing"]["status"] == "not_due"

        listed = api_client.get("/api/players", headers=team_headers)
        assert listed.json()["data"]["count"] == 1

        updated = api_client.put(f"/api/players/{player['id']}", json={"jersey_number": 7}, headers=team_headers)
        assert updated.json()["data"]["player"]["jersey_number"] == 7

        paid = api_client.post(f"/api/players/{player['id']}/mark-paid", headers=team_headers)
        assert paid.json()["data"]["player"]["last_payment_date"] is not None

        deleted = api_client.delete(f"/api/players/{player['id']}", headers=team_headers)
        assert deleted.status_code == 200
        missing = api_client.get(f"/api/players/{player['id']}", headers=team_headers)
        assert missing.status_code == 404
        assert missing.json()["message"] == "Player not found"

    @pytest.mark.asyncio
    async def test_schema_validation_is_400(self, api_client, team_headers):
        response = api_client.post("/api/players", json={"full_name": "No Birthday"}, headers=team_headers)
        assert response.status_code == 400
        assert response.json()["errors"]

    @pytest.mark.asyncio
    async def test_public_registration_joins_active_session(self, api_client, team, team_session):
        response = api_client.post(
            "/api/players/register",
            json={"team_id": team["id"], "full_name": "Public Player", "date_of_birth": "2012-09-09", "monthly_fee": 20},
        )
        assert response.status_code == 201
        player = response.json()["data"]["player"]
        assert player["session_id"] == team_session["id"]
        assert player["initial_payment"]["status"] == "paid"

    @pytest.mark.asyncio
    async def test_player_photo_upload(self, api_client, team_headers, make_player):
        player = await make_player()
        response = api_client.post(
            f"/api/players/{player['id']}/photo",
            files={"file": ("me.png", _png_bytes(), "image/png")},
            headers=team_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["player"]["photo"].startswith(f"/uploads/player-{player['id']}-")

    @pytest.mark.asyncio
    async def test_player_login_uses_full_name(self, api_client, make_player):
        await make_player(full_name="Omar Tazi", email="omar@example.com")

        bad = api_client.post("/api/player-auth/login", json={"email": "omar@example.com", "password": "wrong"})
        assert bad.status_code == 401

        good = api_client.post("/api/player-auth/login", json={"email": "OMAR@example.com", "password": "omar tazi"})
        assert good.status_code == 200
        token = good.json()["data"]["token"]

        me = api_client.get("/api/player-auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json()["data"]["player"]["full_name"] == "Omar Tazi"

        # players cannot use staff endpoints
        forbidden = api_client.get("/api/players", headers=auth_headers(token))
        assert forbidden.status_code == 403

    @pytest.mark.asyncio
    async def test_coach_crud_and_login(self, api_client, team_headers):
        created = api_client.post(
            "/api/coaches",
            json={"full_name": "Samir Idrissi", "email": "samir@example.com", "date_of_birth": "1980-01-01"},
            headers=team_headers,
        )
        assert created.status_code == 201

        duplicate = api_client.post(
            "/api/coaches",
            json={"full_name": "Samir Other", "email": "samir@example.com", "date_of_birth": "1981-01-01"},
            headers=team_headers,
        )
        assert duplicate.status_code == 400

        login = api_client.post("/api/coach-auth/login", json={"email": "samir@example.com", "password": "Samir Idrissi"})
        assert login.status_code == 200
        me = api_client.get("/api/coach-auth/me", headers=auth_headers(login.json()["data"]["token"]))
        assert me.json()["data"]["coach"]["email"] == "samir@example.com"


# ============================================================================
# Sessions, payments, training and attendance
# ============================================================================

class TestSeasonRoutes:
    @pytest.mark.asyncio
    async def test_session_crud_and_roster(self, api_client, team_headers, make_coach):
        created = api_client.post(
            "/api/sessions",
            json={"name": "Season 2025", "start_date": "2025-01-01", "end_date": "2025-03-31", "type": "yearly"},
            headers=team_headers,
        )
        assert created.status_code == 201
        session_id = created.json()["data"]["session"]["id"]

        inverted = api_client.post(
            "/api/sessions",
            json={"name": "Backwards", "start_date": "2025-05-01", "end_date": "2025-01-01"},
            headers=team_headers,
        )
        assert inverted.status_code == 400

        coach = await make_coach()
        added = api_client.post(f"/api/sessions/{session_id}/coaches/{coach['id']}", headers=team_headers)
        assert [c["id"] for c in added.json()["data"]["session"]["coaches"]] == [coach["id"]]

        schedule = api_client.get(f"/api/payments/{session_id}/schedule?subject_type=coach", headers=team_headers)
        assert schedule.status_code == 200
        data = schedule.json()["data"]
        assert len(data["months"]) == 3
        assert data["schedule"][0]["subject"]["id"] == coach["id"]

        paid = api_client.post(
            f"/api/payments/{session_id}/mark-paid",
            json={"subject_id": coach["id"], "subject_type": "coach", "year": 2025, "month": 2, "amount": 300},
            headers=team_headers,
        )
        assert paid.status_code == 200
        status = api_client.put(
            f"/api/payments/{session_id}/status",
            json={"subject_id": coach["id"], "subject_type": "coach", "year": 2025, "month": 2, "status": "pending"},
            headers=team_headers,
        )
        assert status.json()["data"]["payment"]["paid_at"] is None

        payments = api_client.get(f"/api/payments/{session_id}", headers=team_headers)
        assert payments.json()["data"]["count"] == 1

    @pytest.mark.asyncio
    async def test_payment_for_unknown_session(self, api_client, team_headers):
        response = api_client.post(
            "/api/payments/999/mark-paid", json={"subject_id": 1, "subject_type": "player"}, headers=team_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_training_and_coach_attendance(
        self, api_client, team_headers, team_session, make_player, make_coach, coach_token
    ):
        session_id = team_session["id"]
        subgroup = api_client.post(
            f"/api/subgroups/session/{session_id}",
            json={"name": "Cadets A", "category": "Cadet"},
            headers=team_headers,
        ).json()["data"]["subgroup"]
        coach = await make_coach()
        player = await make_player()
        api_client.post(f"/api/subgroups/{subgroup['id']}/coaches/{coach['id']}", headers=team_headers)
        api_client.post(f"/api/subgroups/{subgroup['id']}/players/{player['id']}", headers=team_headers)

        training = api_client.post(
            "/api/training-sessions",
            json={
                "session_id": session_id,
                "title": "Tuesday drills",
                "date": "2025-03-11",
                "start_time": "18:00",
                "end_time": "19:30",
                "group": "Cadet",
            },
            headers=team_headers,
        )
        assert training.status_code == 201
        training_id = training.json()["data"]["training_session"]["id"]
        assert training.json()["data"]["training_session"]["day_of_week"] == "Tuesday"

        headers = auth_headers(coach_token(coach))
        sheet = api_client.get(f"/api/attendance/{training_id}", headers=headers)
        assert [row["status"] for row in sheet.json()["data"]["attendance"]] == ["not_marked"]

        marked = api_client.post(
            f"/api/attendance/{training_id}/players/{player['id']}", json={"status": "present"}, headers=headers
        )
        assert marked.status_code == 200
        assert marked.json()["data"]["attendance"]["marked_by"] == coach["id"]

        bulk = api_client.post(
            f"/api/attendance/{training_id}/bulk",
            json={"attendance_data": [{"player_id": player["id"], "status": "late"}, {"player_id": 9999, "status": "present"}]},
            headers=headers,
        )
        assert bulk.status_code == 200
        assert len(bulk.json()["data"]["errors"]) == 1

        # coaches cannot manage the roster
        forbidden = api_client.delete(f"/api/training-sessions/{training_id}", headers=headers)
        assert forbidden.status_code == 403


class TestEventRoutes:
    @pytest.mark.asyncio
    async def test_event_crud(self, api_client, team_headers):
        created = api_client.post(
            "/api/events",
            json={
                "title": "Derby",
                "event_type": "Match",
                "start_date": "2025-04-05T15:00:00Z",
                "end_date": "2025-04-05T17:00:00Z",
            },
            headers=team_headers,
        )
        assert created.status_code == 201
        event_id = created.json()["data"]["event"]["id"]

        invalid = api_client.put(
            f"/api/events/{event_id}", json={"end_date": "2025-04-05T14:00:00Z"}, headers=team_headers
        )
        assert invalid.status_code == 400
        assert invalid.json()["message"] == "End date must be after start date"

        window = api_client.get(
            "/api/events?start_date=2025-04-01T00:00:00Z&end_date=2025-04-30T00:00:00Z", headers=team_headers
        )
        assert window.json()["data"]["count"] == 1
        outside = api_client.get("/api/events?start_date=2025-05-01T00:00:00Z", headers=team_headers)
        assert outside.json()["data"]["count"] == 0

        deleted = api_client.delete(f"/api/events/{event_id}", headers=team_headers)
        assert deleted.status_code == 200


# ============================================================================
# Payments
# ============================================================================

class TestPaymentRoutes:
    def _winter_session(self, api_client, team_headers) -> int:
        created = api_client.post(
            "/api/sessions",
            json={"name": "Winter 2025", "start_date": "2025-01-01", "end_date": "2025-03-31"},
            headers=team_headers,
        )
        return created.json()["data"]["session"]["id"]

    @pytest.mark.asyncio
    async def test_player_schedule_mid_february(self, api_client, team_headers, make_player, monkeypatch):
        monkeypatch.setattr(billing_service, "now_local", lambda: pytz.UTC.localize(datetime(2025, 2, 15, 12, 0)))
        session_id = self._winter_session(api_client, team_headers)
        player = await make_player(monthly_fee=50.0)
        api_client.post(f"/api/sessions/{session_id}/players/{player['id']}", headers=team_headers)

        response = api_client.get(f"/api/payments/{session_id}/schedule", headers=team_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["months"] == [
            {"year": 2025, "month": 1},
            {"year": 2025, "month": 2},
            {"year": 2025, "month": 3},
        ]
        entry = body["data"]["schedule"][0]
        assert entry["subject"] == {
            "id": player["id"],
            "full_name": "Yassine Amrani",
            "base_amount": 50.0,
            "group": "Cadet",
        }
        assert [(row["month"], row["status"], row["amount"]) for row in entry["rows"]] == [
            (1, "delayed", 50.0),
            (2, "pending", 50.0),
            (3, "pending", 50.0),
        ]

    @pytest.mark.asyncio
    async def test_mark_paid_then_back_to_pending(self, api_client, team_headers, make_player):
        session_id = self._winter_session(api_client, team_headers)
        player = await make_player()
        key = {"subject_id": player["id"], "subject_type": "player", "year": 2025, "month": 1}

        paid = api_client.post(f"/api/payments/{session_id}/mark-paid", json={**key, "amount": 50}, headers=team_headers)
        assert paid.status_code == 200
        assert paid.json()["message"] == "Payment recorded"
        payment = paid.json()["data"]["payment"]
        assert payment["status"] == "paid"
        assert payment["paid_at"] is not None

        pending = api_client.put(
            f"/api/payments/{session_id}/status", json={**key, "status": "pending"}, headers=team_headers
        )
        assert pending.status_code == 200
        updated = pending.json()["data"]["payment"]
        assert updated["id"] == payment["id"]
        assert updated["status"] == "pending"
        assert updated["paid_at"] is None
        assert updated["amount"] == 50

        listed = api_client.get(f"/api/payments/{session_id}", headers=team_headers).json()["data"]
        assert listed["count"] == 1

    @pytest.mark.asyncio
    async def test_status_requires_known_status(self, api_client, team_headers, make_coach):
        session_id = self._winter_session(api_client, team_headers)
        coach = await make_coach()
        response = api_client.put(
            f"/api/payments/{session_id}/status",
            json={"subject_id": coach["id"], "subject_type": "coach", "year": 2025, "month": 1, "status": "waived"},
            headers=team_headers,
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_year_out_of_range_is_400(self, api_client, team_headers, make_coach):
        session_id = self._winter_session(api_client, team_headers)
        coach = await make_coach()
        response = api_client.put(
            f"/api/payments/{session_id}/status",
            json={"subject_id": coach["id"], "subject_type": "coach", "year": 1999, "month": 1, "status": "paid"},
            headers=team_headers,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert any(error.startswith("year:") for error in body["errors"])

    @pytest.mark.asyncio
    async def test_database_conflict_is_400(self, api_client, team_headers, make_coach, monkeypatch):
        session_id = self._winter_session(api_client, team_headers)
        coach = await make_coach()

        async def conflicting(*args, **kwargs):
            raise IntegrityError(
                "INSERT INTO payments", {}, Exception("CHECK constraint failed: ck_payments_year")
            )

        monkeypatch.setattr(payment_service, "set_payment_status", conflicting)
        response = api_client.put(
            f"/api/payments/{session_id}/status",
            json={"subject_id": coach["id"], "subject_type": "coach", "year": 2025, "month": 1, "status": "paid"},
            headers=team_headers,
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Duplicate or conflicting record"}
