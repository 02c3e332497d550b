#!/usr/bin/env python3
"""
Seed a demo team with a current season, a subgroup, coaches, players and a
weekly training session.

Usage (local, from repo root with DATABASE_URL set):
    python scripts/seed_demo_team.py
    python scripts/seed_demo_team.py demo@example.com

Running it twice with the same email does nothing the second time.
"""

import asyncio
import os
import sys
from datetime import date

# Add the apps directory to the path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(project_root, "apps"))

from sportmanager.database.db import AsyncSessionLocal, dispose_engine, init_database  # noqa: E402
from sportmanager.services import (  # noqa: E402
    coach_service,
    player_service,
    session_service,
    subgroup_service,
    team_service,
    training_service,
)

DEMO_PASSWORD = "demo1234"

DEMO_COACHES = [
    {"full_name": "Karim Bennani", "email": "karim.coach@example.com", "specialization": "Technique", "agreed_salary": 400},
    {"full_name": "Sara Lahlou", "email": "sara.coach@example.com", "specialization": "Fitness", "agreed_salary": 350},
]

DEMO_PLAYERS = [
    ("Yassine Amrani", "Cadet", date(2010, 2, 14)),
    ("Adam Chraibi", "Cadet", date(2010, 7, 3)),
    ("Rayan Fassi", "Cadet", date(2011, 1, 22)),
    ("Ilyas Berrada", "Junior", date(2008, 11, 9)),
    ("Hamza Tazi", "Junior", date(2008, 4, 30)),
]


async def seed(email: str) -> None:
    await init_database()
    try:
        await seed_team(email)
    finally:
        await dispose_engine()


async def seed_team(email: str) -> None:
    async with AsyncSessionLocal() as session:
        if await team_service.get_team_by_email(session, email) is not None:
            print(f"Team {email} already exists; nothing to do")
            return

        team = await team_service.register_team(
            session,
            {
                "team_name": "Demo Sporting Club",
                "discipline": "Football",
                "email": email,
                "password": DEMO_PASSWORD,
                "phone": "0600000000",
            },
        )
        team_id = team["id"]
        print(f"✓ Team #{team_id} ({email} / {DEMO_PASSWORD})")

        today = date.today()
        season = await session_service.create_session(
            session,
            team_id,
            name=f"Season {today.year}",
            start_date=date(today.year, 1, 1),
            end_date=date(today.year, 12, 31),
        )
        print(f"✓ Session #{season['id']}")

        cadets = await subgroup_service.create_subgroup(
            session, team_id, season["id"], name="Cadets A", category="Cadet", max_players=20
        )

        for data in DEMO_COACHES:
            coach = await coach_service.create_coach(session, team_id, {**data, "date_of_birth": date(1985, 5, 5)})
            await session_service.add_coach(session, team_id, season["id"], coach["id"])
        first_coach = (await coach_service.list_coaches(session, team_id))[-1]
        await subgroup_service.assign_coach(session, team_id, cadets["id"], first_coach["id"])
        print(f"✓ {len(DEMO_COACHES)} coaches")

        for full_name, group, born in DEMO_PLAYERS:
            player = await player_service.create_player(
                session,
                team_id,
                {
                    "full_name": full_name,
                    "date_of_birth": born,
                    "group": group,
                    "email": f"{full_name.split()[0].lower()}@example.com",
                    "monthly_fee": 50,
                    "inscription_fee": 100,
                },
                session_id=season["id"],
            )
            if group == "Cadet":
                await subgroup_service.assign_player(session, team_id, cadets["id"], player["id"])
        print(f"✓ {len(DEMO_PLAYERS)} players")

        training = await training_service.create_training_session(
            session,
            team_id,
            {
                "session_id": season["id"],
                "title": "Cadets practice",
                "day_of_week": "Wednesday",
                "start_time": "17:30",
                "end_time": "19:00",
                "group": "Cadet",
                "subgroup_id": cadets["id"],
                "is_weekly": True,
            },
        )
        print(f"✓ Training session #{training['id']}")


if __name__ == "__main__":
    asyncio.run(seed(sys.argv[1] if len(sys.argv) > 1 else "demo@example.com"))
