#!/usr/bin/env python3
"""
Issue a bearer token for any local team, coach or player - instant
impersonation for dev testing.

Usage (local, from repo root):
    python scripts/dev_login.py team 1
    python scripts/dev_login.py coach 3
    python scripts/dev_login.py player 12

Without arguments, lists the teams in the database.
"""

import asyncio
import os
import sys

# Add the apps directory to the path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(project_root, "apps"))

from sqlalchemy import select  # noqa: E402

from sportmanager.database.db import AsyncSessionLocal, dispose_engine  # noqa: E402
from sportmanager.database.models import Coach, Player, Team  # noqa: E402
from sportmanager.services import auth_service  # noqa: E402

TOKEN_BUILDERS = {
    "team": (Team, auth_service.build_token_for_team),
    "coach": (Coach, auth_service.build_token_for_coach),
    "player": (Player, auth_service.build_token_for_player),
}


async def list_teams(session):
    print("\nAvailable teams:")
    result = await session.execute(select(Team.id, Team.team_name, Team.email).order_by(Team.id).limit(20))
    for row in result.all():
        print(f"  Team #{row[0]:<4}  {row[1]:<25}  {row[2]}")
    print()


async def main(kind: str = "", record_id: str = ""):
    async with AsyncSessionLocal() as session:
        if kind not in TOKEN_BUILDERS or not record_id.isdigit():
            print("Usage: python scripts/dev_login.py <team|coach|player> <id>")
            await list_teams(session)
            return

        model, build_token = TOKEN_BUILDERS[kind]
        record = await session.get(model, int(record_id))
        if record is None:
            print(f"No {kind} with id {record_id}")
            return

        print(f"\nToken for {kind} #{record.id}:\n")
        print(build_token(record))
        print(f"\ncurl -H 'Authorization: Bearer <token>' http://localhost:8000/api/{'auth' if kind == 'team' else kind + '-auth'}/me\n")
    await dispose_engine()


if __name__ == "__main__":
    args = sys.argv[1:] + ["", ""]
    asyncio.run(main(args[0], args[1]))
