"""
Shared pytest configuration for sportmanager tests.

Every test gets a throwaway SQLite database in its own temp directory, so
tests never touch a development or production database.
"""

import os
import tempfile

# Must be set before any sportmanager module reads its configuration
_TEST_ROOT = tempfile.mkdtemp(prefix="sportmanager-tests-")
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'import.db')}"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["UPLOADS_DIR"] = os.path.join(_TEST_ROOT, "uploads")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from sportmanager.database.db import Base, build_engine, get_db_session  # noqa: E402
from sportmanager.database import models  # noqa: E402, F401
from sportmanager.services import auth_service, coach_service, player_service, session_service, team_service  # noqa: E402
from sportmanager.utils.datetime_utils import now_local  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Engine bound to a fresh SQLite file with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker):
    """A database session for service-level tests."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def api_client(session_maker):
    """
    TestClient whose requests use the per-test database.

    Created without a context manager so the app lifespan (which targets the
    configured DATABASE_URL) does not run.
    """
    from sportmanager.api.main import app

    async def override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    yield TestClient(app)
    app.dependency_overrides.pop(get_db_session, None)


# ============================================================================
# Data builders
# ============================================================================

@pytest_asyncio.fixture
async def team(db_session):
    """A registered team; the dict carries its team_admin token."""
    return await team_service.register_team(
        db_session,
        {
            "team_name": "Olympique Test",
            "discipline": "Football",
            "email": "coach.office@example.com",
            "password": "secret123",
            "phone": "0600000000",
        },
    )


@pytest_asyncio.fixture
async def team_session(db_session, team):
    """A yearly session covering the whole current year."""
    today = now_local()
    return await session_service.create_session(
        db_session,
        team["id"],
        name=f"Season {today.year}",
        start_date=date(today.year, 1, 1),
        end_date=date(today.year, 12, 31),
    )


@pytest_asyncio.fixture
async def make_player(db_session, team):
    async def _make(full_name="Yassine Amrani", group="Cadet", monthly_fee=50.0, **extra):
        data = {
            "full_name": full_name,
            "date_of_birth": date(2010, 5, 4),
            "group": group,
            "monthly_fee": monthly_fee,
        }
        data.update(extra)
        return await player_service.create_player(db_session, team["id"], data)

    return _make


@pytest_asyncio.fixture
async def make_coach(db_session, team):
    async def _make(full_name="Karim Bennani", email="karim@example.com", **extra):
        data = {
            "full_name": full_name,
            "email": email,
            "date_of_birth": date(1985, 3, 2),
            "specialization": "Goalkeepers",
            "agreed_salary": 300.0,
        }
        data.update(extra)
        return await coach_service.create_coach(db_session, team["id"], data)

    return _make


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def team_headers(team):
    return auth_headers(team["token"])


@pytest.fixture
def coach_token():
    """Build a bearer token for a coach record."""
    def _token(coach: dict) -> str:
        return auth_service.create_access_token(
            {"id": coach["id"], "role": "coach", "team_id": coach["team_id"], "email": coach["email"]}
        )
    return _token
