"""
Team-scoped record lookups and dialect helpers shared by the services.

Every record belongs to a team; a record owned by another team is reported
exactly like a missing one.
"""

from typing import Iterable, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from sportmanager.utils.errors import NotFoundError

ModelT = TypeVar("ModelT")


async def get_team_record(
    session: AsyncSession,
    model: Type[ModelT],
    team_id: int,
    record_id: int,
    options: Iterable = (),
    label: str = None,
) -> ModelT:
    """
    Fetch one record of model by id within a team, refreshing any cached copy.

    Raises:
        NotFoundError: If missing or owned by another team
    """
    stmt = (
        select(model)
        .where(model.id == record_id, model.team_id == team_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError(label or model.__name__)
    return record


_INSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def dialect_insert(session: AsyncSession):
    """
    The insert() construct of the session's dialect, for ON CONFLICT upserts.

    Raises:
        RuntimeError: On a dialect without ON CONFLICT DO UPDATE
    """
    dialect = session.get_bind().dialect.name
    try:
        return _INSERT_BY_DIALECT[dialect]
    except KeyError:
        raise RuntimeError(f"Upserts are not supported on the {dialect} dialect")
