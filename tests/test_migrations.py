"""Schema checks against PostgreSQL with the Alembic migrations applied.

Skipped unless TASKFLOW_API_TEST_DATABASE_URL is set.
"""

from sqlalchemy import inspect

from taskflow_api.models import Base


async def test_migrations_match_models(pg_engine):
    async with pg_engine.connect() as conn:
        tables = await conn.run_sync(lambda c: set(inspect(c).get_table_names()))
        member_indexes = await conn.run_sync(
            lambda c: {i["name"]: i for i in inspect(c).get_indexes("workspace_members")}
        )

    assert set(Base.metadata.tables) <= tables
    assert member_indexes["ix_workspace_member_active"]["unique"]
