"""
Tests for database bootstrap and the connection manager.
"""

import pytest

from reaper.database.database import Database
from reaper.database.db_connection import ConnectionManager


@pytest.mark.asyncio
async def test_initialize_creates_schema_and_parent_dirs(tmp_path):
    db_path = tmp_path / "data" / "reaper.db"
    database = Database(ConnectionManager())

    assert await database.initialize(db_path) is True
    assert await database.initialize(db_path) is True
    assert db_path.exists()

    async with database.connection.read() as conn:
        async with conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'") as cursor:
            tables = {row["name"] for row in await cursor.fetchall()}

    assert {
        "actions",
        "strike_escalations",
        "moderation_configuration",
        "logging_configuration",
        "user_permissions",
        "role_permissions",
        "role_recovery_configuration",
        "role_recovery",
        "schema_version",
    } <= tables

    await database.shutdown()
    assert database.connection.is_open is False


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(connection):
    with pytest.raises(RuntimeError):
        async with connection.transaction() as conn:
            await conn.execute(
                "INSERT INTO moderation_configuration (guild_id, mute_role) VALUES (?, ?)", (1, 2)
            )
            raise RuntimeError("boom")

    async with connection.read() as conn:
        async with conn.execute("SELECT COUNT(*) FROM moderation_configuration") as cursor:
            (count,) = await cursor.fetchone()

    assert count == 0


def test_connection_property_requires_open():
    with pytest.raises(RuntimeError):
        ConnectionManager().connection
