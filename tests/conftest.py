"""
Pytest configuration and fixtures for Reaper tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from reaper.database.db_connection import ConnectionManager  # noqa: E402
from reaper.database.db_schema import SchemaManager  # noqa: E402
from reaper.moderation.action_engine import ActionEngine  # noqa: E402
from reaper.services.action_store import ActionStore  # noqa: E402
from reaper.services.guild_config_service import GuildConfigService  # noqa: E402
from reaper.services.role_recovery_service import RoleRecoveryService  # noqa: E402

GUILD_ID = 1000
OTHER_GUILD_ID = 2000
TARGET_ID = 42
MODERATOR_ID = 7
SYSTEM_ID = 99
MUTE_ROLE_ID = 555
LOG_CHANNEL_ID = 777


@pytest_asyncio.fixture
async def connection(tmp_path: Path):
    """A fresh database with the full schema."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "reaper.db")
    async with manager.transaction() as conn:
        await SchemaManager.initialize_schema(conn)
    yield manager
    await manager.close()


@pytest.fixture
def store(connection) -> ActionStore:
    return ActionStore(connection)


@pytest.fixture
def config_service(connection) -> GuildConfigService:
    return GuildConfigService(connection)


@pytest.fixture
def recovery_service(connection) -> RoleRecoveryService:
    return RoleRecoveryService(connection)


@pytest.fixture
def platform() -> MagicMock:
    client = MagicMock()
    client.ban = AsyncMock()
    client.unban = AsyncMock()
    client.kick = AsyncMock()
    client.grant_role = AsyncMock()
    client.revoke_role = AsyncMock()
    client.guild_name = MagicMock(return_value="Test Guild")
    return client


@pytest.fixture
def notifier() -> MagicMock:
    channel = MagicMock()
    channel.send_direct_message = AsyncMock(return_value=True)
    return channel


@pytest.fixture
def audit_log() -> MagicMock:
    channel = MagicMock()
    channel.publish = AsyncMock(return_value=True)
    return channel


@pytest.fixture
def engine(store, config_service, platform, notifier, audit_log) -> ActionEngine:
    return ActionEngine(
        store=store,
        config=config_service,
        platform=platform,
        notifier=notifier,
        audit_log=audit_log,
        system_moderator_id=SYSTEM_ID,
    )
