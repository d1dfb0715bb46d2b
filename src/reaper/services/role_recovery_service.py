"""
RoleRecoveryService: remembers which roles members hold so they can be
given back on rejoin.

Stored roles are tracked whether or not recovery is enabled for the guild;
the toggle only decides whether they are granted back.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Set, Tuple

import aiosqlite

from reaper.database.db_connection import ConnectionManager, db_connection
from reaper.moderation.errors import PersistenceFailed
from reaper.repositories import GuildConfigRepository, RoleRecoveryRepository
from reaper.util.logger import get_logger

logger = get_logger("role_recovery_service")


class RoleRecoveryService:
    """Stores member roles and the per-guild recovery toggle."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection
        self._repo = RoleRecoveryRepository()
        self._config_repo = GuildConfigRepository()

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._connection.read() as conn:
                yield conn
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[ROLE RECOVERY] %s failed: %s", operation, exc)
            raise PersistenceFailed(f"{operation}: {exc}") from exc

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._connection.transaction() as conn:
                yield conn
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[ROLE RECOVERY] %s failed: %s", operation, exc)
            raise PersistenceFailed(f"{operation}: {exc}") from exc

    async def is_enabled(self, guild_id: int) -> bool:
        async with self._reading("read role recovery toggle") as conn:
            return await self._repo.is_enabled(conn, guild_id)

    async def set_enabled(self, guild_id: int, enabled: bool) -> None:
        async with self._writing("save role recovery toggle") as conn:
            await self._repo.set_enabled(conn, guild_id, enabled)
        logger.info("[ROLE RECOVERY] Role recovery %s for guild %s", "enabled" if enabled else "disabled", guild_id)

    async def roles_for(self, guild_id: int, user_id: int) -> Set[int]:
        async with self._reading("list recoverable roles") as conn:
            return await self._repo.list_roles(conn, guild_id, user_id)

    async def sync_roles(self, guild_id: int, user_id: int, role_ids: Iterable[int]) -> Tuple[int, int]:
        """Make the stored roles match ``role_ids``; returns (added, removed)."""
        current = set(role_ids)
        async with self._writing("sync recoverable roles") as conn:
            stored = await self._repo.list_roles(conn, guild_id, user_id)
            added = current - stored
            removed = stored - current
            if added:
                await self._repo.add_roles(conn, guild_id, user_id, added)
            if removed:
                await self._repo.remove_roles(conn, guild_id, user_id, removed)

        if added or removed:
            logger.debug(
                "[ROLE RECOVERY] Synced roles of %s in guild %s (+%d -%d)",
                user_id, guild_id, len(added), len(removed),
            )
        return len(added), len(removed)

    async def forget_guild(self, guild_id: int) -> None:
        """Drop stored roles and guild configuration after the bot leaves a guild."""
        async with self._writing("forget guild") as conn:
            await self._repo.delete_for_guild(conn, guild_id)
            await self._config_repo.delete_for_guild(conn, guild_id)
        logger.info("[ROLE RECOVERY] Forgot stored data for guild %s", guild_id)
