"""
ActionStore: persistence service for moderation action records.

Wraps ActionRepository with the shared connection manager. Reads go through
``read()``, writes through a serialised ``transaction()``. Every database
error is logged and re-raised as ``PersistenceFailed`` so callers only ever
deal with the moderation error taxonomy.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

import aiosqlite

from reaper.database.db_connection import ConnectionManager, db_connection
from reaper.datatypes.action_datatypes import Action, ActionKind
from reaper.moderation.errors import PersistenceFailed
from reaper.repositories.action_repo import ActionRepository
from reaper.util.logger import get_logger

logger = get_logger("action_store")


class ActionStore:
    """Persistence interface for action records."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection
        self._repo = ActionRepository()

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._connection.read() as conn:
                yield conn
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[ACTION STORE] %s failed: %s", operation, exc)
            raise PersistenceFailed(f"{operation}: {exc}") from exc

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._connection.transaction() as conn:
                yield conn
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[ACTION STORE] %s failed: %s", operation, exc)
            raise PersistenceFailed(f"{operation}: {exc}") from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, action: Action) -> Action:
        async with self._writing("create action") as conn:
            await self._repo.insert(conn, action)
        logger.debug(
            "[ACTION STORE] Created %s %s for user %s in guild %s",
            action.kind, action.id, action.target_user_id, action.guild_id,
        )
        return action

    async def update_reason(self, action_id: str, reason: str) -> bool:
        async with self._writing("update reason") as conn:
            return await self._repo.update_reason(conn, action_id, reason)

    async def update_expiry(self, action_id: str, expiry: Optional[datetime]) -> bool:
        async with self._writing("update expiry") as conn:
            return await self._repo.update_expiry(conn, action_id, expiry)

    async def set_active(self, action_id: str, active: bool) -> bool:
        async with self._writing("set active") as conn:
            return await self._repo.set_active(conn, action_id, active)

    async def deactivate_if_active(self, action_id: str) -> bool:
        """Mark an action inactive; False when another writer already did."""
        async with self._writing("deactivate action") as conn:
            return await self._repo.deactivate_if_active(conn, action_id)

    async def deactivate_active(self, guild_id: int, user_id: int, kind: ActionKind) -> int:
        """Mark every active action of ``kind`` for the user inactive; returns the row count."""
        async with self._writing("deactivate user actions") as conn:
            return await self._repo.deactivate_for_user(conn, guild_id, user_id, kind)

    async def delete(self, action_id: str) -> bool:
        async with self._writing("delete action") as conn:
            return await self._repo.delete(conn, action_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, action_id: str) -> Optional[Action]:
        async with self._reading("get action") as conn:
            return await self._repo.get(conn, action_id)

    async def list_due(self, now: datetime) -> List[Action]:
        async with self._reading("list due actions") as conn:
            return await self._repo.list_due(conn, now)

    async def count_active(self, guild_id: int, user_id: int, kind: ActionKind) -> int:
        async with self._reading("count active actions") as conn:
            return await self._repo.count_active(conn, guild_id, user_id, kind)

    async def list_for_user(self, guild_id: int, user_id: int, include_inactive: bool = False) -> List[Action]:
        async with self._reading("list user actions") as conn:
            return await self._repo.list_for_user(conn, guild_id, user_id, include_inactive)

    async def list_for_guild(self, guild_id: int) -> List[Action]:
        async with self._reading("list guild actions") as conn:
            return await self._repo.list_for_guild(conn, guild_id)

    async def list_for_moderator(self, guild_id: int, moderator_id: int) -> List[Action]:
        async with self._reading("list moderator actions") as conn:
            return await self._repo.list_for_moderator(conn, guild_id, moderator_id)

    async def latest_by_moderator(self, guild_id: int, moderator_id: int) -> Optional[Action]:
        actions = await self.list_for_moderator(guild_id, moderator_id)
        return actions[0] if actions else None
