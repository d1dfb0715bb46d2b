"""
Repository for the ``actions`` table.

Instants are stored as INTEGER unix seconds and the kind as its lower-case
name; both are converted here so nothing outside this module sees the raw
column values.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite

from reaper.datatypes.action_datatypes import Action, ActionKind
from reaper.util.logger import get_logger

logger = get_logger("action_repo")

_COLUMNS = "id, kind, user_id, moderator_id, guild_id, reason, active, expiry, created_at"


def to_unix(instant: Optional[datetime]) -> Optional[int]:
    if instant is None:
        return None
    return int(instant.timestamp())


def from_unix(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def row_to_action(row) -> Action:
    return Action(
        id=row[0],
        kind=ActionKind(row[1]),
        target_user_id=row[2],
        moderator_id=row[3],
        guild_id=row[4],
        reason=row[5],
        active=bool(row[6]),
        expiry=from_unix(row[7]),
        created_at=from_unix(row[8]),
    )


class ActionRepository:
    """Low-level CRUD for the ``actions`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, conn: aiosqlite.Connection, action: Action) -> None:
        await conn.execute(
            f"INSERT INTO actions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                action.id,
                action.kind.value,
                action.target_user_id,
                action.moderator_id,
                action.guild_id,
                action.reason,
                int(action.active),
                to_unix(action.expiry),
                to_unix(action.created_at),
            ),
        )

    async def update_reason(self, conn: aiosqlite.Connection, action_id: str, reason: str) -> bool:
        cursor = await conn.execute("UPDATE actions SET reason = ? WHERE id = ?", (reason, action_id))
        return cursor.rowcount > 0

    async def update_expiry(
        self, conn: aiosqlite.Connection, action_id: str, expiry: Optional[datetime]
    ) -> bool:
        cursor = await conn.execute(
            "UPDATE actions SET expiry = ? WHERE id = ?", (to_unix(expiry), action_id)
        )
        return cursor.rowcount > 0

    async def set_active(self, conn: aiosqlite.Connection, action_id: str, active: bool) -> bool:
        cursor = await conn.execute(
            "UPDATE actions SET active = ? WHERE id = ?", (int(active), action_id)
        )
        return cursor.rowcount > 0

    async def deactivate_if_active(self, conn: aiosqlite.Connection, action_id: str) -> bool:
        """Flip ``active`` to false only if it is still true; returns whether this call won."""
        cursor = await conn.execute(
            "UPDATE actions SET active = 0 WHERE id = ? AND active = 1", (action_id,)
        )
        return cursor.rowcount > 0

    async def deactivate_for_user(
        self, conn: aiosqlite.Connection, guild_id: int, user_id: int, kind: ActionKind
    ) -> int:
        cursor = await conn.execute(
            "UPDATE actions SET active = 0 WHERE guild_id = ? AND user_id = ? AND kind = ? AND active = 1",
            (guild_id, user_id, kind.value),
        )
        return cursor.rowcount

    async def delete(self, conn: aiosqlite.Connection, action_id: str) -> bool:
        cursor = await conn.execute("DELETE FROM actions WHERE id = ?", (action_id,))
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, conn: aiosqlite.Connection, action_id: str) -> Optional[Action]:
        async with conn.execute(f"SELECT {_COLUMNS} FROM actions WHERE id = ?", (action_id,)) as cursor:
            row = await cursor.fetchone()
        return row_to_action(row) if row is not None else None

    async def list_due(self, conn: aiosqlite.Connection, now: datetime) -> List[Action]:
        """Return every active action whose expiry is before ``now``."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM actions WHERE active = 1 AND expiry IS NOT NULL AND expiry < ? "
            "ORDER BY guild_id, expiry",
            (to_unix(now),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_action(row) for row in rows]

    async def count_active(
        self, conn: aiosqlite.Connection, guild_id: int, user_id: int, kind: ActionKind
    ) -> int:
        async with conn.execute(
            "SELECT COUNT(*) FROM actions WHERE guild_id = ? AND user_id = ? AND kind = ? AND active = 1",
            (guild_id, user_id, kind.value),
        ) as cursor:
            row = await cursor.fetchone()
        return row[0] if row else 0

    async def list_for_user(
        self, conn: aiosqlite.Connection, guild_id: int, user_id: int, include_inactive: bool
    ) -> List[Action]:
        query = f"SELECT {_COLUMNS} FROM actions WHERE guild_id = ? AND user_id = ?"
        if not include_inactive:
            query += " AND active = 1"
        query += " ORDER BY created_at DESC, rowid DESC"
        async with conn.execute(query, (guild_id, user_id)) as cursor:
            rows = await cursor.fetchall()
        return [row_to_action(row) for row in rows]

    async def list_for_guild(self, conn: aiosqlite.Connection, guild_id: int) -> List[Action]:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM actions WHERE guild_id = ? ORDER BY created_at DESC, rowid DESC",
            (guild_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_action(row) for row in rows]

    async def list_for_moderator(
        self, conn: aiosqlite.Connection, guild_id: int, moderator_id: int
    ) -> List[Action]:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM actions WHERE guild_id = ? AND moderator_id = ? ORDER BY created_at DESC, rowid DESC",
            (guild_id, moderator_id),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_action(row) for row in rows]
