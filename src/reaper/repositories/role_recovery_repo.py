"""
Repository for the role_recovery and role_recovery_configuration tables.

A (guild, user, role) row records that the member held the role; the rows
are what gets granted back when the member rejoins.
"""

from __future__ import annotations

from typing import Iterable, Set

import aiosqlite

from reaper.util.logger import get_logger

logger = get_logger("role_recovery_repo")


class RoleRecoveryRepository:
    """CRUD for remembered member roles and the per-guild recovery toggle."""

    async def is_enabled(self, conn: aiosqlite.Connection, guild_id: int) -> bool:
        async with conn.execute(
            "SELECT enabled FROM role_recovery_configuration WHERE guild_id = ?",
            (guild_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return bool(row[0]) if row else False

    async def set_enabled(self, conn: aiosqlite.Connection, guild_id: int, enabled: bool) -> None:
        await conn.execute(
            """
            INSERT INTO role_recovery_configuration (guild_id, enabled) VALUES (?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET enabled = excluded.enabled
            """,
            (guild_id, int(enabled)),
        )

    async def list_roles(self, conn: aiosqlite.Connection, guild_id: int, user_id: int) -> Set[int]:
        async with conn.execute(
            "SELECT role_id FROM role_recovery WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        ) as cursor:
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def add_roles(
        self, conn: aiosqlite.Connection, guild_id: int, user_id: int, role_ids: Iterable[int]
    ) -> None:
        await conn.executemany(
            "INSERT OR IGNORE INTO role_recovery (guild_id, user_id, role_id) VALUES (?, ?, ?)",
            [(guild_id, user_id, role_id) for role_id in role_ids],
        )

    async def remove_roles(
        self, conn: aiosqlite.Connection, guild_id: int, user_id: int, role_ids: Iterable[int]
    ) -> None:
        await conn.executemany(
            "DELETE FROM role_recovery WHERE guild_id = ? AND user_id = ? AND role_id = ?",
            [(guild_id, user_id, role_id) for role_id in role_ids],
        )

    async def delete_for_guild(self, conn: aiosqlite.Connection, guild_id: int) -> None:
        await conn.execute("DELETE FROM role_recovery WHERE guild_id = ?", (guild_id,))
        await conn.execute("DELETE FROM role_recovery_configuration WHERE guild_id = ?", (guild_id,))
