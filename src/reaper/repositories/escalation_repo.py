"""
Repository for the ``strike_escalations`` table.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from reaper.datatypes.action_datatypes import ActionKind, EscalationRule
from reaper.util.logger import get_logger

logger = get_logger("escalation_repo")


class EscalationRepository:
    """CRUD for per-guild strike escalation rules."""

    async def list_for_guild(self, conn: aiosqlite.Connection, guild_id: int) -> List[EscalationRule]:
        """Return the guild's rules ordered by strike count."""
        async with conn.execute(
            "SELECT guild_id, strike_count, action_kind, action_duration "
            "FROM strike_escalations WHERE guild_id = ? ORDER BY strike_count",
            (guild_id,),
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            EscalationRule(
                guild_id=row[0],
                strike_count=row[1],
                action_kind=ActionKind(row[2]),
                action_duration=row[3],
            )
            for row in rows
        ]

    async def replace(
        self, conn: aiosqlite.Connection, guild_id: int, rules: List[EscalationRule]
    ) -> None:
        """Delete every rule for the guild, then insert ``rules``."""
        await conn.execute("DELETE FROM strike_escalations WHERE guild_id = ?", (guild_id,))
        if rules:
            await conn.executemany(
                "INSERT INTO strike_escalations (guild_id, strike_count, action_kind, action_duration) "
                "VALUES (?, ?, ?, ?)",
                [(guild_id, r.strike_count, r.action_kind.value, r.action_duration) for r in rules],
            )
