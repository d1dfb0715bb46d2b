"""
Repository for the moderation_configuration and logging_configuration tables.
"""

from __future__ import annotations

from typing import Optional

import aiosqlite

from reaper.datatypes.guild_config import LoggingConfig, ModerationConfig
from reaper.util.logger import get_logger

logger = get_logger("guild_config_repo")


class GuildConfigRepository:
    """CRUD for per-guild moderation and logging configuration rows."""

    async def get_moderation(
        self, conn: aiosqlite.Connection, guild_id: int
    ) -> Optional[ModerationConfig]:
        async with conn.execute(
            "SELECT guild_id, mute_role, default_strike_duration "
            "FROM moderation_configuration WHERE guild_id = ?",
            (guild_id,),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return ModerationConfig(guild_id=row[0], mute_role=row[1], default_strike_duration=row[2])

    async def upsert_moderation(self, conn: aiosqlite.Connection, config: ModerationConfig) -> None:
        await conn.execute(
            """
            INSERT INTO moderation_configuration (guild_id, mute_role, default_strike_duration)
            VALUES (?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                mute_role = excluded.mute_role,
                default_strike_duration = excluded.default_strike_duration
            """,
            (config.guild_id, config.mute_role, config.default_strike_duration),
        )

    async def get_logging(
        self, conn: aiosqlite.Connection, guild_id: int
    ) -> Optional[LoggingConfig]:
        async with conn.execute(
            """
            SELECT guild_id, log_actions, log_messages, log_voice, log_channel,
                   log_action_channel, log_message_channel, log_voice_channel
            FROM logging_configuration WHERE guild_id = ?
            """,
            (guild_id,),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None
        return LoggingConfig(
            guild_id=row[0],
            log_actions=bool(row[1]),
            log_messages=bool(row[2]),
            log_voice=bool(row[3]),
            log_channel=row[4],
            log_action_channel=row[5],
            log_message_channel=row[6],
            log_voice_channel=row[7],
        )

    async def upsert_logging(self, conn: aiosqlite.Connection, config: LoggingConfig) -> None:
        await conn.execute(
            """
            INSERT INTO logging_configuration (
                guild_id, log_actions, log_messages, log_voice, log_channel,
                log_action_channel, log_message_channel, log_voice_channel
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                log_actions = excluded.log_actions,
                log_messages = excluded.log_messages,
                log_voice = excluded.log_voice,
                log_channel = excluded.log_channel,
                log_action_channel = excluded.log_action_channel,
                log_message_channel = excluded.log_message_channel,
                log_voice_channel = excluded.log_voice_channel
            """,
            (
                config.guild_id,
                int(config.log_actions),
                int(config.log_messages),
                int(config.log_voice),
                config.log_channel,
                config.log_action_channel,
                config.log_message_channel,
                config.log_voice_channel,
            ),
        )

    async def delete_for_guild(self, conn: aiosqlite.Connection, guild_id: int) -> None:
        await conn.execute("DELETE FROM moderation_configuration WHERE guild_id = ?", (guild_id,))
        await conn.execute("DELETE FROM logging_configuration WHERE guild_id = ?", (guild_id,))
