"""
GuildConfigService: per-guild moderation config, logging config and
strike escalation rules.

The action engine only reads through this service. The write methods back
the ``/config`` commands; ``replace_escalations`` is a
delete-all-then-reinsert inside one transaction and is not guarded against
two admins editing the same guild at once.

Database errors surface as ``PersistenceFailed``, as in ``ActionStore``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import aiosqlite

from reaper.database.db_connection import ConnectionManager, db_connection
from reaper.datatypes.action_datatypes import ActionKind, EscalationRule
from reaper.datatypes.guild_config import LogCategory, LoggingConfig, ModerationConfig
from reaper.moderation.errors import PersistenceFailed
from reaper.repositories import EscalationRepository, GuildConfigRepository
from reaper.util.logger import get_logger

logger = get_logger("guild_config_service")

ESCALATION_KINDS = (ActionKind.MUTE, ActionKind.KICK, ActionKind.BAN)


class GuildConfigService:
    """Reads and writes guild configuration through the repositories."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection
        self._config_repo = GuildConfigRepository()
        self._escalation_repo = EscalationRepository()

    @asynccontextmanager
    async def _reading(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._connection.read() as conn:
                yield conn
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[GUILD CONFIG] %s failed: %s", operation, exc)
            raise PersistenceFailed(f"{operation}: {exc}") from exc

    @asynccontextmanager
    async def _writing(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._connection.transaction() as conn:
                yield conn
        except (aiosqlite.Error, RuntimeError) as exc:
            logger.error("[GUILD CONFIG] %s failed: %s", operation, exc)
            raise PersistenceFailed(f"{operation}: {exc}") from exc

    # ------------------------------------------------------------------
    # Moderation configuration
    # ------------------------------------------------------------------

    async def get_moderation_config(self, guild_id: int) -> Optional[ModerationConfig]:
        async with self._reading("get moderation config") as conn:
            return await self._config_repo.get_moderation(conn, guild_id)

    async def set_moderation_config(self, config: ModerationConfig) -> None:
        async with self._writing("save moderation config") as conn:
            await self._config_repo.upsert_moderation(conn, config)
        logger.debug("[GUILD CONFIG] Saved moderation configuration for guild %s", config.guild_id)

    # ------------------------------------------------------------------
    # Logging configuration
    # ------------------------------------------------------------------

    async def get_logging_config(self, guild_id: int) -> Optional[LoggingConfig]:
        async with self._reading("get logging config") as conn:
            return await self._config_repo.get_logging(conn, guild_id)

    async def set_logging_config(self, config: LoggingConfig) -> None:
        async with self._writing("save logging config") as conn:
            await self._config_repo.upsert_logging(conn, config)
        logger.debug("[GUILD CONFIG] Saved logging configuration for guild %s", config.guild_id)

    async def resolve_log_channel(self, guild_id: int, category: LogCategory) -> Optional[int]:
        """Return the channel that ``category`` logs go to, or None when disabled."""
        config = await self.get_logging_config(guild_id)
        if config is None:
            return None
        return config.channel_for(category)

    # ------------------------------------------------------------------
    # Strike escalations
    # ------------------------------------------------------------------

    async def list_escalations(self, guild_id: int) -> List[EscalationRule]:
        async with self._reading("list escalations") as conn:
            return await self._escalation_repo.list_for_guild(conn, guild_id)

    async def replace_escalations(self, guild_id: int, rules: List[EscalationRule]) -> None:
        """Replace the guild's whole rule set.

        Raises:
            ValueError: If a rule escalates to a strike, repeats a strike
                count, or is a mute without a duration.
            PersistenceFailed: If the rules could not be written.
        """
        seen = set()
        for rule in rules:
            if rule.action_kind not in ESCALATION_KINDS:
                raise ValueError(f"Escalation at {rule.strike_count} strikes cannot issue a {rule.action_kind}")
            if rule.action_kind is ActionKind.MUTE and not rule.action_duration:
                raise ValueError(f"Mute escalation at {rule.strike_count} strikes needs a duration")
            if rule.strike_count in seen:
                raise ValueError(f"Duplicate escalation for {rule.strike_count} strikes")
            seen.add(rule.strike_count)

        async with self._writing("replace escalations") as conn:
            await self._escalation_repo.replace(conn, guild_id, rules)
        logger.info("[GUILD CONFIG] Replaced %d escalation rules for guild %s", len(rules), guild_id)
