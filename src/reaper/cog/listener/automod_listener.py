"""
Automod listener: turns platform auto-moderation hits into strikes.

Only rules whose name contains "strike" (any case) are acted on. The strike
is attributed to the system moderator and goes through the normal engine
pipeline, so escalation applies.

A single rule hit fires one execution event per configured rule action
(block, alert, timeout...). Events for the same guild, rule, user and
content within ``DEDUPE_SECONDS`` are treated as one hit.
"""

from __future__ import annotations

import time
from typing import Dict, Tuple

import discord
from discord.ext import commands

from reaper.moderation.action_engine import ActionEngine
from reaper.moderation.errors import ActionError
from reaper.util.logger import get_logger

logger = get_logger("automod_listener")

DEDUPE_SECONDS = 10.0

HitKey = Tuple[int, int, int, str]


def is_strike_rule(rule_name: str) -> bool:
    return "strike" in rule_name.lower()


def automod_reason(rule_name: str) -> str:
    return f'Violated "{rule_name}" automod rule'


class AutomodListenerCog(commands.Cog):
    """Routes auto-moderation executions into the action engine."""

    def __init__(self, discord_bot_instance, engine: ActionEngine):
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        self._recent: Dict[HitKey, float] = {}
        logger.info("[AUTOMOD] Automod listener loaded")

    def _is_duplicate(self, key: HitKey) -> bool:
        now = time.monotonic()
        self._recent = {k: seen for k, seen in self._recent.items() if now - seen < DEDUPE_SECONDS}
        if key in self._recent:
            return True
        self._recent[key] = now
        return False

    async def _fetch_rule_name(self, guild_id: int, rule_id: int) -> str | None:
        guild = self.discord_bot_instance.get_guild(guild_id)
        if guild is None:
            logger.error("[AUTOMOD] Could not get guild %s from cache", guild_id)
            return None
        try:
            rule = await guild.fetch_auto_moderation_rule(rule_id)
        except discord.HTTPException as exc:
            logger.error("[AUTOMOD] Could not get automod rule %s from guild %s: %s", rule_id, guild_id, exc)
            return None
        return rule.name

    async def handle_execution(self, guild_id: int, rule_id: int, user_id: int, content: str = "") -> bool:
        """Strike the user if the rule is a strike rule; returns whether a strike was issued."""
        rule_name = await self._fetch_rule_name(guild_id, rule_id)
        if rule_name is None or not is_strike_rule(rule_name):
            return False

        if self._is_duplicate((guild_id, rule_id, user_id, content or "")):
            logger.debug("[AUTOMOD] Ignoring duplicate execution of rule %s for %s", rule_id, user_id)
            return False

        try:
            await self.engine.strike(guild_id, user_id, automod_reason(rule_name))
        except ActionError as exc:
            logger.error("[AUTOMOD] Could not strike %s in guild %s: %s", user_id, guild_id, exc.title)
            return False

        logger.info("[AUTOMOD] Struck %s in guild %s for rule %r", user_id, guild_id, rule_name)
        return True

    @commands.Cog.listener()
    async def on_auto_moderation_action_execution(self, payload: discord.AutoModActionExecutionEvent) -> None:
        await self.handle_execution(payload.guild_id, payload.rule_id, payload.user_id, payload.content or "")


def setup(discord_bot_instance, engine: ActionEngine):
    discord_bot_instance.add_cog(AutomodListenerCog(discord_bot_instance, engine))
