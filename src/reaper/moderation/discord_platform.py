"""
py-cord implementations of the platform collaborator interfaces.

Cache lookups are tried first and the REST API is used as a fallback.
``discord.HTTPException`` (which covers Forbidden and NotFound) is turned
into ``PlatformEffectFailed`` for effects and into ``False`` for the
best-effort channels.
"""

from __future__ import annotations

from typing import Optional

import discord

from reaper.moderation.errors import PlatformEffectFailed
from reaper.util.logger import get_logger

logger = get_logger("discord_platform")


class DiscordPlatformClient:
    """Bans, kicks and role changes through a ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def _guild(self, guild_id: int) -> discord.Guild:
        guild = self.bot.get_guild(guild_id)
        if guild is not None:
            return guild
        try:
            return await self.bot.fetch_guild(guild_id)
        except discord.HTTPException as exc:
            raise PlatformEffectFailed(f"Could not obtain guild {guild_id}: {exc}") from exc

    async def _member(self, guild: discord.Guild, user_id: int) -> discord.Member:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.HTTPException as exc:
            raise PlatformEffectFailed(f"User {user_id} is not a member of this server: {exc}") from exc

    async def ban(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.ban(discord.Object(id=user_id), reason=reason)
        except discord.HTTPException as exc:
            logger.error("[DISCORD PLATFORM] Failed to ban %s in guild %s: %s", user_id, guild_id, exc)
            raise PlatformEffectFailed(f"Could not ban user: {exc}") from exc

    async def unban(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.unban(discord.Object(id=user_id), reason=reason)
        except discord.HTTPException as exc:
            logger.error("[DISCORD PLATFORM] Failed to unban %s in guild %s: %s", user_id, guild_id, exc)
            raise PlatformEffectFailed(f"Could not unban user: {exc}") from exc

    async def kick(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = await self._guild(guild_id)
        try:
            await guild.kick(discord.Object(id=user_id), reason=reason)
        except discord.HTTPException as exc:
            logger.error("[DISCORD PLATFORM] Failed to kick %s in guild %s: %s", user_id, guild_id, exc)
            raise PlatformEffectFailed(f"Could not kick user: {exc}") from exc

    async def grant_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        try:
            await member.add_roles(discord.Object(id=role_id), reason=reason)
        except discord.HTTPException as exc:
            logger.error("[DISCORD PLATFORM] Failed to add role %s to %s: %s", role_id, user_id, exc)
            raise PlatformEffectFailed(f"Could not add the mute role: {exc}") from exc

    async def revoke_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        try:
            await member.remove_roles(discord.Object(id=role_id), reason=reason)
        except discord.HTTPException as exc:
            logger.error("[DISCORD PLATFORM] Failed to remove role %s from %s: %s", role_id, user_id, exc)
            raise PlatformEffectFailed(f"Could not remove the mute role: {exc}") from exc

    def guild_name(self, guild_id: int) -> Optional[str]:
        guild = self.bot.get_guild(guild_id)
        return guild.name if guild is not None else None


class DiscordDirectNotifier:
    """Direct messages through a ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def send_direct_message(self, user_id: int, embed: discord.Embed) -> bool:
        try:
            user = self.bot.get_user(user_id) or await self.bot.fetch_user(user_id)
            await user.send(embed=embed)
        except discord.HTTPException as exc:
            logger.warning("[DISCORD PLATFORM] Could not DM user %s: %s", user_id, exc)
            return False
        return True


class DiscordAuditLogPublisher:
    """Guild log channel posts through a ``discord.Bot``."""

    def __init__(self, bot: discord.Bot) -> None:
        self.bot = bot

    async def publish(self, channel_id: int, embed: discord.Embed) -> bool:
        try:
            channel = self.bot.get_channel(channel_id) or await self.bot.fetch_channel(channel_id)
            await channel.send(embed=embed)
        except (discord.HTTPException, AttributeError) as exc:
            logger.warning("[DISCORD PLATFORM] Could not post to log channel %s: %s", channel_id, exc)
            return False
        return True
