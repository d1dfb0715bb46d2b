"""
Role recovery listener: remembers member roles and grants them back when
the member rejoins.

A member who rejoins while a mute is still active gets the mute role back
whether or not role recovery is enabled, so leaving and rejoining does not
lift a mute.
"""

from __future__ import annotations

from typing import Iterable, List, Set

import discord
from discord.ext import commands

from reaper.datatypes.action_datatypes import ActionKind
from reaper.moderation.errors import ActionError, PlatformEffectFailed
from reaper.moderation.platform import PlatformClient
from reaper.services.action_store import ActionStore
from reaper.services.guild_config_service import GuildConfigService
from reaper.services.role_recovery_service import RoleRecoveryService
from reaper.util.logger import get_logger

logger = get_logger("role_recovery_listener")

RECOVERY_REASON = "Role recovery on rejoin"


def recoverable_role_ids(member: discord.Member) -> Set[int]:
    """Role IDs worth remembering: not @everyone and not integration-managed."""
    guild_id = member.guild.id
    return {role.id for role in member.roles if role.id != guild_id and not role.managed}


class RoleRecoveryCog(commands.Cog):
    """Tracks member roles and restores them, and any active mute, on rejoin."""

    def __init__(
        self,
        discord_bot_instance,
        recovery_service: RoleRecoveryService,
        config_service: GuildConfigService,
        store: ActionStore,
        platform: PlatformClient,
    ):
        self.discord_bot_instance = discord_bot_instance
        self.recovery_service = recovery_service
        self.config_service = config_service
        self.store = store
        self.platform = platform
        logger.info("[ROLE RECOVERY] Role recovery listener loaded")

    async def roles_to_restore(self, guild_id: int, user_id: int) -> List[int]:
        """Role IDs a rejoining member should be granted, mute role last."""
        moderation = await self.config_service.get_moderation_config(guild_id)
        mute_role = moderation.mute_role if moderation else None

        roles: List[int] = []
        if await self.recovery_service.is_enabled(guild_id):
            stored = await self.recovery_service.roles_for(guild_id, user_id)
            roles.extend(sorted(role for role in stored if role != mute_role))

        if mute_role is not None and await self.store.count_active(guild_id, user_id, ActionKind.MUTE) > 0:
            roles.append(mute_role)
        return roles

    async def _grant_all(self, guild_id: int, user_id: int, role_ids: Iterable[int]) -> int:
        granted = 0
        for role_id in role_ids:
            try:
                await self.platform.grant_role(guild_id, user_id, role_id, RECOVERY_REASON)
            except PlatformEffectFailed as exc:
                logger.warning(
                    "[ROLE RECOVERY] Could not restore role %s to %s in guild %s: %s",
                    role_id, user_id, guild_id, exc.detail,
                )
                continue
            granted += 1
        return granted

    async def handle_join(self, guild_id: int, user_id: int) -> int:
        """Grant a rejoining member their roles back; returns how many were granted."""
        try:
            roles = await self.roles_to_restore(guild_id, user_id)
        except ActionError as exc:
            logger.error("[ROLE RECOVERY] Could not look up roles for %s in guild %s: %s", user_id, guild_id, exc.title)
            return 0
        if not roles:
            return 0

        granted = await self._grant_all(guild_id, user_id, roles)
        logger.info("[ROLE RECOVERY] Restored %d/%d roles to %s in guild %s", granted, len(roles), user_id, guild_id)
        return granted

    async def handle_role_change(self, guild_id: int, user_id: int, role_ids: Set[int]) -> None:
        try:
            await self.recovery_service.sync_roles(guild_id, user_id, role_ids)
        except ActionError as exc:
            logger.error("[ROLE RECOVERY] Could not store roles of %s in guild %s: %s", user_id, guild_id, exc.title)

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        after_roles = recoverable_role_ids(after)
        if recoverable_role_ids(before) == after_roles:
            return
        await self.handle_role_change(after.guild.id, after.id, after_roles)

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        await self.handle_join(member.guild.id, member.id)

    @commands.Cog.listener()
    async def on_guild_remove(self, guild: discord.Guild) -> None:
        try:
            await self.recovery_service.forget_guild(guild.id)
        except ActionError as exc:
            logger.error("[ROLE RECOVERY] Could not forget guild %s: %s", guild.id, exc.title)


def setup(
    discord_bot_instance,
    recovery_service: RoleRecoveryService,
    config_service: GuildConfigService,
    store: ActionStore,
    platform: PlatformClient,
):
    discord_bot_instance.add_cog(
        RoleRecoveryCog(discord_bot_instance, recovery_service, config_service, store, platform)
    )
