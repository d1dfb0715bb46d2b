"""
Permissions cog: grant, revoke and view bot permissions for users and roles.

Viewing needs ``permissions.view``; granting and revoking need
``permissions.edit``. Owners and administrators always hold every
permission, so grants only matter for everyone else.
"""

import discord
from discord import Option
from discord.ext import commands

from reaper.datatypes.permissions import Permission
from reaper.permissions.resolver import PermissionResolver
from reaper.util.discord_utils import PERMISSION_CHOICES, reply, reply_unexpected, require_permission
from reaper.util.logger import get_logger

logger = get_logger("permissions_cmds")

PERMISSIONS_COLOR = discord.Color(0x0ABFD6)


def build_permissions_embed(subject_mention: str, permissions) -> discord.Embed:
    names = sorted(str(permission) for permission in permissions)
    embed = discord.Embed(title="Permissions", description=subject_mention, color=PERMISSIONS_COLOR)
    embed.add_field(
        name=f"Granted ({len(names)})",
        value="\n".join(f"`{name}`" for name in names) if names else "None",
        inline=False,
    )
    return embed


class PermissionsCog(commands.Cog):
    """Grant management for the fine-grained permission model."""

    permissions = discord.SlashCommandGroup("permissions", "Manage bot permissions for users and roles.")

    def __init__(self, discord_bot_instance, resolver: PermissionResolver):
        self.discord_bot_instance = discord_bot_instance
        self.resolver = resolver
        logger.info("[PERMISSIONS CMDS] Permissions cog loaded")

    async def _change(self, ctx, subject: str, target, permission_name: str, grant: bool) -> None:
        if not await require_permission(ctx, self.resolver, Permission.PERMISSIONS_EDIT):
            return

        permission = Permission.from_name(permission_name)
        if permission is None:
            await reply(ctx, content=f"`{permission_name}` is not a known permission.")
            return

        try:
            if grant:
                changed = await self.resolver.grant(subject, ctx.guild.id, target.id, [permission])
                message = f"Granted `{permission}` to {target.mention}." if changed else f"{target.mention} already has `{permission}`."
            else:
                changed = await self.resolver.revoke(subject, ctx.guild.id, target.id, [permission])
                message = f"Revoked `{permission}` from {target.mention}." if changed else f"{target.mention} did not have `{permission}`."
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return

        await reply(ctx, content=message)

    @permissions.command(name="grant_user", description="Grant a permission to a user.")
    async def grant_user(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to grant to.", required=True),  # type: ignore
        permission: Option(str, "The permission to grant.", choices=PERMISSION_CHOICES),  # type: ignore
    ) -> None:
        await self._change(ctx, "user", user, permission, grant=True)

    @permissions.command(name="grant_role", description="Grant a permission to a role.")
    async def grant_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "The role to grant to.", required=True),  # type: ignore
        permission: Option(str, "The permission to grant.", choices=PERMISSION_CHOICES),  # type: ignore
    ) -> None:
        await self._change(ctx, "role", role, permission, grant=True)

    @permissions.command(name="revoke_user", description="Revoke a permission from a user.")
    async def revoke_user(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to revoke from.", required=True),  # type: ignore
        permission: Option(str, "The permission to revoke.", choices=PERMISSION_CHOICES),  # type: ignore
    ) -> None:
        await self._change(ctx, "user", user, permission, grant=False)

    @permissions.command(name="revoke_role", description="Revoke a permission from a role.")
    async def revoke_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "The role to revoke from.", required=True),  # type: ignore
        permission: Option(str, "The permission to revoke.", choices=PERMISSION_CHOICES),  # type: ignore
    ) -> None:
        await self._change(ctx, "role", role, permission, grant=False)

    @permissions.command(name="view_user", description="Show the permissions granted directly to a user.")
    async def view_user(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to inspect.", required=True),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.PERMISSIONS_VIEW):
            return
        granted = await self.resolver.list_user(ctx.guild.id, user.id)
        await reply(ctx, embed=build_permissions_embed(user.mention, granted))

    @permissions.command(name="view_role", description="Show the permissions granted to a role.")
    async def view_role(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "The role to inspect.", required=True),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.PERMISSIONS_VIEW):
            return
        granted = await self.resolver.list_role(ctx.guild.id, role.id)
        await reply(ctx, embed=build_permissions_embed(role.mention, granted))


def setup(discord_bot_instance, resolver: PermissionResolver):
    discord_bot_instance.add_cog(PermissionsCog(discord_bot_instance, resolver))
