"""
Moderation cog: slash commands that issue, withdraw and correct actions.

Every command follows the same shape:

- check the invoker's resolved permission set (``require_permission``);
- defer ephemerally and call one ``ActionEngine`` operation;
- render ``ActionError`` with its title and guidance, and anything else as
  a generic failure (logged with traceback).

Corrections (``/reason``, ``/duration``) accept an optional action id and
fall back to the invoker's most recent action when it is omitted.
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable

import discord
from discord import Option
from discord.ext import commands

from reaper.datatypes.action_datatypes import Action
from reaper.datatypes.permissions import Permission
from reaper.moderation import embeds
from reaper.moderation.action_engine import ActionEngine
from reaper.moderation.duration import Duration
from reaper.moderation.errors import ActionError, InvalidDuration
from reaper.permissions.resolver import PermissionResolver
from reaper.util.discord_utils import reply, reply_error, reply_unexpected, require_permission
from reaper.util.logger import get_logger

logger = get_logger("moderation_cmds")

NO_REASON = "No reason provided."


def parse_command_duration(text: str) -> Duration:
    """Parse a duration typed by a moderator, rejecting zero and overflowing spans."""
    duration = Duration.parse(text)
    if duration.is_zero:
        raise InvalidDuration(guidance=f"`{text}` is not a valid duration, try something like `30d` or `1d12h`.")
    if not duration.is_usable:
        raise InvalidDuration(guidance=f"`{text}` reaches past the end of the calendar.")
    return duration


class ModerationCog(commands.Cog):
    """Slash commands backed by the action engine."""

    def __init__(self, discord_bot_instance, engine: ActionEngine, resolver: PermissionResolver):
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        self.resolver = resolver
        logger.info("[MODERATION CMDS] Moderation cog loaded")

    async def _run(self, ctx: discord.ApplicationContext, operation: Callable[[], Awaitable[None]]) -> None:
        await ctx.defer(ephemeral=True)
        try:
            await operation()
        except ActionError as exc:
            await reply_error(ctx, exc)
        except Exception as exc:
            await reply_unexpected(ctx, exc)

    async def _check_target(self, ctx: discord.ApplicationContext, user: discord.abc.User) -> bool:
        if user.id == ctx.author.id:
            await reply(ctx, content="You cannot perform moderation actions on yourself.")
            return False
        if user.id == self.discord_bot_instance.user.id:
            await reply(ctx, content="I cannot perform moderation actions on myself.")
            return False
        return True

    async def _resolve_action(self, ctx: discord.ApplicationContext, action_id: str | None) -> Action:
        if action_id:
            return await self.engine.get_action(ctx.guild.id, action_id)
        return await self.engine.latest_action_by(ctx.guild.id, ctx.author.id)

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    @commands.slash_command(name="strike", description="Issue a strike to a user.")
    async def strike(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to strike.", required=True),  # type: ignore
        reason: Option(str, "Reason for the strike.", default=NO_REASON),  # type: ignore
        duration: Option(str, "How long the strike lasts, e.g. 30d. Defaults to the server setting.", default=None),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_STRIKE):
            return
        if not await self._check_target(ctx, user):
            return

        async def operation():
            parsed = parse_command_duration(duration) if duration else None
            issued = await self.engine.strike(ctx.guild.id, user.id, reason, ctx.author.id, parsed)
            await reply(ctx, embed=embeds.build_issued_embed(issued))

        await self._run(ctx, operation)

    @commands.slash_command(name="mute", description="Mute a user for a specified duration.")
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to mute.", required=True),  # type: ignore
        duration: Option(str, "How long the mute lasts, e.g. 1h or 2d.", required=True),  # type: ignore
        reason: Option(str, "Reason for the mute.", default=NO_REASON),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_MUTE):
            return
        if not await self._check_target(ctx, user):
            return

        async def operation():
            issued = await self.engine.mute(ctx.guild.id, user.id, reason, ctx.author.id, parse_command_duration(duration))
            await reply(ctx, embed=embeds.build_issued_embed(issued))

        await self._run(ctx, operation)

    @commands.slash_command(name="kick", description="Kick a user from the server.")
    async def kick(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to kick.", required=True),  # type: ignore
        reason: Option(str, "Reason for the kick.", default=NO_REASON),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_KICK):
            return
        if not await self._check_target(ctx, user):
            return

        async def operation():
            issued = await self.engine.kick(ctx.guild.id, user.id, reason, ctx.author.id)
            await reply(ctx, embed=embeds.build_issued_embed(issued))

        await self._run(ctx, operation)

    @commands.slash_command(name="ban", description="Ban a user from the server.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to ban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", default=NO_REASON),  # type: ignore
        duration: Option(str, "How long the ban lasts, e.g. 7d. Permanent when omitted.", default=None),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_BAN):
            return
        if not await self._check_target(ctx, user):
            return

        async def operation():
            parsed = parse_command_duration(duration) if duration else None
            issued = await self.engine.ban(ctx.guild.id, user.id, reason, ctx.author.id, parsed)
            await reply(ctx, embed=embeds.build_issued_embed(issued))

        await self._run(ctx, operation)

    # ------------------------------------------------------------------
    # Withdraw
    # ------------------------------------------------------------------

    @commands.slash_command(name="unmute", description="Remove a user's mute.")
    async def unmute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to unmute.", required=True),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_UNMUTE):
            return

        async def operation():
            count = await self.engine.unmute(ctx.guild.id, user.id, ctx.author.id)
            await reply(ctx, content=f"{user.mention} has been unmuted ({count} active mute(s) expired).")

        await self._run(ctx, operation)

    @commands.slash_command(name="unban", description="Lift a user's ban.")
    async def unban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to unban.", required=True),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_UNBAN):
            return

        async def operation():
            count = await self.engine.unban(ctx.guild.id, user.id, ctx.author.id)
            await reply(ctx, content=f"<@{user.id}> has been unbanned ({count} active ban(s) expired).")

        await self._run(ctx, operation)

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    @commands.slash_command(name="expire", description="Expire an action now.")
    async def expire(
        self,
        ctx: discord.ApplicationContext,
        action_id: Option(str, "ID of the action to expire.", required=True),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_EXPIRE):
            return

        async def operation():
            action = await self.engine.expire_manually(ctx.guild.id, action_id)
            await reply(ctx, content=f"The action with ID `{action.id}` has been expired.")

        await self._run(ctx, operation)

    @commands.slash_command(name="remove", description="Delete an action from the record.")
    async def remove(
        self,
        ctx: discord.ApplicationContext,
        action_id: Option(str, "ID of the action to remove.", required=True),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_REMOVE):
            return

        async def operation():
            action = await self.engine.remove(ctx.guild.id, action_id)
            await reply(ctx, content=f"The action with ID `{action.id}` has been removed.")

        await self._run(ctx, operation)

    @commands.slash_command(name="reason", description="Change the reason of an action.")
    async def reason(
        self,
        ctx: discord.ApplicationContext,
        reason: Option(str, "The new reason.", required=True),  # type: ignore
        action_id: Option(str, "ID of the action. Defaults to your latest action.", default=None),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_REASON):
            return

        async def operation():
            action = await self._resolve_action(ctx, action_id)
            action = await self.engine.update_reason(ctx.guild.id, action.id, reason)
            await reply(ctx, content=f"The reason of action `{action.id}` has been updated to {reason}")

        await self._run(ctx, operation)

    @commands.slash_command(name="duration", description="Change when an action expires.")
    async def duration(
        self,
        ctx: discord.ApplicationContext,
        duration: Option(str, "New duration counted from now, e.g. 14d.", default=None),  # type: ignore
        permanent: Option(bool, "Make the action permanent instead.", default=False),  # type: ignore
        action_id: Option(str, "ID of the action. Defaults to your latest action.", default=None),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_DURATION):
            return

        async def operation():
            if permanent:
                expiry = None
            elif duration:
                expiry = parse_command_duration(duration).to_instant(datetime.now(timezone.utc))
            else:
                raise InvalidDuration(guidance="Provide a duration or set `permanent`.")

            action = await self._resolve_action(ctx, action_id)
            action = await self.engine.update_expiry(ctx.guild.id, action.id, expiry)
            await reply(
                ctx,
                content=f"The action `{action.id}` will now expire on {embeds.format_expiry(action.expiry)}",
            )

        await self._run(ctx, operation)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    @commands.slash_command(name="search", description="Look up moderation actions.")
    async def search(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "Whose actions to list. Defaults to yourself.", default=None),  # type: ignore
        expired: Option(bool, "Include expired actions.", default=False),  # type: ignore
        action_id: Option(str, "Look up a single action by ID instead.", default=None),  # type: ignore
    ) -> None:
        if action_id:
            if not await require_permission(ctx, self.resolver, Permission.MODERATION_SEARCH_UUID):
                return

            async def lookup():
                action = await self.engine.get_action(ctx.guild.id, action_id)
                await reply(ctx, embed=embeds.build_search_embed(action.target_user_id, [action], True))

            await self._run(ctx, lookup)
            return

        target_id = user.id if user else ctx.author.id
        if target_id == ctx.author.id:
            required = Permission.MODERATION_SEARCH_SELF_EXPIRED if expired else Permission.MODERATION_SEARCH_SELF
        else:
            required = Permission.MODERATION_SEARCH_OTHERS_EXPIRED if expired else Permission.MODERATION_SEARCH_OTHERS

        if not await require_permission(ctx, self.resolver, required):
            return

        async def operation():
            actions = await self.engine.search(ctx.guild.id, target_id, include_expired=expired)
            await reply(ctx, embed=embeds.build_search_embed(target_id, actions, expired))

        await self._run(ctx, operation)


def setup(discord_bot_instance, engine: ActionEngine, resolver: PermissionResolver):
    discord_bot_instance.add_cog(ModerationCog(discord_bot_instance, engine, resolver))
