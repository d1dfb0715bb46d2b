"""
discord_utils.py
================

Stateless helpers shared by the slash command cogs: guild-context and
permission pre-checks, and rendering of ``ActionError`` replies.
"""

import discord

from reaper.datatypes.permissions import Permission
from reaper.moderation.errors import ActionError
from reaper.permissions.resolver import Actor, PermissionResolver
from reaper.util.logger import get_logger

logger = get_logger("discord_utils")

ERROR_COLOR = discord.Color(0xF54029)

PERMISSION_CHOICES = [permission.value for permission in Permission]


def build_error_embed(error: ActionError) -> discord.Embed:
    embed = discord.Embed(title=error.title, color=ERROR_COLOR)
    if error.guidance:
        embed.description = error.guidance
    return embed


async def reply(ctx: discord.ApplicationContext, *, content=None, embed=None) -> None:
    """Answer ephemerally, following up if the interaction was already deferred."""
    kwargs = {"ephemeral": True}
    if content is not None:
        kwargs["content"] = content
    if embed is not None:
        kwargs["embed"] = embed

    if ctx.response.is_done():
        await ctx.send_followup(**kwargs)
    else:
        await ctx.respond(**kwargs)


async def reply_error(ctx: discord.ApplicationContext, error: ActionError) -> None:
    await reply(ctx, embed=build_error_embed(error))


async def reply_unexpected(ctx: discord.ApplicationContext, exc: Exception) -> None:
    logger.exception("Unexpected error while handling /%s: %s", ctx.command.qualified_name, exc)
    try:
        await reply(ctx, content="An error occurred while processing the command.")
    except discord.HTTPException:
        logger.error("Failed to send error response to user.")


async def ensure_guild_context(ctx: discord.ApplicationContext) -> bool:
    if ctx.guild is None:
        await reply(ctx, content="This command can only be used in a server.")
        return False
    return True


async def require_permission(
    ctx: discord.ApplicationContext,
    resolver: PermissionResolver,
    permission: Permission,
) -> bool:
    """
    Check the invoker holds ``permission`` in the current guild.

    Replies ephemerally and returns False when they do not, so commands can
    simply ``return`` after a failed check.
    """
    if not await ensure_guild_context(ctx):
        return False

    actor = Actor.from_member(ctx.author)
    if await resolver.has(ctx.guild.id, ctx.guild.owner_id, actor, permission):
        return True

    logger.debug("[PERMISSIONS] %s lacks %s in guild %s", ctx.author.id, permission, ctx.guild.id)
    await reply(ctx, content=f"You do not have permission to use this command (`{permission}`).")
    return False
