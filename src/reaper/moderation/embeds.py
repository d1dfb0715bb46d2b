"""
Embed builders for moderation notices.

The same three fields (Moderator, Reason, Expires) appear on the direct
message to the target, the guild log post and the command reply, so they
are built once here.
"""

from __future__ import annotations

import datetime
from typing import List, Optional

import discord

from reaper.datatypes.action_datatypes import Action, ActionKind, IssuedAction

ACTION_COLORS = {
    ActionKind.STRIKE: discord.Color(0xEB966D),
    ActionKind.MUTE: discord.Color(0x2E4045),
    ActionKind.KICK: discord.Color(0x000080),
    ActionKind.BAN: discord.Color(0xF54029),
}
UPDATE_COLOR = discord.Color(0x0ABFD6)
EXPIRE_COLOR = discord.Color(0x2E4045)
UNMUTE_COLOR = discord.Color(0xD1BFBA)

MAX_EMBED_FIELDS = 25

# (title of the DM, verb used in "You've been <verb> in <guild>")
DM_WORDING = {
    ActionKind.STRIKE: ("Strike received", "issued a strike"),
    ActionKind.MUTE: ("Muted!", "muted"),
    ActionKind.KICK: ("Kicked!", "kicked"),
    ActionKind.BAN: ("Banned!", "banned"),
}

# (title of the log post, past-tense verb for the description and footer)
LOG_WORDING = {
    ActionKind.STRIKE: ("Strike issued", "striked"),
    ActionKind.MUTE: ("Mute issued", "muted"),
    ActionKind.KICK: ("User kicked", "kicked"),
    ActionKind.BAN: ("User banned", "banned"),
}


def format_expiry(expiry: Optional[datetime.datetime]) -> str:
    if expiry is None:
        return "Never"
    return f"<t:{int(expiry.timestamp())}:F>"


def add_action_fields(embed: discord.Embed, action: Action) -> discord.Embed:
    embed.add_field(name="Moderator", value=f"<@{action.moderator_id}>", inline=True)
    embed.add_field(name="Reason", value=action.reason, inline=True)
    if action.kind is not ActionKind.KICK:
        embed.add_field(name="Expires", value=format_expiry(action.expiry), inline=True)
    return embed


def build_dm_embed(action: Action, guild_name: Optional[str]) -> discord.Embed:
    """Notice sent to the target user."""
    title, verb = DM_WORDING[action.kind]
    if guild_name:
        description = f"You've been {verb} in {guild_name}"
    else:
        description = f"A server has {verb} you"

    embed = discord.Embed(title=title, description=description, color=ACTION_COLORS[action.kind])
    add_action_fields(embed, action)
    embed.set_footer(text=f"If you wish to appeal, please refer to the following action ID: {action.id}")
    return embed


def build_log_embed(action: Action) -> discord.Embed:
    """Summary posted to the guild's action log channel."""
    title, verb = LOG_WORDING[action.kind]
    if action.kind is ActionKind.STRIKE:
        description = f"<@{action.target_user_id}> has been issued a strike"
    else:
        description = f"<@{action.target_user_id}> has been {verb}"

    embed = discord.Embed(title=title, description=description, color=ACTION_COLORS[action.kind])
    add_action_fields(embed, action)
    embed.set_footer(text=f"User {action.target_user_id} {verb} | UUID: {action.id}")
    return embed


def build_update_log_embed(
    title: str,
    description: str,
    action_id: Optional[str] = None,
    color: discord.Color = UPDATE_COLOR,
) -> discord.Embed:
    """Log post for corrections and manual expiry/removal/unmute/unban."""
    embed = discord.Embed(title=title, description=description, color=color)
    if action_id is not None:
        embed.set_footer(text=f"{title} | UUID: {action_id}")
    return embed


def build_issued_embed(issued: IssuedAction) -> discord.Embed:
    """Confirmation shown to the moderator who issued an action."""
    action = issued.action
    title, _ = LOG_WORDING[action.kind]
    embed = discord.Embed(
        title=title,
        description=f"<@{action.target_user_id}>",
        color=ACTION_COLORS[action.kind],
    )
    add_action_fields(embed, action)

    if not issued.dm_notified:
        embed.add_field(name="Notice", value="The user could not be sent a direct message", inline=False)

    escalation = issued.escalation
    if escalation is not None:
        kind = escalation.rule.action_kind.label
        if escalation.succeeded:
            value = f"{kind} issued (`{escalation.issued.action.id}`)"
        else:
            value = f"{kind} failed: {getattr(escalation.error, 'title', escalation.error)}"
        embed.add_field(name=f"Escalation at {escalation.rule.strike_count} strikes", value=value, inline=False)

    embed.set_footer(text=f"UUID: {action.id}")
    return embed


def build_search_embed(user_id: int, actions: List[Action], include_expired: bool) -> discord.Embed:
    """List of a user's actions, newest first, capped at the embed field limit."""
    heading = "All actions" if include_expired else "Active actions"
    embed = discord.Embed(
        title=f"{heading} ({len(actions)})",
        description=f"<@{user_id}>",
        color=UPDATE_COLOR,
    )
    if not actions:
        embed.description = f"<@{user_id}> has no {'recorded' if include_expired else 'active'} actions"
        return embed

    for action in actions[:MAX_EMBED_FIELDS]:
        state = "" if action.active else " (expired)"
        lines = [
            f"Moderator: <@{action.moderator_id}>",
            f"Reason: {action.reason}",
            f"Issued: <t:{int(action.created_at.timestamp())}:F>",
        ]
        if action.kind is not ActionKind.KICK:
            lines.append(f"Expires: {format_expiry(action.expiry)}")
        embed.add_field(name=f"{action.kind.label}{state} | {action.id}", value="\n".join(lines), inline=False)

    if len(actions) > MAX_EMBED_FIELDS:
        embed.set_footer(text=f"Showing the {MAX_EMBED_FIELDS} most recent")
    return embed
