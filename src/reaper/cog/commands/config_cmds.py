"""
Config cog: per-guild moderation, logging and strike escalation settings.

Plain slash commands over ``GuildConfigService``. Moderation settings and
escalations need ``moderation.edit``; log routing needs ``logging.edit``.
Omitted options leave the stored value unchanged.
"""

import discord
from discord import Option
from discord.ext import commands

from reaper.datatypes.action_datatypes import ActionKind, EscalationRule
from reaper.datatypes.guild_config import LoggingConfig, ModerationConfig
from reaper.datatypes.permissions import Permission
from reaper.moderation.duration import Duration
from reaper.permissions.resolver import PermissionResolver
from reaper.services.guild_config_service import ESCALATION_KINDS, GuildConfigService
from reaper.services.role_recovery_service import RoleRecoveryService
from reaper.util.discord_utils import reply, reply_unexpected, require_permission
from reaper.util.logger import get_logger

logger = get_logger("config_cmds")

CONFIG_COLOR = discord.Color(0x0ABFD6)
ESCALATION_CHOICES = [kind.value for kind in ESCALATION_KINDS]


def _channel(channel_id) -> str:
    return f"<#{channel_id}>" if channel_id else "Not set"


def build_config_embed(moderation, logging_config, rules, role_recovery: bool = False) -> discord.Embed:
    embed = discord.Embed(title="Server configuration", color=CONFIG_COLOR)

    if moderation is None:
        embed.add_field(name="Moderation", value="Not configured", inline=False)
    else:
        embed.add_field(
            name="Moderation",
            value=(
                f"Mute role: {f'<@&{moderation.mute_role}>' if moderation.mute_role else 'Not set'}\n"
                f"Default strike duration: {moderation.default_strike_duration or 'Not set'}"
            ),
            inline=False,
        )

    if logging_config is None:
        embed.add_field(name="Logging", value="Not configured", inline=False)
    else:
        embed.add_field(
            name="Logging",
            value=(
                f"Actions: {'on' if logging_config.log_actions else 'off'} ({_channel(logging_config.log_action_channel)})\n"
                f"Messages: {'on' if logging_config.log_messages else 'off'} ({_channel(logging_config.log_message_channel)})\n"
                f"Voice: {'on' if logging_config.log_voice else 'off'} ({_channel(logging_config.log_voice_channel)})\n"
                f"Override channel: {_channel(logging_config.log_channel)}"
            ),
            inline=False,
        )

    lines = [
        f"{rule.strike_count} strikes: {rule.action_kind.label}"
        + (f" ({rule.action_duration})" if rule.action_duration else "")
        for rule in rules
    ]
    embed.add_field(name="Strike escalations", value="\n".join(lines) if lines else "None", inline=False)
    embed.add_field(name="Role recovery", value="Enabled" if role_recovery else "Disabled", inline=False)
    return embed


class ConfigCog(commands.Cog):
    """Guild-level settings read by the action engine."""

    config = discord.SlashCommandGroup("config", "Configure moderation for this server.")

    def __init__(
        self,
        discord_bot_instance,
        config_service: GuildConfigService,
        resolver: PermissionResolver,
        recovery_service: RoleRecoveryService,
    ):
        self.discord_bot_instance = discord_bot_instance
        self.config_service = config_service
        self.recovery_service = recovery_service
        self.resolver = resolver
        logger.info("[CONFIG CMDS] Config cog loaded")

    @config.command(name="view", description="Show this server's moderation configuration.")
    async def view(self, ctx: discord.ApplicationContext) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_EDIT):
            return
        try:
            moderation = await self.config_service.get_moderation_config(ctx.guild.id)
            logging_config = await self.config_service.get_logging_config(ctx.guild.id)
            rules = await self.config_service.list_escalations(ctx.guild.id)
            role_recovery = await self.recovery_service.is_enabled(ctx.guild.id)
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return
        await reply(ctx, embed=build_config_embed(moderation, logging_config, rules, role_recovery))

    @config.command(name="moderation", description="Set the mute role and default strike duration.")
    async def moderation(
        self,
        ctx: discord.ApplicationContext,
        mute_role: Option(discord.Role, "Role given to muted users.", default=None),  # type: ignore
        default_strike_duration: Option(str, "How long strikes last by default, e.g. 30d.", default=None),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_EDIT):
            return

        if default_strike_duration and not Duration.parse(default_strike_duration).is_usable:
            await reply(ctx, content=f"`{default_strike_duration}` is not a valid duration, try something like `30d`.")
            return

        try:
            current = await self.config_service.get_moderation_config(ctx.guild.id) or ModerationConfig(ctx.guild.id)
            if mute_role is not None:
                current.mute_role = mute_role.id
            if default_strike_duration:
                current.default_strike_duration = default_strike_duration.strip().lower()
            await self.config_service.set_moderation_config(current)
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return

        await reply(ctx, content="Moderation configuration saved.")

    @config.command(name="logging", description="Choose which events are logged and where.")
    async def logging(
        self,
        ctx: discord.ApplicationContext,
        actions: Option(bool, "Log moderation actions.", default=None),  # type: ignore
        messages: Option(bool, "Log message events.", default=None),  # type: ignore
        voice: Option(bool, "Log voice events.", default=None),  # type: ignore
        channel: Option(discord.TextChannel, "Send every enabled category here.", default=None),  # type: ignore
        action_channel: Option(discord.TextChannel, "Channel for action logs.", default=None),  # type: ignore
        message_channel: Option(discord.TextChannel, "Channel for message logs.", default=None),  # type: ignore
        voice_channel: Option(discord.TextChannel, "Channel for voice logs.", default=None),  # type: ignore
        clear_override: Option(bool, "Stop sending everything to a single channel.", default=False),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.LOGGING_EDIT):
            return

        try:
            current = await self.config_service.get_logging_config(ctx.guild.id) or LoggingConfig(ctx.guild.id)
            if actions is not None:
                current.log_actions = actions
            if messages is not None:
                current.log_messages = messages
            if voice is not None:
                current.log_voice = voice
            if clear_override:
                current.log_channel = None
            if channel is not None:
                current.log_channel = channel.id
            if action_channel is not None:
                current.log_action_channel = action_channel.id
            if message_channel is not None:
                current.log_message_channel = message_channel.id
            if voice_channel is not None:
                current.log_voice_channel = voice_channel.id
            await self.config_service.set_logging_config(current)
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return

        await reply(ctx, content="Logging configuration saved.")

    @config.command(name="escalation_set", description="Add or replace the escalation for a strike count.")
    async def escalation_set(
        self,
        ctx: discord.ApplicationContext,
        strike_count: Option(int, "Number of active strikes that triggers the escalation.", min_value=1),  # type: ignore
        action: Option(str, "Action to issue.", choices=ESCALATION_CHOICES),  # type: ignore
        duration: Option(str, "Duration for mutes (required) and bans (optional).", default=None),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_EDIT):
            return

        kind = ActionKind(action)
        if duration and not Duration.parse(duration).is_usable:
            await reply(ctx, content=f"`{duration}` is not a valid duration, try something like `1d`.")
            return

        rule = EscalationRule(
            guild_id=ctx.guild.id,
            strike_count=strike_count,
            action_kind=kind,
            action_duration=duration.strip().lower() if duration and kind is not ActionKind.KICK else None,
        )

        try:
            rules = [r for r in await self.config_service.list_escalations(ctx.guild.id) if r.strike_count != strike_count]
            rules.append(rule)
            rules.sort(key=lambda r: r.strike_count)
            await self.config_service.replace_escalations(ctx.guild.id, rules)
        except ValueError as exc:
            await reply(ctx, content=str(exc))
            return
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return

        await reply(ctx, content=f"Users reaching {strike_count} strikes will now receive a {kind}.")

    @config.command(name="escalation_remove", description="Remove the escalation for a strike count.")
    async def escalation_remove(
        self,
        ctx: discord.ApplicationContext,
        strike_count: Option(int, "Strike count to stop escalating at.", min_value=1),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_EDIT):
            return

        try:
            rules = await self.config_service.list_escalations(ctx.guild.id)
            remaining = [r for r in rules if r.strike_count != strike_count]
            if len(remaining) == len(rules):
                await reply(ctx, content=f"There is no escalation at {strike_count} strikes.")
                return
            await self.config_service.replace_escalations(ctx.guild.id, remaining)
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return

        await reply(ctx, content=f"Removed the escalation at {strike_count} strikes.")

    @config.command(name="role_recovery", description="Give members their roles back when they rejoin.")
    async def role_recovery(
        self,
        ctx: discord.ApplicationContext,
        enabled: Option(bool, "Restore remembered roles on rejoin."),  # type: ignore
    ) -> None:
        if not await require_permission(ctx, self.resolver, Permission.MODERATION_EDIT):
            return

        try:
            await self.recovery_service.set_enabled(ctx.guild.id, enabled)
        except Exception as exc:
            await reply_unexpected(ctx, exc)
            return

        await reply(ctx, content=f"Role recovery {'enabled' if enabled else 'disabled'}.")


def setup(
    discord_bot_instance,
    config_service: GuildConfigService,
    resolver: PermissionResolver,
    recovery_service: RoleRecoveryService,
):
    discord_bot_instance.add_cog(ConfigCog(discord_bot_instance, config_service, resolver, recovery_service))
