"""
Tests for the py-cord backed platform adapters.
"""

from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from conftest import GUILD_ID, MUTE_ROLE_ID, TARGET_ID
from reaper.moderation.discord_platform import (
    DiscordAuditLogPublisher,
    DiscordDirectNotifier,
    DiscordPlatformClient,
)
from reaper.moderation.errors import PlatformEffectFailed


def make_bot(guild=None):
    bot = MagicMock()
    bot.get_guild.return_value = guild
    bot.fetch_guild = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Guild"))
    return bot


def make_guild(member=None):
    guild = MagicMock()
    guild.name = "Test Guild"
    guild.ban = AsyncMock()
    guild.unban = AsyncMock()
    guild.kick = AsyncMock()
    guild.get_member.return_value = member
    guild.fetch_member = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Member"))
    return guild


@pytest.mark.asyncio
async def test_ban_passes_reason():
    guild = make_guild()
    client = DiscordPlatformClient(make_bot(guild))

    await client.ban(GUILD_ID, TARGET_ID, "spam")

    guild.ban.assert_awaited_once()
    assert guild.ban.await_args.args[0].id == TARGET_ID
    assert guild.ban.await_args.kwargs["reason"] == "spam"


@pytest.mark.asyncio
async def test_forbidden_kick_raises_platform_effect_failed():
    guild = make_guild()
    guild.kick.side_effect = discord.Forbidden(MagicMock(), "Missing Permissions")
    client = DiscordPlatformClient(make_bot(guild))

    with pytest.raises(PlatformEffectFailed):
        await client.kick(GUILD_ID, TARGET_ID, "spam")


@pytest.mark.asyncio
async def test_unknown_guild_raises_platform_effect_failed():
    client = DiscordPlatformClient(make_bot(None))

    with pytest.raises(PlatformEffectFailed):
        await client.unban(GUILD_ID, TARGET_ID, "expired")


@pytest.mark.asyncio
async def test_grant_role_adds_role_to_cached_member():
    member = MagicMock()
    member.add_roles = AsyncMock()
    client = DiscordPlatformClient(make_bot(make_guild(member)))

    await client.grant_role(GUILD_ID, TARGET_ID, MUTE_ROLE_ID, "spam")

    assert member.add_roles.await_args.args[0].id == MUTE_ROLE_ID


@pytest.mark.asyncio
async def test_revoke_role_for_departed_member_fails():
    client = DiscordPlatformClient(make_bot(make_guild(None)))

    with pytest.raises(PlatformEffectFailed):
        await client.revoke_role(GUILD_ID, TARGET_ID, MUTE_ROLE_ID, "expired")


def test_guild_name():
    assert DiscordPlatformClient(make_bot(make_guild())).guild_name(GUILD_ID) == "Test Guild"
    assert DiscordPlatformClient(make_bot(None)).guild_name(GUILD_ID) is None


@pytest.mark.asyncio
async def test_notifier_reports_closed_dms():
    user = MagicMock()
    user.send = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Cannot send messages to this user"))
    bot = MagicMock()
    bot.get_user.return_value = user

    assert await DiscordDirectNotifier(bot).send_direct_message(TARGET_ID, discord.Embed()) is False


@pytest.mark.asyncio
async def test_notifier_delivers():
    user = MagicMock()
    user.send = AsyncMock()
    bot = MagicMock()
    bot.get_user.return_value = user
    embed = discord.Embed(title="Muted!")

    assert await DiscordDirectNotifier(bot).send_direct_message(TARGET_ID, embed) is True
    user.send.assert_awaited_once_with(embed=embed)


@pytest.mark.asyncio
async def test_publisher_reports_failure():
    channel = MagicMock()
    channel.send = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Missing Access"))
    bot = MagicMock()
    bot.get_channel.return_value = channel

    assert await DiscordAuditLogPublisher(bot).publish(123, discord.Embed()) is False
