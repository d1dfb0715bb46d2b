"""
Tests for per-guild configuration: persistence, log channel routing and
escalation rule validation.
"""

import pytest

from conftest import GUILD_ID, OTHER_GUILD_ID
from reaper.datatypes.action_datatypes import ActionKind, EscalationRule
from reaper.datatypes.guild_config import LogCategory, LoggingConfig, ModerationConfig


# ---------------------------------------------------------------------------
# Log channel resolution
# ---------------------------------------------------------------------------

def test_disabled_category_has_no_channel():
    config = LoggingConfig(GUILD_ID, log_actions=False, log_action_channel=10)

    assert config.channel_for(LogCategory.ACTION) is None


def test_enabled_category_uses_its_own_channel():
    config = LoggingConfig(GUILD_ID, log_actions=True, log_voice=True, log_action_channel=10, log_voice_channel=30)

    assert config.channel_for(LogCategory.ACTION) == 10
    assert config.channel_for(LogCategory.VOICE) == 30


def test_override_channel_wins_for_enabled_categories():
    config = LoggingConfig(
        GUILD_ID,
        log_actions=True,
        log_messages=False,
        log_channel=99,
        log_action_channel=10,
        log_message_channel=20,
    )

    assert config.channel_for(LogCategory.ACTION) == 99
    assert config.channel_for(LogCategory.MESSAGE) is None


def test_enabled_category_without_channel_is_none():
    config = LoggingConfig(GUILD_ID, log_messages=True)

    assert config.channel_for(LogCategory.MESSAGE) is None


# ---------------------------------------------------------------------------
# GuildConfigService
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_moderation_config_round_trip(config_service):
    assert await config_service.get_moderation_config(GUILD_ID) is None

    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=5, default_strike_duration="30d"))
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=6, default_strike_duration="7d"))

    config = await config_service.get_moderation_config(GUILD_ID)
    assert config == ModerationConfig(GUILD_ID, mute_role=6, default_strike_duration="7d")
    assert await config_service.get_moderation_config(OTHER_GUILD_ID) is None


@pytest.mark.asyncio
async def test_logging_config_round_trip_and_resolution(config_service):
    assert await config_service.resolve_log_channel(GUILD_ID, LogCategory.ACTION) is None

    stored = LoggingConfig(GUILD_ID, log_actions=True, log_voice=True, log_action_channel=11, log_voice_channel=33)
    await config_service.set_logging_config(stored)

    assert await config_service.get_logging_config(GUILD_ID) == stored
    assert await config_service.resolve_log_channel(GUILD_ID, LogCategory.ACTION) == 11
    assert await config_service.resolve_log_channel(GUILD_ID, LogCategory.MESSAGE) is None

    stored.log_channel = 44
    await config_service.set_logging_config(stored)
    assert await config_service.resolve_log_channel(GUILD_ID, LogCategory.VOICE) == 44


@pytest.mark.asyncio
async def test_replace_escalations_replaces_whole_set(config_service):
    await config_service.replace_escalations(GUILD_ID, [
        EscalationRule(GUILD_ID, 5, ActionKind.BAN),
        EscalationRule(GUILD_ID, 3, ActionKind.KICK),
    ])

    rules = await config_service.list_escalations(GUILD_ID)
    assert [(r.strike_count, r.action_kind) for r in rules] == [(3, ActionKind.KICK), (5, ActionKind.BAN)]

    await config_service.replace_escalations(GUILD_ID, [EscalationRule(GUILD_ID, 2, ActionKind.MUTE, "1h")])

    rules = await config_service.list_escalations(GUILD_ID)
    assert rules == [EscalationRule(GUILD_ID, 2, ActionKind.MUTE, "1h")]
    assert await config_service.list_escalations(OTHER_GUILD_ID) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "rules",
    [
        [EscalationRule(GUILD_ID, 3, ActionKind.STRIKE)],
        [EscalationRule(GUILD_ID, 3, ActionKind.MUTE)],
        [EscalationRule(GUILD_ID, 3, ActionKind.KICK), EscalationRule(GUILD_ID, 3, ActionKind.BAN)],
    ],
)
async def test_replace_escalations_rejects_invalid_rules(config_service, rules):
    await config_service.replace_escalations(GUILD_ID, [EscalationRule(GUILD_ID, 4, ActionKind.KICK)])

    with pytest.raises(ValueError):
        await config_service.replace_escalations(GUILD_ID, rules)

    # Nothing was written
    assert [r.strike_count for r in await config_service.list_escalations(GUILD_ID)] == [4]
