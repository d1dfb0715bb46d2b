"""
Tests for the expiry sweeper: reversal, idempotency and failure handling.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import GUILD_ID, MODERATOR_ID, MUTE_ROLE_ID, OTHER_GUILD_ID, TARGET_ID
from reaper.datatypes.action_datatypes import Action, ActionKind
from reaper.datatypes.guild_config import ModerationConfig
from reaper.moderation.errors import PersistenceFailed, PlatformEffectFailed
from reaper.scheduler.expiry_sweeper import ExpirySweeper


@pytest.fixture
def sweeper(store, config_service, platform) -> ExpirySweeper:
    return ExpirySweeper(store, config_service, platform)


async def seed(store, kind, expiry, guild_id=GUILD_ID):
    action = Action.create(kind, guild_id, TARGET_ID, MODERATOR_ID, "reason", expiry)
    await store.create(action)
    return action


def past():
    return datetime.now(timezone.utc) - timedelta(minutes=5)


@pytest.mark.asyncio
async def test_due_mute_is_expired_even_if_revoke_fails(sweeper, store, config_service, platform):
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    platform.revoke_role.side_effect = PlatformEffectFailed("Unknown Member")
    mute = await seed(store, ActionKind.MUTE, past())

    report = await sweeper.run_cycle()

    assert report.expired == 1
    assert report.reversal_failures == 1
    assert (await store.get(mute.id)).active is False
    platform.revoke_role.assert_awaited_once()
    assert platform.revoke_role.await_args.args[:3] == (GUILD_ID, TARGET_ID, MUTE_ROLE_ID)

    # A second cycle finds nothing to do
    report = await sweeper.run_cycle()

    assert report.due == 0
    platform.revoke_role.assert_awaited_once()


@pytest.mark.asyncio
async def test_due_ban_is_lifted(sweeper, store, platform):
    ban = await seed(store, ActionKind.BAN, past())

    await sweeper.run_cycle()

    platform.unban.assert_awaited_once()
    assert platform.unban.await_args.args[:2] == (GUILD_ID, TARGET_ID)
    assert (await store.get(ban.id)).active is False


@pytest.mark.asyncio
async def test_due_strike_needs_no_platform_call(sweeper, store, platform):
    strike = await seed(store, ActionKind.STRIKE, past())

    report = await sweeper.run_cycle()

    assert report.expired == 1
    assert report.reversal_failures == 0
    assert (await store.get(strike.id)).active is False
    platform.revoke_role.assert_not_awaited()
    platform.unban.assert_not_awaited()


@pytest.mark.asyncio
async def test_mute_without_mute_role_is_still_expired(sweeper, store, platform):
    mute = await seed(store, ActionKind.MUTE, past())

    report = await sweeper.run_cycle()

    assert report.reversal_failures == 1
    assert (await store.get(mute.id)).active is False
    platform.revoke_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_future_and_permanent_actions_are_untouched(sweeper, store, platform):
    future = await seed(store, ActionKind.BAN, datetime.now(timezone.utc) + timedelta(days=1))
    permanent = await seed(store, ActionKind.BAN, None)

    report = await sweeper.run_cycle()

    assert report.due == 0
    assert (await store.get(future.id)).active is True
    assert (await store.get(permanent.id)).active is True
    platform.unban.assert_not_awaited()


@pytest.mark.asyncio
async def test_mute_role_is_looked_up_per_guild(sweeper, store, config_service, platform):
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    await config_service.set_moderation_config(ModerationConfig(OTHER_GUILD_ID, mute_role=MUTE_ROLE_ID + 1))
    await seed(store, ActionKind.MUTE, past())
    await seed(store, ActionKind.MUTE, past(), guild_id=OTHER_GUILD_ID)

    await sweeper.run_cycle()

    roles = {call.args[0]: call.args[2] for call in platform.revoke_role.await_args_list}
    assert roles == {GUILD_ID: MUTE_ROLE_ID, OTHER_GUILD_ID: MUTE_ROLE_ID + 1}


@pytest.mark.asyncio
async def test_racing_sweepers_reverse_once(store, config_service, platform):
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    await seed(store, ActionKind.MUTE, past())
    first = ExpirySweeper(store, config_service, platform)
    second = ExpirySweeper(store, config_service, platform)

    reports = await asyncio.gather(first.run_cycle(), second.run_cycle())

    assert sum(report.expired for report in reports) == 1
    platform.revoke_role.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_scan_returns_empty_report(sweeper, store, platform):
    store.list_due = AsyncMock(side_effect=PersistenceFailed("database is locked"))

    report = await sweeper.run_cycle()

    assert report.due == 0
    platform.unban.assert_not_awaited()
