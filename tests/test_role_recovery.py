"""
Tests for role recovery: the stored-role service and the listener cog.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import aiosqlite
import pytest

from conftest import GUILD_ID, MODERATOR_ID, MUTE_ROLE_ID, OTHER_GUILD_ID, TARGET_ID
from reaper.cog.listener.role_recovery_listener import (
    RECOVERY_REASON,
    RoleRecoveryCog,
    recoverable_role_ids,
)
from reaper.datatypes.action_datatypes import Action, ActionKind
from reaper.datatypes.guild_config import LoggingConfig, ModerationConfig
from reaper.moderation.errors import PersistenceFailed, PlatformEffectFailed

HELPER_ROLE = 11
ARTIST_ROLE = 12


def make_member(role_ids, guild_id=GUILD_ID, managed=()):
    roles = [SimpleNamespace(id=guild_id, managed=False)]
    roles += [SimpleNamespace(id=role_id, managed=role_id in managed) for role_id in role_ids]
    return SimpleNamespace(id=TARGET_ID, guild=SimpleNamespace(id=guild_id), roles=roles)


@pytest.fixture
def cog(recovery_service, config_service, store, platform):
    return RoleRecoveryCog(MagicMock(), recovery_service, config_service, store, platform)


async def add_active_mute(store, guild_id=GUILD_ID):
    await store.create(Action.create(
        ActionKind.MUTE, guild_id, TARGET_ID, MODERATOR_ID, "loud",
        datetime.now(timezone.utc) + timedelta(days=1),
    ))


# ---------------------------------------------------------------------------
# RoleRecoveryService
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_toggle_defaults_to_disabled(recovery_service):
    assert await recovery_service.is_enabled(GUILD_ID) is False

    await recovery_service.set_enabled(GUILD_ID, True)
    assert await recovery_service.is_enabled(GUILD_ID) is True
    assert await recovery_service.is_enabled(OTHER_GUILD_ID) is False

    await recovery_service.set_enabled(GUILD_ID, False)
    assert await recovery_service.is_enabled(GUILD_ID) is False


@pytest.mark.asyncio
async def test_sync_roles_applies_difference(recovery_service):
    assert await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE, ARTIST_ROLE}) == (2, 0)
    assert await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {ARTIST_ROLE, MUTE_ROLE_ID}) == (1, 1)
    assert await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {ARTIST_ROLE, MUTE_ROLE_ID}) == (0, 0)

    assert await recovery_service.roles_for(GUILD_ID, TARGET_ID) == {ARTIST_ROLE, MUTE_ROLE_ID}
    assert await recovery_service.roles_for(OTHER_GUILD_ID, TARGET_ID) == set()


@pytest.mark.asyncio
async def test_forget_guild_drops_roles_and_config(recovery_service, config_service):
    await recovery_service.set_enabled(GUILD_ID, True)
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE})
    await recovery_service.sync_roles(OTHER_GUILD_ID, TARGET_ID, {HELPER_ROLE})
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    await config_service.set_logging_config(LoggingConfig(GUILD_ID, log_actions=True))

    await recovery_service.forget_guild(GUILD_ID)

    assert await recovery_service.is_enabled(GUILD_ID) is False
    assert await recovery_service.roles_for(GUILD_ID, TARGET_ID) == set()
    assert await recovery_service.roles_for(OTHER_GUILD_ID, TARGET_ID) == {HELPER_ROLE}
    assert await config_service.get_moderation_config(GUILD_ID) is None
    assert await config_service.get_logging_config(GUILD_ID) is None


@pytest.mark.asyncio
async def test_service_database_errors_become_persistence_failed(recovery_service, monkeypatch):
    async def locked(*args, **kwargs):
        raise aiosqlite.OperationalError("database is locked")

    monkeypatch.setattr(recovery_service._repo, "list_roles", locked)

    with pytest.raises(PersistenceFailed):
        await recovery_service.roles_for(GUILD_ID, TARGET_ID)
    with pytest.raises(PersistenceFailed):
        await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE})


# ---------------------------------------------------------------------------
# RoleRecoveryCog
# ---------------------------------------------------------------------------

def test_recoverable_roles_skip_everyone_and_managed():
    member = make_member([HELPER_ROLE, ARTIST_ROLE], managed=(ARTIST_ROLE,))

    assert recoverable_role_ids(member) == {HELPER_ROLE}


@pytest.mark.asyncio
async def test_member_update_stores_changed_roles(cog, recovery_service):
    await cog.on_member_update(make_member([]), make_member([HELPER_ROLE]))

    assert await recovery_service.roles_for(GUILD_ID, TARGET_ID) == {HELPER_ROLE}


@pytest.mark.asyncio
async def test_member_update_without_role_change_is_ignored(cog, recovery_service, monkeypatch):
    async def fail(*args, **kwargs):
        raise AssertionError("roles should not be synced")

    monkeypatch.setattr(recovery_service, "sync_roles", fail)

    await cog.on_member_update(make_member([HELPER_ROLE]), make_member([HELPER_ROLE]))


@pytest.mark.asyncio
async def test_join_restores_stored_roles_when_enabled(cog, recovery_service, platform):
    await recovery_service.set_enabled(GUILD_ID, True)
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE, ARTIST_ROLE})

    await cog.on_member_join(make_member([]))

    granted = [c.args for c in platform.grant_role.await_args_list]
    assert granted == [
        (GUILD_ID, TARGET_ID, HELPER_ROLE, RECOVERY_REASON),
        (GUILD_ID, TARGET_ID, ARTIST_ROLE, RECOVERY_REASON),
    ]


@pytest.mark.asyncio
async def test_join_restores_nothing_when_disabled(cog, recovery_service, platform):
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE})

    assert await cog.handle_join(GUILD_ID, TARGET_ID) == 0
    platform.grant_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_join_reapplies_active_mute_when_disabled(cog, config_service, store, platform):
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    await add_active_mute(store)

    assert await cog.handle_join(GUILD_ID, TARGET_ID) == 1
    platform.grant_role.assert_awaited_once_with(GUILD_ID, TARGET_ID, MUTE_ROLE_ID, RECOVERY_REASON)


@pytest.mark.asyncio
async def test_join_grants_mute_role_once(cog, recovery_service, config_service, store, platform):
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    await recovery_service.set_enabled(GUILD_ID, True)
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE, MUTE_ROLE_ID})
    await add_active_mute(store)

    await cog.handle_join(GUILD_ID, TARGET_ID)

    granted = [c.args[2] for c in platform.grant_role.await_args_list]
    assert granted == [HELPER_ROLE, MUTE_ROLE_ID]


@pytest.mark.asyncio
async def test_join_skips_stored_mute_role_without_active_mute(cog, recovery_service, config_service, platform):
    await config_service.set_moderation_config(ModerationConfig(GUILD_ID, mute_role=MUTE_ROLE_ID))
    await recovery_service.set_enabled(GUILD_ID, True)
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {MUTE_ROLE_ID})

    assert await cog.handle_join(GUILD_ID, TARGET_ID) == 0
    platform.grant_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_join_continues_past_rejected_role(cog, recovery_service, platform):
    await recovery_service.set_enabled(GUILD_ID, True)
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE, ARTIST_ROLE})
    platform.grant_role.side_effect = [PlatformEffectFailed("Missing Permissions"), None]

    assert await cog.handle_join(GUILD_ID, TARGET_ID) == 1
    assert platform.grant_role.await_count == 2


@pytest.mark.asyncio
async def test_join_lookup_failure_grants_nothing(cog, recovery_service, platform, monkeypatch):
    async def locked(*args, **kwargs):
        raise PersistenceFailed("database is locked")

    monkeypatch.setattr(recovery_service, "is_enabled", locked)

    assert await cog.handle_join(GUILD_ID, TARGET_ID) == 0
    platform.grant_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_guild_remove_forgets_guild(cog, recovery_service):
    await recovery_service.sync_roles(GUILD_ID, TARGET_ID, {HELPER_ROLE})

    await cog.on_guild_remove(SimpleNamespace(id=GUILD_ID))

    assert await recovery_service.roles_for(GUILD_ID, TARGET_ID) == set()
