"""
Action engine: issues, corrects and withdraws moderation actions.

Every ``issue`` call follows the same pipeline:

    resolve expiry -> (strikes only) escalation -> platform effect
        -> persist -> best-effort DM + log

Kicks and bans are the exception to the order of the last steps: the
target is DMed *before* the effect, because once they are removed from the
guild they usually cannot be reached. The DM and log post never fail the
call; whether the DM got through is reported on ``IssuedAction``.

If the platform effect fails nothing is persisted. If persistence fails
after the effect succeeded, reversible effects (mute role, ban) are rolled
back before ``PersistenceFailed`` is raised; a kick cannot be undone and is
logged as an unrecorded kick.

No locks are held across calls, so a manual action and an escalation for
the same user can interleave.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import List, Optional

import discord

from reaper.datatypes.action_datatypes import (
    Action,
    ActionKind,
    EscalationOutcome,
    EscalationRule,
    IssuedAction,
)
from reaper.datatypes.guild_config import LogCategory
from reaper.moderation import embeds
from reaper.moderation.duration import Duration
from reaper.moderation.errors import (
    ActionError,
    ActionNotFound,
    InvalidDuration,
    InvalidEscalationRule,
    NoDurationConfigured,
    NoModerationConfig,
    NoMuteRoleConfigured,
    PersistenceFailed,
    PlatformEffectFailed,
)
from reaper.moderation.platform import AuditLogPublisher, DirectNotifier, PlatformClient
from reaper.moderation.reversal import reverse_effect
from reaper.services.action_store import ActionStore
from reaper.services.guild_config_service import GuildConfigService
from reaper.util.logger import get_logger

logger = get_logger("action_engine")


def escalation_reason(strike_count: int) -> str:
    return f"Strike escalation (reached {strike_count} strikes)"


class ActionEngine:
    """Orchestrates moderation actions across the store and the platform.

    Args:
        store: Persistence for action records
        config: Guild moderation/logging config and escalation rules
        platform: Applies bans, kicks and role changes
        notifier: Best-effort direct messages to the target
        audit_log: Best-effort posts to the guild log channel
        system_moderator_id: Recorded as moderator when none is given
    """

    def __init__(
        self,
        store: ActionStore,
        config: GuildConfigService,
        platform: PlatformClient,
        notifier: DirectNotifier,
        audit_log: AuditLogPublisher,
        system_moderator_id: int = 0,
    ) -> None:
        self.store = store
        self.config = config
        self.platform = platform
        self.notifier = notifier
        self.audit_log = audit_log
        self.system_moderator_id = system_moderator_id

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    async def issue(
        self,
        kind: ActionKind,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
        duration: Optional[Duration] = None,
    ) -> IssuedAction:
        """Issue an action of any kind; see the per-kind methods for semantics."""
        match kind:
            case ActionKind.STRIKE:
                return await self.strike(guild_id, user_id, reason, moderator_id, duration)
            case ActionKind.MUTE:
                if duration is None:
                    raise InvalidDuration(guidance="A mute needs a duration.")
                return await self.mute(guild_id, user_id, reason, moderator_id, duration)
            case ActionKind.KICK:
                return await self.kick(guild_id, user_id, reason, moderator_id)
            case ActionKind.BAN:
                return await self.ban(guild_id, user_id, reason, moderator_id, duration)

    async def strike(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
        duration: Optional[Duration] = None,
    ) -> IssuedAction:
        """
        Strike a user, escalating if the new strike count matches a guild rule.

        Without an explicit duration the guild's default strike duration is
        used. The escalation runs before the strike is saved and its result,
        success or failure, is recorded on the returned value without
        affecting the strike itself.

        Raises:
            NoDurationConfigured: No duration given and no usable default
            InvalidDuration: The given duration is not in the future
            InvalidEscalationRule: A stored rule escalates to a strike
            PersistenceFailed: The strike could not be saved
        """
        expiry = await self._resolve_strike_expiry(guild_id, duration)

        action = Action.create(
            ActionKind.STRIKE, guild_id, user_id, self._moderator(moderator_id), reason, expiry
        )

        escalation = await self._escalate(guild_id, user_id)

        await self.store.create(action)

        dm_notified = await self._announce(action)
        logger.info(
            "[ACTION ENGINE] Strike %s issued to %s in guild %s (escalation: %s)",
            action.id, user_id, guild_id,
            "none" if escalation is None else ("ok" if escalation.succeeded else "failed"),
        )
        return IssuedAction(action=action, dm_notified=dm_notified, escalation=escalation)

    async def mute(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int],
        duration: Duration,
    ) -> IssuedAction:
        """
        Grant the guild's mute role and record the mute.

        A permanent ``duration`` records a mute with no expiry.

        Raises:
            NoModerationConfig: The guild has no moderation configuration
            NoMuteRoleConfigured: The configuration has no mute role
            InvalidDuration: The duration is not in the future
            PlatformEffectFailed: The role could not be granted
            PersistenceFailed: The mute could not be saved
        """
        mute_role = await self._mute_role(guild_id)
        expiry = self._checked_expiry(duration)

        action = Action.create(
            ActionKind.MUTE, guild_id, user_id, self._moderator(moderator_id), reason, expiry
        )

        await self.platform.grant_role(guild_id, user_id, mute_role, reason)
        await self._persist_after_effect(action, mute_role)

        dm_notified = await self._announce(action)
        logger.info("[ACTION ENGINE] Mute %s issued to %s in guild %s", action.id, user_id, guild_id)
        return IssuedAction(action=action, dm_notified=dm_notified)

    async def kick(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
    ) -> IssuedAction:
        """
        Kick a user. The record is inactive from the start.

        Raises:
            PlatformEffectFailed: The kick was rejected
            PersistenceFailed: The kick could not be saved
        """
        action = Action.create(
            ActionKind.KICK, guild_id, user_id, self._moderator(moderator_id), reason, None
        )

        dm_notified = await self._notify(action)

        await self.platform.kick(guild_id, user_id, reason)
        await self._persist_after_effect(action, None)

        await self._log_action(action)
        logger.info("[ACTION ENGINE] Kick %s issued to %s in guild %s", action.id, user_id, guild_id)
        return IssuedAction(action=action, dm_notified=dm_notified)

    async def ban(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
        duration: Optional[Duration] = None,
    ) -> IssuedAction:
        """
        Ban a user, permanently when ``duration`` is None or permanent.

        Raises:
            InvalidDuration: The duration is not in the future
            PlatformEffectFailed: The ban was rejected
            PersistenceFailed: The ban could not be saved
        """
        expiry = self._checked_expiry(duration or Duration.permanent())

        action = Action.create(
            ActionKind.BAN, guild_id, user_id, self._moderator(moderator_id), reason, expiry
        )

        dm_notified = await self._notify(action)

        await self.platform.ban(guild_id, user_id, reason)
        await self._persist_after_effect(action, None)

        await self._log_action(action)
        logger.info("[ACTION ENGINE] Ban %s issued to %s in guild %s", action.id, user_id, guild_id)
        return IssuedAction(action=action, dm_notified=dm_notified)

    # ------------------------------------------------------------------
    # Withdraw
    # ------------------------------------------------------------------

    async def unmute(self, guild_id: int, user_id: int, moderator_id: int) -> int:
        """
        Remove the mute role and mark the user's active mutes inactive.

        Returns:
            Number of mute records that were still active
        """
        mute_role = await self._mute_role(guild_id)
        await self.platform.revoke_role(guild_id, user_id, mute_role, f"Unmute by {moderator_id}")

        try:
            count = await self.store.deactivate_active(guild_id, user_id, ActionKind.MUTE)
        except PersistenceFailed:
            logger.error("[ACTION ENGINE] Unmuted %s in guild %s but could not expire their mutes", user_id, guild_id)
            count = 0

        await self._log(
            guild_id,
            embeds.build_update_log_embed(
                "User unmuted", f"<@{user_id}> has been unmuted by <@{moderator_id}>", color=embeds.UNMUTE_COLOR
            ),
        )
        return count

    async def unban(self, guild_id: int, user_id: int, moderator_id: int) -> int:
        """
        Lift the platform ban and mark the user's active bans inactive.

        Returns:
            Number of ban records that were still active
        """
        await self.platform.unban(guild_id, user_id, f"Unban by {moderator_id}")

        try:
            count = await self.store.deactivate_active(guild_id, user_id, ActionKind.BAN)
        except PersistenceFailed:
            logger.error("[ACTION ENGINE] Unbanned %s in guild %s but could not expire their bans", user_id, guild_id)
            count = 0

        await self._log(
            guild_id,
            embeds.build_update_log_embed("User unbanned", f"<@{user_id}> has been unbanned by <@{moderator_id}>"),
        )
        return count

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    async def get_action(self, guild_id: int, action_id: str) -> Action:
        """Fetch an action belonging to ``guild_id``.

        Raises:
            ActionNotFound: The id is unknown or belongs to another guild
        """
        action = await self.store.get(action_id)
        if action is None or action.guild_id != guild_id:
            raise ActionNotFound(action_id)
        return action

    async def expire_manually(self, guild_id: int, action_id: str) -> Action:
        """Mark an action inactive now, reversing its mute or ban if still in force.

        The record is claimed before the platform is touched, so when this
        races the sweeper or another expiry only the winner reverses it.
        """
        action = await self.get_action(guild_id, action_id)

        claimed = await self.store.deactivate_if_active(action.id)
        if claimed and action.kind in (ActionKind.MUTE, ActionKind.BAN):
            mute_role = None
            if action.kind is ActionKind.MUTE:
                moderation = await self.config.get_moderation_config(guild_id)
                mute_role = moderation.mute_role if moderation else None
            await reverse_effect(self.platform, action, mute_role, f"Expiring {action.kind} {action.id}")

        action.active = False

        await self._log(
            guild_id,
            embeds.build_update_log_embed(
                "Action expired",
                f"The action with ID `{action.id}` has been manually expired",
                action.id,
                color=embeds.EXPIRE_COLOR,
            ),
        )
        return action

    async def update_reason(self, guild_id: int, action_id: str, reason: str) -> Action:
        action = await self.get_action(guild_id, action_id)
        await self.store.update_reason(action.id, reason)
        action.reason = reason

        await self._log(
            guild_id,
            embeds.build_update_log_embed(
                "Reason updated", f"The reason of action `{action.id}` has been updated to {reason}", action.id
            ),
        )
        return action

    async def update_expiry(self, guild_id: int, action_id: str, expiry: Optional[datetime]) -> Action:
        """Move an action's expiry; None makes it permanent.

        Raises:
            InvalidDuration: ``expiry`` is not strictly in the future
        """
        if expiry is not None and expiry <= datetime.now(timezone.utc):
            raise InvalidDuration(guidance="The new expiry must be in the future.")

        action = await self.get_action(guild_id, action_id)
        await self.store.update_expiry(action.id, expiry)
        action.expiry = expiry

        await self._log(
            guild_id,
            embeds.build_update_log_embed(
                "Duration updated",
                f"The duration of action `{action.id}` will now expire on {embeds.format_expiry(expiry)}",
                action.id,
            ),
        )
        return action

    async def remove(self, guild_id: int, action_id: str) -> Action:
        """Delete an action record. Its platform effect is left untouched."""
        action = await self.get_action(guild_id, action_id)
        await self.store.delete(action.id)

        await self._log(
            guild_id,
            embeds.build_update_log_embed(
                "Action removed", f"The action with ID `{action.id}` has been removed", action.id
            ),
        )
        return action

    async def latest_action_by(self, guild_id: int, moderator_id: int) -> Action:
        """Most recent action issued by a moderator, for corrections without an id."""
        action = await self.store.latest_by_moderator(guild_id, moderator_id)
        if action is None:
            raise ActionNotFound("latest")
        return action

    async def search(self, guild_id: int, user_id: int, include_expired: bool = False) -> List[Action]:
        return await self.store.list_for_user(guild_id, user_id, include_inactive=include_expired)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _moderator(self, moderator_id: Optional[int]) -> int:
        return self.system_moderator_id if moderator_id is None else moderator_id

    @staticmethod
    def _checked_expiry(duration: Duration) -> Optional[datetime]:
        if duration.is_permanent:
            return None
        now = datetime.now(timezone.utc)
        expiry = duration.to_instant(now)
        if expiry is None:
            raise InvalidDuration(guidance=f"`{duration}` reaches past the end of the calendar.")
        if expiry <= now:
            raise InvalidDuration()
        return expiry

    async def _resolve_strike_expiry(self, guild_id: int, duration: Optional[Duration]) -> Optional[datetime]:
        if duration is not None:
            return self._checked_expiry(duration)

        moderation = await self.config.get_moderation_config(guild_id)
        default = moderation.default_strike_duration if moderation else None
        if not default:
            raise NoDurationConfigured()

        parsed = Duration.parse(default)
        if parsed.is_zero:
            logger.warning("[ACTION ENGINE] Guild %s default strike duration %r parses to zero", guild_id, default)
            raise NoDurationConfigured()

        expiry = parsed.to_instant()
        if expiry is None:
            logger.warning("[ACTION ENGINE] Guild %s default strike duration %r overflows", guild_id, default)
            raise InvalidDuration(guidance=f"This server's default strike duration `{default}` is too long.")
        return expiry

    async def _mute_role(self, guild_id: int) -> int:
        moderation = await self.config.get_moderation_config(guild_id)
        if moderation is None:
            raise NoModerationConfig()
        if moderation.mute_role is None:
            raise NoMuteRoleConfigured()
        return moderation.mute_role

    async def _escalate(self, guild_id: int, user_id: int) -> Optional[EscalationOutcome]:
        rules = await self.config.list_escalations(guild_id)
        if not rules:
            return None

        active_strikes = await self.store.count_active(guild_id, user_id, ActionKind.STRIKE)
        next_count = active_strikes + 1
        rule = next((r for r in rules if r.strike_count == next_count), None)
        if rule is None:
            return None

        if rule.action_kind is ActionKind.STRIKE:
            logger.error(
                "[ACTION ENGINE] Guild %s has a strike escalation at %d strikes that issues a strike",
                guild_id, rule.strike_count,
            )
            raise InvalidEscalationRule()

        outcome = EscalationOutcome(rule=rule)
        try:
            outcome.issued = await self._issue_escalation(rule, guild_id, user_id)
        except ActionError as exc:
            logger.warning(
                "[ACTION ENGINE] %s escalation for %s in guild %s failed: %s",
                rule.action_kind.label, user_id, guild_id, exc.title,
            )
            outcome.error = exc
        return outcome

    async def _issue_escalation(self, rule: EscalationRule, guild_id: int, user_id: int) -> IssuedAction:
        reason = escalation_reason(rule.strike_count)
        match rule.action_kind:
            case ActionKind.MUTE:
                if not rule.action_duration:
                    raise InvalidDuration(guidance="This server's mute escalation has no duration.")
                return await self.mute(guild_id, user_id, reason, None, Duration.parse(rule.action_duration))
            case ActionKind.KICK:
                return await self.kick(guild_id, user_id, reason, None)
            case ActionKind.BAN:
                duration = Duration.parse(rule.action_duration) if rule.action_duration else None
                return await self.ban(guild_id, user_id, reason, None, duration)
            case _:
                raise InvalidEscalationRule()

    async def _persist_after_effect(self, action: Action, mute_role: Optional[int]) -> None:
        try:
            await self.store.create(action)
        except PersistenceFailed:
            if action.kind is ActionKind.KICK:
                logger.critical(
                    "[ACTION ENGINE] User %s was kicked from guild %s but action %s could not be recorded",
                    action.target_user_id, action.guild_id, action.id,
                )
            else:
                logger.error(
                    "[ACTION ENGINE] Rolling back %s %s after it could not be recorded",
                    action.kind, action.id,
                )
                await reverse_effect(self.platform, action, mute_role, f"Rolling back unrecorded {action.kind}")
            raise

    async def _notify(self, action: Action) -> bool:
        embed = embeds.build_dm_embed(action, self.platform.guild_name(action.guild_id))
        try:
            return await self.notifier.send_direct_message(action.target_user_id, embed)
        except Exception:
            logger.exception("[ACTION ENGINE] Direct message for action %s failed", action.id)
            return False

    async def _log(self, guild_id: int, embed: discord.Embed) -> bool:
        try:
            channel_id = await self.config.resolve_log_channel(guild_id, LogCategory.ACTION)
            if channel_id is None:
                return False
            return await self.audit_log.publish(channel_id, embed)
        except Exception:
            logger.exception("[ACTION ENGINE] Log post for guild %s failed", guild_id)
            return False

    async def _log_action(self, action: Action) -> bool:
        return await self._log(action.guild_id, embeds.build_log_embed(action))

    async def _announce(self, action: Action) -> bool:
        """DM the target and post the log entry concurrently; returns whether the DM arrived."""
        dm_notified, _ = await asyncio.gather(self._notify(action), self._log_action(action))
        return dm_notified
