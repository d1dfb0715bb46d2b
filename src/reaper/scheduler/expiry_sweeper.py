"""Background sweeper that lifts expired mutes and bans.

On every tick the sweeper asks the store for actions that are
still active but past their expiry, claims each one by flipping ``active``
to false with a conditional update, and then reverses its platform effect:

- Mute: remove the guild's mute role (skipped with a warning when the guild
  no longer has one configured)
- Ban: lift the ban
- Strike/Kick: nothing to reverse

Claiming before reversing means two sweepers racing on the same row issue
one platform call between them, and a failed reversal (say an admin already
removed the role) never leaves a row to be retried forever. A failed cycle
is logged and retried on the next tick; it never stops the loop.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from reaper.datatypes.action_datatypes import Action, ActionKind
from reaper.moderation.errors import PersistenceFailed
from reaper.moderation.platform import PlatformClient
from reaper.moderation.reversal import reverse_effect
from reaper.services.action_store import ActionStore
from reaper.services.guild_config_service import GuildConfigService
from reaper.util.logger import get_logger

logger = get_logger("expiry_sweeper")


@dataclass(slots=True)
class SweepReport:
    """What one sweep cycle did."""
    due: int = 0
    expired: int = 0
    reversal_failures: int = 0
    skipped: int = 0


class ExpirySweeper:
    """
    One sweep over due actions; the schedule is owned by ``ExpirySweeperCog``.

    Args:
        store: Source of due actions and target of the active flag flip
        config: Used to look up each guild's mute role
        platform: Reverses mutes and bans
    """

    def __init__(self, store: ActionStore, config: GuildConfigService, platform: PlatformClient) -> None:
        self.store = store
        self.config = config
        self.platform = platform

    async def run_cycle(self, now: Optional[datetime] = None) -> SweepReport:
        """Expire every due action once."""
        now = now or datetime.now(timezone.utc)
        report = SweepReport()

        try:
            due = await self.store.list_due(now)
        except PersistenceFailed as exc:
            logger.error("[EXPIRY SWEEPER] Could not fetch due actions: %s", exc.detail)
            return report

        report.due = len(due)
        if not due:
            return report

        by_guild: Dict[int, List[Action]] = defaultdict(list)
        for action in due:
            by_guild[action.guild_id].append(action)

        for guild_id, actions in by_guild.items():
            mute_role = None
            if any(a.kind is ActionKind.MUTE for a in actions):
                mute_role = await self._mute_role(guild_id)

            for action in actions:
                await self._expire(action, mute_role, report)

        logger.debug(
            "[EXPIRY SWEEPER] Cycle done: %d due, %d expired, %d reversal failures, %d skipped",
            report.due, report.expired, report.reversal_failures, report.skipped,
        )
        return report

    async def _mute_role(self, guild_id: int) -> Optional[int]:
        try:
            moderation = await self.config.get_moderation_config(guild_id)
        except Exception as exc:
            logger.error("[EXPIRY SWEEPER] Could not load moderation config for guild %s: %s", guild_id, exc)
            return None
        return moderation.mute_role if moderation else None

    async def _expire(self, action: Action, mute_role: Optional[int], report: SweepReport) -> None:
        try:
            claimed = await self.store.deactivate_if_active(action.id)
        except PersistenceFailed as exc:
            logger.error("[EXPIRY SWEEPER] Failed to expire action %s: %s", action.id, exc.detail)
            return

        if not claimed:
            # Another sweeper or a manual expire got there first
            report.skipped += 1
            return

        report.expired += 1
        logger.debug("[EXPIRY SWEEPER] Expiring %s %s from guild %s", action.kind, action.id, action.guild_id)

        if not await reverse_effect(self.platform, action, mute_role, f"Expiring {action.kind} {action.id}"):
            report.reversal_failures += 1
