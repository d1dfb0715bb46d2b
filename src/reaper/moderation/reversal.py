"""
Reversal of an action's platform effect when it stops being in force.

Shared by the expiry sweeper and manual expiry. Strikes and kicks have
nothing to reverse.
"""

from __future__ import annotations

from typing import Optional

from reaper.datatypes.action_datatypes import Action, ActionKind
from reaper.moderation.errors import PlatformEffectFailed
from reaper.moderation.platform import PlatformClient
from reaper.util.logger import get_logger

logger = get_logger("reversal")


async def reverse_effect(
    platform: PlatformClient,
    action: Action,
    mute_role: Optional[int],
    reason: str,
) -> bool:
    """
    Undo the platform side of ``action``.

    Returns True when the platform call succeeded or there was nothing to
    undo, False when it failed or no mute role is configured. Failures are
    logged and never raised, so callers can still mark the record inactive.
    """
    match action.kind:
        case ActionKind.MUTE:
            if mute_role is None:
                logger.warning(
                    "[REVERSAL] No mute role configured for guild %s; cannot unmute %s for action %s",
                    action.guild_id, action.target_user_id, action.id,
                )
                return False
            try:
                await platform.revoke_role(action.guild_id, action.target_user_id, mute_role, reason)
            except PlatformEffectFailed as exc:
                logger.error("[REVERSAL] Failed to remove mute role for action %s: %s", action.id, exc.detail)
                return False
            return True
        case ActionKind.BAN:
            try:
                await platform.unban(action.guild_id, action.target_user_id, reason)
            except PlatformEffectFailed as exc:
                logger.error("[REVERSAL] Failed to remove ban for action %s: %s", action.id, exc.detail)
                return False
            return True
        case ActionKind.STRIKE | ActionKind.KICK:
            return True
