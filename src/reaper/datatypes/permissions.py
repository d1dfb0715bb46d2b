"""
Fine-grained bot permissions layered over the platform's roles.

Permissions are stored by their dotted name (``moderation.strike``) and
converted to the enum at the repository edge.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional


class Permission(Enum):
    """Every capability a grant can confer."""

    PERMISSIONS_VIEW = "permissions.view"
    PERMISSIONS_EDIT = "permissions.edit"
    LOGGING_EDIT = "logging.edit"
    MODERATION_EDIT = "moderation.edit"
    BOARDS_EDIT = "boards.edit"
    MODERATION_STRIKE = "moderation.strike"
    MODERATION_SEARCH_SELF = "moderation.search.self"
    MODERATION_SEARCH_SELF_EXPIRED = "moderation.search.self.expired"
    MODERATION_SEARCH_OTHERS = "moderation.search.others"
    MODERATION_SEARCH_OTHERS_EXPIRED = "moderation.search.others.expired"
    MODERATION_SEARCH_UUID = "moderation.search.uuid"
    MODERATION_MUTE = "moderation.mute"
    MODERATION_UNMUTE = "moderation.unmute"
    MODERATION_KICK = "moderation.kick"
    MODERATION_BAN = "moderation.ban"
    MODERATION_UNBAN = "moderation.unban"
    MODERATION_EXPIRE = "moderation.expire"
    MODERATION_REMOVE = "moderation.remove"
    MODERATION_DURATION = "moderation.duration"
    MODERATION_REASON = "moderation.reason"
    GIVEAWAY_CREATE = "giveaway.create"
    GIVEAWAY_END = "giveaway.end"
    GIVEAWAY_REROLL = "giveaway.reroll"
    GIVEAWAY_DELETE = "giveaway.delete"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> Optional["Permission"]:
        """Return the permission for a stored name, or None if it is unknown."""
        try:
            return cls(name)
        except ValueError:
            return None


ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)
