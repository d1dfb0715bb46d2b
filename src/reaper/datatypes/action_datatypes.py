"""
Action kinds and data structures for moderation actions.

This module defines the ActionKind enum, the persisted Action record, the
per-guild EscalationRule, and the IssuedAction value returned by the
action engine.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ActionKind(Enum):
    """Enumeration of supported moderation action kinds."""

    STRIKE = "strike"
    MUTE = "mute"
    KICK = "kick"
    BAN = "ban"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return self.value.capitalize()


def new_action_id() -> str:
    """Generate a fresh, never reused action identifier."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Action:
    """The durable record of a single moderation event.

    Attributes:
        id: Opaque unique identifier generated at creation
        kind: Kind of action; never changes after creation
        target_user_id: User the action was taken against
        moderator_id: Moderator who issued it (the system id for automated actions)
        guild_id: Guild the action belongs to
        reason: Free-text reason, correctable after creation
        active: Whether the action's effect is currently in force
        expiry: Instant the action lapses, or None for permanent
        created_at: Creation instant
    """
    kind: ActionKind
    target_user_id: int
    moderator_id: int
    guild_id: int
    reason: str
    active: bool = True
    expiry: Optional[datetime] = None
    id: str = field(default_factory=new_action_id)
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        kind: ActionKind,
        guild_id: int,
        target_user_id: int,
        moderator_id: int,
        reason: str,
        expiry: Optional[datetime],
    ) -> "Action":
        """Build a new record; kicks are recorded inactive since they have no ongoing effect."""
        return cls(
            kind=kind,
            target_user_id=target_user_id,
            moderator_id=moderator_id,
            guild_id=guild_id,
            reason=reason,
            active=kind is not ActionKind.KICK,
            expiry=expiry,
        )

    @property
    def permanent(self) -> bool:
        return self.expiry is None

    def is_due(self, now: datetime) -> bool:
        """True when the action is still marked active but its expiry has passed."""
        return self.active and self.expiry is not None and self.expiry < now


@dataclass(slots=True)
class EscalationRule:
    """Per-guild rule mapping a strike count to an automatic action.

    ``action_duration`` is required for mutes, optional for bans (absent
    means permanent) and ignored for kicks.
    """
    guild_id: int
    strike_count: int
    action_kind: ActionKind
    action_duration: Optional[str] = None


@dataclass(slots=True)
class EscalationOutcome:
    """Result of the escalation triggered by a strike.

    Exactly one of ``issued`` and ``error`` is set.
    """
    rule: EscalationRule
    issued: Optional["IssuedAction"] = None
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.issued is not None


@dataclass(slots=True)
class IssuedAction:
    """Value returned by every successful ``issue`` call."""
    action: Action
    dm_notified: bool = False
    escalation: Optional[EscalationOutcome] = None
