"""
Per-guild configuration values read by the moderation core.

Database schema:
- moderation_configuration: guild_id, mute_role, default_strike_duration
- logging_configuration: guild_id, log_actions, log_messages, log_voice,
  log_channel, log_action_channel, log_message_channel, log_voice_channel
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class LogCategory(Enum):
    """Categories of guild log output, each gated by its own flag."""

    ACTION = "action"
    MESSAGE = "message"
    VOICE = "voice"


@dataclass(slots=True)
class ModerationConfig:
    """Moderation settings for a guild."""

    guild_id: int
    mute_role: Optional[int] = None
    default_strike_duration: Optional[str] = None


@dataclass(slots=True)
class LoggingConfig:
    """Log channel routing for a guild.

    ``log_channel`` is a single-channel override: when set it receives every
    enabled category, superseding the category-specific channels.
    """

    guild_id: int
    log_actions: bool = False
    log_messages: bool = False
    log_voice: bool = False
    log_channel: Optional[int] = None
    log_action_channel: Optional[int] = None
    log_message_channel: Optional[int] = None
    log_voice_channel: Optional[int] = None

    def is_enabled(self, category: LogCategory) -> bool:
        match category:
            case LogCategory.ACTION:
                return self.log_actions
            case LogCategory.MESSAGE:
                return self.log_messages
            case LogCategory.VOICE:
                return self.log_voice

    def channel_for(self, category: LogCategory) -> Optional[int]:
        """Return the channel id for ``category``, or None when disabled or unset."""
        if not self.is_enabled(category):
            return None

        if self.log_channel is not None:
            return self.log_channel

        match category:
            case LogCategory.ACTION:
                return self.log_action_channel
            case LogCategory.MESSAGE:
                return self.log_message_channel
            case LogCategory.VOICE:
                return self.log_voice_channel
