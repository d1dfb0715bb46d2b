"""
Errors raised by the moderation core.

Every error carries a short ``title`` and optional ``guidance`` so the
command layer can render it without knowing the specific class.
Configuration errors are user-actionable; ``PlatformEffectFailed`` and
``PersistenceFailed`` abort the operation that raised them.
"""

from __future__ import annotations

from typing import Optional


class ActionError(Exception):
    """Base class for every failure surfaced by the action engine."""

    title: str = "The action could not be completed"
    guidance: Optional[str] = None

    def __init__(self, title: Optional[str] = None, guidance: Optional[str] = None) -> None:
        if title is not None:
            self.title = title
        if guidance is not None:
            self.guidance = guidance
        super().__init__(self.title)


class ConfigurationError(ActionError):
    """A guild is missing (or has invalid) configuration the action needs."""


class NoDurationConfigured(ConfigurationError):
    title = "No duration was provided"
    guidance = (
        "A duration was not provided and this server has not configured "
        "a default strike duration"
    )


class NoModerationConfig(ConfigurationError):
    title = "Could not find a moderation configuration!"
    guidance = "Please contact your server administrator to configure the server moderation"


class NoMuteRoleConfigured(ConfigurationError):
    title = "Could not find mute role!"
    guidance = "Please contact your server administrator to configure a mute role"


class InvalidEscalationRule(ConfigurationError):
    title = "Strike escalation action type is strike!"
    guidance = "This should not happen, please contact a developer."


class InvalidDuration(ActionError):
    title = "Invalid duration"
    guidance = "Durations look like `30d`, `1d12h` or `2w`, and must be longer than zero."


class ActionNotFound(ActionError):
    title = "Could not find that action"

    def __init__(self, action_id: str) -> None:
        self.action_id = action_id
        super().__init__(guidance=f"No action with ID `{action_id}` exists in this server.")


class PlatformEffectFailed(ActionError):
    """The platform rejected the ban, kick or role change."""

    title = "The platform rejected the action"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(guidance=detail)


class PersistenceFailed(ActionError):
    """The store could not read or write an action record."""

    title = "Failed to save the action to the database!"
    guidance = "Please contact the bot owner for assistance."

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__()
