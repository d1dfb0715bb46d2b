"""
Collaborator interfaces the moderation core consumes.

The engine and sweeper only see these protocols; the py-cord backed
implementations live in ``reaper.moderation.discord_platform`` and tests
substitute mocks.

Platform effects raise ``PlatformEffectFailed`` when the platform rejects
them. The two best-effort channels return a bool instead of raising.
"""

from __future__ import annotations

from typing import Optional, Protocol

import discord


class PlatformClient(Protocol):
    """Applies and reverses moderation effects on the chat platform."""

    async def ban(self, guild_id: int, user_id: int, reason: str) -> None: ...

    async def unban(self, guild_id: int, user_id: int, reason: str) -> None: ...

    async def kick(self, guild_id: int, user_id: int, reason: str) -> None: ...

    async def grant_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None: ...

    async def revoke_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None: ...

    def guild_name(self, guild_id: int) -> Optional[str]: ...


class DirectNotifier(Protocol):
    """Sends a direct message to a user; False when it could not be delivered."""

    async def send_direct_message(self, user_id: int, embed: discord.Embed) -> bool: ...


class AuditLogPublisher(Protocol):
    """Posts to a guild log channel; False when the post failed."""

    async def publish(self, channel_id: int, embed: discord.Embed) -> bool: ...
