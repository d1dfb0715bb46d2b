"""
Permission resolution for command gating.

An actor's effective permissions are, in priority order:

1. everything, if they own the guild;
2. everything, if any of their roles has the platform administrator flag;
3. otherwise the union of grants to their user id and to each of their roles.

Grants are purely additive: there are no deny entries, so removing a grant
is the only way to shrink a permission set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Set

from reaper.database.db_connection import ConnectionManager, db_connection
from reaper.datatypes.permissions import ALL_PERMISSIONS, Permission
from reaper.repositories.permission_repo import PermissionRepository
from reaper.util.logger import get_logger

logger = get_logger("permission_resolver")


@dataclass(slots=True)
class Actor:
    """The invoking member, reduced to what resolution needs."""
    user_id: int
    role_ids: List[int] = field(default_factory=list)
    is_administrator: bool = False

    @classmethod
    def from_member(cls, member) -> "Actor":
        """Build from a ``discord.Member`` (roles and guild_permissions)."""
        roles = getattr(member, "roles", []) or []
        permissions = getattr(member, "guild_permissions", None)
        return cls(
            user_id=member.id,
            role_ids=[role.id for role in roles],
            is_administrator=bool(getattr(permissions, "administrator", False)),
        )


class PermissionResolver:
    """Resolves and edits permission grants."""

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection
        self._repo = PermissionRepository()

    async def resolve(self, guild_id: int, owner_id: int, actor: Actor) -> FrozenSet[Permission]:
        """Return the actor's effective permission set in the guild."""
        if actor.user_id == owner_id or actor.is_administrator:
            return ALL_PERMISSIONS

        async with self._connection.read() as conn:
            permissions: Set[Permission] = set(await self._repo.get_for_user(conn, guild_id, actor.user_id))
            by_role = await self._repo.get_for_roles(conn, guild_id, actor.role_ids)

        for role_permissions in by_role.values():
            permissions |= role_permissions
        return frozenset(permissions)

    async def has(self, guild_id: int, owner_id: int, actor: Actor, permission: Permission) -> bool:
        return permission in await self.resolve(guild_id, owner_id, actor)

    # ------------------------------------------------------------------
    # Grant management
    # ------------------------------------------------------------------

    async def list_user(self, guild_id: int, user_id: int) -> Set[Permission]:
        async with self._connection.read() as conn:
            return await self._repo.get_for_user(conn, guild_id, user_id)

    async def list_role(self, guild_id: int, role_id: int) -> Set[Permission]:
        async with self._connection.read() as conn:
            by_role = await self._repo.get_for_roles(conn, guild_id, [role_id])
        return by_role.get(role_id, set())

    async def grant(self, subject: str, guild_id: int, subject_id: int, permissions: Iterable[Permission]) -> int:
        """Grant permissions to a ``"user"`` or ``"role"``; returns how many were new."""
        added = 0
        async with self._connection.transaction() as conn:
            for permission in permissions:
                added += await self._repo.grant(conn, subject, guild_id, subject_id, permission)
        logger.info("[PERMISSIONS] Granted %d permissions to %s %s in guild %s", added, subject, subject_id, guild_id)
        return added

    async def revoke(self, subject: str, guild_id: int, subject_id: int, permissions: Iterable[Permission]) -> int:
        """Remove grants from a ``"user"`` or ``"role"``; returns how many existed."""
        removed = 0
        async with self._connection.transaction() as conn:
            for permission in permissions:
                removed += await self._repo.revoke(conn, subject, guild_id, subject_id, permission)
        logger.info("[PERMISSIONS] Revoked %d permissions from %s %s in guild %s", removed, subject, subject_id, guild_id)
        return removed
