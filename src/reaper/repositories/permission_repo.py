"""
Repository for the user_permissions and role_permissions tables.

A grant is a (guild, subject, permission) row; its existence is the grant.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Set

import aiosqlite

from reaper.datatypes.permissions import Permission
from reaper.util.logger import get_logger

logger = get_logger("permission_repo")

_TABLES = {
    "user": ("user_permissions", "user_id"),
    "role": ("role_permissions", "role_id"),
}


def _to_permissions(names: Iterable[str]) -> Set[Permission]:
    result: Set[Permission] = set()
    for name in names:
        permission = Permission.from_name(name)
        if permission is None:
            logger.warning("[PERMISSION REPO] Skipping unknown stored permission %r", name)
            continue
        result.add(permission)
    return result


class PermissionRepository:
    """CRUD for additive permission grants to users and roles."""

    async def get_for_user(
        self, conn: aiosqlite.Connection, guild_id: int, user_id: int
    ) -> Set[Permission]:
        async with conn.execute(
            "SELECT permission FROM user_permissions WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        ) as cursor:
            rows = await cursor.fetchall()
        return _to_permissions(row[0] for row in rows)

    async def get_for_roles(
        self, conn: aiosqlite.Connection, guild_id: int, role_ids: List[int]
    ) -> Dict[int, Set[Permission]]:
        """Return grants for several roles in one query."""
        if not role_ids:
            return {}

        placeholders = ",".join("?" * len(role_ids))
        async with conn.execute(
            f"SELECT role_id, permission FROM role_permissions "
            f"WHERE guild_id = ? AND role_id IN ({placeholders})",
            [guild_id, *role_ids],
        ) as cursor:
            rows = await cursor.fetchall()

        names: Dict[int, List[str]] = {rid: [] for rid in role_ids}
        for role_id, permission in rows:
            names.setdefault(role_id, []).append(permission)
        return {rid: _to_permissions(perms) for rid, perms in names.items()}

    async def grant(
        self, conn: aiosqlite.Connection, subject: str, guild_id: int, subject_id: int, permission: Permission
    ) -> bool:
        """Insert a grant; returns False when it already existed."""
        table, column = _TABLES[subject]
        cursor = await conn.execute(
            f"INSERT OR IGNORE INTO {table} (guild_id, {column}, permission) VALUES (?, ?, ?)",
            (guild_id, subject_id, permission.value),
        )
        return cursor.rowcount > 0

    async def revoke(
        self, conn: aiosqlite.Connection, subject: str, guild_id: int, subject_id: int, permission: Permission
    ) -> bool:
        """Delete a grant; returns False when there was nothing to delete."""
        table, column = _TABLES[subject]
        cursor = await conn.execute(
            f"DELETE FROM {table} WHERE guild_id = ? AND {column} = ? AND permission = ?",
            (guild_id, subject_id, permission.value),
        )
        return cursor.rowcount > 0
