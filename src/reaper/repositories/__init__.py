"""Repository layer: raw SQL for each table, no connection management."""
from reaper.repositories.action_repo import ActionRepository
from reaper.repositories.escalation_repo import EscalationRepository
from reaper.repositories.guild_config_repo import GuildConfigRepository
from reaper.repositories.permission_repo import PermissionRepository
from reaper.repositories.role_recovery_repo import RoleRecoveryRepository

__all__ = [
    "ActionRepository",
    "EscalationRepository",
    "GuildConfigRepository",
    "PermissionRepository",
    "RoleRecoveryRepository",
]
