"""
Database schema initialization.

Handles creation of tables, indexes and schema version tracking. Instants
are INTEGER unix seconds (UTC); a NULL ``expiry`` means permanent.
"""

import aiosqlite
from reaper.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the tables and indexes the bot needs, idempotently."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables and indexes if they do not exist.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS actions (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL CHECK (kind IN ('strike', 'mute', 'kick', 'ban')),
                user_id INTEGER NOT NULL,
                moderator_id INTEGER NOT NULL,
                guild_id INTEGER NOT NULL,
                reason TEXT NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                expiry INTEGER,
                created_at INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS strike_escalations (
                guild_id INTEGER NOT NULL,
                strike_count INTEGER NOT NULL,
                action_kind TEXT NOT NULL,
                action_duration TEXT,
                PRIMARY KEY (guild_id, strike_count)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS moderation_configuration (
                guild_id INTEGER PRIMARY KEY,
                mute_role INTEGER,
                default_strike_duration TEXT
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS logging_configuration (
                guild_id INTEGER PRIMARY KEY,
                log_actions INTEGER NOT NULL DEFAULT 0,
                log_messages INTEGER NOT NULL DEFAULT 0,
                log_voice INTEGER NOT NULL DEFAULT 0,
                log_channel INTEGER,
                log_action_channel INTEGER,
                log_message_channel INTEGER,
                log_voice_channel INTEGER
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_permissions (
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                permission TEXT NOT NULL,
                PRIMARY KEY (guild_id, user_id, permission)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS role_permissions (
                guild_id INTEGER NOT NULL,
                role_id INTEGER NOT NULL,
                permission TEXT NOT NULL,
                PRIMARY KEY (guild_id, role_id, permission)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS role_recovery_configuration (
                guild_id INTEGER PRIMARY KEY,
                enabled INTEGER NOT NULL DEFAULT 0
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS role_recovery (
                guild_id INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                role_id INTEGER NOT NULL,
                PRIMARY KEY (guild_id, user_id, role_id)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the sweeper scan and per-user lookups."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_actions_due ON actions(active, expiry)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_actions_user ON actions(guild_id, user_id, kind, active)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_actions_moderator ON actions(guild_id, moderator_id, created_at DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_actions_guild ON actions(guild_id, created_at DESC)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
