"""
Database initialization and shutdown.

The Database coordinator opens the shared connection, creates the schema
and closes everything on shutdown. Repositories never open connections of
their own; they receive one from ``db_connection``.
"""

from __future__ import annotations

from pathlib import Path

from reaper.database.db_connection import ConnectionManager, db_connection
from reaper.database.db_schema import SchemaManager
from reaper.util.logger import get_logger

logger = get_logger("database")


class Database:
    """
    Central database coordinator.

    Lifecycle:
        1. Call initialize(path) at program startup
        2. Use repositories/services through the shared connection
        3. Call shutdown() at program end
    """

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self.connection = connection
        self._initialized = False

    async def initialize(self, db_path: Path) -> bool:
        """
        Open the database and create the schema.

        Returns:
            True if initialization succeeded, False otherwise
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self.connection.open(db_path)
            async with self.connection.transaction() as conn:
                await SchemaManager.initialize_schema(conn)
        except Exception as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", db_path)
        return True

    async def shutdown(self) -> None:
        """Close the shared connection."""
        if not self._initialized:
            return

        await self.connection.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")


# Global Database instance
database = Database()
