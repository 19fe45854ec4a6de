"""
Ledger schema initialization.

Every ledger table carries ``UNIQUE(user_id, timestamp)`` so a duplicate event
delivery inserts nothing. Timestamps and durations are INTEGER milliseconds.
"""

import aiosqlite
from pitbot.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the ledger tables and indexes."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all ledger tables and indexes if they do not exist yet.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Ledger schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        # Strike-shaped rows: severity 1-5 strike, 0 removed, -1 release
        await db.execute("""
            CREATE TABLE IF NOT EXISTS strikes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                moderator_id TEXT,
                severity INTEGER NOT NULL,
                comment TEXT,
                timestamp INTEGER NOT NULL,
                expired INTEGER NOT NULL DEFAULT 0,
                UNIQUE (user_id, timestamp)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS warnings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                moderator_id TEXT,
                comment TEXT,
                timestamp INTEGER NOT NULL,
                UNIQUE (user_id, timestamp)
            )
        """)

        # Manual timeouts (moderator_id set) and self-timeouts (moderator_id NULL)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS timed_penalties (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                moderator_id TEXT,
                comment TEXT,
                duration_ms INTEGER NOT NULL,
                timestamp INTEGER NOT NULL,
                UNIQUE (user_id, timestamp)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS minigame_penalties (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                duration_ms INTEGER NOT NULL,
                message_link TEXT,
                timestamp INTEGER NOT NULL,
                UNIQUE (user_id, timestamp)
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
        """Create indexes for the per-user ledger reads."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_strikes_user ON strikes(user_id, timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_warnings_user ON warnings(user_id, timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_timed_penalties_user ON timed_penalties(user_id, timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_minigame_penalties_user ON minigame_penalties(user_id, timestamp DESC)")

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Record the schema version."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
