"""
The ledger's single aiosqlite connection.

The bot keeps one connection open for its whole life. WAL lets reads run
next to a write; writes queue on an asyncio semaphore so two commands
touching the ledger at once never hit SQLite's busy timeout.

Concurrency model
-----------------
SQLite allows one writer at a time. ``transaction()`` takes the write
semaphore, so concurrent strike/release/sweep writes run one after another
inside the event loop. ``read()`` shares the connection without waiting.

Usage
-----
    manager = ConnectionManager()
    await manager.open(Path("data/pitbot.db"))

    async with manager.read() as conn:
        cursor = await conn.execute("SELECT * FROM strikes WHERE user_id = ?", (user_id,))

    async with manager.transaction() as conn:
        await conn.execute("UPDATE strikes SET severity = 0 WHERE id = ?", (strike_id,))
        # commits on clean exit, rolls back on exception

    await manager.close()
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from pitbot.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
)


class ConnectionManager:
    """
    Owns the connection used by :class:`~pitbot.database.ledger_store.LedgerStore`.

    * Reads: ``async with read()``; no locking, WAL serves them next to writes.
    * Writes: ``async with transaction()``; serialised by ``_write_sem``.

    Attributes:
        path: The database file, set once :meth:`open` succeeds.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self.path: Path | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self, path: Path) -> None:
        """
        Open the ledger database and apply the connection pragmas.

        The parent directory is created when missing. A second call while the
        connection is open only logs a warning.

        Args:
            path: Path to the SQLite database file.
        """
        if self._conn is not None:
            logger.warning("[LEDGER] Connection to %s already open, ignoring", self.path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        for pragma in _PRAGMAS:
            await conn.execute(pragma)
        await conn.commit()

        self._conn = conn
        self.path = path
        logger.info("[LEDGER] Opened %s", path)

    async def close(self) -> None:
        """
        Checkpoint the WAL into the main file, then close the connection.

        Safe to call more than once; a failed checkpoint is logged and the
        connection is closed anyway.
        """
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            await conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await conn.commit()
        except aiosqlite.Error:
            logger.exception("[LEDGER] WAL checkpoint failed during close")
        finally:
            await conn.close()
            logger.info("[LEDGER] Closed %s", self.path)

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw aiosqlite connection.

        Raises:
            RuntimeError: If :meth:`open` has not been awaited yet.
        """
        if self._conn is None:
            raise RuntimeError("Ledger connection is not open; call open() first.")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Provide the connection for one serialised write transaction.

        Commits when the block exits cleanly and rolls back if it raises,
        including on task cancellation.

        Raises:
            RuntimeError: If the connection is not open.
        """
        conn = self.connection
        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except BaseException:
                await conn.rollback()
                raise

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Provide the connection for read-only queries; no semaphore is taken."""
        yield self.connection
