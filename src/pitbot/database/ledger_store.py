"""
Append-only ledger store for disciplinary records.

The LedgerStore coordinates the per-table repositories behind one contract:
``append``, ``all``, ``get``, ``update_comment`` and ``update_severity``.
It holds no moderation policy; the status engine decides what rows mean.

Appends are idempotent: each table has a unique ``(user_id, timestamp)``
constraint and a colliding insert is a silent no-op that returns None. This
absorbs duplicate event delivery from the gateway.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Set

from pitbot.database.db_connection import ConnectionManager
from pitbot.database.db_schema import SchemaManager
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import EntryKind, LedgerEntry
from pitbot.repositories.penalty_repo import MinigamePenaltyRepo, TimedPenaltyRepo
from pitbot.repositories.strike_repo import StrikeRepo
from pitbot.repositories.warning_repo import WarningRepo
from pitbot.util.logger import get_logger

logger = get_logger("ledger_store")

DB_PATH = Path("./data/pitbot.db").resolve()

_REPOS = {
    EntryKind.STRIKE: StrikeRepo,
    EntryKind.RELEASE: StrikeRepo,
    EntryKind.TIMED_PENALTY: TimedPenaltyRepo,
    EntryKind.MINIGAME_PENALTY: MinigamePenaltyRepo,
    EntryKind.WARNING: WarningRepo,
}


class LedgerStore:
    """
    Coordinator for all ledger reads and writes.

    Lifecycle:
        1. ``await open()`` at startup (creates the schema)
        2. append / read / update
        3. ``await close()`` at shutdown
    """

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self._connection = ConnectionManager()

    async def open(self) -> None:
        """Open the connection and create the schema if needed."""
        if self._connection.is_open:
            logger.debug("[LEDGER] Already open, skipping")
            return
        await self._connection.open(self.db_path)
        await SchemaManager.initialize_schema(self._connection.connection)
        logger.info("[LEDGER] Ledger ready at %s", self.db_path)

    async def close(self) -> None:
        await self._connection.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def append(self, entry: LedgerEntry) -> int | None:
        """
        Append an entry to the table matching its kind.

        Args:
            entry: The entry to store. Its ``id`` is filled in on success.

        Returns:
            The new row id, or None if the user already has a row with the
            same timestamp in that table (duplicate delivery).
        """
        repo = _REPOS[entry.kind]
        async with self._connection.transaction() as conn:
            row_id = await repo.insert(conn, entry)

        if row_id is None:
            logger.debug(
                "[LEDGER] Ignored duplicate %s for user %s at %d",
                entry.kind, entry.user_id, entry.timestamp,
            )
            return None

        entry.id = row_id
        logger.debug("[LEDGER] Appended %s #%d for user %s", entry.kind, row_id, entry.user_id)
        return row_id

    async def update_comment(self, strike_id: int, comment: str) -> bool:
        async with self._connection.transaction() as conn:
            return await StrikeRepo.update_comment(conn, strike_id, comment)

    async def update_severity(self, strike_id: int, severity: int) -> bool:
        async with self._connection.transaction() as conn:
            return await StrikeRepo.update_severity(conn, strike_id, severity)

    async def mark_expired(self, strike_ids: Iterable[int]) -> None:
        ids = list(strike_ids)
        if not ids:
            return
        async with self._connection.transaction() as conn:
            await StrikeRepo.mark_expired(conn, ids)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, strike_id: int) -> LedgerEntry | None:
        """Look up a strike-shaped row by id."""
        async with self._connection.read() as conn:
            return await StrikeRepo.get(conn, strike_id)

    async def all(self, user_id: UserID) -> List[LedgerEntry]:
        """
        Return every ledger entry for a user, newest first.

        Warnings are included; the status engine ignores them.
        """
        async with self._connection.read() as conn:
            entries = await StrikeRepo.all_for_user(conn, user_id)
            entries += await TimedPenaltyRepo.all_for_user(conn, user_id)
            entries += await MinigamePenaltyRepo.all_for_user(conn, user_id)
            entries += await WarningRepo.all_for_user(conn, user_id)
        entries.sort(key=lambda entry: (entry.timestamp, entry.id or 0), reverse=True)
        return entries

    async def warnings(self, user_id: UserID) -> List[LedgerEntry]:
        async with self._connection.read() as conn:
            return await WarningRepo.all_for_user(conn, user_id)

    async def known_user_ids(self) -> Set[UserID]:
        """Every user that has a strike-shaped, timed or minigame row."""
        async with self._connection.read() as conn:
            users = await StrikeRepo.user_ids(conn)
            users |= await TimedPenaltyRepo.user_ids(conn)
            users |= await MinigamePenaltyRepo.user_ids(conn)
        return users
