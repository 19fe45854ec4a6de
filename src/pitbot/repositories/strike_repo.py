"""
Persistent storage for strike-shaped rows (strikes, releases, removed strikes).
"""

from __future__ import annotations

from typing import Iterable, List, Set

import aiosqlite

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import EntryKind, LedgerEntry

_COLUMNS = "id, user_id, moderator_id, severity, comment, timestamp, expired"


def _row_to_entry(row: aiosqlite.Row) -> LedgerEntry:
    severity = row["severity"]
    return LedgerEntry(
        id=row["id"],
        user_id=UserID(row["user_id"]),
        moderator_id=UserID(row["moderator_id"]) if row["moderator_id"] else None,
        kind=EntryKind.RELEASE if severity < 0 else EntryKind.STRIKE,
        severity=severity,
        comment=row["comment"],
        timestamp=row["timestamp"],
        expired=bool(row["expired"]),
    )


class StrikeRepo:
    """Low-level CRUD for the ``strikes`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert(conn: aiosqlite.Connection, entry: LedgerEntry) -> int | None:
        """Insert a strike-shaped row; returns None when (user, timestamp) already exists."""
        cursor = await conn.execute(
            """
            INSERT OR IGNORE INTO strikes (user_id, moderator_id, severity, comment, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(entry.user_id),
                str(entry.moderator_id) if entry.moderator_id is not None else None,
                entry.severity,
                entry.comment,
                entry.timestamp,
            ),
        )
        return cursor.lastrowid if cursor.rowcount == 1 else None

    @staticmethod
    async def update_comment(conn: aiosqlite.Connection, strike_id: int, comment: str) -> bool:
        cursor = await conn.execute("UPDATE strikes SET comment = ? WHERE id = ?", (comment, strike_id))
        return cursor.rowcount == 1

    @staticmethod
    async def update_severity(conn: aiosqlite.Connection, strike_id: int, severity: int) -> bool:
        cursor = await conn.execute("UPDATE strikes SET severity = ? WHERE id = ?", (severity, strike_id))
        return cursor.rowcount == 1

    @staticmethod
    async def mark_expired(conn: aiosqlite.Connection, strike_ids: Iterable[int]) -> None:
        await conn.executemany(
            "UPDATE strikes SET expired = 1 WHERE id = ?",
            [(strike_id,) for strike_id in strike_ids],
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, strike_id: int) -> LedgerEntry | None:
        async with conn.execute(f"SELECT {_COLUMNS} FROM strikes WHERE id = ?", (strike_id,)) as cursor:
            row = await cursor.fetchone()
        return _row_to_entry(row) if row is not None else None

    @staticmethod
    async def all_for_user(conn: aiosqlite.Connection, user_id: UserID) -> List[LedgerEntry]:
        """Return every strike-shaped row for the user, newest first."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM strikes WHERE user_id = ? ORDER BY timestamp DESC, id DESC",
            (str(user_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_entry(row) for row in rows]

    @staticmethod
    async def user_ids(conn: aiosqlite.Connection) -> Set[UserID]:
        async with conn.execute("SELECT DISTINCT user_id FROM strikes") as cursor:
            rows = await cursor.fetchall()
        return {UserID(row[0]) for row in rows}
