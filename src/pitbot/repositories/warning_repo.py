"""
Persistent storage for warnings. Warnings never affect suspension state.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import EntryKind, LedgerEntry


class WarningRepo:
    """Low-level CRUD for the ``warnings`` table."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, entry: LedgerEntry) -> int | None:
        """Insert a warning; returns None when (user, timestamp) already exists."""
        cursor = await conn.execute(
            "INSERT OR IGNORE INTO warnings (user_id, moderator_id, comment, timestamp) VALUES (?, ?, ?, ?)",
            (
                str(entry.user_id),
                str(entry.moderator_id) if entry.moderator_id is not None else None,
                entry.comment,
                entry.timestamp,
            ),
        )
        return cursor.lastrowid if cursor.rowcount == 1 else None

    @staticmethod
    async def all_for_user(conn: aiosqlite.Connection, user_id: UserID) -> List[LedgerEntry]:
        """Return the user's warnings, newest first."""
        async with conn.execute(
            "SELECT id, user_id, moderator_id, comment, timestamp FROM warnings "
            "WHERE user_id = ? ORDER BY timestamp DESC, id DESC",
            (str(user_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            LedgerEntry(
                id=row["id"],
                user_id=UserID(row["user_id"]),
                moderator_id=UserID(row["moderator_id"]) if row["moderator_id"] else None,
                kind=EntryKind.WARNING,
                comment=row["comment"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]
