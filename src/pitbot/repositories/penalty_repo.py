"""
Persistent storage for duration-based penalties.

``timed_penalties`` holds manual timeouts issued without a strike and
self-timeouts (no moderator). ``minigame_penalties`` holds penalties handed
out by the bullet hell minigame.
"""

from __future__ import annotations

from typing import List, Set

import aiosqlite

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import EntryKind, LedgerEntry


class TimedPenaltyRepo:
    """Low-level CRUD for the ``timed_penalties`` table."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, entry: LedgerEntry) -> int | None:
        cursor = await conn.execute(
            """
            INSERT OR IGNORE INTO timed_penalties (user_id, moderator_id, comment, duration_ms, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(entry.user_id),
                str(entry.moderator_id) if entry.moderator_id is not None else None,
                entry.comment,
                entry.duration_ms,
                entry.timestamp,
            ),
        )
        return cursor.lastrowid if cursor.rowcount == 1 else None

    @staticmethod
    async def all_for_user(conn: aiosqlite.Connection, user_id: UserID) -> List[LedgerEntry]:
        async with conn.execute(
            "SELECT id, user_id, moderator_id, comment, duration_ms, timestamp FROM timed_penalties "
            "WHERE user_id = ? ORDER BY timestamp DESC, id DESC",
            (str(user_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            LedgerEntry(
                id=row["id"],
                user_id=UserID(row["user_id"]),
                moderator_id=UserID(row["moderator_id"]) if row["moderator_id"] else None,
                kind=EntryKind.TIMED_PENALTY,
                comment=row["comment"],
                duration_ms=row["duration_ms"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    @staticmethod
    async def user_ids(conn: aiosqlite.Connection) -> Set[UserID]:
        async with conn.execute("SELECT DISTINCT user_id FROM timed_penalties") as cursor:
            rows = await cursor.fetchall()
        return {UserID(row[0]) for row in rows}


class MinigamePenaltyRepo:
    """Low-level CRUD for the ``minigame_penalties`` table."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, entry: LedgerEntry) -> int | None:
        cursor = await conn.execute(
            """
            INSERT OR IGNORE INTO minigame_penalties (user_id, duration_ms, message_link, timestamp)
            VALUES (?, ?, ?, ?)
            """,
            (str(entry.user_id), entry.duration_ms, entry.message_link, entry.timestamp),
        )
        return cursor.lastrowid if cursor.rowcount == 1 else None

    @staticmethod
    async def all_for_user(conn: aiosqlite.Connection, user_id: UserID) -> List[LedgerEntry]:
        async with conn.execute(
            "SELECT id, user_id, duration_ms, message_link, timestamp FROM minigame_penalties "
            "WHERE user_id = ? ORDER BY timestamp DESC, id DESC",
            (str(user_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [
            LedgerEntry(
                id=row["id"],
                user_id=UserID(row["user_id"]),
                kind=EntryKind.MINIGAME_PENALTY,
                duration_ms=row["duration_ms"],
                message_link=row["message_link"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    @staticmethod
    async def user_ids(conn: aiosqlite.Connection) -> Set[UserID]:
        async with conn.execute("SELECT DISTINCT user_id FROM minigame_penalties") as cursor:
            rows = await cursor.fetchall()
        return {UserID(row[0]) for row in rows}
