"""
Tests for the append-only ledger store.

Covers idempotent appends, per-kind routing, ordering of reads and the
in-place edits the command surface allows.
"""

import pytest

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import (
    RELEASE_SEVERITY,
    REMOVED_SEVERITY,
    EntryKind,
    LedgerEntry,
)

T0 = 1_700_000_000_000
USER = UserID(111)
MOD = UserID(999)


def strike(timestamp, severity=3, user=USER, comment="spam"):
    return LedgerEntry(user_id=user, kind=EntryKind.STRIKE, timestamp=timestamp,
                       moderator_id=MOD, severity=severity, comment=comment)


@pytest.mark.asyncio
async def test_append_returns_id_and_duplicate_is_ignored(store):
    first = strike(T0)
    row_id = await store.append(first)

    assert row_id is not None
    assert first.id == row_id

    duplicate = strike(T0, severity=5, comment="replayed event")
    assert await store.append(duplicate) is None
    assert duplicate.id is None

    entries = await store.all(USER)
    assert len(entries) == 1
    assert entries[0].severity == 3
    assert entries[0].comment == "spam"


@pytest.mark.asyncio
async def test_same_timestamp_in_different_tables_is_not_a_duplicate(store):
    await store.append(strike(T0))
    warning = LedgerEntry(user_id=USER, kind=EntryKind.WARNING, timestamp=T0, moderator_id=MOD, comment="calm down")

    assert await store.append(warning) is not None
    assert len(await store.all(USER)) == 2


@pytest.mark.asyncio
async def test_all_returns_every_kind_newest_first(store):
    await store.append(strike(T0))
    await store.append(LedgerEntry(user_id=USER, kind=EntryKind.TIMED_PENALTY, timestamp=T0 + 1,
                                   moderator_id=MOD, duration_ms=3_600_000))
    await store.append(LedgerEntry(user_id=USER, kind=EntryKind.MINIGAME_PENALTY, timestamp=T0 + 2,
                                   duration_ms=60_000, message_link="https://discord.com/channels/1/2/3"))
    await store.append(LedgerEntry(user_id=USER, kind=EntryKind.RELEASE, timestamp=T0 + 3,
                                   moderator_id=MOD, severity=RELEASE_SEVERITY))
    await store.append(strike(T0, user=UserID(222)))

    entries = await store.all(USER)

    assert [entry.kind for entry in entries] == [
        EntryKind.RELEASE,
        EntryKind.MINIGAME_PENALTY,
        EntryKind.TIMED_PENALTY,
        EntryKind.STRIKE,
    ]
    assert entries[1].message_link == "https://discord.com/channels/1/2/3"
    assert entries[2].release_time == T0 + 1 + 3_600_000
    assert all(entry.user_id == USER for entry in entries)


@pytest.mark.asyncio
async def test_get_and_edits(store):
    row_id = await store.append(strike(T0))

    assert await store.update_comment(row_id, "edited")
    assert await store.update_severity(row_id, REMOVED_SEVERITY)

    entry = await store.get(row_id)
    assert entry.comment == "edited"
    assert entry.is_removed
    assert not entry.is_live_strike

    assert await store.get(row_id + 100) is None
    assert await store.update_comment(row_id + 100, "nothing") is False


@pytest.mark.asyncio
async def test_release_rows_read_back_as_release_kind(store):
    row_id = await store.append(LedgerEntry(user_id=USER, kind=EntryKind.RELEASE, timestamp=T0,
                                            moderator_id=MOD, severity=RELEASE_SEVERITY))

    entry = await store.get(row_id)
    assert entry.kind is EntryKind.RELEASE
    assert entry.severity == RELEASE_SEVERITY


@pytest.mark.asyncio
async def test_mark_expired_persists(store):
    first = await store.append(strike(T0))
    second = await store.append(strike(T0 + 1))

    await store.mark_expired([first])
    await store.mark_expired([])

    assert (await store.get(first)).expired is True
    assert (await store.get(second)).expired is False


@pytest.mark.asyncio
async def test_warnings_and_known_user_ids(store):
    await store.append(strike(T0))
    await store.append(LedgerEntry(user_id=UserID(222), kind=EntryKind.MINIGAME_PENALTY,
                                   timestamp=T0, duration_ms=1000))
    await store.append(LedgerEntry(user_id=UserID(333), kind=EntryKind.WARNING, timestamp=T0, moderator_id=MOD))
    await store.append(LedgerEntry(user_id=UserID(333), kind=EntryKind.WARNING, timestamp=T0 + 5, moderator_id=MOD))

    warnings = await store.warnings(UserID(333))
    assert [w.timestamp for w in warnings] == [T0 + 5, T0]

    # Warnings alone never make a user part of the sweep
    assert await store.known_user_ids() == {UserID(111), UserID(222)}
