import pytest

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import EntryKind, LedgerEntry
from pitbot.datatypes.status_datatypes import CurrentPit, PitSource, SyncOutcome
from pitbot.moderation.role_sync import RoleSynchronizer

T0 = 1_700_000_000_000
USER = UserID(111)


def pit(active=True):
    entry = LedgerEntry(user_id=USER, kind=EntryKind.MINIGAME_PENALTY, timestamp=T0, duration_ms=1000)
    return CurrentPit(source=PitSource.MINIGAME, entry=entry, is_active=active, release_time=T0 + 1000)


@pytest.mark.asyncio
async def test_second_sync_is_a_no_op(ctx):
    sync = RoleSynchronizer(ctx)

    assert await sync.sync(USER, pit(), "Bullet Hell") is SyncOutcome.ADDED
    assert await sync.sync(USER, pit(), "Bullet Hell") is SyncOutcome.UNCHANGED

    assert len(ctx.flag.calls) == 1
    assert len(ctx.notifier.logs) == 1


@pytest.mark.asyncio
async def test_removes_role_when_not_active(ctx):
    ctx.flag.flagged.add(USER)

    outcome = await RoleSynchronizer(ctx).sync(USER, None, "Suspension ended.")

    assert outcome is SyncOutcome.REMOVED
    assert USER not in ctx.flag.flagged
    assert ctx.flag.calls == [(USER, False, "Suspension ended.")]


@pytest.mark.asyncio
async def test_notice_only_with_reason(ctx):
    outcome = await RoleSynchronizer(ctx).sync(USER, pit())

    assert outcome is SyncOutcome.ADDED
    assert ctx.notifier.logs == []


@pytest.mark.asyncio
async def test_failure_is_reported_not_raised(ctx):
    ctx.flag.fail = True

    outcome = await RoleSynchronizer(ctx).sync(USER, pit(), "Bullet Hell")

    assert outcome is SyncOutcome.FAILED
    assert len(ctx.notifier.logs) == 1
    embed, content = ctx.notifier.logs[0]
    assert embed is None
    assert "MANAGE_ROLES" in content


@pytest.mark.asyncio
async def test_log_channel_failure_does_not_break_sync(ctx):
    ctx.notifier.log_fail = True

    assert await RoleSynchronizer(ctx).sync(USER, pit(), "Bullet Hell") is SyncOutcome.ADDED
    assert USER in ctx.flag.flagged


@pytest.mark.asyncio
async def test_non_members_are_skipped(ctx):
    ctx.flag.members = set()

    assert await RoleSynchronizer(ctx).sync(USER, pit(), "Bullet Hell") is SyncOutcome.UNCHANGED
    assert ctx.flag.calls == []
