"""
Tests for PitEngine operations, dispatch and the periodic sweep.

Every test runs against a real SQLite ledger in ``tmp_path`` with in-memory
fakes for the pit role and the notifier. The clock is advanced between
writes because ledger rows are unique per user and millisecond.
"""

import asyncio

import pytest

from pitbot.datatypes.command_datatypes import (
    ListStrikesCommand,
    ManualTimeoutCommand,
    MinigamePenaltyCommand,
    SelfTimeoutCommand,
    StrikeCommand,
    WarnCommand,
)
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import RELEASE_SEVERITY, REMOVED_SEVERITY, EntryKind
from pitbot.datatypes.status_datatypes import PitSource, SyncOutcome
from pitbot.errors import NotFoundError, ValidationError

HOUR = 3_600_000
DAY = 24 * HOUR
USER = UserID(111)
MOD = UserID(999)


def log_titles(ctx):
    return [embed.title for embed, _ in ctx.notifier.logs if embed is not None]


# ----------------------------------------------------------------------
# Strikes
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_strike_pits_user_and_notifies(engine, ctx, clock):
    result = await engine.strike(USER, MOD, 3, "spam")

    assert result.success
    assert result.entry.id is not None
    assert result.sync is SyncOutcome.ADDED
    assert result.dm_sent is True
    assert result.current_pit.source is PitSource.STRIKE
    assert result.current_pit.release_time == clock.now + 12 * HOUR
    assert USER in ctx.flag.flagged
    assert len(ctx.notifier.dms) == 1
    assert log_titles(ctx) == ["User Pitted", "Strike Issued (L3)"]


@pytest.mark.asyncio
@pytest.mark.parametrize("severity", [0, 6, -1, True, "3"])
async def test_strike_rejects_bad_severity_before_writing(engine, ctx, severity):
    with pytest.raises(ValidationError):
        await engine.strike(USER, MOD, severity, "spam")

    assert await ctx.store.all(USER) == []
    assert ctx.flag.calls == []


@pytest.mark.asyncio
async def test_duplicate_strike_is_ignored(engine, ctx):
    await engine.strike(USER, MOD, 2, "first")
    result = await engine.strike(USER, MOD, 2, "replay")

    assert result.success is False
    assert len(await ctx.store.all(USER)) == 1
    assert len(ctx.notifier.dms) == 1


@pytest.mark.asyncio
async def test_fifth_strike_posts_maximum_notice(engine, ctx, clock):
    for _ in range(5):
        await engine.strike(USER, MOD, 1, "again")
        clock.advance(1000)

    assert log_titles(ctx).count("User With 5 Strikes") == 1


@pytest.mark.asyncio
async def test_dm_failure_keeps_ledger_and_role(engine, ctx):
    ctx.notifier.dm_fail = True

    result = await engine.strike(USER, MOD, 1, "spam")

    assert result.success
    assert result.dm_sent is False
    assert USER in ctx.flag.flagged
    assert len(await ctx.store.all(USER)) == 1


@pytest.mark.asyncio
async def test_list_strikes_is_read_only(engine, ctx, clock):
    await engine.strike(USER, MOD, 1, "spam")
    clock.advance(1000)
    calls = len(ctx.flag.calls)

    result = await engine.list_strikes(USER)

    assert len(result.report.active_strikes) == 1
    assert len(ctx.flag.calls) == calls


# ----------------------------------------------------------------------
# Releases and edits
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_release_of_unpitted_user_is_refused(engine, ctx):
    result = await engine.release(USER, MOD)

    assert result.success is False
    assert await ctx.store.all(USER) == []


@pytest.mark.asyncio
async def test_release_appends_release_row(engine, ctx, clock):
    await engine.strike(USER, MOD, 4, "spam")
    clock.advance(HOUR)

    result = await engine.release(USER, MOD)

    assert result.success
    assert result.entry.severity == RELEASE_SEVERITY
    assert result.entry.kind is EntryKind.RELEASE
    assert result.sync is SyncOutcome.REMOVED
    assert result.current_pit.source is PitSource.RELEASE
    assert not result.current_pit.is_active
    assert USER not in ctx.flag.flagged
    # The strike itself stays on the record
    assert len(result.report.active_strikes) == 1


@pytest.mark.asyncio
async def test_release_with_amend_removes_newest_strike(engine, ctx, clock):
    first = await engine.strike(USER, MOD, 3, "spam")
    clock.advance(HOUR)

    result = await engine.release(USER, MOD, amend=True)

    assert result.success
    assert result.detail == "amended"
    assert result.entry.id == first.entry.id
    assert (await ctx.store.get(first.entry.id)).severity == REMOVED_SEVERITY
    assert result.report.releases == []
    assert USER not in ctx.flag.flagged


@pytest.mark.asyncio
async def test_amend_also_releases_when_timeout_still_holds(engine, ctx, clock):
    await engine.manual_timeout(USER, MOD, 48, "cool off")
    clock.advance(1000)
    await engine.strike(USER, MOD, 1, "spam")
    clock.advance(1000)

    result = await engine.release(USER, MOD, amend=True)

    assert result.success
    assert result.entry.kind is EntryKind.RELEASE
    assert not result.report.is_pitted
    assert len(result.report.removed_strikes) == 1


@pytest.mark.asyncio
async def test_amend_keeps_strike_from_before_last_release(engine, ctx, clock):
    struck = await engine.strike(USER, MOD, 5, "raid")
    clock.advance(HOUR)
    await engine.release(USER, MOD)
    clock.advance(HOUR)
    await engine.manual_timeout(USER, MOD, 2, "cool off")
    clock.advance(1000)
    assert (await engine.report(USER)).current_pit().source is PitSource.TIMEOUT

    result = await engine.release(USER, MOD, amend=True)

    assert result.success
    assert result.detail == ""
    assert result.entry.kind is EntryKind.RELEASE
    assert (await ctx.store.get(struck.entry.id)).severity == 5
    assert not result.report.is_pitted
    assert USER not in ctx.flag.flagged


@pytest.mark.asyncio
async def test_remove_strike(engine, ctx, clock):
    struck = await engine.strike(USER, MOD, 2, "spam")
    clock.advance(1000)

    result = await engine.remove_strike(struck.entry.id, MOD)

    assert result.entry.severity == REMOVED_SEVERITY
    assert result.sync is SyncOutcome.REMOVED
    assert USER not in ctx.flag.flagged

    with pytest.raises(NotFoundError):
        await engine.remove_strike(struck.entry.id, MOD)
    with pytest.raises(NotFoundError):
        await engine.remove_strike(struck.entry.id + 50, MOD)
    with pytest.raises(ValidationError):
        await engine.remove_strike(0, MOD)


@pytest.mark.asyncio
async def test_edit_comment(engine, ctx):
    struck = await engine.strike(USER, MOD, 2, "spam")

    result = await engine.edit_comment(struck.entry.id, "flooding #general", MOD)

    assert result.entry.comment == "flooding #general"
    assert (await ctx.store.get(struck.entry.id)).comment == "flooding #general"
    with pytest.raises(NotFoundError):
        await engine.edit_comment(struck.entry.id + 1, "nothing", MOD)


@pytest.mark.asyncio
async def test_edit_severity_recomputes_release(engine, ctx, clock):
    struck = await engine.strike(USER, MOD, 5, "raid")
    issued = clock.now
    clock.advance(HOUR)

    result = await engine.edit_severity(struck.entry.id, 1, MOD)

    assert result.current_pit.release_time == issued + 4 * HOUR
    assert (await ctx.store.get(struck.entry.id)).severity == 1

    with pytest.raises(ValidationError):
        await engine.edit_severity(struck.entry.id, 9, MOD)


@pytest.mark.asyncio
async def test_edit_severity_refuses_removed_strike(engine, clock):
    struck = await engine.strike(USER, MOD, 2, "spam")
    clock.advance(1000)
    await engine.remove_strike(struck.entry.id, MOD)

    with pytest.raises(NotFoundError):
        await engine.edit_severity(struck.entry.id, 3, MOD)


# ----------------------------------------------------------------------
# Warnings and timed penalties
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_warn_and_list(engine, ctx, clock):
    await engine.warn(USER, MOD, "first")
    clock.advance(1000)
    result = await engine.warn(USER, MOD, "second")

    assert len(result.warnings) == 2
    assert ctx.flag.calls == []

    listed = await engine.list_warnings(USER)
    assert [w.comment for w in listed.warnings] == ["second", "first"]


@pytest.mark.asyncio
async def test_self_timeout_defaults_to_a_day(engine, ctx, clock):
    result = await engine.self_timeout(USER)

    assert result.success
    assert result.entry.moderator_id is None
    assert result.current_pit.source is PitSource.SELF_TIMEOUT
    assert result.current_pit.release_time == clock.now + 24 * HOUR
    assert USER in ctx.flag.flagged


@pytest.mark.asyncio
async def test_self_timeout_refused_while_pitted(engine, ctx, clock):
    await engine.strike(USER, MOD, 1, "spam")
    clock.advance(1000)

    result = await engine.self_timeout(USER, 2)

    assert result.success is False
    assert result.detail == "You already have an existing timeout."
    assert result.report.self_timeouts == []


@pytest.mark.asyncio
@pytest.mark.parametrize("hours", [0, 73, -4])
async def test_self_timeout_bounds(engine, hours):
    with pytest.raises(ValidationError):
        await engine.self_timeout(USER, hours)


@pytest.mark.asyncio
async def test_manual_timeout_has_no_upper_bound(engine, clock):
    result = await engine.manual_timeout(USER, MOD, 24 * 14, "two weeks")

    assert result.current_pit.source is PitSource.TIMEOUT
    assert result.current_pit.release_time == clock.now + 14 * DAY


@pytest.mark.asyncio
async def test_minigame_penalty(engine, ctx, clock):
    result = await engine.minigame_penalty(USER, 60_000, "https://discord.com/channels/1/2/3")

    assert result.current_pit.source is PitSource.MINIGAME
    assert result.current_pit.release_time == clock.now + 60_000
    assert ctx.notifier.dms == []

    with pytest.raises(ValidationError):
        await engine.minigame_penalty(USER, 0)


# ----------------------------------------------------------------------
# Dispatch
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_dispatch_routes_commands(engine, clock):
    strike = await engine.dispatch(StrikeCommand(USER, MOD, 2, "spam"))
    clock.advance(1000)
    timeout = await engine.dispatch(ManualTimeoutCommand(USER, MOD, 1, "cool off"))
    clock.advance(1000)
    warn = await engine.dispatch(WarnCommand(USER, MOD, "careful"))
    clock.advance(1000)
    minigame = await engine.dispatch(MinigamePenaltyCommand(USER, 1000))
    self_pit = await engine.dispatch(SelfTimeoutCommand(USER))
    listed = await engine.dispatch(ListStrikesCommand(USER))

    assert [r.command for r in (strike, timeout, warn, minigame, self_pit, listed)] == [
        "strike", "manual_timeout", "warn", "minigame_penalty", "self_timeout", "list_strikes",
    ]
    assert self_pit.success is False


@pytest.mark.asyncio
async def test_dispatch_rejects_unknown_command(engine):
    with pytest.raises(ValidationError):
        await engine.dispatch(object())


# ----------------------------------------------------------------------
# Sweep
# ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sweep_reports_expiry_once_and_releases(engine, ctx, clock):
    await engine.strike(USER, MOD, 1, "spam")
    clock.advance(31 * DAY)

    assert await engine.sweep() == 1
    assert USER not in ctx.flag.flagged
    assert log_titles(ctx).count("Strikes Expired") == 1

    assert await engine.sweep() == 0
    assert log_titles(ctx).count("Strikes Expired") == 1


@pytest.mark.asyncio
async def test_sweep_releases_flagged_users_without_history(engine, ctx):
    stranger = UserID(555)
    ctx.flag.flagged.add(stranger)

    assert await engine.sweep() == 1
    assert stranger not in ctx.flag.flagged


@pytest.mark.asyncio
async def test_sweep_restores_missing_role(engine, ctx, clock):
    await engine.manual_timeout(USER, MOD, 5, "cool off")
    ctx.flag.flagged.clear()
    clock.advance(HOUR)

    assert await engine.sweep() == 1
    assert USER in ctx.flag.flagged


@pytest.mark.asyncio
async def test_overlapping_sweep_is_skipped(engine, ctx):
    ctx.flag.flagged.add(UserID(555))

    async with engine._sweep_lock:
        assert await engine.sweep() is None

    assert UserID(555) in ctx.flag.flagged
    await asyncio.sleep(0)
