from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import RELEASE_SEVERITY, EntryKind, LedgerEntry
from pitbot.datatypes.status_datatypes import PitSource
from pitbot.moderation.reconciliation import collect_candidates, resolve_current_pit
from pitbot.moderation.status_report import StatusReport

HOUR = 3_600_000
DAY = 24 * HOUR
T0 = 1_700_000_000_000
USER = UserID(111)
MOD = UserID(999)


def report(entries, now):
    return StatusReport(USER, entries, now=now, expiration_ms=30 * DAY)


def strike(timestamp, severity):
    return LedgerEntry(user_id=USER, kind=EntryKind.STRIKE, timestamp=timestamp, moderator_id=MOD, severity=severity)


def release(timestamp):
    return LedgerEntry(user_id=USER, kind=EntryKind.RELEASE, timestamp=timestamp,
                       moderator_id=MOD, severity=RELEASE_SEVERITY)


def timed(timestamp, hours, moderator=MOD):
    return LedgerEntry(user_id=USER, kind=EntryKind.TIMED_PENALTY, timestamp=timestamp,
                       moderator_id=moderator, duration_ms=hours * HOUR)


def minigame(timestamp, hours):
    return LedgerEntry(user_id=USER, kind=EntryKind.MINIGAME_PENALTY, timestamp=timestamp, duration_ms=hours * HOUR)


def test_no_history_is_none():
    assert resolve_current_pit(report([], now=T0), T0) is None


def test_strike_outlasting_minigame_wins():
    entries = [minigame(T0, 2), strike(T0 + HOUR, severity=2)]
    status = report(entries, now=T0 + 3 * HOUR)

    pit = resolve_current_pit(status, status.now)

    assert pit.source is PitSource.STRIKE
    assert pit.release_time == T0 + HOUR + 8 * HOUR
    assert pit.is_active


def test_longest_timeout_beats_shorter_strike():
    entries = [strike(T0, severity=1), timed(T0 + 1, 10)]
    pit = report(entries, now=T0 + 5 * HOUR).current_pit()

    assert pit.source is PitSource.TIMEOUT
    assert pit.release_time == T0 + 1 + 10 * HOUR


def test_equal_release_times_prefer_strike_then_timeout():
    # L1 strike lasts 4h; timeout, self-timeout and minigame all end at the same instant
    entries = [
        minigame(T0 + 2 * HOUR, 2),
        timed(T0 + 2 * HOUR + 1, 2, moderator=None),
        timed(T0 + 2 * HOUR + 2, 2),
        strike(T0, severity=1),
    ]
    for entry in entries[:3]:
        entry.duration_ms = T0 + 4 * HOUR - entry.timestamp

    status = report(entries, now=T0 + 3 * HOUR)
    assert status.current_pit().source is PitSource.STRIKE

    without_strike = report(entries[:3], now=T0 + 3 * HOUR)
    assert without_strike.current_pit().source is PitSource.TIMEOUT

    minigame_and_self = report(entries[:2], now=T0 + 3 * HOUR)
    assert minigame_and_self.current_pit().source is PitSource.SELF_TIMEOUT


def test_release_floors_older_sources():
    entries = [strike(T0, severity=5), timed(T0 + 1, 72), release(T0 + HOUR)]
    status = report(entries, now=T0 + 2 * HOUR)

    assert collect_candidates(status) == []
    pit = status.current_pit()
    assert pit.source is PitSource.RELEASE
    assert pit.is_active is False
    assert pit.release_time == T0 + HOUR


def test_strike_after_release_still_counts_older_active_strikes():
    entries = [strike(T0, severity=3), release(T0 + HOUR), strike(T0 + 2 * HOUR, severity=3)]
    status = report(entries, now=T0 + 3 * HOUR)

    pit = status.current_pit()
    assert pit.source is PitSource.STRIKE
    assert pit.release_time == T0 + 2 * HOUR + 79_380_000


def test_expired_candidate_is_reported_inactive():
    pit = report([minigame(T0, 1)], now=T0 + 2 * HOUR).current_pit()

    assert pit.source is PitSource.MINIGAME
    assert pit.is_active is False
