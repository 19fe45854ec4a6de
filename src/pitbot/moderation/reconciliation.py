"""
Precedence resolver across suspension sources.

A user can be held in the pit by strikes, manual timeouts, self-timeouts and
minigame penalties at the same time. Only records newer than the last
explicit release count; among those the candidate that ends last is
authoritative and decides both whether the user is suspended and the shown
reason.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Tuple

from pitbot.datatypes.ledger_datatypes import LedgerEntry
from pitbot.datatypes.status_datatypes import SOURCE_PRIORITY, CurrentPit, PitSource

if TYPE_CHECKING:
    from pitbot.moderation.status_report import StatusReport


def collect_candidates(report: "StatusReport") -> List[Tuple[int, PitSource, LedgerEntry]]:
    """Return ``(release_time, source, entry)`` for every source since the last release."""
    floor = report.last_release_time()
    candidates: List[Tuple[int, PitSource, LedgerEntry]] = []

    # Strike source needs one active strike after the release; its duration
    # still covers the whole active set.
    if any(strike.timestamp > floor for strike in report.active_strikes):
        candidates.append((report.strike_release_time(), PitSource.STRIKE, report.active_strikes[0]))

    for source, entries in (
        (PitSource.TIMEOUT, report.timeouts),
        (PitSource.SELF_TIMEOUT, report.self_timeouts),
        (PitSource.MINIGAME, report.minigame_penalties),
    ):
        for entry in entries:
            if entry.timestamp > floor:
                candidates.append((entry.release_time, source, entry))

    return candidates


def resolve_current_pit(report: "StatusReport", now: int) -> CurrentPit | None:
    """
    Pick the authoritative suspension state for ``report`` at time ``now``.

    Ties on release time go to the higher priority source (strike, timeout,
    self-timeout, minigame).

    Returns:
        The deciding state, a non-suspended RELEASE state when only releases
        apply, or None when the user has no suspension history at all.
    """
    candidates = collect_candidates(report)
    if candidates:
        release_time, source, entry = max(
            candidates,
            key=lambda candidate: (candidate[0], -SOURCE_PRIORITY[candidate[1]]),
        )
        return CurrentPit(
            source=source,
            entry=entry,
            is_active=release_time > now,
            release_time=release_time,
        )

    if report.releases:
        release = report.releases[0]
        return CurrentPit(
            source=PitSource.RELEASE,
            entry=release,
            is_active=False,
            release_time=release.timestamp,
        )

    return None
