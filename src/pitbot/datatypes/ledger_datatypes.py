"""
Ledger entry types for the pit moderation engine.

Every disciplinary event is a :class:`LedgerEntry`. Strikes, releases and
removed strikes share one table and are told apart by the severity field:
1-5 is a live strike, ``RELEASE_SEVERITY`` is an explicit release and
``REMOVED_SEVERITY`` marks a strike struck from the record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pitbot.datatypes.discord_datatypes import UserID

MIN_SEVERITY = 1
MAX_SEVERITY = 5
REMOVED_SEVERITY = 0
RELEASE_SEVERITY = -1


class EntryKind(Enum):
    """Kinds of rows the ledger can hold."""

    STRIKE = "strike"
    RELEASE = "release"
    TIMED_PENALTY = "timed_penalty"
    MINIGAME_PENALTY = "minigame_penalty"
    WARNING = "warning"

    def __str__(self) -> str:
        return self.value


def is_valid_severity(severity: object) -> bool:
    """Return True for an integer severity in the live strike range."""
    return (
        isinstance(severity, int)
        and not isinstance(severity, bool)
        and MIN_SEVERITY <= severity <= MAX_SEVERITY
    )


@dataclass(slots=True)
class LedgerEntry:
    """A single row of a user's disciplinary ledger.

    Attributes:
        user_id: Subject of the entry.
        kind: What the row records.
        timestamp: Creation time in milliseconds since the epoch.
        moderator_id: Issuer, or None for self-service and minigame rows.
        severity: Strike severity or one of the sentinels (strike-shaped rows only).
        comment: Free text reason.
        duration_ms: Length of a timed or minigame penalty.
        expired: Set once the strike has been reported as expired.
        message_link: Jump link to the message that triggered a minigame penalty.
        id: Row id assigned by the store; None until appended.
    """
    user_id: UserID
    kind: EntryKind
    timestamp: int
    moderator_id: UserID | None = None
    severity: int | None = None
    comment: str | None = None
    duration_ms: int | None = None
    expired: bool = False
    message_link: str | None = None
    id: int | None = None

    @property
    def is_strike_shaped(self) -> bool:
        return self.kind in (EntryKind.STRIKE, EntryKind.RELEASE)

    @property
    def is_removed(self) -> bool:
        return self.kind is EntryKind.STRIKE and self.severity == REMOVED_SEVERITY

    @property
    def is_live_strike(self) -> bool:
        return self.kind is EntryKind.STRIKE and is_valid_severity(self.severity)

    @property
    def is_self_timeout(self) -> bool:
        return self.kind is EntryKind.TIMED_PENALTY and self.moderator_id is None

    @property
    def release_time(self) -> int:
        """End of a timed or minigame penalty; 0 for rows without a duration."""
        if self.duration_ms is None:
            return 0
        return self.timestamp + self.duration_ms
