"""
Result types produced by the pit moderation engine.

Presentation is left to :mod:`pitbot.ui.pit_embeds`; these types only carry
the data a renderer needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import LedgerEntry

if TYPE_CHECKING:
    from pitbot.moderation.status_report import StatusReport


class PitSource(Enum):
    """Where the authoritative suspension state comes from.

    Declaration order of the suspending sources is also the tie-break order
    when two sources end at the same millisecond.
    """

    STRIKE = "strike"
    TIMEOUT = "timeout"
    SELF_TIMEOUT = "selfpit"
    MINIGAME = "bullethell"
    RELEASE = "release"

    def __str__(self) -> str:
        return self.value


SOURCE_PRIORITY = {
    PitSource.STRIKE: 0,
    PitSource.TIMEOUT: 1,
    PitSource.SELF_TIMEOUT: 2,
    PitSource.MINIGAME: 3,
}


@dataclass(frozen=True, slots=True)
class CurrentPit:
    """The single authoritative suspension state of a user.

    Attributes:
        source: Which kind of record decided the state.
        entry: The deciding ledger row (newest active strike for STRIKE).
        is_active: True while ``release_time`` lies in the future.
        release_time: Milliseconds since the epoch when the suspension ends,
            or the release timestamp for RELEASE.
    """
    source: PitSource
    entry: LedgerEntry
    is_active: bool
    release_time: int


class SyncOutcome(Enum):
    """What the role synchronizer did."""

    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"
    FAILED = "failed"


@dataclass(slots=True)
class ModerationResult:
    """Outcome of one engine operation, handed to the formatting layer.

    Attributes:
        command: Name of the operation that ran.
        user_id: Subject of the operation.
        success: False when the operation was refused without a ledger change.
        report: Status report reloaded after the operation.
        current_pit: ``report.current_pit()`` at the time of the operation.
        entry: The ledger row that was appended or edited, if any.
        dm_sent: Whether the subject was notified by DM.
        sync: What the role synchronizer did.
        warnings: The user's warnings, for warning commands.
        detail: Short human readable explanation for refusals.
    """
    command: str
    user_id: UserID
    success: bool = True
    report: "StatusReport | None" = None
    current_pit: CurrentPit | None = None
    entry: LedgerEntry | None = None
    dm_sent: bool = False
    sync: SyncOutcome = SyncOutcome.UNCHANGED
    warnings: List[LedgerEntry] = field(default_factory=list)
    detail: str = ""
