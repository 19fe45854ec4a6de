"""
Status report for a single user's disciplinary ledger.

A :class:`StatusReport` is rebuilt from the full ledger on every request; no
status object is trusted across suspension points. Classification walks the
strike-shaped rows newest first:

1. severity < 0  -> ``releases``
2. severity == 0 -> ``removed_strikes``
3. severity 1-5  -> ``active_strikes`` when issued within the expiration
   horizon of now, or within the horizon of the previously accepted (next
   newer) active strike; otherwise ``expired_strikes``.

Rule 3 gives chained decay: strikes spaced closer than the horizon stay
active as a block until the newest one of them ages out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import EntryKind, LedgerEntry
from pitbot.datatypes.status_datatypes import CurrentPit
from pitbot.moderation.penalty_curve import PenaltyCurve
from pitbot.moderation.reconciliation import resolve_current_pit
from pitbot.util.logger import get_logger

if TYPE_CHECKING:
    from pitbot.database.ledger_store import LedgerStore
    from pitbot.moderation.moderation_context import ModerationContext

logger = get_logger("status_report")


class StatusReport:
    """Classified view of a user's ledger at a fixed point in time.

    Attributes:
        user_id: Subject of the report.
        now: Evaluation time in milliseconds; every accessor answers for this instant.
        active_strikes, expired_strikes, removed_strikes, releases: Strike-shaped
            rows by classification, newest first.
        timeouts: Timed penalties issued by a moderator.
        self_timeouts: Timed penalties the user gave themselves.
        minigame_penalties: Bullet hell penalties.
        warnings: Warnings (informational only).
    """

    def __init__(
        self,
        user_id: UserID,
        entries: Iterable[LedgerEntry],
        now: int,
        expiration_ms: int,
        curve: PenaltyCurve | None = None,
        store: "LedgerStore | None" = None,
    ) -> None:
        self.user_id = user_id
        self.now = now
        self.expiration_ms = expiration_ms
        self.curve = curve or PenaltyCurve()
        self._store = store

        self.active_strikes: List[LedgerEntry] = []
        self.expired_strikes: List[LedgerEntry] = []
        self.removed_strikes: List[LedgerEntry] = []
        self.releases: List[LedgerEntry] = []
        self.timeouts: List[LedgerEntry] = []
        self.self_timeouts: List[LedgerEntry] = []
        self.minigame_penalties: List[LedgerEntry] = []
        self.warnings: List[LedgerEntry] = []

        self._classify(sorted(entries, key=lambda e: (e.timestamp, e.id or 0), reverse=True))

    @classmethod
    async def create(cls, user_id: UserID, ctx: "ModerationContext") -> "StatusReport":
        """Load the user's full ledger and build a report for the current time."""
        entries = await ctx.store.all(user_id)
        return cls(
            user_id,
            entries,
            now=ctx.now(),
            expiration_ms=ctx.settings.expiration_ms,
            curve=ctx.curve,
            store=ctx.store,
        )

    def _classify(self, entries: List[LedgerEntry]) -> None:
        for entry in entries:
            if entry.kind is EntryKind.TIMED_PENALTY:
                (self.self_timeouts if entry.is_self_timeout else self.timeouts).append(entry)
            elif entry.kind is EntryKind.MINIGAME_PENALTY:
                self.minigame_penalties.append(entry)
            elif entry.kind is EntryKind.WARNING:
                self.warnings.append(entry)
            elif entry.severity is not None and entry.severity < 0:
                self.releases.append(entry)
            elif entry.is_removed:
                self.removed_strikes.append(entry)
            elif self._is_active(entry):
                self.active_strikes.append(entry)
            else:
                self.expired_strikes.append(entry)

    def _is_active(self, strike: LedgerEntry) -> bool:
        if strike.timestamp > self.now - self.expiration_ms:
            return True
        if self.active_strikes:
            return strike.timestamp > self.active_strikes[-1].timestamp - self.expiration_ms
        return False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def last_release_time(self) -> int:
        """Timestamp of the newest explicit release, or 0 if there is none."""
        return self.releases[0].timestamp if self.releases else 0

    def strike_duration(self) -> int:
        return self.curve.duration_ms(self.active_strikes)

    def strike_release_time(self) -> int:
        return self.curve.release_time(self.active_strikes)

    def current_pit(self, now: int | None = None) -> CurrentPit | None:
        """The authoritative suspension state at ``now`` (defaults to the report time)."""
        return resolve_current_pit(self, self.now if now is None else now)

    @property
    def is_pitted(self) -> bool:
        pit = self.current_pit()
        return pit is not None and pit.is_active

    async def get_newly_expired(self, store: "LedgerStore | None" = None) -> List[LedgerEntry]:
        """
        Return expired strikes not yet reported, marking them as reported.

        The persisted ``expired`` flag makes each strike come back from this
        method exactly once over the lifetime of the ledger.
        """
        store = store or self._store
        if store is None:
            raise RuntimeError("StatusReport.get_newly_expired needs a ledger store")

        newly_expired = [strike for strike in self.expired_strikes if not strike.expired]
        if newly_expired:
            await store.mark_expired(strike.id for strike in newly_expired if strike.id is not None)
            for strike in newly_expired:
                strike.expired = True
            logger.debug("[STATUS] %d strike(s) of user %s newly expired", len(newly_expired), self.user_id)
        return newly_expired
