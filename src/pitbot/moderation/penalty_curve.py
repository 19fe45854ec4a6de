"""
Escalating suspension length for a set of active strikes.

The newest active strike contributes its full base duration, every older
active strike adds a smaller repeat-offense increment, and the total is then
multiplied by an escalation factor keyed on how many strikes are active
(capped at five). Repeated offenses therefore compound instead of adding up.

Example with the default tables and two severity-3 strikes::

    (12h base + 9h repeat) * 1.05 = 22.05h
"""

from __future__ import annotations

from typing import Dict, Sequence

from pitbot.configuration.pit_settings import (
    DEFAULT_ESCALATION_FACTORS,
    DEFAULT_REPEAT_SEVERITY_HOURS,
    DEFAULT_SEVERITY_HOURS,
    HOUR_MS,
    PitSettings,
)
from pitbot.datatypes.ledger_datatypes import LedgerEntry

MAX_ESCALATION_COUNT = 5


class PenaltyCurve:
    """Severity-weighted, compounding duration calculator.

    Args:
        severity_durations_ms: Base duration of the newest strike, by severity.
        repeat_durations_ms: Increment for each older active strike, by severity.
        escalation_factors: Multiplier keyed on the active strike count, 1..5.
    """

    def __init__(
        self,
        severity_durations_ms: Dict[int, int] | None = None,
        repeat_durations_ms: Dict[int, int] | None = None,
        escalation_factors: Dict[int, float] | None = None,
    ) -> None:
        self.severity_durations_ms = severity_durations_ms or {
            level: int(hours * HOUR_MS) for level, hours in DEFAULT_SEVERITY_HOURS.items()
        }
        self.repeat_durations_ms = repeat_durations_ms or {
            level: int(hours * HOUR_MS) for level, hours in DEFAULT_REPEAT_SEVERITY_HOURS.items()
        }
        self.escalation_factors = escalation_factors or dict(DEFAULT_ESCALATION_FACTORS)

    @classmethod
    def from_settings(cls, settings: PitSettings) -> "PenaltyCurve":
        return cls(
            settings.severity_durations_ms,
            settings.repeat_severity_durations_ms,
            settings.escalation_factors,
        )

    def escalation_factor(self, active_count: int) -> float:
        if active_count <= 0:
            return 0.0
        return self.escalation_factors[min(active_count, MAX_ESCALATION_COUNT)]

    def duration_ms(self, active_strikes: Sequence[LedgerEntry]) -> int:
        """
        Compute the suspension length for the given active strikes.

        Args:
            active_strikes: Active strikes ordered newest first.

        Returns:
            Duration in whole milliseconds; 0 when there are no active strikes.
        """
        if not active_strikes:
            return 0

        newest, *older = active_strikes
        total = self.severity_durations_ms[newest.severity]
        for strike in older:
            total += self.repeat_durations_ms[strike.severity]

        return int(round(total * self.escalation_factor(len(active_strikes))))

    def release_time(self, active_strikes: Sequence[LedgerEntry]) -> int:
        """Newest active strike timestamp plus the computed duration, or 0."""
        if not active_strikes:
            return 0
        return active_strikes[0].timestamp + self.duration_ms(active_strikes)
