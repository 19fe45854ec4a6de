"""
Explicit context handed to every engine call.

The context bundles the ledger store, the configuration and the two outward
ports (the pit role flag and the notifier) together with a clock. It is built
once at startup and torn down at shutdown; nothing in the engine keeps
module-level state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, Set

import discord

from pitbot.configuration.pit_settings import PitSettings
from pitbot.database.ledger_store import LedgerStore
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.moderation.penalty_curve import PenaltyCurve


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class SuspensionFlag(Protocol):
    """Externally visible suspension flag (the pit role)."""

    async def is_flagged(self, user_id: UserID) -> bool | None:
        """Whether the user carries the flag; None if the user cannot be observed (not a member)."""
        ...

    async def set_flagged(self, user_id: UserID, flagged: bool, reason: str | None = None) -> None:
        """Add or remove the flag.

        Raises:
            ExternalStateError: If the platform refuses the change.
        """
        ...

    async def flagged_user_ids(self) -> Set[UserID]: ...


class Notifier(Protocol):
    """Outbound notifications. Both methods may fail independently."""

    async def send_dm(self, user_id: UserID, embed: discord.Embed) -> None:
        """Raises NotificationDeliveryError when the DM cannot be delivered."""
        ...

    async def send_log(self, embed: discord.Embed | None = None, content: str | None = None) -> None:
        """Raises NotificationDeliveryError when the log channel is unreachable."""
        ...


@dataclass
class ModerationContext:
    """Store handles, configuration and ports for one running bot."""
    store: LedgerStore
    settings: PitSettings
    flag: SuspensionFlag
    notifier: Notifier
    clock: Callable[[], int] = now_ms
    curve: PenaltyCurve = field(init=False)

    def __post_init__(self) -> None:
        self.curve = PenaltyCurve.from_settings(self.settings)

    def now(self) -> int:
        return self.clock()
