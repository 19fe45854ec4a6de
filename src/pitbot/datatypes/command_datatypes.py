"""
Command descriptors for the pit moderation engine.

Each supported operation is a small frozen dataclass; :data:`PitCommand` is
the tagged union of all of them. ``PitEngine.dispatch`` routes a descriptor
to the typed engine method of the same name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from pitbot.datatypes.discord_datatypes import UserID


@dataclass(frozen=True, slots=True)
class StrikeCommand:
    user_id: UserID
    moderator_id: UserID
    severity: int
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseCommand:
    """Release a user; with ``amend`` the strike that pitted them is removed instead."""
    user_id: UserID
    moderator_id: UserID
    amend: bool = False


@dataclass(frozen=True, slots=True)
class RemoveStrikeCommand:
    strike_id: int
    moderator_id: UserID | None = None


@dataclass(frozen=True, slots=True)
class EditCommentCommand:
    strike_id: int
    comment: str
    moderator_id: UserID | None = None


@dataclass(frozen=True, slots=True)
class EditSeverityCommand:
    strike_id: int
    severity: int
    moderator_id: UserID | None = None


@dataclass(frozen=True, slots=True)
class ListStrikesCommand:
    user_id: UserID


@dataclass(frozen=True, slots=True)
class WarnCommand:
    user_id: UserID
    moderator_id: UserID
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class ListWarningsCommand:
    user_id: UserID


@dataclass(frozen=True, slots=True)
class SelfTimeoutCommand:
    """A user sends themselves to the pit. ``hours=None`` uses the configured default."""
    user_id: UserID
    hours: int | None = None


@dataclass(frozen=True, slots=True)
class ManualTimeoutCommand:
    """Timeout without a strike."""
    user_id: UserID
    moderator_id: UserID
    hours: int
    comment: str | None = None


@dataclass(frozen=True, slots=True)
class MinigamePenaltyCommand:
    user_id: UserID
    duration_ms: int
    message_link: str | None = None


PitCommand = Union[
    StrikeCommand,
    ReleaseCommand,
    RemoveStrikeCommand,
    EditCommentCommand,
    EditSeverityCommand,
    ListStrikesCommand,
    WarnCommand,
    ListWarningsCommand,
    SelfTimeoutCommand,
    ManualTimeoutCommand,
    MinigamePenaltyCommand,
]
