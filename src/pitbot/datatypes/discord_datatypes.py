"""
Discord user identifiers as they travel between the ledger and the API.

The ledger keeps snowflakes as text and Discord wants integers, so every
user id inside the engine is a :class:`UserID` and converts at the edges.
"""

from __future__ import annotations

from typing import Union
import discord

SnowflakeLike = Union[str, int, "UserID"]


class UserID:
    """
    Normalised Discord user snowflake.

    Compares equal to the same id given as ``int`` or ``str`` so ledger rows
    and gateway objects can be matched without converting by hand.

    Example:
        >>> UserID(" 42 ") == 42
        True
        >>> UserID(42).mention
        '<@42>'
    """

    __slots__ = ("_value",)

    def __init__(self, value: SnowflakeLike) -> None:
        self._value = self._normalise(value)

    @staticmethod
    def _normalise(value: SnowflakeLike) -> str:
        if isinstance(value, UserID):
            return value._value
        # bool is an int subclass; True must not become user 1
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError(f"Cannot create UserID from {type(value).__name__}: {value!r}")
        return str(int(value.strip() if isinstance(value, str) else value))

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> UserID:
        return cls(member.id)

    def to_int(self) -> int:
        return int(self._value)

    @property
    def mention(self) -> str:
        """Discord mention markup for this user."""
        return f"<@{self._value}>"

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"UserID({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UserID):
            return self._value == other._value
        if isinstance(other, (int, str)) and not isinstance(other, bool):
            return self._value == str(other).strip()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)
