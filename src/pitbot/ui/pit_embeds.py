"""
Embed builders for pit moderation notifications.

The engine hands :class:`~pitbot.datatypes.status_datatypes.ModerationResult`
and ledger rows to these helpers; nothing here touches the ledger.
"""

from __future__ import annotations

import datetime
from typing import Iterable, List

import discord

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import LedgerEntry
from pitbot.datatypes.status_datatypes import CurrentPit, PitSource
from pitbot.moderation.status_report import StatusReport

NO_REASON = "*No reason given.*"

SOURCE_LABELS = {
    PitSource.STRIKE: "Strike",
    PitSource.TIMEOUT: "Timeout",
    PitSource.SELF_TIMEOUT: "Self-timeout",
    PitSource.MINIGAME: "Bullet Hell",
    PitSource.RELEASE: "Release",
}


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def mention(user_id: UserID | None) -> str:
    return user_id.mention if user_id is not None else "*nobody*"


def discord_time(timestamp_ms: int, style: str = "f") -> str:
    """Render a millisecond timestamp as a Discord timestamp tag."""
    return f"<t:{timestamp_ms // 1000}:{style}>"


def format_duration_ms(duration_ms: int) -> str:
    """Convert a millisecond duration into a short human readable string."""
    minutes = round(duration_ms / 60_000)
    if minutes < 60:
        return f"{minutes} min{'s' if minutes != 1 else ''}"
    hours, minutes = divmod(minutes, 60)
    if hours < 24 or minutes:
        text = f"{hours}h"
        return f"{text} {minutes}m" if minutes else text
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h" if hours else f"{days}d"


def describe_pit(pit: CurrentPit | None) -> str:
    """One-line reason for the pit role audit log and notices."""
    if pit is None:
        return "No disciplinary history."
    entry = pit.entry
    if pit.source is PitSource.STRIKE:
        return f"Strike (L{entry.severity}) issued by {mention(entry.moderator_id)}: {entry.comment or NO_REASON}"
    if pit.source is PitSource.TIMEOUT:
        return f"Timeout issued by {mention(entry.moderator_id)}: {entry.comment or NO_REASON}"
    if pit.source is PitSource.SELF_TIMEOUT:
        return "Self-timeout"
    if pit.source is PitSource.MINIGAME:
        return "Bullet Hell"
    return f"Released by {mention(entry.moderator_id)}"


def _status_line(pit: CurrentPit | None) -> str:
    if pit is None or not pit.is_active:
        return "Not in the pit."
    return f"In the pit until {discord_time(pit.release_time)} ({SOURCE_LABELS[pit.source]})."


def _strike_line(strike: LedgerEntry) -> str:
    return (
        f"`#{strike.id}` L{strike.severity} {discord_time(strike.timestamp, 'd')} "
        f"by {mention(strike.moderator_id)}: {strike.comment or NO_REASON}"
    )


def _field_lines(lines: List[str], empty: str = "None") -> str:
    text = "\n".join(lines) or empty
    return text if len(text) <= 1024 else text[:1020] + "\n…"


def pit_notice(user_id: UserID, added: bool, reason: str | None) -> discord.Embed:
    """Log channel notice sent when the pit role is added or removed."""
    if added:
        embed = discord.Embed(
            title="User Pitted",
            color=discord.Color.red(),
            description=f"User {mention(user_id)} was just sent to the pit.",
            timestamp=_now(),
        )
    else:
        embed = discord.Embed(
            title="User Released",
            color=discord.Color.green(),
            description=f"User {mention(user_id)} was just released from the pit.",
            timestamp=_now(),
        )
    if reason:
        embed.add_field(name="Reason", value=reason, inline=False)
    return embed


def role_failure_notice(user_id: UserID, added: bool, error: Exception) -> str:
    verb = "add the pit role to" if added else "remove the pit role from"
    return f"I couldn't {verb} {mention(user_id)}. Perhaps I don't have MANAGE_ROLES permission? ({error})"


def maximum_strikes_notice(user_id: UserID) -> discord.Embed:
    return discord.Embed(
        title="User With 5 Strikes",
        description=f"{mention(user_id)} has reached the 5 active strike limit.",
        color=discord.Color.dark_red(),
        timestamp=_now(),
    )


def expired_strikes_notice(user_id: UserID, strikes: Iterable[LedgerEntry]) -> discord.Embed:
    embed = discord.Embed(
        title="Strikes Expired",
        description=f"Strikes of {mention(user_id)} are no longer active.",
        color=discord.Color.light_grey(),
        timestamp=_now(),
    )
    embed.add_field(name="Strikes", value=_field_lines([_strike_line(s) for s in strikes]), inline=False)
    return embed


def strike_summary(report: StatusReport) -> discord.Embed:
    """Full strike history of a user, as listed by ``/strikes``."""
    pit = report.current_pit()
    embed = discord.Embed(
        title="Strike History",
        description=f"{mention(report.user_id)}\n{_status_line(pit)}",
        color=discord.Color.red() if pit and pit.is_active else discord.Color.blurple(),
        timestamp=_now(),
    )
    embed.add_field(
        name=f"Active Strikes ({len(report.active_strikes)})",
        value=_field_lines([_strike_line(s) for s in report.active_strikes]),
        inline=False,
    )
    embed.add_field(
        name=f"Expired Strikes ({len(report.expired_strikes)})",
        value=_field_lines([_strike_line(s) for s in report.expired_strikes]),
        inline=False,
    )
    if report.removed_strikes:
        embed.add_field(
            name=f"Removed Strikes ({len(report.removed_strikes)})",
            value=_field_lines([f"`#{s.id}` {s.comment or NO_REASON}" for s in report.removed_strikes]),
            inline=False,
        )
    if report.releases:
        embed.add_field(
            name="Last Release",
            value=f"{discord_time(report.last_release_time())} by {mention(report.releases[0].moderator_id)}",
            inline=False,
        )
    return embed


def warning_summary(user_id: UserID, warnings: List[LedgerEntry]) -> discord.Embed:
    embed = discord.Embed(
        title="Warnings",
        description=f"{mention(user_id)} has {len(warnings)} warning(s).",
        color=discord.Color.gold(),
        timestamp=_now(),
    )
    embed.add_field(
        name="History",
        value=_field_lines([
            f"`#{w.id}` {discord_time(w.timestamp, 'd')} by {mention(w.moderator_id)}: {w.comment or NO_REASON}"
            for w in warnings
        ]),
        inline=False,
    )
    return embed


def action_confirmation(title: str, user_id: UserID, moderator_id: UserID | None, report: StatusReport | None,
                        *, comment: str | None = None, dm_sent: bool = True) -> discord.Embed:
    """Log channel confirmation for a ledger change."""
    embed = discord.Embed(title=title, color=discord.Color.orange(), timestamp=_now())
    embed.add_field(name="User", value=mention(user_id), inline=True)
    embed.add_field(name="Moderator", value=mention(moderator_id), inline=True)
    if comment is not None:
        embed.add_field(name="Comment", value=comment or NO_REASON, inline=False)
    if report is not None:
        embed.add_field(name="Status", value=_status_line(report.current_pit()), inline=False)
        embed.add_field(name="Active Strikes", value=str(len(report.active_strikes)), inline=True)
    if not dm_sent:
        embed.set_footer(text="The user could not be notified by DM.")
    return embed


def user_notification(title: str, report: StatusReport | None, *, comment: str | None = None,
                      duration_ms: int | None = None) -> discord.Embed:
    """DM sent to the subject of an action. The issuing moderator is never named."""
    embed = discord.Embed(title=title, color=discord.Color.orange(), timestamp=_now())
    if comment is not None:
        embed.add_field(name="Reason", value=comment or NO_REASON, inline=False)
    if duration_ms:
        embed.add_field(name="Duration", value=format_duration_ms(duration_ms), inline=True)
    if report is not None:
        embed.add_field(name="Status", value=_status_line(report.current_pit()), inline=False)
        embed.add_field(name="Active Strikes", value=str(len(report.active_strikes)), inline=True)
    return embed


def minigame_result(user_id: UserID, moderator_id: UserID | None, duration_ms: int, bullet: str) -> discord.Embed:
    """Reply to a ``!bh`` message."""
    if moderator_id is None:
        return discord.Embed(
            title="Bullet Hell Loser",
            description=f"Mods missed every bullet. {mention(user_id)}'s misery is unending.",
            color=discord.Color.green(),
            timestamp=_now(),
        )
    return discord.Embed(
        title="Bullet Hell Winner",
        description=(
            f"{mention(user_id)} was hit by {mention(moderator_id)}'s {bullet}. "
            f"BACK TO THE PIT for {format_duration_ms(duration_ms)}."
        ),
        color=discord.Color.green(),
        timestamp=_now(),
    )
