"""
Pit moderation engine: the typed entry points behind every pit command.

Each operation follows the same sequence:

1. validate input (``ValidationError`` / ``NotFoundError`` before any write)
2. append to or edit the ledger
3. rebuild the :class:`StatusReport` from the full ledger
4. reconcile the pit role through the :class:`RoleSynchronizer`
5. notify the user by DM and the moderators in the log channel

Notification failures are logged and reflected in ``ModerationResult.dm_sent``
but never undo the ledger change or the role state already committed.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Set, Tuple

import discord

from pitbot.configuration.pit_settings import HOUR_MS
from pitbot.datatypes.command_datatypes import (
    EditCommentCommand,
    EditSeverityCommand,
    ListStrikesCommand,
    ListWarningsCommand,
    ManualTimeoutCommand,
    MinigamePenaltyCommand,
    PitCommand,
    ReleaseCommand,
    RemoveStrikeCommand,
    SelfTimeoutCommand,
    StrikeCommand,
    WarnCommand,
)
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import (
    MAX_SEVERITY,
    RELEASE_SEVERITY,
    REMOVED_SEVERITY,
    EntryKind,
    LedgerEntry,
    is_valid_severity,
)
from pitbot.datatypes.status_datatypes import ModerationResult, SyncOutcome
from pitbot.errors import ExternalStateError, NotFoundError, NotificationDeliveryError, ValidationError
from pitbot.moderation.moderation_context import ModerationContext
from pitbot.moderation.role_sync import RoleSynchronizer
from pitbot.moderation.status_report import StatusReport
from pitbot.ui import pit_embeds
from pitbot.util.logger import get_logger

logger = get_logger("pit_engine")

MAX_ACTIVE_STRIKES = 5


def _require_user(user_id: UserID | None, role: str = "user") -> UserID:
    if user_id is None:
        raise ValidationError(f"Invalid {role}.")
    return UserID(user_id)


def _require_row_id(strike_id: object) -> int:
    if not isinstance(strike_id, int) or isinstance(strike_id, bool) or strike_id < 1:
        raise ValidationError("Invalid strike id. Must be a positive number.")
    return strike_id


def _require_severity(severity: object) -> int:
    if not is_valid_severity(severity):
        raise ValidationError(f"Invalid severity. Must be a number from 1 to {MAX_SEVERITY}.")
    return severity  # type: ignore[return-value]


def _require_hours(hours: object, maximum: int | None = None) -> int:
    if not isinstance(hours, int) or isinstance(hours, bool) or hours <= 0:
        raise ValidationError("Invalid duration. Must be a number of hours greater than 0.")
    if maximum is not None and hours > maximum:
        raise ValidationError(f"Invalid duration. Must be at most {maximum} hours.")
    return hours


class PitEngine:
    """Runs moderation operations against an explicit :class:`ModerationContext`."""

    def __init__(self, ctx: ModerationContext) -> None:
        self.ctx = ctx
        self.synchronizer = RoleSynchronizer(ctx)
        self._sweep_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, command: PitCommand) -> ModerationResult:
        """Route a command descriptor to its typed operation."""
        match command:
            case StrikeCommand():
                return await self.strike(command.user_id, command.moderator_id, command.severity, command.comment)
            case ReleaseCommand():
                return await self.release(command.user_id, command.moderator_id, command.amend)
            case RemoveStrikeCommand():
                return await self.remove_strike(command.strike_id, command.moderator_id)
            case EditCommentCommand():
                return await self.edit_comment(command.strike_id, command.comment, command.moderator_id)
            case EditSeverityCommand():
                return await self.edit_severity(command.strike_id, command.severity, command.moderator_id)
            case ListStrikesCommand():
                return await self.list_strikes(command.user_id)
            case WarnCommand():
                return await self.warn(command.user_id, command.moderator_id, command.comment)
            case ListWarningsCommand():
                return await self.list_warnings(command.user_id)
            case SelfTimeoutCommand():
                return await self.self_timeout(command.user_id, command.hours)
            case ManualTimeoutCommand():
                return await self.manual_timeout(command.user_id, command.moderator_id, command.hours, command.comment)
            case MinigamePenaltyCommand():
                return await self.minigame_penalty(command.user_id, command.duration_ms, command.message_link)
            case _:
                raise ValidationError(f"Unsupported command {type(command).__name__}")

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    async def report(self, user_id: UserID) -> StatusReport:
        return await StatusReport.create(UserID(user_id), self.ctx)

    async def resync(self, user_id: UserID, release_reason: str | None = None) -> Tuple[StatusReport, SyncOutcome]:
        """Rebuild the user's report and reconcile their pit role with it."""
        report = await self.report(user_id)
        pit = report.current_pit()
        if pit is not None and pit.is_active:
            reason = pit_embeds.describe_pit(pit)
        else:
            reason = release_reason or "Suspension ended."
        outcome = await self.synchronizer.sync(report.user_id, pit, reason)
        return report, outcome

    async def _notify_user(self, user_id: UserID, embed: discord.Embed) -> bool:
        try:
            await self.ctx.notifier.send_dm(user_id, embed)
            return True
        except NotificationDeliveryError as exc:
            logger.debug("[PIT ENGINE] Failed to DM user %s: %s", user_id, exc)
            return False

    async def _log(self, embed: discord.Embed | None = None, content: str | None = None) -> None:
        try:
            await self.ctx.notifier.send_log(embed=embed, content=content)
        except NotificationDeliveryError as exc:
            logger.warning("[PIT ENGINE] Failed to post to log channel: %s", exc)

    def _entry(self, user_id: UserID, kind: EntryKind, **fields) -> LedgerEntry:
        return LedgerEntry(user_id=user_id, kind=kind, timestamp=self.ctx.now(), **fields)

    def _duplicate(self, command: str, user_id: UserID) -> ModerationResult:
        logger.info("[PIT ENGINE] Duplicate %s for %s ignored", command, user_id)
        return ModerationResult(command, user_id, success=False, detail="Duplicate event ignored.")

    async def _get_strike(self, strike_id: int, *, live_only: bool) -> LedgerEntry:
        strike = await self.ctx.store.get(strike_id)
        if strike is None:
            raise NotFoundError(f"Strike #{strike_id} does not exist.", details={"strike_id": strike_id})
        if live_only and not strike.is_live_strike:
            raise NotFoundError(
                f"Strike #{strike_id} is not an active record.",
                details={"strike_id": strike_id, "severity": strike.severity},
            )
        return strike

    # ------------------------------------------------------------------
    # Strikes
    # ------------------------------------------------------------------

    async def strike(self, user_id: UserID, moderator_id: UserID, severity: int,
                     comment: str | None = None) -> ModerationResult:
        """Issue a strike of severity 1-5."""
        user_id = _require_user(user_id)
        moderator_id = _require_user(moderator_id, "moderator")
        severity = _require_severity(severity)

        entry = self._entry(user_id, EntryKind.STRIKE, moderator_id=moderator_id, severity=severity, comment=comment)
        if await self.ctx.store.append(entry) is None:
            return self._duplicate("strike", user_id)

        report, outcome = await self.resync(user_id)
        dm_sent = await self._notify_user(
            user_id, pit_embeds.user_notification("You have received a strike.", report, comment=comment)
        )
        await self._log(embed=pit_embeds.action_confirmation(
            f"Strike Issued (L{severity})", user_id, moderator_id, report, comment=comment, dm_sent=dm_sent,
        ))
        if len(report.active_strikes) >= MAX_ACTIVE_STRIKES:
            await self._log(embed=pit_embeds.maximum_strikes_notice(user_id))

        return ModerationResult(
            "strike", user_id, report=report, current_pit=report.current_pit(),
            entry=entry, dm_sent=dm_sent, sync=outcome,
        )

    @staticmethod
    def _strike_source_running(report: StatusReport) -> bool:
        """True when strikes newer than the last release still hold the user."""
        if not report.active_strikes:
            return False
        newest = report.active_strikes[0]
        return newest.timestamp > report.last_release_time() and report.strike_release_time() > report.now

    async def release(self, user_id: UserID, moderator_id: UserID, amend: bool = False) -> ModerationResult:
        """
        Release a user from the pit.

        With ``amend`` the newest active strike is removed instead, when that
        strike is still running; if another source keeps the user pitted a
        release row is added as well.
        """
        user_id = _require_user(user_id)
        moderator_id = _require_user(moderator_id, "moderator")

        report = await self.report(user_id)
        pit = report.current_pit()
        if pit is None or not pit.is_active:
            report, outcome = await self.resync(user_id)
            return ModerationResult(
                "release", user_id, success=False, report=report, current_pit=report.current_pit(),
                sync=outcome, detail="User should already not be in the pit.",
            )

        entry: LedgerEntry | None = None
        amended = False
        if amend and self._strike_source_running(report):
            newest = report.active_strikes[0]
            await self.ctx.store.update_severity(newest.id, REMOVED_SEVERITY)
            entry = replace(newest, severity=REMOVED_SEVERITY)
            amended = True
            report = await self.report(user_id)

        if not amended or report.is_pitted:
            release = self._entry(user_id, EntryKind.RELEASE, moderator_id=moderator_id, severity=RELEASE_SEVERITY)
            if await self.ctx.store.append(release) is None:
                return self._duplicate("release", user_id)
            entry = release

        reason = f"{'Strike amended' if amended else 'Released'} by {pit_embeds.mention(moderator_id)}"
        report, outcome = await self.resync(user_id, release_reason=reason)
        dm_sent = await self._notify_user(
            user_id,
            pit_embeds.user_notification(
                "Your most recent strike was removed." if amended else "You have been released from the pit.",
                report,
            ),
        )
        await self._log(embed=pit_embeds.action_confirmation(
            "Strike Amended" if amended else "User Released", user_id, moderator_id, report, dm_sent=dm_sent,
        ))
        return ModerationResult(
            "release", user_id, report=report, current_pit=report.current_pit(),
            entry=entry, dm_sent=dm_sent, sync=outcome, detail="amended" if amended else "",
        )

    async def remove_strike(self, strike_id: int, moderator_id: UserID | None = None) -> ModerationResult:
        """Strike a strike from the record (severity set to 0)."""
        strike_id = _require_row_id(strike_id)
        strike = await self._get_strike(strike_id, live_only=True)

        await self.ctx.store.update_severity(strike_id, REMOVED_SEVERITY)
        entry = replace(strike, severity=REMOVED_SEVERITY)

        report, outcome = await self.resync(strike.user_id, release_reason=f"Strike #{strike_id} removed")
        dm_sent = await self._notify_user(
            strike.user_id,
            pit_embeds.user_notification("A strike was removed from your record.", report, comment=strike.comment),
        )
        await self._log(embed=pit_embeds.action_confirmation(
            f"Strike #{strike_id} Removed", strike.user_id, moderator_id, report,
            comment=strike.comment, dm_sent=dm_sent,
        ))
        return ModerationResult(
            "remove_strike", strike.user_id, report=report, current_pit=report.current_pit(),
            entry=entry, dm_sent=dm_sent, sync=outcome,
        )

    async def edit_comment(self, strike_id: int, comment: str, moderator_id: UserID | None = None) -> ModerationResult:
        strike_id = _require_row_id(strike_id)
        strike = await self._get_strike(strike_id, live_only=False)

        await self.ctx.store.update_comment(strike_id, comment)
        entry = replace(strike, comment=comment)

        report = await self.report(strike.user_id)
        await self._log(embed=pit_embeds.action_confirmation(
            f"Strike #{strike_id} Comment Edited", strike.user_id, moderator_id, None, comment=comment,
        ))
        return ModerationResult(
            "edit_comment", strike.user_id, report=report, current_pit=report.current_pit(), entry=entry,
        )

    async def edit_severity(self, strike_id: int, severity: int, moderator_id: UserID | None = None) -> ModerationResult:
        strike_id = _require_row_id(strike_id)
        severity = _require_severity(severity)
        strike = await self._get_strike(strike_id, live_only=True)

        await self.ctx.store.update_severity(strike_id, severity)
        entry = replace(strike, severity=severity)

        report, outcome = await self.resync(strike.user_id, release_reason=f"Strike #{strike_id} severity lowered")
        await self._log(embed=pit_embeds.action_confirmation(
            f"Strike #{strike_id} Severity L{strike.severity} → L{severity}",
            strike.user_id, moderator_id, report,
        ))
        return ModerationResult(
            "edit_severity", strike.user_id, report=report, current_pit=report.current_pit(),
            entry=entry, sync=outcome,
        )

    async def list_strikes(self, user_id: UserID) -> ModerationResult:
        user_id = _require_user(user_id)
        report = await self.report(user_id)
        return ModerationResult("list_strikes", user_id, report=report, current_pit=report.current_pit())

    # ------------------------------------------------------------------
    # Warnings
    # ------------------------------------------------------------------

    async def warn(self, user_id: UserID, moderator_id: UserID, comment: str | None = None) -> ModerationResult:
        user_id = _require_user(user_id)
        moderator_id = _require_user(moderator_id, "moderator")

        entry = self._entry(user_id, EntryKind.WARNING, moderator_id=moderator_id, comment=comment)
        if await self.ctx.store.append(entry) is None:
            return self._duplicate("warn", user_id)

        warnings = await self.ctx.store.warnings(user_id)
        dm_sent = await self._notify_user(
            user_id, pit_embeds.user_notification(f"You have received a warning ({len(warnings)} total).", None,
                                                  comment=comment),
        )
        await self._log(embed=pit_embeds.action_confirmation(
            f"Warning Issued ({len(warnings)} total)", user_id, moderator_id, None, comment=comment, dm_sent=dm_sent,
        ))
        return ModerationResult("warn", user_id, entry=entry, dm_sent=dm_sent, warnings=warnings)

    async def list_warnings(self, user_id: UserID) -> ModerationResult:
        user_id = _require_user(user_id)
        warnings = await self.ctx.store.warnings(user_id)
        return ModerationResult("list_warnings", user_id, warnings=warnings)

    # ------------------------------------------------------------------
    # Timed penalties
    # ------------------------------------------------------------------

    async def self_timeout(self, user_id: UserID, hours: int | None = None) -> ModerationResult:
        """Let a user pit themselves; refused while they are already pitted."""
        user_id = _require_user(user_id)
        if hours is None:
            hours = self.ctx.settings.self_timeout_default_hours
        hours = _require_hours(hours, self.ctx.settings.self_timeout_max_hours)

        report = await self.report(user_id)
        if report.is_pitted:
            return ModerationResult(
                "self_timeout", user_id, success=False, report=report, current_pit=report.current_pit(),
                detail="You already have an existing timeout.",
            )

        return await self._timed_penalty("self_timeout", user_id, None, hours, None)

    async def manual_timeout(self, user_id: UserID, moderator_id: UserID, hours: int,
                             comment: str | None = None) -> ModerationResult:
        """Timeout a user without issuing a strike."""
        user_id = _require_user(user_id)
        moderator_id = _require_user(moderator_id, "moderator")
        hours = _require_hours(hours)
        return await self._timed_penalty("manual_timeout", user_id, moderator_id, hours, comment)

    async def _timed_penalty(self, command: str, user_id: UserID, moderator_id: UserID | None,
                             hours: int, comment: str | None) -> ModerationResult:
        duration_ms = hours * HOUR_MS
        entry = self._entry(
            user_id, EntryKind.TIMED_PENALTY, moderator_id=moderator_id, comment=comment, duration_ms=duration_ms,
        )
        if await self.ctx.store.append(entry) is None:
            return self._duplicate(command, user_id)

        report, outcome = await self.resync(user_id)
        dm_sent = await self._notify_user(
            user_id,
            pit_embeds.user_notification("You have been sent to the pit.", report, comment=comment,
                                         duration_ms=duration_ms),
        )
        await self._log(embed=pit_embeds.action_confirmation(
            "Self-timeout" if moderator_id is None else "Timeout Issued (no strike)",
            user_id, moderator_id, report, comment=comment, dm_sent=dm_sent,
        ))
        return ModerationResult(
            command, user_id, report=report, current_pit=report.current_pit(),
            entry=entry, dm_sent=dm_sent, sync=outcome,
        )

    async def minigame_penalty(self, user_id: UserID, duration_ms: int,
                               message_link: str | None = None) -> ModerationResult:
        """Record a bullet hell hit and pit the user for ``duration_ms``."""
        user_id = _require_user(user_id)
        if not isinstance(duration_ms, int) or isinstance(duration_ms, bool) or duration_ms <= 0:
            raise ValidationError("Invalid duration. Must be a number of milliseconds greater than 0.")

        entry = self._entry(user_id, EntryKind.MINIGAME_PENALTY, duration_ms=duration_ms, message_link=message_link)
        if await self.ctx.store.append(entry) is None:
            return self._duplicate("minigame_penalty", user_id)

        report, outcome = await self.resync(user_id)
        return ModerationResult(
            "minigame_penalty", user_id, report=report, current_pit=report.current_pit(),
            entry=entry, sync=outcome,
        )

    # ------------------------------------------------------------------
    # Periodic sweep
    # ------------------------------------------------------------------

    async def sweep(self) -> int | None:
        """
        Re-check every user with ledger rows or the pit role.

        Newly expired strikes are reported to the log channel and pit roles
        are reconciled. A sweep that starts while another is still running is
        skipped.

        Returns:
            Number of users whose pit role changed, or None if skipped.
        """
        if self._sweep_lock.locked():
            logger.warning("[SWEEP] Previous sweep still running, skipping this interval")
            return None

        async with self._sweep_lock:
            user_ids: Set[UserID] = await self.ctx.store.known_user_ids()
            try:
                user_ids |= await self.ctx.flag.flagged_user_ids()
            except ExternalStateError as exc:
                logger.warning("[SWEEP] Could not list pit role members: %s", exc)

            changed = 0
            for user_id in sorted(user_ids, key=str):
                try:
                    if await self._sweep_user(user_id) in (SyncOutcome.ADDED, SyncOutcome.REMOVED):
                        changed += 1
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.error("[SWEEP] Failed to sweep user %s: %s", user_id, exc)

            logger.debug("[SWEEP] Checked %d user(s), %d role change(s)", len(user_ids), changed)
            return changed

    async def _sweep_user(self, user_id: UserID) -> SyncOutcome:
        report = await self.report(user_id)
        newly_expired = await report.get_newly_expired(self.ctx.store)
        if newly_expired:
            await self._log(embed=pit_embeds.expired_strikes_notice(user_id, newly_expired))

        pit = report.current_pit()
        if pit is not None and pit.is_active:
            reason = pit_embeds.describe_pit(pit)
        else:
            reason = "Suspension ended."
        return await self.synchronizer.sync(report.user_id, pit, reason)
