"""
Keeps the pit role in line with the computed suspension state.

The role is only a cache of ``StatusReport.current_pit()``. The synchronizer
acts on transitions only: when the observed role already matches the computed
state it makes no calls and sends nothing, which lets the periodic sweep
re-check every user without spamming the log channel.
"""

from __future__ import annotations

from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.status_datatypes import CurrentPit, SyncOutcome
from pitbot.errors import ExternalStateError, NotificationDeliveryError
from pitbot.moderation.moderation_context import ModerationContext
from pitbot.ui import pit_embeds
from pitbot.util.logger import get_logger

logger = get_logger("role_sync")


class RoleSynchronizer:
    """Reconciles the pit role of a user with their computed state."""

    def __init__(self, ctx: ModerationContext) -> None:
        self.ctx = ctx

    async def sync(self, user_id: UserID, current_pit: CurrentPit | None, reason: str | None = None) -> SyncOutcome:
        """
        Flip the pit role if it disagrees with ``current_pit``.

        Args:
            user_id: User to reconcile.
            current_pit: Freshly computed state; None means not suspended.
            reason: Human readable reason. A pit notice goes to the log
                channel only when one is given.

        Returns:
            What was done. A refused role change is reported to the log
            channel and returns ``FAILED``; it is not retried.
        """
        should_flag = current_pit is not None and current_pit.is_active
        try:
            observed = await self.ctx.flag.is_flagged(user_id)
        except ExternalStateError as exc:
            logger.error("[ROLE SYNC] Could not read pit role of %s: %s", user_id, exc)
            return SyncOutcome.FAILED
        if observed is None:
            logger.debug("[ROLE SYNC] User %s is not a guild member, skipping", user_id)
            return SyncOutcome.UNCHANGED
        if observed == should_flag:
            return SyncOutcome.UNCHANGED

        try:
            await self.ctx.flag.set_flagged(user_id, should_flag, reason)
        except ExternalStateError as exc:
            logger.error("[ROLE SYNC] Failed to %s pit role for %s: %s",
                         "add" if should_flag else "remove", user_id, exc)
            await self._log(content=pit_embeds.role_failure_notice(user_id, should_flag, exc))
            return SyncOutcome.FAILED

        logger.info("[ROLE SYNC] %s pit role for %s", "Added" if should_flag else "Removed", user_id)
        if reason:
            await self._log(embed=pit_embeds.pit_notice(user_id, should_flag, reason))
        return SyncOutcome.ADDED if should_flag else SyncOutcome.REMOVED

    async def _log(self, **kwargs) -> None:
        try:
            await self.ctx.notifier.send_log(**kwargs)
        except NotificationDeliveryError as exc:
            logger.warning("[ROLE SYNC] Could not post to log channel: %s", exc)
