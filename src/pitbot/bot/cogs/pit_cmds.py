"""
Pit commands cog: slash commands for strikes, releases, warnings and timeouts.

Every command defers its interaction (after the moderator check), then
translates its options into one call on the shared
:class:`~pitbot.moderation.pit_engine.PitEngine` and answers the invoker
ephemerally through the followup. The full confirmation goes to the log
channel from the engine.

Permissions
- Moderator commands require one of the configured moderator roles, or the
  configured owner. ``/selfpit`` is open to everyone.
- ``ValidationError`` and ``NotFoundError`` raised by the engine are shown to
  the invoker; anything else reaches ``on_application_command_error``.
"""

from typing import Awaitable

import discord
from discord import Option
from discord.ext import commands

from pitbot.bot.discord_adapters import is_moderator
from pitbot.configuration.pit_settings import DEFAULT_SELF_TIMEOUT_MAX_HOURS, HOUR_MS
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.ledger_datatypes import MAX_SEVERITY, MIN_SEVERITY
from pitbot.datatypes.status_datatypes import ModerationResult
from pitbot.errors import PitbotError
from pitbot.moderation.pit_engine import PitEngine
from pitbot.ui import pit_embeds
from pitbot.util.logger import get_logger

logger = get_logger("pit_cog")

CONFIRMATION = "Check log channel for confirmation."


class PitCommandsCog(commands.Cog):
    """Slash commands backed by the pit engine."""

    def __init__(self, discord_bot_instance, engine: PitEngine):
        self.discord_bot_instance = discord_bot_instance
        self.engine = engine
        logger.info("Pit commands cog loaded")

    async def check_moderator(self, ctx: discord.ApplicationContext) -> bool:
        """Reply ephemerally and return False when the invoker is not a moderator."""
        if is_moderator(ctx.author, self.engine.ctx.settings):
            return True
        await ctx.respond("You don't have permission to do that.", ephemeral=True)
        return False

    async def run_operation(
        self,
        ctx: discord.ApplicationContext,
        operation: Awaitable[ModerationResult],
    ) -> ModerationResult | None:
        """Await an engine operation, answering the invoker on refusal or bad input.

        Returns the result only when the operation succeeded.
        """
        try:
            result = await operation
        except PitbotError as exc:
            logger.info("[PIT COG] /%s refused: %s", getattr(ctx.command, "name", "?"), exc.message)
            await ctx.respond(exc.message, ephemeral=True)
            return None

        if not result.success:
            await ctx.respond(result.detail or "Nothing to do.", ephemeral=True)
            return None
        return result

    async def _strike(self, ctx, user, severity, comment) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        operation = self.engine.strike(UserID.from_user(user), UserID.from_user(ctx.author), severity, comment)
        if await self.run_operation(ctx, operation):
            await ctx.respond(CONFIRMATION, ephemeral=True)

    @commands.slash_command(name="strike", description="Issue a strike to a user.")
    async def strike(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to strike.", required=True),  # type: ignore
        severity: Option(int, "Severity of the infraction, 1-5.", min_value=MIN_SEVERITY, max_value=MAX_SEVERITY),  # type: ignore
        comment: Option(str, "Reason for the strike.", required=True),  # type: ignore
    ) -> None:
        await self._strike(ctx, user, severity, comment)

    @commands.slash_command(name="timeout", description="Issue a strike to a user.")
    async def timeout(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to strike.", required=True),  # type: ignore
        severity: Option(int, "Severity of the infraction, 1-5.", min_value=MIN_SEVERITY, max_value=MAX_SEVERITY),  # type: ignore
        comment: Option(str, "Reason for the strike.", required=True),  # type: ignore
    ) -> None:
        """Same as /strike; kept under the name moderators already know."""
        await self._strike(ctx, user, severity, comment)

    @commands.slash_command(
        name="release",
        description="Release a user from the pit, optionally deleting their most recent strike.",
    )
    async def release(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to release.", required=True),  # type: ignore
        amend: Option(bool, "Put 'True' here to remove their most recent strike.", default=False),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        operation = self.engine.release(UserID.from_user(user), UserID.from_user(ctx.author), bool(amend))
        if await self.run_operation(ctx, operation):
            await ctx.respond(CONFIRMATION, ephemeral=True)

    @commands.slash_command(name="removestrike", description="Remove a strike from a user's record.")
    async def removestrike(
        self,
        ctx: discord.ApplicationContext,
        strike: Option(int, "The ID of the strike to remove. Use /strikes to find the ID.", min_value=1),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        if await self.run_operation(ctx, self.engine.remove_strike(strike, UserID.from_user(ctx.author))):
            await ctx.respond(CONFIRMATION, ephemeral=True)

    @commands.slash_command(name="editcomment", description="Edit the comment of a strike.")
    async def editcomment(
        self,
        ctx: discord.ApplicationContext,
        strike: Option(int, "The ID of the strike to edit. Use /strikes to find the ID.", min_value=1),  # type: ignore
        comment: Option(str, "New comment for the strike.", required=True),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        if await self.run_operation(ctx, self.engine.edit_comment(strike, comment, UserID.from_user(ctx.author))):
            await ctx.respond(CONFIRMATION, ephemeral=True)

    @commands.slash_command(name="editseverity", description="Edit the severity of a strike.")
    async def editseverity(
        self,
        ctx: discord.ApplicationContext,
        strike: Option(int, "The ID of the strike to edit. Use /strikes to find the ID.", min_value=1),  # type: ignore
        severity: Option(int, "New severity of the infraction, 1-5.", min_value=MIN_SEVERITY, max_value=MAX_SEVERITY),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        if await self.run_operation(ctx, self.engine.edit_severity(strike, severity, UserID.from_user(ctx.author))):
            await ctx.respond(CONFIRMATION, ephemeral=True)

    @commands.slash_command(name="strikes", description="List a user's strikes.")
    async def strikes(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to fetch.", required=True),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        result = await self.run_operation(ctx, self.engine.list_strikes(UserID.from_user(user)))
        if result:
            await ctx.respond(embed=pit_embeds.strike_summary(result.report), ephemeral=True)

    @commands.slash_command(name="warn", description="Issue a warning to a user.")
    async def warn(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to warn.", required=True),  # type: ignore
        comment: Option(str, "Reason for the warning.", required=True),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        operation = self.engine.warn(UserID.from_user(user), UserID.from_user(ctx.author), comment)
        if await self.run_operation(ctx, operation):
            await ctx.respond(CONFIRMATION, ephemeral=True)

    @commands.slash_command(name="warns", description="List a user's warnings.")
    async def warns(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user whose warnings to fetch.", required=True),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        result = await self.run_operation(ctx, self.engine.list_warnings(UserID.from_user(user)))
        if result:
            await ctx.respond(embed=pit_embeds.warning_summary(result.user_id, result.warnings), ephemeral=True)

    @commands.slash_command(
        name="selfpit",
        description="Time yourself out for up to 72 hours. If not specified, the timeout duration will be 1 day.",
    )
    async def selfpit(
        self,
        ctx: discord.ApplicationContext,
        duration: Option(int, "Duration of the timeout in hours.", min_value=1,
                         max_value=DEFAULT_SELF_TIMEOUT_MAX_HOURS, required=False, default=None),  # type: ignore
    ) -> None:
        await ctx.defer(ephemeral=True)
        result = await self.run_operation(ctx, self.engine.self_timeout(UserID.from_user(ctx.author), duration))
        if result:
            hours = result.entry.duration_ms // HOUR_MS
            await ctx.respond(f"You have successfully sent yourself to the pit for {hours} hours.", ephemeral=True)

    @commands.slash_command(name="timeoutns", description="Timeout a user without issuing a strike.")
    async def timeoutns(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to timeout.", required=True),  # type: ignore
        duration: Option(int, "Duration of the timeout in hours.", min_value=1),  # type: ignore
        comment: Option(str, "Reason for the timeout.", required=True),  # type: ignore
    ) -> None:
        if not await self.check_moderator(ctx):
            return
        await ctx.defer(ephemeral=True)
        operation = self.engine.manual_timeout(
            UserID.from_user(user), UserID.from_user(ctx.author), duration, comment
        )
        if await self.run_operation(ctx, operation):
            await ctx.respond(CONFIRMATION, ephemeral=True)


def setup(discord_bot_instance, engine: PitEngine):
    """Register the PitCommandsCog with the bot."""
    discord_bot_instance.add_cog(PitCommandsCog(discord_bot_instance, engine))
