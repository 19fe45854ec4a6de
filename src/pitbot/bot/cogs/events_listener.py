"""Event listener Cog for Pitbot.

Handles bot lifecycle events (on_ready), re-syncs the pit role of members
who rejoin, runs the ``!bh`` bullet hell minigame and reports command errors.
"""

import random

import discord
from discord.ext import commands

from pitbot.bot.discord_adapters import moderator_ids
from pitbot.datatypes.discord_datatypes import UserID
from pitbot.datatypes.status_datatypes import ModerationResult
from pitbot.moderation.pit_engine import PitEngine
from pitbot.ui import pit_embeds
from pitbot.util.logger import get_logger

logger = get_logger("events_listener_cog")

MINIGAME_TRIGGER = "!bh"
BULLET_PREFIXES = ["GIGA"]
BULLET_SUFFIXES = ["HELL"]


class EventsListenerCog(commands.Cog):
    """Cog containing lifecycle, member, message and command error handlers."""

    def __init__(self, discord_bot_instance, engine: PitEngine, rng: random.Random | None = None):
        """Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        engine:
            Pit engine used for role re-syncs and minigame penalties.
        rng:
            Random source for the minigame; a fresh ``random.Random`` by default.
        """
        self.bot = discord_bot_instance
        self.engine = engine
        self._random = rng or random.Random()
        logger.info("Events listener cog loaded")

    def _in_home_guild(self, guild: discord.Guild | None) -> bool:
        return guild is not None and guild.id == self.engine.ctx.settings.guild_id

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        if self.bot.user:
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(type=discord.ActivityType.watching, name="the pit"),
            )
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

    @commands.Cog.listener(name='on_member_join')
    async def on_member_join(self, member: discord.Member):
        """Put the pit role back on members who leave and rejoin while pitted."""
        if not self._in_home_guild(member.guild) or member.bot:
            return
        _, outcome = await self.engine.resync(UserID.from_user(member))
        logger.debug("[EVENTS] Re-synced rejoining member %s: %s", member.id, outcome.value)

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        if message.author.bot or not self._in_home_guild(message.guild):
            return
        args = message.content.split()
        if args and args[0] == MINIGAME_TRIGGER:
            await self.handle_bullet_hell(message)

    async def handle_bullet_hell(self, message: discord.Message) -> ModerationResult | None:
        """
        Fire a random moderator's bullet at the author.

        A hit pits the author for the configured minigame duration; a miss
        only replies. Returns the engine result on a hit.
        """
        settings = self.engine.ctx.settings
        user_id = UserID.from_user(message.author)
        moderators = moderator_ids(message.guild, settings)

        if not moderators or self._random.random() >= settings.minigame_hit_chance:
            await message.reply(embed=pit_embeds.minigame_result(user_id, None, 0, ""))
            return None

        moderator_id = self._random.choice(moderators)
        bullet = f"{self._random.choice(BULLET_PREFIXES)} bullet of {self._random.choice(BULLET_SUFFIXES)}"
        duration_ms = settings.minigame_duration_ms

        result = await self.engine.minigame_penalty(user_id, duration_ms, message.jump_url)
        if result.success:
            logger.info("[EVENTS] %s lost bullet hell to %s", user_id, moderator_id)
            await message.reply(embed=pit_embeds.minigame_result(user_id, moderator_id, duration_ms, bullet))
        return result

    @commands.Cog.listener(name='on_application_command_error')
    async def on_application_command_error(self, application_context: discord.ApplicationContext, error: Exception):
        """Log command errors and answer the invoker with a generic message."""
        if isinstance(error, commands.CommandNotFound):
            return

        command_name = getattr(application_context.command, 'name', '<unknown>')
        logger.error(f"Error in command '{command_name}': {error}", exc_info=True)

        error_message = "A :bug: showed up while running this command."
        try:
            await application_context.respond(error_message, ephemeral=True)
        except discord.InteractionResponded:
            await application_context.followup.send(error_message, ephemeral=True)


def setup(discord_bot_instance, engine: PitEngine):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, engine))
