"""
Pitbot
======

A Discord bot that keeps a ledger of strikes, warnings and timeouts and
sends users to "the pit" (a suspension role) for as long as their
disciplinary history says they should be there.
"""

import os
import sys
from pathlib import Path


def resolve_base_dir() -> Path:
    """Determine the base directory of the project.

    Resolution order:
    1. PITBOT_HOME environment variable, if set.
    2. If running in a frozen/compiled context, use the executable's directory.
    3. Otherwise, assume running from source and use the grandparent of this file's directory.
    """
    if env_home := os.getenv("PITBOT_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]


BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from pitbot.bot.discord_adapters import DiscordNotifier, DiscordPitRole
from pitbot.configuration.app_configuration import AppConfig
from pitbot.configuration.pit_settings import PitSettings
from pitbot.database.ledger_store import LedgerStore
from pitbot.errors import PitbotError
from pitbot.moderation.moderation_context import ModerationContext
from pitbot.moderation.pit_engine import PitEngine
from pitbot.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load environment variables and return the Discord bot token.

    Raises
    ------
    SystemExit
        If the required ``DISCORD_BOT_TOKEN`` variable is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    """Intents for slash commands, member joins, role membership and ``!bh`` messages."""
    intents = discord.Intents.default()
    intents.message_content = True
    intents.guilds = True
    intents.messages = True
    intents.members = True
    return intents


def load_cogs(discord_bot_instance: discord.Bot, engine: PitEngine) -> None:
    """Register all operational cogs with the provided Discord bot instance."""
    from pitbot.bot.cogs import events_listener, pit_cmds, sweep_cog

    events_listener.setup(discord_bot_instance, engine)
    pit_cmds.setup(discord_bot_instance, engine)
    sweep_cog.setup(discord_bot_instance, engine)

    logger.info("All cogs loaded successfully.")


def create_bot(settings: PitSettings, store: LedgerStore) -> discord.Bot:
    """Instantiate the Discord bot, wire the pit engine to it and register all cogs."""
    bot = discord.Bot(intents=build_intents(), debug_guilds=[settings.guild_id] if settings.guild_id else None)
    context = ModerationContext(
        store=store,
        settings=settings,
        flag=DiscordPitRole(bot, settings),
        notifier=DiscordNotifier(bot, settings),
    )
    load_cogs(bot, PitEngine(context))
    return bot


async def start_bot(bot: discord.Bot, token: str) -> None:
    """Start the Discord bot and handle lifecycle logging around the connection."""
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    finally:
        logger.info("Discord bot start routine finished.")


async def shutdown_runtime(bot: discord.Bot | None, store: LedgerStore) -> None:
    """Gracefully close the Discord connection and the ledger."""
    if bot is not None and not bot.is_closed():
        try:
            await bot.close()
        except Exception as exc:
            logger.exception("Error while closing the Discord client: %s", exc)

    try:
        await store.close()
    except Exception as exc:
        logger.exception("Error during ledger shutdown: %s", exc)

    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Bootstrap the ledger and the bot, returning an exit code."""
    token = load_environment()

    try:
        settings = AppConfig().pit_settings
    except PitbotError as exc:
        logger.critical("Invalid configuration: %s", exc.message)
        return 1

    store = LedgerStore(Path(settings.database_path).resolve())
    try:
        logger.info("Opening the ledger...")
        await store.open()
    except Exception as exc:
        logger.critical("Failed to initialize database: %s", exc)
        return 1

    bot = None
    exit_code = 0
    try:
        bot = create_bot(settings, store)
        await start_bot(bot, token)
    except Exception as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, store)

    return exit_code


def main() -> int:
    """Entrypoint that orchestrates the async runtime and returns the process code."""
    sys.excepthook = handle_exception
    logger.info("Starting Pitbot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0
    except SystemExit as exit_exc:
        code = exit_exc.code
        if isinstance(code, int):
            return code
        return 1
    except Exception as exc:
        logger.critical("An unexpected error occurred while running the bot: %s", exc)
        return 1


if __name__ == "__main__":
    print(f"Exited with code: {main()}")
