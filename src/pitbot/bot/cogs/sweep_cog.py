"""Background sweep cog.

Runs :meth:`PitEngine.sweep` on a ``tasks.loop``: expired strikes are
announced and pit roles are brought back in line with the ledger. The ledger
is the only state, so restarts are transparent.
"""

from __future__ import annotations

import asyncio

import discord
from discord.ext import commands, tasks

from pitbot.moderation.pit_engine import PitEngine
from pitbot.util.logger import get_logger

logger = get_logger("sweep_cog")


class SweepCog(commands.Cog):
    """Periodic ledger sweep; the interval comes from ``pitbot.sweep_interval_seconds``."""

    def __init__(self, bot: discord.Bot, engine: PitEngine) -> None:
        self.bot = bot
        self.engine = engine

    @tasks.loop(seconds=60)  # real interval set in on_ready
    async def _sweep_task(self) -> None:
        try:
            changed = await self.engine.sweep()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("[SWEEP] Sweep failed: %s", exc, exc_info=True)
            return
        if changed:
            logger.info("[SWEEP] Updated pit role of %d user(s)", changed)

    @_sweep_task.before_loop
    async def _before_sweep(self) -> None:
        await self.bot.wait_until_ready()

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        interval = self.engine.ctx.settings.sweep_interval_seconds
        self._sweep_task.change_interval(seconds=interval)
        if not self._sweep_task.is_running():
            self._sweep_task.start()
            logger.info("[SWEEP] Started (interval=%.1fs)", interval)

    def cog_unload(self) -> None:
        self._sweep_task.cancel()
        logger.info("[SWEEP] Stopped")


def setup(bot: discord.Bot, engine: PitEngine) -> None:
    bot.add_cog(SweepCog(bot, engine))
