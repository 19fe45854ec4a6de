from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from pitbot.bot.cogs import sweep_cog
from pitbot.datatypes.discord_datatypes import UserID


def test_setup_registers_cog():
    captured = {}
    engine = SimpleNamespace(ctx=SimpleNamespace(settings=None))
    sweep_cog.setup(SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog)), engine)
    assert isinstance(captured["cog"], sweep_cog.SweepCog)


@pytest.mark.asyncio
async def test_sweep_task_runs_engine_sweep():
    engine = SimpleNamespace(sweep=AsyncMock(return_value=2))
    cog = sweep_cog.SweepCog(SimpleNamespace(), engine)

    await sweep_cog.SweepCog._sweep_task.coro(cog)

    engine.sweep.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweep_task_survives_engine_errors():
    engine = SimpleNamespace(sweep=AsyncMock(side_effect=RuntimeError("database is locked")))
    cog = sweep_cog.SweepCog(SimpleNamespace(), engine)

    await sweep_cog.SweepCog._sweep_task.coro(cog)

    engine.sweep.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweep_against_real_engine(engine, ctx):
    ctx.flag.flagged.add(UserID(555))
    cog = sweep_cog.SweepCog(SimpleNamespace(), engine)

    await sweep_cog.SweepCog._sweep_task.coro(cog)

    assert ctx.flag.flagged == set()
