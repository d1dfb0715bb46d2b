"""Background scheduler cog for Reaper.

ExpirySweeperCog drives ``ExpirySweeper.run_cycle`` from a ``tasks.loop``.
Expiries live in the database, so bot restarts are transparent: anything
that lapsed while the bot was down is lifted on the first tick.
"""

from __future__ import annotations

import asyncio

import discord
from discord.ext import commands, tasks

from reaper.configuration.app_configuration import app_config
from reaper.scheduler.expiry_sweeper import ExpirySweeper
from reaper.util.logger import get_logger

logger = get_logger("scheduler_cog")


class ExpirySweeperCog(commands.Cog):
    """
    DB-polling loop that lifts mutes and bans when they expire.

    The interval comes from ``app_config.expiry_sweep_interval``. A failing
    cycle is logged and the loop carries on; the next tick retries.

    Access via:
        bot.cogs["ExpirySweeperCog"]
    """

    def __init__(self, bot: discord.Bot, sweeper: ExpirySweeper) -> None:
        self.bot = bot
        self.sweeper = sweeper

    # ------------------------------------------------------------------
    # Cog lifecycle
    # ------------------------------------------------------------------

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        interval = app_config.expiry_sweep_interval
        self._sweep_task.change_interval(seconds=interval)
        if not self._sweep_task.is_running():
            self._sweep_task.start()
        logger.info("[EXPIRY SWEEPER] Ready (interval=%.1fs)", interval)

    def cog_unload(self) -> None:
        self._sweep_task.cancel()
        logger.info("[EXPIRY SWEEPER] Stopped")

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------

    @tasks.loop(seconds=45)  # real interval set in on_ready
    async def _sweep_task(self) -> None:
        try:
            await self.sweeper.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("[EXPIRY SWEEPER] Sweep failed, retrying next interval: %s", exc)

    @_sweep_task.before_loop
    async def _before_sweep(self) -> None:
        await self.bot.wait_until_ready()


def setup(bot: discord.Bot, sweeper: ExpirySweeper) -> None:
    bot.add_cog(ExpirySweeperCog(bot, sweeper))
