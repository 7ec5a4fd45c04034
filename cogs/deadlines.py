from discord.ext import commands, tasks
import asyncio
import logging
import traceback
from engine.sweeper import sweep_expired_turns

logger = logging.getLogger('discord')

class Deadlines(commands.Cog):

  def __init__(self, bot):
    self.bot = bot
    self.lastReport = None
    self.sweepLoop.change_interval(seconds=bot.settings.sweep_interval_seconds)

  async def cog_load(self):
    self.sweepLoop.start()

  async def cog_unload(self):
    self.sweepLoop.cancel()

  @tasks.loop(seconds=60)
  async def sweepLoop(self):
    try:
      self.lastReport = await asyncio.to_thread(sweep_expired_turns, self.bot.Session,
                                                notifier=self.bot.notifier, settings=self.bot.settings)
    except Exception:
      logger.error(traceback.format_exc())

  @sweepLoop.before_loop
  async def beforeSweep(self):
    await self.bot.wait_until_ready()

async def setup(bot: commands.Bot) -> None:
  await bot.add_cog(Deadlines(bot))
