import discord
from discord.ext import commands
import asyncio
import logging
import logging.handlers
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from config import load_settings
from models.base import Base
from models.users import User

logger = logging.getLogger('discord')


class DiscordNotifier:
    """Sends the "your turn" DM through the bot.

    Engine code runs in worker threads, so the user is looked up there and
    only the send is scheduled on the bot's event loop.
    """

    def __init__(self, bot, timeout: float = 10.0):
        self.bot = bot
        self.timeout = timeout

    def notify_turn(self, user_id, league_id, race_id, draft_id, pick_index):
        with self.bot.Session() as session:
            user = session.query(User).filter(User.id == user_id).first()
            discordId = user.discord_id if user else None
        if discordId is None:
            logger.info(f"User {user_id} has no linked Discord account, skipping turn message")
            return
        future = asyncio.run_coroutine_threadsafe(
            self.sendTurnMessage(discordId, league_id, race_id, pick_index), self.bot.loop)
        future.result(timeout=self.timeout)

    async def sendTurnMessage(self, discord_id, league_id, race_id, pick_index):
        discordUser = await self.bot.fetch_user(int(discord_id))
        embed = discord.Embed(title="Your turn to pick!",
                              description=f"League {league_id}, race {race_id}: pick #{pick_index + 1} is yours.\nUse `/pick` to make your selection.")
        await discordUser.send(embed=embed)


class PickDriverBot(commands.Bot):

    def __init__(self, settings=None):
        self.settings = settings or load_settings()
        super().__init__(command_prefix="/",
                         intents=discord.Intents.default(),
                         application_id=self.settings.discord_application_id)

        self.engine = create_engine(url=self.settings.database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)
        self.notifier = DiscordNotifier(self)

    async def get_session(self):
        return self.Session()

    async def setup_hook(self):
        await self.load_extension("cogs.drafting")
        await self.load_extension("cogs.deadlines")
        await self.tree.sync(guild=discord.Object(id=self.settings.guild_id))

    async def on_ready(self):
        logger.info("The bot is alive!")

        await self.change_presence(activity=discord.Activity(
            type=discord.ActivityType.competing, name="Pickdriver"))

        logger.info("Bot startup complete!")


def setupLogging():
    handler = logging.handlers.RotatingFileHandler(
        filename='pickdriver.log',
        encoding='utf-8',
        maxBytes=32 * 1024 * 1024,  # 32 MiB
        backupCount=5,
    )
    formatter = logging.Formatter('[{asctime}] [{levelname:<8}] {name}: {message}', '%Y-%m-%d %H:%M:%S', style='{')
    handler.setFormatter(formatter)
    for name in ('discord', 'pickdriver'):
        log = logging.getLogger(name)
        log.setLevel(logging.INFO)
        log.addHandler(handler)


if __name__ == "__main__":
    setupLogging()
    bot = PickDriverBot()
    bot.run(bot.settings.discord_bot_token, log_handler=None)
