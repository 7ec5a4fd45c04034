import discord
from discord import app_commands, Embed
from discord.ext import commands
import asyncio
import logging
import traceback
from typing import Optional
from engine import activation, autopick, bans, picks
from engine.deadlines import deadlines_for
from engine.errors import DraftError
from engine.repository import get_draft
from models.base import utcnow
from models.draft import RaceDraft
from models.league import League
from models.season import Driver, Race
from models.users import User

logger = logging.getLogger('discord')

class Drafting(commands.Cog):

  def __init__(self, bot):
    self.bot = bot

  async def runEngine(self, operation, *args, **kwargs):
    # engine calls are blocking SQLAlchemy work, keep them off the event loop
    def call():
      with self.bot.Session() as session:
        return operation(session, *args, **kwargs)
    return await asyncio.to_thread(call)

  async def getUserId(self, interaction: discord.Interaction):
    session = await self.bot.get_session()
    user = session.query(User).filter(User.discord_id == str(interaction.user.id)).first()
    session.close()
    if user:
      return user.id
    else:
      return None

  async def getDiscordMention(self, user_id):
    session = await self.bot.get_session()
    user = session.query(User).filter(User.id == user_id).first()
    session.close()
    if user is None:
      return f"user {user_id}"
    if user.discord_id:
      return f"<@{user.discord_id}>"
    return user.username

  async def getRace(self, league_id: int, race_round: Optional[int]):
    """The race of ``race_round``, or the league's earliest open draft."""
    session = await self.bot.get_session()
    league = session.query(League).filter(League.id == league_id).first()
    if league is None:
      session.close()
      return None
    if race_round is None:
      race = session.query(Race)\
        .join(RaceDraft, RaceDraft.race_id == Race.id)\
        .filter(RaceDraft.league_id == league_id)\
        .filter(Race.completed == False)\
        .order_by(Race.round.asc()).first()
    else:
      race = session.query(Race)\
        .filter(Race.season_id == league.season_id)\
        .filter(Race.round == race_round).first()
    session.close()
    return race

  async def getDriver(self, league_id: int, driver_code: str):
    session = await self.bot.get_session()
    league = session.query(League).filter(League.id == league_id).first()
    if league is None:
      session.close()
      return None
    driver = session.query(Driver)\
      .filter(Driver.season_id == league.season_id)\
      .filter(Driver.driver_code == driver_code.strip().upper()).first()
    session.close()
    return driver

  async def replyError(self, interaction: discord.Interaction, message: str):
    if interaction.response.is_done():
      await interaction.followup.send(message, ephemeral=True)
    else:
      await interaction.response.send_message(message, ephemeral=True)

  async def resolveContext(self, interaction: discord.Interaction, league_id: int, race_round: Optional[int]):
    userId = await self.getUserId(interaction)
    if userId is None:
      await self.replyError(interaction, "Your Discord account is not linked to a Pickdriver user.")
      return None, None
    race = await self.getRace(league_id, race_round)
    if race is None:
      await self.replyError(interaction, "No draft found for that race.")
      return None, None
    return userId, race

  async def createPickOrderEmbed(self, league_id: int, race: Race):
    session = await self.bot.get_session()
    draft = get_draft(session, league_id, race.id)
    activePicks = {}
    for pick in picks.get_draft_state(session, league_id, race.id)["picks"]:
      activePicks.setdefault(pick["user_id"], []).append(pick["driver_id"])
    driverCodes = {driver.id: driver.driver_code for driver in session.query(Driver).filter(Driver.season_id == race.season_id).all()}
    pickOrder = list(draft.pick_order)
    currentIndex = draft.current_pick_index
    session.close()

    embed = Embed(title=f"**Pick Order - {race.name}**", description="```")
    usedPicks = {}
    for index, user_id in enumerate(pickOrder):
      mention = (await self.getDiscordMention(user_id))[:20]
      slotPicks = activePicks.get(user_id, [])
      seen = usedPicks.get(user_id, 0)
      usedPicks[user_id] = seen + 1
      pickToShow = "-----"
      if index == currentIndex:
        pickToShow = "!PICK!"
      elif seen < len(slotPicks):
        pickToShow = driverCodes.get(slotPicks[seen], str(slotPicks[seen]))
      embed.description += f"{index + 1:>3d}. {mention:<20s} {pickToShow:>6s}\n"
    embed.description += "```"
    if currentIndex >= len(pickOrder):
      embed.set_footer(text="Draft is complete!")
    return embed

  async def notifyResult(self, interaction: discord.Interaction, result: picks.DraftResult):
    if result.next_user_id is None:
      await interaction.channel.send("Draft is complete!")
      return
    mention = await self.getDiscordMention(result.next_user_id)
    await interaction.channel.send(f"{mention} it is your turn to pick! (pick #{result.current_pick_index + 1})")

  @app_commands.command(name="pick", description="Pick a driver in a race draft")
  @app_commands.describe(league_id="League ID", driver_code="Three letter driver code, e.g. VER", race_round="Race round (defaults to the next open draft)")
  async def make_pick(self, interaction: discord.Interaction, league_id: int, driver_code: str, race_round: Optional[int] = None):
    userId, race = await self.resolveContext(interaction, league_id, race_round)
    if race is None:
      return
    driver = await self.getDriver(league_id, driver_code)
    if driver is None:
      await self.replyError(interaction, f"Driver {driver_code} not found.")
      return
    await interaction.response.send_message(f"Attempting to pick {driver}.")
    message = await interaction.original_response()
    try:
      result = await self.runEngine(picks.make_pick, league_id, race.id, userId, driver.id,
                                    notifier=self.bot.notifier, settings=self.bot.settings)
    except DraftError as e:
      await message.edit(content=f"Unable to pick {driver}: {e.reason}")
      return
    except Exception:
      logger.error(traceback.format_exc())
      await message.edit(content="Something went wrong while making your pick.")
      return
    await message.edit(content=f"{interaction.user.mention} picked **{driver}**!")
    await self.notifyResult(interaction, result)

  @app_commands.command(name="ban", description="Ban the previous pick; the turn goes back to that player")
  @app_commands.describe(league_id="League ID", user="Player whose pick to ban", driver_code="Driver code of the pick to ban", race_round="Race round (defaults to the next open draft)")
  async def ban_pick(self, interaction: discord.Interaction, league_id: int, user: discord.User, driver_code: str, race_round: Optional[int] = None):
    userId, race = await self.resolveContext(interaction, league_id, race_round)
    if race is None:
      return
    session = await self.bot.get_session()
    target = session.query(User).filter(User.discord_id == str(user.id)).first()
    session.close()
    if target is None:
      await self.replyError(interaction, f"{user.display_name} is not a Pickdriver user.")
      return
    driver = await self.getDriver(league_id, driver_code)
    if driver is None:
      await self.replyError(interaction, f"Driver {driver_code} not found.")
      return
    await interaction.response.defer()
    try:
      result = await self.runEngine(bans.ban_pick, league_id, race.id, userId, target.id, driver.id,
                                    notifier=self.bot.notifier, settings=self.bot.settings)
    except DraftError as e:
      await interaction.followup.send(f"Unable to ban: {e.reason}")
      return
    except Exception:
      logger.error(traceback.format_exc())
      await interaction.followup.send("Something went wrong while banning that pick.")
      return
    await interaction.followup.send(f"{interaction.user.mention} banned **{driver}** from {user.mention}.")
    await self.notifyResult(interaction, result)

  @app_commands.command(name="pickorder", description="Show the pick order of a race draft")
  async def pick_order(self, interaction: discord.Interaction, league_id: int, race_round: Optional[int] = None):
    await interaction.response.defer()
    race = await self.getRace(league_id, race_round)
    if race is None:
      await interaction.followup.send("No draft found for that race.")
      return
    try:
      embed = await self.createPickOrderEmbed(league_id, race)
    except DraftError as e:
      await interaction.followup.send(e.reason)
      return
    await interaction.followup.send(embed=embed)

  @app_commands.command(name="deadlines", description="Show the pick deadlines of a race draft")
  async def deadlines(self, interaction: discord.Interaction, league_id: int, race_round: Optional[int] = None):
    race = await self.getRace(league_id, race_round)
    if race is None:
      await self.replyError(interaction, "No draft found for that race.")
      return
    raceDeadlines = deadlines_for(race, league_id, self.bot.settings)
    if raceDeadlines is None:
      await interaction.response.send_message(f"The schedule for {race.name} is not available yet.")
      return
    embed = Embed(title=f"**Deadlines - {race.name}**")
    embed.add_field(name="First half", value=f"{raceDeadlines.first_half_deadline:%a %d %b %H:%M} UTC", inline=False)
    embed.add_field(name="Second half", value=f"{raceDeadlines.second_half_deadline:%a %d %b %H:%M} UTC", inline=False)
    if raceDeadlines.second_half_deadline < utcnow():
      embed.set_footer(text="Draft closed")
    await interaction.response.send_message(embed=embed)

  @app_commands.command(name="autopick", description="Set your autopick list, e.g. VER,NOR,LEC")
  async def set_autopick(self, interaction: discord.Interaction, league_id: int, driver_codes: str):
    userId = await self.getUserId(interaction)
    if userId is None:
      await self.replyError(interaction, "Your Discord account is not linked to a Pickdriver user.")
      return
    driverIds = []
    for code in [code for code in driver_codes.split(",") if code.strip()]:
      driver = await self.getDriver(league_id, code)
      if driver is None:
        await self.replyError(interaction, f"Driver {code.strip()} not found.")
        return
      driverIds.append(driver.id)
    try:
      await self.runEngine(autopick.upsert_autopick_preference, league_id, userId, driverIds)
    except DraftError as e:
      await self.replyError(interaction, e.reason)
      return
    await interaction.response.send_message(f"Autopick list saved ({len(driverIds)} drivers).", ephemeral=True)

  @app_commands.command(name="startdraft", description="Start the league's draft (league owner only)")
  async def start_draft(self, interaction: discord.Interaction, league_id: int):
    userId = await self.getUserId(interaction)
    if userId is None:
      await self.replyError(interaction, "Your Discord account is not linked to a Pickdriver user.")
      return
    await interaction.response.send_message("Starting draft...")
    message = await interaction.original_response()
    try:
      drafts = await self.runEngine(activation.activate_draft, league_id, userId, notifier=self.bot.notifier)
    except DraftError as e:
      await message.edit(content=f"Unable to start draft: {e.reason}")
      return
    mention = await self.getDiscordMention(drafts[0].pick_order[0])
    await message.edit(content=f"Draft started for {len(drafts)} races! {mention} has the first pick.")

async def setup(bot: commands.Bot) -> None:
  cog = Drafting(bot)
  guild = await bot.fetch_guild(int(bot.settings.guild_id))
  assert guild is not None

  await bot.add_cog(
    cog,
    guilds=[guild]
  )
