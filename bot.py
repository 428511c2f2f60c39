import json
import logging
import os
import random
from typing import Optional

import discord
from discord.ext import commands, tasks
from dotenv import load_dotenv

import config
from models.diagnostic import render_diagnostics
from models.option import SchemaError
from models.preset import Preset
from models.weekly import Weekly
from services import display, storage
from services.challenge_manager import ChallengeManager
from services.options_codec import FormatError, parse_options_string
from services.race_factory import Race, RaceFactory
from services.weekly_manager import WeeklyManager, parse_spoiler_args
from services.weekly_utils import parse_race_time

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Configuration
DISCORD_TOKEN = os.getenv('DISCORD_TOKEN')


class MaraBot(commands.Bot):
    """Discord bot for randomizer races, monthly challenges and the weekly mystery race."""

    def __init__(self):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.members = True

        super().__init__(command_prefix=config.COMMAND_PREFIX, intents=intents)

        # Load configuration and services
        self.schema = storage.load_option_schema()
        presets = storage.load_presets()
        self.race_factory = RaceFactory(self.schema, presets, storage.load_mystery(), storage.load_challenges())
        self.weekly_manager = WeeklyManager(storage.load_weekly(presets), self.race_factory)
        self.challenge_manager = ChallengeManager(self.race_factory)
        self.rng = random.SystemRandom()

    async def setup_hook(self):
        """Called when the bot is starting up."""
        await self.add_cog(RaceCommands(self))

    async def on_ready(self):
        """Called when bot is fully logged in and ready."""
        logger.info(f'{self.user} has connected to Discord!')
        logger.info(f'Bot is in {len(self.guilds)} guild(s)')


async def react(ctx: commands.Context, success: bool) -> None:
    """Add a success or fail reaction. Skipped in DMs, the reply is enough there."""
    if ctx.guild is None:
        return
    try:
        await ctx.message.add_reaction(config.VALID_COMMAND_EMOJI if success else config.INVALID_COMMAND_EMOJI)
    except discord.Forbidden:
        logger.warning('Bot lacks permission to add reactions')
    except discord.HTTPException as e:
        logger.warning(f'Error adding reaction: {e}')


async def send_to_channel(guild: discord.Guild, channel_name: str, **kwargs) -> None:
    """Send a message to a guild channel by name, if it exists."""
    channel = discord.utils.get(guild.text_channels, name=channel_name)
    if not channel:
        logger.warning(f'#{channel_name} channel not found in {guild.name}')
        return
    try:
        await channel.send(**kwargs)
    except discord.Forbidden:
        logger.warning(f'Bot lacks permission to send messages in #{channel_name}')


class RaceCommands(commands.Cog):
    """Race, preset, challenge and weekly commands."""

    def __init__(self, bot: MaraBot):
        self.bot = bot

    async def cog_load(self):
        self.weekly_reset_check.start()
        self.challenge_reset_check.start()

    async def cog_unload(self):
        self.weekly_reset_check.cancel()
        self.challenge_reset_check.cancel()

    @property
    def weekly(self) -> Weekly:
        return self.bot.weekly_manager.weekly

    async def send_race(self, ctx: commands.Context, race: Race) -> None:
        embed = display.race_embed(race.preset, race.seed, self.bot.schema, race.validation_hash, race.timestamp)
        await ctx.send(embed=embed)
        await ctx.send(render_diagnostics(race.diagnostics))

    @commands.command(name='race')
    @commands.cooldown(15, 900, commands.BucketType.user)
    @commands.guild_only()
    async def race(self, ctx: commands.Context, *, preset_name: str):
        """Start a race from a preset, an options string, 'mystery', or 'custom' with a JSON attachment."""
        try:
            if preset_name == 'custom':
                race = await self._custom_race(ctx)
                if race is None:
                    await react(ctx, False)
                    return
            elif preset_name == 'mystery':
                race = self.bot.race_factory.mystery_race(author=ctx.author.display_name, rng=self.bot.rng)
            elif '=' in preset_name:
                race = self.bot.race_factory.options_race(
                    preset_name,
                    author=ctx.author.display_name,
                    name="Custom Options",
                    rng=self.bot.rng
                )
            else:
                race = self.bot.race_factory.preset_race(preset_name, rng=self.bot.rng)
        except (KeyError, FormatError) as e:
            await ctx.send(str(e.args[0]) if e.args else str(e))
            await react(ctx, False)
            return

        await self.send_race(ctx, race)
        await react(ctx, True)

    async def _custom_race(self, ctx: commands.Context) -> Optional[Race]:
        attachments = ctx.message.attachments
        if not attachments:
            await ctx.send("No attachment for custom race. You must supply a valid json file.")
            return None

        attachment = attachments[0]
        if not attachment.filename.lower().endswith('.json'):
            await ctx.send("Invalid json file.")
            return None

        content = (await attachment.read()).decode('utf-8', errors='replace')
        return self.bot.race_factory.custom_race(content, rng=self.bot.rng)

    @commands.command(name='mystery')
    @commands.cooldown(15, 900, commands.BucketType.user)
    @commands.guild_only()
    async def mystery(self, ctx: commands.Context):
        """Start a race with random mystery settings."""
        race = self.bot.race_factory.mystery_race(author=ctx.author.display_name, rng=self.bot.rng)
        await self.send_race(ctx, race)
        await react(ctx, True)

    @commands.command(name='preset')
    async def preset(self, ctx: commands.Context, preset_name: str):
        """Show a preset's options."""
        preset = self.bot.race_factory.presets.get(preset_name)
        if not preset:
            await ctx.send(f"{preset_name} is not a valid preset")
            await react(ctx, False)
            return

        await ctx.send(embed=display.preset_embed(preset, self.bot.schema))
        await react(ctx, True)

    @commands.command(name='presets')
    async def presets(self, ctx: commands.Context):
        """List available presets."""
        await ctx.send(embed=display.presets_embed(self.bot.race_factory.presets))
        await react(ctx, True)

    @commands.command(name='challenge')
    @commands.cooldown(5, 600, commands.BucketType.user)
    @commands.guild_only()
    async def challenge(self, ctx: commands.Context, challenge_name: Optional[str] = None):
        """Start a race from a challenge preset, a random one if no name is given."""
        try:
            race = self.bot.race_factory.challenge_race(challenge_name, rng=self.bot.rng)
        except KeyError as e:
            await ctx.send(str(e.args[0]))
            await react(ctx, False)
            return

        await self.send_race(ctx, race)
        await react(ctx, True)

    @commands.command(name='challenges')
    @commands.cooldown(2, 900, commands.BucketType.channel)
    @commands.guild_only()
    async def challenges(self, ctx: commands.Context):
        """Browse the challenge presets."""
        challenges = self.bot.challenge_manager.challenges
        if not challenges:
            await ctx.send("There are no challenge presets.")
            await react(ctx, False)
            return

        view = display.PresetFlipBook(challenges, self.bot.schema)
        await ctx.send(embed=view.current_embed(), view=view)
        await react(ctx, True)

    @commands.command(name='newpreset')
    @commands.cooldown(5, 600, commands.BucketType.user)
    @commands.dm_only()
    async def newpreset(self, ctx: commands.Context, *, options_string: Optional[str] = None):
        """Build a preset file from an options string and validate it."""
        try:
            options = parse_options_string(options_string)
        except FormatError as e:
            await ctx.send(str(e))
            return

        preset = Preset(
            name="My Preset",
            description="Describe your preset here",
            author=ctx.author.display_name,
            options=options
        )
        diagnostics = self.bot.race_factory.validator.validate(preset.options)

        await ctx.send(display.block_code(json.dumps(preset.to_dict(), indent=2)))
        await ctx.send(render_diagnostics(diagnostics))

    @commands.command(name='weekly')
    async def weekly_race(self, ctx: commands.Context):
        """Show this week's race."""
        weekly = self.weekly
        if not weekly.is_valid or weekly.preset is None:
            await ctx.send("There is no weekly race yet.")
            await react(ctx, False)
            return

        await ctx.send(embed=display.weekly_embed(weekly, self.bot.schema))
        await react(ctx, True)

    @commands.command(name='completed', aliases=['done'])
    @commands.cooldown(2, 900, commands.BucketType.user)
    @commands.guild_only()
    async def completed(self, ctx: commands.Context, time: str):
        """Add your time (H:MM:SS) to the leaderboard."""
        if self.bot.weekly_manager.has_forfeited(ctx.author.display_name):
            await ctx.send(f"{ctx.author.mention} already forfeited the weekly.")
            await react(ctx, False)
            return

        try:
            race_time = parse_race_time(time)
        except ValueError as e:
            await ctx.send(str(e))
            await react(ctx, False)
            return

        # Delete the message so the time doesn't spoil anyone
        try:
            await ctx.message.delete(delay=0.5)
        except discord.Forbidden:
            logger.warning('Bot lacks permission to delete messages')

        self.bot.weekly_manager.record_completion(ctx.author.display_name, race_time)
        await self.bot.weekly_manager.grant_role(ctx.guild, ctx.author, config.WEEKLY_COMPLETED_ROLE)

        message = f"Adding {ctx.author.mention} to the leaderboard!"
        await ctx.send(message)
        await self.post_spoiler_update(ctx.guild, message)

    @commands.command(name='forfeit', aliases=['ff'])
    @commands.cooldown(5, 600, commands.BucketType.user)
    @commands.guild_only()
    async def forfeit(self, ctx: commands.Context):
        """Forfeit the weekly race."""
        self.bot.weekly_manager.record_forfeit(ctx.author.display_name)
        await self.bot.weekly_manager.grant_role(ctx.guild, ctx.author, config.WEEKLY_FORFEITED_ROLE)
        await self.post_spoiler_update(ctx.guild, f"{ctx.author.mention} forfeited the weekly!")
        await react(ctx, True)

    async def post_spoiler_update(self, guild: discord.Guild, message: str) -> None:
        """Announce a leaderboard change in the spoiler channel, with the ranked leaderboard."""
        await send_to_channel(guild, config.WEEKLY_SPOILER_CHANNEL, content=message)
        await send_to_channel(
            guild,
            config.WEEKLY_SPOILER_CHANNEL,
            embed=display.leaderboard_embed(self.weekly, prevent_spoilers=False)
        )

    @commands.command(name='leaderboard')
    async def leaderboard(self, ctx: commands.Context):
        """Show the weekly leaderboard. Times are hidden outside the spoiler channel."""
        prevent_spoilers = getattr(ctx.channel, 'name', None) != config.WEEKLY_SPOILER_CHANNEL
        await ctx.send(embed=display.leaderboard_embed(self.weekly, prevent_spoilers))
        await react(ctx, True)

    @commands.command(name='spoiler')
    @commands.cooldown(15, 900, commands.BucketType.channel)
    @commands.has_any_role(*config.ORGANIZER_ROLES)
    @commands.guild_only()
    async def spoiler(self, ctx: commands.Context, *args: str):
        """
        Grant or revoke the weekly roles by hand.

        --done/--completed <member> grants the completed role,
        --forfeit <member> grants the forfeited role and
        --revoke <member> removes both.
        """
        try:
            changes = parse_spoiler_args(args)
        except ValueError as e:
            await ctx.send(str(e))
            await react(ctx, False)
            return

        # Resolve every member before touching any role
        converter = commands.MemberConverter()
        resolved = []
        for action, member_text in changes:
            try:
                resolved.append((action, await converter.convert(ctx, member_text)))
            except commands.MemberNotFound:
                await ctx.send(f"Member '{member_text}' not found.")
                await react(ctx, False)
                return

        manager = self.bot.weekly_manager
        success = True
        for action, member in resolved:
            if action == 'done':
                success &= await manager.grant_role(ctx.guild, member, config.WEEKLY_COMPLETED_ROLE)
            elif action == 'forfeit':
                success &= await manager.grant_role(ctx.guild, member, config.WEEKLY_FORFEITED_ROLE)
            else:
                success &= await manager.revoke_member_roles(
                    ctx.guild,
                    member,
                    (config.WEEKLY_COMPLETED_ROLE, config.WEEKLY_FORFEITED_ROLE)
                )

        await react(ctx, success)

    @commands.command(name='resetweekly')
    @commands.has_any_role(*config.ORGANIZER_ROLES)
    @commands.guild_only()
    async def resetweekly(self, ctx: commands.Context):
        """Force a new weekly race."""
        await self.reset_weekly()
        await react(ctx, True)

    async def reset_weekly(self) -> None:
        """Post the final leaderboard, roll a new weekly and announce it."""
        previous = self.weekly
        if previous.is_valid and previous.leaderboard:
            for guild in self.bot.guilds:
                await send_to_channel(
                    guild,
                    config.WEEKLY_CHANNEL,
                    embed=display.leaderboard_embed(previous, prevent_spoilers=False)
                )

        weekly = await self.bot.weekly_manager.reset(self.bot.guilds, rng=self.bot.rng)
        if weekly.preset is None:
            return

        embed = display.weekly_embed(weekly, self.bot.schema)
        for guild in self.bot.guilds:
            await send_to_channel(guild, config.WEEKLY_CHANNEL, embed=embed)

    async def reset_challenge(self) -> None:
        """Roll the next challenge and announce it."""
        race = self.bot.challenge_manager.reset(rng=self.bot.rng)
        embed = display.race_embed(
            race.preset,
            race.seed,
            self.bot.schema,
            race.validation_hash,
            race.timestamp,
            title="Monthly Challenge"
        )
        embed.add_field(
            name="Time Remaining",
            value=display.format_time_remaining(self.bot.challenge_manager.time_remaining()),
            inline=False
        )
        for guild in self.bot.guilds:
            await send_to_channel(guild, config.CHALLENGE_CHANNEL, content=render_diagnostics(race.diagnostics))
            await send_to_channel(guild, config.CHALLENGE_CHANNEL, embed=embed)

    async def check_weekly_reset(self) -> None:
        """Reset the weekly if a new week started. Failures are logged and retried next time."""
        try:
            if self.bot.weekly_manager.needs_reset():
                logger.info('New week started, resetting weekly')
                await self.reset_weekly()
        except (OSError, discord.DiscordException) as e:
            logger.error(f'Weekly reset failed: {e}')

    async def check_challenge_reset(self) -> None:
        """Roll a new challenge if the month changed. Failures are logged and retried next time."""
        try:
            if self.bot.challenge_manager.needs_reset():
                logger.info('New month started, resetting challenge')
                await self.reset_challenge()
        except (OSError, discord.DiscordException) as e:
            logger.error(f'Challenge reset failed: {e}')

    @tasks.loop(minutes=config.WEEKLY_CHECK_INTERVAL_MINUTES)
    async def weekly_reset_check(self):
        await self.check_weekly_reset()

    @weekly_reset_check.before_loop
    async def before_weekly_reset_check(self):
        await self.bot.wait_until_ready()

    @tasks.loop(minutes=config.CHALLENGE_CHECK_INTERVAL_MINUTES)
    async def challenge_reset_check(self):
        await self.check_challenge_reset()

    @challenge_reset_check.before_loop
    async def before_challenge_reset_check(self):
        await self.bot.wait_until_ready()

    async def cog_command_error(self, ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.CommandOnCooldown):
            await ctx.send(f"Slow down! Try again in {int(error.retry_after)} seconds.")
        elif isinstance(error, commands.PrivateMessageOnly):
            await ctx.send("This command only works in direct messages.")
        elif isinstance(error, commands.NoPrivateMessage):
            await ctx.send("This command only works in a server.")
        elif isinstance(error, (commands.MissingAnyRole, commands.MissingRequiredArgument)):
            await ctx.send(str(error))
        else:
            logger.error(f'Error in command {ctx.command}: {error}')
            return
        await react(ctx, False)


def main():
    """Main entry point."""
    logging.basicConfig(level=logging.INFO)

    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN environment variable not set!")
        logger.error("Please create a .env file with your Discord bot token.")
        logger.error("See .env.example for the required format.")
        return

    try:
        bot = MaraBot()
    except (FileNotFoundError, SchemaError) as e:
        logger.error(f"Error loading configuration: {e}")
        return

    try:
        bot.run(DISCORD_TOKEN, log_handler=None)
    except discord.LoginFailure:
        logger.error("Invalid Discord token!")
        logger.error("Please check your DISCORD_TOKEN in the .env file.")


if __name__ == "__main__":
    main()
