"""
Tests for the chat commands and background checks.

Discord objects are replaced with small fakes; only the calls the
commands make on them are recorded.
"""
import asyncio
import logging
import random
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

import config
from bot import RaceCommands
from models.weekly import Weekly
from services import display, storage
from services.challenge_manager import ChallengeManager
from services.weekly_manager import WeeklyManager


def fake_channel(name):
    return SimpleNamespace(name=name, send=AsyncMock())


@pytest.fixture
def spoiler_channel():
    return fake_channel(config.WEEKLY_SPOILER_CHANNEL)


@pytest.fixture
def ctx(spoiler_channel):
    guild = SimpleNamespace(name="Mana Club", text_channels=[spoiler_channel], roles=[])
    return SimpleNamespace(
        guild=guild,
        author=SimpleNamespace(display_name='bob', mention='<@42>'),
        channel=fake_channel("general"),
        message=SimpleNamespace(add_reaction=AsyncMock(), delete=AsyncMock(), attachments=[]),
        send=AsyncMock(),
    )


@pytest.fixture
def cog(factory, schema, data_dir):
    weekly_manager = WeeklyManager(Weekly(week_number=30, preset_name="Weekly 30"), factory)
    weekly_manager.grant_role = AsyncMock(return_value=True)
    bot = SimpleNamespace(
        schema=schema,
        race_factory=factory,
        weekly_manager=weekly_manager,
        challenge_manager=ChallengeManager(factory),
        rng=random.Random(5),
        guilds=[],
    )
    return RaceCommands(bot)


def sent(mock):
    return [call.args[0] if call.args else call.kwargs.get('content') for call in mock.await_args_list]


def reactions(ctx):
    return [call.args[0] for call in ctx.message.add_reaction.await_args_list]


class TestForfeit:
    """Forfeiting is announced next to the spoiler leaderboard."""

    def test_forfeit_posts_to_spoiler_channel(self, cog, ctx, spoiler_channel):
        asyncio.run(RaceCommands.forfeit.callback(cog, ctx))

        first, second = spoiler_channel.send.await_args_list
        assert first.kwargs == {'content': "<@42> forfeited the weekly!"}
        assert second.kwargs['embed'].title == "Leaderboard"
        assert storage.load_weekly().leaderboard == {'bob': None}
        cog.bot.weekly_manager.grant_role.assert_awaited_once_with(ctx.guild, ctx.author, config.WEEKLY_FORFEITED_ROLE)
        assert reactions(ctx) == [config.VALID_COMMAND_EMOJI]

    def test_forfeit_cooldown(self):
        cooldown = RaceCommands.forfeit.cooldown
        assert (cooldown.rate, cooldown.per) == (5, 600)

    def test_completed_after_forfeit_is_rejected(self, cog, ctx):
        cog.bot.weekly_manager.record_forfeit('bob')
        asyncio.run(RaceCommands.completed.callback(cog, ctx, "1:00:00"))

        assert sent(ctx.send) == ["<@42> already forfeited the weekly."]
        assert cog.bot.weekly_manager.weekly.leaderboard == {'bob': None}
        assert reactions(ctx) == [config.INVALID_COMMAND_EMOJI]

    def test_completed(self, cog, ctx, spoiler_channel):
        asyncio.run(RaceCommands.completed.callback(cog, ctx, "1:02:03"))

        assert cog.bot.weekly_manager.weekly.leaderboard == {'bob': timedelta(hours=1, minutes=2, seconds=3)}
        assert sent(ctx.send) == ["Adding <@42> to the leaderboard!"]
        assert len(spoiler_channel.send.await_args_list) == 2


class TestRaceCommand:
    """The race command accepts preset names and options strings."""

    def test_options_string(self, cog, ctx):
        asyncio.run(RaceCommands.race.callback(cog, ctx, preset_name="version=1.23 mode=open opGoal=mtr"))

        embed = ctx.send.await_args_list[0].kwargs['embed']
        assert "Custom Options" in [f.name for f in embed.fields]
        assert reactions(ctx) == [config.VALID_COMMAND_EMOJI]

    def test_malformed_options_string(self, cog, ctx):
        asyncio.run(RaceCommands.race.callback(cog, ctx, preset_name="mode=open broken"))
        assert sent(ctx.send) == ["'broken' is not formatted correctly. Format must be 'key=value'."]
        assert reactions(ctx) == [config.INVALID_COMMAND_EMOJI]


class TestChallengeCommands:
    """Challenge races and the challenge browser."""

    def test_named_challenge(self, cog, ctx):
        asyncio.run(RaceCommands.challenge.callback(cog, ctx, "owls"))
        embed = ctx.send.await_args_list[0].kwargs['embed']
        assert embed.fields[0].name == "Oops! All Owls"

    def test_unknown_challenge(self, cog, ctx):
        asyncio.run(RaceCommands.challenge.callback(cog, ctx, "nope"))
        assert sent(ctx.send) == ["Invalid preset nope. Type !challenges for a list of all challenge presets."]
        assert reactions(ctx) == [config.INVALID_COMMAND_EMOJI]

    def test_challenges_sends_flip_book(self, cog, ctx):
        asyncio.run(RaceCommands.challenges.callback(cog, ctx))
        kwargs = ctx.send.await_args.kwargs
        assert isinstance(kwargs['view'], display.PresetFlipBook)
        assert kwargs['embed'].footer.text == "gift (1/2)"


class TestSpoilerCommand:
    """Organizers fixing the weekly roles by hand."""

    def test_unrecognized_option(self, cog, ctx):
        asyncio.run(RaceCommands.spoiler.callback(cog, ctx, '--grant', '@bob'))
        assert sent(ctx.send) == ["Unrecognized option '--grant'"]
        assert reactions(ctx) == [config.INVALID_COMMAND_EMOJI]
        cog.bot.weekly_manager.grant_role.assert_not_awaited()

    def test_spoiler_cooldown(self):
        cooldown = RaceCommands.spoiler.cooldown
        assert (cooldown.rate, cooldown.per) == (15, 900)


class TestBackgroundChecks:
    """A failing reset is logged and doesn't stop the loop."""

    def test_weekly_reset_error_is_logged(self, cog, caplog):
        cog.bot.weekly_manager.needs_reset = lambda: True
        cog.reset_weekly = AsyncMock(side_effect=OSError("No space left on device"))

        with caplog.at_level(logging.ERROR):
            asyncio.run(cog.check_weekly_reset())

        assert "Weekly reset failed: No space left on device" in caplog.text

    def test_weekly_reset_when_due(self, cog):
        cog.bot.weekly_manager.needs_reset = lambda: True
        cog.reset_weekly = AsyncMock()
        asyncio.run(cog.check_weekly_reset())
        cog.reset_weekly.assert_awaited_once()

    def test_challenge_reset_posts_to_challenge_channel(self, cog):
        channel = fake_channel(config.CHALLENGE_CHANNEL)
        cog.bot.guilds = [SimpleNamespace(name="Mana Club", text_channels=[channel])]

        asyncio.run(cog.check_challenge_reset())

        diagnostics, race = channel.send.await_args_list
        assert "Options are race-safe." in diagnostics.kwargs['content']
        assert race.kwargs['embed'].title == "Monthly Challenge"
        assert storage.load_challenge_timestamp() is not None

    def test_challenge_reset_error_is_logged(self, cog, caplog):
        cog.reset_challenge = AsyncMock(side_effect=OSError("Read-only file system"))

        with caplog.at_level(logging.ERROR):
            asyncio.run(cog.check_challenge_reset())

        assert "Challenge reset failed: Read-only file system" in caplog.text
