"""
Discord message formatting.
Builds the embeds shown for races, presets and the weekly leaderboard, and
the page view used to browse challenges.
"""
import math
from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence, Tuple

import discord

import config
from models.option import Category, GameMode, OptionSchema
from models.preset import Preset
from models.weekly import Weekly
from services.options_codec import format_options_string
from services.weekly_utils import format_race_time, integer_to_ordinal, remaining_weekly_duration

# Discord rejects empty field values
EMPTY = "\u200b"


def block_code(text: str) -> str:
    return f"```\n{text}\n```"


def add_option_columns(embed: discord.Embed, title: str, options: Mapping[str, str]) -> discord.Embed:
    """Add options as up to three inline columns, padded to a full row."""
    column_count = min(math.ceil(len(options) / config.MIN_OPTIONS_PER_COLUMN), config.MAX_OPTION_COLUMNS)
    per_column = math.ceil(len(options) / column_count)

    lines = [f"{name}: _{value}_" for name, value in options.items()]
    columns = ["\n".join(lines[i:i + per_column]) for i in range(0, len(lines), per_column)]

    embed.add_field(name=title, value=columns[0], inline=True)
    for column in columns[1:]:
        embed.add_field(name=EMPTY, value=column, inline=True)
    for _ in range(len(columns), config.MAX_OPTION_COLUMNS):
        embed.add_field(name=EMPTY, value=EMPTY, inline=True)

    return embed


def add_options(embed: discord.Embed, preset: Preset, schema: OptionSchema) -> discord.Embed:
    """Add the mode, version and grouped options of a preset."""
    mode = schema.mode_of(preset.options)
    embed.add_field(name=Category.MODE.pretty_name, value=mode.pretty_name, inline=False)

    if mode is GameMode.OPEN and 'opGoal' in preset.options and 'opGoal' in schema:
        embed.add_field(name="Goal", value=schema['opGoal'].label(preset.options['opGoal']), inline=False)

    embed.add_field(name="Version", value=preset.version or "n/a", inline=False)

    partitioned = schema.partition(preset.options)
    if partitioned.general:
        add_option_columns(embed, f"{Category.GENERAL.pretty_name} Options", partitioned.general)
    if partitioned.mode:
        add_option_columns(embed, f"{mode.pretty_name} Options", partitioned.mode)
    if partitioned.other:
        add_option_columns(embed, f"{Category.OTHER.pretty_name} Options", partitioned.other)

    return embed


def race_embed(
    preset: Preset,
    seed: str,
    schema: OptionSchema,
    validation_hash: Optional[str] = None,
    timestamp=None,
    title: str = "Requested Seed"
) -> discord.Embed:
    """Displays race settings."""
    embed = discord.Embed(title=title, color=discord.Color.red(), timestamp=timestamp)
    embed.set_footer(text="Generated")

    if preset.name:
        embed.add_field(name=preset.name, value=preset.description or EMPTY, inline=False)

    embed.add_field(name="Author", value=preset.author, inline=False)
    add_options(embed, preset, schema)
    embed.add_field(name="Seed", value=block_code(seed), inline=False)

    if validation_hash:
        embed.add_field(name="Validation Hash", value=block_code(validation_hash), inline=False)

    embed.add_field(name="Raw Options", value=block_code(format_options_string(preset.options) or EMPTY), inline=False)
    return embed


def format_time_remaining(remaining: timedelta) -> str:
    """Format a countdown as '2d 5h 17m'."""
    minutes = int(remaining.total_seconds()) // 60
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    return f"{days}d {hours}h {minutes}m"


def weekly_embed(weekly: Weekly, schema: OptionSchema, now: Optional[datetime] = None) -> discord.Embed:
    """Displays the weekly race and how long it stays open."""
    embed = race_embed(
        weekly.preset,
        weekly.seed,
        schema,
        timestamp=weekly.timestamp,
        title=f"Weekly #{weekly.week_number}"
    )
    remaining = remaining_weekly_duration(weekly.week_number, now)
    embed.add_field(name="Time Remaining", value=format_time_remaining(remaining), inline=False)
    return embed


def preset_embed(preset: Preset, schema: OptionSchema) -> discord.Embed:
    """Displays a preset's information."""
    embed = discord.Embed(title="Preset Information", color=discord.Color.green())
    embed.add_field(name="Preset", value=preset.name or EMPTY, inline=False)
    embed.add_field(name="Description", value=preset.description or EMPTY, inline=False)
    embed.add_field(name="Author", value=preset.author, inline=False)
    return add_options(embed, preset, schema)


def presets_embed(presets: Mapping[str, Preset]) -> discord.Embed:
    """Displays available presets."""
    embed = discord.Embed(title="Available Presets", color=discord.Color.green())
    keys = "\n".join(f"**{key}**" for key in presets) or EMPTY
    names = "\n".join(preset.name or EMPTY for preset in presets.values()) or EMPTY
    descriptions = "\n".join(preset.description or EMPTY for preset in presets.values()) or EMPTY

    embed.add_field(name="Key", value=keys, inline=True)
    embed.add_field(name="Name", value=names, inline=True)
    embed.add_field(name="Description", value=descriptions, inline=True)
    return embed


class PresetFlipBook(discord.ui.View):
    """Pages through presets, one preset embed per page."""

    def __init__(
        self,
        presets: Sequence[Tuple[str, Preset]],
        schema: OptionSchema,
        timeout: float = config.CHALLENGE_PAGE_TIMEOUT_SECONDS
    ):
        super().__init__(timeout=timeout)
        self.presets = list(presets)
        self.schema = schema
        self.index = 0
        self._update_buttons()

    def current_embed(self) -> discord.Embed:
        key, preset = self.presets[self.index]
        embed = preset_embed(preset, self.schema)
        embed.set_footer(text=f"{key} ({self.index + 1}/{len(self.presets)})")
        return embed

    def go_to(self, index: int) -> discord.Embed:
        """Move to a page, staying within the first and last page."""
        self.index = max(0, min(index, len(self.presets) - 1))
        self._update_buttons()
        return self.current_embed()

    def _update_buttons(self) -> None:
        at_start = self.index == 0
        at_end = self.index >= len(self.presets) - 1
        self.first_page.disabled = at_start
        self.previous_page.disabled = at_start
        self.next_page.disabled = at_end
        self.last_page.disabled = at_end

    async def _show(self, interaction: discord.Interaction, index: int) -> None:
        await interaction.response.edit_message(embed=self.go_to(index), view=self)

    @discord.ui.button(label="<<", style=discord.ButtonStyle.secondary)
    async def first_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._show(interaction, 0)

    @discord.ui.button(label="<", style=discord.ButtonStyle.primary)
    async def previous_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._show(interaction, self.index - 1)

    @discord.ui.button(label=">", style=discord.ButtonStyle.primary)
    async def next_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._show(interaction, self.index + 1)

    @discord.ui.button(label=">>", style=discord.ButtonStyle.secondary)
    async def last_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._show(interaction, len(self.presets) - 1)


def leaderboard_embed(weekly: Weekly, prevent_spoilers: bool) -> discord.Embed:
    """
    Displays the leaderboard for a weekly.

    With prevent_spoilers the entries keep the order they were added in, the
    ranks are left out and the times are hidden behind a spoiler tag.
    """
    embed = discord.Embed(title="Leaderboard", color=discord.Color.gold())
    title = f"Week #{weekly.week_number}"
    if weekly.preset_name:
        title += f" - {weekly.preset_name}"
    embed.add_field(name="Weekly Seed", value=title, inline=False)

    if not weekly.leaderboard:
        embed.add_field(name="User", value="No times recorded yet!", inline=False)
        return embed

    if prevent_spoilers:
        users = "\n".join(weekly.leaderboard)
        times = "\n".join(format_race_time(time) for time in weekly.leaderboard.values())
        embed.add_field(name="User", value=users, inline=True)
        embed.add_field(name="Time", value=f"||{times}||", inline=True)
        return embed

    entries = weekly.ranked_entries()
    ranks = "\n".join(_rank_label(entry.rank) for entry in entries)
    users = "\n".join(entry.username for entry in entries)
    times = "\n".join(format_race_time(entry.time) for entry in entries)

    embed.add_field(name=EMPTY, value=ranks, inline=True)
    embed.add_field(name="User", value=users, inline=True)
    embed.add_field(name="Time", value=times, inline=True)
    return embed


def _rank_label(rank: int) -> str:
    if rank <= len(config.RANKING_EMOJIS):
        return config.RANKING_EMOJIS[rank - 1]
    return integer_to_ordinal(rank)

