"""
Configuration settings for MaraBot.
Centralized location for all constants and settings.
"""
import re
from datetime import datetime, timedelta, timezone

# Discord Bot Settings
COMMAND_PREFIX = "!"
WEEKLY_CHANNEL = "weekly-race"
WEEKLY_SPOILER_CHANNEL = "weekly-spoilers"
WEEKLY_COMPLETED_ROLE = "Weekly Completed"
WEEKLY_FORFEITED_ROLE = "Weekly Forfeited"
CHALLENGE_CHANNEL = "monthly-challenge"
ORGANIZER_ROLES = ("bot overlord", "organizes races")
BOT_AUTHOR = "MaraBot"

# Command reactions
VALID_COMMAND_EMOJI = "✅"
INVALID_COMMAND_EMOJI = "🚫"
RANKING_EMOJIS = (":first_place:", ":second_place:", ":third_place:")

# Randomizer Settings
RANDOMIZER_VERSION = "1.23"
DEFAULT_AUTHOR = "Anonymous"
DEFAULT_MODE = "rando"

# Version values look like "1.23"
VERSION_PATTERN = re.compile(r'^\d\.\d\d$')

# Validation message prefixes
VALIDATION_ERROR_PREFIX = ":red_square:"
VALIDATION_INFO_PREFIX = ":information_source:"
VALIDATION_GOOD_PREFIX = ":white_check_mark:"

# Mystery settings draw a number in [1, MYSTERY_ROLL_MAX]
MYSTERY_ROLL_MAX = 100

# Weekly Settings
FIRST_WEEK = datetime(2021, 8, 13, 18, 0, 0, tzinfo=timezone.utc)
WEEKLY_DURATION = timedelta(days=7)
WEEKLY_CHECK_INTERVAL_MINUTES = 60

# Challenge Settings
# The challenge changes when the calendar month (UTC) changes
CHALLENGE_CHECK_INTERVAL_MINUTES = 60
CHALLENGE_PAGE_TIMEOUT_SECONDS = 600

# Embed layout
MIN_OPTIONS_PER_COLUMN = 4
MAX_OPTION_COLUMNS = 3

# Files
OPTIONS_FILENAME = "options.json"
MYSTERY_SETTINGS_FILENAME = "mystery.json"
WEEKLY_FILENAME = "weekly.json"
CHALLENGE_STAMP_FILENAME = "challenge.stamp"

# Folders searched in order; environment overrides are checked first
CONFIG_FOLDERS = ("config", "~/marabot/config", "~/marabot")
PRESET_FOLDERS = ("presets", "~/marabot/presets")
CHALLENGE_FOLDERS = ("challenges", "~/marabot/challenges")
DATA_FOLDER = "~/marabot"
CONFIG_DIR_ENV = "MARABOT_CONFIG_DIR"
PRESETS_DIR_ENV = "MARABOT_PRESETS_DIR"
CHALLENGES_DIR_ENV = "MARABOT_CHALLENGES_DIR"
DATA_DIR_ENV = "MARABOT_DATA_DIR"
