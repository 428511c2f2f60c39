"""
Weekly race helpers.
Week and month numbering, randomizer seeds, weighted preset choice and
race times.
"""
import random
import re
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional

import config
from models.preset import Preset

RACE_TIME_PATTERN = re.compile(r'^(\d+):([0-5]\d):([0-5]\d)$')


def get_week_number(now: Optional[datetime] = None) -> int:
    """Return the current week number. Week zero started on 2021-08-13."""
    now = now or datetime.now(timezone.utc)
    return (now - config.FIRST_WEEK) // config.WEEKLY_DURATION


def get_week_start(week_number: int) -> datetime:
    """Return when a week starts."""
    return config.FIRST_WEEK + config.WEEKLY_DURATION * week_number


def remaining_weekly_duration(week_number: int, now: Optional[datetime] = None) -> timedelta:
    """Return the time left until the given week ends, zero once it has."""
    now = now or datetime.now(timezone.utc)
    remaining = get_week_start(week_number) + config.WEEKLY_DURATION - now
    return max(remaining, timedelta(0))


def should_reset_challenge(timestamp: datetime, now: Optional[datetime] = None) -> bool:
    """Check if the challenge rolled at timestamp belongs to an earlier month."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    timestamp = timestamp.astimezone(timezone.utc)
    return (timestamp.year, timestamp.month) != (now.year, now.month)


def next_challenge_reset(timestamp: datetime) -> datetime:
    """Return the start of the month after timestamp (UTC)."""
    timestamp = timestamp.astimezone(timezone.utc)
    year, month = divmod(timestamp.year * 12 + timestamp.month, 12)
    return datetime(year, month + 1, 1, tzinfo=timezone.utc)


def random_seed(rng: Optional[random.Random] = None) -> str:
    """Return a randomizer seed: 16 hexadecimal characters."""
    rng = rng or random.Random()
    return f"{rng.getrandbits(64):016X}"


def choose_weighted_preset(presets: Mapping[str, Preset], rng: Optional[random.Random] = None) -> Optional[str]:
    """
    Choose a preset name, weighted by each preset's weight.

    Returns:
        A preset name, or None if no preset has a positive weight
    """
    rng = rng or random.Random()
    weighted = [(name, preset.weight) for name, preset in presets.items() if preset.weight > 0]
    total = sum(weight for _, weight in weighted)
    if total == 0:
        return None

    index = rng.randrange(total)
    cumulative = 0
    for name, weight in weighted:
        cumulative += weight
        if cumulative > index:
            return name
    return None


def parse_race_time(text: str) -> timedelta:
    """
    Parse a race time formatted as H:MM:SS.

    Raises:
        ValueError: If the time is not formatted correctly
    """
    match = RACE_TIME_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"'{text}' is not a valid time. Format must be 'H:MM:SS'.")
    hours, minutes, seconds = (int(group) for group in match.groups())
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def format_race_time(time: Optional[timedelta]) -> str:
    """Format a race time as H:MM:SS, or DNF for a forfeit."""
    if time is None:
        return "DNF"
    total = int(time.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def integer_to_ordinal(number: int) -> str:
    """Return 1st, 2nd, 3rd, 4th, ... 11th, 12th, 13th, 21st, ..."""
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"
