"""
Monthly challenge service.
Decides when the challenge changes and rolls the next one.
"""
import logging
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from models.preset import Preset
from services import storage
from services.race_factory import Race, RaceFactory
from services.weekly_utils import next_challenge_reset, should_reset_challenge

logger = logging.getLogger(__name__)


class ChallengeManager:
    """Rolls a challenge race once per calendar month."""

    def __init__(self, race_factory: RaceFactory):
        self.race_factory = race_factory

    @property
    def challenges(self) -> List[Tuple[str, Preset]]:
        """Challenges sorted by name."""
        return sorted(self.race_factory.challenges.items())

    def needs_reset(self, now: Optional[datetime] = None) -> bool:
        """Check if no challenge was rolled yet this month."""
        if not self.race_factory.challenges:
            return False
        timestamp = storage.load_challenge_timestamp()
        return timestamp is None or should_reset_challenge(timestamp, now)

    def time_remaining(self, now: Optional[datetime] = None) -> timedelta:
        """Time until the next challenge, zero if one is due."""
        now = now or datetime.now(timezone.utc)
        timestamp = storage.load_challenge_timestamp()
        if timestamp is None:
            return timedelta(0)
        return max(next_challenge_reset(timestamp) - now, timedelta(0))

    def reset(self, now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> Race:
        """
        Roll a new challenge race and remember when it was rolled.

        Raises:
            KeyError: If there are no challenges
        """
        race = self.race_factory.challenge_race(rng=rng)
        storage.store_challenge_timestamp(now)
        logger.info(f'Challenge reset: {race.preset.name}, seed {race.seed}')
        return race
