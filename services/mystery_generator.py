"""
Mystery race generation.
Builds a random options string from weighted mystery settings, honoring the
requirements settings have on each other.
"""
import heapq
import logging
import random
import re
from typing import Dict, List, Mapping, Optional, Tuple

import config
from models.mystery_setting import MysterySetting
from services.options_codec import format_option

logger = logging.getLogger(__name__)


def _references(requirement: str, key: str) -> bool:
    """Check if a requirement mentions an option key as a whole word."""
    return re.search(rf'(?<!\w){re.escape(key)}(?!\w)', requirement) is not None


def order_settings(settings: Mapping[str, MysterySetting]) -> List[MysterySetting]:
    """
    Order settings so each one comes after the settings its requirement refers to.

    Unconditional settings come first, sorted by key. The rest follow in
    topological order, ties broken by key. Settings whose requirements form
    a cycle can't be ordered and are appended at the end; their requirements
    then simply fail to match.
    """
    dependencies: Dict[str, List[str]] = {key: [] for key in settings}
    dependents: Dict[str, List[str]] = {key: [] for key in settings}

    for key, setting in settings.items():
        if not setting.requirement:
            continue
        for other in settings:
            if other != key and _references(setting.requirement, other):
                dependencies[key].append(other)
                dependents[other].append(key)

    def priority(key: str) -> Tuple[bool, str]:
        return bool(settings[key].requirement), key

    remaining = {key: len(deps) for key, deps in dependencies.items()}
    ready = [priority(key) for key, count in remaining.items() if count == 0]
    heapq.heapify(ready)

    ordered: List[str] = []
    while ready:
        _, key = heapq.heappop(ready)
        ordered.append(key)
        for dependent in dependents[key]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, priority(dependent))

    if len(ordered) < len(settings):
        cyclic = sorted((key for key in settings if key not in set(ordered)), key=priority)
        logger.warning(f'Mystery settings with circular requirements: {", ".join(cyclic)}')
        ordered.extend(cyclic)

    return [settings[key] for key in ordered]


class MysteryGenerator:
    """Generates mystery options strings from a fixed set of settings."""

    def __init__(self, settings: Mapping[str, MysterySetting]):
        self.settings = dict(settings)
        self.ordered_settings = order_settings(self.settings)

    def generate(self, rng: Optional[random.Random] = None) -> str:
        """
        Generate a raw options string.

        Args:
            rng: Random source; a fresh unseeded one is used when omitted

        Returns:
            Options string such as 'mode=open opGoal=mtr'
        """
        rng = rng or random.Random()
        tokens: List[str] = []

        for setting in self.ordered_settings:
            options_string = " ".join(tokens)
            if not setting.is_eligible(options_string):
                logger.debug(f'Skipping {setting.key}: requirement {setting.requirement!r} not met')
                continue

            roll = rng.randint(1, config.MYSTERY_ROLL_MAX)
            value = setting.choose(roll)
            if value is None:
                logger.debug(f'Rolled {roll} for {setting.key}, no value chosen')
                continue

            logger.debug(f'Rolled {roll} for {setting.key}: {value}')
            tokens.append(format_option(setting.key, value))

        return " ".join(tokens)


def generate_mystery(settings: Mapping[str, MysterySetting], rng: Optional[random.Random] = None) -> str:
    """Generate a mystery options string from settings."""
    return MysteryGenerator(settings).generate(rng)
