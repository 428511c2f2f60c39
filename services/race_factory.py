"""
Race creation.
Turns a preset or challenge name, an options string, an uploaded preset or
the mystery settings into a validated race with a fresh seed.
"""
import json
import logging
import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Mapping, Optional

import config
from models.diagnostic import ValidationDiagnostic, has_errors
from models.mystery_setting import MysterySetting
from models.option import OptionSchema
from models.preset import Preset
from services.mystery_generator import MysteryGenerator
from services.options_codec import FormatError, parse_options_string
from services.preset_validator import PresetValidator
from services.storage import preset_from_json
from services.weekly_utils import choose_weighted_preset, random_seed

logger = logging.getLogger(__name__)


@dataclass
class Race:
    """A preset with a seed, ready to be shown to racers."""
    preset: Preset
    seed: str
    diagnostics: List[ValidationDiagnostic]
    validation_hash: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_valid(self) -> bool:
        return not has_errors(self.diagnostics)


class RaceFactory:
    """Creates races from the different kinds of race requests."""

    def __init__(
        self,
        schema: OptionSchema,
        presets: Mapping[str, Preset],
        mystery_settings: Mapping[str, MysterySetting],
        challenges: Optional[Mapping[str, Preset]] = None
    ):
        self.schema = schema
        self.presets = dict(presets)
        self.challenges = dict(challenges or {})
        self.validator = PresetValidator(schema)
        self.mystery_generator = MysteryGenerator(mystery_settings)

    def _make_race(self, preset: Preset, rng: Optional[random.Random]) -> Race:
        diagnostics = self.validator.validate(preset.options)
        if has_errors(diagnostics):
            logger.warning(f'Race for preset "{preset.name}" has validation errors')
        return Race(preset=preset, seed=random_seed(rng), diagnostics=diagnostics)

    def preset_race(self, preset_name: str, rng: Optional[random.Random] = None) -> Race:
        """
        Race using one of the known presets.

        Raises:
            KeyError: If the preset doesn't exist
        """
        if preset_name not in self.presets:
            raise KeyError(f"{preset_name} is not a valid preset")
        return self._make_race(self.presets[preset_name].copy(), rng)

    def pick_challenge(self, rng: Optional[random.Random] = None) -> str:
        """
        Pick a challenge name, weighted by each challenge's weight.

        Without any weighted challenge every challenge is equally likely.

        Raises:
            KeyError: If there are no challenges
        """
        if not self.challenges:
            raise KeyError("There are no challenge presets.")
        rng = rng or random.Random()
        name = choose_weighted_preset(self.challenges, rng)
        return name if name is not None else rng.choice(sorted(self.challenges))

    def challenge_race(self, challenge_name: Optional[str] = None, rng: Optional[random.Random] = None) -> Race:
        """
        Race using a challenge preset, a random one if no name is given.

        Raises:
            KeyError: If the challenge doesn't exist
        """
        if challenge_name is None:
            challenge_name = self.pick_challenge(rng)
        elif challenge_name not in self.challenges:
            raise KeyError(
                f"Invalid preset {challenge_name}. "
                f"Type {config.COMMAND_PREFIX}challenges for a list of all challenge presets."
            )
        return self._make_race(self.challenges[challenge_name].copy(), rng)

    def options_race(
        self,
        options_string: str,
        author: str = config.DEFAULT_AUTHOR,
        name: str = "",
        rng: Optional[random.Random] = None
    ) -> Race:
        """
        Race using a raw options string.

        Raises:
            FormatError: If the options string is malformed
        """
        preset = Preset(name=name, author=author, options=parse_options_string(options_string))
        return self._make_race(preset, rng)

    def custom_race(self, json_content: str, rng: Optional[random.Random] = None) -> Race:
        """
        Race using an uploaded JSON preset.

        Raises:
            FormatError: If the JSON is not a valid preset
        """
        try:
            data = json.loads(json_content)
        except json.JSONDecodeError as e:
            raise FormatError(f"Could not parse custom json preset: {e.msg}")
        return self._make_race(preset_from_json(data), rng)

    def mystery_preset(
        self,
        name: str = "Mystery",
        author: str = config.BOT_AUTHOR,
        rng: Optional[random.Random] = None
    ) -> Preset:
        """Generate a mystery preset stamped with the current randomizer version."""
        options_string = self.mystery_generator.generate(rng)
        preset = Preset(
            name=name,
            description="Mystery settings",
            author=author,
            options=parse_options_string(options_string)
        )
        preset.set_version(config.RANDOMIZER_VERSION)
        return preset

    def mystery_race(
        self,
        name: str = "Mystery",
        author: str = config.BOT_AUTHOR,
        rng: Optional[random.Random] = None
    ) -> Race:
        """Race using freshly generated mystery settings."""
        return self._make_race(self.mystery_preset(name, author, rng), rng)
