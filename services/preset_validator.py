"""
Preset validation.
Checks a set of randomizer options against the option schema and the rules of
the selected game mode, producing messages for the user.
"""
import logging
from typing import Dict, List, Mapping, Optional, Union

import config
from models.diagnostic import ValidationDiagnostic
from models.option import Category, EnumDomain, GameMode, NumericDomain, OptionDefinition, OptionSchema, parse_list
from models.preset import Preset

logger = logging.getLogger(__name__)

# Defaults the randomizer uses when the mana seed range is not set
DEFAULT_MIN_SEEDS = 1
DEFAULT_MAX_SEEDS = 8

CHRISTMAS_GOALS = ("gift", "reindeer")


class PresetValidator:
    """Validates randomizer options against an option schema."""

    def __init__(self, schema: OptionSchema):
        self.schema = schema

    def validate(self, options: Mapping[str, str]) -> List[ValidationDiagnostic]:
        """
        Validate a set of options.

        Problems in the options never raise, they are returned as diagnostics
        in the order they were found. A clean set of options yields a single
        good diagnostic.

        Args:
            options: Option key -> raw value

        Returns:
            List of ValidationDiagnostic objects

        Raises:
            SchemaError: If the schema has no 'mode' option
        """
        mode_option = self.schema.mode_option
        working = dict(options)
        diagnostics: List[ValidationDiagnostic] = []

        self._check_version(working, diagnostics)
        mode = self._resolve_mode(working, mode_option, diagnostics)
        self._check_options(working, mode, diagnostics)

        if mode is GameMode.OPEN:
            self._check_open(working, options, diagnostics)
        elif mode is GameMode.ANCIENT_CAVE:
            self._check_ancient_cave(working, diagnostics)
        elif mode is GameMode.BOSS_RUSH:
            self._check_starting_characters(working, ("brBoy", "brGirl", "brSprite"), diagnostics)
        elif mode is GameMode.CHAOS:
            self._check_starting_characters(working, ("chBoy", "chGirl", "chSprite"), diagnostics)

        if not diagnostics:
            diagnostics.append(ValidationDiagnostic.good("All good! :slight_smile:"))

        logger.debug(f'Validated {len(options)} options, {len(diagnostics)} diagnostics (mode: {mode})')
        return diagnostics

    def _check_version(self, working: Dict[str, str], diagnostics: List[ValidationDiagnostic]) -> None:
        """Version must be present and look like '1.23'. Removed afterwards."""
        if 'version' not in working:
            diagnostics.append(ValidationDiagnostic.error(
                f"Options must contain what randomizer version is used (e.g. 'version={config.RANDOMIZER_VERSION}')."
            ))
            return

        version = working.pop('version')
        if not config.VERSION_PATTERN.match(version):
            diagnostics.append(ValidationDiagnostic.error(
                f"'{version}' is not a valid version. Versions look like '{config.RANDOMIZER_VERSION}'."
            ))

    def _resolve_mode(
        self,
        working: Dict[str, str],
        mode_option: OptionDefinition,
        diagnostics: List[ValidationDiagnostic]
    ) -> Optional[GameMode]:
        """
        Return the selected game mode, or None if it is missing or unknown.

        A value the schema accepts but that isn't one of the built-in modes
        is played as Rando.
        """
        if 'mode' not in working:
            diagnostics.append(ValidationDiagnostic.error(
                "Options must contain what mode is used (e.g. 'mode=rando')."
            ))
            return None

        value = working['mode']
        if not mode_option.domain.contains(value):
            diagnostics.append(ValidationDiagnostic.error(f"'{value}' is not a known mode."))
            return None
        return GameMode.from_option_value(value) or GameMode.RANDO

    def _check_options(
        self,
        working: Dict[str, str],
        mode: Optional[GameMode],
        diagnostics: List[ValidationDiagnostic]
    ) -> None:
        """Check every key and value; keys with bad values are dropped from working."""
        # Without a resolved mode every mode-specific option is out of place
        selected = mode.category if mode is not None else Category.OTHER

        for key, value in list(working.items()):
            option = self.schema.get(key)
            if option is None:
                diagnostics.append(ValidationDiagnostic.error(f"'{key}' is not a known option."))
                continue

            # Already checked while resolving the mode
            if option.category == Category.MODE:
                continue

            if option.category not in (Category.GENERAL, selected):
                diagnostics.append(ValidationDiagnostic.info(
                    f"'{key}' belongs to the {option.category.pretty_name} mode, "
                    f"but the selected mode is {selected.pretty_name}."
                ))

            if not self._check_values(option, value, diagnostics):
                # Make sure mode rules don't look at unknown values
                del working[key]

    def _check_values(
        self,
        option: OptionDefinition,
        value: str,
        diagnostics: List[ValidationDiagnostic]
    ) -> bool:
        """Validate each (sub-)value of an option. Returns False if any is invalid."""
        valid = True
        domain = option.domain

        for item in option.split_values(value):
            if isinstance(domain, EnumDomain):
                if not domain.contains(item):
                    diagnostics.append(ValidationDiagnostic.error(f"'{option.key}' has no known value '{item}'."))
                    valid = False
            elif isinstance(domain, NumericDomain):
                try:
                    number = domain.parse(item)
                except ValueError:
                    diagnostics.append(ValidationDiagnostic.error(f"'{option.key}' value '{item}' is not a number."))
                    valid = False
                    continue
                if not domain.contains(number):
                    diagnostics.append(ValidationDiagnostic.error(
                        f"'{option.key}' value '{item}' must be between {domain.min} and {domain.max}."
                    ))
                    valid = False

        return valid

    def _check_open(
        self,
        working: Dict[str, str],
        options: Mapping[str, str],
        diagnostics: List[ValidationDiagnostic]
    ) -> None:
        """Consistency rules for Open World options."""
        goal = working.get('opGoal')

        # 'But why owls?' only matters with 'Oops! All owls'
        if working.get('opEnemies') != 'oops' and 'oopsAllThis' in working:
            diagnostics.append(ValidationDiagnostic.info(
                "Selecting a different 'Oops! All owls' enemy is useless if you don't have 'Oops! All owls' enabled."
            ))

        if working.get('opStatGrowth') == 'vanilla' and 'opDifficulty' in working:
            diagnostics.append(ValidationDiagnostic.info(
                "Selecting a different difficulty is useless if you have vanilla enemy stat growth enabled."
            ))

        has_seed_range = 'opMinSeeds' in working or 'opMaxSeeds' in working

        if goal != 'mtr' and ('opNumSeeds' in working or has_seed_range):
            diagnostics.append(ValidationDiagnostic.info(
                "Using custom mana seed settings is useless if not enabling the Mana Tree Revival goal."
            ))

        if working.get('opNumSeeds') != 'random' and has_seed_range:
            diagnostics.append(ValidationDiagnostic.info(
                "Setting the min/max amount of mana seeds required is useless "
                "if not having number of seeds required on 'random'."
            ))

        min_seeds = _seed_count(working, 'opMinSeeds', DEFAULT_MIN_SEEDS)
        max_seeds = _seed_count(working, 'opMaxSeeds', DEFAULT_MAX_SEEDS)
        if has_seed_range and min_seeds is not None and max_seeds is not None:
            if min_seeds > max_seeds:
                diagnostics.append(ValidationDiagnostic.error(
                    "Max amount of mana seeds required is less than min amount."
                ))
            elif min_seeds == max_seeds:
                diagnostics.append(ValidationDiagnostic.info(
                    "Min amount of mana seeds required is the same as the max amount. "
                    "You should instead just set the 'Mana Tree Revival seeds required'."
                ))

        if goal in CHRISTMAS_GOALS:
            if 'opXmasMaps' in working:
                diagnostics.append(ValidationDiagnostic.info(
                    "Setting the Christmas theme explicitly is unnecessary, as the goal is already Christmas-themed."
                ))
            if 'opXmasItems' in working:
                diagnostics.append(ValidationDiagnostic.info(
                    "Setting the random Christmas drops explicitly is unnecessary, "
                    "as the goal is already Christmas-themed."
                ))

        # The original options are used here, an unparseable opSpoilerLog
        # has been dropped from working
        if options.get('opSpoilerLog') == 'no' or options.get('opRaceMode') == 'yes':
            diagnostics.append(ValidationDiagnostic.good("Options are race-safe."))
        elif 'opSpoilerLog' in options:
            diagnostics.append(ValidationDiagnostic.info(
                "Options might not be race-safe, because I don't know if a spoiler log gets generated."
            ))
        else:
            diagnostics.append(ValidationDiagnostic.info(
                "Options are not race-safe, because a spoiler log gets generated."
            ))

    def _check_ancient_cave(self, working: Dict[str, str], diagnostics: List[ValidationDiagnostic]) -> None:
        """Ancient Cave needs a starting character and at least one floor type."""
        self._check_starting_characters(working, ("acBoy", "acGirl", "acSprite"), diagnostics)

        if 'acBiomeTypes' in working and not parse_list(working['acBiomeTypes']):
            diagnostics.append(ValidationDiagnostic.error("Must have at least one floor type selected."))

    def _check_starting_characters(
        self,
        working: Dict[str, str],
        keys: tuple,
        diagnostics: List[ValidationDiagnostic]
    ) -> None:
        """Each character key disables that character, so all three is nobody."""
        if all(key in working for key in keys):
            diagnostics.append(ValidationDiagnostic.error("Must have at least one character to start with."))


def _seed_count(working: Mapping[str, str], key: str, default: int) -> Optional[float]:
    """Numeric value of a mana seed option, None if it can't be compared."""
    try:
        return float(working.get(key, default))
    except ValueError:
        return None


def validate(preset: Union[Preset, Mapping[str, str]], schema: OptionSchema) -> List[ValidationDiagnostic]:
    """Validate a preset (or a bare options dictionary) against a schema."""
    options = preset.options if isinstance(preset, Preset) else preset
    return PresetValidator(schema).validate(options)
