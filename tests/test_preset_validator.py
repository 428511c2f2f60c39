"""
Tests for preset validation.

Covers the general key/value checks and the per-mode consistency rules.
"""
import pytest

from models.diagnostic import Severity, ValidationDiagnostic, has_errors
from models.option import OptionSchema, SchemaError
from models.preset import Preset
from services.preset_validator import PresetValidator, validate

ALL_GOOD = ValidationDiagnostic.good("All good! :slight_smile:")
RACE_SAFE = ValidationDiagnostic.good("Options are race-safe.")
NOT_RACE_SAFE = ValidationDiagnostic.info("Options are not race-safe, because a spoiler log gets generated.")


@pytest.fixture
def validator(schema):
    return PresetValidator(schema)


def messages(diagnostics, severity=None):
    return [d.message for d in diagnostics if severity is None or d.severity is severity]


class TestGeneralChecks:
    """Version, mode, keys and values."""

    def test_valid_options(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'rdBossShuffle': 'yes'})
        assert diagnostics == [ALL_GOOD]

    def test_missing_version(self, validator):
        diagnostics = validator.validate({'mode': 'rando'})
        assert diagnostics == [ValidationDiagnostic.error(
            "Options must contain what randomizer version is used (e.g. 'version=1.23')."
        )]

    @pytest.mark.parametrize("version", ["1.2", "12.3", "v1.23", "1.234", ""])
    def test_malformed_version(self, validator, version):
        diagnostics = validator.validate({'version': version, 'mode': 'rando'})
        assert len(diagnostics) == 1
        assert diagnostics[0].severity is Severity.ERROR
        assert diagnostics[0].message.startswith(f"'{version}' is not a valid version.")

    def test_missing_mode(self, validator):
        diagnostics = validator.validate({'version': '1.23'})
        assert diagnostics == [ValidationDiagnostic.error(
            "Options must contain what mode is used (e.g. 'mode=rando')."
        )]

    def test_unknown_mode(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'sideways'})
        assert diagnostics == [ValidationDiagnostic.error("'sideways' is not a known mode.")]

    def test_unknown_mode_still_flags_mode_options(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'sideways', 'opGoal': 'mtr'})
        assert diagnostics == [
            ValidationDiagnostic.error("'sideways' is not a known mode."),
            ValidationDiagnostic.info("'opGoal' belongs to the Open World mode, but the selected mode is Other."),
        ]

    def test_missing_mode_flags_mode_options(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'acBoy': 'no', 'aggBosses': 'yes'})
        assert messages(diagnostics, Severity.INFO) == [
            "'acBoy' belongs to the Ancient Cave mode, but the selected mode is Other."
        ]

    def test_unknown_mode_skips_mode_rules(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'sideways', 'opSpoilerLog': 'no'})
        assert "Options are race-safe." not in messages(diagnostics)

    def test_unknown_key(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'teleport': 'yes'})
        assert diagnostics == [ValidationDiagnostic.error("'teleport' is not a known option.")]

    def test_option_of_other_mode(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'opGoal': 'mtr'})
        assert diagnostics == [ValidationDiagnostic.info(
            "'opGoal' belongs to the Open World mode, but the selected mode is Rando."
        )]

    def test_general_options_fit_any_mode(self, validator):
        diagnostics = validator.validate({
            'version': '1.23', 'mode': 'chaos', 'aggBosses': 'yes', 'startingGold': '500'
        })
        assert diagnostics == [ALL_GOOD]

    def test_unknown_enum_value(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'aggBosses': 'maybe'})
        assert diagnostics == [ValidationDiagnostic.error("'aggBosses' has no known value 'maybe'.")]

    def test_not_a_number(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'expMultiplier': 'lots'})
        assert diagnostics == [ValidationDiagnostic.error("'expMultiplier' value 'lots' is not a number.")]

    def test_integer_option_rejects_decimals(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'expMultiplier': '1.5'})
        assert messages(diagnostics, Severity.ERROR) == ["'expMultiplier' value '1.5' is not a number."]

    def test_number_out_of_range(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'expMultiplier': '11'})
        assert diagnostics == [ValidationDiagnostic.error("'expMultiplier' value '11' must be between 1 and 10.")]

    def test_decimal_option(self, validator):
        assert validator.validate({'version': '1.23', 'mode': 'rando', 'goldMultiplier': '2.5'}) == [ALL_GOOD]
        diagnostics = validator.validate({'version': '1.23', 'mode': 'rando', 'goldMultiplier': '0.1'})
        assert messages(diagnostics) == ["'goldMultiplier' value '0.1' must be between 0.5 and 5.0."]

    def test_every_bad_list_item_is_reported(self, validator):
        diagnostics = validator.validate({
            'version': '1.23', 'mode': 'ancientcave', 'acBiomeTypes': 'ruins,lava,swamp'
        })
        assert messages(diagnostics) == [
            "'acBiomeTypes' has no known value 'lava'.",
            "'acBiomeTypes' has no known value 'swamp'.",
        ]

    def test_problems_are_reported_in_order(self, validator):
        diagnostics = validator.validate({'mode': 'sideways', 'teleport': 'yes'})
        assert messages(diagnostics) == [
            "Options must contain what randomizer version is used (e.g. 'version=1.23').",
            "'sideways' is not a known mode.",
            "'teleport' is not a known option.",
        ]

    def test_input_is_not_modified(self, validator):
        options = {'version': '1.23', 'mode': 'open', 'opGoal': 'nothing'}
        validator.validate(options)
        assert options == {'version': '1.23', 'mode': 'open', 'opGoal': 'nothing'}

    def test_schema_without_mode_raises(self):
        schema = OptionSchema.from_dict({'aggBosses': {'category': 'General', 'values': {'yes': 'Yes'}}})
        with pytest.raises(SchemaError):
            PresetValidator(schema).validate({'version': '1.23', 'mode': 'rando'})

    def test_validate_accepts_preset(self, schema):
        preset = Preset(options={'version': '1.23', 'mode': 'rando'})
        assert validate(preset, schema) == [ALL_GOOD]
        assert validate({'mode': 'rando'}, schema)[0].severity is Severity.ERROR


class TestOpenWorld:
    """Open World consistency rules."""

    @staticmethod
    def open_options(**options):
        return {'version': '1.23', 'mode': 'open', **options}

    def test_spoiler_log_disabled_is_race_safe(self, validator):
        assert validator.validate(self.open_options(opSpoilerLog='no')) == [RACE_SAFE]

    def test_race_mode_is_race_safe(self, validator):
        assert validator.validate(self.open_options(opRaceMode='yes')) == [RACE_SAFE]

    def test_default_spoiler_log_is_not_race_safe(self, validator):
        assert validator.validate(self.open_options()) == [NOT_RACE_SAFE]

    def test_unknown_spoiler_log_value(self, validator):
        diagnostics = validator.validate(self.open_options(opSpoilerLog='maybe'))
        assert diagnostics == [
            ValidationDiagnostic.error("'opSpoilerLog' has no known value 'maybe'."),
            ValidationDiagnostic.info(
                "Options might not be race-safe, because I don't know if a spoiler log gets generated."
            ),
        ]

    def test_owl_replacement_without_owls(self, validator):
        diagnostics = validator.validate(self.open_options(oopsAllThis='rabite', opSpoilerLog='no'))
        assert messages(diagnostics, Severity.INFO) == [
            "Selecting a different 'Oops! All owls' enemy is useless if you don't have 'Oops! All owls' enabled."
        ]

    def test_owl_replacement_with_owls(self, validator):
        diagnostics = validator.validate(self.open_options(opEnemies='oops', oopsAllThis='rabite', opSpoilerLog='no'))
        assert diagnostics == [RACE_SAFE]

    def test_difficulty_with_vanilla_stat_growth(self, validator):
        diagnostics = validator.validate(self.open_options(
            opStatGrowth='vanilla', opDifficulty='hard', opSpoilerLog='no'
        ))
        assert messages(diagnostics, Severity.INFO) == [
            "Selecting a different difficulty is useless if you have vanilla enemy stat growth enabled."
        ]

    def test_seed_settings_without_mana_tree_goal(self, validator):
        diagnostics = validator.validate(self.open_options(opGoal='gift', opNumSeeds='4', opSpoilerLog='no'))
        assert messages(diagnostics, Severity.INFO) == [
            "Using custom mana seed settings is useless if not enabling the Mana Tree Revival goal."
        ]

    def test_seed_range_without_random_seed_count(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='mtr', opNumSeeds='4', opMinSeeds='2', opMaxSeeds='6', opSpoilerLog='no'
        ))
        assert messages(diagnostics, Severity.INFO) == [
            "Setting the min/max amount of mana seeds required is useless "
            "if not having number of seeds required on 'random'."
        ]

    def test_min_seeds_above_max_seeds(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='mtr', opNumSeeds='random', opMinSeeds='6', opMaxSeeds='3', opSpoilerLog='no'
        ))
        assert diagnostics == [
            ValidationDiagnostic.error("Max amount of mana seeds required is less than min amount."),
            RACE_SAFE,
        ]

    def test_min_seeds_equal_to_max_seeds(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='mtr', opNumSeeds='random', opMinSeeds='5', opMaxSeeds='5', opSpoilerLog='no'
        ))
        assert not has_errors(diagnostics)
        assert messages(diagnostics, Severity.INFO) == [
            "Min amount of mana seeds required is the same as the max amount. "
            "You should instead just set the 'Mana Tree Revival seeds required'."
        ]

    def test_min_seeds_uses_default_max(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='mtr', opNumSeeds='random', opMinSeeds='3', opSpoilerLog='no'
        ))
        assert diagnostics == [RACE_SAFE]

    def test_out_of_range_seeds_are_not_compared(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='mtr', opNumSeeds='random', opMinSeeds='12', opMaxSeeds='3', opSpoilerLog='no'
        ))
        assert messages(diagnostics, Severity.ERROR) == ["'opMinSeeds' value '12' must be between 1 and 8."]

    def test_christmas_goal_with_christmas_options(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='reindeer', opXmasMaps='yes', opXmasItems='yes', opSpoilerLog='no'
        ))
        assert len(messages(diagnostics, Severity.INFO)) == 2
        assert diagnostics[-1] == RACE_SAFE

    def test_mana_tree_preset(self, validator):
        diagnostics = validator.validate(self.open_options(
            opGoal='mtr', opNumSeeds='6', opBoyRole='start', opSpoilerLog='no'
        ))
        assert diagnostics == [RACE_SAFE]


class TestCharacterModes:
    """Ancient Cave, Boss Rush and Chaos rules."""

    def test_ancient_cave_without_characters(self, validator):
        diagnostics = validator.validate({
            'version': '1.23', 'mode': 'ancientcave', 'acBoy': 'no', 'acGirl': 'no', 'acSprite': 'no'
        })
        assert diagnostics == [ValidationDiagnostic.error("Must have at least one character to start with.")]

    def test_ancient_cave_with_one_character(self, validator):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'ancientcave', 'acBoy': 'no', 'acGirl': 'no'})
        assert diagnostics == [ALL_GOOD]

    @pytest.mark.parametrize("biomes", ["", ",", ",,"])
    def test_ancient_cave_without_floor_types(self, validator, biomes):
        diagnostics = validator.validate({'version': '1.23', 'mode': 'ancientcave', 'acBiomeTypes': biomes})
        assert diagnostics == [ValidationDiagnostic.error("Must have at least one floor type selected.")]

    def test_boss_rush_without_characters(self, validator):
        diagnostics = validator.validate({
            'version': '1.23', 'mode': 'bossrush', 'brBoy': 'no', 'brGirl': 'no', 'brSprite': 'no'
        })
        assert diagnostics == [ValidationDiagnostic.error("Must have at least one character to start with.")]

    def test_chaos_without_characters(self, validator):
        diagnostics = validator.validate({
            'version': '1.23', 'mode': 'chaos', 'chBoy': 'no', 'chGirl': 'no', 'chSprite': 'no'
        })
        assert diagnostics == [ValidationDiagnostic.error("Must have at least one character to start with.")]

    def test_other_mode_characters_are_ignored(self, validator):
        diagnostics = validator.validate({
            'version': '1.23', 'mode': 'rando', 'acBoy': 'no', 'acGirl': 'no', 'acSprite': 'no'
        })
        assert not has_errors(diagnostics)
        assert len(diagnostics) == 3


class TestSmallSchema:
    """Checks against a minimal hand-written schema."""

    @pytest.fixture
    def small_validator(self):
        return PresetValidator(OptionSchema.from_dict({
            'mode': {'category': 'Mode', 'values': {'rando': 'Rando'}},
            'level': {'category': 'General', 'type': 'numeric', 'min': 0, 'max': 10},
            'letters': {'category': 'General', 'list': True, 'values': {'a': 'A', 'b': 'B'}},
        }))

    def test_missing_version_and_mode(self, small_validator):
        diagnostics = small_validator.validate({})
        assert len(messages(diagnostics, Severity.ERROR)) >= 2
        assert not messages(diagnostics, Severity.GOOD)

    @pytest.mark.parametrize("value,valid", [("0", True), ("5", True), ("10", True), ("11", False), ("abc", False)])
    def test_numeric_range(self, small_validator, value, valid):
        diagnostics = small_validator.validate({'version': '1.23', 'mode': 'rando', 'level': value})
        assert has_errors(diagnostics) is not valid

    def test_list_reports_only_unknown_item(self, small_validator):
        diagnostics = small_validator.validate({'version': '1.23', 'mode': 'rando', 'letters': 'a,b,c'})
        assert diagnostics == [ValidationDiagnostic.error("'letters' has no known value 'c'.")]

    @pytest.mark.parametrize("value", ["1_0", "+5", " 5", "٥", "5.0", ""])
    def test_numbers_must_be_plain_digits(self, small_validator, value):
        diagnostics = small_validator.validate({'version': '1.23', 'mode': 'rando', 'level': value})
        assert messages(diagnostics) == [f"'level' value '{value}' is not a number."]

    def test_negative_numbers_parse(self, small_validator):
        diagnostics = small_validator.validate({'version': '1.23', 'mode': 'rando', 'level': '-1'})
        assert messages(diagnostics) == ["'level' value '-1' must be between 0 and 10."]


class TestExtraModeValues:
    """A schema may accept mode values that aren't built-in game modes."""

    @pytest.fixture
    def extra_mode_validator(self):
        return PresetValidator(OptionSchema.from_dict({
            'mode': {'category': 'Mode', 'values': {'rando': 'Rando', 'open': 'Open', 'race': 'Race'}},
            'rdBossShuffle': {'category': 'Rando', 'values': {'yes': 'Yes'}},
            'opGoal': {'category': 'Open', 'values': {'mtr': 'MTR'}},
        }))

    def test_extra_mode_value_is_accepted(self, extra_mode_validator):
        assert extra_mode_validator.validate({'version': '1.23', 'mode': 'race'}) == [ALL_GOOD]

    def test_extra_mode_value_plays_as_rando(self, extra_mode_validator):
        assert extra_mode_validator.validate({'version': '1.23', 'mode': 'race', 'rdBossShuffle': 'yes'}) == [ALL_GOOD]
        diagnostics = extra_mode_validator.validate({'version': '1.23', 'mode': 'race', 'opGoal': 'mtr'})
        assert diagnostics == [ValidationDiagnostic.info(
            "'opGoal' belongs to the Open World mode, but the selected mode is Rando."
        )]

    def test_value_outside_domain_is_an_error(self, extra_mode_validator):
        diagnostics = extra_mode_validator.validate({'version': '1.23', 'mode': 'chaos'})
        assert diagnostics == [ValidationDiagnostic.error("'chaos' is not a known mode.")]
