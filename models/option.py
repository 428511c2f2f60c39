"""
Randomizer option schema.
Describes every option key the randomizer understands, the mode it belongs to
and the values it accepts.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Mapping, NamedTuple, Optional, Union

import config


class SchemaError(ValueError):
    """Raised when the option schema or mystery settings are malformed."""


class Category(Enum):
    """Randomizer modes the options are categorized by."""
    MODE = "Mode"
    GENERAL = "General"
    RANDO = "Rando"
    OPEN = "Open"
    ANCIENT_CAVE = "AncientCave"
    BOSS_RUSH = "BossRush"
    CHAOS = "Chaos"
    OTHER = "Other"

    @property
    def pretty_name(self) -> str:
        return _CATEGORY_NAMES.get(self, "Other")


class GameMode(Enum):
    """Game modes selectable through the 'mode' option."""
    RANDO = "rando"
    OPEN = "open"
    ANCIENT_CAVE = "ancientcave"
    BOSS_RUSH = "bossrush"
    CHAOS = "chaos"

    @property
    def category(self) -> Category:
        """Return the option category holding this mode's options."""
        return Category[self.name]

    @property
    def pretty_name(self) -> str:
        return self.category.pretty_name

    @classmethod
    def from_option_value(cls, value: str) -> Optional['GameMode']:
        """Translate a 'mode' option value, or None if it is not a mode."""
        try:
            return cls(value)
        except ValueError:
            return None


_CATEGORY_NAMES = {
    Category.MODE: "Game Mode",
    Category.GENERAL: "General",
    Category.RANDO: "Rando",
    Category.OPEN: "Open World",
    Category.ANCIENT_CAVE: "Ancient Cave",
    Category.BOSS_RUSH: "Boss Rush",
    Category.CHAOS: "Chaos",
}


# Plain ASCII numbers only, '1_0' and '+5' are rejected
INTEGER_PATTERN = re.compile(r'-?[0-9]+')
DECIMAL_PATTERN = re.compile(r'-?[0-9]+(\.[0-9]+)?')


def parse_list(value: str) -> List[str]:
    """Split a comma-separated list value, ignoring empty items."""
    return [item for item in value.split(',') if item]


@dataclass(frozen=True)
class EnumDomain:
    """Raw option values mapped to the labels shown by the randomizer."""
    values: Dict[str, str]

    def contains(self, raw: str) -> bool:
        return raw in self.values

    def label(self, raw: str) -> str:
        return self.values.get(raw, raw)


@dataclass(frozen=True)
class NumericDomain:
    """
    Inclusive numeric range.

    precision 0 is an integer, a positive precision allows that many decimal
    digits and a negative precision is an integer ending in that many zeros.
    Only the integer/decimal distinction is checked when parsing.
    """
    min: float
    max: float
    precision: int = 0

    def parse(self, raw: str) -> Union[int, float]:
        """Parse a raw value, raising ValueError if it is not a number."""
        if self.precision > 0:
            if not DECIMAL_PATTERN.fullmatch(raw):
                raise ValueError(f"'{raw}' is not a decimal number")
            return float(raw)
        if not INTEGER_PATTERN.fullmatch(raw):
            raise ValueError(f"'{raw}' is not an integer")
        return int(raw)

    def contains(self, number: Union[int, float]) -> bool:
        return self.min <= number <= self.max


Domain = Union[EnumDomain, NumericDomain]


@dataclass(frozen=True)
class OptionDefinition:
    """Information about a single randomizer option."""
    key: str
    name: str
    category: Category
    domain: Domain
    is_list: bool = False

    def split_values(self, raw: str) -> List[str]:
        """Return the sub-values to validate for a raw option value."""
        return parse_list(raw) if self.is_list else [raw]

    def label(self, raw: str) -> str:
        """Human-readable form of a raw value."""
        if isinstance(self.domain, EnumDomain):
            return ', '.join(self.domain.label(value) for value in self.split_values(raw))
        return raw

    @classmethod
    def from_dict(cls, key: str, data: Mapping) -> 'OptionDefinition':
        """
        Build an option from its JSON description.

        Args:
            key: Option key as used in options strings
            data: Mapping with name, category, type and the domain fields

        Raises:
            SchemaError: If the description is incomplete or inconsistent
        """
        if not isinstance(data, Mapping):
            raise SchemaError(f"Option '{key}' must be an object")

        try:
            category = Category(data.get('category'))
        except ValueError:
            raise SchemaError(f"Option '{key}' has unknown category '{data.get('category')}'")

        kind = data.get('type', 'enum')
        if kind == 'enum':
            values = data.get('values')
            if not isinstance(values, Mapping) or not values:
                raise SchemaError(f"Option '{key}' must list at least one value")
            domain: Domain = EnumDomain({str(raw): str(label) for raw, label in values.items()})
        elif kind == 'numeric':
            try:
                bounds = (data['min'], data['max'])
                if not all(isinstance(bound, (int, float)) and not isinstance(bound, bool) for bound in bounds):
                    raise TypeError(bounds)
                domain = NumericDomain(
                    min=bounds[0],
                    max=bounds[1],
                    precision=int(data.get('precision', 0))
                )
            except (KeyError, TypeError, ValueError):
                raise SchemaError(f"Option '{key}' needs a numeric min, max and precision")
            if domain.min > domain.max:
                raise SchemaError(f"Option '{key}' has min {domain.min} greater than max {domain.max}")
        else:
            raise SchemaError(f"Option '{key}' has unknown type '{kind}'")

        return cls(
            key=key,
            name=str(data.get('name', key)),
            category=category,
            domain=domain,
            is_list=bool(data.get('list', False))
        )


class PartitionedOptions(NamedTuple):
    """Options grouped for display, as option name -> value label."""
    general: Dict[str, str]
    mode: Dict[str, str]
    other: Dict[str, str]


class OptionSchema:
    """All options in the randomizer, indexable by option key."""

    def __init__(self, options: Mapping[str, OptionDefinition]):
        self._options: Dict[str, OptionDefinition] = dict(options)

    def __contains__(self, key: object) -> bool:
        return key in self._options

    def __getitem__(self, key: str) -> OptionDefinition:
        return self._options[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def get(self, key: str) -> Optional[OptionDefinition]:
        return self._options.get(key)

    @property
    def mode_option(self) -> OptionDefinition:
        """The 'mode' option every preset must set."""
        option = self._options.get('mode')
        if option is None:
            raise SchemaError("Option schema has no 'mode' option")
        if not isinstance(option.domain, EnumDomain):
            raise SchemaError("The 'mode' option must be enumerated")
        return option

    def mode_of(self, options: Mapping[str, str]) -> GameMode:
        """Game mode selected by a set of options, Rando when unset or unknown."""
        mode = GameMode.from_option_value(options.get('mode', config.DEFAULT_MODE))
        return mode or GameMode.RANDO

    def partition(self, options: Mapping[str, str]) -> PartitionedOptions:
        """
        Group options into general, current-mode and other options.

        The 'mode' and 'version' entries are left out, they are displayed on
        their own.
        """
        mode = self.mode_of(options)
        partitioned = PartitionedOptions({}, {}, {})

        for key, value in options.items():
            if key == 'version':
                continue

            option = self._options.get(key)
            if option is None:
                partitioned.other[key] = value
                continue

            if option.category == Category.MODE:
                continue
            elif option.category == Category.GENERAL:
                partitioned.general[option.name] = option.label(value)
            elif option.category == mode.category:
                partitioned.mode[option.name] = option.label(value)
            else:
                partitioned.other[option.name] = option.label(value)

        return partitioned

    @classmethod
    def from_dict(cls, data: Mapping) -> 'OptionSchema':
        """Build the schema from the options JSON mapping."""
        if not isinstance(data, Mapping):
            raise SchemaError("Option schema must be an object of options")
        return cls({key: OptionDefinition.from_dict(key, value) for key, value in data.items()})
