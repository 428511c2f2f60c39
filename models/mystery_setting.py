"""
Mystery settings for randomized races.
Each setting lists weighted candidate values and an optional requirement on
the options already chosen.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Pattern

from models.option import SchemaError


@dataclass(frozen=True)
class MysterySetting:
    """Represents one weighted mystery setting."""
    key: str
    values: Dict[str, int] = field(default_factory=dict)
    requirement: Optional[str] = None

    @property
    def requirement_pattern(self) -> Optional[Pattern]:
        """Compiled requirement, or None when the setting is unconditional."""
        if not self.requirement:
            return None
        return re.compile(self.requirement)

    def is_eligible(self, options_string: str) -> bool:
        """Check the requirement against the options decided so far."""
        pattern = self.requirement_pattern
        return pattern is None or pattern.search(options_string) is not None

    def choose(self, roll: int) -> Optional[str]:
        """
        Pick the value whose cumulative weight reaches the roll.

        Returns:
            The chosen value, or None when the weights add up to less than roll
        """
        total = 0
        for value, weight in self.values.items():
            total += weight
            if total >= roll:
                return value
        return None

    @classmethod
    def from_dict(cls, key: str, data: Mapping) -> 'MysterySetting':
        """Deserialize a setting, checking weights and requirement."""
        if not isinstance(data, Mapping):
            raise SchemaError(f"Mystery setting '{key}' must be an object")

        requirement = data.get('requirement') or None
        if requirement is not None:
            try:
                re.compile(requirement)
            except (re.error, TypeError) as e:
                raise SchemaError(f"Mystery setting '{key}' has an invalid requirement: {e}")

        values = data.get('values', {})
        if not isinstance(values, Mapping):
            raise SchemaError(f"Mystery setting '{key}' values must be an object")

        weights: Dict[str, int] = {}
        for value, weight in values.items():
            if not isinstance(weight, int) or isinstance(weight, bool) or weight < 0:
                raise SchemaError(f"Mystery setting '{key}' has invalid weight {weight!r} for '{value}'")
            weights[str(value)] = weight

        return cls(key=key, values=weights, requirement=requirement)


def load_mystery_settings(data: Mapping) -> Dict[str, MysterySetting]:
    """Build all mystery settings from the mystery JSON mapping."""
    if not isinstance(data, Mapping):
        raise SchemaError("Mystery settings must be an object of settings")
    return {key: MysterySetting.from_dict(key, value) for key, value in data.items()}
