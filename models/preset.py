"""
Randomizer presets.
A preset is a named, authored set of randomizer options.
"""
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import config


@dataclass
class Preset:
    """Represents a set of randomizer options with descriptive metadata."""
    name: str = ""
    description: str = ""
    author: str = config.DEFAULT_AUTHOR
    options: Dict[str, str] = field(default_factory=dict)
    weight: int = 0

    @property
    def version(self) -> Optional[str]:
        """Return the randomizer version the options were written for."""
        return self.options.get('version')

    def set_version(self, version: str) -> None:
        """Stamp the options with a randomizer version."""
        self.options['version'] = version

    def copy(self) -> 'Preset':
        """Return a copy with its own options dictionary."""
        return Preset(
            name=self.name,
            description=self.description,
            author=self.author,
            options=dict(self.options),
            weight=self.weight
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            'name': self.name,
            'description': self.description,
            'author': self.author,
            'weight': self.weight,
            'options': dict(self.options)
        }

    @classmethod
    def from_dict(cls, data: Mapping, options: Optional[Mapping[str, str]] = None) -> 'Preset':
        """
        Deserialize from dictionary.

        Args:
            data: Preset JSON object
            options: Already parsed options, used instead of data['options']
                when the file stores them as a raw options string

        Raises:
            ValueError: If the data is not a preset object
        """
        if not isinstance(data, Mapping):
            raise ValueError("Preset must be a JSON object")

        if options is None:
            raw_options = data.get('options', {})
            if not isinstance(raw_options, Mapping):
                raise ValueError("Preset options must be a JSON object")
            options = raw_options

        preset = cls(
            name=str(data.get('name') or ""),
            description=str(data.get('description') or ""),
            author=str(data.get('author') or config.DEFAULT_AUTHOR),
            options={str(k): str(v) for k, v in options.items()},
            weight=int(data.get('weight', 0) or 0)
        )

        # Older presets keep the version next to the options
        version = data.get('version')
        if version and 'version' not in preset.options:
            preset.set_version(str(version))

        return preset
