"""
Options string parsing and formatting.
Converts between the 'key=value key2=value2' options string and a dictionary.
"""
import re
from typing import Dict, List, Mapping, Optional

import config

# opRole sets the role of all three characters at once
ROLE_SHORTHAND_PATTERN = re.compile(r'(?<!\S)opRole=("(?:[^"\\]|\\.)*"|\S*)')
ESCAPED_CHARS = ('\\', '"')
ROLE_SHORTHAND_KEYS = ("opBoyRole", "opGirlRole", "opSpriteRole")


class FormatError(ValueError):
    """Raised when an options string or preset file is malformed."""


def expand_shorthands(raw: str) -> str:
    """Rewrite opRole=X into the three per-character role options."""
    return ROLE_SHORTHAND_PATTERN.sub(
        lambda match: " ".join(f"{key}={match.group(1)}" for key in ROLE_SHORTHAND_KEYS),
        raw
    )


def tokenize(raw: str) -> List[str]:
    """
    Split an options string on whitespace outside of double quotes.

    Quote characters only toggle quoting and are not kept in the tokens.
    A backslash keeps a following quote or backslash literal; any other
    backslash is kept as is.
    """
    tokens = []
    current = []
    in_quotes = False
    i = 0

    while i < len(raw):
        char = raw[i]
        if char == '\\' and raw[i + 1:i + 2] in ESCAPED_CHARS:
            current.append(raw[i + 1])
            i += 1
        elif char == '"':
            in_quotes = not in_quotes
        elif char.isspace() and not in_quotes:
            if current:
                tokens.append(''.join(current))
                current = []
        else:
            current.append(char)
        i += 1

    if current:
        tokens.append(''.join(current))

    return tokens


def parse_options_string(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse an options string into a dictionary.

    Args:
        raw: Options string such as 'mode=open opGoal=mtr'

    Returns:
        Dictionary of option key -> raw value; later keys overwrite earlier ones

    Raises:
        FormatError: If a token is not formatted as key=value
    """
    if raw is None or not raw.strip():
        return {'mode': config.DEFAULT_MODE}

    options: Dict[str, str] = {}
    for token in tokenize(expand_shorthands(raw)):
        key, separator, value = token.partition('=')
        if not separator or not key:
            raise FormatError(f"'{token}' is not formatted correctly. Format must be 'key=value'.")
        options[key] = value

    return options


def escape_value(value: str) -> str:
    """Backslash-escape quotes and backslashes so tokenize reads them back literally."""
    return value.replace('\\', '\\\\').replace('"', '\\"')


def format_option(key: str, value: str) -> str:
    """Format a single key=value token, quoting values with whitespace."""
    value = escape_value(value)
    if any(char.isspace() for char in value):
        return f'{key}="{value}"'
    return f"{key}={value}"


def format_options_string(options: Mapping[str, str]) -> str:
    """Format options as a space separated options string."""
    return " ".join(format_option(key, value) for key, value in options.items())
