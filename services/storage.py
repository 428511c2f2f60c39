"""
JSON file storage.
Locates and loads the option schema, mystery settings, presets and
challenges, and stores the weekly and challenge state.
"""
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import config
from models.mystery_setting import MysterySetting, load_mystery_settings
from models.option import OptionSchema
from models.preset import Preset
from models.weekly import Weekly
from services.options_codec import FormatError, parse_options_string

logger = logging.getLogger(__name__)


def read_json_file(path: str, default: Any = None) -> Any:
    """
    Read a JSON file.

    Args:
        path: File to read
        default: Returned as is when the file doesn't exist

    Raises:
        json.JSONDecodeError: If the file isn't valid JSON
    """
    try:
        with open(path, encoding="utf-8") as file:
            return json.load(file)
    except FileNotFoundError:
        return default


def write_json_file(path: str, data: Any) -> None:
    """
    Write data as JSON, creating the parent folder if needed.

    The data goes to a sibling '.tmp' file that replaces the target
    once it is fully written.
    """
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)

    temp_path = path + ".tmp"
    with open(temp_path, "w", encoding="utf-8") as file:
        json.dump(data, file, indent=4)
    os.replace(temp_path, path)
    logger.debug(f'Wrote {path}')


def _search_folders(env_name: str, defaults: Iterable[str]) -> list:
    folders = []
    override = (os.getenv(env_name) or "").strip()
    if override:
        folders.append(override)
    folders.extend(defaults)
    return [os.path.expanduser(folder) for folder in folders]


def find_config_file(filename: str) -> str:
    """
    Find a config file in the config folders.

    Raises:
        FileNotFoundError: If no folder holds the file
    """
    folders = _search_folders(config.CONFIG_DIR_ENV, config.CONFIG_FOLDERS)
    for folder in folders:
        path = os.path.join(folder, filename)
        if os.path.isfile(path):
            return path
    raise FileNotFoundError(f"No {filename} found in {', '.join(folders)}")


def find_presets_folder() -> str:
    folders = _search_folders(config.PRESETS_DIR_ENV, config.PRESET_FOLDERS)
    for folder in folders:
        if os.path.isdir(folder):
            return folder
    raise FileNotFoundError(f"Could not find a preset folder in {', '.join(folders)}")


def get_data_folder() -> str:
    folder = (os.getenv(config.DATA_DIR_ENV) or "").strip() or config.DATA_FOLDER
    return os.path.expanduser(folder)


def load_option_schema(path: Optional[str] = None) -> OptionSchema:
    """Load the randomizer options."""
    path = path or find_config_file(config.OPTIONS_FILENAME)
    schema = OptionSchema.from_dict(read_json_file(path, default={}))
    logger.info(f'Loaded {len(schema)} randomizer options from {path}')
    return schema


def load_mystery(path: Optional[str] = None) -> Dict[str, MysterySetting]:
    """Load the mystery settings."""
    path = path or find_config_file(config.MYSTERY_SETTINGS_FILENAME)
    settings = load_mystery_settings(read_json_file(path, default={}))
    logger.info(f'Loaded {len(settings)} mystery settings from {path}')
    return settings


def preset_from_json(data: Any) -> Preset:
    """
    Build a preset from JSON data whose options are an object or a string.

    Raises:
        FormatError: If the data is not a valid preset
    """
    if not isinstance(data, dict):
        raise FormatError("Preset must be a JSON object.")

    options = data.get('options')
    try:
        if isinstance(options, str):
            return Preset.from_dict(data, options=parse_options_string(options))
        return Preset.from_dict(data)
    except FormatError:
        raise
    except ValueError as e:
        raise FormatError(f"Invalid preset: {e}")


def _read_preset_folder(folder: str) -> Dict[str, Preset]:
    presets = {}
    for filename in sorted(name for name in os.listdir(folder) if name.endswith('.json')):
        path = os.path.join(folder, filename)
        try:
            presets[os.path.splitext(filename)[0]] = preset_from_json(read_json_file(path))
        except (json.JSONDecodeError, FormatError) as e:
            logger.warning(f'Skipping preset {path}: {e}')
    return presets


def load_presets(folder: Optional[str] = None) -> Dict[str, Preset]:
    """
    Load every *.json preset in the preset folder, keyed by file name.

    Raises:
        FileNotFoundError: If there is no preset folder or it holds no presets
    """
    folder = folder or find_presets_folder()
    if not any(name.endswith('.json') for name in os.listdir(folder)):
        raise FileNotFoundError(f"No presets found in preset folder {folder}")

    presets = _read_preset_folder(folder)
    logger.info(f'Loaded {len(presets)} presets from {folder}')
    return presets


def load_challenges(folder: Optional[str] = None) -> Dict[str, Preset]:
    """
    Load the challenge presets, keyed by file name.

    Challenges are optional: without a challenge folder there are none.
    """
    if folder is None:
        folders = _search_folders(config.CHALLENGES_DIR_ENV, config.CHALLENGE_FOLDERS)
        folder = next((f for f in folders if os.path.isdir(f)), None)
        if folder is None:
            logger.warning(f'No challenge folder found in {", ".join(folders)}')
            return {}

    challenges = _read_preset_folder(folder)
    logger.info(f'Loaded {len(challenges)} challenges from {folder}')
    return challenges


def load_weekly(presets: Optional[Dict[str, Preset]] = None, filename: str = config.WEEKLY_FILENAME) -> Weekly:
    """Load the stored weekly, or an invalid weekly if none is stored."""
    data = read_json_file(os.path.join(get_data_folder(), filename))
    if not data:
        return Weekly.invalid()
    return Weekly.from_dict(data, presets)


def store_weekly(weekly: Weekly, filename: str = config.WEEKLY_FILENAME) -> None:
    """Write the weekly to the data folder."""
    write_json_file(os.path.join(get_data_folder(), filename), weekly.to_dict())


def load_challenge_timestamp() -> Optional[datetime]:
    """Return when the challenge was last rolled, or None if it never was."""
    path = os.path.join(get_data_folder(), config.CHALLENGE_STAMP_FILENAME)
    try:
        return datetime.fromtimestamp(os.path.getmtime(path), tz=timezone.utc)
    except FileNotFoundError:
        return None


def store_challenge_timestamp(now: Optional[datetime] = None) -> None:
    """Mark the challenge as rolled. The stamp file's modification time holds the time."""
    folder = get_data_folder()
    os.makedirs(folder, exist_ok=True)
    path = os.path.join(folder, config.CHALLENGE_STAMP_FILENAME)

    with open(path, "a", encoding="utf-8"):
        pass
    stamp = (now or datetime.now(timezone.utc)).timestamp()
    os.utime(path, (stamp, stamp))
