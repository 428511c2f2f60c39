"""
Pytest configuration and shared fixtures.
"""
from pathlib import Path

import pytest

import config
from services import storage
from services.race_factory import RaceFactory

ROOT = Path(__file__).resolve().parent.parent
CONFIG_DIR = ROOT / "config"
PRESETS_DIR = ROOT / "presets"
CHALLENGES_DIR = ROOT / "challenges"


@pytest.fixture
def schema():
    """The option schema shipped with the bot."""
    return storage.load_option_schema(str(CONFIG_DIR / config.OPTIONS_FILENAME))


@pytest.fixture
def mystery_settings():
    """The mystery settings shipped with the bot."""
    return storage.load_mystery(str(CONFIG_DIR / config.MYSTERY_SETTINGS_FILENAME))


@pytest.fixture
def presets():
    """The presets shipped with the bot."""
    return storage.load_presets(str(PRESETS_DIR))


@pytest.fixture
def challenges():
    """The challenge presets shipped with the bot."""
    return storage.load_challenges(str(CHALLENGES_DIR))


@pytest.fixture
def factory(schema, presets, mystery_settings, challenges):
    return RaceFactory(schema, presets, mystery_settings, challenges)


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point weekly and challenge storage at a temporary folder."""
    monkeypatch.setenv(config.DATA_DIR_ENV, str(tmp_path))
    return tmp_path
