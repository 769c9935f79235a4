import logging
from pathlib import Path

import pytest

from turingsim.config import Settings
from turingsim.controller import MAX_STEPS


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "turingsim.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    settings = Settings.load()
    assert settings == Settings()
    assert settings.max_steps == MAX_STEPS
    assert settings.window == 9
    assert settings.level == logging.WARNING


def test_load(tmp_path: Path):
    path = write_config(tmp_path, '[turingsim]\nmax-steps = 500\nlog_level = "debug"\n\n[other]\nwindow = "x"\n')
    settings = Settings.load(path)
    assert settings.max_steps == 500
    assert settings.window == 9
    assert settings.log_level == "DEBUG"
    assert settings.level == logging.DEBUG


def test_load_without_section(tmp_path: Path):
    assert Settings.load(write_config(tmp_path, "title = 'nothing here'\n")) == Settings()


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        Settings.load(tmp_path / "missing.toml")


def test_unknown_key(tmp_path: Path):
    with pytest.raises(ValueError, match="Unknown configuration keys: speed"):
        Settings.load(write_config(tmp_path, "[turingsim]\nspeed = 3\n"))


@pytest.mark.parametrize(
    "values",
    [{"max_steps": "100"}, {"window": 2.5}, {"max_steps": True}, {"log_level": 10}],
)
def test_wrong_type(values: dict):
    with pytest.raises(TypeError, match="expected"):
        Settings(**values)


@pytest.mark.parametrize("values", [{"max_steps": 0}, {"window": -1}, {"log_level": "loud"}])
def test_invalid_value(values: dict):
    with pytest.raises(ValueError):
        Settings(**values)


def test_override():
    settings = Settings(window=3).override(max_steps=10, window=None, log_level="info")
    assert settings == Settings(max_steps=10, window=3, log_level="INFO")
