from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Self

from turingsim.controller import MAX_STEPS

SECTION = "turingsim"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    max_steps: int = MAX_STEPS
    window: int = 9
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        for f in fields(self):
            val = getattr(self, f.name)
            expected = type(getattr(Settings, f.name))
            if not isinstance(val, expected) or isinstance(val, bool):
                raise TypeError(f"Config key '{f.name}' expected {expected.__name__}, got {type(val).__name__}.")
        if self.max_steps < 1:
            raise ValueError(f"Config key 'max_steps' has to be positive, got {self.max_steps}.")
        if self.window < 0:
            raise ValueError(f"Config key 'window' can't be negative, got {self.window}.")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Config key 'log_level' has to be one of {', '.join(LOG_LEVELS)}, got {self.log_level}.")
        object.__setattr__(self, "log_level", self.log_level.upper())

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Self:
        data = {key.replace("-", "_"): val for key, val in data.items()}
        if unknown := sorted(set(data) - {f.name for f in fields(cls)}):
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def load(cls, path: Path | None = None) -> Self:
        """Read the ``[turingsim]`` table of a TOML file, falling back to defaults."""
        if path is None:
            return cls()
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found at: {path}")
        data = tomllib.loads(path.read_text(encoding="utf-8"))
        return cls.from_mapping(data.get(SECTION, {}))

    def override(self, **values: Any) -> Self:
        return replace(self, **{key: val for key, val in values.items() if val is not None})

    @property
    def level(self) -> int:
        return logging.getLevelNamesMapping()[self.log_level]
