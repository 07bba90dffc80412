"""Generation settings and their JSON persistence.

Settings tune *how* a score is composed (phrase length, which melody
generator runs, genetic-algorithm sizes) but never which star is rendered or
with which seed.  They are stored as a flat JSON object in the user's home
directory so command line runs can share preferences.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "GenerationSettings",
    "MELODY_STRATEGIES",
    "default_settings_path",
    "settings_from_dict",
    "load_settings",
    "save_settings",
]

MELODY_STRATEGIES = ("markov", "motif")

SETTINGS_ENV_VAR = "STELLAR_SCORE_SETTINGS_FILE"


def default_settings_path() -> Path:
    """Return the settings file location.

    The file lives in the user's home directory so settings persist between
    runs; ``STELLAR_SCORE_SETTINGS_FILE`` points it somewhere else.
    """

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".stellar_score.json"


@dataclass
class GenerationSettings:
    """Knobs for a single :func:`~stellar_score.score.generate_score` call."""

    phrase_length: int = 16
    progression_length: int = 4
    melody_strategy: str = "markov"
    evolve: bool = True
    population_size: int = 12
    generations: int = 8
    crossover_rate: float = 0.7
    tournament_size: int = 3
    elite_count: int = 2

    def validate(self) -> None:
        """Raise ``ValueError`` when any field is outside its usable range."""

        if self.phrase_length < 1:
            raise ValueError("phrase_length must be positive")
        if self.progression_length < 1:
            raise ValueError("progression_length must be positive")
        if self.melody_strategy not in MELODY_STRATEGIES:
            raise ValueError(
                f"melody_strategy must be one of {', '.join(MELODY_STRATEGIES)}"
            )
        if self.population_size < 2:
            raise ValueError("population_size must be at least 2")
        if self.generations < 0:
            raise ValueError("generations must be zero or positive")
        if not 0.0 <= self.crossover_rate <= 1.0:
            raise ValueError("crossover_rate must be between 0 and 1")
        if self.tournament_size < 1:
            raise ValueError("tournament_size must be positive")
        if not 0 <= self.elite_count < self.population_size:
            raise ValueError("elite_count must be smaller than population_size")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _matches_type(value: Any, default: Any) -> bool:
    # bool is an int subclass, so it is only accepted for bool fields.
    if isinstance(default, bool) or isinstance(value, bool):
        return isinstance(value, bool) and isinstance(default, bool)
    if isinstance(default, float):
        return isinstance(value, (int, float))
    return isinstance(value, type(default))


def settings_from_dict(data: Mapping[str, Any]) -> GenerationSettings:
    """Build validated settings from ``data``.

    Missing keys take their defaults.  Unknown keys and values of the wrong
    type raise ``ValueError`` so a misspelt option or a quoted number is
    reported instead of silently ignored.
    """

    defaults = {f.name: f.default for f in fields(GenerationSettings)}
    unknown = sorted(set(data) - set(defaults))
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")
    for key, value in data.items():
        if not _matches_type(value, defaults[key]):
            raise ValueError(
                f"Setting {key!r} must be {type(defaults[key]).__name__}, got {type(value).__name__}"
            )
    settings = GenerationSettings(**dict(data))
    settings.validate()
    return settings


def load_settings(path: Optional[Path] = None) -> GenerationSettings:
    """Load saved settings from ``path`` if it exists.

    @param path (Path): Location of the settings file. Defaults to
        :func:`default_settings_path`.
    @returns GenerationSettings: Loaded settings, or defaults when the file
        is missing or unreadable.
    """

    path = Path(path) if path is not None else default_settings_path()
    if not path.is_file():
        return GenerationSettings()
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        logging.error(f"Could not load settings: {exc}")
        return GenerationSettings()
    if not isinstance(data, dict):
        logging.error(f"Could not load settings: {path} does not contain an object")
        return GenerationSettings()
    return settings_from_dict(data)


def save_settings(settings: GenerationSettings, path: Optional[Path] = None) -> None:
    """Save ``settings`` to ``path`` as JSON.

    @param settings (GenerationSettings): Options to be persisted.
    @param path (Path): Destination file path.
    @returns None: Function does not return a value.
    """

    settings.validate()
    path = Path(path) if path is not None else default_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(settings.to_dict(), fh, indent=2)
