"""Deterministic procedural music from star parameters.

``stellar_score`` turns one catalogue star and a numeric seed into a fully
specified :class:`~stellar_score.score.Score`: scale and mode, chord
progression, a melody refined by a small genetic algorithm, and a set of
looping voices whose cycle lengths never line up.  Everything is computed
from a single seeded Mulberry32 generator, so the same star and seed yield
the same score on every run and platform.

Example
-------
>>> from stellar_score import generate_score
>>> score = generate_score({"id": "sirius", "ra": 101.29, "dec": -16.72, "mag": -1.46, "temp": 9940}, seed=42)
>>> 52 <= score.config.tempo <= 80
True

Modification Summary
--------------------
* The package namespace re-exports the public entry points; implementation
  lives in the submodules listed in ``__all__`` below.
* ``__version__`` is the single source of the release number.
"""

__version__ = "0.1.0"

from .seeded_rng import SeededRNG, star_to_seed
from .star_mapping import GeneratorConfig, StarRecord, map_star
from .settings import GenerationSettings, load_settings, save_settings
from .score import Score, generate_score
from .midi_io import create_midi_file, score_to_dict, write_score_json

__all__ = [
    "__version__",
    "SeededRNG",
    "star_to_seed",
    "StarRecord",
    "GeneratorConfig",
    "map_star",
    "GenerationSettings",
    "load_settings",
    "save_settings",
    "Score",
    "generate_score",
    "score_to_dict",
    "write_score_json",
    "create_midi_file",
]
