"""Melody generation over the star's scale.

Two generators share the :class:`Phrase` container:

``generate_phrase``
    The primary generator.  A first-order Markov walk over scale degrees
    whose transition matrix favours steps, then skips, then repeated notes,
    and only rarely leaps.  The matrix is rebuilt for every score with a
    little seeded jitter so two stars in the same mode still wander
    differently.

``generate_motif_phrase``
    A short stepwise motif that is repeated and transposed by one scale
    degree up or down until the phrase is full.  It produces more obviously
    "composed" lines and is selected with ``melody_strategy="motif"``.

Both return pitches as MIDI numbers inside the safe register, durations in
beats and velocities as floats.

Example
-------
>>> from stellar_score.seeded_rng import SeededRNG
>>> from stellar_score.star_mapping import StarRecord, map_star
>>> config = map_star(StarRecord("sol", 0.0, 0.0, 4.8, temp=5800))
>>> phrase = generate_phrase(config, SeededRNG(1), 8)
>>> len(phrase.notes)
8
"""

# Modification Summary
# ---------------------
# * Velocities are floats in ``[0.4, 0.7]`` with a ``0.1`` accent on notes that
#   start a four-beat bar, so melody velocities never exceed ``0.8``.
# * Degree draws use the cumulative row of the numpy matrix directly rather
#   than rebuilding weight lists for every note.

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

import numpy as np

from .note_utils import clamp_pitch
from .seeded_rng import SeededRNG
from .star_mapping import GeneratorConfig
from .theory import Scale, degree_to_interval, stable_degrees

__all__ = [
    "Phrase",
    "DURATIONS",
    "DURATION_WEIGHTS",
    "build_transition_matrix",
    "generate_phrase",
    "generate_motif_phrase",
    "PHRASE_GENERATORS",
]

# Note lengths in beats and their relative likelihood.  Half, one and two
# beat values dominate; the long values give the line room to breathe.
DURATIONS = (0.5, 1.0, 1.5, 2.0, 3.0, 4.0)
DURATION_WEIGHTS = (2.0, 3.0, 2.0, 3.0, 1.0, 0.5)

# Transition weights by scale-degree distance: repeat, step, skip, leap.
REPEAT_WEIGHT = 2.0
STEP_WEIGHT = 5.0
SKIP_WEIGHT = 3.0
LEAP_WEIGHT = 1.0
MATRIX_JITTER = 0.5

OCTAVE_JUMP_PROBABILITY = 0.25
VELOCITY_RANGE = (0.4, 0.7)
DOWNBEAT_ACCENT = 0.1
BEATS_PER_BAR = 4

# Root, third and fifth are the preferred opening notes.
START_WEIGHTS = (3.0, 2.0, 2.0)


@dataclass
class Phrase:
    """Monophonic line produced by a melody generator.

    ``notes`` are MIDI pitches, ``durations`` are beats and ``velocities`` are
    floats in ``[0, 1]``.  ``fitness`` is filled in by the phrase evolver.
    """

    notes: List[int]
    durations: List[float]
    velocities: List[float]
    fitness: float = 0.0

    def __post_init__(self) -> None:
        if not len(self.notes) == len(self.durations) == len(self.velocities):
            raise ValueError("notes, durations and velocities must have equal length")

    def __len__(self) -> int:
        return len(self.notes)

    @property
    def total_beats(self) -> float:
        return float(sum(self.durations))

    def copy(self) -> "Phrase":
        """Return an independent copy; no list is shared with ``self``."""

        return Phrase(
            list(self.notes),
            list(self.durations),
            list(self.velocities),
            self.fitness,
        )


def build_transition_matrix(scale: Scale, rng: SeededRNG) -> np.ndarray:
    """Return a row-stochastic ``n x n`` matrix of degree transitions.

    Weights fall off with the plain degree distance ``abs(i - j)``.  Degrees
    map to pitches without wrapping, so the top degree and the root are a
    leap apart.  Every entry receives ``0.5 * rng.next()`` of jitter before
    the rows are normalised.
    """

    size = len(scale.intervals)
    if size == 0:
        raise ValueError("scale must contain at least one interval")

    matrix = np.empty((size, size), dtype=float)
    for i in range(size):
        for j in range(size):
            distance = abs(i - j)
            if distance == 0:
                weight = REPEAT_WEIGHT
            elif distance == 1:
                weight = STEP_WEIGHT
            elif distance == 2:
                weight = SKIP_WEIGHT
            else:
                weight = LEAP_WEIGHT
            matrix[i, j] = weight + MATRIX_JITTER * rng.next()
    return matrix / matrix.sum(axis=1, keepdims=True)


def _next_degree(row_cumulative: np.ndarray, rng: SeededRNG) -> int:
    index = int(np.searchsorted(row_cumulative, rng.next(), side="right"))
    return min(index, len(row_cumulative) - 1)


def _start_degree(scale: Scale, rng: SeededRNG) -> int:
    stable = stable_degrees(scale)
    return rng.weighted_pick(stable, START_WEIGHTS[: len(stable)])


def _velocity(beat: float, rng: SeededRNG) -> float:
    """Return a velocity, accented when ``beat`` starts a bar."""

    velocity = rng.next_float(*VELOCITY_RANGE)
    if abs(beat % BEATS_PER_BAR) < 1e-9:
        velocity += DOWNBEAT_ACCENT
    return velocity


def _check_request(config: GeneratorConfig, length: int) -> None:
    if length <= 0:
        raise ValueError("length must be positive")
    if not config.scale.intervals:
        raise ValueError("scale must contain at least one interval")


def generate_phrase(config: GeneratorConfig, rng: SeededRNG, length: int = 16) -> Phrase:
    """Return a ``length`` note phrase from a Markov walk over the scale.

    @param config (GeneratorConfig): Star-derived parameters (scale, base
        note and melody register).
    @param rng (SeededRNG): Source of every random decision.
    @param length (int): Number of notes; must be positive.
    @returns Phrase: Generated line with ``fitness`` left at ``0.0``.
    """

    _check_request(config, length)
    scale = config.scale
    anchor = config.base_note + config.register_offset
    cumulative = np.cumsum(build_transition_matrix(scale, rng), axis=1)

    degree = _start_degree(scale, rng)
    notes: List[int] = []
    durations: List[float] = []
    velocities: List[float] = []
    beat = 0.0
    for i in range(length):
        if i > 0:
            degree = _next_degree(cumulative[degree], rng)
        octave_shift = 12 if rng.next() < OCTAVE_JUMP_PROBABILITY else 0
        notes.append(clamp_pitch(anchor + degree_to_interval(scale, degree) + octave_shift))
        duration = rng.weighted_pick(DURATIONS, DURATION_WEIGHTS)
        durations.append(duration)
        velocities.append(_velocity(beat, rng))
        beat += duration
    return Phrase(notes, durations, velocities)


def generate_motif_phrase(config: GeneratorConfig, rng: SeededRNG, length: int = 16) -> Phrase:
    """Return a phrase developed from one short motif.

    A three or four note stepwise motif starts on a stable degree.  The motif
    and its rhythm are then restated, each time transposed one scale degree up
    or down from the original, until ``length`` notes exist.
    """

    _check_request(config, length)
    scale = config.scale
    anchor = config.base_note + config.register_offset

    motif_length = rng.next_int(3, 4)
    motif = [_start_degree(scale, rng)]
    while len(motif) < motif_length:
        motif.append(motif[-1] + rng.pick((-1, 1)))
    rhythm = [rng.weighted_pick(DURATIONS, DURATION_WEIGHTS) for _ in motif]

    degrees: List[int] = list(motif)
    durations: List[float] = list(rhythm)
    while len(degrees) < length:
        shift = rng.pick((-1, 1))
        degrees.extend(d + shift for d in motif)
        durations.extend(rhythm)
    degrees = degrees[:length]
    durations = durations[:length]

    notes = [clamp_pitch(anchor + degree_to_interval(scale, d)) for d in degrees]
    velocities: List[float] = []
    beat = 0.0
    for duration in durations:
        velocities.append(_velocity(beat, rng))
        beat += duration
    return Phrase(notes, durations, velocities)


PHRASE_GENERATORS: Dict[str, Callable[[GeneratorConfig, SeededRNG, int], Phrase]] = {
    "markov": generate_phrase,
    "motif": generate_motif_phrase,
}
