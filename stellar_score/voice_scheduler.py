"""Eno-style looping voices with cycle lengths that never line up.

Each voice is a short loop of one to four notes placed at fixed fractions of
its cycle.  Voice cycles are derived from one seeded base length multiplied by
:data:`CYCLE_RATIOS`, values chosen so that no two of them (nor their
quotients) sit near a small whole-number ratio.  The loops therefore drift
against each other and the combined texture does not repeat within any
listening session.

Example
-------
>>> are_commensurate(12.0, 18.0)
True
>>> are_commensurate(12.0, 12.0 * 1.14)
False
"""

# Design notes:
# - Every cycle gets a jitter of at most +/-0.25%.  The ratios are spaced far
#   enough from the small-ratio set that jitter alone cannot make two voices
#   commensurate, but a jittered cycle that does land inside the tolerance is
#   replaced by its exact base ratio.
# - Voices are described as loops; ``flatten_loops`` is the only place that
#   turns them into absolute note events.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .melodic_generator import Phrase
from .note_utils import fold_into_register
from .seeded_rng import SeededRNG
from .star_mapping import GeneratorConfig
from .theory import ChordVoicing, pitch_to_degree, stable_degrees

__all__ = [
    "VOICES",
    "VOICE_ROLES",
    "CYCLE_RATIOS",
    "SMALL_RATIOS",
    "VoiceLoop",
    "NoteEvent",
    "are_commensurate",
    "max_loop_notes",
    "schedule_voices",
    "flatten_loops",
]

VOICES: Tuple[str, ...] = ("pad", "melody", "shimmer", "bass")

# Role of the i-th scheduled voice.
VOICE_ROLES: Tuple[str, ...] = ("bass", "pad", "melody", "shimmer", "pad")

CYCLE_RATIOS: Tuple[float, ...] = (1.0, 1.14, 1.59, 1.77, 1.83)
BASE_CYCLE_RANGE = (12.0, 16.0)
CYCLE_JITTER = 0.0025

# Every ratio p:q >= 1 with p, q <= 6.  Two loops whose cycles sit within the
# relative tolerance of one of these are heard as in sync.
SMALL_RATIOS: Tuple[float, ...] = tuple(
    sorted({p / q for p in range(1, 7) for q in range(1, 7) if p >= q})
)
COMMENSURATE_TOLERANCE = 0.01

# Busiest loop a fully dense star can get; the sparsest always gets one note.
MAX_LOOP_NOTES = 4

# Octave placement of each role's notes relative to the base note.
ROLE_OCTAVE_OFFSETS: Dict[str, int] = {"bass": 0, "pad": 12, "melody": 0, "shimmer": 36}

# Pad weights for root, fifth and third; other scale tones weigh 1.
_PAD_WEIGHTS = {0: 4.0, 7: 3.0, 3: 2.5, 4: 2.5}


@dataclass(frozen=True)
class VoiceLoop:
    """A repeating voice.  ``note_positions`` are sorted fractions in ``[0, 1)``."""

    voice: str
    note_pitches: Tuple[int, ...]
    note_positions: Tuple[float, ...]
    cycle_duration_seconds: float
    velocity: float
    sustain_seconds: float


@dataclass(frozen=True)
class NoteEvent:
    """A single note with absolute timing in seconds."""

    pitch: int
    onset: float
    duration: float
    velocity: float
    voice: str


def are_commensurate(a: float, b: float, tolerance: float = COMMENSURATE_TOLERANCE) -> bool:
    """Return ``True`` when ``a / b`` is within ``tolerance`` of a small ratio."""

    if a <= 0 or b <= 0:
        raise ValueError("cycle lengths must be positive")
    ratio = max(a, b) / min(a, b)
    return any(abs(ratio - r) / r <= tolerance for r in SMALL_RATIOS)


def max_loop_notes(density: float) -> int:
    """Return the most notes one loop may hold at ``density``."""

    return min(MAX_LOOP_NOTES, max(1, math.floor(density * (MAX_LOOP_NOTES - 1) + 0.5) + 1))


def _cycle_lengths(count: int, rng: SeededRNG) -> List[float]:
    base = rng.next_float(*BASE_CYCLE_RANGE)
    cycles: List[float] = []
    for ratio in CYCLE_RATIOS[:count]:
        jittered = base * ratio * (1.0 + rng.next_float(-CYCLE_JITTER, CYCLE_JITTER))
        if any(are_commensurate(jittered, other) for other in cycles):
            logging.warning("Cycle %.3fs would sync with another voice; using exact ratio", jittered)
            jittered = base * ratio
        cycles.append(jittered)
    return cycles


def _pitch_pool(
    role: str,
    config: GeneratorConfig,
    progression: Sequence[ChordVoicing],
    phrase: Phrase,
) -> Tuple[List[int], List[float]]:
    """Return candidate pitches for ``role`` and their weights."""

    scale = config.scale
    offset = ROLE_OCTAVE_OFFSETS.get(role, 0)
    if role == "bass":
        roots = sorted({fold_into_register(c.root_midi) for c in progression})
        return roots, [1.0] * len(roots)
    if role == "melody":
        anchor = config.base_note + config.register_offset
        stable = stable_degrees(scale)
        pitches = sorted(set(phrase.notes))
        weights = [
            2.0 if pitch_to_degree(scale, anchor, p) % len(scale) in stable else 1.0
            for p in pitches
        ]
        return pitches, weights
    pitches = [fold_into_register(config.base_note + offset + i) for i in scale.intervals]
    if role == "pad":
        return pitches, [_PAD_WEIGHTS.get(i, 1.0) for i in scale.intervals]
    return pitches, [1.0] * len(pitches)


def schedule_voices(
    config: GeneratorConfig,
    progression: Sequence[ChordVoicing],
    phrase: Phrase,
    rng: SeededRNG,
) -> List[VoiceLoop]:
    """Return between three and five voice loops for one score.

    Each loop holds between one and :func:`max_loop_notes` notes, so denser
    stars get busier loops.

    Raises
    ------
    RuntimeError
        If the resulting voice set is empty or a voice ended up without
        notes, which would leave the texture silent.
    """

    count = rng.next_int(3, 5)
    ceiling = max_loop_notes(config.density)
    cycles = _cycle_lengths(count, rng)
    loops: List[VoiceLoop] = []
    for index, cycle in enumerate(cycles):
        role = VOICE_ROLES[index]
        pool, weights = _pitch_pool(role, config, progression, phrase)
        if not pool:
            raise RuntimeError(f"voice {role!r} has no candidate pitches")
        note_count = rng.next_int(1, ceiling)
        placed = []
        for i in range(note_count):
            pitch = rng.weighted_pick(pool, weights)
            position = (i + 0.5 + 0.3 * rng.next()) / note_count
            placed.append((min(0.9, max(0.1, position)), pitch))
        placed.sort()
        loops.append(
            VoiceLoop(
                voice=role,
                note_pitches=tuple(p for _, p in placed),
                note_positions=tuple(pos for pos, _ in placed),
                cycle_duration_seconds=cycle,
                velocity=min(0.7, max(0.4, 0.6 - index * 0.05)),
                sustain_seconds=cycle / note_count * (0.5 + 0.4 * config.spaciousness),
            )
        )

    if not loops:
        raise RuntimeError("voice scheduling produced no voices")
    if any(not loop.note_pitches for loop in loops):
        raise RuntimeError("voice scheduling produced a voice without notes")
    logging.debug("Voice cycles: %s", ", ".join(f"{loop.voice}={loop.cycle_duration_seconds:.2f}s" for loop in loops))
    return loops


def flatten_loops(loops: Sequence[VoiceLoop], window_seconds: float) -> List[NoteEvent]:
    """Expand ``loops`` into note events starting before ``window_seconds``.

    Each loop repeats at whole multiples of its own cycle length.
    """

    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")
    events: List[NoteEvent] = []
    for loop in loops:
        if not loop.note_pitches:
            raise RuntimeError(f"voice {loop.voice!r} has no notes")
        repeat = 0
        while repeat * loop.cycle_duration_seconds < window_seconds:
            start = repeat * loop.cycle_duration_seconds
            for pitch, position in zip(loop.note_pitches, loop.note_positions):
                onset = start + position * loop.cycle_duration_seconds
                if onset < window_seconds:
                    events.append(NoteEvent(pitch, onset, loop.sustain_seconds, loop.velocity, loop.voice))
            repeat += 1
    return events
