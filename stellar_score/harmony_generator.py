"""Chord progression and harmonic rhythm generator.

Progressions are produced by a first-order Markov chain over scale degrees.
The transition weights are fixed module constants so the harmonic behaviour
can be audited and tested: the tonic leans toward the subdominant, dominant
and submediant, the dominant resolves home with an occasional deceptive move
to vi, and so on.  Every progression starts on the tonic.

Chord qualities are not stored in the table.  Each degree takes the nearest
triad that fits the active scale, which keeps lydian, dorian or pentatonic
progressions inside their own colour.

Example
-------
>>> from stellar_score.seeded_rng import SeededRNG
>>> from stellar_score.theory import SCALES
>>> chords = generate_progression(SCALES["ionian"], 48, SeededRNG(7), 4)
>>> chords[0].root_midi, chords[0].quality
(48, 'major')
"""

# Design notes:
# - Degrees missing from small scales (pentatonic, whole tone) are dropped from
#   every row; a row left with no targets returns to the tonic.
# - ``seventh_probability`` only swaps a triad for its seventh variant, it never
#   changes which degree is chosen, so the root motion stays the same for a
#   given seed whatever the emotional colouring.

from __future__ import annotations

from typing import Dict, List, Tuple

from .seeded_rng import SeededRNG
from .theory import SEVENTH_VARIANTS, ChordVoicing, Scale, build_chord, degree_to_interval, triad_quality

__all__ = [
    "CHORD_TRANSITIONS",
    "CHORD_DURATIONS",
    "CHORD_DURATION_WEIGHTS",
    "chord_transition_row",
    "generate_progression",
    "chord_durations",
]

# Relative weights for moving from one scale degree (0 = I) to the next.
CHORD_TRANSITIONS: Dict[int, Dict[int, float]] = {
    0: {3: 3.0, 4: 3.0, 5: 2.5, 1: 1.5, 2: 0.5, 0: 0.5},  # I -> IV, V, vi
    1: {4: 4.0, 3: 1.5, 6: 1.0, 0: 0.5},                  # ii -> V
    2: {5: 3.0, 3: 2.0, 1: 1.0},                          # iii -> vi, IV
    3: {4: 3.0, 0: 2.5, 1: 1.5, 6: 0.5},                  # IV -> V, I
    4: {0: 5.0, 5: 1.5, 3: 0.5},                          # V -> I, deceptive vi
    5: {3: 3.0, 1: 2.5, 4: 1.5, 2: 1.0},                  # vi -> IV, ii
    6: {0: 4.0, 2: 1.5, 5: 0.5},                          # vii -> I
}

# Harmonic rhythm: beats per chord.  Four-beat chords dominate so most cycles
# stay 16 beats long.
CHORD_DURATIONS: Tuple[float, ...] = (4.0, 6.0, 8.0)
CHORD_DURATION_WEIGHTS: Tuple[float, ...] = (3.0, 1.0, 1.0)


def chord_transition_row(degree: int, scale_size: int) -> Dict[int, float]:
    """Return the usable transitions from ``degree`` in a scale of ``scale_size``.

    Targets beyond the scale are removed.  When nothing remains the row
    collapses to a certain return to the tonic.
    """

    row = CHORD_TRANSITIONS.get(degree % 7, {})
    usable = {target: weight for target, weight in row.items() if target < scale_size}
    return usable or {0: 1.0}


def generate_progression(
    scale: Scale,
    base_note: int,
    rng: SeededRNG,
    length: int = 4,
    *,
    seventh_probability: float = 0.0,
) -> List[ChordVoicing]:
    """Return ``length`` chords in ``scale`` rooted on ``base_note``.

    Parameters
    ----------
    scale:
        Scale supplying chord roots and qualities.
    base_note:
        MIDI pitch of the tonic chord's root.
    rng:
        Generator driving the Markov walk.
    length:
        Number of chords; must be positive.
    seventh_probability:
        Chance in ``[0, 1]`` that each chord uses its seventh variant.

    Raises
    ------
    ValueError
        If ``length`` is not positive or ``seventh_probability`` lies outside
        ``[0, 1]``.
    """

    if length <= 0:
        raise ValueError("length must be positive")
    if not 0.0 <= seventh_probability <= 1.0:
        raise ValueError("seventh_probability must be between 0 and 1")

    size = len(scale.intervals)
    degrees = [0]
    while len(degrees) < length:
        row = chord_transition_row(degrees[-1], size)
        degrees.append(rng.weighted_pick(list(row), list(row.values())))

    chords: List[ChordVoicing] = []
    for degree in degrees:
        quality = triad_quality(scale, degree)
        if rng.next() < seventh_probability:
            quality = SEVENTH_VARIANTS[quality]
        root = base_note + degree_to_interval(scale, degree)
        chords.append(build_chord(root, quality))
    return chords


def chord_durations(rng: SeededRNG, count: int) -> List[float]:
    """Return ``count`` chord lengths in beats."""

    if count <= 0:
        raise ValueError("count must be positive")
    return [rng.weighted_pick(CHORD_DURATIONS, CHORD_DURATION_WEIGHTS) for _ in range(count)]
