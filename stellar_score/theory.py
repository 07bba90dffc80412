"""Static music-theory tables and pure helpers.

Scales are stored as semitone offsets from a root and chord qualities as
offsets from the chord root.  Nothing in this module is random and nothing is
mutated after import, so the tables double as documentation of the harmonic
vocabulary available to the generators.

Example
-------
>>> chord = build_chord(48, "minor")
>>> chord.pitches
(48, 51, 55)
>>> open_voicing(chord)
[48, 67, 75]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

__all__ = [
    "Scale",
    "ChordVoicing",
    "NOTE_TO_SEMITONE",
    "NOTES",
    "SCALES",
    "CHORD_QUALITIES",
    "SEVENTH_VARIANTS",
    "CONSONANT_INTERVALS",
    "get_scale",
    "build_chord",
    "open_voicing",
    "degree_to_interval",
    "degree_to_pitch",
    "pitch_to_degree",
    "triad_quality",
    "stable_degrees",
    "is_consonant",
]

# NOTE_TO_SEMITONE maps both sharp and flat spellings to the correct semitone
# offset within an octave so enharmonic names resolve identically.
NOTE_TO_SEMITONE: Dict[str, int] = {
    "C": 0,
    "B#": 0,
    "C#": 1,
    "Db": 1,
    "D": 2,
    "D#": 3,
    "Eb": 3,
    "E": 4,
    "Fb": 4,
    "E#": 5,
    "F": 5,
    "F#": 6,
    "Gb": 6,
    "G": 7,
    "G#": 8,
    "Ab": 8,
    "A": 9,
    "A#": 10,
    "Bb": 10,
    "B": 11,
    "Cb": 11,
}

NOTES: List[str] = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


@dataclass(frozen=True)
class Scale:
    """Named set of pitch classes expressed as offsets from the root."""

    name: str
    intervals: Tuple[int, ...]

    def __post_init__(self) -> None:
        if not self.intervals:
            raise ValueError(f"scale {self.name!r} has no intervals")
        if self.intervals[0] != 0:
            raise ValueError(f"scale {self.name!r} must start at 0")
        if any(b <= a for a, b in zip(self.intervals, self.intervals[1:])):
            raise ValueError(f"scale {self.name!r} intervals must strictly increase")
        if self.intervals[-1] >= 12:
            raise ValueError(f"scale {self.name!r} must stay within one octave")

    def __len__(self) -> int:
        return len(self.intervals)


@dataclass(frozen=True)
class ChordVoicing:
    """A chord realised as absolute MIDI pitches."""

    root_midi: int
    pitches: Tuple[int, ...]
    quality: str


# Diatonic modes plus the gapped and symmetric scales used for the coolest
# and most ambiguous stars.
SCALES: Dict[str, Scale] = {
    "ionian": Scale("ionian", (0, 2, 4, 5, 7, 9, 11)),
    "dorian": Scale("dorian", (0, 2, 3, 5, 7, 9, 10)),
    "phrygian": Scale("phrygian", (0, 1, 3, 5, 7, 8, 10)),
    "lydian": Scale("lydian", (0, 2, 4, 6, 7, 9, 11)),
    "mixolydian": Scale("mixolydian", (0, 2, 4, 5, 7, 9, 10)),
    "aeolian": Scale("aeolian", (0, 2, 3, 5, 7, 8, 10)),
    "locrian": Scale("locrian", (0, 1, 3, 5, 6, 8, 10)),
    "pentatonic": Scale("pentatonic", (0, 2, 4, 7, 9)),
    "pentatonic_minor": Scale("pentatonic_minor", (0, 3, 5, 7, 10)),
    "whole_tone": Scale("whole_tone", (0, 2, 4, 6, 8, 10)),
}

_SCALE_ALIASES = {"major": "ionian", "minor": "aeolian"}

CHORD_QUALITIES: Dict[str, Tuple[int, ...]] = {
    "major": (0, 4, 7),
    "minor": (0, 3, 7),
    "sus4": (0, 5, 7),
    "dim": (0, 3, 6),
    "aug": (0, 4, 8),
    "maj7": (0, 4, 7, 11),
    "min7": (0, 3, 7, 10),
    "dom7": (0, 4, 7, 10),
    "7sus4": (0, 5, 7, 10),
    "min7b5": (0, 3, 6, 10),
    "aug7": (0, 4, 8, 10),
}

# Seventh extension used for each triad quality when a progression asks for
# richer voicings.
SEVENTH_VARIANTS: Dict[str, str] = {
    "major": "maj7",
    "minor": "min7",
    "sus4": "7sus4",
    "dim": "min7b5",
    "aug": "aug7",
}

# Intervals (mod 12) heard as consonant between successive melody notes:
# unison/octave, thirds, fourth, fifth and sixths.
CONSONANT_INTERVALS = frozenset({0, 3, 4, 5, 7, 8, 9})

# Triads checked in order when deriving a chord quality from a scale.
_TRIAD_SEARCH_ORDER = ("major", "minor", "sus4", "dim", "aug")


def get_scale(name: str) -> Scale:
    """Return the scale called ``name`` (case-insensitive, aliases allowed)."""

    key = name.strip().lower()
    key = _SCALE_ALIASES.get(key, key)
    try:
        return SCALES[key]
    except KeyError:
        raise ValueError(f"Unknown scale: {name}") from None


def build_chord(root: int, quality: str) -> ChordVoicing:
    """Return the close-position chord of ``quality`` built on ``root``."""

    try:
        intervals = CHORD_QUALITIES[quality]
    except KeyError:
        raise ValueError(f"Unknown chord quality: {quality}") from None
    return ChordVoicing(root, tuple(root + i for i in intervals), quality)


def open_voicing(chord: ChordVoicing, octave_spread: int = 1) -> List[int]:
    """Spread ``chord`` across at least two octaves.

    The root stays in the bass, the fifth moves up ``octave_spread`` octaves
    and the third sits one octave above the fifth.  Any seventh shares the
    fifth's octave.  Close-position triads in a low register sound muddy, so
    pads and strings always use this layout.
    """

    if octave_spread < 1:
        raise ValueError("octave_spread must be at least 1")
    if len(chord.pitches) < 3:
        raise ValueError("open_voicing requires at least a triad")

    root, third, fifth = chord.pitches[0], chord.pitches[1], chord.pitches[2]
    voiced = [
        root,
        fifth + 12 * octave_spread,
        third + 12 * (octave_spread + 1),
    ]
    voiced.extend(p + 12 * octave_spread for p in chord.pitches[3:])
    return voiced


def degree_to_interval(scale: Scale, degree: int) -> int:
    """Return the semitone offset of ``degree``, wrapping across octaves.

    Degree ``len(scale)`` is the octave above the root and negative degrees
    descend below it.
    """

    size = len(scale.intervals)
    octave, index = divmod(degree, size)
    return scale.intervals[index] + 12 * octave


def degree_to_pitch(scale: Scale, base_note: int, degree: int) -> int:
    """Return the absolute pitch of ``degree`` above ``base_note``."""

    return base_note + degree_to_interval(scale, degree)


def pitch_to_degree(scale: Scale, base_note: int, pitch: int) -> int:
    """Return the absolute scale degree closest to ``pitch`` from below.

    Pitches outside the scale snap to the nearest lower scale tone so the
    result can always be fed back into :func:`degree_to_pitch`.
    """

    octave, pitch_class = divmod(pitch - base_note, 12)
    index = 0
    for i, interval in enumerate(scale.intervals):
        if interval <= pitch_class:
            index = i
    return octave * len(scale.intervals) + index


def triad_quality(scale: Scale, degree: int) -> str:
    """Return the first triad quality whose tones all belong to ``scale``.

    Gapped scales such as the pentatonic do not contain a full triad on every
    degree; those fall back to a triad chosen by the third alone.
    """

    pitch_classes = set(scale.intervals)
    root = degree_to_interval(scale, degree) % 12
    for quality in _TRIAD_SEARCH_ORDER:
        if all((root + i) % 12 in pitch_classes for i in CHORD_QUALITIES[quality]):
            return quality
    return "minor" if (root + 3) % 12 in pitch_classes else "major"


def stable_degrees(scale: Scale) -> Tuple[int, ...]:
    """Return the indices of the root, third and fifth within ``scale``.

    The third is whichever of the minor or major third the scale contains;
    scales lacking a perfect fifth (whole tone) fall back to the tone nearest
    it.  Duplicates are removed while keeping root-third-fifth order.
    """

    intervals = scale.intervals
    third = next((i for i, v in enumerate(intervals) if v in (3, 4)), min(2, len(intervals) - 1))
    fifth = min(range(len(intervals)), key=lambda i: (abs(intervals[i] - 7), i))
    result: List[int] = []
    for idx in (0, third, fifth):
        if idx not in result:
            result.append(idx)
    return tuple(result)


def is_consonant(interval: int) -> bool:
    """Return ``True`` when ``interval`` (any size) is consonant mod 12."""

    return abs(interval) % 12 in CONSONANT_INTERVALS
