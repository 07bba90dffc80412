"""Utility functions for translating between note names and MIDI numbers.

This module groups helpers dealing with pitch representation.  The score
itself only stores MIDI numbers; names exist for logging, the CLI summary and
for callers that feed a note-name based synthesiser.

Example
-------
>>> from stellar_score.note_utils import note_to_midi, midi_to_note
>>> note_to_midi("C4")
60
>>> midi_to_note(61)
'C#4'
"""

# Modification Summary
# ---------------------
# * ``clamp_pitch`` and ``fold_into_register`` keep every generated pitch inside
#   the safe synthesiser register ``MIN_PITCH``-``MAX_PITCH``.  Folding moves a
#   note by whole octaves so its pitch class survives; clamping is reserved for
#   values that cannot be folded (non-integral input).
# * ``note_to_midi`` raises ``ValueError`` for malformed names and for values
#   outside ``0-127`` instead of silently clamping.

from __future__ import annotations

import logging
import re
from functools import lru_cache

from .theory import NOTE_TO_SEMITONE, NOTES

__all__ = [
    "MIN_PITCH",
    "MAX_PITCH",
    "note_to_midi",
    "midi_to_note",
    "get_interval",
    "clamp_pitch",
    "fold_into_register",
]

# Lowest and highest pitch any generator may emit.  Values outside this band
# are either inaudible on typical pad patches or painfully bright.
MIN_PITCH = 24
MAX_PITCH = 96


@lru_cache(maxsize=None)
def note_to_midi(note: str) -> int:
    """Convert a note string such as ``C#4`` into a MIDI number.

    Parameters
    ----------
    note:
        Note name including octave. Octaves may be negative or contain
        multiple digits. Flats are accepted (``Db4``).

    Returns
    -------
    int
        MIDI note number in the range ``0-127``.

    Raises
    ------
    ValueError
        If ``note`` is not properly formatted or if the computed MIDI value
        falls outside the allowed ``0-127`` range.
    """

    match = re.fullmatch(r"([A-Ga-g][#b]?)(-?\d+)", note)
    if not match:
        logging.error("Invalid note format: %s", note)
        raise ValueError(f"Invalid note format: {note}")

    note_name, octave_str = match.groups()
    # MIDI octave numbers are offset by one relative to scientific pitch
    # notation: C4 is 60, C-1 is 0.
    octave = int(octave_str) + 1
    note_name = note_name[0].upper() + note_name[1:]

    try:
        semitone = NOTE_TO_SEMITONE[note_name]
    except KeyError:
        logging.error("Unknown note name: %s", note_name)
        raise ValueError(f"Unknown note name: {note_name}")

    midi_val = semitone + octave * 12
    if not 0 <= midi_val <= 127:
        logging.error("MIDI value out of range: %s -> %d", note, midi_val)
        raise ValueError(
            f"Computed MIDI value {midi_val} out of range 0-127 for note {note}"
        )
    return midi_val


def midi_to_note(midi_note: int) -> str:
    """Convert a MIDI number into a note name using sharps.

    >>> midi_to_note(60)
    'C4'
    >>> midi_to_note(-1)
    Traceback (most recent call last):
        ...
    ValueError: MIDI note -1 out of range 0-127
    """

    if not 0 <= midi_note <= 127:
        raise ValueError(f"MIDI note {midi_note} out of range 0-127")
    octave = midi_note // 12 - 1
    return f"{NOTES[midi_note % 12]}{octave}"


def get_interval(note1: str, note2: str) -> int:
    """Return the interval between ``note1`` and ``note2`` in semitones."""

    return abs(note_to_midi(note1) - note_to_midi(note2))


def clamp_pitch(pitch: float, low: int = MIN_PITCH, high: int = MAX_PITCH) -> int:
    """Round ``pitch`` and clamp it into ``[low, high]``."""

    return int(max(low, min(high, round(pitch))))


def fold_into_register(pitch: int, low: int = MIN_PITCH, high: int = MAX_PITCH) -> int:
    """Move ``pitch`` by octaves until it lies within ``[low, high]``.

    The register must span at least one octave, otherwise some pitch classes
    could never fit; in that case the pitch is clamped instead.
    """

    if high - low < 11:
        return clamp_pitch(pitch, low, high)
    pitch = int(pitch)
    while pitch < low:
        pitch += 12
    while pitch > high:
        pitch -= 12
    return pitch
