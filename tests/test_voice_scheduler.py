"""Tests for Eno-style voice scheduling."""

import itertools
import sys
from dataclasses import replace
from fractions import Fraction
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from stellar_score.harmony_generator import generate_progression  # noqa: E402
from stellar_score.melodic_generator import generate_phrase  # noqa: E402
from stellar_score.note_utils import MAX_PITCH, MIN_PITCH  # noqa: E402
from stellar_score.seeded_rng import SeededRNG  # noqa: E402
from stellar_score.star_mapping import StarRecord, map_star  # noqa: E402
from stellar_score.voice_scheduler import (  # noqa: E402
    VOICE_ROLES,
    VoiceLoop,
    are_commensurate,
    flatten_loops,
    max_loop_notes,
    schedule_voices,
)

CONFIG = map_star(StarRecord("vega", 279.23, 38.78, 0.03, dist=7.68, temp=9602))
PROGRESSION = generate_progression(CONFIG.scale, CONFIG.base_note, SeededRNG(1), 4)
PHRASE = generate_phrase(CONFIG, SeededRNG(2), 16)

SIMPLE_FRACTIONS = sorted({Fraction(p, q) for p in range(1, 7) for q in range(1, 7) if p >= q})


def test_are_commensurate():
    """Small whole-number ratios are detected, the cycle ratios are not."""

    assert are_commensurate(12.0, 18.0)
    assert are_commensurate(12.0, 24.1)
    assert are_commensurate(10.0, 10.05)
    assert are_commensurate(12.0, 15.05)
    assert are_commensurate(10.0, 12.0)
    assert not are_commensurate(12.0, 12.0 * 1.14)
    assert not are_commensurate(12.0, 12.0 * 1.59)
    with pytest.raises(ValueError):
        are_commensurate(0.0, 12.0)


def test_cycles_never_commensurate_across_seeds():
    """No two voices in a score share a small-ratio cycle relationship."""

    for seed in range(60):
        loops = schedule_voices(CONFIG, PROGRESSION, PHRASE, SeededRNG(seed))
        cycles = [loop.cycle_duration_seconds for loop in loops]
        for a, b in itertools.combinations(cycles, 2):
            ratio = max(a, b) / min(a, b)
            for small in SIMPLE_FRACTIONS:
                assert abs(ratio - small) / small > 0.01, (seed, ratio, small)


def test_voice_structure():
    """Voice count, roles, positions, pitches and velocities are well formed."""

    for seed in range(30):
        loops = schedule_voices(CONFIG, PROGRESSION, PHRASE, SeededRNG(seed))
        assert 3 <= len(loops) <= 5
        for index, loop in enumerate(loops):
            assert loop.voice == VOICE_ROLES[index]
            assert 1 <= len(loop.note_pitches) <= max_loop_notes(CONFIG.density)
            assert len(loop.note_positions) == len(loop.note_pitches)
            assert list(loop.note_positions) == sorted(loop.note_positions)
            assert all(0.1 <= p <= 0.9 for p in loop.note_positions)
            assert all(MIN_PITCH <= p <= MAX_PITCH for p in loop.note_pitches)
            assert 0.4 <= loop.velocity <= 0.7
            assert 12.0 * 0.99 <= loop.cycle_duration_seconds <= 16.0 * 1.83 * 1.01
            assert loop.sustain_seconds > 0


def test_max_loop_notes_follows_density():
    """Sparse stars get short loops, dense stars busier ones."""

    assert max_loop_notes(0.0) == 1
    assert max_loop_notes(0.2) == 2
    assert max_loop_notes(0.7) == 3
    assert max_loop_notes(1.0) == 4


def test_denser_config_schedules_more_notes():
    """Raising density alone raises the number of loop notes and events."""

    sparse = replace(CONFIG, density=0.2)
    dense = replace(CONFIG, density=0.7)
    sparse_notes = dense_notes = 0
    sparse_events = dense_events = 0
    for seed in range(30):
        sparse_loops = schedule_voices(sparse, PROGRESSION, PHRASE, SeededRNG(seed))
        dense_loops = schedule_voices(dense, PROGRESSION, PHRASE, SeededRNG(seed))
        sparse_notes += sum(len(loop.note_pitches) for loop in sparse_loops)
        dense_notes += sum(len(loop.note_pitches) for loop in dense_loops)
        sparse_events += len(flatten_loops(sparse_loops, 60.0))
        dense_events += len(flatten_loops(dense_loops, 60.0))
        assert all(len(loop.note_pitches) <= 2 for loop in sparse_loops)
    assert dense_notes > sparse_notes
    assert dense_events > sparse_events


def test_bass_voice_uses_chord_roots():
    """The bass loop only plays roots of the progression."""

    roots = {c.root_midi % 12 for c in PROGRESSION}
    for seed in range(10):
        bass = schedule_voices(CONFIG, PROGRESSION, PHRASE, SeededRNG(seed))[0]
        assert {p % 12 for p in bass.note_pitches} <= roots


def test_scheduling_is_deterministic():
    """Equal seeds produce equal loops."""

    a = schedule_voices(CONFIG, PROGRESSION, PHRASE, SeededRNG(8))
    b = schedule_voices(CONFIG, PROGRESSION, PHRASE, SeededRNG(8))
    assert a == b


def test_empty_progression_is_contract_violation():
    """Without chords the bass voice has nothing to play."""

    with pytest.raises(RuntimeError):
        schedule_voices(CONFIG, [], PHRASE, SeededRNG(1))


def test_flatten_loops_repeats_within_window():
    """Loops repeat at their own cycle and stop at the window edge."""

    loop = VoiceLoop("pad", (60, 64), (0.25, 0.75), 10.0, 0.5, 2.0)
    events = flatten_loops([loop], 25.0)
    assert [e.onset for e in events] == [2.5, 7.5, 12.5, 17.5, 22.5]
    assert [e.pitch for e in events] == [60, 64, 60, 64, 60]
    assert all(e.voice == "pad" and e.duration == 2.0 for e in events)


def test_flatten_loops_validates():
    """Silent voices and empty windows are rejected."""

    with pytest.raises(RuntimeError):
        flatten_loops([VoiceLoop("pad", (), (), 10.0, 0.5, 1.0)], 20.0)
    with pytest.raises(ValueError):
        flatten_loops([], 0.0)
