"""Tests for the Markov and motif melody generators."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from stellar_score.melodic_generator import (  # noqa: E402
    DURATIONS,
    Phrase,
    build_transition_matrix,
    generate_motif_phrase,
    generate_phrase,
)
from stellar_score.note_utils import MAX_PITCH, MIN_PITCH  # noqa: E402
from stellar_score.seeded_rng import SeededRNG  # noqa: E402
from stellar_score.star_mapping import StarRecord, map_star  # noqa: E402
from stellar_score.theory import SCALES  # noqa: E402

STARS = [
    StarRecord("sol", 0.0, 0.0, 4.8, temp=5800),
    StarRecord("sirius", 101.2875, -16.7161, -1.46, dist=2.64, temp=9940),
    StarRecord("proxima", 217.4, -62.7, 11.1, dist=1.3, temp=3042),
    StarRecord("rigel", 78.63, -8.2, 0.13, dist=260.0, temp=21000),
]


def _in_scale(config, pitch):
    return (pitch - config.base_note) % 12 in config.scale.intervals


def test_transition_rows_sum_to_one():
    """Every row of every scale's matrix is a probability distribution."""

    for scale in SCALES.values():
        matrix = build_transition_matrix(scale, SeededRNG(8))
        assert matrix.shape == (len(scale), len(scale))
        assert np.allclose(matrix.sum(axis=1), 1.0, atol=1e-5)
        assert (matrix > 0).all()


def test_steps_outweigh_leaps():
    """A step is always likelier than a leap of three or more degrees."""

    matrix = build_transition_matrix(SCALES["ionian"], SeededRNG(21))
    assert matrix[0, 1] > matrix[0, 3]
    assert matrix[3, 4] > matrix[3, 0]


def test_top_degree_and_root_are_a_leap_apart():
    """Moving between the seventh degree and the root is weighted as a leap."""

    for seed in range(10):
        matrix = build_transition_matrix(SCALES["ionian"], SeededRNG(seed))
        assert matrix[6, 0] < matrix[6, 5]
        assert matrix[0, 6] < matrix[0, 1]


def test_phrase_shape_and_ranges():
    """Markov phrases have the requested length and stay in range."""

    for star in STARS:
        config = map_star(star)
        for seed in range(10):
            phrase = generate_phrase(config, SeededRNG(seed), 16)
            assert len(phrase) == 16
            assert all(MIN_PITCH <= n <= MAX_PITCH for n in phrase.notes)
            assert all(_in_scale(config, n) for n in phrase.notes)
            assert set(phrase.durations) <= set(DURATIONS)
            assert all(0.4 <= v <= 0.8 for v in phrase.velocities)


def test_first_note_is_downbeat_accented():
    """The opening note starts a bar and receives the accent."""

    config = map_star(STARS[0])
    for seed in range(10):
        assert generate_phrase(config, SeededRNG(seed), 4).velocities[0] >= 0.5


def test_phrase_is_deterministic():
    """Equal seeds give equal phrases; different seeds differ."""

    config = map_star(STARS[1])
    a = generate_phrase(config, SeededRNG(5), 12)
    b = generate_phrase(config, SeededRNG(5), 12)
    c = generate_phrase(config, SeededRNG(6), 12)
    assert a == b
    assert a != c


def test_motif_phrase_shape_and_ranges():
    """Motif phrases fill the requested length with in-scale notes."""

    for star in STARS:
        config = map_star(star)
        for seed in range(10):
            phrase = generate_motif_phrase(config, SeededRNG(seed), 13)
            assert len(phrase) == 13
            assert all(MIN_PITCH <= n <= MAX_PITCH for n in phrase.notes)
            assert all(_in_scale(config, n) for n in phrase.notes)


def test_motif_rhythm_repeats():
    """Restatements of the motif keep its rhythm."""

    config = map_star(STARS[0])
    phrase = generate_motif_phrase(config, SeededRNG(2), 16)
    durations = phrase.durations
    assert durations[:3] == durations[4:7] or durations[:3] == durations[3:6]


def test_non_positive_length_rejected():
    """Both generators refuse empty phrases."""

    config = map_star(STARS[0])
    with pytest.raises(ValueError):
        generate_phrase(config, SeededRNG(1), 0)
    with pytest.raises(ValueError):
        generate_motif_phrase(config, SeededRNG(1), -1)


def test_phrase_copy_is_independent():
    """Copies never share lists with the original."""

    phrase = Phrase([60, 62], [1.0, 1.0], [0.5, 0.6])
    clone = phrase.copy()
    clone.notes[0] = 40
    clone.durations.append(2.0)
    assert phrase.notes == [60, 62]
    assert phrase.durations == [1.0, 1.0]


def test_phrase_requires_matching_lengths():
    """Mismatched lists are rejected at construction."""

    with pytest.raises(ValueError):
        Phrase([60, 62], [1.0], [0.5, 0.5])
