"""Tests for the star-to-parameter mapping."""

import math
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from stellar_score.star_mapping import (  # noqa: E402
    EMOTIONS,
    TEMPO_RANGE,
    StarRecord,
    map_star,
    scale_options_for_temperature,
    spec_to_temp,
)

SIRIUS = StarRecord("sirius", 101.2875, -16.7161, -1.46, dist=2.64, spec="A1V", temp=9940)


def test_sirius_mapping():
    """Sirius lands in the hot diatonic bucket with a brisk tempo."""

    config = map_star(SIRIUS)
    assert config.scale.name in {"lydian", "ionian"}
    low, high = TEMPO_RANGE
    assert config.tempo >= (low + high) / 2
    assert config.emotion in EMOTIONS


def test_mapping_is_pure():
    """Mapping the same star twice yields equal configurations."""

    assert map_star(SIRIUS) == map_star(SIRIUS)


def test_cool_star_uses_dark_scales():
    """A 3200 K star maps to pentatonic or aeolian."""

    star = StarRecord("m-dwarf", 10.0, 5.0, 9.5, dist=4.0, temp=3200)
    assert map_star(star).scale.name in {"pentatonic", "aeolian"}


def test_spectral_class_used_without_temperature():
    """The spectral letter supplies a temperature when ``temp`` is missing."""

    star = StarRecord("betelgeuse", 88.79, 7.41, 0.42, dist=168.0, spec="M1Ia")
    assert map_star(star).scale.name in scale_options_for_temperature(3200)


def test_spec_to_temp_defaults():
    """Unknown or empty classes fall back to a sun-like temperature."""

    assert spec_to_temp("A1V") == 10000
    assert spec_to_temp("b2") == 20000
    assert spec_to_temp("") == 5800
    assert spec_to_temp(None) == 5800
    assert spec_to_temp("X9") == 5800


def test_outputs_stay_in_range():
    """Tempo and the shaping parameters are clamped over a grid of stars."""

    for temp in (2000, 3500, 5000, 6000, 7000, 9000, 14000, 40000):
        for mag in (-27.0, -1.0, 2.0, 6.0, 15.0):
            for dist in (0.5, 10.0, 400.0, 5000.0):
                config = map_star(StarRecord(f"s{temp}{mag}{dist}", 200.0, 40.0, mag, dist=dist, temp=temp))
                assert TEMPO_RANGE[0] <= config.tempo <= TEMPO_RANGE[1]
                assert 0.0 <= config.density <= 1.0
                assert 0.35 <= config.warmth <= 0.85
                assert 0.25 <= config.spaciousness <= 0.7
                assert 0.0 <= config.brightness <= 1.0
                assert 34 <= config.base_note <= 45


def test_declination_shift_rounds_halves_up():
    """A declination exactly between two shifts takes the higher one."""

    assert map_star(StarRecord("north", 0.0, 22.5, 3.0)).base_note == 37
    assert map_star(StarRecord("south", 0.0, -67.5, 3.0)).base_note == 35
    assert map_star(StarRecord("equator", 0.0, 0.0, 3.0)).base_note == 36


def test_invalid_geometry_is_clamped():
    """Out-of-range coordinates still produce a usable configuration."""

    config = map_star(StarRecord("odd", 725.0, 120.0, 3.0))
    assert 34 <= config.base_note <= 45


def test_non_finite_values_do_not_leak():
    """NaN inputs are replaced by defaults instead of producing NaN output."""

    config = map_star(StarRecord("nan", float("nan"), 0.0, float("nan"), dist=float("nan"), temp=float("nan")))
    for value in (config.tempo, config.density, config.warmth, config.spaciousness, config.brightness):
        assert math.isfinite(value)


def test_effect_settings():
    """Effect parameters follow brightness, spaciousness and magnitude."""

    effects = map_star(SIRIUS).effects
    assert 400.0 <= effects.filter_cutoff <= 4000.0
    assert 0.08 <= effects.gain <= 0.35
    assert 0.25 <= effects.reverb_wet <= 0.6
    assert 0.1 <= effects.delay_wet <= 0.2


def test_hot_star_melody_register_lower():
    """Very hot stars write their melody an octave lower."""

    hot = map_star(StarRecord("rigel", 78.63, -8.2, 0.13, dist=260.0, temp=21000))
    mild = map_star(SIRIUS)
    assert hot.register_offset == mild.register_offset - 12


def test_from_dict_requires_core_fields():
    """Records without ``mag`` are rejected."""

    with pytest.raises(ValueError):
        StarRecord.from_dict({"id": "x", "ra": 1.0, "dec": 2.0})


def test_from_dict_ignores_extra_keys():
    """Catalogue rows with extra columns are accepted."""

    star = StarRecord.from_dict({"id": 7, "ra": "1.5", "dec": 2, "mag": 3, "constellation": "Lyr"})
    assert star.id == "7"
    assert star.ra == 1.5
    assert star.dist is None
