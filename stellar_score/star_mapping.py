"""Map a star's physical parameters onto a musical configuration.

The mapping is a pure function of the star record.  The generation seed is
*not* an input: re-seeding a star changes its notes but never its
key, mode, tempo or mood, so a listener always recognises the same star.

Mapping overview
----------------
==================  ==========================================================
Star property       Musical parameter
==================  ==========================================================
temperature         scale bucket, warmth, brightness (filter cutoff), register
right ascension     root note (spreads stars across keys)
declination         root micro-shift of -2..+2 semitones
magnitude           tempo, density, output gain
distance            spaciousness (reverb/delay), density
identity hash       mode within the bucket, emotional category
==================  ==========================================================

Missing optional fields fall back to sun-like defaults so sparse catalogue
entries never crash generation.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .seeded_rng import star_hash
from .theory import SCALES, Scale

__all__ = [
    "StarRecord",
    "EffectSettings",
    "GeneratorConfig",
    "EMOTIONS",
    "ROOT_NOTES",
    "TEMPO_RANGE",
    "TEMPERATURE_BUCKETS",
    "spec_to_temp",
    "scale_options_for_temperature",
    "map_star",
]

EMOTIONS = ("hopeful", "melancholic", "serene", "mysterious")

# Roots for the five right-ascension sectors: C2, D2, E2, F2, G2.
ROOT_NOTES: Tuple[int, ...] = (36, 38, 40, 41, 43)

TEMPO_RANGE: Tuple[float, float] = (52.0, 80.0)

DEFAULT_TEMPERATURE = 5800.0
DEFAULT_DISTANCE = 10.0

# Spectral class letter -> representative effective temperature in kelvin.
SPECTRAL_TEMPERATURES: Dict[str, float] = {
    "O": 30000.0,
    "B": 20000.0,
    "A": 10000.0,
    "F": 7500.0,
    "G": 5800.0,
    "K": 4500.0,
    "M": 3200.0,
}

# ``(lower_bound, scale names)`` checked from hottest to coolest.  A star
# belongs to the first bucket whose bound its temperature exceeds.
TEMPERATURE_BUCKETS: Tuple[Tuple[float, Tuple[str, ...]], ...] = (
    (12000.0, ("lydian", "ionian")),
    (8000.0, ("ionian", "mixolydian", "lydian")),
    (6500.0, ("mixolydian", "dorian", "ionian")),
    (5200.0, ("dorian", "aeolian", "mixolydian")),
    (4000.0, ("aeolian", "dorian", "pentatonic")),
    (-math.inf, ("pentatonic", "aeolian")),
)

# Each mode suggests two moods; the star hash chooses between them.
_MODE_EMOTIONS: Dict[str, Tuple[str, str]] = {
    "lydian": ("mysterious", "serene"),
    "ionian": ("hopeful", "serene"),
    "mixolydian": ("hopeful", "melancholic"),
    "dorian": ("melancholic", "mysterious"),
    "aeolian": ("melancholic", "serene"),
}
_FALLBACK_EMOTIONS = ("serene", "mysterious")

# Above this temperature the melody is written an octave lower so the
# brightest stars do not climb into a piercing register.
_HOT_STAR_TEMPERATURE = 15000.0


@dataclass(frozen=True)
class StarRecord:
    """Catalogue entry describing one star.

    ``ra`` is in degrees ``[0, 360)``, ``dec`` in degrees ``[-90, 90]``.
    ``dist`` is in parsecs, ``temp`` in kelvin.
    """

    id: str
    ra: float
    dec: float
    mag: float
    dist: Optional[float] = None
    spec: Optional[str] = None
    temp: Optional[float] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StarRecord":
        """Build a record from a JSON-style mapping.

        ``id``, ``ra``, ``dec`` and ``mag`` are required; unknown keys are
        ignored so full catalogue rows can be passed through unchanged.
        """

        missing = [k for k in ("id", "ra", "dec", "mag") if data.get(k) is None]
        if missing:
            raise ValueError(f"star record is missing required fields: {', '.join(missing)}")

        def _optional_float(key: str) -> Optional[float]:
            value = data.get(key)
            return None if value is None else float(value)

        return cls(
            id=str(data["id"]),
            ra=float(data["ra"]),
            dec=float(data["dec"]),
            mag=float(data["mag"]),
            dist=_optional_float("dist"),
            spec=data.get("spec"),
            temp=_optional_float("temp"),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class EffectSettings:
    """Effect-chain parameters handed to the playback engine."""

    filter_cutoff: float
    reverb_wet: float
    delay_wet: float
    gain: float


@dataclass(frozen=True)
class GeneratorConfig:
    """Musical parameters derived from one star."""

    scale: Scale
    base_note: int
    tempo: float
    density: float
    warmth: float
    spaciousness: float
    emotion: str
    register_offset: int = 24
    brightness: float = 0.5
    effects: Optional[EffectSettings] = None
    star_hash: int = 0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _finite_or(value: Optional[float], default: float) -> float:
    if value is None or not math.isfinite(value):
        return default
    return float(value)


def spec_to_temp(spec: Optional[str]) -> float:
    """Return an effective temperature for a spectral class string.

    Only the leading letter matters (``"A1V"`` -> ``A``).  Unknown or missing
    classes yield a sun-like ``5800`` K.
    """

    if not spec:
        return DEFAULT_TEMPERATURE
    return SPECTRAL_TEMPERATURES.get(spec.strip()[:1].upper(), DEFAULT_TEMPERATURE)


def scale_options_for_temperature(temp: float) -> Tuple[str, ...]:
    """Return the scale names allowed for a star of temperature ``temp``."""

    for lower_bound, options in TEMPERATURE_BUCKETS:
        if temp > lower_bound:
            return options
    return TEMPERATURE_BUCKETS[-1][1]


def _star_temperature(star: StarRecord) -> float:
    if star.temp is not None and math.isfinite(star.temp) and star.temp > 0:
        return float(star.temp)
    return spec_to_temp(star.spec)


def _normalised_geometry(star: StarRecord) -> Tuple[float, float]:
    """Return ``(ra, dec)`` forced into their documented ranges."""

    ra = _finite_or(star.ra, 0.0)
    dec = _finite_or(star.dec, 0.0)
    if not 0.0 <= ra < 360.0 or not -90.0 <= dec <= 90.0:
        logging.warning("Star %s has out-of-range coordinates (ra=%s, dec=%s); clamping", star.id, star.ra, star.dec)
    return ra % 360.0, _clamp(dec, -90.0, 90.0)


def map_star(star: StarRecord) -> GeneratorConfig:
    """Return the :class:`GeneratorConfig` for ``star``.

    All numeric outputs are clamped to their documented ranges:

    * ``tempo`` in ``TEMPO_RANGE`` (52-80 BPM), faster for brighter stars.
    * ``density`` in ``[0.2, 0.7]``.
    * ``warmth`` in ``[0.35, 0.85]``, higher for cooler stars.
    * ``spaciousness`` in ``[0.25, 0.7]``, higher for distant stars.
    * ``brightness`` in ``[0, 1)``, a tanh-compressed temperature curve.
    """

    temp = _star_temperature(star)
    ra, dec = _normalised_geometry(star)
    mag = _clamp(_finite_or(star.mag, 2.0), -2.0, 10.0)
    dist = star.dist if star.dist is not None and star.dist > 0 else DEFAULT_DISTANCE
    dist = _finite_or(dist, DEFAULT_DISTANCE)
    identity = star_hash(star.id, ra, dec)

    options = scale_options_for_temperature(temp)
    scale = SCALES[options[identity % len(options)]]

    root_index = min(int(ra / 360.0 * len(ROOT_NOTES)), len(ROOT_NOTES) - 1)
    # Halves round up.
    dec_shift = math.floor((dec + 90.0) / 180.0 * 4 + 0.5) - 2
    base_note = ROOT_NOTES[root_index] + dec_shift

    mag_norm = _clamp((6.0 - mag) / 8.0, 0.0, 1.0)
    low_tempo, high_tempo = TEMPO_RANGE
    tempo = _clamp(low_tempo + mag_norm * (high_tempo - low_tempo), low_tempo, high_tempo)

    dist_norm = _clamp(dist / 500.0, 0.0, 1.0)
    density = _clamp(0.2 + mag_norm * 0.35 + (1.0 - dist_norm) * 0.15, 0.0, 1.0)

    temp_norm = _clamp((temp - 3000.0) / 25000.0, 0.0, 1.0)
    warmth = _clamp(0.35 + (1.0 - temp_norm) * 0.5, 0.35, 0.85)
    spaciousness = _clamp(dist / 300.0, 0.25, 0.7)
    brightness = _clamp(math.tanh(max(0.0, temp - 3000.0) / 9000.0), 0.0, 1.0)

    pair = _MODE_EMOTIONS.get(scale.name, _FALLBACK_EMOTIONS)
    emotion = pair[identity % len(pair)]

    effects = EffectSettings(
        filter_cutoff=400.0 + brightness * 3600.0,
        reverb_wet=0.25 + spaciousness * 0.35,
        delay_wet=0.1 + spaciousness * 0.12,
        gain=_clamp(0.4 - mag * 0.03, 0.08, 0.35),
    )

    config = GeneratorConfig(
        scale=scale,
        base_note=base_note,
        tempo=tempo,
        density=density,
        warmth=warmth,
        spaciousness=spaciousness,
        emotion=emotion,
        register_offset=12 if temp > _HOT_STAR_TEMPERATURE else 24,
        brightness=brightness,
        effects=effects,
        star_hash=identity,
    )
    logging.debug(
        "Star %s -> %s on %d, %.1f BPM, %s",
        star.id,
        scale.name,
        base_note,
        tempo,
        emotion,
    )
    return config
