"""Assemble a complete :class:`Score` for one star.

:func:`generate_score` is the package's main entry point.  It creates exactly
one :class:`~stellar_score.seeded_rng.SeededRNG` per call and threads it
through every generator in a fixed order, so the same star and seed always
produce the same score:

1. map the star to a :class:`~stellar_score.star_mapping.GeneratorConfig`
2. chord progression, then harmonic rhythm
3. melody phrase (optionally refined by the genetic algorithm)
4. voice loops
5. pad, bass and melody events followed by the flattened voice loops

Nothing is cached between calls and nothing is returned until every stage has
succeeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from .harmony_generator import chord_durations, generate_progression
from .melodic_generator import PHRASE_GENERATORS, Phrase
from .note_utils import fold_into_register
from .phrase_evolver import evolve_phrase
from .seeded_rng import SeededRNG, star_to_seed
from .settings import GenerationSettings
from .star_mapping import GeneratorConfig, StarRecord, map_star
from .theory import ChordVoicing, open_voicing
from .voice_scheduler import VOICES, NoteEvent, VoiceLoop, flatten_loops, schedule_voices

__all__ = ["Score", "EMOTION_SEVENTH_PROBABILITY", "generate_score", "coerce_star"]

# How often each mood swaps a triad for its seventh chord.
EMOTION_SEVENTH_PROBABILITY: Dict[str, float] = {
    "hopeful": 0.15,
    "melancholic": 0.35,
    "serene": 0.5,
    "mysterious": 0.3,
}

PAD_VELOCITY_RANGE = (35, 55)
PAD_STAGGER_RANGE = (0.1, 0.3)
BASS_VELOCITY = 0.55

_VOICE_ORDER = {name: i for i, name in enumerate(VOICES)}


@dataclass
class Score:
    """Everything an audio engine needs to play one star."""

    config: GeneratorConfig
    seed: int
    chord_progression: List[ChordVoicing]
    chord_durations: List[float]
    phrase: Phrase
    voices: List[VoiceLoop]
    events: List[NoteEvent]
    cycle_duration_beats: float


def coerce_star(star: Union[StarRecord, Mapping[str, Any]]) -> StarRecord:
    """Return ``star`` as a :class:`StarRecord`, converting mappings."""

    if isinstance(star, StarRecord):
        return star
    if isinstance(star, Mapping):
        return StarRecord.from_dict(star)
    raise ValueError(f"Unsupported star type: {type(star).__name__}")


def _pad_events(
    progression: List[ChordVoicing],
    durations: List[float],
    seconds_per_beat: float,
    rng: SeededRNG,
) -> List[NoteEvent]:
    """Open-voiced chords whose tones enter slightly staggered."""

    events: List[NoteEvent] = []
    beat = 0.0
    for chord, length in zip(progression, durations):
        for j, pitch in enumerate(open_voicing(chord)):
            stagger = j * rng.next_float(*PAD_STAGGER_RANGE)
            overlap = rng.next_float(0.0, 1.0)
            velocity = rng.next_int(*PAD_VELOCITY_RANGE) / 127.0
            events.append(
                NoteEvent(
                    fold_into_register(pitch),
                    (beat + stagger) * seconds_per_beat,
                    (length - stagger + overlap) * seconds_per_beat,
                    velocity,
                    "pad",
                )
            )
        beat += length
    return events


def _bass_events(
    progression: List[ChordVoicing],
    durations: List[float],
    seconds_per_beat: float,
) -> List[NoteEvent]:
    events: List[NoteEvent] = []
    beat = 0.0
    for chord, length in zip(progression, durations):
        events.append(
            NoteEvent(
                fold_into_register(chord.root_midi),
                beat * seconds_per_beat,
                length * seconds_per_beat,
                BASS_VELOCITY,
                "bass",
            )
        )
        beat += length
    return events


def _melody_events(phrase: Phrase, seconds_per_beat: float) -> List[NoteEvent]:
    events: List[NoteEvent] = []
    beat = 0.0
    for pitch, length, velocity in zip(phrase.notes, phrase.durations, phrase.velocities):
        events.append(
            NoteEvent(pitch, beat * seconds_per_beat, length * seconds_per_beat, min(1.0, velocity), "melody")
        )
        beat += length
    return events


def generate_score(
    star: Union[StarRecord, Mapping[str, Any]],
    seed: Optional[int] = None,
    settings: Optional[GenerationSettings] = None,
) -> Score:
    """Return the deterministic :class:`Score` for ``star`` and ``seed``.

    Parameters
    ----------
    star:
        A :class:`StarRecord` or a mapping with at least ``id``, ``ra``,
        ``dec`` and ``mag``.
    seed:
        Non-negative generation seed.  When omitted the seed is derived from
        the star's identity with :func:`~stellar_score.seeded_rng.star_to_seed`.
        Negative seeds are rejected because the generator state only depends
        on the magnitude of the seed, so ``-n`` would replay ``n``.
    settings:
        Composition settings; defaults to :class:`GenerationSettings`.

    Raises
    ------
    ValueError
        For an invalid star record, a negative seed or invalid settings.
    RuntimeError
        If voice scheduling breaks its contract.
    """

    record = coerce_star(star)
    settings = settings or GenerationSettings()
    settings.validate()
    if seed is not None and seed < 0:
        raise ValueError(f"seed must be zero or positive, got {seed}")
    if seed is None:
        seed = star_to_seed(record.id, record.ra, record.dec)

    rng = SeededRNG(seed)
    config = map_star(record)

    progression = generate_progression(
        config.scale,
        config.base_note,
        rng,
        settings.progression_length,
        seventh_probability=EMOTION_SEVENTH_PROBABILITY.get(config.emotion, 0.0),
    )
    durations = chord_durations(rng, len(progression))

    if settings.evolve:
        phrase = evolve_phrase(config, rng, settings)
    else:
        phrase = PHRASE_GENERATORS[settings.melody_strategy](config, rng, settings.phrase_length)

    voices = schedule_voices(config, progression, phrase, rng)

    cycle_beats = float(sum(durations))
    seconds_per_beat = 60.0 / config.tempo
    window = max(
        cycle_beats * seconds_per_beat,
        phrase.total_beats * seconds_per_beat,
        max(v.cycle_duration_seconds for v in voices),
    )

    events = _pad_events(progression, durations, seconds_per_beat, rng)
    events += _bass_events(progression, durations, seconds_per_beat)
    events += _melody_events(phrase, seconds_per_beat)
    events += flatten_loops(voices, window)
    events.sort(key=lambda e: (e.onset, _VOICE_ORDER.get(e.voice, len(_VOICE_ORDER)), e.pitch))

    logging.debug("Score for %s (seed %d): %d chords, %d events over %.1fs", record.id, seed, len(progression), len(events), window)
    return Score(
        config=config,
        seed=seed,
        chord_progression=progression,
        chord_durations=durations,
        phrase=phrase,
        voices=voices,
        events=events,
        cycle_duration_beats=cycle_beats,
    )
