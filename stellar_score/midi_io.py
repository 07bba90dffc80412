"""Export helpers: plain dictionaries, JSON files and MIDI files.

Modification summary
--------------------
* ``create_midi_file`` writes one track per voice with its own channel and
  General MIDI program so a DAW shows pad, melody, shimmer and bass as
  separate instruments.
* Event times are stored in seconds; they are converted to ticks at the score
  tempo with ``TICKS_PER_BEAT`` resolution.
* The parent directory of ``output_file`` is created automatically so callers
  may supply paths in a new folder without preparing it beforehand.
* ``score_to_dict`` only emits JSON-native types so the result can be passed
  straight to ``json.dump`` or a web response.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import mido
from mido import Message, MetaMessage, MidiFile, MidiTrack

from .score import Score
from .voice_scheduler import VOICES

__all__ = ["TICKS_PER_BEAT", "VOICE_PROGRAMS", "score_to_dict", "write_score_json", "create_midi_file"]

TICKS_PER_BEAT = 480

# ``voice -> (channel, program)``.  Programs are zero-based General MIDI
# numbers: Pad 2 (warm), Acoustic Grand Piano, Pad 7 (halo), Acoustic Bass.
VOICE_PROGRAMS: Dict[str, Tuple[int, int]] = {
    "pad": (0, 89),
    "melody": (1, 0),
    "shimmer": (2, 98),
    "bass": (3, 32),
}


def score_to_dict(score: Score) -> Dict[str, Any]:
    """Return a JSON-serialisable description of ``score``."""

    config = score.config
    return {
        "seed": score.seed,
        "config": {
            "scale": config.scale.name,
            "intervals": list(config.scale.intervals),
            "base_note": config.base_note,
            "tempo": config.tempo,
            "density": config.density,
            "warmth": config.warmth,
            "spaciousness": config.spaciousness,
            "emotion": config.emotion,
            "register_offset": config.register_offset,
            "brightness": config.brightness,
            "effects": asdict(config.effects) if config.effects is not None else None,
        },
        "chord_progression": [
            {"root_midi": c.root_midi, "pitches": list(c.pitches), "quality": c.quality}
            for c in score.chord_progression
        ],
        "chord_durations": list(score.chord_durations),
        "cycle_duration_beats": score.cycle_duration_beats,
        "phrase": {
            "notes": list(score.phrase.notes),
            "durations": list(score.phrase.durations),
            "velocities": list(score.phrase.velocities),
            "fitness": score.phrase.fitness,
        },
        "voices": [
            {
                "voice": v.voice,
                "note_pitches": list(v.note_pitches),
                "note_positions": list(v.note_positions),
                "cycle_duration_seconds": v.cycle_duration_seconds,
                "velocity": v.velocity,
                "sustain_seconds": v.sustain_seconds,
            }
            for v in score.voices
        ],
        "events": [asdict(e) for e in score.events],
    }


def write_score_json(score: Score, path: Union[str, Path]) -> Path:
    """Write ``score`` to ``path`` as indented JSON and return the path."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(score_to_dict(score), fh, indent=2)
    return path


def _seconds_to_ticks(seconds: float, tempo: int) -> int:
    return int(round(mido.second2tick(seconds, TICKS_PER_BEAT, tempo)))


def create_midi_file(score: Score, output_file: Optional[Union[str, Path]] = None) -> MidiFile:
    """Render ``score`` as a type 1 MIDI file.

    The first track carries the tempo; every voice present in the score gets
    its own track after that.  Velocities are scaled from ``[0, 1]`` to
    ``1-127``.  When ``output_file`` is given the file is also saved there.

    Returns
    -------
    MidiFile
        In-memory representation of the file for further inspection or reuse
        without reloading from disk.
    """

    tempo = mido.bpm2tempo(score.config.tempo)
    mid = MidiFile(type=1, ticks_per_beat=TICKS_PER_BEAT)

    conductor = MidiTrack()
    conductor.append(MetaMessage("track_name", name=f"star {score.seed}", time=0))
    conductor.append(MetaMessage("set_tempo", tempo=tempo, time=0))
    conductor.append(MetaMessage("time_signature", numerator=4, denominator=4, time=0))
    mid.tracks.append(conductor)

    for voice in VOICES:
        events = [e for e in score.events if e.voice == voice]
        if not events:
            continue
        channel, program = VOICE_PROGRAMS[voice]
        track = MidiTrack()
        track.append(MetaMessage("track_name", name=voice, time=0))
        track.append(Message("program_change", program=program, channel=channel, time=0))

        # Absolute tick, sort priority (note_off before note_on), message.
        timeline: List[Tuple[int, int, Message]] = []
        for event in events:
            start = _seconds_to_ticks(event.onset, tempo)
            end = max(start + 1, _seconds_to_ticks(event.onset + event.duration, tempo))
            velocity = max(1, min(127, int(round(event.velocity * 127))))
            timeline.append((start, 1, Message("note_on", note=event.pitch, velocity=velocity, channel=channel)))
            timeline.append((end, 0, Message("note_off", note=event.pitch, velocity=0, channel=channel)))
        timeline.sort(key=lambda item: (item[0], item[1]))

        now = 0
        for tick, _, message in timeline:
            track.append(message.copy(time=tick - now))
            now = tick
        mid.tracks.append(track)

    if output_file is not None:
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        mid.save(str(path))
        logging.info("MIDI file saved to %s", path)
    return mid
