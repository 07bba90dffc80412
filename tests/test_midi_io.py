"""Tests for JSON and MIDI export."""

import json
import sys
from pathlib import Path

import mido

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from stellar_score.midi_io import (  # noqa: E402
    TICKS_PER_BEAT,
    VOICE_PROGRAMS,
    create_midi_file,
    score_to_dict,
    write_score_json,
)
from stellar_score.score import generate_score  # noqa: E402
from stellar_score.settings import GenerationSettings  # noqa: E402

VEGA = {"id": "vega", "ra": 279.23, "dec": 38.78, "mag": 0.03, "dist": 7.68, "temp": 9602}
SCORE = generate_score(VEGA, seed=42, settings=GenerationSettings(evolve=False))


def test_score_to_dict_is_json_serialisable():
    """The exported dictionary survives ``json.dumps`` unchanged."""

    data = score_to_dict(SCORE)
    assert json.loads(json.dumps(data)) == data
    assert data["seed"] == 42
    assert data["config"]["scale"] == SCORE.config.scale.name
    assert len(data["events"]) == len(SCORE.events)


def test_write_score_json_creates_directories(tmp_path):
    """Parent folders are created for JSON output."""

    path = write_score_json(SCORE, tmp_path / "nested" / "vega.json")
    assert path.is_file()
    assert json.loads(path.read_text(encoding="utf-8"))["config"]["tempo"] == SCORE.config.tempo


def test_midi_tracks_and_tempo():
    """One conductor track plus one track per sounding voice."""

    mid = create_midi_file(SCORE)
    voices = {e.voice for e in SCORE.events}
    assert mid.ticks_per_beat == TICKS_PER_BEAT
    assert len(mid.tracks) == 1 + len(voices)
    tempos = [m.tempo for m in mid.tracks[0] if m.type == "set_tempo"]
    assert tempos == [mido.bpm2tempo(SCORE.config.tempo)]


def test_midi_notes_match_events():
    """Each event becomes one note-on with a valid velocity and channel."""

    mid = create_midi_file(SCORE)
    for track in mid.tracks[1:]:
        name = next(m.name for m in track if m.type == "track_name")
        channel, program = VOICE_PROGRAMS[name]
        programs = [m.program for m in track if m.type == "program_change"]
        assert programs == [program]
        note_ons = [m for m in track if m.type == "note_on"]
        note_offs = [m for m in track if m.type == "note_off"]
        assert len(note_ons) == sum(1 for e in SCORE.events if e.voice == name)
        assert len(note_offs) == len(note_ons)
        assert all(1 <= m.velocity <= 127 and m.channel == channel for m in note_ons)
        assert all(m.time >= 0 for m in track)


def test_midi_file_written_and_readable(tmp_path):
    """The saved file can be loaded back by mido."""

    path = tmp_path / "out" / "vega.mid"
    create_midi_file(SCORE, path)
    assert path.is_file()
    loaded = mido.MidiFile(str(path))
    assert len(loaded.tracks) == len(create_midi_file(SCORE).tracks)
