"""
Tests for ingestion/midi_export.py — chord progression → Standard MIDI File.

Validates:
    - Header: MThd magic, Type 0 / 1 track without melody, Type 1 / 2 tracks with one
    - 96 ticks per beat; each chord lasts one beat (first note-off delta = 96)
    - set_tempo meta reflects the progression tempo
    - Melody on channel 1, note-off sorted before note-on at the same tick
    - Gaps longer than 127 ticks survive (variable-length deltas)
    - Filename sanitisation, file output, error handling
"""

import io

import mido
import pytest

from core.music_theory.harmony import generate_progression
from core.music_theory.types import ChordProgression, Melody, MelodyNote
from ingestion.midi_export import (
    MELODY_CHANNEL,
    MIDI_MIME_TYPE,
    TICKS_PER_BEAT,
    export_filename,
    midi_bytes_to_summary,
    progression_to_export_bytes,
    progression_to_midi,
)


def _with_melody(progression: ChordProgression, notes: tuple[MelodyNote, ...]) -> ChordProgression:
    melody = Melody(notes=notes, key=progression.key, scale=progression.scale, length=8.0)
    return ChordProgression(
        chords=progression.chords,
        key=progression.key,
        scale=progression.scale,
        tempo=progression.tempo,
        melody=melody,
    )


def _parse(data: bytes) -> mido.MidiFile:
    return mido.MidiFile(file=io.BytesIO(data))


@pytest.fixture()
def pop_progression() -> ChordProgression:
    return generate_progression("C", "major", [0, 4, 5, 3])


# ---------------------------------------------------------------------------
# File structure
# ---------------------------------------------------------------------------


class TestHeader:
    def test_magic_and_division(self, pop_progression):
        data = progression_to_export_bytes(pop_progression)
        assert data[:4] == b"MThd"
        assert int.from_bytes(data[12:14], "big") == TICKS_PER_BEAT

    def test_type_0_without_melody(self, pop_progression):
        data = progression_to_export_bytes(pop_progression)
        assert int.from_bytes(data[8:10], "big") == 0
        assert int.from_bytes(data[10:12], "big") == 1

    def test_type_1_with_melody(self):
        prog = generate_progression("C", "major", [0, 4, 5, 3], generate_melody_line=True, seed=2)
        data = progression_to_export_bytes(prog)
        assert int.from_bytes(data[8:10], "big") == 1
        assert int.from_bytes(data[10:12], "big") == 2

    def test_single_chord_track_counts(self):
        prog = generate_progression("C", "major", [0])
        assert int.from_bytes(progression_to_export_bytes(prog)[10:12], "big") == 1
        with_melody = _with_melody(prog, (MelodyNote(72, 1.0, 0.0, 90),))
        assert int.from_bytes(progression_to_export_bytes(with_melody)[10:12], "big") == 2

    def test_attached_empty_melody_gets_its_own_track(self, pop_progression):
        prog = _with_melody(pop_progression, ())
        data = progression_to_export_bytes(prog)
        assert int.from_bytes(data[8:10], "big") == 1
        assert int.from_bytes(data[10:12], "big") == 2
        melody_track = _parse(data).tracks[1]
        assert [m for m in melody_track if not m.is_meta] == []

    def test_empty_progression_rejected(self):
        with pytest.raises(ValueError, match="at least one chord"):
            progression_to_export_bytes(ChordProgression(chords=(), key="C", scale="major"))


# ---------------------------------------------------------------------------
# Chord track
# ---------------------------------------------------------------------------


class TestChordTrack:
    def test_every_chord_lasts_one_beat(self, pop_progression):
        midi = _parse(progression_to_export_bytes(pop_progression))
        offs = [m for m in midi.tracks[0] if m.type == "note_off"]
        ons = [m for m in midi.tracks[0] if m.type == "note_on"]
        assert all(m.time == 0 for m in ons)
        # first note-off of each chord carries the beat
        per_chord = 3
        assert [m.time for m in offs[::per_chord]] == [TICKS_PER_BEAT] * 4
        assert all(m.time == 0 for i, m in enumerate(offs) if i % per_chord)

    def test_total_length_is_one_beat_per_chord(self, pop_progression):
        midi = _parse(progression_to_export_bytes(pop_progression))
        assert sum(m.time for m in midi.tracks[0]) == 4 * TICKS_PER_BEAT

    def test_note_numbers_match_chords(self, pop_progression):
        midi = _parse(progression_to_export_bytes(pop_progression))
        ons = [m.note for m in midi.tracks[0] if m.type == "note_on"]
        expected = [n for chord in pop_progression.chords for n in chord.midi_notes]
        assert ons == expected

    def test_velocities_and_channel(self, pop_progression):
        midi = _parse(progression_to_export_bytes(pop_progression))
        notes = [m for m in midi.tracks[0] if m.type in ("note_on", "note_off")]
        assert all(m.channel == 0 for m in notes)
        assert {m.velocity for m in notes if m.type == "note_on"} == {100}
        assert {m.velocity for m in notes if m.type == "note_off"} == {64}

    @pytest.mark.parametrize(("bpm", "expected"), [(120.0, 120.0), (90.0, 90.0)])
    def test_tempo_meta(self, bpm, expected):
        base = generate_progression("A", "minor", [0, 3])
        prog = ChordProgression(chords=base.chords, key="A", scale="minor", tempo=bpm)
        summary = midi_bytes_to_summary(progression_to_export_bytes(prog))
        assert summary["tempo_bpm"] == pytest.approx(expected)


# ---------------------------------------------------------------------------
# Melody track
# ---------------------------------------------------------------------------


class TestMelodyTrack:
    def test_melody_on_channel_one(self):
        prog = generate_progression("D", "dorian", [0, 3, 4], generate_melody_line=True, seed=8)
        midi = _parse(progression_to_export_bytes(prog))
        notes = [m for m in midi.tracks[1] if m.type in ("note_on", "note_off")]
        assert notes
        assert all(m.channel == MELODY_CHANNEL for m in notes)
        assert sum(1 for m in notes if m.type == "note_on") == len(prog.melody.notes)

    def test_back_to_back_notes_release_first(self, pop_progression):
        prog = _with_melody(
            pop_progression,
            (MelodyNote(60, 1.0, 0.0, 80), MelodyNote(62, 1.0, 1.0, 80)),
        )
        track = progression_to_midi(prog).tracks[1]
        kinds = [(m.type, m.note, m.time) for m in track if not m.is_meta]
        assert kinds == [
            ("note_on", 60, 0),
            ("note_off", 60, 96),
            ("note_on", 62, 0),
            ("note_off", 62, 96),
        ]

    def test_long_gap_survives(self, pop_progression):
        prog = _with_melody(
            pop_progression,
            (MelodyNote(60, 1.0, 0.0, 80), MelodyNote(62, 1.0, 5.0, 80)),
        )
        midi = _parse(progression_to_export_bytes(prog))
        deltas = [m.time for m in midi.tracks[1] if not m.is_meta]
        assert deltas == [0, 96, 384, 96]

    def test_very_short_note_lasts_one_tick(self, pop_progression):
        prog = _with_melody(pop_progression, (MelodyNote(60, 0.001, 0.0, 80),))
        track = progression_to_midi(prog).tracks[1]
        assert [m.time for m in track if not m.is_meta] == [0, 1]

    def test_melody_velocity_kept(self, pop_progression):
        prog = _with_melody(pop_progression, (MelodyNote(60, 1.0, 0.0, 87),))
        track = progression_to_midi(prog).tracks[1]
        assert track[0].velocity == 87


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


class TestOutput:
    def test_filename_sanitised(self):
        prog = generate_progression("C#/Db", "harmonic-minor", [0])
        assert export_filename(prog) == "progression_C#-Db_harmonic-minor.mid"

    def test_filename_plain_key(self, pop_progression):
        assert export_filename(pop_progression) == "progression_C_major.mid"

    def test_mime_type(self):
        assert MIDI_MIME_TYPE == "audio/midi"

    def test_output_path_writes_file(self, pop_progression, tmp_path):
        target = tmp_path / "out.mid"
        progression_to_midi(pop_progression, output_path=target)
        assert target.read_bytes() == progression_to_export_bytes(pop_progression)

    def test_summary(self, pop_progression):
        summary = midi_bytes_to_summary(progression_to_export_bytes(pop_progression))
        assert summary == {
            "type": 0,
            "ticks_per_beat": 96,
            "track_count": 1,
            "note_on_counts": [12],
            "tempo_bpm": 120.0,
        }

    def test_summary_rejects_garbage(self):
        with pytest.raises(ValueError, match="Not a readable MIDI file"):
            midi_bytes_to_summary(b"definitely not midi")
