"""
tests/test_midi.py — Unit tests for core/midi.py

Tests cover:
- midi_to_frequency: A4 reference, octaves, fractional notes
- pitch_class_name / midi_to_note_name: sharp spelling, octave numbering
- validate_midi_note / clamp_velocity: range handling
"""

from __future__ import annotations

import pytest

from core.midi import (
    clamp_velocity,
    midi_to_frequency,
    midi_to_note_name,
    pitch_class_name,
    validate_midi_note,
)

# ---------------------------------------------------------------------------
# midi_to_frequency
# ---------------------------------------------------------------------------


class TestMidiToFrequency:
    def test_a4(self) -> None:
        assert midi_to_frequency(69) == pytest.approx(440.0)

    def test_octave_below(self) -> None:
        assert midi_to_frequency(57) == pytest.approx(220.0)

    def test_semitone_ratio(self) -> None:
        ratio = midi_to_frequency(61) / midi_to_frequency(60)
        assert ratio == pytest.approx(2 ** (1 / 12))

    def test_fractional_note(self) -> None:
        # half a semitone above A4
        assert midi_to_frequency(69.5) == pytest.approx(440.0 * 2 ** (1 / 24))


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------


class TestNames:
    @pytest.mark.parametrize(("pc", "name"), [(0, "C"), (1, "C#"), (10, "A#"), (13, "C#"), (-1, "B")])
    def test_pitch_class_name(self, pc: int, name: str) -> None:
        assert pitch_class_name(pc) == name

    @pytest.mark.parametrize(("note", "name"), [(60, "C4"), (46, "A#2"), (0, "C-1"), (127, "G9")])
    def test_midi_to_note_name(self, note: int, name: str) -> None:
        assert midi_to_note_name(note) == name

    def test_note_name_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="out of range"):
            midi_to_note_name(128)


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


class TestRanges:
    @pytest.mark.parametrize("note", [0, 64, 127])
    def test_valid_notes(self, note: int) -> None:
        validate_midi_note(note)

    @pytest.mark.parametrize("note", [-1, 128])
    def test_invalid_notes(self, note: int) -> None:
        with pytest.raises(ValueError, match=r"MIDI pitch .* out of range \[0, 127\]"):
            validate_midi_note(note)

    @pytest.mark.parametrize(("velocity", "expected"), [(0, 1), (64, 64), (200, 127), (-5, 1)])
    def test_clamp_velocity(self, velocity: int, expected: int) -> None:
        assert clamp_velocity(velocity) == expected
