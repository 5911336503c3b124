"""
Tests for core/music_theory/rhythm.py — rhythm catalog and chord arrangement.

Validates:
    - Catalog contents and fallback for unknown names
    - Slot clamping (block chord sounds every note together)
    - Per-pattern note order: up, down, broken, waltz, strum
"""

import pytest

from core.music_theory.rhythm import (
    DEFAULT_RHYTHM_PATTERN,
    RHYTHM_PATTERNS,
    arrange_chord,
    get_rhythm_pattern,
)

C_MAJ7 = (48, 52, 55, 59)
C_MAJ9 = (48, 52, 55, 59, 62)


class TestCatalog:
    def test_seven_patterns(self):
        assert [p.name for p in RHYTHM_PATTERNS] == [
            "Block Chord",
            "Up Arpeggio",
            "Down Arpeggio",
            "Broken Chord",
            "Syncopated",
            "Waltz",
            "Strum",
        ]

    def test_lookup(self):
        assert get_rhythm_pattern("Syncopated").note_durations == (0.4, 0.25, 0.4, 0.5)

    def test_unknown_falls_back_to_block(self):
        assert get_rhythm_pattern("Bossa Nova") is DEFAULT_RHYTHM_PATTERN
        assert DEFAULT_RHYTHM_PATTERN.name == "Block Chord"


class TestArrangeChord:
    def test_block_chord_all_together(self):
        arranged = arrange_chord(C_MAJ9, get_rhythm_pattern("Block Chord"))
        assert [a.midi_note for a in arranged] == list(C_MAJ9)
        assert all(a.onset == 0.0 and a.duration == 1.0 for a in arranged)

    def test_up_arpeggio_ascending_with_staggered_onsets(self):
        arranged = arrange_chord(C_MAJ7, get_rhythm_pattern("Up Arpeggio"))
        assert [a.midi_note for a in arranged] == list(C_MAJ7)
        assert [a.onset for a in arranged] == [0.0, 0.15, 0.3, 0.45]

    def test_down_arpeggio_descending(self):
        arranged = arrange_chord(C_MAJ7, get_rhythm_pattern("Down Arpeggio"))
        assert [a.midi_note for a in arranged] == [59, 55, 52, 48]

    def test_broken_chord_root_fifth_third_seventh(self):
        arranged = arrange_chord(C_MAJ7, get_rhythm_pattern("Broken Chord"))
        assert [a.midi_note for a in arranged] == [48, 55, 52, 59]

    def test_broken_chord_dyad_unchanged(self):
        arranged = arrange_chord((48, 55), get_rhythm_pattern("Broken Chord"))
        assert [a.midi_note for a in arranged] == [48, 55]

    def test_extra_notes_reuse_last_slot(self):
        arranged = arrange_chord(C_MAJ9, get_rhythm_pattern("Strum"))
        assert arranged[-1].onset == arranged[-2].onset == 0.15

    def test_waltz_root_then_upper_voicing_twice(self):
        arranged = arrange_chord((48, 52, 55), get_rhythm_pattern("Waltz"))
        assert [(a.midi_note, a.onset) for a in arranged] == [
            (48, 0.0),
            (52, 0.33),
            (55, 0.33),
            (52, 0.66),
            (55, 0.66),
        ]

    def test_input_order_does_not_matter(self):
        pattern = get_rhythm_pattern("Up Arpeggio")
        assert arrange_chord((55, 48, 52), pattern) == arrange_chord((48, 52, 55), pattern)

    def test_empty_chord(self):
        assert arrange_chord((), get_rhythm_pattern("Waltz")) == ()

    @pytest.mark.parametrize("pattern", RHYTHM_PATTERNS, ids=lambda p: p.name)
    def test_fractions_in_range(self, pattern):
        for note in arrange_chord(C_MAJ9, pattern):
            assert 0.0 <= note.onset < 1.0
            assert 0.0 < note.duration <= 1.0
