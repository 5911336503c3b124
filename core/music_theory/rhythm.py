"""
core/music_theory/rhythm.py — Rhythm pattern catalog and chord arrangement.

A rhythm pattern says when each note of a chord starts and how long it
sounds, both as fractions of the chord duration. arrange_chord() first
reorders the chord notes the way the pattern plays them, then assigns each
note its slot. Notes past the end of the table reuse the last slot, so a
one-slot "Block Chord" sounds every note together.

Reordering per pattern:
    Block Chord / Up Arpeggio / Syncopated / Strum — ascending
    Down Arpeggio — descending
    Broken Chord  — root, fifth, third, seventh, then the rest ascending
    Waltz         — root on beat 1, upper voicing on beats 2 and 3
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from core.music_theory.types import ArrangedNote, RhythmPattern

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

RHYTHM_PATTERNS: tuple[RhythmPattern, ...] = (
    RhythmPattern(
        name="Block Chord",
        type="block",
        description="All notes played simultaneously",
        note_timings=(0.0,),
        note_durations=(1.0,),
    ),
    RhythmPattern(
        name="Up Arpeggio",
        type="arpeggio",
        description="Notes played from low to high",
        note_timings=(0.0, 0.15, 0.3, 0.45),
        note_durations=(0.85, 0.85, 0.85, 0.85),
    ),
    RhythmPattern(
        name="Down Arpeggio",
        type="arpeggio",
        description="Notes played from high to low",
        note_timings=(0.0, 0.15, 0.3, 0.45),
        note_durations=(0.85, 0.85, 0.85, 0.85),
    ),
    RhythmPattern(
        name="Broken Chord",
        type="arpeggio",
        description="Root, fifth, third pattern",
        note_timings=(0.0, 0.25, 0.5, 0.75),
        note_durations=(0.3, 0.3, 0.3, 0.3),
    ),
    RhythmPattern(
        name="Syncopated",
        type="syncopated",
        description="Off-beat rhythm pattern",
        note_timings=(0.0, 0.125, 0.375, 0.625),
        note_durations=(0.4, 0.25, 0.4, 0.5),
    ),
    RhythmPattern(
        name="Waltz",
        type="waltz",
        description="Root on 1, chord on 2 & 3",
        note_timings=(0.0, 0.33, 0.66),
        note_durations=(0.33, 0.33, 0.33),
    ),
    RhythmPattern(
        name="Strum",
        type="arpeggio",
        description="Quick guitar-like strum",
        note_timings=(0.0, 0.05, 0.1, 0.15),
        note_durations=(0.9, 0.9, 0.9, 0.9),
    ),
)

DEFAULT_RHYTHM_PATTERN: RhythmPattern = RHYTHM_PATTERNS[0]

_PATTERNS_BY_NAME: dict[str, RhythmPattern] = {p.name: p for p in RHYTHM_PATTERNS}


def get_rhythm_pattern(name: str) -> RhythmPattern:
    """Look up a pattern by name; unknown names fall back to Block Chord."""
    pattern = _PATTERNS_BY_NAME.get(name)
    if pattern is None:
        logger.debug("Unknown rhythm pattern %r — using %s", name, DEFAULT_RHYTHM_PATTERN.name)
        return DEFAULT_RHYTHM_PATTERN
    return pattern


# ---------------------------------------------------------------------------
# Arrangement
# ---------------------------------------------------------------------------


def _broken_order(notes: list[int]) -> list[int]:
    # ascending triad/seventh = root, third, fifth, seventh → root, fifth, third, seventh
    if len(notes) < 3:
        return notes
    return [notes[0], notes[2], notes[1], *notes[3:]]


def arrange_chord(
    midi_notes: Sequence[int],
    pattern: RhythmPattern,
) -> tuple[ArrangedNote, ...]:
    """Place the notes of a chord according to a rhythm pattern.

    Args:
        midi_notes: Chord notes (any order; they are sorted first)
        pattern:    Rhythm pattern to apply

    Returns:
        ArrangedNote per sounding note, in playing order. The waltz pattern
        repeats the upper voicing, so it can return more notes than it was given.
    """
    notes = sorted(midi_notes)
    if not notes:
        return ()

    if pattern.type == "waltz":
        root, upper = notes[0], notes[1:]
        onset, duration = pattern.slot(0)
        arranged = [ArrangedNote(root, onset, duration)]
        for beat in (1, 2):
            onset, duration = pattern.slot(beat)
            arranged.extend(ArrangedNote(n, onset, duration) for n in upper)
        return tuple(arranged)

    if pattern.name == "Down Arpeggio":
        ordered = notes[::-1]
    elif pattern.name == "Broken Chord":
        ordered = _broken_order(notes)
    else:
        ordered = notes

    return tuple(ArrangedNote(n, *pattern.slot(i)) for i, n in enumerate(ordered))
