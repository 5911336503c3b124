"""
core/music_theory/types.py — Frozen value objects for the music theory engine.

All types are immutable frozen dataclasses — safe to hash, cache, and share
between the playback scheduler and the MIDI exporter. No I/O, no side
effects, no external dependencies beyond stdlib.

Types:
    Key                 — a pitch class with its display name
    Scale               — interval set + diatonic chord quality per degree
    Chord               — a generated chord with its concrete MIDI notes
    MelodyNote          — one melody note positioned in beats
    Melody              — a melody generated over a progression
    ChordProgression    — the immutable output of one generation
    ProgressionTemplate — a named scale-degree sequence
    RhythmPattern       — per-note onset/duration fractions of a chord
    ArrangedNote        — a chord note resolved against a rhythm pattern
"""

from __future__ import annotations

from dataclasses import dataclass, field

from core.midi import pitch_class_name, validate_midi_note

# ---------------------------------------------------------------------------
# Key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Key:
    """A tonal center.

    Examples:
        Key(name="C", value=0)
        Key(name="F#/Gb", value=6)
    """

    name: str
    value: int  # pitch class 0–11

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Key.name must not be empty")
        if not (0 <= self.value <= 11):
            raise ValueError(f"Key.value must be in [0, 11], got {self.value}")


# ---------------------------------------------------------------------------
# Scale
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Scale:
    """A scale: semitone offsets from the tonic plus one chord quality per degree.

    Attributes:
        name:            Display name, e.g. "Harmonic Minor"
        intervals:       Semitone offsets from the tonic, ascending, 0–11
        chord_qualities: Diatonic chord quality per degree, e.g. "maj", "dim"
    """

    name: str
    intervals: tuple[int, ...]
    chord_qualities: tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Scale.name must not be empty")
        if len(self.intervals) != len(self.chord_qualities):
            raise ValueError(
                f"Scale {self.name!r}: {len(self.intervals)} intervals but "
                f"{len(self.chord_qualities)} chord qualities"
            )
        if not (5 <= len(self.intervals) <= 7):
            raise ValueError(
                f"Scale {self.name!r} must have 5–7 degrees, got {len(self.intervals)}"
            )
        for interval in self.intervals:
            if not (0 <= interval <= 11):
                raise ValueError(f"Scale interval {interval} out of range [0, 11]")

    @property
    def degree_count(self) -> int:
        return len(self.intervals)

    def pitch_classes(self, key: int) -> frozenset[int]:
        """Pitch classes of this scale rooted on ``key``."""
        return frozenset((key + interval) % 12 for interval in self.intervals)


# ---------------------------------------------------------------------------
# Chord
# ---------------------------------------------------------------------------

# Quality key → display suffix used in chord names
_QUALITY_SUFFIX: dict[str, str] = {
    "maj": "",
    "min": "m",
    "dim": "dim",
    "aug": "aug",
    "sus2": "sus2",
    "sus4": "sus4",
    "maj7": "maj7",
    "min7": "m7",
    "dom7": "7",
    "m7b5": "m7b5",
    "dim7": "dim7",
    "aug7": "aug7",
    "maj9": "maj9",
    "min9": "m9",
    "dom9": "9",
    "add9": "add9",
    "maj11": "maj11",
    "min11": "m11",
    "maj13": "maj13",
    "min13": "m13",
    "dom13": "13",
}


@dataclass(frozen=True)
class Chord:
    """A chord with its concrete voicing.

    Attributes:
        root:       Root pitch class 0–11
        quality:    Chord quality key, e.g. "maj", "min7", "m7b5"
        extensions: Extension tags applied on top of the quality, e.g. ("9",)
        inversion:  Number of lowest notes raised by an octave
        midi_notes: MIDI pitch numbers, ascending
        degree:     0-based scale degree the chord was built on, if any
    """

    root: int
    quality: str
    midi_notes: tuple[int, ...]
    extensions: tuple[str, ...] = ()
    inversion: int = 0
    degree: int | None = None

    def __post_init__(self) -> None:
        if not (0 <= self.root <= 11):
            raise ValueError(f"Chord.root must be in [0, 11], got {self.root}")
        if not self.quality:
            raise ValueError("Chord.quality must not be empty")
        if self.inversion < 0:
            raise ValueError(f"Chord.inversion must be non-negative, got {self.inversion}")
        if not self.midi_notes:
            raise ValueError("Chord.midi_notes must not be empty")
        for pitch in self.midi_notes:
            validate_midi_note(pitch)
        if list(self.midi_notes) != sorted(self.midi_notes):
            raise ValueError(f"Chord.midi_notes must be ascending, got {self.midi_notes}")

    @property
    def name(self) -> str:
        """Display name, e.g. 'C', 'Am7', 'Fmaj7(9)'."""
        suffix = _QUALITY_SUFFIX.get(self.quality, self.quality)
        label = f"{pitch_class_name(self.root)}{suffix}"
        if self.extensions:
            label += f"({','.join(self.extensions)})"
        return label

    @property
    def pitch_classes(self) -> frozenset[int]:
        return frozenset(note % 12 for note in self.midi_notes)


# ---------------------------------------------------------------------------
# Melody
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MelodyNote:
    """A single melody note; times are in beats from the progression start."""

    midi_note: int
    duration: float
    start_time: float
    velocity: int

    def __post_init__(self) -> None:
        validate_midi_note(self.midi_note)
        if self.duration <= 0:
            raise ValueError(f"MelodyNote.duration must be positive, got {self.duration}")
        if self.start_time < 0:
            raise ValueError(f"MelodyNote.start_time must be >= 0, got {self.start_time}")
        if not (0 <= self.velocity <= 127):
            raise ValueError(f"MelodyNote.velocity must be in [0, 127], got {self.velocity}")

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


@dataclass(frozen=True)
class Melody:
    """A melody over a progression.

    Attributes:
        notes:  Melody notes ordered by start time
        key:    Key display name the melody was generated in
        scale:  Scale catalog key
        length: Total length in beats
    """

    notes: tuple[MelodyNote, ...]
    key: str
    scale: str
    length: float

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError(f"Melody.length must be non-negative, got {self.length}")
        starts = [n.start_time for n in self.notes]
        if starts != sorted(starts):
            raise ValueError("Melody notes must have non-decreasing start times")


# ---------------------------------------------------------------------------
# ChordProgression
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChordProgression:
    """The immutable result of one generation.

    A new generation replaces the whole object; nothing mutates it in place.

    Attributes:
        chords: Chords in playing order
        key:    Key display name, e.g. "C", "F#/Gb"
        scale:  Scale catalog key, e.g. "major", "harmonic-minor"
        tempo:  Tempo in BPM written to exported files
        melody: Optional melody over the chords
    """

    chords: tuple[Chord, ...]
    key: str
    scale: str
    tempo: float = 120.0
    melody: Melody | None = None

    def __post_init__(self) -> None:
        if self.tempo <= 0:
            raise ValueError(f"ChordProgression.tempo must be positive, got {self.tempo}")

    @property
    def chord_names(self) -> tuple[str, ...]:
        return tuple(chord.name for chord in self.chords)


# ---------------------------------------------------------------------------
# ProgressionTemplate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressionTemplate:
    """A named degree sequence. An empty sequence means "pick at random"."""

    name: str
    degrees: tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ProgressionTemplate.name must not be empty")
        for degree in self.degrees:
            if degree < 0:
                raise ValueError(f"Template degree must be non-negative, got {degree}")

    @property
    def is_random(self) -> bool:
        return not self.degrees


# ---------------------------------------------------------------------------
# RhythmPattern
# ---------------------------------------------------------------------------

RHYTHM_TYPES: frozenset[str] = frozenset({"block", "arpeggio", "syncopated", "waltz"})


@dataclass(frozen=True)
class RhythmPattern:
    """Per-note onset and duration, as fractions of the chord duration.

    Notes beyond the table length reuse the last slot.
    """

    name: str
    type: str
    description: str
    note_timings: tuple[float, ...]
    note_durations: tuple[float, ...]

    def __post_init__(self) -> None:
        if self.type not in RHYTHM_TYPES:
            raise ValueError(
                f"Unknown rhythm type {self.type!r}, valid options: {sorted(RHYTHM_TYPES)}"
            )
        if not self.note_timings:
            raise ValueError(f"RhythmPattern {self.name!r} needs at least one slot")
        if len(self.note_timings) != len(self.note_durations):
            raise ValueError(
                f"RhythmPattern {self.name!r}: {len(self.note_timings)} timings but "
                f"{len(self.note_durations)} durations"
            )
        for timing in self.note_timings:
            if not (0.0 <= timing < 1.0):
                raise ValueError(f"Rhythm timing {timing} out of range [0, 1)")
        for duration in self.note_durations:
            if duration <= 0:
                raise ValueError(f"Rhythm duration {duration} must be positive")

    def slot(self, index: int) -> tuple[float, float]:
        """(onset, duration) for a note index, clamped to the last slot."""
        i = min(max(index, 0), len(self.note_timings) - 1)
        return self.note_timings[i], self.note_durations[i]


@dataclass(frozen=True)
class ArrangedNote:
    """A chord note placed by a rhythm pattern (fractions of the chord duration)."""

    midi_note: int
    onset: float
    duration: float
