"""
core/midi.py — Pure MIDI note-number helpers.

Converts MIDI note numbers to frequencies and display names. No I/O,
no side effects — pure deterministic functions.

Design:
    - Equal temperament, A4 = 440 Hz = note 69
    - Octave numbering follows the "middle C = C4 = 60" convention
    - Names use sharps ("C#4")

Used by:
    core/playback/synthesis.py     — oscillator frequencies
    core/music_theory/types.py     — chord display names, pitch validation
    ingestion/midi_export.py       — velocity clamping
    scripts/progression_cli.py     — note names in printed progressions
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# MIDI constants
# ---------------------------------------------------------------------------

MIDI_MIN = 0
MIDI_MAX = 127
A4_MIDI = 69
A4_HZ = 440.0
_OCTAVE = 12

PITCH_CLASS_NAMES: tuple[str, ...] = (
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
)


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def midi_to_frequency(note: float) -> float:
    """Equal-tempered frequency of a MIDI note: 440 · 2^((n − 69) / 12).

    Accepts fractional note numbers so detuned oscillators can reuse it.
    """
    return A4_HZ * 2.0 ** ((note - A4_MIDI) / _OCTAVE)


def pitch_class_name(pitch_class: int) -> str:
    """Sharp spelling of a pitch class; wraps values outside 0–11."""
    return PITCH_CLASS_NAMES[pitch_class % _OCTAVE]


def midi_to_note_name(note: int) -> str:
    """
    Convert a MIDI note number to a name with octave.

    Args:
        note: MIDI note number in [0, 127]

    Returns:
        Name such as "C4" (60) or "A#2" (46)

    Raises:
        ValueError: if note is outside the MIDI range
    """
    validate_midi_note(note)
    octave = note // _OCTAVE - 1
    return f"{PITCH_CLASS_NAMES[note % _OCTAVE]}{octave}"


def validate_midi_note(note: int) -> None:
    """Raise ValueError if note is not a valid MIDI pitch."""
    if not (MIDI_MIN <= note <= MIDI_MAX):
        raise ValueError(f"MIDI pitch {note} out of range [{MIDI_MIN}, {MIDI_MAX}]")


def clamp_velocity(velocity: int) -> int:
    """Clamp a velocity into the playable range [1, 127]."""
    return max(1, min(MIDI_MAX, int(velocity)))
