"""
core/music_theory/scales.py — Key, scale and chord-voicing tables plus the
pure chord builder.

Exports:
    KEYS                    the 12 keys in chromatic order
    SCALES                  scale catalog keyed by slug ("major", "blues", ...)
    CHORD_INTERVALS         semitone intervals for each chord quality
    EXTENSION_TAGS          extension tags understood by generate_chord_notes
    UnknownScaleError       raised for scale names outside SCALES

    resolve_key(name) → int
    key_name(value) → str
    get_scale(name) → Scale
    generate_chord_notes(root, quality, octave, extensions, inversion) → tuple[int, ...]
"""

from __future__ import annotations

from collections.abc import Sequence

from core.music_theory.types import Key, Scale

# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

KEYS: tuple[Key, ...] = (
    Key("C", 0),
    Key("C#/Db", 1),
    Key("D", 2),
    Key("D#/Eb", 3),
    Key("E", 4),
    Key("F", 5),
    Key("F#/Gb", 6),
    Key("G", 7),
    Key("G#/Ab", 8),
    Key("A", 9),
    Key("A#/Bb", 10),
    Key("B", 11),
)

# Lowercased spelling → pitch class. "C#/Db", "C#" and "Db" all resolve.
_KEY_LOOKUP: dict[str, int] = {}
for _key in KEYS:
    _KEY_LOOKUP[_key.name.lower()] = _key.value
    for _spelling in _key.name.split("/"):
        _KEY_LOOKUP[_spelling.lower()] = _key.value

# ---------------------------------------------------------------------------
# Scales
# ---------------------------------------------------------------------------

SCALES: dict[str, Scale] = {
    "major": Scale(
        "Major",
        (0, 2, 4, 5, 7, 9, 11),
        ("maj", "min", "min", "maj", "maj", "min", "dim"),
    ),
    "minor": Scale(
        "Natural Minor",
        (0, 2, 3, 5, 7, 8, 10),
        ("min", "dim", "maj", "min", "min", "maj", "maj"),
    ),
    "harmonic-minor": Scale(
        "Harmonic Minor",
        (0, 2, 3, 5, 7, 8, 11),
        ("min", "dim", "aug", "min", "maj", "maj", "dim"),
    ),
    "melodic-minor": Scale(
        "Melodic Minor",
        (0, 2, 3, 5, 7, 9, 11),
        ("min", "min", "aug", "maj", "maj", "dim", "dim"),
    ),
    "dorian": Scale(
        "Dorian",
        (0, 2, 3, 5, 7, 9, 10),
        ("min", "min", "maj", "maj", "min", "dim", "maj"),
    ),
    "phrygian": Scale(
        "Phrygian",
        (0, 1, 3, 5, 7, 8, 10),
        ("min", "maj", "maj", "min", "dim", "maj", "min"),
    ),
    "lydian": Scale(
        "Lydian",
        (0, 2, 4, 6, 7, 9, 11),
        ("maj", "maj", "min", "dim", "maj", "min", "min"),
    ),
    "mixolydian": Scale(
        "Mixolydian",
        (0, 2, 4, 5, 7, 9, 10),
        ("maj", "min", "dim", "maj", "min", "min", "maj"),
    ),
    "locrian": Scale(
        "Locrian",
        (0, 1, 3, 5, 6, 8, 10),
        ("dim", "maj", "min", "min", "maj", "maj", "min"),
    ),
    "pentatonic-major": Scale(
        "Pentatonic Major",
        (0, 2, 4, 7, 9),
        ("maj", "min", "min", "maj", "min"),
    ),
    "pentatonic-minor": Scale(
        "Pentatonic Minor",
        (0, 3, 5, 7, 10),
        ("min", "maj", "maj", "min", "maj"),
    ),
    "blues": Scale(
        "Blues",
        (0, 3, 5, 6, 7, 10),
        ("min", "maj", "maj", "dim", "maj", "maj"),
    ),
}

# ---------------------------------------------------------------------------
# Chord interval formulas (semitones from root)
# ---------------------------------------------------------------------------

CHORD_INTERVALS: dict[str, tuple[int, ...]] = {
    # Triads
    "maj": (0, 4, 7),
    "min": (0, 3, 7),
    "dim": (0, 3, 6),
    "aug": (0, 4, 8),
    "sus2": (0, 2, 7),
    "sus4": (0, 5, 7),
    # Sevenths
    "maj7": (0, 4, 7, 11),
    "min7": (0, 3, 7, 10),
    "dom7": (0, 4, 7, 10),
    "m7b5": (0, 3, 6, 10),
    "dim7": (0, 3, 6, 9),
    "aug7": (0, 4, 8, 10),
    # Ninths
    "maj9": (0, 4, 7, 11, 14),
    "min9": (0, 3, 7, 10, 14),
    "dom9": (0, 4, 7, 10, 14),
    "add9": (0, 4, 7, 14),
    # Elevenths
    "maj11": (0, 4, 7, 11, 14, 17),
    "min11": (0, 3, 7, 10, 14, 17),
    # Thirteenths
    "maj13": (0, 4, 7, 11, 14, 17, 21),
    "min13": (0, 3, 7, 10, 14, 17, 21),
    "dom13": (0, 4, 7, 10, 14, 17, 21),
}

# Extension tags that add a tone only when it is not already in the chord
_CONDITIONAL_EXTENSIONS: dict[str, int] = {
    "maj7": 11,
    "9": 14,
    "add9": 14,
    "11": 17,
    "13": 21,
}

# Altered tensions always append
_ALTERED_EXTENSIONS: dict[str, int] = {
    "b9": 13,
    "#9": 15,
    "#11": 18,
    "b13": 20,
}

EXTENSION_TAGS: frozenset[str] = frozenset(
    {"7", *_CONDITIONAL_EXTENSIONS, *_ALTERED_EXTENSIONS}
)


class UnknownScaleError(ValueError):
    """Raised when a scale name is not in the SCALES catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown scale {name!r}, valid options: {sorted(SCALES)}")
        self.name = name


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def resolve_key(name: str) -> int:
    """Pitch class for a key name; unknown names resolve to C (0).

    Accepts the catalog spelling ("C#/Db") or either half of it ("C#", "db").
    """
    return _KEY_LOOKUP.get(name.strip().lower(), 0)


def key_name(value: int) -> str:
    """Catalog display name for a pitch class, e.g. 1 → 'C#/Db'."""
    return KEYS[value % 12].name


def get_scale(name: str) -> Scale:
    """Look up a scale by catalog key.

    Raises:
        UnknownScaleError: if name is not in SCALES
    """
    try:
        return SCALES[name]
    except KeyError:
        raise UnknownScaleError(name) from None


# ---------------------------------------------------------------------------
# Chord builder
# ---------------------------------------------------------------------------


def _apply_extension(intervals: list[int], quality: str, tag: str) -> None:
    if tag == "7":
        if 10 not in intervals and 11 not in intervals:
            intervals.append(11 if quality == "maj" else 10)
    elif tag in _CONDITIONAL_EXTENSIONS:
        interval = _CONDITIONAL_EXTENSIONS[tag]
        if interval not in intervals:
            intervals.append(interval)
    elif tag in _ALTERED_EXTENSIONS:
        intervals.append(_ALTERED_EXTENSIONS[tag])
    # Unknown tags are ignored


def generate_chord_notes(
    root: int,
    quality: str,
    octave: int = 4,
    extensions: Sequence[str] = (),
    inversion: int = 0,
) -> tuple[int, ...]:
    """Build the ascending MIDI notes of a chord.

    Pure and deterministic: the same arguments always give the same notes.

    Steps:
        1. base = root + 12 · octave
        2. quality → interval set (unknown quality → major triad)
        3. extensions applied in order
        4. inversion k raises the lowest k notes by an octave (k is
           bounded by the note count), then the notes are re-sorted

    Args:
        root:       Root pitch class 0–11
        quality:    Key of CHORD_INTERVALS
        octave:     Octave multiplier for the base note
        extensions: Tags from EXTENSION_TAGS
        inversion:  Number of lowest notes to raise by 12

    Returns:
        MIDI note numbers in ascending order

    Example:
        >>> generate_chord_notes(0, "maj", octave=5, inversion=1)
        (64, 67, 72)
    """
    base = root + 12 * octave
    intervals = list(CHORD_INTERVALS.get(quality, CHORD_INTERVALS["maj"]))
    for tag in extensions:
        _apply_extension(intervals, quality, tag)

    notes = sorted(base + interval for interval in intervals)
    for i in range(min(max(inversion, 0), len(notes))):
        notes[i] += 12
    return tuple(sorted(notes))
