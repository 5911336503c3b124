"""
core/music_theory/ — Pure music theory engine.

Exports:
    Types:   Key, Scale, Chord, ChordProgression, Melody, MelodyNote,
             ProgressionTemplate, RhythmPattern, ArrangedNote
    Scales:  KEYS, SCALES, generate_chord_notes, resolve_key, get_scale,
             UnknownScaleError
    Harmony: generate_progression, generate_progression_from_template,
             available_templates, get_template
    Melody:  generate_melody
    Rhythm:  RHYTHM_PATTERNS, get_rhythm_pattern, arrange_chord
"""

from core.music_theory.harmony import (
    available_templates,
    generate_progression,
    generate_progression_from_template,
    get_template,
)
from core.music_theory.melody import generate_melody
from core.music_theory.rhythm import RHYTHM_PATTERNS, arrange_chord, get_rhythm_pattern
from core.music_theory.scales import (
    KEYS,
    SCALES,
    UnknownScaleError,
    generate_chord_notes,
    get_scale,
    resolve_key,
)
from core.music_theory.types import (
    ArrangedNote,
    Chord,
    ChordProgression,
    Key,
    Melody,
    MelodyNote,
    ProgressionTemplate,
    RhythmPattern,
    Scale,
)

__all__ = [
    # Types
    "ArrangedNote",
    "Chord",
    "ChordProgression",
    "Key",
    "Melody",
    "MelodyNote",
    "ProgressionTemplate",
    "RhythmPattern",
    "Scale",
    # Scales
    "KEYS",
    "SCALES",
    "UnknownScaleError",
    "generate_chord_notes",
    "get_scale",
    "resolve_key",
    # Harmony
    "available_templates",
    "generate_progression",
    "generate_progression_from_template",
    "get_template",
    # Melody
    "generate_melody",
    # Rhythm
    "RHYTHM_PATTERNS",
    "arrange_chord",
    "get_rhythm_pattern",
]
