"""
core/music_theory/harmony.py — Chord progression generation.

generate_progression() is the main algorithm:
    1. Resolve the key (tolerant, unknown → C) and the scale (strict)
    2. Take the template degrees verbatim, or draw ``length`` random degrees
    3. Build the diatonic chord on each degree (degree wraps modulo scale size)
    4. Optionally colour chords: quality substitution and a 9/11 tag
    5. Optionally generate a melody over the chords
    6. Return an immutable ChordProgression

YAML Progression Templates
--------------------------
Located in core/music_theory/templates/progressions.yaml.
Loaded lazily on first call and cached.

Design decisions:
    - All randomness flows through one ``random.Random`` — pass ``seed`` or an
      ``rng`` to make generation reproducible. Draw order per chord is fixed:
      substitution coin, substitution choice, extension coin, extension choice.
    - Unknown scale names raise UnknownScaleError; everything else falls back
      to a sensible default instead of raising.
"""

from __future__ import annotations

import functools
import logging
import random
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml

from core.music_theory.melody import generate_melody
from core.music_theory.scales import generate_chord_notes, get_scale, key_name, resolve_key
from core.music_theory.types import Chord, ChordProgression, ProgressionTemplate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

CHORD_OCTAVE: int = 4
DEFAULT_TEMPO: float = 120.0
DEFAULT_LENGTH: int = 4
MELODY_BEATS_PER_CHORD: float = 2.0

SUBSTITUTION_PROBABILITY: float = 0.7
EXTENSION_PROBABILITY: float = 0.4

# Base quality → richer qualities it may be replaced by
QUALITY_SUBSTITUTIONS: dict[str, tuple[str, ...]] = {
    "maj": ("maj7", "maj9", "add9"),
    "min": ("min7", "min9"),
    "dim": ("m7b5", "dim7"),
}

EXTENSION_CHOICES: tuple[str, ...] = ("9", "11")

RANDOM_TEMPLATE: str = "Random"

# ---------------------------------------------------------------------------
# YAML loading — lazy, cached
# ---------------------------------------------------------------------------

_TEMPLATES_PATH: Path = Path(__file__).parent / "templates" / "progressions.yaml"


@functools.cache
def _load_templates() -> tuple[ProgressionTemplate, ...]:
    """Load and cache the progression template catalog.

    Raises:
        ValueError: If the template file is missing or malformed
    """
    if not _TEMPLATES_PATH.exists():
        raise ValueError(f"Template file not found: {_TEMPLATES_PATH}")

    with _TEMPLATES_PATH.open(encoding="utf-8") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    entries = raw.get("templates")
    if not isinstance(entries, list):
        raise ValueError(f"{_TEMPLATES_PATH} must define a 'templates' list")

    return tuple(
        ProgressionTemplate(name=str(e["name"]), degrees=tuple(int(d) for d in e["degrees"]))
        for e in entries
    )


def available_templates() -> tuple[ProgressionTemplate, ...]:
    """All progression templates in catalog order."""
    return _load_templates()


def get_template(name: str) -> ProgressionTemplate:
    """Look up a template by name; unknown names give the Random template."""
    for template in _load_templates():
        if template.name == name:
            return template
    logger.debug("Unknown template %r — using %s", name, RANDOM_TEMPLATE)
    return ProgressionTemplate(name=RANDOM_TEMPLATE)


# ---------------------------------------------------------------------------
# Chord colouring
# ---------------------------------------------------------------------------


def _colour_chord(quality: str, rng: random.Random) -> tuple[str, tuple[str, ...]]:
    """Apply the random quality substitution and extension tag."""
    if rng.random() < SUBSTITUTION_PROBABILITY:
        options = QUALITY_SUBSTITUTIONS.get(quality)
        if options:
            quality = rng.choice(options)

    extensions: tuple[str, ...] = ()
    if rng.random() < EXTENSION_PROBABILITY:
        extensions = (rng.choice(EXTENSION_CHOICES),)
    return quality, extensions


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_progression(
    key: str,
    scale: str,
    template_degrees: Sequence[int] = (),
    length: int = DEFAULT_LENGTH,
    add_extensions: bool = False,
    generate_melody_line: bool = False,
    *,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> ChordProgression:
    """Generate a chord progression in a key and scale.

    Args:
        key:                  Key name, e.g. "C", "F#/Gb", "Eb" (unknown → C)
        scale:                Scale catalog key, e.g. "major", "dorian"
        template_degrees:     0-based degrees; empty → ``length`` random degrees
        length:               Number of random chords when no template is given
        add_extensions:       Colour chords with 7ths/9ths and extension tags
        generate_melody_line: Attach a melody of two beats per chord
        seed:                 Seed for a fresh ``random.Random``
        rng:                  Random source to draw from (wins over ``seed``)

    Returns:
        ChordProgression with one chord per degree, tempo 120

    Raises:
        UnknownScaleError: scale is not in the catalog
        ValueError: length is negative
    """
    scale_data = get_scale(scale)
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")

    rng = rng if rng is not None else random.Random(seed)
    key_value = resolve_key(key)
    n_degrees = scale_data.degree_count

    if template_degrees:
        degrees = list(template_degrees)
    else:
        degrees = [rng.randrange(n_degrees) for _ in range(length)]

    chords: list[Chord] = []
    for degree in degrees:
        d = degree % n_degrees
        root = (key_value + scale_data.intervals[d]) % 12
        quality = scale_data.chord_qualities[d]
        extensions: tuple[str, ...] = ()
        if add_extensions:
            quality, extensions = _colour_chord(quality, rng)

        chords.append(
            Chord(
                root=root,
                quality=quality,
                midi_notes=generate_chord_notes(root, quality, CHORD_OCTAVE, extensions),
                extensions=extensions,
                degree=d,
            )
        )

    canonical_key = key_name(key_value)
    melody = None
    if generate_melody_line and chords:
        melody = generate_melody(
            canonical_key,
            scale,
            chords,
            total_length_beats=len(chords) * MELODY_BEATS_PER_CHORD,
            rng=rng,
        )

    logger.debug(
        "Generated %d chords in %s %s: %s",
        len(chords),
        canonical_key,
        scale,
        " ".join(c.name for c in chords),
    )
    return ChordProgression(
        chords=tuple(chords),
        key=canonical_key,
        scale=scale,
        tempo=DEFAULT_TEMPO,
        melody=melody,
    )


def generate_progression_from_template(
    key: str,
    scale: str,
    template_name: str,
    length: int = DEFAULT_LENGTH,
    add_extensions: bool = False,
    generate_melody_line: bool = False,
    *,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> ChordProgression:
    """Same as generate_progression, with the degrees taken from a named template."""
    template = get_template(template_name)
    return generate_progression(
        key,
        scale,
        template.degrees,
        length=length,
        add_extensions=add_extensions,
        generate_melody_line=generate_melody_line,
        seed=seed,
        rng=rng,
    )
