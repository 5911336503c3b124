"""
core/music_theory/melody.py — Melody generation over a chord progression.

Algorithm (per chord, ``beats_per_chord = total_length / len(chords)``):
    1. Pick 2–4 notes, evenly spaced across the chord's span
    2. Each note is a chord tone (p=0.7) or a scale tone, placed in the
       octave starting at middle C
    3. Octave-correct so no leap from the previous note exceeds 12 semitones
    4. Leaps wider than 7 semitones are, with p=0.7, replaced by a 1–3
       semitone step towards the target, if the stepped pitch stays in the
       scale or the chord
    5. Duration = slot × U[0.7, 1.3], velocity = U{70..99}

Start times are chord_index · beats_per_chord + i · slot, so they never
decrease. Durations may overlap the next note; nothing trims them.
"""

from __future__ import annotations

import random
from collections.abc import Sequence

from core.music_theory.scales import get_scale, resolve_key
from core.music_theory.types import Chord, Melody, MelodyNote

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MELODY_ANCHOR: int = 60  # notes are drawn from the octave starting at middle C
MIN_NOTES_PER_CHORD: int = 2
MAX_NOTES_PER_CHORD: int = 4
CHORD_TONE_PROBABILITY: float = 0.7
MAX_INTERVAL: int = 12
LEAP_THRESHOLD: int = 7
STEPWISE_PROBABILITY: float = 0.7
MAX_STEP: int = 3
DURATION_JITTER: tuple[float, float] = (0.7, 1.3)
VELOCITY_RANGE: tuple[int, int] = (70, 99)


def _octave_correct(note: int, previous: int | None) -> int:
    if previous is None:
        return note
    while note - previous > MAX_INTERVAL:
        note -= 12
    while previous - note > MAX_INTERVAL:
        note += 12
    return note


def _smooth_leap(
    note: int,
    previous: int | None,
    allowed: frozenset[int],
    rng: random.Random,
) -> int:
    if previous is None or abs(note - previous) <= LEAP_THRESHOLD:
        return note
    if rng.random() >= STEPWISE_PROBABILITY:
        return note
    direction = 1 if note > previous else -1
    stepped = previous + direction * rng.randint(1, MAX_STEP)
    if stepped % 12 in allowed:
        return stepped
    return note


def generate_melody(
    key: str,
    scale: str,
    chords: Sequence[Chord],
    total_length_beats: float,
    *,
    seed: int | None = None,
    rng: random.Random | None = None,
) -> Melody:
    """Generate a melody that follows the given chords.

    Args:
        key:                Key name (unknown → C)
        scale:              Scale catalog key
        chords:             Chords the melody is written over
        total_length_beats: Melody length in beats, shared evenly by the chords
        seed:               Seed for a fresh ``random.Random``
        rng:                Random source to draw from (wins over ``seed``)

    Returns:
        Melody whose notes have non-decreasing start times. An empty chord
        list gives an empty melody.

    Raises:
        UnknownScaleError: scale is not in the catalog
        ValueError: total_length_beats is negative
    """
    if total_length_beats < 0:
        raise ValueError(f"total_length_beats must be non-negative, got {total_length_beats}")

    scale_data = get_scale(scale)
    if not chords:
        return Melody(notes=(), key=key, scale=scale, length=total_length_beats)

    rng = rng if rng is not None else random.Random(seed)
    key_value = resolve_key(key)
    scale_pcs = sorted(scale_data.pitch_classes(key_value))
    beats_per_chord = total_length_beats / len(chords)

    notes: list[MelodyNote] = []
    previous: int | None = None
    for chord_index, chord in enumerate(chords):
        chord_pcs = sorted(chord.pitch_classes)
        allowed = frozenset(scale_pcs) | chord.pitch_classes
        count = rng.randint(MIN_NOTES_PER_CHORD, MAX_NOTES_PER_CHORD)
        slot = beats_per_chord / count

        for i in range(count):
            if rng.random() < CHORD_TONE_PROBABILITY:
                pitch_class = rng.choice(chord_pcs)
            else:
                pitch_class = rng.choice(scale_pcs)

            note = _octave_correct(MELODY_ANCHOR + pitch_class, previous)
            note = _smooth_leap(note, previous, allowed, rng)
            note = max(0, min(127, note))

            duration = slot * rng.uniform(*DURATION_JITTER)
            velocity = rng.randint(*VELOCITY_RANGE)
            if duration > 0:
                notes.append(
                    MelodyNote(
                        midi_note=note,
                        duration=duration,
                        start_time=chord_index * beats_per_chord + i * slot,
                        velocity=velocity,
                    )
                )
            previous = note

    return Melody(notes=tuple(notes), key=key, scale=scale, length=total_length_beats)
