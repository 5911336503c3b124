"""
ingestion/midi_export.py — Convert chord progressions (and their melodies)
to Standard MIDI Files using mido.

This module is the I/O output boundary of the generator:
    progression (core/music_theory/) → progression_to_midi → .mid bytes

Usage:
    from ingestion.midi_export import progression_to_export_bytes, export_filename

MIDI structure:
    No melody:   Type 0, one track  — tempo, chords (channel 0)
    With melody: Type 1, two tracks — Track 0 = tempo + chords (channel 0),
                                      Track 1 = melody (channel 1)

Chord timing:
    Every chord lasts exactly one beat (96 ticks). All notes start together
    (delta 0); the first note-off carries the 96-tick delta and the rest
    follow at delta 0.

Melody timing:
    Note positions are in beats; ticks = round(beats × 96). Events are
    sorted by absolute tick (note-off before note-on at the same tick) and
    then converted to deltas. mido writes deltas as variable-length
    quantities, so gaps longer than 127 ticks are encoded exactly.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path

import mido

from core.midi import clamp_velocity
from core.music_theory.types import ChordProgression, Melody

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TICKS_PER_BEAT: int = 96
"""Ticks per quarter note. One chord = one beat = 96 ticks."""

CHORD_CHANNEL: int = 0
MELODY_CHANNEL: int = 1

NOTE_ON_VELOCITY: int = 100
NOTE_OFF_VELOCITY: int = 64

MIDI_MIME_TYPE: str = "audio/midi"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9#._-]+")


# ---------------------------------------------------------------------------
# Time conversion utilities
# ---------------------------------------------------------------------------


def _beats_to_ticks(beats: float, ticks_per_beat: int = TICKS_PER_BEAT) -> int:
    """Convert a beat position to a non-negative tick count."""
    if beats <= 0:
        return 0
    return round(beats * ticks_per_beat)


def _bpm_to_tempo_us(bpm: float) -> int:
    """Convert BPM to MIDI tempo (microseconds per beat).

    120 BPM = 500,000 μs/beat. Non-positive BPM falls back to 120.
    """
    if bpm <= 0:
        bpm = 120.0
    return max(1, round(60_000_000.0 / bpm))


# ---------------------------------------------------------------------------
# Track builders
# ---------------------------------------------------------------------------


def _chord_track(progression: ChordProgression) -> mido.MidiTrack:
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("set_tempo", tempo=_bpm_to_tempo_us(progression.tempo), time=0))
    track.append(
        mido.MetaMessage(
            "time_signature",
            numerator=4,
            denominator=4,
            clocks_per_click=24,
            notated_32nd_notes_per_beat=8,
            time=0,
        )
    )

    for chord in progression.chords:
        for note in chord.midi_notes:
            track.append(
                mido.Message(
                    "note_on", channel=CHORD_CHANNEL, note=note, velocity=NOTE_ON_VELOCITY, time=0
                )
            )
        for i, note in enumerate(chord.midi_notes):
            track.append(
                mido.Message(
                    "note_off",
                    channel=CHORD_CHANNEL,
                    note=note,
                    velocity=NOTE_OFF_VELOCITY,
                    time=TICKS_PER_BEAT if i == 0 else 0,
                )
            )

    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


def _melody_track(melody: Melody) -> mido.MidiTrack:
    track = mido.MidiTrack()

    # (absolute_tick, order, pitch, velocity); order 0 = note_off so offs sort first
    events: list[tuple[int, int, int, int]] = []
    for note in melody.notes:
        on_tick = _beats_to_ticks(note.start_time)
        off_tick = _beats_to_ticks(note.end_time)
        if off_tick <= on_tick:
            off_tick = on_tick + 1
        events.append((on_tick, 1, note.midi_note, clamp_velocity(note.velocity)))
        events.append((off_tick, 0, note.midi_note, NOTE_OFF_VELOCITY))

    events.sort(key=lambda e: (e[0], e[1]))

    current_tick = 0
    for abs_tick, order, pitch, velocity in events:
        delta = abs_tick - current_tick
        current_tick = abs_tick
        kind = "note_on" if order == 1 else "note_off"
        track.append(
            mido.Message(kind, channel=MELODY_CHANNEL, note=pitch, velocity=velocity, time=delta)
        )

    track.append(mido.MetaMessage("end_of_track", time=0))
    return track


# ---------------------------------------------------------------------------
# Primary export functions
# ---------------------------------------------------------------------------


def progression_to_midi(
    progression: ChordProgression,
    *,
    output_path: str | Path | None = None,
) -> mido.MidiFile:
    """Convert a progression to a MIDI file.

    Args:
        progression: Progression to export. Must contain at least one chord.
        output_path: If provided, saves the MIDI file to this path.
                     The path's parent directory must exist.

    Returns:
        mido.MidiFile — Type 0 without melody, Type 1 with a melody track.

    Raises:
        ValueError: If the progression has no chords.
        OSError: If output_path is not writable.
    """
    if not progression.chords:
        raise ValueError("progression must contain at least one chord")

    melody = progression.melody
    midi = mido.MidiFile(type=0 if melody is None else 1, ticks_per_beat=TICKS_PER_BEAT)
    midi.tracks.append(_chord_track(progression))
    if melody is not None:
        midi.tracks.append(_melody_track(melody))

    if output_path is not None:
        midi.save(str(output_path))
        logger.info("Exported %d chords to %s", len(progression.chords), output_path)

    return midi


def progression_to_export_bytes(progression: ChordProgression) -> bytes:
    """Serialize a progression to Standard MIDI File bytes.

    Raises:
        ValueError: If the progression has no chords.
    """
    buffer = io.BytesIO()
    progression_to_midi(progression).save(file=buffer)
    return buffer.getvalue()


def export_filename(progression: ChordProgression) -> str:
    """Download filename: ``progression_{key}_{scale}.mid``.

    Characters that are unsafe in file names (e.g. the "/" in "C#/Db") are
    replaced with "-".
    """
    key = _UNSAFE_FILENAME_CHARS.sub("-", progression.key)
    scale = _UNSAFE_FILENAME_CHARS.sub("-", progression.scale)
    return f"progression_{key}_{scale}.mid"


# ---------------------------------------------------------------------------
# Verification helper
# ---------------------------------------------------------------------------


def midi_bytes_to_summary(data: bytes) -> dict[str, object]:
    """Parse exported bytes back into a small structural summary.

    Returns:
        Dict with ``type``, ``ticks_per_beat``, ``track_count``,
        ``note_on_counts`` (per track) and ``tempo_bpm`` (first set_tempo, or None).

    Raises:
        ValueError: If the bytes are not a readable MIDI file.
    """
    try:
        midi = mido.MidiFile(file=io.BytesIO(data))
    except (OSError, EOFError, KeyError, ValueError) as exc:
        raise ValueError(f"Not a readable MIDI file: {exc}") from exc

    tempo_bpm: float | None = None
    note_on_counts: list[int] = []
    for track in midi.tracks:
        count = 0
        for msg in track:
            if msg.type == "note_on" and msg.velocity > 0:
                count += 1
            elif msg.type == "set_tempo" and tempo_bpm is None:
                tempo_bpm = round(mido.tempo2bpm(msg.tempo), 3)
        note_on_counts.append(count)

    return {
        "type": midi.type,
        "ticks_per_beat": midi.ticks_per_beat,
        "track_count": len(midi.tracks),
        "note_on_counts": note_on_counts,
        "tempo_bpm": tempo_bpm,
    }
