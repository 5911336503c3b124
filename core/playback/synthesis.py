"""
core/playback/synthesis.py — Note synthesis: oscillators, timbres, envelopes.

Each chord note becomes one finite float32 buffer (timbre × envelope) that
the AudioSession mixes. A buffer always ends with its release tail, so no
voice can sound forever.

Timbres:
    sine      — one sine oscillator
    warm-pad  — triangle at pitch plus two sawtooths detuned ±8 cents
    organ     — six sine partials (ratios 1, 2, 1.5, 4, 2.67, 8)

Envelope (times in seconds, g = target gain):
    0 ──attack──▶ g ──linear──▶ 0.85·g at (duration − trim) ──release──▶ 0

Design:
    - Waveforms come from numpy/scipy.signal; timbres are normalised to a
      peak of 1.0 before the envelope, so the gain budget is exact.
    - Unknown instrument or rhythm names fall back to the first catalog
      entry, never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy import signal as scipy_signal

from core.config import VALID_WAVEFORMS, SynthConfig
from core.midi import midi_to_frequency
from core.music_theory.rhythm import arrange_chord, get_rhythm_pattern
from core.playback.session import AudioSession, Voice, get_audio_session

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Instrument catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Instrument:
    """A selectable timbre."""

    name: str
    type: str


INSTRUMENTS: tuple[Instrument, ...] = (
    Instrument("Sine Wave", "sine"),
    Instrument("Warm Pad", "warm-pad"),
    Instrument("Organ", "organ"),
)

DEFAULT_INSTRUMENT: Instrument = INSTRUMENTS[0]

_INSTRUMENTS_BY_TYPE: dict[str, Instrument] = {i.type: i for i in INSTRUMENTS}


def get_instrument(instrument_type: str) -> Instrument:
    """Look up an instrument by type; unknown types fall back to the sine wave."""
    instrument = _INSTRUMENTS_BY_TYPE.get(instrument_type)
    if instrument is None:
        logger.debug("Unknown instrument %r — using %s", instrument_type, DEFAULT_INSTRUMENT.type)
        return DEFAULT_INSTRUMENT
    return instrument


# ---------------------------------------------------------------------------
# Oscillators
# ---------------------------------------------------------------------------


def oscillator(waveform: str, frequency: float, n_frames: int, sample_rate: int) -> np.ndarray:
    """Render ``n_frames`` of a periodic waveform in [-1, 1].

    Raises:
        ValueError: unknown waveform
    """
    if waveform not in VALID_WAVEFORMS:
        raise ValueError(
            f"Unknown waveform {waveform!r}, valid options: {sorted(VALID_WAVEFORMS)}"
        )
    phase = 2.0 * np.pi * frequency * np.arange(n_frames) / sample_rate
    if waveform == "sine":
        return np.sin(phase)
    if waveform == "triangle":
        return scipy_signal.sawtooth(phase, width=0.5)
    if waveform == "sawtooth":
        return scipy_signal.sawtooth(phase)
    return scipy_signal.square(phase)


def _cents(frequency: float, cents: float) -> float:
    return frequency * 2.0 ** (cents / 1200.0)


def render_timbre(
    instrument_type: str,
    frequency: float,
    n_frames: int,
    config: SynthConfig,
) -> np.ndarray:
    """Raw (un-enveloped) waveform for an instrument, peak-normalised to 1."""
    sr = config.sample_rate
    nyquist = sr / 2.0
    instrument = get_instrument(instrument_type)

    if instrument.type == "warm-pad":
        detune = config.pad_detune_cents
        wave = (
            1.0 * oscillator("triangle", frequency, n_frames, sr)
            + 0.5 * oscillator("sawtooth", _cents(frequency, -detune), n_frames, sr)
            + 0.5 * oscillator("sawtooth", _cents(frequency, detune), n_frames, sr)
        )
    elif instrument.type == "organ":
        wave = np.zeros(n_frames)
        for ratio, weight in zip(config.organ_ratios, config.organ_weights, strict=True):
            if frequency * ratio >= nyquist:
                continue
            wave += weight * oscillator("sine", frequency * ratio, n_frames, sr)
    else:
        wave = oscillator("sine", frequency, n_frames, sr)

    peak = float(np.max(np.abs(wave))) if n_frames else 0.0
    if peak > 0:
        wave = wave / peak
    return wave.astype(np.float32)


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


def envelope_times(duration_s: float, preview: bool, config: SynthConfig) -> tuple[float, float, float]:
    """(attack, sustain_end, release) in seconds for one note."""
    if preview:
        attack, trim, release = (
            config.preview_attack_s,
            config.preview_sustain_trim_s,
            config.preview_release_s,
        )
    else:
        attack, trim, release = (
            config.playback_attack_s,
            config.playback_sustain_trim_s,
            config.playback_release_s,
        )
    sustain_end = max(duration_s - trim, attack)
    return attack, sustain_end, release


def build_envelope(
    duration_s: float,
    gain: float,
    preview: bool,
    config: SynthConfig,
) -> np.ndarray:
    """Amplitude envelope: attack ramp, sustain decay, release to exactly 0."""
    sr = config.sample_rate
    attack, sustain_end, release = envelope_times(duration_s, preview, config)

    n_attack = max(1, round(attack * sr))
    n_sustain = max(0, round(sustain_end * sr) - n_attack)
    n_release = max(1, round(release * sr))

    sustain_level = gain * config.sustain_level
    attack_seg = np.linspace(0.0, gain, n_attack, endpoint=False)
    sustain_seg = np.linspace(gain, sustain_level, n_sustain, endpoint=False)

    # Exponential decay rescaled so the last sample is exactly zero
    x = np.linspace(0.0, 1.0, n_release)
    curve = (np.exp(-5.0 * x) - np.exp(-5.0)) / (1.0 - np.exp(-5.0))
    release_level = sustain_level if n_sustain else gain
    release_seg = release_level * curve

    return np.concatenate([attack_seg, sustain_seg, release_seg]).astype(np.float32)


def render_note(
    midi_note: int,
    duration_s: float,
    *,
    gain: float,
    preview: bool,
    instrument: str,
    config: SynthConfig,
) -> np.ndarray:
    """One finished note buffer: timbre × envelope."""
    envelope = build_envelope(duration_s, gain, preview, config)
    wave = render_timbre(instrument, midi_to_frequency(midi_note), len(envelope), config)
    return wave * envelope


# ---------------------------------------------------------------------------
# ToneSynth
# ---------------------------------------------------------------------------


class ToneSynth:
    """Turns chords into voices on an AudioSession.

    Only the most recent chord's voices are tracked; starting a chord fades
    the previous chord out over ``handover_fade_s``.

    Args:
        session: Audio session to schedule voices on. Defaults to the
            process-wide session, resolved on first use.
    """

    def __init__(self, session: AudioSession | None = None) -> None:
        self._session = session
        self._active: list[Voice] = []

    @property
    def session(self) -> AudioSession:
        if self._session is None:
            self._session = get_audio_session()
        return self._session

    @property
    def active_voices(self) -> tuple[Voice, ...]:
        return tuple(self._active)

    def play_chord(
        self,
        midi_notes: Sequence[int],
        *,
        duration_ms: float,
        preview: bool = False,
        rhythm_pattern: str = "Block Chord",
        instrument: str = "sine",
    ) -> tuple[Voice, ...]:
        """Synthesize one chord.

        Args:
            midi_notes:     Chord notes
            duration_ms:    Chord length; note onsets and lengths are
                            fractions of it
            preview:        Quieter, shorter-envelope preview voicing
            rhythm_pattern: Rhythm pattern name (unknown → Block Chord)
            instrument:     Instrument type (unknown → sine)

        Returns:
            The scheduled voices

        Raises:
            ValueError: duration_ms is not positive
            PlaybackError: the session's output cannot be opened
        """
        if duration_ms <= 0:
            raise ValueError(f"duration_ms must be positive, got {duration_ms}")

        session = self.session
        config = session.config
        session.stop_voices(self._active, fade_s=config.handover_fade_s)
        self._active = []

        arranged = arrange_chord(midi_notes, get_rhythm_pattern(rhythm_pattern))
        if not arranged:
            return ()

        chord_s = duration_ms / 1000.0
        base_gain = config.preview_gain if preview else config.playback_gain
        gain = base_gain / len(set(midi_notes))
        instrument_type = get_instrument(instrument).type

        voices: list[Voice] = []
        for note in arranged:
            samples = render_note(
                note.midi_note,
                chord_s * note.duration,
                gain=gain,
                preview=preview,
                instrument=instrument_type,
                config=config,
            )
            voices.append(session.add_voice(samples, delay_s=chord_s * note.onset))

        self._active = voices
        return tuple(voices)

    def stop_all(self) -> None:
        """Silence everything on the session immediately."""
        if self._session is None and not self._active:
            return
        self.session.stop_all()
        self._active = []
