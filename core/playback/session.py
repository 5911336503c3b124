"""
core/playback/session.py — Shared audio session: voices, mixer, master bus, output.

Signal path:
    voices (precomputed note buffers) → mix → Limiter → master gain → sink

The session is pull-based: ``render(frames)`` mixes the next block and
advances the session clock. A real-time sink (sounddevice) calls it from
the audio thread; tests call it directly to inspect the output.

Exports:
    Voice               one scheduled note buffer, stoppable
    AudioSession        the mixer + master bus
    AudioSink           protocol for output backends
    SoundDeviceSink     real-time output via sounddevice
    NullSink            discards output; for headless use
    PlaybackError       output backend cannot be opened
    get_audio_session() process-wide lazily created session
    reset_audio_session()
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

import numpy as np

from core.config import DEFAULT_PLAYBACK_CONFIG, DEFAULT_SYNTH_CONFIG, SynthConfig
from core.playback.limiter import Limiter

logger = logging.getLogger(__name__)


class PlaybackError(RuntimeError):
    """Raised when no audio output can be opened."""


# ---------------------------------------------------------------------------
# Voice
# ---------------------------------------------------------------------------


class Voice:
    """A note buffer placed on the session timeline.

    The voice is silent before ``start_frame`` and after its buffer ends.
    ``stop()`` cuts it early, optionally with a linear fade.
    """

    def __init__(self, samples: np.ndarray, start_frame: int) -> None:
        self.samples = np.asarray(samples, dtype=np.float32)
        self.start_frame = start_frame
        self._stop_frame: int | None = None
        self._fade_frames = 0

    @property
    def end_frame(self) -> int:
        """First frame at which the voice is guaranteed silent."""
        natural_end = self.start_frame + len(self.samples)
        if self._stop_frame is None:
            return natural_end
        return min(natural_end, self._stop_frame + self._fade_frames)

    @property
    def stopped(self) -> bool:
        return self._stop_frame is not None

    def stop(self, at_frame: int, fade_frames: int = 0) -> None:
        """Cut the voice at ``at_frame``; a no-op if it already ends sooner."""
        if at_frame + fade_frames >= self.end_frame:
            return
        self._stop_frame = at_frame
        self._fade_frames = max(0, fade_frames)

    def is_finished(self, frame: int) -> bool:
        return frame >= self.end_frame

    def mix_into(self, out: np.ndarray, block_start: int) -> None:
        """Add this voice's contribution for [block_start, block_start + len(out))."""
        block_end = block_start + len(out)
        lo = max(block_start, self.start_frame)
        hi = min(block_end, self.end_frame)
        if lo >= hi:
            return

        segment = self.samples[lo - self.start_frame : hi - self.start_frame]
        if self._stop_frame is not None and self._fade_frames > 0:
            frames = np.arange(lo, hi)
            fade = 1.0 - (frames - self._stop_frame) / self._fade_frames
            segment = segment * np.clip(fade, 0.0, 1.0).astype(np.float32)
        out[lo - block_start : hi - block_start] += segment


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class AudioSink(Protocol):
    """Output backend. ``open`` must arrange for ``session.render`` to be pulled."""

    def open(self, session: AudioSession) -> None: ...

    def close(self) -> None: ...


class NullSink:
    """Sink that never touches a device. Nothing pulls audio unless the caller renders."""

    def __init__(self) -> None:
        self.is_open = False

    def open(self, session: AudioSession) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


class SoundDeviceSink:
    """Real-time mono output through a sounddevice ``OutputStream``.

    sounddevice is imported when the stream is opened, so the engine and
    exporter work on machines without PortAudio.
    """

    def __init__(self, device: int | str | None = None) -> None:
        self._device = device
        self._stream: Any = None

    def open(self, session: AudioSession) -> None:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as exc:
            raise PlaybackError(
                "sounddevice is required for audio output. Install with: pip install sounddevice"
            ) from exc

        def _callback(outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
            if status:
                logger.debug("Output stream status: %s", status)
            outdata[:, 0] = session.render(frames)

        try:
            stream = sd.OutputStream(
                samplerate=session.config.sample_rate,
                blocksize=session.config.block_size,
                channels=1,
                dtype="float32",
                device=self._device,
                callback=_callback,
            )
            stream.start()
        except sd.PortAudioError as exc:
            raise PlaybackError(f"Cannot open audio output: {exc}") from exc
        self._stream = stream

    def close(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        stream.stop()
        stream.close()


# ---------------------------------------------------------------------------
# AudioSession
# ---------------------------------------------------------------------------


class AudioSession:
    """Mixer and master bus shared by every voice in the process.

    Args:
        config:        Sample rate, block size, limiter settings
        sink:          Output backend; defaults to SoundDeviceSink
        master_volume: Initial master gain in [0, 1]
    """

    def __init__(
        self,
        config: SynthConfig = DEFAULT_SYNTH_CONFIG,
        sink: AudioSink | None = None,
        master_volume: float = DEFAULT_PLAYBACK_CONFIG.default_master_volume,
    ) -> None:
        self.config = config
        self._sink: AudioSink = sink if sink is not None else SoundDeviceSink()
        self._limiter = Limiter(config)
        self._voices: list[Voice] = []
        self._lock = threading.Lock()
        self._frame = 0
        self._master_volume = _clamp_volume(master_volume)
        self._started = False

    # ── lifecycle ──────────────────────────────────────────────────────────

    @property
    def is_started(self) -> bool:
        return self._started

    def ensure_started(self) -> None:
        """Open the sink on first use.

        Raises:
            PlaybackError: the sink cannot be opened
        """
        if self._started:
            return
        self._sink.open(self)
        self._started = True
        logger.info("Audio session started at %d Hz", self.config.sample_rate)

    def close(self) -> None:
        """Stop all voices and close the sink. The session can be restarted."""
        with self._lock:
            self._voices.clear()
        if self._started:
            self._sink.close()
            self._started = False
            logger.info("Audio session closed")

    # ── master gain ────────────────────────────────────────────────────────

    @property
    def master_volume(self) -> float:
        return self._master_volume

    @master_volume.setter
    def master_volume(self, value: float) -> None:
        # Read once per rendered block, so sounding voices follow immediately
        self._master_volume = _clamp_volume(value)

    # ── voices ─────────────────────────────────────────────────────────────

    @property
    def current_frame(self) -> int:
        return self._frame

    @property
    def active_voice_count(self) -> int:
        with self._lock:
            return sum(1 for v in self._voices if not v.is_finished(self._frame))

    def seconds_to_frames(self, seconds: float) -> int:
        return max(0, round(seconds * self.config.sample_rate))

    def add_voice(self, samples: np.ndarray, delay_s: float = 0.0) -> Voice:
        """Schedule a note buffer to start ``delay_s`` seconds from now."""
        self.ensure_started()
        with self._lock:
            voice = Voice(samples, self._frame + self.seconds_to_frames(delay_s))
            self._voices.append(voice)
        return voice

    def stop_voices(self, voices: list[Voice], fade_s: float = 0.0) -> None:
        fade_frames = self.seconds_to_frames(fade_s)
        with self._lock:
            for voice in voices:
                voice.stop(self._frame, fade_frames)

    def stop_all(self, fade_s: float = 0.0) -> None:
        """Stop every voice; already-finished voices are left alone."""
        with self._lock:
            voices = list(self._voices)
        self.stop_voices(voices, fade_s)

    # ── rendering ──────────────────────────────────────────────────────────

    def render(self, frames: int) -> np.ndarray:
        """Mix the next ``frames`` samples and advance the session clock."""
        mix = np.zeros(frames, dtype=np.float32)
        with self._lock:
            start = self._frame
            for voice in self._voices:
                voice.mix_into(mix, start)
            self._frame = start + frames
            self._voices = [v for v in self._voices if not v.is_finished(self._frame)]

        limited = self._limiter.process(mix)
        return limited * np.float32(self._master_volume)


def _clamp_volume(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


# ---------------------------------------------------------------------------
# Process-wide session
# ---------------------------------------------------------------------------

_session: AudioSession | None = None


def get_audio_session() -> AudioSession:
    """Return the process-wide AudioSession, creating it on first call.

    Creation is cheap; the output device is only opened when the first
    voice is scheduled.
    """
    global _session  # noqa: PLW0603
    if _session is None:
        _session = AudioSession()
    return _session


def reset_audio_session() -> None:
    """Close and drop the process-wide session (tests, shutdown)."""
    global _session  # noqa: PLW0603
    if _session is not None:
        _session.close()
        _session = None
