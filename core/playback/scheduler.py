"""
core/playback/scheduler.py — Timer-driven playback state machine.

States:
    IDLE        nothing scheduled, current index −1
    PLAYING     walking the progression; one pending advance at a time
    LOOPING     PLAYING with the loop flag set (wraps to chord 0)
    PREVIEWING  a single chord preview is sounding

Timing per chord (PlaybackConfig defaults):
    duration_ms = (60 / tempo) · 1000 · 1.8
    voices rendered for duration_ms · 1.1
    next chord scheduled after duration_ms · 0.85

Design:
    - Exactly one pending advance handle; it is cancelled on stop and before
      a new session starts, so two timelines never interleave.
    - Tempo is read when each chord is scheduled: a change applies to the
      next chord onward, never to one already sounding.
    - Synthesis failures (no audio device, ...) are logged and absorbed; the
      timeline keeps running so the UI stays consistent.
    - The timer is injectable. The default schedules on the running asyncio
      event loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

from core.config import DEFAULT_PLAYBACK_CONFIG, PlaybackConfig
from core.music_theory.types import Chord
from core.playback.synthesis import ToneSynth

logger = logging.getLogger(__name__)

IDLE_INDEX: int = -1


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    LOOPING = "looping"
    PREVIEWING = "previewing"


# ---------------------------------------------------------------------------
# Timer abstraction
# ---------------------------------------------------------------------------


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timer(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioTimer:
    """Schedules callbacks on an asyncio event loop.

    Args:
        loop: Loop to use. Defaults to the loop running at call time, so the
            timer can be created before the loop starts.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_s, callback)


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class PlaybackScheduler:
    """Walks a chord sequence through a ToneSynth on a timer.

    Args:
        synth:  Synth the chords are played on
        timer:  Timer used for chord advances and preview expiry
        config: Timing constants
    """

    def __init__(
        self,
        synth: ToneSynth | None = None,
        *,
        timer: Timer | None = None,
        config: PlaybackConfig = DEFAULT_PLAYBACK_CONFIG,
    ) -> None:
        self._synth = synth if synth is not None else ToneSynth()
        self._timer: Timer = timer if timer is not None else AsyncioTimer()
        self._config = config

        self._chords: tuple[Chord, ...] = ()
        self._rhythm_pattern = "Block Chord"
        self._instrument = "sine"
        self._playing = False
        self._looping = False
        self._previewing = False
        self._index = IDLE_INDEX
        self._tempo = config.default_tempo
        self._pending: TimerHandle | None = None
        self._run = 0
        self._preview_pending: TimerHandle | None = None
        self._listeners: list[Callable[[int], None]] = []

    # ── observable state ───────────────────────────────────────────────────

    @property
    def state(self) -> PlaybackState:
        if self._playing:
            return PlaybackState.LOOPING if self._looping else PlaybackState.PLAYING
        if self._previewing:
            return PlaybackState.PREVIEWING
        return PlaybackState.IDLE

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_looping(self) -> bool:
        return self._looping

    @property
    def current_chord_index(self) -> int:
        return self._index

    @property
    def tempo(self) -> float:
        return self._tempo

    @property
    def master_volume(self) -> float:
        return self._synth.session.master_volume

    def chord_duration_ms(self) -> float:
        """Nominal length of one chord at the current tempo."""
        return (60.0 / self._tempo) * 1000.0 * self._config.legato_multiplier

    def add_listener(self, callback: Callable[[int], None]) -> None:
        """Register a callback receiving the current chord index on every change."""
        self._listeners.append(callback)

    def _set_index(self, index: int) -> None:
        if index == self._index:
            return
        self._index = index
        for callback in self._listeners:
            callback(index)

    # ── controls ───────────────────────────────────────────────────────────

    def play_progression(
        self,
        chords: Sequence[Chord],
        rhythm_pattern: str = "Block Chord",
        instrument: str = "sine",
    ) -> bool:
        """Start playing from the first chord, or stop if already playing.

        Returns:
            True if playback started, False if the call stopped playback or
            there was nothing to play.
        """
        if self._playing:
            self.stop_playback()
            return False
        if not chords:
            logger.info("Nothing to play: empty chord sequence")
            return False

        self._cancel_pending()
        self._cancel_preview()
        self._chords = tuple(chords)
        self._rhythm_pattern = rhythm_pattern
        self._instrument = instrument
        self._playing = True
        self._run += 1
        logger.info(
            "Playback started: %d chords at %.0f BPM (%s, %s)",
            len(self._chords),
            self._tempo,
            rhythm_pattern,
            instrument,
        )
        self._play_chord_at(0)
        return True

    def stop_playback(self) -> None:
        """Cancel the pending advance, silence all voices, return to Idle. Idempotent."""
        was_active = self._playing or self._previewing
        self._cancel_pending()
        self._run += 1
        self._cancel_preview()
        self._playing = False
        self._set_index(IDLE_INDEX)
        self._synth.stop_all()
        if was_active:
            logger.info("Playback stopped")

    def toggle_loop(self) -> bool:
        """Flip the loop flag; takes effect at the next end-of-sequence check."""
        self._looping = not self._looping
        logger.debug("Looping %s", "on" if self._looping else "off")
        return self._looping

    def play_chord_preview(self, chord: Chord) -> bool:
        """Play one chord for the preview duration. Ignored while playing.

        Returns:
            True if the preview was started.
        """
        if self._playing:
            return False

        self._cancel_preview()
        try:
            self._synth.play_chord(
                chord.midi_notes,
                duration_ms=self._config.preview_duration_ms,
                preview=True,
                rhythm_pattern=self._rhythm_pattern,
                instrument=self._instrument,
            )
        except Exception as exc:
            logger.warning("Preview of %s failed: %s", chord.name, exc)
            return False

        self._previewing = True
        self._preview_pending = self._timer.call_later(
            self._config.preview_duration_ms / 1000.0, self._end_preview
        )
        return True

    def set_tempo(self, bpm: float) -> float:
        """Set the tempo (clamped); applies from the next scheduled chord."""
        self._tempo = max(self._config.min_tempo, min(self._config.max_tempo, float(bpm)))
        return self._tempo

    def set_master_volume(self, volume: float) -> float:
        """Set the master gain (clamped to [0, 1]); applies to sounding voices too."""
        session = self._synth.session
        session.master_volume = volume
        return session.master_volume

    def set_rhythm_pattern(self, name: str) -> None:
        self._rhythm_pattern = name

    def set_instrument(self, instrument_type: str) -> None:
        self._instrument = instrument_type

    # ── timeline ───────────────────────────────────────────────────────────

    def _play_chord_at(self, index: int) -> None:
        self._pending = None
        if not self._playing:
            return
        run = self._run

        if index >= len(self._chords):
            if not self._looping:
                self._finish()
                return
            index = 0

        self._set_index(index)
        # a listener may have stopped or restarted playback
        if not self._playing or run != self._run:
            return
        chord = self._chords[index]
        duration_ms = self.chord_duration_ms()
        logger.debug("Chord %d/%d: %s", index + 1, len(self._chords), chord.name)
        try:
            self._synth.play_chord(
                chord.midi_notes,
                duration_ms=duration_ms * self._config.synthesis_stretch,
                rhythm_pattern=self._rhythm_pattern,
                instrument=self._instrument,
            )
        except Exception as exc:
            logger.warning("Synthesis of chord %d (%s) failed: %s", index, chord.name, exc)

        if not self._playing or run != self._run:
            return
        next_index = index + 1
        self._pending = self._timer.call_later(
            duration_ms * self._config.advance_ratio / 1000.0,
            lambda: self._play_chord_at(next_index),
        )

    def _finish(self) -> None:
        self._playing = False
        self._set_index(IDLE_INDEX)
        logger.info("Playback finished")

    def _end_preview(self) -> None:
        self._preview_pending = None
        self._previewing = False

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _cancel_preview(self) -> None:
        if self._preview_pending is not None:
            self._preview_pending.cancel()
            self._preview_pending = None
        self._previewing = False
