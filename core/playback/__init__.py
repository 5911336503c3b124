"""
core/playback/ — Real-time chord preview.

Exports:
    Session:   AudioSession, Voice, SoundDeviceSink, NullSink, PlaybackError,
               get_audio_session, reset_audio_session
    Synthesis: ToneSynth, Instrument, INSTRUMENTS, get_instrument
    Scheduler: PlaybackScheduler, PlaybackState, AsyncioTimer
    Dynamics:  Limiter
"""

from core.playback.limiter import Limiter
from core.playback.scheduler import AsyncioTimer, PlaybackScheduler, PlaybackState
from core.playback.session import (
    AudioSession,
    NullSink,
    PlaybackError,
    SoundDeviceSink,
    Voice,
    get_audio_session,
    reset_audio_session,
)
from core.playback.synthesis import INSTRUMENTS, Instrument, ToneSynth, get_instrument

__all__ = [
    # Session
    "AudioSession",
    "NullSink",
    "PlaybackError",
    "SoundDeviceSink",
    "Voice",
    "get_audio_session",
    "reset_audio_session",
    # Synthesis
    "INSTRUMENTS",
    "Instrument",
    "ToneSynth",
    "get_instrument",
    # Scheduler
    "AsyncioTimer",
    "PlaybackScheduler",
    "PlaybackState",
    # Dynamics
    "Limiter",
]
