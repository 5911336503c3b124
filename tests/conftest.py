"""
Shared fixtures for the test suite.

Centralizes reusable test infrastructure so individual test files
don't need to repeat timer/audio/store boilerplate.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

from api.deps import get_idea_store
from api.main import app
from core.playback.session import AudioSession, NullSink
from core.playback.synthesis import ToneSynth
from ingestion.idea_store import IdeaStore

# ---------------------------------------------------------------------------
# Manual timer — deterministic fake timeline
# ---------------------------------------------------------------------------


class ManualHandle:
    """Cancellable handle returned by ManualTimer.call_later."""

    def __init__(self, due: float, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimer:
    """Timer whose clock only moves when the test calls ``advance``.

    Callbacks due within the advanced window fire in due-time order; a
    callback scheduled by another callback fires in the same ``advance``
    call if it falls inside the window.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[ManualHandle] = []
        self._seq = 0

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ManualHandle:
        self._seq += 1
        handle = ManualHandle(self.now + delay_s, self._seq, callback)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.due <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self._handles.remove(handle)
            self.now = max(self.now, handle.due)
            handle.callback()
        self.now = target


# ---------------------------------------------------------------------------
# Recording synth — captures chords instead of rendering them
# ---------------------------------------------------------------------------


class RecordingSynth:
    """ToneSynth stand-in that records every play_chord call."""

    def __init__(self, session: AudioSession) -> None:
        self.session = session
        self.calls: list[dict[str, object]] = []
        self.stop_count = 0
        self.fail_next = False

    def play_chord(
        self,
        midi_notes,
        *,
        duration_ms,
        preview=False,
        rhythm_pattern="Block Chord",
        instrument="sine",
    ):
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("audio device unavailable")
        self.calls.append(
            {
                "notes": tuple(midi_notes),
                "duration_ms": duration_ms,
                "preview": preview,
                "rhythm_pattern": rhythm_pattern,
                "instrument": instrument,
            }
        )
        return ()

    def stop_all(self) -> None:
        self.stop_count += 1


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def manual_timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture()
def audio_session() -> AudioSession:
    """AudioSession on a NullSink — nothing is pulled unless the test renders."""
    session = AudioSession(sink=NullSink())
    yield session
    session.close()


@pytest.fixture()
def tone_synth(audio_session: AudioSession) -> ToneSynth:
    return ToneSynth(audio_session)


@pytest.fixture()
def recording_synth(audio_session: AudioSession) -> RecordingSynth:
    return RecordingSynth(audio_session)


@pytest.fixture()
def idea_store(tmp_path) -> IdeaStore:
    return IdeaStore(tmp_path / "ideas.json")


@pytest.fixture()
def api_client(idea_store: IdeaStore):
    """FastAPI ``TestClient`` with the idea store pointed at a temp file."""
    app.dependency_overrides[get_idea_store] = lambda: idea_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
