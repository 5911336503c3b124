"""
Tests for core/playback/session.py and core/playback/limiter.py — mixer and master bus.

Validates:
    - Voice timeline: start offset, natural end, stop with and without fade,
      stop is a no-op once the voice already ends sooner
    - AudioSession: sink opened on first voice, mixing, master volume applied
      to sounding voices, stop_all, finished voices pruned
    - Limiter: soft-knee curve, gain reduction on loud input, release on
      silence, hard ceiling
    - Process-wide session singleton
"""

import numpy as np
import pytest

from core.config import DEFAULT_SYNTH_CONFIG
from core.playback.limiter import (
    Limiter,
    amplitude_to_db,
    db_to_amplitude,
    static_gain_db,
)
from core.playback.session import (
    AudioSession,
    NullSink,
    Voice,
    get_audio_session,
    reset_audio_session,
)

SR = DEFAULT_SYNTH_CONFIG.sample_rate

# ---------------------------------------------------------------------------
# Voice
# ---------------------------------------------------------------------------


class TestVoice:
    def test_end_frame_natural(self):
        assert Voice(np.ones(100), start_frame=50).end_frame == 150

    def test_stop_cuts_early(self):
        voice = Voice(np.ones(1000), start_frame=0)
        voice.stop(100)
        assert voice.stopped
        assert voice.end_frame == 100

    def test_stop_after_natural_end_is_noop(self):
        voice = Voice(np.ones(100), start_frame=0)
        voice.stop(500)
        assert not voice.stopped
        assert voice.end_frame == 100

    def test_second_later_stop_is_noop(self):
        voice = Voice(np.ones(1000), start_frame=0)
        voice.stop(100)
        voice.stop(200)
        assert voice.end_frame == 100

    def test_fade_is_linear(self):
        voice = Voice(np.ones(100), start_frame=0)
        voice.stop(10, fade_frames=10)
        out = np.zeros(100, dtype=np.float32)
        voice.mix_into(out, 0)
        assert out[5] == pytest.approx(1.0)
        assert out[10] == pytest.approx(1.0)
        assert out[15] == pytest.approx(0.5)
        assert np.all(out[20:] == 0.0)

    def test_mix_respects_start_offset(self):
        voice = Voice(np.full(10, 0.5), start_frame=5)
        out = np.zeros(8, dtype=np.float32)
        voice.mix_into(out, 0)
        assert np.all(out[:5] == 0.0)
        assert np.all(out[5:] == pytest.approx(0.5))

    def test_is_finished(self):
        voice = Voice(np.ones(10), start_frame=0)
        assert not voice.is_finished(9)
        assert voice.is_finished(10)


# ---------------------------------------------------------------------------
# AudioSession
# ---------------------------------------------------------------------------


class TestAudioSession:
    def test_sink_opened_on_first_voice(self):
        sink = NullSink()
        session = AudioSession(sink=sink)
        assert not sink.is_open
        session.add_voice(np.zeros(10))
        assert sink.is_open
        assert session.is_started
        session.close()
        assert not sink.is_open
        assert not session.is_started

    def test_render_mixes_voice_with_master_volume(self, audio_session):
        audio_session.master_volume = 0.5
        audio_session.add_voice(np.full(100, 0.1, dtype=np.float32))
        out = audio_session.render(256)
        assert out[:100] == pytest.approx(np.full(100, 0.05), abs=1e-6)
        assert np.all(out[100:] == 0.0)
        assert audio_session.current_frame == 256

    def test_delayed_voice(self, audio_session):
        audio_session.add_voice(np.full(64, 0.1, dtype=np.float32), delay_s=256 / SR)
        assert np.all(audio_session.render(256) == 0.0)
        assert np.max(audio_session.render(256)) > 0.0

    def test_two_voices_sum(self, audio_session):
        audio_session.master_volume = 1.0
        audio_session.add_voice(np.full(64, 0.1, dtype=np.float32))
        audio_session.add_voice(np.full(64, 0.2, dtype=np.float32))
        assert audio_session.render(64)[0] == pytest.approx(0.3, abs=1e-6)

    def test_master_volume_applies_to_sounding_voices(self, audio_session):
        audio_session.master_volume = 1.0
        audio_session.add_voice(np.full(2048, 0.1, dtype=np.float32))
        before = audio_session.render(256)[-1]
        audio_session.master_volume = 0.25
        after = audio_session.render(256)[0]
        assert after == pytest.approx(before * 0.25, rel=1e-3)

    @pytest.mark.parametrize(("value", "expected"), [(1.5, 1.0), (-0.2, 0.0), (0.4, 0.4)])
    def test_master_volume_clamped(self, audio_session, value, expected):
        audio_session.master_volume = value
        assert audio_session.master_volume == expected

    def test_stop_all_silences_immediately(self, audio_session):
        audio_session.add_voice(np.full(4096, 0.1, dtype=np.float32))
        audio_session.render(256)
        audio_session.stop_all()
        assert audio_session.active_voice_count == 0
        assert np.all(audio_session.render(256) == 0.0)

    def test_stop_all_twice_is_harmless(self, audio_session):
        audio_session.add_voice(np.full(4096, 0.1, dtype=np.float32))
        audio_session.stop_all()
        audio_session.stop_all()
        assert np.all(audio_session.render(128) == 0.0)

    def test_finished_voices_pruned(self, audio_session):
        audio_session.add_voice(np.full(100, 0.1, dtype=np.float32))
        assert audio_session.active_voice_count == 1
        audio_session.render(128)
        assert audio_session.active_voice_count == 0

    def test_output_never_exceeds_ceiling(self, audio_session):
        audio_session.master_volume = 1.0
        for _ in range(8):
            audio_session.add_voice(np.full(4096, 0.9, dtype=np.float32))
        out = np.concatenate([audio_session.render(512) for _ in range(8)])
        assert np.max(np.abs(out)) <= DEFAULT_SYNTH_CONFIG.limiter_ceiling + 1e-6

    def test_seconds_to_frames(self, audio_session):
        assert audio_session.seconds_to_frames(1.0) == SR
        assert audio_session.seconds_to_frames(-1.0) == 0


class TestProcessSession:
    @pytest.fixture(autouse=True)
    def _reset(self):
        reset_audio_session()
        yield
        reset_audio_session()

    def test_singleton(self):
        assert get_audio_session() is get_audio_session()

    def test_reset_creates_new_session(self):
        first = get_audio_session()
        reset_audio_session()
        assert get_audio_session() is not first

    def test_creation_does_not_open_device(self):
        assert not get_audio_session().is_started


# ---------------------------------------------------------------------------
# Limiter
# ---------------------------------------------------------------------------


class TestGainCurve:
    def test_db_conversions(self):
        assert amplitude_to_db(1.0) == pytest.approx(0.0)
        assert amplitude_to_db(0.5) == pytest.approx(-6.0206, abs=1e-3)
        assert db_to_amplitude(-20.0) == pytest.approx(0.1)

    def test_silence_is_finite(self):
        assert amplitude_to_db(0.0) == pytest.approx(-200.0)

    def test_below_knee_passes(self):
        assert static_gain_db(-20.0, -6.0, 6.0, 12.0) == 0.0

    def test_above_knee_uses_ratio(self):
        # 0 dBFS input: output = -6 + 6/12 = -5.5 dB
        assert static_gain_db(0.0, -6.0, 6.0, 12.0) == pytest.approx(-5.5)

    def test_inside_knee_is_gentle(self):
        gain = static_gain_db(-6.0, -6.0, 6.0, 12.0)
        assert -5.5 < gain < 0.0

    def test_hard_knee(self):
        assert static_gain_db(-7.0, -6.0, 0.0, 12.0) == 0.0


class TestLimiter:
    def test_quiet_signal_untouched(self):
        limiter = Limiter()
        block = np.full(512, 0.1, dtype=np.float32)
        np.testing.assert_allclose(limiter.process(block), block, rtol=1e-6)
        assert limiter.gain_reduction_db == 0.0

    def test_loud_signal_reduced(self):
        limiter = Limiter()
        block = np.full(512, 1.0, dtype=np.float32)
        for _ in range(20):
            out = limiter.process(block)
        assert limiter.gain_reduction_db == pytest.approx(-5.5, abs=0.1)
        assert np.max(out) < 0.6

    def test_releases_on_silence(self):
        limiter = Limiter()
        for _ in range(20):
            limiter.process(np.full(512, 1.0, dtype=np.float32))
        for _ in range(400):
            limiter.process(np.zeros(512, dtype=np.float32))
        assert limiter.gain_reduction_db == pytest.approx(0.0, abs=0.01)

    def test_ceiling(self):
        out = Limiter().process(np.full(512, 4.0, dtype=np.float32))
        assert np.max(out) <= DEFAULT_SYNTH_CONFIG.limiter_ceiling

    def test_reset(self):
        limiter = Limiter()
        limiter.process(np.full(512, 1.0, dtype=np.float32))
        limiter.reset()
        assert limiter.gain_reduction_db == 0.0

    def test_empty_block(self):
        assert len(Limiter().process(np.zeros(0, dtype=np.float32))) == 0
