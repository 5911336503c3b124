"""
core/playback/limiter.py — Block-based peak limiter for the master bus.

Implements:
    - Soft-knee static gain curve (threshold, knee width, ratio) in dB
    - Attack/release smoothing of the gain reduction, one update per block
    - Linear gain interpolation across each block, so no steps are audible
    - Hard ceiling after gain reduction

Design:
    - numpy arrays in, numpy arrays out; the only state is the current gain.
    - The detector uses the block peak, so a block of silence releases.
"""

from __future__ import annotations

import math

import numpy as np

from core.config import DEFAULT_SYNTH_CONFIG, SynthConfig

_EPS = 1e-10


def amplitude_to_db(amplitude: float) -> float:
    """Linear amplitude → dBFS."""
    return 20.0 * math.log10(max(abs(amplitude), _EPS))


def db_to_amplitude(db: float) -> float:
    """dBFS → linear amplitude."""
    return 10.0 ** (db / 20.0)


def static_gain_db(level_db: float, threshold_db: float, knee_db: float, ratio: float) -> float:
    """Gain change (≤ 0 dB) the limiter applies to a signal at ``level_db``.

    Standard soft-knee compressor curve: below the knee the signal passes,
    above it the output rises 1/ratio dB per input dB, and inside the knee
    the two are joined by a quadratic.
    """
    overshoot = level_db - threshold_db
    if 2.0 * overshoot < -knee_db:
        out_db = level_db
    elif knee_db > 0 and 2.0 * abs(overshoot) <= knee_db:
        out_db = level_db + (1.0 / ratio - 1.0) * (overshoot + knee_db / 2.0) ** 2 / (2.0 * knee_db)
    else:
        out_db = threshold_db + overshoot / ratio
    return out_db - level_db


class Limiter:
    """Stateful master-bus limiter.

    Args:
        config: Supplies threshold, knee, ratio, attack, release, ceiling and
            the sample rate used to turn time constants into per-block
            smoothing coefficients.
    """

    def __init__(self, config: SynthConfig = DEFAULT_SYNTH_CONFIG) -> None:
        self._config = config
        self._gain_db = 0.0

    @property
    def gain_reduction_db(self) -> float:
        """Current gain reduction (0 when idle, negative when limiting)."""
        return self._gain_db

    def reset(self) -> None:
        self._gain_db = 0.0

    def _coefficient(self, time_s: float, frames: int) -> float:
        block_s = frames / self._config.sample_rate
        return math.exp(-block_s / time_s)

    def process(self, block: np.ndarray) -> np.ndarray:
        """Limit one mono block; returns a new float32 array of the same length."""
        frames = len(block)
        if frames == 0:
            return block.astype(np.float32)

        cfg = self._config
        peak = float(np.max(np.abs(block)))
        target_db = static_gain_db(
            amplitude_to_db(peak),
            cfg.limiter_threshold_db,
            cfg.limiter_knee_db,
            cfg.limiter_ratio,
        )

        # More reduction → attack, less reduction → release
        time_s = cfg.limiter_attack_s if target_db < self._gain_db else cfg.limiter_release_s
        coef = self._coefficient(time_s, frames)
        start_db = self._gain_db
        self._gain_db = coef * start_db + (1.0 - coef) * target_db

        gains = np.linspace(
            db_to_amplitude(start_db), db_to_amplitude(self._gain_db), frames, dtype=np.float32
        )
        out = block.astype(np.float32) * gains
        return np.clip(out, -cfg.limiter_ceiling, cfg.limiter_ceiling)
