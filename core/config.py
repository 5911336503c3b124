"""
Configuration dataclasses for the playback and synthesis system.

These immutable config objects keep the timing and tone constants out of
function signatures, so a scheduler or synth can be built with a standard
configuration or a tuned one without touching call sites.
"""

from dataclasses import dataclass

# Oscillator waveforms the synthesis layer knows how to render.
VALID_WAVEFORMS: frozenset[str] = frozenset({"sine", "triangle", "sawtooth", "square"})


@dataclass(frozen=True)
class PlaybackConfig:
    """
    Timing configuration for the playback scheduler.

    Attributes:
        legato_multiplier: Chord length in beats. A chord lasts
            ``(60 / tempo) * 1000 * legato_multiplier`` milliseconds.
        advance_ratio: Fraction of the chord length after which the next
            chord is scheduled. Values below 1.0 overlap consecutive chords.
        synthesis_stretch: Factor applied to the chord length when the
            voices are rendered, so each chord rings into the next one.
        preview_duration_ms: Length of a single-chord preview.
        default_tempo: Starting tempo in BPM.
        min_tempo: Lowest tempo accepted by ``set_tempo``.
        max_tempo: Highest tempo accepted by ``set_tempo``.
        default_master_volume: Starting master gain in [0, 1].

    Example:
        >>> config = PlaybackConfig(legato_multiplier=1.0, advance_ratio=1.0)
        >>> scheduler = PlaybackScheduler(synth, config=config)
    """

    legato_multiplier: float = 1.8
    advance_ratio: float = 0.85
    synthesis_stretch: float = 1.1
    preview_duration_ms: float = 1000.0
    default_tempo: float = 120.0
    min_tempo: float = 40.0
    max_tempo: float = 240.0
    default_master_volume: float = 0.7

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.legato_multiplier <= 0:
            raise ValueError(f"legato_multiplier must be positive, got {self.legato_multiplier}")
        if not (0 < self.advance_ratio <= 1.0):
            raise ValueError(f"advance_ratio must be in (0, 1], got {self.advance_ratio}")
        if self.synthesis_stretch < 1.0:
            raise ValueError(f"synthesis_stretch must be >= 1.0, got {self.synthesis_stretch}")
        if self.preview_duration_ms <= 0:
            raise ValueError(
                f"preview_duration_ms must be positive, got {self.preview_duration_ms}"
            )
        if not (0 < self.min_tempo <= self.max_tempo):
            raise ValueError(
                f"tempo range must satisfy 0 < min_tempo ({self.min_tempo}) "
                f"<= max_tempo ({self.max_tempo})"
            )
        if not (self.min_tempo <= self.default_tempo <= self.max_tempo):
            raise ValueError(
                f"default_tempo ({self.default_tempo}) outside "
                f"[{self.min_tempo}, {self.max_tempo}]"
            )
        if not (0.0 <= self.default_master_volume <= 1.0):
            raise ValueError(
                f"default_master_volume must be in [0, 1], got {self.default_master_volume}"
            )


@dataclass(frozen=True)
class SynthConfig:
    """
    Tone and dynamics configuration for the synthesis layer.

    Gains are per chord: each voice receives ``gain / note_count`` so a
    seven-note chord is no louder than a triad.

    Attributes:
        sample_rate: Output sample rate in Hz.
        block_size: Frames per output callback block.
        playback_gain: Peak envelope level (per chord) during playback.
        preview_gain: Peak envelope level (per chord) for previews. Quieter
            than playback.
        playback_attack_s / preview_attack_s: Attack ramp length.
        playback_release_s / preview_release_s: Release tail length.
        playback_sustain_trim_s / preview_sustain_trim_s: Time subtracted
            from the note duration to get the sustain end.
        sustain_level: Fraction of the peak level reached at sustain end.
        pad_detune_cents: Detune of the outer oscillators of the warm pad.
        organ_ratios: Frequency ratios of the organ partials.
        organ_weights: Relative level of each organ partial.
        limiter_threshold_db: Level above which the limiter reduces gain.
        limiter_knee_db: Width of the soft knee around the threshold.
        limiter_ratio: Compression ratio above the knee.
        limiter_attack_s / limiter_release_s: Gain smoothing time constants.
        limiter_ceiling: Absolute sample ceiling after the limiter.
        handover_fade_s: Fade applied to the previous chord's voices when a
            new chord starts.
    """

    sample_rate: int = 44_100
    block_size: int = 512
    playback_gain: float = 0.8
    preview_gain: float = 0.3
    playback_attack_s: float = 0.02
    preview_attack_s: float = 0.01
    playback_release_s: float = 0.25
    preview_release_s: float = 0.08
    playback_sustain_trim_s: float = 0.3
    preview_sustain_trim_s: float = 0.1
    sustain_level: float = 0.85
    pad_detune_cents: float = 8.0
    organ_ratios: tuple[float, ...] = (1.0, 2.0, 1.5, 4.0, 2.67, 8.0)
    organ_weights: tuple[float, ...] = (0.8, 0.6, 0.4, 0.3, 0.2, 0.15)
    limiter_threshold_db: float = -6.0
    limiter_knee_db: float = 6.0
    limiter_ratio: float = 12.0
    limiter_attack_s: float = 0.003
    limiter_release_s: float = 0.25
    limiter_ceiling: float = 0.98
    handover_fade_s: float = 0.03

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.block_size <= 0:
            raise ValueError(f"block_size must be positive, got {self.block_size}")
        if not (0 < self.preview_gain <= self.playback_gain <= 1.0):
            raise ValueError(
                f"gains must satisfy 0 < preview_gain ({self.preview_gain}) "
                f"<= playback_gain ({self.playback_gain}) <= 1"
            )
        for name in (
            "playback_attack_s",
            "preview_attack_s",
            "playback_release_s",
            "preview_release_s",
            "limiter_attack_s",
            "limiter_release_s",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if not (0.0 < self.sustain_level <= 1.0):
            raise ValueError(f"sustain_level must be in (0, 1], got {self.sustain_level}")
        if len(self.organ_ratios) != len(self.organ_weights):
            raise ValueError(
                f"organ_ratios ({len(self.organ_ratios)}) and organ_weights "
                f"({len(self.organ_weights)}) must have the same length"
            )
        if self.limiter_ratio < 1.0:
            raise ValueError(f"limiter_ratio must be >= 1, got {self.limiter_ratio}")
        if self.limiter_knee_db < 0:
            raise ValueError(f"limiter_knee_db must be non-negative, got {self.limiter_knee_db}")
        if not (0.0 < self.limiter_ceiling <= 1.0):
            raise ValueError(f"limiter_ceiling must be in (0, 1], got {self.limiter_ceiling}")
        if self.handover_fade_s < 0:
            raise ValueError(f"handover_fade_s must be non-negative, got {self.handover_fade_s}")


# Pre-defined configurations

DEFAULT_PLAYBACK_CONFIG = PlaybackConfig()
"""Default timing: 1.8-beat chords, next chord at 85%, 10% synthesis overlap."""

STRICT_PLAYBACK_CONFIG = PlaybackConfig(
    legato_multiplier=1.0, advance_ratio=1.0, synthesis_stretch=1.0
)
"""One beat per chord with no overlap, for metronomic auditioning."""

DEFAULT_SYNTH_CONFIG = SynthConfig()
"""Default tone: 44.1 kHz, soft previews, -6 dB limiter threshold."""
