from __future__ import annotations

import math
import operator
from dataclasses import dataclass, field

from .config import ConfigError


@dataclass(frozen=True)
class Settings:
    """Stream configuration reported by the host for one buffer.

    Attributes:
        sample_hz: Sample rate in Hz (int or float).
        channels:  Number of interleaved channels.
        frames:    Number of frames in the buffer.
    """
    sample_hz: int | float
    channels: int
    frames: int


@dataclass(frozen=True)
class WindowSize:
    """Size of the RMS window, either a sample count or a duration.

    A duration is resolved against the sample rate on every engine update,
    so a host that changes its sample rate mid-stream keeps the same window
    length in time.
    """
    samples: int | None = None
    ms: float | None = None

    def __post_init__(self) -> None:
        if (self.samples is None) == (self.ms is None):
            raise ConfigError("WindowSize needs exactly one of 'samples' or 'ms'")
        if self.samples is not None:
            message = f"Window sample count must be an integer, got {type(self.samples).__name__}"
            if isinstance(self.samples, bool):
                raise ConfigError(message)
            try:
                samples = operator.index(self.samples)
            except TypeError:
                raise ConfigError(message) from None
            # numpy integers are stored as plain int
            object.__setattr__(self, "samples", samples)
            if self.samples < 0:
                raise ConfigError(f"Window sample count must be >= 0, got {self.samples}")
        else:
            if isinstance(self.ms, bool) or not isinstance(self.ms, (int, float)):
                raise ConfigError(
                    f"Window duration must be a number, got {type(self.ms).__name__}"
                )
            if not math.isfinite(self.ms) or self.ms < 0:
                raise ConfigError(f"Window duration must be a finite value >= 0, got {self.ms}")

    @classmethod
    def from_samples(cls, samples: int) -> WindowSize:
        return cls(samples=samples)

    @classmethod
    def from_ms(cls, ms: float) -> WindowSize:
        return cls(ms=ms)

    @property
    def is_time_based(self) -> bool:
        return self.ms is not None

    def resolve(self, sample_rate: int | float | None = None) -> int:
        """Return the window length in samples for *sample_rate*.

        Durations round half away from zero:
        ``round(ms * sample_rate / 1000)``.
        """
        if self.samples is not None:
            return self.samples
        if sample_rate is None or isinstance(sample_rate, bool) or not sample_rate > 0:
            raise ConfigError(
                f"A time-based window ({self.ms} ms) needs a positive sample rate, "
                f"got {sample_rate!r}"
            )
        return int(math.floor(self.ms * float(sample_rate) / 1000.0 + 0.5))


@dataclass
class BlockResult:
    """RMS summary of one processed block.

    Attributes:
        index:           Zero-based block number.
        start_frame:     Frame offset of the block within the stream.
        frames:          Number of frames in the block.
        avg_rms:         Channel-averaged RMS at the block's last frame.
        per_channel_rms: Per-channel RMS at the block's last frame.
        peak_rms:        Largest per-sample RMS seen anywhere in the block.
    """
    index: int
    start_frame: int
    frames: int
    avg_rms: float
    per_channel_rms: list[float] = field(default_factory=list)
    peak_rms: float = 0.0
