from __future__ import annotations

import math
from typing import Iterator

import numpy as np
import soundfile as sf

from .config import ConfigError


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

AES17_OFFSET = 3.0103  # dB offset: 20 * log10(sqrt(2))


def linear_to_db(level: float) -> float:
    """RMS level as dB relative to full scale; silence maps to ``-inf``."""
    return 20.0 * math.log10(level) if level > 0 else -math.inf


def dbfs_offset(config: dict) -> float:
    """Return the dBFS offset for the configured convention.

    Standard → 0.0; AES17 → +3.0103 dB.
    """
    return AES17_OFFSET if config.get("dbfs_convention") == "aes17" else 0.0


def format_duration(frames: int, samplerate: int | float) -> str:
    """Frame offset as ``MM:SS.mmm`` at *samplerate*."""
    if samplerate <= 0:
        return "00:00.000"
    total_ms = int(frames * 1000 // samplerate)
    minutes, rest = divmod(total_ms, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


def to_wave(samples) -> np.ndarray:
    """Convert host samples to float64 waves in roughly [-1.0, 1.0].

    numpy integer arrays are scaled by their full-scale value (unsigned
    types are offset-binary).  Float arrays pass through unchanged.  Plain
    Python sequences are taken to hold wave values already.
    """
    if not isinstance(samples, np.ndarray):
        return np.asarray(samples, dtype=np.float64)

    kind = samples.dtype.kind
    if kind == "f":
        return samples.astype(np.float64, copy=False)
    if kind == "i":
        scale = float(2 ** (samples.dtype.itemsize * 8 - 1))
        return samples.astype(np.float64) / scale
    if kind == "u":
        scale = float(2 ** (samples.dtype.itemsize * 8 - 1))
        return (samples.astype(np.float64) - scale) / scale
    raise TypeError(f"Cannot convert samples of dtype {samples.dtype} to wave values")


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------

def probe(filepath: str) -> tuple[int, int, int]:
    """Return ``(channels, samplerate, frames)`` for an audio file."""
    try:
        info = sf.info(filepath)
    except (RuntimeError, OSError) as e:
        raise ConfigError(f"Cannot read audio file {filepath}: {e}")
    return info.channels, info.samplerate, info.frames


def read_blocks(filepath: str, frames: int) -> Iterator[tuple[np.ndarray, int]]:
    """Yield ``(block, samplerate)`` pairs of at most *frames* frames.

    Blocks are float64 arrays shaped ``(frames, channels)``; the final
    block may be shorter.
    """
    if frames <= 0:
        raise ConfigError(f"Block size must be positive, got {frames}")
    try:
        f = sf.SoundFile(filepath)
    except (RuntimeError, OSError) as e:
        raise ConfigError(f"Cannot read audio file {filepath}: {e}")
    with f:
        samplerate = f.samplerate
        for block in f.blocks(blocksize=frames, dtype="float64", always_2d=True):
            yield block, samplerate
