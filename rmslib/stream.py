from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

import numpy as np

from .audio import probe, read_blocks
from .config import default_config, merge_configs
from .engine import RmsEngine
from .models import BlockResult, Settings

log = logging.getLogger(__name__)


def _run(
    engine: RmsEngine,
    blocks: Iterable[tuple[np.ndarray, int | float]],
) -> Iterator[BlockResult]:
    start_frame = 0
    for index, (block, samplerate) in enumerate(blocks):
        frames, channels = block.shape
        engine.audio_requested(block, Settings(sample_hz=samplerate, channels=channels, frames=frames))
        rms = engine.interleaved_rms
        yield BlockResult(
            index=index,
            start_frame=start_frame,
            frames=frames,
            avg_rms=engine.avg_at_last_frame(),
            per_channel_rms=[float(v) for v in engine.per_channel_at_last_frame()],
            peak_rms=float(np.max(rms)) if rms.size else 0.0,
        )
        start_frame += frames


def meter_array(
    data: np.ndarray,
    samplerate: int | float,
    config: dict[str, Any] | None = None,
) -> Iterator[BlockResult]:
    """Meter an in-memory signal block by block.

    *data* is 1-D (mono) or shaped ``(frames, channels)``.
    """
    cfg = merge_configs(default_config(), config or {})
    engine = RmsEngine.from_config(cfg)
    block_frames = cfg["block_frames"]

    data = np.asarray(data)
    if data.ndim == 1:
        data = data[:, np.newaxis]
    elif data.ndim != 2:
        raise ValueError(f"Expected 1-D or (frames, channels) data, got {data.ndim} dimensions")

    def blocks():
        for start in range(0, data.shape[0], block_frames):
            yield data[start:start + block_frames], samplerate

    return _run(engine, blocks())


def meter_file(filepath: str, config: dict[str, Any] | None = None) -> Iterator[BlockResult]:
    """Meter an audio file block by block, as a live host would.

    Configuration and file errors raise :class:`ConfigError` immediately;
    blocks are read lazily while the result is iterated.
    """
    cfg = merge_configs(default_config(), config or {})
    engine = RmsEngine.from_config(cfg)
    channels, samplerate, frames = probe(filepath)
    log.info(
        "Metering %s: %d ch, %d Hz, %d frames, block %d frames",
        filepath, channels, samplerate, frames, cfg["block_frames"],
    )
    return _run(engine, read_blocks(filepath, cfg["block_frames"]))
