from __future__ import annotations

import json
import logging
import math
import os
from datetime import datetime
from typing import Any

import numpy as np

from .audio import dbfs_offset, format_duration, linear_to_db
from .models import BlockResult

log = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


def _db(linear: float, offset: float) -> float:
    return linear_to_db(linear) + offset


def _json_db(db: float) -> float | None:
    """JSON has no -inf; silence is written as null."""
    return round(db, 2) if math.isfinite(db) else None


def summarize(
    results: list[BlockResult],
    config: dict[str, Any],
    samplerate: int | float | None = None,
) -> dict[str, Any]:
    """Aggregate block results into a summary dict.

    Levels are reported linear and in dBFS using the configured
    ``dbfs_convention``.
    """
    offset = dbfs_offset(config)
    total_frames = sum(r.frames for r in results)

    avgs = np.array([r.avg_rms for r in results], dtype=np.float64)
    peaks = np.array([r.peak_rms for r in results], dtype=np.float64)
    max_avg = float(np.max(avgs)) if avgs.size else 0.0
    mean_avg = float(np.mean(avgs)) if avgs.size else 0.0
    peak = float(np.max(peaks)) if peaks.size else 0.0

    n_channels = max((len(r.per_channel_rms) for r in results), default=0)
    channel_max = [0.0] * n_channels
    for r in results:
        for ch, value in enumerate(r.per_channel_rms):
            channel_max[ch] = max(channel_max[ch], value)

    return {
        "blocks": len(results),
        "frames": total_frames,
        "duration": format_duration(total_frames, samplerate) if samplerate else None,
        "channels": n_channels,
        "max_avg_rms": max_avg,
        "max_avg_rms_db": _db(max_avg, offset),
        "mean_avg_rms": mean_avg,
        "mean_avg_rms_db": _db(mean_avg, offset),
        "peak_rms": peak,
        "peak_rms_db": _db(peak, offset),
        "channel_max_rms": channel_max,
        "channel_max_rms_db": [_db(v, offset) for v in channel_max],
    }


def render_text(summary: dict[str, Any]) -> str:
    """Render a summary dict as plain text lines."""
    def fmt(db: float) -> str:
        return f"{db:.1f} dBFS" if math.isfinite(db) else "-inf dBFS"

    lines = [
        f"Blocks: {summary['blocks']} | Frames: {summary['frames']}"
        + (f" | Duration: {summary['duration']}" if summary.get("duration") else ""),
        f"Peak RMS:         {fmt(summary['peak_rms_db'])}",
        f"Max block RMS:    {fmt(summary['max_avg_rms_db'])}",
        f"Mean block RMS:   {fmt(summary['mean_avg_rms_db'])}",
    ]
    for ch, db in enumerate(summary["channel_max_rms_db"]):
        lines.append(f"  Channel {ch + 1} max:    {fmt(db)}")
    return "\n".join(lines)


def save_json(
    results: list[BlockResult],
    config: dict[str, Any],
    output_path: str,
    *,
    source: str | None = None,
    samplerate: int | float | None = None,
) -> None:
    """Write a metering run as JSON for automation tools."""
    offset = dbfs_offset(config)
    summary = summarize(results, config, samplerate)

    data = {
        "schema_version": SCHEMA_VERSION,
        "timestamp": datetime.now().isoformat(),
        "source": os.path.abspath(source) if source else None,
        "samplerate": samplerate,
        "config": {
            "window_ms": config.get("window_ms"),
            "window_samples": config.get("window_samples"),
            "block_frames": config.get("block_frames"),
            "dbfs_convention": config.get("dbfs_convention", "standard"),
        },
        "summary": dict(summary),
        "blocks": [],
    }
    for key in ("max_avg_rms_db", "mean_avg_rms_db", "peak_rms_db"):
        data["summary"][key] = _json_db(summary[key])
    data["summary"]["channel_max_rms_db"] = [_json_db(v) for v in summary["channel_max_rms_db"]]

    for r in results:
        data["blocks"].append({
            "index": r.index,
            "start_frame": r.start_frame,
            "frames": r.frames,
            "avg_rms": r.avg_rms,
            "avg_rms_db": _json_db(_db(r.avg_rms, offset)),
            "peak_rms": r.peak_rms,
            "per_channel_rms": r.per_channel_rms,
        })

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=4, ensure_ascii=False)
    log.info("Wrote %d blocks to %s", len(results), output_path)
