from __future__ import annotations

import logging
import operator
from typing import Any, Iterator

import numpy as np

from .audio import to_wave
from .config import validate_config, window_from_config
from .models import Settings, WindowSize
from .window import Window

log = logging.getLogger(__name__)


class BufferShapeError(ValueError):
    """Raised when a sample buffer does not match its channel/frame counts."""
    pass


def _as_window_size(window: WindowSize | int) -> WindowSize:
    if isinstance(window, WindowSize):
        return window
    return WindowSize.from_samples(window)


class RmsEngine:
    """Sliding-window RMS over an interleaved multi-channel stream.

    Owns one :class:`Window` per channel and an interleaved buffer holding
    the RMS at every sample of the most recent update, laid out exactly
    like the input (``frame * n_channels + channel``).

    Every ``update`` first reconciles the engine with the buffer's shape:
    channels are added or dropped, windows are resized when the resolved
    window length changes, and the result buffer is resized to the frame
    count.  Existing channel state survives all of these, so the RMS curve
    stays continuous across reconfiguration.  When nothing changes, the
    same buffers are reused.

    All values are RMS (square-rooted mean square).
    """

    def __init__(self, window: WindowSize | int) -> None:
        self.window = _as_window_size(window)
        self._windows: list[Window] = []
        self._interleaved_rms = np.zeros(0, dtype=np.float64)
        self._window_samples: int | None = self.window.samples

    @classmethod
    def with_capacity(
        cls,
        window: WindowSize | int,
        n_channels: int,
        n_frames: int,
        sample_rate: int | float | None = None,
    ) -> RmsEngine:
        """Create an engine already shaped for *n_channels* x *n_frames*.

        No samples are processed; the result buffer starts zero-filled.
        """
        _check_counts(n_channels, n_frames)
        engine = cls(window)
        engine._reconcile(n_channels, n_frames, sample_rate)
        return engine

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> RmsEngine:
        """Create an engine from a flat config dict (see ``rmslib.config``)."""
        validate_config(config)
        return cls(window_from_config(config))

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def n_channels(self) -> int:
        return len(self._windows)

    @property
    def n_frames(self) -> int:
        """Number of frames held in the result buffer."""
        if not self._windows:
            return 0
        return self._interleaved_rms.size // len(self._windows)

    @property
    def window_samples(self) -> int | None:
        """Window length in samples as resolved on the last update.

        ``None`` for a time-based window that has not seen a sample rate yet.
        """
        return self._window_samples

    @property
    def window_duration_ms(self) -> float | None:
        """Window duration for time-based windows, ``None`` otherwise."""
        return self.window.ms

    @property
    def windows(self) -> tuple[Window, ...]:
        return tuple(self._windows)

    def _reconcile(self, n_channels: int, n_frames: int, sample_rate: int | float | None) -> None:
        capacity = self.window.resolve(sample_rate)

        if capacity != self._window_samples:
            log.debug("RMS window: %s -> %d samples", self._window_samples, capacity)
            self._window_samples = capacity

        n_existing = len(self._windows)
        if n_existing != n_channels:
            log.debug("RMS channels: %d -> %d", n_existing, n_channels)
            if n_existing > n_channels:
                del self._windows[n_channels:]
            else:
                self._windows.extend(Window(capacity) for _ in range(n_channels - n_existing))

        for window in self._windows:
            if window.capacity != capacity:
                window.resize(capacity)

        n_samples = n_frames * n_channels
        size = self._interleaved_rms.size
        if size != n_samples:
            log.debug("RMS result buffer: %d -> %d samples", size, n_samples)
            resized = np.zeros(n_samples, dtype=np.float64)
            keep = min(size, n_samples)
            resized[:keep] = self._interleaved_rms[:keep]
            self._interleaved_rms = resized

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def reset_windows(self) -> None:
        """Zero every channel's window. Shapes are unchanged."""
        for window in self._windows:
            window.reset()

    def update(
        self,
        samples,
        n_channels: int,
        n_frames: int,
        sample_rate: int | float | None = None,
    ) -> None:
        """Feed one interleaved buffer through the per-channel windows.

        *samples* is a 1-D interleaved buffer of ``n_channels * n_frames``
        values, or a 2-D ``(n_frames, n_channels)`` array.  numpy integer
        samples are scaled to [-1.0, 1.0) first.  *sample_rate* is only
        needed for time-based windows.

        Raises :class:`BufferShapeError` when the buffer does not match the
        counts; the engine is left untouched in that case.
        """
        _check_counts(n_channels, n_frames)
        waves = to_wave(samples)
        if waves.ndim == 2:
            if waves.shape != (n_frames, n_channels):
                raise BufferShapeError(
                    f"Buffer of shape {waves.shape} does not match "
                    f"{n_frames} frames x {n_channels} channels"
                )
            waves = waves.reshape(-1)
        elif waves.ndim != 1:
            raise BufferShapeError(f"Expected a 1-D or 2-D buffer, got {waves.ndim} dimensions")
        if waves.size != n_channels * n_frames:
            raise BufferShapeError(
                f"Buffer holds {waves.size} samples, expected "
                f"{n_channels} channels x {n_frames} frames = {n_channels * n_frames}"
            )

        self._reconcile(n_channels, n_frames, sample_rate)

        # Channels are independent, so each strided channel slice is one block
        for channel, window in enumerate(self._windows):
            window.process(
                waves[channel::n_channels],
                out=self._interleaved_rms[channel::n_channels],
            )

    def audio_requested(self, samples, settings: Settings) -> None:
        """Host callback: update with the buffer's stream settings."""
        self.update(samples, settings.channels, settings.frames, settings.sample_hz)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def interleaved_rms(self) -> np.ndarray:
        """Read-only view of the RMS at every sample of the last update."""
        view = self._interleaved_rms[:]
        view.flags.writeable = False
        return view

    def per_channel_at_frame(self, frame_idx: int) -> np.ndarray:
        """Read-only view of each channel's RMS at *frame_idx*.

        Raises ``IndexError`` when the frame is not in the result buffer.
        """
        frame_idx = operator.index(frame_idx)
        n_frames = self.n_frames
        if not 0 <= frame_idx < n_frames:
            raise IndexError(f"Frame index {frame_idx} out of range for {n_frames} frames")
        n_channels = len(self._windows)
        start = frame_idx * n_channels
        view = self._interleaved_rms[start:start + n_channels]
        view.flags.writeable = False
        return view

    def avg_at_frame(self, frame_idx: int) -> float:
        """Mean RMS across channels at *frame_idx*.

        Raises ``IndexError`` when the frame is not in the result buffer.
        """
        frame = self.per_channel_at_frame(frame_idx)
        if frame.size == 0:
            return 0.0
        return float(np.mean(frame))

    def last_frame_index(self) -> int | None:
        n_frames = self.n_frames
        if n_frames == 0:
            return None
        return n_frames - 1

    def avg_at_last_frame(self) -> float:
        """Mean RMS at the last frame, 0.0 when nothing is stored."""
        idx = self.last_frame_index()
        if idx is None:
            return 0.0
        return self.avg_at_frame(idx)

    def per_channel_at_last_frame(self) -> np.ndarray:
        """Per-channel RMS at the last frame, empty when nothing is stored."""
        idx = self.last_frame_index()
        if idx is None:
            return np.zeros(0, dtype=np.float64)
        return self.per_channel_at_frame(idx)

    def frames(self) -> Iterator[np.ndarray]:
        """Iterate over per-channel views, one per stored frame."""
        for idx in range(self.n_frames):
            yield self.per_channel_at_frame(idx)


def _check_counts(n_channels: int, n_frames: int) -> None:
    if n_channels < 0 or n_frames < 0:
        raise BufferShapeError(
            f"Channel and frame counts must be >= 0, got {n_channels} channels, {n_frames} frames"
        )
