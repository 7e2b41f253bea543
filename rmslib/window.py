from __future__ import annotations

import math

import numpy as np


class Window:
    """Sliding window of squared samples for a single channel.

    The squares live in a fixed-size ring buffer (numpy array plus the
    index of the oldest slot) and their total is kept as a running sum, so
    each new sample costs one subtraction and one addition regardless of
    the window length.  The sum is clamped at zero after every removal to
    absorb floating-point drift.

    All reported values are RMS, i.e. ``sqrt(sum / capacity)``.
    """

    def __init__(self, capacity: int = 0) -> None:
        if capacity < 0:
            raise ValueError(f"Window capacity must be >= 0, got {capacity}")
        self._squares = np.zeros(int(capacity), dtype=np.float64)
        self._head = 0  # index of the oldest slot
        self._sum = 0.0

    def __repr__(self) -> str:
        return f"Window(capacity={self.capacity}, rms={self.rms:.6g})"

    @property
    def capacity(self) -> int:
        return int(self._squares.size)

    @property
    def sum(self) -> float:
        """Running total of all squared samples in the window."""
        return self._sum

    @property
    def mean_square(self) -> float:
        if self._squares.size == 0:
            return 0.0
        return self._sum / self._squares.size

    @property
    def rms(self) -> float:
        return math.sqrt(self.mean_square)

    def squares(self) -> np.ndarray:
        """Return a copy of the squared samples, oldest first."""
        return np.concatenate((self._squares[self._head:], self._squares[:self._head]))

    def reset(self) -> None:
        """Zero every slot and the sum. Capacity is unchanged."""
        self._squares.fill(0.0)
        self._head = 0
        self._sum = 0.0

    def resize(self, new_capacity: int) -> None:
        """Grow or shrink the window in place.

        Shrinking drops the oldest slots.  Growing prepends slots holding
        the current mean square, which leaves the reported RMS unchanged;
        those padding slots are the first to be evicted by new samples.
        """
        if new_capacity < 0:
            raise ValueError(f"Window capacity must be >= 0, got {new_capacity}")
        capacity = self.capacity
        if new_capacity == capacity:
            return

        ordered = self.squares()
        if new_capacity < capacity:
            n_evicted = capacity - new_capacity
            self._sum = max(self._sum - float(np.sum(ordered[:n_evicted])), 0.0)
            ordered = ordered[n_evicted:].copy()
        else:
            n_padding = new_capacity - capacity
            padding = self.mean_square
            ordered = np.concatenate((np.full(n_padding, padding, dtype=np.float64), ordered))
            self._sum += padding * n_padding

        self._squares = ordered
        self._head = 0

    def _replace_oldest(self, sample: float) -> None:
        """Evict the oldest square and store ``sample**2`` in its slot."""
        self._sum = max(self._sum - float(self._squares[self._head]), 0.0)
        square = sample * sample
        self._squares[self._head] = square
        self._head = (self._head + 1) % self._squares.size
        self._sum += square

    def next_rms(self, sample: float) -> float:
        """Add *sample* to the window and return the RMS afterwards.

        A zero-capacity window has nothing to average and returns 0.0
        without changing state.
        """
        capacity = self._squares.size
        if capacity == 0:
            return 0.0
        self._replace_oldest(float(sample))
        return math.sqrt(self._sum / capacity)

    def process(self, samples, out: np.ndarray | None = None) -> np.ndarray:
        """Feed a block of samples through the window.

        Equivalent to calling :meth:`next_rms` for each sample in order,
        computed with one cumulative sum over the block.  Results go to
        *out* when given (any writable float64 view of matching length,
        including a strided channel slice of an interleaved buffer).

        If any eviction in the block would drive the running sum below
        zero, the block is replayed sample by sample so the clamp lands
        exactly where :meth:`next_rms` applies it.
        """
        waves = np.asarray(samples, dtype=np.float64)
        n = waves.size
        if out is None:
            out = np.empty(n, dtype=np.float64)
        elif out.size != n:
            raise ValueError(f"Output holds {out.size} values, expected {n}")
        if n == 0:
            return out

        capacity = self._squares.size
        if capacity == 0:
            out[...] = 0.0
            return out

        waves = waves.ravel()
        squares = waves * waves
        # At step i the window holds history[i:i + capacity]; history[i] leaves
        history = np.concatenate((self.squares(), squares))
        sums = self._sum + np.cumsum(squares - history[:n])

        # Sum right after each eviction, before the new square is added
        evicted = sums - squares
        if evicted.min() < 0.0:
            for i, wave in enumerate(waves):
                out[i] = self.next_rms(wave)
            return out

        np.sqrt(sums / capacity, out=out)
        self._sum = float(sums[-1])
        self._squares[:] = history[-capacity:]
        self._head = 0
        return out
