"""Append-only sample accumulator for one recording session."""

from __future__ import annotations

import numpy as np

from errors import BufferFrozenError
from models import SAMPLE_DTYPE, SAMPLE_RATE


class SampleBuffer:
    """Growable float32 buffer holding every sample of a recording in arrival order.

    Storage grows geometrically, so appending a recording of N samples
    reallocates O(log N) times. ``freeze()`` hands out a read-only view and
    from then on ``append()`` raises instead of dropping audio.
    """

    def __init__(
        self,
        initial_capacity: int = SAMPLE_RATE * 30,
        growth_factor: float = 2.0,
    ) -> None:
        if growth_factor <= 1.0:
            raise ValueError("growth_factor must be greater than 1")
        self._data = np.empty(max(1, initial_capacity), dtype=SAMPLE_DTYPE)
        self._size = 0
        self._growth_factor = growth_factor
        self._frozen: np.ndarray | None = None
        self.reallocations = 0

    def __len__(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return int(self._data.shape[0])

    @property
    def frozen(self) -> bool:
        return self._frozen is not None

    @property
    def duration_s(self) -> float:
        return self._size / SAMPLE_RATE

    def append(self, samples: np.ndarray) -> None:
        if self._frozen is not None:
            raise BufferFrozenError(f"append of {len(samples)} samples after freeze")
        count = int(samples.shape[0])
        if count == 0:
            return
        needed = self._size + count
        if needed > self.capacity:
            self._grow(needed)
        self._data[self._size:needed] = samples
        self._size = needed

    def freeze(self) -> np.ndarray:
        """Stop accepting samples and return a read-only view of them."""
        if self._frozen is None:
            view = self._data[: self._size]
            view.flags.writeable = False
            self._frozen = view
        return self._frozen

    def _grow(self, needed: int) -> None:
        capacity = self.capacity
        while capacity < needed:
            capacity = int(capacity * self._growth_factor) + 1
        data = np.empty(capacity, dtype=SAMPLE_DTYPE)
        data[: self._size] = self._data[: self._size]
        self._data = data
        self.reallocations += 1
