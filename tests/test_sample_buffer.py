from __future__ import annotations

import numpy as np
import pytest

from errors import BufferFrozenError
from sample_buffer import SampleBuffer


def _chunk(start: int, size: int) -> np.ndarray:
    return np.arange(start, start + size, dtype=np.float32)


def test_freeze_returns_samples_in_delivery_order() -> None:
    buffer = SampleBuffer(initial_capacity=10)
    sizes = [3, 7, 1, 12, 5]
    start = 0
    for size in sizes:
        buffer.append(_chunk(start, size))
        start += size

    frozen = buffer.freeze()

    assert len(frozen) == sum(sizes)
    np.testing.assert_array_equal(frozen, np.arange(sum(sizes), dtype=np.float32))


def test_growth_is_geometric() -> None:
    buffer = SampleBuffer(initial_capacity=16)
    for i in range(1000):
        buffer.append(_chunk(i * 16, 16))

    assert len(buffer) == 16000
    # 16 * 2^10 > 16000, so ten doublings at most
    assert buffer.reallocations <= 10
    assert buffer.capacity >= len(buffer)


def test_append_after_freeze_is_rejected() -> None:
    buffer = SampleBuffer()
    buffer.append(_chunk(0, 4))
    buffer.freeze()

    with pytest.raises(BufferFrozenError):
        buffer.append(_chunk(4, 4))
    assert len(buffer) == 4


def test_frozen_view_is_read_only() -> None:
    buffer = SampleBuffer()
    buffer.append(_chunk(0, 4))
    frozen = buffer.freeze()

    assert buffer.frozen is True
    with pytest.raises(ValueError):
        frozen[0] = 42.0
    assert buffer.freeze() is frozen


def test_empty_buffer_freezes_to_empty_view() -> None:
    buffer = SampleBuffer()
    buffer.append(np.empty(0, dtype=np.float32))

    assert len(buffer.freeze()) == 0
    assert buffer.duration_s == 0.0


def test_invalid_growth_factor() -> None:
    with pytest.raises(ValueError):
        SampleBuffer(growth_factor=1.0)
