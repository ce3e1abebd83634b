from __future__ import annotations

import numpy as np

from audio_processing import trim_silence


def test_trim_keeps_padding_around_speech() -> None:
    samples = np.zeros(20000, dtype=np.float32)
    samples[8000:9000] = 0.5

    trimmed = trim_silence(samples, threshold=0.01, padding=3200)

    assert len(trimmed) == 1000 + 2 * 3200
    assert trimmed[3200] == np.float32(0.5)


def test_trim_padding_is_clamped_to_bounds() -> None:
    samples = np.full(1000, 0.3, dtype=np.float32)

    trimmed = trim_silence(samples, padding=3200)

    assert len(trimmed) == 1000


def test_all_silence_trims_to_empty() -> None:
    samples = np.full(16000, 0.005, dtype=np.float32)

    assert len(trim_silence(samples)) == 0


def test_trim_does_not_modify_input() -> None:
    samples = np.zeros(10, dtype=np.float32)
    samples[5] = 1.0
    samples.flags.writeable = False

    trimmed = trim_silence(samples, padding=1)

    np.testing.assert_array_equal(trimmed, np.array([0.0, 1.0, 0.0], dtype=np.float32))
    assert trimmed.base is samples
