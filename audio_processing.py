"""Silence trimming for frozen recordings before transcription."""

from __future__ import annotations

import numpy as np

SILENCE_THRESHOLD = 0.01
TRIM_PADDING = 3200  # 0.2 s at 16 kHz


def trim_silence(
    samples: np.ndarray,
    threshold: float = SILENCE_THRESHOLD,
    padding: int = TRIM_PADDING,
) -> np.ndarray:
    """Cut leading and trailing silence, keeping ``padding`` samples on each side.

    Returns a view of ``samples`` (never a modified copy). A recording where
    no sample rises above ``threshold`` trims down to an empty array.
    """
    if samples.shape[0] == 0:
        return samples
    loud = np.flatnonzero(np.abs(samples) > threshold)
    if loud.shape[0] == 0:
        return samples[:0]
    start = max(0, int(loud[0]) - padding)
    end = min(samples.shape[0], int(loud[-1]) + 1 + padding)
    return samples[start:end]
