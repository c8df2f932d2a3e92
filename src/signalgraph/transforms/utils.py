"""Small numeric helpers shared by the transform stages."""

import math

import numpy as np


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(x + 0.5))


def odd_window(samples: float) -> int:
    """Window length of at least 1 sample, forced odd so it has a centre."""
    return max(1, round_half_up(samples)) | 1


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """Centred moving average whose window shrinks at the edges.

    Sample ``i`` averages ``values[max(0, i - half) : min(n, i + half + 1)]``
    with ``half = window // 2``, so the output has the input's length and
    no edge is padded.
    """
    values = np.asarray(values, dtype=np.float64)
    n = values.shape[0]
    if window <= 1 or n == 0:
        return values.copy()

    half = window // 2
    prefix = np.concatenate(([0.0], np.cumsum(values)))
    idx = np.arange(n)
    start = np.maximum(0, idx - half)
    end = np.minimum(n, idx + half + 1)
    return (prefix[end] - prefix[start]) / (end - start)


def estimate_sample_rate(times: np.ndarray, default: float) -> float:
    """Sample rate implied by the first frame step, or ``default``."""
    if times.shape[0] < 2:
        return default
    dt = float(times[1] - times[0])
    return 1.0 / dt if dt > 0 else default


def value_range(values: np.ndarray) -> tuple[float, float]:
    if values.shape[0] == 0:
        return 0.0, 0.0
    return float(np.min(values)), float(np.max(values))
