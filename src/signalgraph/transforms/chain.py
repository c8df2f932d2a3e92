"""Transform chain and polarity.

Each step is a pure function of ``(values, sample_rate, times)``. Steps
run in definition order; polarity steps are skipped inside the chain and
applied afterwards by ``apply_polarity`` (the first polarity step wins).
"""

from typing import Optional, Sequence

import numpy as np
from scipy import signal as scipy_signal

from signalgraph.schemas.definition import (
    ClampTransform,
    NormalizeTransform,
    PolarityTransform,
    RemapTransform,
    ScaleTransform,
    SmoothTransform,
)
from signalgraph.transforms.utils import moving_average, odd_window, round_half_up


# =============================================================================
# Smoothing
# =============================================================================

def smooth_moving_average(values: np.ndarray, window_ms: float, sample_rate: float) -> np.ndarray:
    return moving_average(values, odd_window((window_ms / 1000.0) * sample_rate))


def smooth_exponential(values: np.ndarray, time_constant_ms: float, sample_rate: float) -> np.ndarray:
    """One-pole lowpass seeded with the first sample (``y[0] = x[0]``)."""
    if values.shape[0] == 0:
        return values
    alpha = 1.0 - np.exp(-(1.0 / sample_rate) / (time_constant_ms / 1000.0))
    b = [alpha]
    a = [1.0, -(1.0 - alpha)]
    zi = np.array([(1.0 - alpha) * values[0]])
    smoothed, _ = scipy_signal.lfilter(b, a, values, zi=zi)
    return smoothed


def smooth_gaussian(values: np.ndarray, window_ms: float, sample_rate: float) -> np.ndarray:
    """Gaussian kernel (sigma = window / 4), renormalized where it overhangs an edge."""
    window = max(1, round_half_up((window_ms / 1000.0) * sample_rate))
    n = values.shape[0]
    if window <= 1 or n == 0:
        return values

    half = window // 2
    x = np.arange(window, dtype=np.float64) - half
    sigma = window / 4.0
    kernel = np.exp(-(x * x) / (2.0 * sigma * sigma))
    kernel /= kernel.sum()

    pad = (half, window - 1 - half)
    padded = np.pad(values, pad)
    support = np.pad(np.ones(n), pad)
    weighted = np.correlate(padded, kernel, mode="valid")
    weights = np.correlate(support, kernel, mode="valid")
    return np.divide(weighted, weights, out=values.astype(np.float64), where=weights > 0)


# =============================================================================
# Normalization and mapping
# =============================================================================

def normalize_min_max(values: np.ndarray, target_min: float, target_max: float) -> np.ndarray:
    if values.shape[0] == 0:
        return values
    lo, hi = float(values.min()), float(values.max())
    if hi == lo:
        return np.full_like(values, (target_min + target_max) / 2.0)
    return target_min + (values - lo) / (hi - lo) * (target_max - target_min)


def normalize_robust(values: np.ndarray, percentile_low: float, percentile_high: float,
                     target_min: float, target_max: float) -> np.ndarray:
    """Map the [low, high] percentile band (nearest-lower rank) onto the target range."""
    n = values.shape[0]
    if n == 0:
        return values
    ordered = np.sort(values)
    p_low = ordered[int(np.floor(percentile_low / 100.0 * (n - 1)))]
    p_high = ordered[int(np.floor(percentile_high / 100.0 * (n - 1)))]
    if p_high == p_low:
        return np.full_like(values, (target_min + target_max) / 2.0)
    clipped = np.clip((values - p_low) / (p_high - p_low), 0.0, 1.0)
    return target_min + clipped * (target_max - target_min)


def normalize_z_score(values: np.ndarray) -> np.ndarray:
    if values.shape[0] == 0:
        return values
    std = float(values.std())
    if std == 0:
        return np.zeros_like(values)
    return (values - values.mean()) / std


def remap(values: np.ndarray, step: RemapTransform) -> np.ndarray:
    input_range = step.input_max - step.input_min
    if input_range == 0:
        return np.full_like(values, (step.output_min + step.output_max) / 2.0)

    t = np.clip((values - step.input_min) / input_range, 0.0, 1.0)
    if step.curve == "easeIn":
        t = t * t
    elif step.curve == "easeOut":
        t = 1.0 - (1.0 - t) ** 2
    elif step.curve == "ease":
        t = np.where(t < 0.5, 2.0 * t * t, 1.0 - ((-2.0 * t + 2.0) ** 2) / 2.0)
    return step.output_min + t * (step.output_max - step.output_min)


# =============================================================================
# Chain
# =============================================================================

def apply_transform_step(values: np.ndarray, step, sample_rate: float,
                         times: Optional[np.ndarray] = None) -> np.ndarray:
    """Apply one transform step. Polarity steps pass values through."""
    if isinstance(step, SmoothTransform):
        if step.method == "movingAverage":
            return smooth_moving_average(values, step.window_ms, sample_rate)
        if step.method == "exponential":
            return smooth_exponential(values, step.time_constant_ms, sample_rate)
        return smooth_gaussian(values, step.window_ms, sample_rate)

    if isinstance(step, NormalizeTransform):
        if step.method == "minMax":
            return normalize_min_max(values, step.target_min, step.target_max)
        if step.method == "robust":
            return normalize_robust(values, step.percentile_low, step.percentile_high,
                                    step.target_min, step.target_max)
        return normalize_z_score(values)

    if isinstance(step, ScaleTransform):
        return values * step.scale + step.offset

    if isinstance(step, ClampTransform):
        if step.minimum is None and step.maximum is None:
            return values
        return np.clip(values, step.minimum, step.maximum)

    if isinstance(step, RemapTransform):
        return remap(values, step)

    if isinstance(step, PolarityTransform):
        return values

    raise ValueError(f"Unknown transform step: {step!r}")


def apply_transform_chain(values: np.ndarray, chain: Sequence, sample_rate: float,
                          times: Optional[np.ndarray] = None) -> np.ndarray:
    result = np.asarray(values, dtype=np.float64)
    for step in chain:
        result = apply_transform_step(result, step, sample_rate, times)
    return result


def apply_polarity(values: np.ndarray, mode: str) -> np.ndarray:
    """Post-chain sign handling.

    ``signed`` keeps values, ``positive`` keeps the part above zero,
    ``negative`` keeps the magnitude of the part below zero, ``magnitude``
    takes the absolute value.
    """
    if mode == "signed":
        return values
    if mode == "positive":
        return np.maximum(values, 0.0)
    if mode == "negative":
        return np.maximum(-values, 0.0)
    if mode == "magnitude":
        return np.abs(values)
    raise ValueError(f"Unknown polarity mode: {mode}")


def describe_transform(step) -> str:
    """Short human-readable label for a transform step."""
    if isinstance(step, SmoothTransform):
        if step.method == "exponential":
            return f"Smooth ({step.time_constant_ms:g}ms exp)"
        suffix = "avg" if step.method == "movingAverage" else "gauss"
        return f"Smooth ({step.window_ms:g}ms {suffix})"
    if isinstance(step, NormalizeTransform):
        if step.method == "minMax":
            return f"Normalize ({step.target_min:g}-{step.target_max:g})"
        if step.method == "robust":
            return f"Normalize (robust {step.percentile_low:g}-{step.percentile_high:g}%)"
        return "Normalize (z-score)"
    if isinstance(step, ScaleTransform):
        if step.offset:
            return f"Scale (x{step.scale:g} + {step.offset:g})"
        return f"Scale (x{step.scale:g})"
    if isinstance(step, PolarityTransform):
        return step.mode.capitalize()
    if isinstance(step, ClampTransform):
        if step.minimum is not None and step.maximum is not None:
            return f"Clamp ({step.minimum:g}-{step.maximum:g})"
        if step.minimum is not None:
            return f"Clamp (>={step.minimum:g})"
        if step.maximum is not None:
            return f"Clamp (<={step.maximum:g})"
        return "Clamp"
    if isinstance(step, RemapTransform):
        return (f"Remap ({step.input_min:g}-{step.input_max:g} -> "
                f"{step.output_min:g}-{step.output_max:g})")
    return "Unknown"
