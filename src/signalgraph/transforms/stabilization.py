"""Stabilization and summary statistics.

Stabilization runs after the transform chain and polarity stage:

1. Presets ``light``/``medium``/``heavy`` pre-smooth with a centred
   moving average (window from ``InternalStabilizationConfig``).
2. ``envelope_mode="attackRelease"``, or ``mode="peak"``, runs a causal
   attack/release follower seeded with the first sample:
   ``y[i] = y[i-1] + (1 - exp(-dt / tau)) * (x[i] - y[i-1])`` with
   ``tau`` the attack time while rising and the release time otherwise.
"""

import numpy as np

from signalgraph.transforms.utils import moving_average, odd_window, value_range


def preset_window_ms(mode: str, stabilization_config) -> float:
    return {
        "light": stabilization_config.light_ms,
        "medium": stabilization_config.medium_ms,
        "heavy": stabilization_config.heavy_ms,
    }.get(mode, 0.0)


def attack_release(values: np.ndarray, times: np.ndarray,
                   attack_sec: float, release_sec: float) -> np.ndarray:
    """Causal envelope follower.

    A zero time constant follows the input instantly in that direction.
    Non-increasing time steps pass the input sample through.
    """
    n = values.shape[0]
    if n == 0:
        return values

    out = np.empty(n, dtype=np.float64)
    out[0] = values[0]
    dts = np.diff(times)
    attack_alpha = 1.0 - np.exp(-dts / attack_sec) if attack_sec > 0 else np.ones_like(dts)
    release_alpha = 1.0 - np.exp(-dts / release_sec) if release_sec > 0 else np.ones_like(dts)

    for i in range(1, n):
        current = values[i]
        if dts[i - 1] <= 0:
            out[i] = current
            continue
        prev = out[i - 1]
        alpha = attack_alpha[i - 1] if current > prev else release_alpha[i - 1]
        out[i] = prev + alpha * (current - prev)
    return out


def stabilize_signal(values: np.ndarray, times: np.ndarray, settings, stabilization_config) -> np.ndarray:
    """Apply ``settings`` (a StabilizationSettings) to ``values``."""
    if values.shape[0] == 0 or not settings.is_active:
        return values

    result = values
    window_ms = preset_window_ms(settings.mode, stabilization_config)
    if window_ms > 0 and times.shape[0] >= 2:
        dt = float(times[1] - times[0])
        if dt > 0:
            window = odd_window((window_ms / 1000.0) / dt)
            if window > 1:
                result = moving_average(result, window)

    if settings.mode == "peak" or settings.envelope_mode == "attackRelease":
        attack = settings.attack_time_sec
        release = settings.release_time_sec
        if attack is None:
            attack = stabilization_config.default_attack_sec
        if release is None:
            release = stabilization_config.default_release_sec
        result = attack_release(result, times, attack, release)

    return result


def compute_percentiles(values: np.ndarray, percentiles=(5, 95)) -> dict:
    """Linear-interpolated percentiles; every percentile is 0 for empty input."""
    if values.shape[0] == 0:
        return {p: 0.0 for p in percentiles}
    clipped = np.clip(np.asarray(percentiles, dtype=np.float64), 0, 100)
    found = np.percentile(values, clipped)
    return {p: float(v) for p, v in zip(percentiles, found)}


def compute_local_stats(values: np.ndarray, times: np.ndarray, start: float, end: float) -> dict:
    """min/max/p5/p95 of the samples whose time falls in ``[start, end]``."""
    mask = (times >= start) & (times <= end)
    window = values[mask]
    if window.shape[0] == 0:
        return {"min": 0.0, "max": 0.0, "p5": 0.0, "p95": 0.0}
    lo, hi = value_range(window)
    pct = compute_percentiles(window, (5, 95))
    return {"min": lo, "max": hi, "p5": pct[5], "p95": pct[95]}
