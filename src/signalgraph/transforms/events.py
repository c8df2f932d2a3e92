"""Discrete events to dense signals.

Output is sampled at a fixed rate over the whole source duration:
``ceil(duration * sample_rate)`` samples at ``times[i] = i / sample_rate``.

Window reducers count events in a centred window
``[(i - half) / sr, (i + half) / sr)`` where ``half`` is half the window
length in samples (rounded down). The ``envelope`` reducer sums one kernel
per event.
"""

import math
from typing import Iterable

import numpy as np

from signalgraph.schemas.analysis import DiscreteEvent
from signalgraph.schemas.definition import (
    AttackDecayShape,
    EventWindow,
    GateShape,
    GaussianShape,
    ImpulseShape,
)

WINDOW_REDUCERS = frozenset({"eventCount", "eventDensity", "weightedSum", "weightedMean"})


def _window_samples(window: EventWindow, sample_rate: float) -> int:
    if window.kind == "seconds":
        return math.ceil(window.window_size * sample_rate)
    return int(window.window_size)


def _window_seconds(window: EventWindow, sample_rate: float) -> float:
    if window.kind == "seconds":
        return window.window_size
    return window.window_size / sample_rate


def _window_reduce(times_sorted, weights_sorted, reducer, window, num_samples, sample_rate):
    half = _window_samples(window, sample_rate) // 2
    idx = np.arange(num_samples)
    starts = (idx - half) / sample_rate
    ends = (idx + half) / sample_rate

    lo = np.searchsorted(times_sorted, starts, side="left")
    hi = np.searchsorted(times_sorted, ends, side="left")
    counts = (hi - lo).astype(np.float64)

    if reducer == "eventCount":
        return counts
    if reducer == "eventDensity":
        return counts / _window_seconds(window, sample_rate)

    cumulative = np.concatenate(([0.0], np.cumsum(weights_sorted)))
    sums = cumulative[hi] - cumulative[lo]
    if reducer == "weightedSum":
        return sums
    return np.divide(sums, counts, out=np.zeros(num_samples), where=counts > 0)


def _add_envelope(values, event, shape, sample_rate, gate_ms):
    n = values.shape[0]
    start = math.floor(event.time * sample_rate)
    weight = event.weight

    if isinstance(shape, ImpulseShape):
        if 0 <= start < n:
            values[start] += weight
        return

    if isinstance(shape, GaussianShape):
        width = (shape.width_ms / 1000.0) * sample_rate
        sigma = width / 4.0
        lo = max(0, math.floor(start - width))
        hi = min(n, math.ceil(start + width))
        if hi > lo and sigma > 0:
            i = np.arange(lo, hi, dtype=np.float64)
            values[lo:hi] += np.exp(-((i - start) ** 2) / (2.0 * sigma * sigma)) * weight
        return

    if isinstance(shape, AttackDecayShape):
        attack = (shape.attack_ms / 1000.0) * sample_rate
        decay = (shape.decay_ms / 1000.0) * sample_rate

        attack_end = min(float(n), start + attack)
        if attack > 0 and attack_end > start:
            i = np.arange(start, math.ceil(attack_end))
            values[i] += ((i - start) / attack) * weight

        decay_start = start + attack
        decay_end = min(float(n), decay_start + decay)
        first = math.ceil(decay_start)
        if decay > 0 and decay_end > first:
            i = np.arange(first, math.ceil(decay_end))
            values[i] += (1.0 - (i - decay_start) / decay) * weight
        return

    if isinstance(shape, GateShape):
        length_sec = event.duration if event.duration else gate_ms / 1000.0
        hi = min(n, math.ceil(start + length_sec * sample_rate))
        if hi > start:
            values[max(0, start):hi] += weight
        return

    raise ValueError(f"Unknown envelope shape: {shape!r}")


def events_to_signal(
    events: Iterable[DiscreteEvent],
    reducer: str,
    duration: float,
    sample_rate: float,
    window: EventWindow,
    shape,
    normalize: bool = False,
    gate_ms: float = 100.0,
):
    """Convert events to ``(times, values, raw_range)``.

    Parameters
    ----------
    events : iterable of DiscreteEvent
        Events in any order.
    reducer : str
        ``eventCount``, ``eventDensity``, ``weightedSum``, ``weightedMean``
        or ``envelope``.
    duration : float
        Signal length in seconds.
    sample_rate : float
        Output rate in Hz.
    window : EventWindow
        Used by the window reducers.
    shape : EnvelopeShape
        Used by ``envelope``.
    normalize : bool
        Min-max rescale to [0, 1] when the output is not flat.
    gate_ms : float
        Gate length for events without a duration.

    Returns
    -------
    times : np.ndarray
    values : np.ndarray
    raw_range : tuple of float
        (min, max) before normalization.
    """
    num_samples = max(0, math.ceil(duration * sample_rate))
    times = np.arange(num_samples, dtype=np.float64) / sample_rate
    events = list(events)

    if reducer in WINDOW_REDUCERS:
        ordered = sorted(events, key=lambda e: e.time)
        event_times = np.array([e.time for e in ordered], dtype=np.float64)
        weights = np.array([e.weight for e in ordered], dtype=np.float64)
        values = _window_reduce(event_times, weights, reducer, window, num_samples, sample_rate)
    elif reducer == "envelope":
        values = np.zeros(num_samples)
        for event in events:
            _add_envelope(values, event, shape, sample_rate, gate_ms)
    else:
        raise ValueError(f"Unknown event reducer: {reducer}")

    lo = float(values.min()) if num_samples else 0.0
    hi = float(values.max()) if num_samples else 0.0
    if normalize and hi > lo:
        values = (values - lo) / (hi - lo)

    return times, values, (lo, hi)
