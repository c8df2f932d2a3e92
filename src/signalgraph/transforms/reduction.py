"""2D reduction: collapse a time x feature matrix to one value per frame.

Range resolution turns a definition's ``range`` into a half-open feature
interval ``[low, high)``; the reducer then runs over that slice of every
frame. No reducer trims edges: the output always has one value per input
frame, and the differencing reducers (``spectralFlux``, ``onsetStrength``)
emit 0 for the first frame.
"""

import logging
import math
from typing import Optional

import numpy as np

from signalgraph.core.errors import ComputationFailure
from signalgraph.schemas.analysis import MelFeatureConfig
from signalgraph.schemas.definition import (
    MEL_BASED_FUNCTIONS,
    BandReferenceRange,
    CoefficientRange,
    FrequencyRange,
)
from signalgraph.transforms.utils import moving_average, odd_window

logger = logging.getLogger(__name__)


# =============================================================================
# Range resolution
# =============================================================================

def hz_to_mel(hz: float) -> float:
    return 2595.0 * math.log10(1.0 + hz / 700.0)


def hz_to_feature_index(hz: float, mel_config: MelFeatureConfig) -> float:
    """Fractional mel bin index of ``hz``, linear in mel between f_min and f_max."""
    mel_min = hz_to_mel(mel_config.f_min)
    mel_max = hz_to_mel(mel_config.f_max)
    normalized = (hz_to_mel(hz) - mel_min) / (mel_max - mel_min)
    return normalized * (mel_config.n_mels - 1)


def resolve_feature_range(
    range_spec,
    num_features: int,
    function_id: str,
    mel_config: Optional[MelFeatureConfig],
    band_reference_policy: str,
    signal_id: str = "",
) -> Optional[tuple[int, int]]:
    """Resolve a range spec to a ``(low, high)`` feature interval.

    Parameters
    ----------
    range_spec : RangeSpec2D
        The definition's range.
    num_features : int
        Width of the feature axis.
    function_id : str
        2D function; frequency ranges only apply to mel-based functions.
    mel_config : MelFeatureConfig or None
        Mel layout, when the analysis backend provides one.
    band_reference_policy : {"full_spectrum", "error"}
        What to do with a ``bandReference`` range.

    Returns
    -------
    tuple of int or None
        None means the full feature axis.

    Raises
    ------
    ComputationFailure
        For a ``bandReference`` range when the policy is ``"error"``.
    """
    if isinstance(range_spec, BandReferenceRange):
        if band_reference_policy == "error":
            raise ComputationFailure(
                signal_id,
                f"bandReference range ('{range_spec.band_id}') cannot be resolved",
            )
        logger.warning(
            f"Signal '{signal_id}': bandReference range '{range_spec.band_id}' "
            f"is not resolved; using the full spectrum"
        )
        return None

    if isinstance(range_spec, FrequencyRange):
        if function_id not in MEL_BASED_FUNCTIONS or mel_config is None:
            logger.debug(f"Signal '{signal_id}': no mel layout for {function_id}, using full spectrum")
            return None
        low = hz_to_feature_index(range_spec.low_hz, mel_config)
        high = hz_to_feature_index(range_spec.high_hz, mel_config)
        return max(0, math.floor(low)), min(num_features, math.ceil(high))

    if isinstance(range_spec, CoefficientRange):
        return max(0, range_spec.low_coef), min(num_features, range_spec.high_coef)

    return None


# =============================================================================
# Reducers
# =============================================================================

def _reduce_mean(frames, low, times, params):
    return frames.mean(axis=1)


def _reduce_max(frames, low, times, params):
    return frames.max(axis=1)


def _reduce_sum(frames, low, times, params):
    return frames.sum(axis=1)


def _reduce_variance(frames, low, times, params):
    if frames.shape[1] <= 1:
        return np.zeros(frames.shape[0])
    return frames.var(axis=1)


def _reduce_spectral_centroid(frames, low, times, params):
    magnitudes = np.where(frames > 0, frames, 0.0)
    bins = np.arange(low, low + frames.shape[1], dtype=np.float64)
    den = magnitudes.sum(axis=1)
    num = (magnitudes * bins).sum(axis=1)
    return np.divide(num, den, out=np.zeros_like(den), where=den > 0)


def _reduce_spectral_flux(frames, low, times, params):
    n = frames.shape[0]
    values = np.zeros(n)
    if n < 2:
        return values

    if params["normalized"]:
        sums = frames.sum(axis=1)
        valid = sums > 0
        safe = np.where(valid, sums, 1.0)
        current = frames / safe[:, None]
    else:
        valid = np.ones(n, dtype=bool)
        current = frames

    flux = np.abs(np.diff(current, axis=0)).sum(axis=1)
    both = valid[1:] & valid[:-1]
    values[1:] = np.where(both, flux, 0.0)
    return values


def _reduce_onset_strength(frames, low, times, params):
    n = frames.shape[0]
    values = np.zeros(n)
    if n == 0:
        return values

    if n > 1:
        cur = frames[1:]
        prev = frames[:-1]
        active = (cur > 0) | (prev > 0)
        if params["use_log"]:
            cur = np.log1p(np.maximum(cur, 0.0))
            prev = np.log1p(np.maximum(prev, 0.0))
        diff = cur - prev
        diff = np.abs(diff) if params["diff_method"] == "abs" else np.maximum(diff, 0.0)
        counts = active.sum(axis=1)
        sums = np.where(active, diff, 0.0).sum(axis=1)
        values[1:] = np.divide(sums, counts, out=np.zeros(n - 1), where=counts > 0)

    smooth_ms = params["smooth_ms"]
    if smooth_ms > 0 and n >= 2:
        dt = float(times[1] - times[0])
        if dt > 0:
            values = moving_average(values, odd_window((smooth_ms / 1000.0) / dt))
    return values


REDUCERS = {
    "mean": _reduce_mean,
    "max": _reduce_max,
    "sum": _reduce_sum,
    "variance": _reduce_variance,
    "amplitude": _reduce_sum,
    "spectralFlux": _reduce_spectral_flux,
    "spectralCentroid": _reduce_spectral_centroid,
    "onsetStrength": _reduce_onset_strength,
}


def reducer_params(source, reducer_config) -> dict:
    """Merge a source's optional reducer parameters over configured defaults."""
    p = source.reducer_params
    return {
        "smooth_ms": reducer_config.onset_smooth_ms if p.smooth_ms is None else p.smooth_ms,
        "use_log": reducer_config.onset_use_log if p.use_log is None else p.use_log,
        "diff_method": reducer_config.onset_diff_method if p.diff_method is None else p.diff_method,
        "normalized": reducer_config.flux_normalized if p.normalized is None else p.normalized,
    }


def reduce_matrix(
    matrix: np.ndarray,
    times: np.ndarray,
    reducer: str,
    params: dict,
    bounds: Optional[tuple[int, int]] = None,
) -> np.ndarray:
    """Reduce a ``(frames, features)`` matrix to ``frames`` values.

    Parameters
    ----------
    matrix : np.ndarray
        2D array, one row per frame.
    times : np.ndarray
        Frame times in seconds (used by ``onsetStrength`` smoothing).
    reducer : str
        Key of ``REDUCERS``.
    params : dict
        Output of ``reducer_params``.
    bounds : tuple of int, optional
        Half-open feature interval. None means every feature.

    Returns
    -------
    np.ndarray
        float64 vector of length ``matrix.shape[0]``. An empty interval
        yields zeros.
    """
    if reducer not in REDUCERS:
        raise ValueError(f"Unknown reducer: {reducer}")

    matrix = np.asarray(matrix, dtype=np.float64)
    num_frames, num_features = matrix.shape
    low, high = bounds if bounds is not None else (0, num_features)
    if high <= low:
        return np.zeros(num_frames)

    frames = np.nan_to_num(matrix[:, low:high], nan=0.0)
    return np.asarray(REDUCERS[reducer](frames, low, times, params), dtype=np.float64)
