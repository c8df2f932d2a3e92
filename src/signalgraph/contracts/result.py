"""Signal result contract.

Every computed result must have equal-length, time-ascending axes and
finite values.
"""

import numpy as np

from signalgraph.contracts.base import require


def assert_signal_arrays(times: np.ndarray, values: np.ndarray, stage: str) -> None:
    """Check a (times, values) pair leaving a numeric stage."""
    require(
        times.ndim == 1 and values.ndim == 1,
        f"{stage} contract violated: expected 1D arrays, got {times.ndim}D/{values.ndim}D",
    )
    require(
        times.shape[0] == values.shape[0],
        f"{stage} contract violated: {times.shape[0]} times vs {values.shape[0]} values",
    )
    if times.size > 1:
        require(
            bool(np.all(np.diff(times) >= 0)),
            f"{stage} contract violated: times are not ascending",
        )


def assert_signal_result(result) -> None:
    """Enforce the result contract before a computed result is cached.

    Parameters
    ----------
    result : SignalResult
        Result about to be written to the cache.

    Raises
    ------
    ContractViolation
        If axis lengths differ, times are unordered, or values are not finite.
    """
    if result.status != "computed":
        return

    assert_signal_arrays(result.times, result.values, "Result")
    require(
        bool(np.all(np.isfinite(result.values))),
        f"Result contract violated: non-finite values in '{result.definition_id}'",
    )
    if result.raw_values is not None:
        require(
            result.raw_values.shape == result.values.shape,
            "Result contract violated: raw_values length differs from values",
        )
