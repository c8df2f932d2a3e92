"""Feature matrix contract.

Enforces the layout analysis providers must hand to 2D reduction.
"""

import numpy as np
import xarray as xr

from signalgraph.contracts.base import require


def assert_feature_matrix(data: xr.DataArray) -> None:
    """Enforce the 2D source contract before reduction.

    Parameters
    ----------
    data : xr.DataArray
        Time x feature matrix returned by the analysis backend.

    Raises
    ------
    ContractViolation
        If dims, time coordinate or ordering are malformed.
    """
    require(
        isinstance(data, xr.DataArray),
        f"Matrix contract violated: got {type(data)}, expected xarray.DataArray",
    )
    require(
        tuple(data.dims) == ("time", "feature"),
        f"Matrix contract violated: dims {tuple(data.dims)}, expected ('time', 'feature')",
    )
    require("time" in data.coords, "Matrix contract violated: missing 'time' coordinate")

    times = np.asarray(data["time"].values, dtype=np.float64)
    if times.size > 1:
        require(
            bool(np.all(np.diff(times) >= 0)),
            "Matrix contract violated: time coordinate is not ascending",
        )
