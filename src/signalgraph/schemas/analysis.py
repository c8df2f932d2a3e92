"""Payloads returned by the external analysis backend.

The core never computes spectral features itself. Providers hand back one
of three shapes, tagged by ``kind``:

- ``Analysis1D``: a scalar curve (times, values)
- ``Analysis2D``: a time x feature matrix as an ``xarray.DataArray`` with
  dims ``("time", "feature")`` and a ``time`` coordinate in seconds
- ``AnalysisEvents``: a list of discrete events
"""

from typing import Literal, Optional, Union

import numpy as np
import xarray as xr
from pydantic import ConfigDict, Field, field_validator

from signalgraph.schemas.base import SignalGraphBaseModel


class _ArrayModel(SignalGraphBaseModel):
    model_config = ConfigDict(
        extra='forbid',
        arbitrary_types_allowed=True,
        frozen=True,
    )


class Analysis1D(_ArrayModel):
    kind: Literal["1d"] = "1d"
    times: np.ndarray
    values: np.ndarray

    @field_validator("times", "values", mode="before")
    @classmethod
    def coerce_vector(cls, v):
        return np.asarray(v, dtype=np.float64).reshape(-1)


class Analysis2D(_ArrayModel):
    kind: Literal["2d"] = "2d"
    data: xr.DataArray

    @property
    def times(self) -> np.ndarray:
        return np.asarray(self.data["time"].values, dtype=np.float64)

    @property
    def num_frames(self) -> int:
        return int(self.data.sizes["time"])

    @property
    def num_features(self) -> int:
        return int(self.data.sizes["feature"])


class DiscreteEvent(SignalGraphBaseModel):
    """One event. ``weight`` defaults to 1, ``duration`` is informational."""
    time: float = Field(ge=0)
    weight: float = 1.0
    duration: Optional[float] = Field(None, ge=0)

    model_config = ConfigDict(extra='ignore', frozen=True)


class AnalysisEvents(_ArrayModel):
    kind: Literal["events"] = "events"
    events: list[DiscreteEvent] = Field(default_factory=list)


AnalysisResult = Union[Analysis1D, Analysis2D, AnalysisEvents]


class MelFeatureConfig(SignalGraphBaseModel):
    """Frequency layout of mel-indexed 2D sources."""
    n_mels: int = Field(gt=0)
    f_min: float = Field(20.0, ge=0)
    f_max: float = Field(8000.0, gt=0)


def make_feature_matrix(times, matrix) -> xr.DataArray:
    """Wrap a (frames, features) array as the DataArray layout providers return."""
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.ndim == 1:
        matrix = matrix.reshape(-1, 1)
    return xr.DataArray(
        matrix,
        dims=("time", "feature"),
        coords={
            "time": np.asarray(times, dtype=np.float64),
            "feature": np.arange(matrix.shape[1]),
        },
    )
