"""Computed signal results.

A SignalResult is a cache entry, never a persisted entity. Arrays are held
as numpy float64 vectors; the model is frozen so a cached result can be
handed to any number of readers.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

import numpy as np
from pydantic import ConfigDict, Field

from signalgraph.schemas.base import SignalGraphBaseModel


SignalStatus = Literal["computed", "error", "uncomputed"]


class ValueRange(SignalGraphBaseModel):
    min: float
    max: float


class PercentileRange(SignalGraphBaseModel):
    p5: float
    p95: float


class SignalResult(SignalGraphBaseModel):
    """Output of one signal computation.

    Attributes
    ----------
    definition_id : str
        Id of the definition that produced this result.
    status : {"computed", "error", "uncomputed"}
        ``computed`` carries samples; ``error`` carries ``error_message``
        and empty arrays.
    times, values : np.ndarray
        Equal-length float64 vectors, times ascending.
    raw_values : np.ndarray, optional
        Pre-stabilization values when stabilization ran.
    epoch : int
        Generation counter captured when the computation started.
    """

    definition_id: str
    status: SignalStatus
    times: np.ndarray
    values: np.ndarray
    raw_values: Optional[np.ndarray] = None
    value_range: ValueRange = Field(default_factory=lambda: ValueRange(min=0.0, max=0.0))
    percentile_range: PercentileRange = Field(default_factory=lambda: PercentileRange(p5=0.0, p95=0.0))
    computed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    epoch: int = Field(0, ge=0)
    error_message: Optional[str] = None
    compute_time_ms: float = Field(0.0, ge=0)

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        arbitrary_types_allowed=True,
        frozen=True,
    )

    @property
    def num_samples(self) -> int:
        return int(self.values.shape[0])

    @property
    def is_computed(self) -> bool:
        return self.status == "computed"

    @classmethod
    def error(cls, definition_id: str, message: str, epoch: int = 0,
              compute_time_ms: float = 0.0) -> "SignalResult":
        """Build an error result with empty sample arrays."""
        return cls(
            definition_id=definition_id,
            status="error",
            times=np.zeros(0, dtype=np.float64),
            values=np.zeros(0, dtype=np.float64),
            epoch=epoch,
            error_message=message,
            compute_time_ms=compute_time_ms,
        )
