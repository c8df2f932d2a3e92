"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that computation code depends on.
"""

from typing import Literal, Optional
from pydantic import ConfigDict
from signalgraph.schemas.base import SignalGraphBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalComputeConfig(SignalGraphBaseModel):
    """Runtime sampling and scheduling configuration."""
    default_sample_rate: float
    event_sample_rate: float
    band_reference_policy: Literal["full_spectrum", "error"]
    duration_source_id: str


class InternalEnvelopeDefaultsConfig(SignalGraphBaseModel):
    """Runtime default event envelope."""
    attack_ms: float
    decay_ms: float
    gate_ms: float


class InternalReducerConfig(SignalGraphBaseModel):
    """Runtime reducer defaults."""
    onset_smooth_ms: float
    onset_use_log: bool
    onset_diff_method: Literal["rectified", "abs"]
    flux_normalized: bool
    event_window_sec: float
    envelope: InternalEnvelopeDefaultsConfig


class InternalStabilizationConfig(SignalGraphBaseModel):
    """Runtime stabilization presets."""
    light_ms: float
    medium_ms: float
    heavy_ms: float
    default_attack_sec: float
    default_release_sec: float


class InternalPersistenceConfig(SignalGraphBaseModel):
    """Runtime persistence configuration."""
    definitions_path: Optional[str]


class InternalLoggingConfig(SignalGraphBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_file: Optional[str]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(SignalGraphBaseModel):
    """Authoritative runtime configuration.

    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.event_rate = config.compute.event_sample_rate  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    compute: InternalComputeConfig
    reducers: InternalReducerConfig
    stabilization: InternalStabilizationConfig
    persistence: InternalPersistenceConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
