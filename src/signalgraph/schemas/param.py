"""ParamConfig: Expert defaults for the signal computation engine.

This module defines the complete default configuration. ALL tunable
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from signalgraph.schemas.base import SignalGraphBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ComputeConfig(SignalGraphBaseModel):
    """Sampling and scheduling configuration."""
    default_sample_rate: float = Field(100.0, gt=0, description="Used when a time axis has < 2 samples")
    event_sample_rate: float = Field(100.0, gt=0, description="Dense sampling rate for event signals")
    band_reference_policy: Literal["full_spectrum", "error"] = "full_spectrum"
    duration_source_id: str = "mixdown"

    @field_validator("default_sample_rate", "event_sample_rate", mode="before")
    @classmethod
    def coerce_rate_to_float(cls, v):
        """Allow int or float for sample rates."""
        return float(v)


class EnvelopeDefaultsConfig(SignalGraphBaseModel):
    """Default attack/decay envelope for event signals."""
    attack_ms: float = Field(5.0, ge=0)
    decay_ms: float = Field(100.0, ge=0)
    gate_ms: float = Field(100.0, gt=0, description="Gate length for events without a duration")


class ReducerConfig(SignalGraphBaseModel):
    """Reducer parameter defaults."""
    onset_smooth_ms: float = Field(10.0, ge=0)
    onset_use_log: bool = True
    onset_diff_method: Literal["rectified", "abs"] = "rectified"
    flux_normalized: bool = True
    event_window_sec: float = Field(0.5, gt=0)
    envelope: EnvelopeDefaultsConfig = Field(default_factory=EnvelopeDefaultsConfig)


class StabilizationConfig(SignalGraphBaseModel):
    """Stabilization presets (smoothing windows in milliseconds)."""
    light_ms: float = Field(10.0, ge=0)
    medium_ms: float = Field(30.0, ge=0)
    heavy_ms: float = Field(100.0, ge=0)
    default_attack_sec: float = Field(0.01, ge=0)
    default_release_sec: float = Field(0.1, ge=0)


class PersistenceConfig(SignalGraphBaseModel):
    """Definition persistence configuration."""
    definitions_path: Optional[str] = None


class LoggingConfig(SignalGraphBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(SignalGraphBaseModel):
    """Complete expert configuration with all defaults.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    compute: ComputeConfig = Field(default_factory=ComputeConfig)
    reducers: ReducerConfig = Field(default_factory=ReducerConfig)
    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
