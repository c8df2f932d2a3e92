"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs with aliases for common naming patterns
(e.g., EVENT_SAMPLE_RATE -> event_sample_rate, LOG_LEVEL -> log_level).

Users only specify what they want to override from the expert defaults.
"""

from typing import Any, Literal, Optional
from pydantic import Field, field_validator
from signalgraph.schemas.base import SignalGraphBaseModel


class UserReducerConfig(SignalGraphBaseModel):
    """User-facing reducer overrides."""
    onset_smooth_ms: Optional[float] = None
    onset_use_log: Optional[bool] = None
    onset_diff_method: Optional[str] = None
    flux_normalized: Optional[bool] = None
    event_window_sec: Optional[float] = None
    envelope: Optional[dict[str, Any]] = None

    @field_validator("onset_diff_method", mode="before")
    @classmethod
    def normalize_diff_method(cls, v):
        """Normalize method names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserStabilizationConfig(SignalGraphBaseModel):
    """User-facing stabilization preset overrides."""
    light_ms: Optional[float] = None
    medium_ms: Optional[float] = None
    heavy_ms: Optional[float] = None
    default_attack_sec: Optional[float] = None
    default_release_sec: Optional[float] = None


class UserConfig(SignalGraphBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases.

    Usage
    -----
        user_cfg = UserConfig(
            EVENT_SAMPLE_RATE=200,
            BAND_REFERENCE_POLICY="error",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Compute settings (flat aliases)
    default_sample_rate: Optional[float] = Field(None, alias="DEFAULT_SAMPLE_RATE")
    event_sample_rate: Optional[float] = Field(None, alias="EVENT_SAMPLE_RATE")
    band_reference_policy: Optional[Literal["full_spectrum", "error"]] = Field(
        None, alias="BAND_REFERENCE_POLICY"
    )
    duration_source_id: Optional[str] = Field(None, alias="DURATION_SOURCE_ID")

    # Persistence / logging
    definitions_path: Optional[str] = Field(None, alias="DEFINITIONS_PATH")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(
        None, alias="LOG_LEVEL"
    )
    log_file: Optional[str] = Field(None, alias="LOG_FILE")

    # Nested overrides (advanced users)
    reducers: Optional[UserReducerConfig] = None
    stabilization: Optional[UserStabilizationConfig] = None

    model_config = SignalGraphBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("default_sample_rate", "event_sample_rate", mode="before")
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Accept int or float for numeric fields."""
        if v is not None:
            return float(v)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lower-case level names."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        compute = {}
        for key in ("default_sample_rate", "event_sample_rate",
                    "band_reference_policy", "duration_source_id"):
            value = getattr(self, key)
            if value is not None:
                compute[key] = value
        if compute:
            overrides["compute"] = compute

        if self.reducers is not None:
            reducers = self.reducers.model_dump(exclude_none=True)
            if reducers:
                overrides["reducers"] = reducers

        if self.stabilization is not None:
            stabilization = self.stabilization.model_dump(exclude_none=True)
            if stabilization:
                overrides["stabilization"] = stabilization

        if self.definitions_path is not None:
            overrides["persistence"] = {"definitions_path": str(self.definitions_path)}

        logging_cfg = {}
        if self.log_level is not None:
            logging_cfg["level"] = self.log_level
        if self.log_file is not None:
            logging_cfg["log_file"] = str(self.log_file)
        if logging_cfg:
            overrides["logging"] = logging_cfg

        return overrides
