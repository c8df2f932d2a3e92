"""signalgraph user configuration.

Modify settings here to customize the engine. Every other tunable lives in
ParamConfig (src/signalgraph/schemas/param.py).

Usage:
    signalgraph-inspect --config scripts/user_config.py
    signalgraph-inspect project/signals.json --config scripts/user_config.py
"""

CONFIG = {
    # ========================================================================
    # COMPUTE
    # ========================================================================
    "DEFAULT_SAMPLE_RATE": 100,     # Hz, used when a time axis has < 2 samples
    "EVENT_SAMPLE_RATE": 100,       # Hz, dense rate for event-derived signals
    "BAND_REFERENCE_POLICY": "full_spectrum",  # "full_spectrum" or "error"
    "DURATION_SOURCE_ID": "mixdown",  # Audio source sizing authored event signals

    # ========================================================================
    # PERSISTENCE
    # ========================================================================
    "DEFINITIONS_PATH": "project/signals.json",

    # ========================================================================
    # LOGGING
    # ========================================================================
    "LOG_LEVEL": "INFO",
    "LOG_FILE": None,
}
