"""Formal computation invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor and system reference.
"""

COMPUTATION_INVARIANTS = {
    "feature_matrix": [
        "DataArray dims are ('time', 'feature')",
        "time coordinate exists and is ascending (seconds)",
    ],

    "reduction": [
        "One value per time frame (no reducer trims edges)",
        "spectralFlux and onsetStrength emit 0 for the first frame",
    ],

    "events": [
        "ceil(duration * sample_rate) samples, times = i / sample_rate",
        "Overlapping envelope kernels are summed",
    ],

    "result": [
        "len(values) == len(times)",
        "times are ascending",
        "values are finite",
        "raw_values, when present, has the same length as values",
        "epoch equals the generation captured when computation started",
    ],

    "cache": [
        "An entry is readable only while its epoch equals the current generation",
        "At most one in-flight computation per signal id",
    ],
}

STAGE_REQUIREMENTS = {
    "feature_matrix": "REQUIRED",   # 2D sources only
    "reduction": "REQUIRED",        # 2D sources only
    "events": "REQUIRED",           # event sources only
    "result": "REQUIRED",           # every computed signal
    "cache": "REQUIRED",
}
