"""Numeric stages for derived signals.

- reduction: range resolution and 2D reducers
- events: discrete events to dense signals
- chain: transform steps and polarity
- stabilization: envelope follower, percentiles, local statistics
- pipeline: TransformPipeline, which strings the stages together
"""

from signalgraph.transforms.chain import apply_polarity, apply_transform_chain, describe_transform
from signalgraph.transforms.events import events_to_signal
from signalgraph.transforms.pipeline import TransformPipeline
from signalgraph.transforms.reduction import hz_to_feature_index, reduce_matrix, resolve_feature_range
from signalgraph.transforms.stabilization import (
    attack_release,
    compute_local_stats,
    compute_percentiles,
    stabilize_signal,
)

__all__ = [
    'TransformPipeline',
    'apply_transform_chain',
    'apply_polarity',
    'describe_transform',
    'events_to_signal',
    'hz_to_feature_index',
    'reduce_matrix',
    'resolve_feature_range',
    'attack_release',
    'compute_local_stats',
    'compute_percentiles',
    'stabilize_signal',
]
