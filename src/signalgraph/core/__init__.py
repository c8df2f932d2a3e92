"""Core state for the derived signal graph.

- bus: InvalidationBus, the only cross-domain notification channel
- graph: ComputationGraph, dependency ordering and cascade lookup
- cache: ResultCache, epoch-tagged results and in-flight markers
- store: SignalDefinitionStore, definition CRUD and dependency extraction
- errors: error taxonomy
"""

from signalgraph.core.bus import InvalidationBus
from signalgraph.core.cache import ResultCache
from signalgraph.core.errors import (
    ComputationFailure,
    CyclicDependencyError,
    MissingSourceData,
    SignalGraphError,
    StaleWrite,
    UnknownSignalError,
)
from signalgraph.core.graph import ComputationGraph
from signalgraph.core.store import SignalDefinitionStore, extract_dependencies

__all__ = [
    'InvalidationBus',
    'ResultCache',
    'ComputationGraph',
    'SignalDefinitionStore',
    'extract_dependencies',
    'SignalGraphError',
    'MissingSourceData',
    'CyclicDependencyError',
    'ComputationFailure',
    'StaleWrite',
    'UnknownSignalError',
]
