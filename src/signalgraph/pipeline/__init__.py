"""Computation orchestration for derived signals.

- providers: collaborator interfaces (analysis, bands, event streams, persistence)
- driver: ComputationDriver, dependency-ordered batch computation
- persistence: JsonDefinitionFile, definition storage
- service: SignalGraphService, the composition root
"""

from signalgraph.pipeline.driver import ComputationDriver
from signalgraph.pipeline.persistence import JsonDefinitionFile
from signalgraph.pipeline.providers import (
    AudioAnalysisProvider,
    BandDefinitionProvider,
    EventStreamProvider,
    NullEventStreamProvider,
    PersistenceCollaborator,
)
from signalgraph.pipeline.service import SignalGraphService, setup_logging

__all__ = [
    'ComputationDriver',
    'JsonDefinitionFile',
    'AudioAnalysisProvider',
    'BandDefinitionProvider',
    'EventStreamProvider',
    'NullEventStreamProvider',
    'PersistenceCollaborator',
    'SignalGraphService',
    'setup_logging',
]
