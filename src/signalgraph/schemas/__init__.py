"""Pydantic schemas for the signalgraph engine.

Configuration models follow a layered resolution (ParamConfig < UserConfig
< CLIConfig -> InternalConfig). Domain models describe persisted signal
definitions, computed results, analysis-backend payloads and invalidation
events.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
SignalDefinition, DefinitionStructure : class
    Persisted signal definitions
SignalResult : class
    Cached computation output
"""

from signalgraph.schemas.resolve import resolve_config
from signalgraph.schemas.internal import InternalConfig
from signalgraph.schemas.param import ParamConfig
from signalgraph.schemas.user import UserConfig
from signalgraph.schemas.cli import CLIConfig
from signalgraph.schemas.definition import (
    DefinitionStructure,
    SignalDefinition,
    Source1D,
    Source2D,
    SourceEvents,
)
from signalgraph.schemas.result import SignalResult
from signalgraph.schemas.analysis import (
    Analysis1D,
    Analysis2D,
    AnalysisEvents,
    DiscreteEvent,
    MelFeatureConfig,
)

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'DefinitionStructure',
    'SignalDefinition',
    'Source1D',
    'Source2D',
    'SourceEvents',
    'SignalResult',
    'Analysis1D',
    'Analysis2D',
    'AnalysisEvents',
    'DiscreteEvent',
    'MelFeatureConfig',
]
