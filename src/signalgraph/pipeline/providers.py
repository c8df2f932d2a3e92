"""Collaborator interfaces consumed by the engine.

The engine never computes audio features, owns band definitions or writes
project files. It reaches those domains only through these interfaces,
which the host application implements.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from signalgraph.schemas.analysis import AnalysisResult, DiscreteEvent, MelFeatureConfig
from signalgraph.schemas.definition import DefinitionStructure


class AudioAnalysisProvider(ABC):
    """Cached analysis results of the external audio backend."""

    @abstractmethod
    def get_result(self, audio_source_id: str, function_id: str) -> Optional[AnalysisResult]:
        """Result of ``function_id`` for an audio source, or None if not computed."""

    def get_band_result(self, band_id: str, function_id: str) -> Optional[AnalysisResult]:
        """Band-scoped result (band curves, band onset peaks). None by default."""
        return None

    def get_feature_config(self, audio_source_id: str, function_id: str) -> Optional[MelFeatureConfig]:
        """Mel layout of a mel-indexed 2D function, or None if unknown."""
        return None

    @abstractmethod
    def get_duration(self, audio_source_id: str) -> Optional[float]:
        """Duration in seconds of an audio source, or None if not loaded."""


class BandDefinitionProvider(ABC):
    """Frequency band definitions owned by another domain.

    ``subscribe`` delivers band events (``BandAdded``, ``BandUpdated``, ...);
    the service forwards them onto the InvalidationBus.
    """

    @abstractmethod
    def subscribe(self, listener_id: str, callback: Callable[[object], None]) -> Callable[[], None]:
        """Register a band-change callback; returns an unsubscribe function."""

    @abstractmethod
    def get_bands_for_source(self, source_id: str) -> list:
        """Bands defined for an audio source."""


class EventStreamProvider(ABC):
    """Authored event streams."""

    @abstractmethod
    def get_stream(self, stream_id: str) -> Optional[list[DiscreteEvent]]:
        """Events of a stream, or None if the stream does not exist."""


class PersistenceCollaborator(ABC):
    """The only way definitions leave the engine. Results are never passed."""

    @abstractmethod
    def sync_definitions(self, structure: DefinitionStructure) -> None:
        """Store the current definition set."""

    @abstractmethod
    def get_structure_for_project(self) -> Optional[DefinitionStructure]:
        """Previously stored definitions, or None."""


class NullEventStreamProvider(EventStreamProvider):
    """Provider with no authored streams."""

    def get_stream(self, stream_id: str) -> Optional[list[DiscreteEvent]]:
        return None
