"""SignalGraphService: composition root of the derived signal engine.

The service owns one instance of every stateful component and wires them
together; nothing in the engine is reached through module-level globals.

    bus ──> cache subscriber (routes every event to cache invalidation)
    band provider ──> bus (band events are forwarded, never handled directly)
    store ──> bus (definition events)
    driver ──> store, graph, cache, pipeline, persistence

Usage
-----
    config = resolve_config(ParamConfig(), UserConfig(EVENT_SAMPLE_RATE=200))
    service = SignalGraphService(config, analysis_provider=backend)
    signal_id = service.add_signal({"name": "Kick energy"})
    service.compute_all_signals()
    result = service.get_signal_result(signal_id)
"""

import logging
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from pydantic import BaseModel, TypeAdapter

from signalgraph.contracts import FailurePolicy
from signalgraph.core.bus import InvalidationBus
from signalgraph.core.cache import ResultCache
from signalgraph.core.graph import ComputationGraph
from signalgraph.core.store import SignalDefinitionStore
from signalgraph.pipeline.driver import ComputationDriver
from signalgraph.pipeline.persistence import JsonDefinitionFile
from signalgraph.pipeline.providers import NullEventStreamProvider
from signalgraph.schemas.definition import (
    CandidateBeatsRef,
    CandidateOnsetsRef,
    MirSignalRef,
    Source1D,
    Source2D,
    SourceEvents,
)
from signalgraph.schemas.events import (
    BAND_EVENT_KINDS,
    BAND_STRUCTURE_EVENT_KINDS,
    AnalysisUpdated,
    AudioSourceChanged,
    InvalidationEvent,
)
from signalgraph.schemas.internal import InternalConfig
from signalgraph.transforms.pipeline import (
    BEAT_CANDIDATES_FUNCTION,
    ONSET_PEAKS_FUNCTION,
    TransformPipeline,
)
from signalgraph.transforms.stabilization import compute_local_stats

logger = logging.getLogger(__name__)

CACHE_LISTENER_ID = "signalgraph.result-cache"
BAND_LISTENER_ID = "signalgraph.band-bridge"

_event_adapter = TypeAdapter(InvalidationEvent)


class SignalGraphService:
    """Owned service object exposing the engine to UI/orchestration layers.

    Parameters
    ----------
    config : InternalConfig
        Resolved configuration.
    analysis_provider : AudioAnalysisProvider
        External analysis backend.
    event_provider : EventStreamProvider, optional
        Authored event streams. Defaults to a provider with no streams.
    band_provider : BandDefinitionProvider, optional
        Band domain; its change notifications are forwarded onto the bus.
    persistence : PersistenceCollaborator, optional
        Defaults to ``JsonDefinitionFile`` when
        ``config.persistence.definitions_path`` is set.
    failure_policy : FailurePolicy
        Passed to the driver.
    """

    def __init__(self, config: InternalConfig, analysis_provider, event_provider=None,
                 band_provider=None, persistence=None,
                 failure_policy: FailurePolicy = FailurePolicy.FAIL_SIGNAL):
        self.config = config
        self.analysis = analysis_provider
        self.band_provider = band_provider

        if persistence is None and config.persistence.definitions_path:
            persistence = JsonDefinitionFile(Path(config.persistence.definitions_path))
        self.persistence = persistence

        self.bus = InvalidationBus()
        self.graph = ComputationGraph()
        self.cache = ResultCache(self.graph)
        self.store = SignalDefinitionStore(self.bus, self.graph)
        self.pipeline = TransformPipeline(
            config,
            analysis_provider,
            event_provider or NullEventStreamProvider(),
            self.cache,
        )
        self.driver = ComputationDriver(
            self.store,
            self.graph,
            self.cache,
            self.pipeline,
            persistence=self.persistence,
            failure_policy=failure_policy,
        )

        self._unsubscribers = [self.bus.subscribe(CACHE_LISTENER_ID, self._on_invalidation)]
        if band_provider is not None:
            self._unsubscribers.append(
                band_provider.subscribe(BAND_LISTENER_ID, self._forward_band_event)
            )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def setup_logging(self) -> None:
        """Configure the root logger from ``config.logging``.

        Console handler always; file handler when ``logging.log_file`` is set.
        """
        setup_logging(self.config.logging.level, self.config.logging.log_file)

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def add_signal(self, partial: Optional[dict[str, Any]] = None) -> str:
        signal_id = self.store.add_signal(partial)
        self.driver.sync_persistence()
        return signal_id

    def update_signal(self, signal_id: str, updates: dict[str, Any]):
        updated = self.store.update_signal(signal_id, updates)
        if updated is not None:
            self.driver.sync_persistence()
        return updated

    def remove_signal(self, signal_id: str) -> bool:
        removed = self.store.remove_signal(signal_id)
        if removed:
            self.driver.sync_persistence()
        return removed

    def set_signal_enabled(self, signal_id: str, enabled: bool):
        return self.update_signal(signal_id, {"enabled": enabled})

    def get_signal(self, signal_id: str):
        return self.store.get_signal_by_id(signal_id)

    def load_from_project(self) -> bool:
        """Replace definitions with those held by the persistence collaborator.

        Returns
        -------
        bool
            False when there is no collaborator or nothing stored.
        """
        if self.persistence is None:
            return False
        structure = self.persistence.get_structure_for_project()
        if structure is None:
            return False
        self.store.load_structure(structure)
        return True

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def compute_signal(self, signal_id: str):
        return self.driver.compute_signal(signal_id)

    def compute_all_signals(self, auto_only: bool = False) -> dict[str, str]:
        return self.driver.compute_all_signals(auto_only=auto_only)

    def recompute_signal(self, signal_id: str):
        return self.driver.recompute_signal(signal_id)

    def recompute_all_signals(self) -> dict[str, str]:
        return self.driver.recompute_all_signals()

    def get_signal_result(self, signal_id: str):
        """Valid cached result for ``signal_id``, or None."""
        return self.cache.get(signal_id)

    def get_signal_status(self, signal_id: str) -> dict:
        return self.driver.get_signal_status(signal_id)

    def get_local_stats(self, signal_id: str, start: float, end: float) -> Optional[dict]:
        """min/max/p5/p95 of a computed signal within ``[start, end]`` seconds."""
        result = self.cache.get(signal_id)
        if result is None or not result.is_computed:
            return None
        return compute_local_stats(result.values, result.times, start, end)

    def is_source_data_available(self, source_id: str, function_id: str) -> bool:
        return self.analysis.get_result(source_id, function_id) is not None

    def status_frame(self) -> pd.DataFrame:
        """One row per definition: id, name, kind, enabled, status, reason, samples, epoch."""
        rows = []
        for definition in sorted(self.store.get_all_signals(), key=lambda d: d.sort_order):
            status = self.driver.get_signal_status(definition.id)
            result = self.cache.get(definition.id)
            rows.append({
                "id": definition.id,
                "name": definition.name,
                "kind": definition.source.kind,
                "enabled": definition.enabled,
                "status": status["status"],
                "reason": status["reason"],
                "samples": result.num_samples if result is not None else 0,
                "epoch": result.epoch if result is not None else None,
                "compute_time_ms": result.compute_time_ms if result is not None else None,
            })
        columns = ["id", "name", "kind", "enabled", "status", "reason",
                   "samples", "epoch", "compute_time_ms"]
        return pd.DataFrame(rows, columns=columns)

    # ------------------------------------------------------------------
    # Upstream notifications
    # ------------------------------------------------------------------

    def notify_audio_source_changed(self, audio_source_id: str) -> None:
        self.bus.publish(AudioSourceChanged(audio_source_id=audio_source_id))

    def notify_analysis_updated(self, audio_source_id: str, function_id: str) -> None:
        self.bus.publish(AnalysisUpdated(audio_source_id=audio_source_id, function_id=function_id))

    def _forward_band_event(self, event) -> None:
        if not isinstance(event, BaseModel):
            event = _event_adapter.validate_python(event)
        self.bus.publish(event)

    # ------------------------------------------------------------------
    # Cache invalidation routing
    # ------------------------------------------------------------------

    def _cascade(self, signal_ids) -> None:
        for signal_id in signal_ids:
            self.cache.invalidate_cascade(signal_id)
            self.driver.forget(signal_id)

    def _signals_using_band(self, band_id: Optional[str] = None) -> list[str]:
        matches = []
        for definition in self.store.get_all_signals():
            bands = definition.band_ids()
            if bands and (band_id is None or band_id in bands):
                matches.append(definition.id)
        return matches

    def _signals_using_audio_source(self, audio_source_id: str) -> list[str]:
        bands = set()
        if self.band_provider is not None:
            for band in self.band_provider.get_bands_for_source(audio_source_id):
                bands.add(getattr(band, "id", band))

        matches = []
        for definition in self.store.get_all_signals():
            if (audio_source_id in definition.audio_source_ids()
                    or isinstance(definition.source, SourceEvents)
                    or definition.band_ids() & bands):
                matches.append(definition.id)
        return matches

    def _signals_using_analysis(self, audio_source_id: str, function_id: str) -> list[str]:
        matches = []
        for definition in self.store.get_all_signals():
            source = definition.source
            if isinstance(source, Source2D):
                hit = source.audio_source_id == audio_source_id and source.function_id == function_id
            elif isinstance(source, Source1D) and isinstance(source.signal_ref, MirSignalRef):
                ref = source.signal_ref
                hit = ref.audio_source_id == audio_source_id and ref.function_id == function_id
            elif isinstance(source, SourceEvents):
                ref = source.stream_ref
                hit = (
                    (isinstance(ref, CandidateOnsetsRef) and function_id == ONSET_PEAKS_FUNCTION)
                    or (isinstance(ref, CandidateBeatsRef) and function_id == BEAT_CANDIDATES_FUNCTION)
                ) and ref.audio_source_id == audio_source_id
            else:
                hit = False
            if hit:
                matches.append(definition.id)
        return matches

    def _on_invalidation(self, event) -> None:
        kind = event.kind

        if kind in ("definition_added", "definition_updated"):
            self._cascade([event.signal_id])
        elif kind == "definition_removed":
            self.cache.evict(event.signal_id)
            self.cache.invalidate_many(event.affected_ids)
            self.driver.forget(event.signal_id)
        elif kind == "definitions_loaded":
            self.cache.invalidate_all()
            self.driver.forget_all()
        elif kind in BAND_EVENT_KINDS:
            self._cascade(self._signals_using_band(event.band_id))
        elif kind in BAND_STRUCTURE_EVENT_KINDS:
            self._cascade(self._signals_using_band())
        elif kind == "audio_source_changed":
            self._cascade(self._signals_using_audio_source(event.audio_source_id))
        elif kind == "analysis_updated":
            self._cascade(self._signals_using_analysis(event.audio_source_id, event.function_id))
        else:
            logger.debug(f"Ignoring invalidation event {kind!r}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Unsubscribe from the bus and the band provider."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.bus.clear()


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger with console and optional file handlers."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear existing handlers and add new ones
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_file)
