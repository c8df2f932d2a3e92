"""TransformPipeline: one definition in, one SignalResult out.

Three source paths converge on shared post-processing:

    2D:      feature matrix -> range resolution -> reducer
    1D:      analysis curve | band curve | cached derived result
    events:  event stream -> dense signal at the event sample rate

    then:    transform chain -> polarity -> stabilization -> statistics

Absent upstream data raises MissingSourceData; the driver turns that into
an ``uncomputed`` status, never an error.
"""

import logging
import time

import numpy as np
from pydantic import TypeAdapter

from signalgraph.contracts import assert_feature_matrix, assert_signal_arrays, assert_signal_result
from signalgraph.core.errors import MissingSourceData
from signalgraph.schemas.analysis import Analysis1D, Analysis2D, AnalysisEvents, DiscreteEvent
from signalgraph.schemas.definition import (
    MEL_BASED_FUNCTIONS,
    AttackDecayShape,
    AuthoredEventsRef,
    BandBeatCandidatesRef,
    BandOnsetPeaksRef,
    BandSignalRef,
    CandidateBeatsRef,
    CandidateOnsetsRef,
    DerivedSignalRef,
    EventWindow,
    MirSignalRef,
    SignalDefinition,
    Source1D,
    Source2D,
    SourceEvents,
)
from signalgraph.schemas.internal import InternalConfig
from signalgraph.schemas.result import PercentileRange, SignalResult, ValueRange
from signalgraph.transforms.chain import apply_polarity, apply_transform_chain
from signalgraph.transforms.events import events_to_signal
from signalgraph.transforms.reduction import reduce_matrix, reducer_params, resolve_feature_range
from signalgraph.transforms.stabilization import compute_percentiles, stabilize_signal
from signalgraph.transforms.utils import estimate_sample_rate, value_range

logger = logging.getLogger(__name__)

_event_list = TypeAdapter(list[DiscreteEvent])

# analysis function ids that hold candidate event streams
ONSET_PEAKS_FUNCTION = "onsetPeaks"
BEAT_CANDIDATES_FUNCTION = "beatCandidates"


class TransformPipeline:
    """Numeric pipeline for a single signal.

    Parameters
    ----------
    config : InternalConfig
        Resolved runtime configuration.
    analysis_provider : AudioAnalysisProvider
        Source of 1D curves, 2D matrices, candidate events and durations.
    event_provider : EventStreamProvider
        Source of authored event streams.
    cache : ResultCache
        Read for ``derived`` 1D sources. Only valid, computed entries are used.
    """

    def __init__(self, config: InternalConfig, analysis_provider, event_provider, cache):
        self.config = config
        self.analysis = analysis_provider
        self.event_streams = event_provider
        self.cache = cache

    def compute(self, definition: SignalDefinition, epoch: int) -> SignalResult:
        """Compute ``definition`` and tag the result with ``epoch``.

        Raises
        ------
        MissingSourceData
            Upstream data is absent.
        ComputationFailure
            A stage refused the definition (e.g. bandReference under the
            ``error`` policy).
        ContractViolation
            A stage broke its output contract.
        """
        started = time.perf_counter()
        source = definition.source

        if isinstance(source, Source2D):
            times, values = self._resolve_2d(definition.id, source)
        elif isinstance(source, Source1D):
            times, values = self._resolve_1d(definition.id, source)
        elif isinstance(source, SourceEvents):
            times, values = self._resolve_events(definition.id, source)
        else:
            raise ValueError(f"Unknown source kind for '{definition.id}'")

        assert_signal_arrays(times, values, "Source")
        result = self._post_process(definition, times, values, epoch, started)
        assert_signal_result(result)
        return result

    # ------------------------------------------------------------------
    # Source resolution
    # ------------------------------------------------------------------

    def _resolve_2d(self, signal_id: str, source: Source2D):
        analysis = self.analysis.get_result(source.audio_source_id, source.function_id)
        if not isinstance(analysis, Analysis2D):
            raise MissingSourceData(
                signal_id, f"No 2D analysis for {source.audio_source_id}:{source.function_id}"
            )

        assert_feature_matrix(analysis.data)
        if analysis.num_frames == 0 or analysis.num_features == 0:
            raise MissingSourceData(signal_id, "2D analysis is empty")

        mel_config = None
        if source.function_id in MEL_BASED_FUNCTIONS:
            mel_config = self.analysis.get_feature_config(source.audio_source_id, source.function_id)

        bounds = resolve_feature_range(
            source.range,
            analysis.num_features,
            source.function_id,
            mel_config,
            self.config.compute.band_reference_policy,
            signal_id,
        )
        times = analysis.times
        params = reducer_params(source, self.config.reducers)
        values = reduce_matrix(analysis.data.values, times, source.reducer, params, bounds)
        return times, values

    def _resolve_1d(self, signal_id: str, source: Source1D):
        ref = source.signal_ref

        if isinstance(ref, DerivedSignalRef):
            upstream = self.cache.get(ref.signal_id)
            if upstream is None or not upstream.is_computed:
                raise MissingSourceData(
                    signal_id, f"Derived source '{ref.signal_id}' has not been computed"
                )
            return upstream.times.copy(), upstream.values.copy()

        if isinstance(ref, MirSignalRef):
            analysis = self.analysis.get_result(ref.audio_source_id, ref.function_id)
            label = f"{ref.audio_source_id}:{ref.function_id}"
        elif isinstance(ref, BandSignalRef):
            analysis = self.analysis.get_band_result(ref.band_id, ref.function_id)
            label = f"band {ref.band_id}:{ref.function_id}"
        else:
            raise ValueError(f"Unknown 1D reference for '{signal_id}'")

        if not isinstance(analysis, Analysis1D):
            raise MissingSourceData(signal_id, f"No 1D analysis for {label}")
        return analysis.times.copy(), analysis.values.copy()

    def _event_duration(self, signal_id: str, ref) -> float:
        if isinstance(ref, (CandidateOnsetsRef, CandidateBeatsRef)):
            audio_source_id = ref.audio_source_id
        else:
            audio_source_id = self.config.compute.duration_source_id

        duration = self.analysis.get_duration(audio_source_id)
        if duration is None or duration <= 0:
            raise MissingSourceData(signal_id, f"No audio duration for '{audio_source_id}'")
        return float(duration)

    def _gather_events(self, signal_id: str, ref):
        if isinstance(ref, AuthoredEventsRef):
            events = self.event_streams.get_stream(ref.stream_id)
            if events is None:
                raise MissingSourceData(signal_id, f"Unknown authored event stream '{ref.stream_id}'")
            return _event_list.validate_python(list(events))

        if isinstance(ref, CandidateOnsetsRef):
            analysis = self.analysis.get_result(ref.audio_source_id, ONSET_PEAKS_FUNCTION)
            label = f"{ref.audio_source_id}:{ONSET_PEAKS_FUNCTION}"
        elif isinstance(ref, CandidateBeatsRef):
            analysis = self.analysis.get_result(ref.audio_source_id, BEAT_CANDIDATES_FUNCTION)
            label = f"{ref.audio_source_id}:{BEAT_CANDIDATES_FUNCTION}"
        elif isinstance(ref, BandOnsetPeaksRef):
            analysis = self.analysis.get_band_result(ref.band_id, ONSET_PEAKS_FUNCTION)
            label = f"band {ref.band_id}:{ONSET_PEAKS_FUNCTION}"
        elif isinstance(ref, BandBeatCandidatesRef):
            analysis = self.analysis.get_band_result(ref.band_id, BEAT_CANDIDATES_FUNCTION)
            label = f"band {ref.band_id}:{BEAT_CANDIDATES_FUNCTION}"
        else:
            raise ValueError(f"Unknown event stream reference for '{signal_id}'")

        if not isinstance(analysis, AnalysisEvents):
            raise MissingSourceData(signal_id, f"No event analysis for {label}")
        return list(analysis.events)

    def _resolve_events(self, signal_id: str, source: SourceEvents):
        duration = self._event_duration(signal_id, source.stream_ref)
        events = self._gather_events(signal_id, source.stream_ref)
        if not events:
            logger.debug(f"Signal '{signal_id}': event stream is empty")

        reducers = self.config.reducers
        window = source.window or EventWindow(window_size=reducers.event_window_sec)
        shape = source.envelope_shape or AttackDecayShape(
            attack_ms=reducers.envelope.attack_ms,
            decay_ms=reducers.envelope.decay_ms,
        )
        times, values, _ = events_to_signal(
            events,
            source.reducer,
            duration,
            self.config.compute.event_sample_rate,
            window,
            shape,
            normalize=source.normalize_output,
            gate_ms=reducers.envelope.gate_ms,
        )
        return times, values

    # ------------------------------------------------------------------
    # Shared post-processing
    # ------------------------------------------------------------------

    def _post_process(self, definition: SignalDefinition, times: np.ndarray,
                      values: np.ndarray, epoch: int, started: float) -> SignalResult:
        times = np.asarray(times, dtype=np.float64)
        sample_rate = estimate_sample_rate(times, self.config.compute.default_sample_rate)

        values = apply_transform_chain(values, definition.transforms, sample_rate, times)
        values = apply_polarity(values, definition.polarity_mode())

        raw_values = None
        settings = definition.stabilization
        if settings is not None and settings.is_active:
            raw_values = values
            values = stabilize_signal(values, times, settings, self.config.stabilization)

        lo, hi = value_range(values)
        pct = compute_percentiles(values, (5, 95))

        return SignalResult(
            definition_id=definition.id,
            status="computed",
            times=times,
            values=np.asarray(values, dtype=np.float64),
            raw_values=raw_values,
            value_range=ValueRange(min=lo, max=hi),
            percentile_range=PercentileRange(p5=pct[5], p95=pct[95]),
            epoch=epoch,
            compute_time_ms=(time.perf_counter() - started) * 1000.0,
        )
