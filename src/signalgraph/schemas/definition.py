"""Signal definition schemas.

A derived signal definition is the persisted, user-authored recipe for a
one-dimensional control signal. It names a source (2D spectral data, a 1D
curve, or a discrete event stream), an ordered transform chain and optional
stabilization. Definitions are persisted; computed samples never are.

Every source variant is a tagged model (``kind`` / ``type`` discriminator),
so a stored definition round-trips through JSON without ambiguity.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, model_validator

from signalgraph.schemas.base import DefinitionBaseModel


DEFINITION_SCHEMA_VERSION = 1

Source2DFunctionId = Literal[
    "melSpectrogram",
    "hpssHarmonic",
    "hpssPercussive",
    "mfcc",
    "mfccDelta",
    "mfccDeltaDelta",
]

MEL_BASED_FUNCTIONS = frozenset({"melSpectrogram", "hpssHarmonic", "hpssPercussive"})

Reducer2DAlgorithmId = Literal[
    "mean",
    "max",
    "sum",
    "variance",
    "amplitude",
    "spectralFlux",
    "spectralCentroid",
    "onsetStrength",
]

Source1DGlobalFunctionId = Literal[
    "amplitudeEnvelope",
    "spectralCentroid",
    "spectralFlux",
    "onsetEnvelope",
    "cqtHarmonicEnergy",
    "cqtBassPitchMotion",
    "cqtTonalStability",
]

ReducerEventAlgorithmId = Literal[
    "eventCount",
    "eventDensity",
    "weightedSum",
    "weightedMean",
    "envelope",
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# 2D sources
# =============================================================================

class FullSpectrumRange(DefinitionBaseModel):
    kind: Literal["fullSpectrum"] = "fullSpectrum"


class BandReferenceRange(DefinitionBaseModel):
    kind: Literal["bandReference"] = "bandReference"
    band_id: str


class FrequencyRange(DefinitionBaseModel):
    kind: Literal["frequencyRange"] = "frequencyRange"
    low_hz: float = Field(ge=0)
    high_hz: float = Field(gt=0)

    @model_validator(mode="after")
    def check_order(self):
        if self.high_hz <= self.low_hz:
            raise ValueError(f"highHz ({self.high_hz}) must exceed lowHz ({self.low_hz})")
        return self


class CoefficientRange(DefinitionBaseModel):
    """Half-open coefficient interval [low_coef, high_coef)."""
    kind: Literal["coefficientRange"] = "coefficientRange"
    low_coef: int = Field(ge=0)
    high_coef: int = Field(ge=0)


RangeSpec2D = Annotated[
    Union[FullSpectrumRange, BandReferenceRange, FrequencyRange, CoefficientRange],
    Field(discriminator="kind"),
]


class Reducer2DParams(DefinitionBaseModel):
    """Optional reducer parameters; unset values fall back to config defaults."""
    smooth_ms: Optional[float] = Field(None, ge=0)
    use_log: Optional[bool] = None
    diff_method: Optional[Literal["rectified", "abs"]] = None
    normalized: Optional[bool] = None


class Source2D(DefinitionBaseModel):
    """Reduce a time x feature matrix to one value per frame."""
    kind: Literal["2d"] = "2d"
    audio_source_id: str = "mixdown"
    function_id: Source2DFunctionId = "melSpectrogram"
    range: RangeSpec2D = Field(default_factory=FullSpectrumRange)
    reducer: Reducer2DAlgorithmId = "mean"
    reducer_params: Reducer2DParams = Field(default_factory=Reducer2DParams)

    def band_ids(self) -> set[str]:
        if isinstance(self.range, BandReferenceRange):
            return {self.range.band_id}
        return set()

    def audio_source_ids(self) -> set[str]:
        return {self.audio_source_id}


# =============================================================================
# 1D sources
# =============================================================================

class MirSignalRef(DefinitionBaseModel):
    type: Literal["mir"] = "mir"
    audio_source_id: str = "mixdown"
    function_id: Source1DGlobalFunctionId = "amplitudeEnvelope"


class BandSignalRef(DefinitionBaseModel):
    type: Literal["band"] = "band"
    band_id: str
    function_id: str


class DerivedSignalRef(DefinitionBaseModel):
    type: Literal["derived"] = "derived"
    signal_id: str


Signal1DRef = Annotated[
    Union[MirSignalRef, BandSignalRef, DerivedSignalRef],
    Field(discriminator="type"),
]


class Source1D(DefinitionBaseModel):
    """Use an existing 1D curve directly."""
    kind: Literal["1d"] = "1d"
    signal_ref: Signal1DRef = Field(default_factory=MirSignalRef)

    def band_ids(self) -> set[str]:
        if isinstance(self.signal_ref, BandSignalRef):
            return {self.signal_ref.band_id}
        return set()

    def audio_source_ids(self) -> set[str]:
        if isinstance(self.signal_ref, MirSignalRef):
            return {self.signal_ref.audio_source_id}
        return set()


# =============================================================================
# Event sources
# =============================================================================

class CandidateOnsetsRef(DefinitionBaseModel):
    type: Literal["candidateOnsets"] = "candidateOnsets"
    audio_source_id: str = "mixdown"


class CandidateBeatsRef(DefinitionBaseModel):
    type: Literal["candidateBeats"] = "candidateBeats"
    audio_source_id: str = "mixdown"


class BandOnsetPeaksRef(DefinitionBaseModel):
    type: Literal["bandOnsetPeaks"] = "bandOnsetPeaks"
    band_id: str


class BandBeatCandidatesRef(DefinitionBaseModel):
    type: Literal["bandBeatCandidates"] = "bandBeatCandidates"
    band_id: str


class AuthoredEventsRef(DefinitionBaseModel):
    type: Literal["authoredEvents"] = "authoredEvents"
    stream_id: str


EventStreamRef = Annotated[
    Union[
        CandidateOnsetsRef,
        CandidateBeatsRef,
        BandOnsetPeaksRef,
        BandBeatCandidatesRef,
        AuthoredEventsRef,
    ],
    Field(discriminator="type"),
]


class EventWindow(DefinitionBaseModel):
    """Centred counting window, in seconds or in output samples."""
    kind: Literal["seconds", "samples"] = "seconds"
    window_size: float = Field(0.5, gt=0)


class ImpulseShape(DefinitionBaseModel):
    kind: Literal["impulse"] = "impulse"


class GaussianShape(DefinitionBaseModel):
    kind: Literal["gaussian"] = "gaussian"
    width_ms: float = Field(gt=0)


class AttackDecayShape(DefinitionBaseModel):
    kind: Literal["attackDecay"] = "attackDecay"
    attack_ms: float = Field(ge=0)
    decay_ms: float = Field(ge=0)


class GateShape(DefinitionBaseModel):
    """Unit plateau lasting each event's duration (100 ms when unset)."""
    kind: Literal["gate"] = "gate"


EnvelopeShape = Annotated[
    Union[ImpulseShape, GaussianShape, AttackDecayShape, GateShape],
    Field(discriminator="kind"),
]


class SourceEvents(DefinitionBaseModel):
    """Convert a discrete event stream into a dense signal."""
    kind: Literal["events"] = "events"
    stream_ref: EventStreamRef = Field(default_factory=CandidateOnsetsRef)
    reducer: ReducerEventAlgorithmId = "envelope"
    window: Optional[EventWindow] = None
    envelope_shape: Optional[EnvelopeShape] = None
    normalize_output: bool = False

    def band_ids(self) -> set[str]:
        if isinstance(self.stream_ref, (BandOnsetPeaksRef, BandBeatCandidatesRef)):
            return {self.stream_ref.band_id}
        return set()

    def audio_source_ids(self) -> set[str]:
        if isinstance(self.stream_ref, (CandidateOnsetsRef, CandidateBeatsRef)):
            return {self.stream_ref.audio_source_id}
        return set()


SignalSource = Annotated[
    Union[Source2D, Source1D, SourceEvents],
    Field(discriminator="kind"),
]


# =============================================================================
# Transform chain
# =============================================================================

class SmoothTransform(DefinitionBaseModel):
    kind: Literal["smooth"] = "smooth"
    method: Literal["movingAverage", "exponential", "gaussian"] = "movingAverage"
    window_ms: float = Field(10.0, gt=0)
    time_constant_ms: float = Field(10.0, gt=0)


class NormalizeTransform(DefinitionBaseModel):
    kind: Literal["normalize"] = "normalize"
    method: Literal["minMax", "robust", "zScore"] = "minMax"
    percentile_low: float = Field(5.0, ge=0, le=100)
    percentile_high: float = Field(95.0, ge=0, le=100)
    target_min: float = 0.0
    target_max: float = 1.0


class ScaleTransform(DefinitionBaseModel):
    kind: Literal["scale"] = "scale"
    scale: float = 1.0
    offset: float = 0.0


class PolarityTransform(DefinitionBaseModel):
    kind: Literal["polarity"] = "polarity"
    mode: Literal["signed", "positive", "negative", "magnitude"] = "signed"


class ClampTransform(DefinitionBaseModel):
    kind: Literal["clamp"] = "clamp"
    minimum: Optional[float] = Field(None, alias="min")
    maximum: Optional[float] = Field(None, alias="max")


class RemapTransform(DefinitionBaseModel):
    kind: Literal["remap"] = "remap"
    input_min: float = 0.0
    input_max: float = 1.0
    output_min: float = 0.0
    output_max: float = 1.0
    curve: Literal["linear", "ease", "easeIn", "easeOut"] = "linear"


TransformStep = Annotated[
    Union[
        SmoothTransform,
        NormalizeTransform,
        ScaleTransform,
        PolarityTransform,
        ClampTransform,
        RemapTransform,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Stabilization
# =============================================================================

class StabilizationSettings(DefinitionBaseModel):
    """Noise reduction and envelope shaping applied after the transform chain.

    ``light``/``medium``/``heavy`` pre-smooth with a centred moving average;
    ``peak`` runs the attack/release follower directly. ``attackRelease``
    envelope mode adds the follower to any preset. Unset times fall back to
    the configured defaults.
    """
    mode: Literal["none", "light", "medium", "heavy", "peak"] = "none"
    envelope_mode: Literal["raw", "attackRelease"] = "raw"
    attack_time_sec: Optional[float] = Field(None, ge=0)
    release_time_sec: Optional[float] = Field(None, ge=0)

    @property
    def is_active(self) -> bool:
        return self.mode != "none" or self.envelope_mode != "raw"


# =============================================================================
# Definition and structure
# =============================================================================

class SignalDefinition(DefinitionBaseModel):
    """Complete derived signal definition (the persisted entity)."""

    id: str = Field(min_length=1)
    name: str = "New Signal"
    source: SignalSource = Field(default_factory=Source2D)
    transforms: list[TransformStep] = Field(default_factory=list)
    stabilization: Optional[StabilizationSettings] = None
    auto_recompute: bool = True
    enabled: bool = True
    sort_order: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)

    def band_ids(self) -> set[str]:
        """Band ids whose edits can change this signal's input."""
        return self.source.band_ids()

    def audio_source_ids(self) -> set[str]:
        """Audio sources read directly by this signal's source."""
        return self.source.audio_source_ids()

    def polarity_mode(self) -> str:
        for step in self.transforms:
            if isinstance(step, PolarityTransform):
                return step.mode
        return "signed"


class DefinitionStructure(DefinitionBaseModel):
    """Versioned collection of definitions, as handed to persistence."""

    version: int = DEFINITION_SCHEMA_VERSION
    signals: list[SignalDefinition] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen = set()
        for signal in self.signals:
            if signal.id in seen:
                raise ValueError(f"Duplicate signal id in structure: {signal.id}")
            seen.add(signal.id)
        return self
