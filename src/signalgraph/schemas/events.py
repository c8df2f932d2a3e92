"""Invalidation events published on the InvalidationBus.

Every producer of change (definition edits, band edits, audio-source and
analysis updates) publishes one of these tagged models. Subscribers
dispatch on ``kind``.
"""

from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field

from signalgraph.schemas.base import SignalGraphBaseModel


class _Event(SignalGraphBaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)


class DefinitionAdded(_Event):
    kind: Literal["definition_added"] = "definition_added"
    signal_id: str


class DefinitionUpdated(_Event):
    kind: Literal["definition_updated"] = "definition_updated"
    signal_id: str


class DefinitionRemoved(_Event):
    """``affected_ids`` are the dependents captured before edges were dropped."""
    kind: Literal["definition_removed"] = "definition_removed"
    signal_id: str
    affected_ids: frozenset[str] = frozenset()


class DefinitionsLoaded(_Event):
    kind: Literal["definitions_loaded"] = "definitions_loaded"
    signal_ids: tuple[str, ...] = ()


class BandAdded(_Event):
    kind: Literal["band_added"] = "band_added"
    band_id: str


class BandRemoved(_Event):
    kind: Literal["band_removed"] = "band_removed"
    band_id: str


class BandUpdated(_Event):
    kind: Literal["band_updated"] = "band_updated"
    band_id: str


class BandEnabledChanged(_Event):
    kind: Literal["band_enabled_changed"] = "band_enabled_changed"
    band_id: str
    enabled: bool


class StructureCleared(_Event):
    kind: Literal["structure_cleared"] = "structure_cleared"


class StructureImported(_Event):
    kind: Literal["structure_imported"] = "structure_imported"


class AudioSourceChanged(_Event):
    kind: Literal["audio_source_changed"] = "audio_source_changed"
    audio_source_id: str


class AnalysisUpdated(_Event):
    kind: Literal["analysis_updated"] = "analysis_updated"
    audio_source_id: str
    function_id: str


InvalidationEvent = Annotated[
    Union[
        DefinitionAdded,
        DefinitionUpdated,
        DefinitionRemoved,
        DefinitionsLoaded,
        BandAdded,
        BandRemoved,
        BandUpdated,
        BandEnabledChanged,
        StructureCleared,
        StructureImported,
        AudioSourceChanged,
        AnalysisUpdated,
    ],
    Field(discriminator="kind"),
]

BAND_EVENT_KINDS = frozenset({
    "band_added",
    "band_removed",
    "band_updated",
    "band_enabled_changed",
})

BAND_STRUCTURE_EVENT_KINDS = frozenset({"structure_cleared", "structure_imported"})
