"""CRUD over signal definitions.

The store owns the definition table and keeps the dependency graph in
sync with it. It never touches the result cache: every mutation is
announced on the InvalidationBus and the cache reacts to that.
"""

import logging
import uuid
from typing import Any, Optional, Union

from signalgraph.core.bus import InvalidationBus
from signalgraph.core.errors import CyclicDependencyError
from signalgraph.core.graph import ComputationGraph
from signalgraph.schemas.definition import (
    DefinitionStructure,
    DerivedSignalRef,
    SignalDefinition,
    Source1D,
    utc_now,
)
from signalgraph.schemas.events import (
    DefinitionAdded,
    DefinitionRemoved,
    DefinitionUpdated,
    DefinitionsLoaded,
)

logger = logging.getLogger(__name__)

# alias -> field name, so updates may use either the persisted camelCase
# keys or Python attribute names
_FIELD_NAMES = {
    (info.alias or name): name for name, info in SignalDefinition.model_fields.items()
}
_FIELD_NAMES.update({name: name for name in SignalDefinition.model_fields})


def extract_dependencies(definition: SignalDefinition) -> set[str]:
    """Ids of other derived signals this definition reads.

    Only a 1D source with a ``derived`` reference creates an edge; 2D and
    event sources read external data.
    """
    source = definition.source
    if isinstance(source, Source1D) and isinstance(source.signal_ref, DerivedSignalRef):
        return {source.signal_ref.signal_id}
    return set()


def _normalize_keys(data: dict) -> dict:
    normalized = {}
    for key, value in data.items():
        if key not in _FIELD_NAMES:
            raise ValueError(f"Unknown signal definition field: {key!r}")
        normalized[_FIELD_NAMES[key]] = value
    return normalized


class SignalDefinitionStore:
    """Definition table plus dependency extraction.

    Parameters
    ----------
    bus : InvalidationBus
        Channel used to announce every mutation.
    graph : ComputationGraph
        Graph kept in sync with ``derived`` references.

    Notes
    -----
    ``add_signal`` and ``update_signal`` reject mutations that would close
    a cycle. ``load_structure`` accepts whatever the file holds; cycles
    loaded that way are isolated when the schedule is built.
    """

    def __init__(self, bus: InvalidationBus, graph: ComputationGraph):
        self._bus = bus
        self._graph = graph
        self._definitions: dict[str, SignalDefinition] = {}
        self._next_sort_order = 0
        self._structure_created_at = utc_now()

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, signal_id: str) -> bool:
        return signal_id in self._definitions

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_signal_by_id(self, signal_id: str) -> Optional[SignalDefinition]:
        return self._definitions.get(signal_id)

    def get_all_signals(self) -> list[SignalDefinition]:
        """All definitions in insertion order."""
        return list(self._definitions.values())

    def get_enabled_signals(self) -> list[SignalDefinition]:
        """Enabled definitions sorted by ``sort_order``."""
        enabled = [d for d in self._definitions.values() if d.enabled]
        return sorted(enabled, key=lambda d: d.sort_order)

    def would_create_cycle(self, signal_id: str, source_signal_id: str) -> bool:
        """True if making ``signal_id`` derive from ``source_signal_id`` closes a cycle."""
        return self._graph.would_create_cycle(signal_id, {source_signal_id})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_signal(self, partial: Union[dict[str, Any], SignalDefinition, None] = None) -> str:
        """Create a definition and return its id.

        Parameters
        ----------
        partial : dict or SignalDefinition, optional
            Any subset of definition fields (snake_case or camelCase keys).
            Missing fields take the definition defaults: a 2D mixdown mel
            spectrogram reduced by mean over the full spectrum. A missing
            ``id`` is generated.

        Raises
        ------
        ValueError
            If the id already exists.
        CyclicDependencyError
            If the definition's derived reference would close a cycle.
        pydantic.ValidationError
            If the fields do not form a valid definition.
        """
        if isinstance(partial, SignalDefinition):
            data = partial.model_dump()
        else:
            data = _normalize_keys(dict(partial or {}))

        data.setdefault("id", uuid.uuid4().hex)
        data.setdefault("sort_order", self._next_sort_order)
        definition = SignalDefinition.model_validate(data)

        if definition.id in self._definitions:
            raise ValueError(f"Signal '{definition.id}' already exists")

        dependencies = extract_dependencies(definition)
        if self._graph.would_create_cycle(definition.id, dependencies):
            raise CyclicDependencyError({definition.id, *dependencies})

        self._definitions[definition.id] = definition
        self._graph.add_node(definition.id, dependencies)
        self._next_sort_order = max(self._next_sort_order, definition.sort_order + 1)

        logger.info(f"Added signal '{definition.id}' ({definition.source.kind})")
        self._bus.publish(DefinitionAdded(signal_id=definition.id))
        return definition.id

    def update_signal(self, signal_id: str, updates: dict[str, Any]) -> Optional[SignalDefinition]:
        """Apply a partial update. A missing id is a no-op returning None.

        Top-level fields are replaced wholesale (``source`` and
        ``transforms`` are not deep-merged). ``modified_at`` is bumped.

        Raises
        ------
        CyclicDependencyError
            If the new source would close a cycle. The definition is left
            unchanged.
        """
        current = self._definitions.get(signal_id)
        if current is None:
            logger.debug(f"update_signal ignored for unknown id '{signal_id}'")
            return None

        changes = _normalize_keys(dict(updates))
        if changes.get("id", signal_id) != signal_id:
            raise ValueError("Signal id cannot be changed")

        data = current.model_dump()
        data.update(changes)
        data["modified_at"] = utc_now()
        definition = SignalDefinition.model_validate(data)

        dependencies = extract_dependencies(definition)
        if dependencies != self._graph.dependencies(signal_id):
            if self._graph.would_create_cycle(signal_id, dependencies):
                raise CyclicDependencyError({signal_id, *dependencies})
            self._graph.update_node(signal_id, dependencies)

        self._definitions[signal_id] = definition
        logger.info(f"Updated signal '{signal_id}'")
        self._bus.publish(DefinitionUpdated(signal_id=signal_id))
        return definition

    def set_signal_enabled(self, signal_id: str, enabled: bool) -> Optional[SignalDefinition]:
        return self.update_signal(signal_id, {"enabled": enabled})

    def remove_signal(self, signal_id: str) -> bool:
        """Remove a definition.

        Dependents are captured before the node's edges are dropped and
        travel with the ``definition_removed`` event, so subscribers can
        evict the id and invalidate exactly those dependents before this
        method returns.
        """
        if signal_id not in self._definitions:
            return False

        affected = self._graph.cascade_invalidate(signal_id) - {signal_id}
        del self._definitions[signal_id]
        self._graph.remove_node(signal_id)

        logger.info(f"Removed signal '{signal_id}' ({len(affected)} dependent(s) invalidated)")
        self._bus.publish(DefinitionRemoved(signal_id=signal_id, affected_ids=frozenset(affected)))
        return True

    def clear(self) -> None:
        self._definitions.clear()
        self._graph.clear()
        self._next_sort_order = 0
        self._structure_created_at = utc_now()
        logger.info("Cleared all signal definitions")
        self._bus.publish(DefinitionsLoaded(signal_ids=()))

    # ------------------------------------------------------------------
    # Structure (persistence boundary)
    # ------------------------------------------------------------------

    def load_structure(self, structure: Union[DefinitionStructure, dict]) -> None:
        """Replace every definition with those of ``structure``.

        Cycles are tolerated here and reported at WARNING; the scheduler
        isolates them later.
        """
        if not isinstance(structure, DefinitionStructure):
            structure = DefinitionStructure.model_validate(structure)

        self._definitions = {d.id: d for d in structure.signals}
        self._graph.clear()
        for definition in structure.signals:
            self._graph.add_node(definition.id, extract_dependencies(definition))

        self._next_sort_order = max((d.sort_order for d in structure.signals), default=-1) + 1
        self._structure_created_at = structure.created_at

        try:
            self._graph.computation_order()
        except CyclicDependencyError as e:
            logger.warning(f"Loaded definitions contain a cycle: {sorted(e.signal_ids)}")

        logger.info(f"Loaded {len(self._definitions)} signal definition(s)")
        self._bus.publish(DefinitionsLoaded(signal_ids=tuple(self._definitions)))

    def get_structure_for_project(self) -> DefinitionStructure:
        """Snapshot of every definition, ready for persistence."""
        return DefinitionStructure(
            signals=list(self._definitions.values()),
            created_at=self._structure_created_at,
            modified_at=utc_now(),
        )
