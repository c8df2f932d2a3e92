"""Tests for SignalDefinitionStore CRUD and dependency tracking."""

import time

import pytest
from pydantic import ValidationError

from signalgraph.core.bus import InvalidationBus
from signalgraph.core.errors import CyclicDependencyError
from signalgraph.core.graph import ComputationGraph
from signalgraph.core.store import SignalDefinitionStore, extract_dependencies
from signalgraph.schemas.definition import DefinitionStructure, SignalDefinition, Source2D

pytestmark = [pytest.mark.unit, pytest.mark.core]


def derived(source_id, **fields):
    return {"source": {"kind": "1d", "signal_ref": {"type": "derived", "signal_id": source_id}}, **fields}


@pytest.fixture
def events():
    return []


@pytest.fixture
def graph():
    return ComputationGraph()


@pytest.fixture
def store(graph, events):
    bus = InvalidationBus()
    bus.subscribe("recorder", events.append)
    return SignalDefinitionStore(bus, graph)


class TestAddSignal:

    def test_add_with_no_fields_uses_defaults(self, store, events):
        signal_id = store.add_signal()

        definition = store.get_signal_by_id(signal_id)
        assert len(signal_id) == 32
        assert isinstance(definition.source, Source2D)
        assert definition.name == "New Signal"
        assert events[-1].kind == "definition_added"
        assert events[-1].signal_id == signal_id

    def test_sort_order_follows_insertion(self, store):
        first = store.add_signal({"name": "one"})
        second = store.add_signal({"name": "two"})

        assert store.get_signal_by_id(first).sort_order == 0
        assert store.get_signal_by_id(second).sort_order == 1

    def test_camel_case_partial(self, store):
        signal_id = store.add_signal({"id": "x", "autoRecompute": False})
        assert store.get_signal_by_id(signal_id).auto_recompute is False

    def test_accepts_definition_instance(self, store, graph):
        store.add_signal({"id": "a"})
        store.add_signal(SignalDefinition.model_validate({"id": "b", **derived("a")}))
        assert graph.dependencies("b") == {"a"}

    def test_duplicate_id_rejected(self, store):
        store.add_signal({"id": "a"})
        with pytest.raises(ValueError, match="already exists"):
            store.add_signal({"id": "a"})

    def test_unknown_field_rejected(self, store):
        with pytest.raises(ValueError, match="Unknown signal definition field"):
            store.add_signal({"colour": "red"})

    def test_invalid_source_rejected(self, store):
        with pytest.raises(ValidationError):
            store.add_signal({"source": {"kind": "2d", "reducer": "median"}})
        assert len(store) == 0

    def test_self_reference_rejected(self, store, events):
        with pytest.raises(CyclicDependencyError):
            store.add_signal({"id": "a", **derived("a")})
        assert "a" not in store
        assert events == []


class TestUpdateSignal:

    def test_update_replaces_fields_and_bumps_modified(self, store, events):
        store.add_signal({"id": "a"})
        before = store.get_signal_by_id("a").modified_at
        time.sleep(0.001)

        updated = store.update_signal("a", {"name": "Kick", "transforms": [{"kind": "scale", "scale": 2}]})

        assert updated.name == "Kick"
        assert updated.transforms[0].scale == 2.0
        assert updated.modified_at > before
        assert events[-1].kind == "definition_updated"

    def test_update_unknown_id_is_noop(self, store, events):
        assert store.update_signal("missing", {"name": "x"}) is None
        assert events == []

    def test_update_rewires_graph(self, store, graph):
        store.add_signal({"id": "a"})
        store.add_signal({"id": "b"})
        store.add_signal({"id": "c", **derived("a")})

        store.update_signal("c", derived("b"))

        assert graph.dependencies("c") == {"b"}
        assert graph.cascade_invalidate("a") == {"a"}

    def test_update_closing_cycle_is_rejected(self, store):
        store.add_signal({"id": "a"})
        store.add_signal({"id": "b", **derived("a")})

        with pytest.raises(CyclicDependencyError):
            store.update_signal("a", derived("b"))

        assert isinstance(store.get_signal_by_id("a").source, Source2D)

    def test_id_cannot_change(self, store):
        store.add_signal({"id": "a"})
        with pytest.raises(ValueError, match="cannot be changed"):
            store.update_signal("a", {"id": "z"})

    def test_set_signal_enabled(self, store):
        store.add_signal({"id": "a"})
        store.set_signal_enabled("a", False)

        assert store.get_signal_by_id("a").enabled is False
        assert store.get_enabled_signals() == []


class TestRemoveSignal:

    def test_remove_reports_affected_dependents(self, store, events):
        store.add_signal({"id": "a"})
        store.add_signal({"id": "b", **derived("a")})
        store.add_signal({"id": "c", **derived("b")})
        store.add_signal({"id": "other"})

        assert store.remove_signal("a") is True

        event = events[-1]
        assert event.kind == "definition_removed"
        assert event.signal_id == "a"
        assert event.affected_ids == frozenset({"b", "c"})
        assert "a" not in store

    def test_remove_unknown(self, store, events):
        assert store.remove_signal("missing") is False
        assert events == []


class TestStructure:

    def test_round_trip(self, store, graph):
        store.add_signal({"id": "a", "name": "Base"})
        store.add_signal({"id": "b", **derived("a")})

        structure = store.get_structure_for_project()

        other_graph = ComputationGraph()
        other = SignalDefinitionStore(InvalidationBus(), other_graph)
        other.load_structure(structure.model_dump(mode="json", by_alias=True))

        assert [d.id for d in other.get_all_signals()] == ["a", "b"]
        assert other.get_signal_by_id("a").name == "Base"
        assert other_graph.computation_order() == ["a", "b"]

    def test_load_tolerates_cycles(self, store, events, caplog):
        structure = DefinitionStructure(signals=[
            SignalDefinition.model_validate({"id": "a", **derived("b")}),
            SignalDefinition.model_validate({"id": "b", **derived("a")}),
        ])

        store.load_structure(structure)

        assert len(store) == 2
        assert "cycle" in caplog.text
        assert events[-1].kind == "definitions_loaded"
        assert events[-1].signal_ids == ("a", "b")

    def test_load_continues_sort_order(self, store):
        store.load_structure({"signals": [{"id": "a", "sortOrder": 7}]})
        new_id = store.add_signal()
        assert store.get_signal_by_id(new_id).sort_order == 8

    def test_enabled_signals_sorted_by_sort_order(self, store):
        store.add_signal({"id": "late", "sort_order": 5})
        store.add_signal({"id": "early", "sort_order": 1})
        assert [d.id for d in store.get_enabled_signals()] == ["early", "late"]

    def test_clear_publishes_empty_load(self, store, events):
        store.add_signal({"id": "a"})
        store.clear()

        assert len(store) == 0
        assert events[-1].kind == "definitions_loaded"
        assert events[-1].signal_ids == ()


def test_extract_dependencies_only_for_derived_refs():
    assert extract_dependencies(SignalDefinition(id="plain")) == set()
    assert extract_dependencies(SignalDefinition.model_validate({"id": "d", **derived("up")})) == {"up"}


def test_would_create_cycle_query(store):
    store.add_signal({"id": "a"})
    store.add_signal({"id": "b", **derived("a")})

    assert store.would_create_cycle("a", "b")
    assert not store.would_create_cycle("b", "a")
