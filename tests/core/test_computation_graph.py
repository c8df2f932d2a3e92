"""Tests for ComputationGraph ordering, cycles and cascades."""

import pytest

from signalgraph.core.errors import CyclicDependencyError
from signalgraph.core.graph import ComputationGraph

pytestmark = [pytest.mark.unit, pytest.mark.core]


@pytest.fixture
def chain_graph():
    """c -> b -> a (c derives from b, b derives from a)."""
    graph = ComputationGraph()
    graph.add_node("a")
    graph.add_node("b", {"a"})
    graph.add_node("c", {"b"})
    return graph


class TestOrdering:

    def test_dependencies_precede_dependents(self):
        graph = ComputationGraph()
        graph.add_node("b", {"a"})
        graph.add_node("a")

        assert graph.computation_order() == ["a", "b"]

    def test_ties_follow_insertion_order(self):
        graph = ComputationGraph()
        for node_id in ["z", "y", "x"]:
            graph.add_node(node_id)

        assert graph.computation_order() == ["z", "y", "x"]

    def test_order_is_repeatable(self, chain_graph):
        chain_graph.add_node("d")
        first = chain_graph.computation_order()
        assert chain_graph.computation_order() == first
        assert first.index("a") < first.index("b") < first.index("c")

    def test_subset_ignores_outside_edges(self, chain_graph):
        assert chain_graph.computation_order(["c", "b"]) == ["b", "c"]

    def test_missing_dependency_does_not_block(self):
        graph = ComputationGraph()
        graph.add_node("b", {"gone"})
        assert graph.computation_order() == ["b"]

    def test_empty_graph(self):
        assert ComputationGraph().computation_order() == []


class TestCycles:

    def test_cycle_reports_members_and_partial_order(self):
        graph = ComputationGraph()
        graph.add_node("free")
        graph.add_node("a", {"b"})
        graph.add_node("b", {"a"})
        graph.add_node("downstream", {"a"})

        with pytest.raises(CyclicDependencyError) as excinfo:
            graph.computation_order()

        assert excinfo.value.signal_ids == frozenset({"a", "b", "downstream"})
        assert excinfo.value.partial_order == ["free"]

    def test_self_reference_is_a_cycle(self):
        graph = ComputationGraph()
        assert graph.would_create_cycle("a", {"a"})

    def test_would_create_cycle_follows_transitive_edges(self, chain_graph):
        assert chain_graph.would_create_cycle("a", {"c"})
        assert not chain_graph.would_create_cycle("c", {"a"})
        assert not chain_graph.would_create_cycle("new", {"c"})


class TestCascade:

    def test_cascade_includes_seed_and_transitive_dependents(self, chain_graph):
        assert chain_graph.cascade_invalidate("a") == {"a", "b", "c"}
        assert chain_graph.cascade_invalidate("b") == {"b", "c"}
        assert chain_graph.cascade_invalidate("c") == {"c"}

    def test_removed_node_still_seeds_cascade(self, chain_graph):
        chain_graph.remove_node("a")

        assert "a" not in chain_graph
        assert chain_graph.cascade_invalidate("a") == {"a", "b", "c"}
        assert chain_graph.dependents("a") == {"b"}

    def test_update_node_rewires_edges(self, chain_graph):
        chain_graph.update_node("c", {"a"})

        assert chain_graph.dependencies("c") == {"a"}
        assert chain_graph.dependents("b") == set()
        assert chain_graph.cascade_invalidate("b") == {"b"}

    def test_diamond_cascade_visits_each_node_once(self):
        graph = ComputationGraph()
        graph.add_node("root")
        graph.add_node("left", {"root"})
        graph.add_node("right", {"root"})
        graph.add_node("join", {"left", "right"})

        assert graph.cascade_invalidate("root") == {"root", "left", "right", "join"}
        assert graph.computation_order()[-1] == "join"


def test_node_ids_and_clear(chain_graph):
    assert chain_graph.node_ids() == ["a", "b", "c"]
    assert len(chain_graph) == 3

    chain_graph.clear()
    assert len(chain_graph) == 0
    assert chain_graph.cascade_invalidate("a") == {"a"}
