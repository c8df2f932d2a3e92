"""Dependency graph and scheduler for derived signals.

Nodes are signal ids; an edge A -> B means A reads B's result (A is
derived from B). The graph is generic over ids so it can be unit tested
without definitions; SignalDefinitionStore keeps it in sync.
"""

import heapq
import logging
from collections import deque
from typing import Iterable, Optional

from signalgraph.core.errors import CyclicDependencyError

logger = logging.getLogger(__name__)


class ComputationGraph:
    """Directed dependency graph with deterministic topological ordering.

    Ties in the evaluation order are broken by node insertion order, so two
    independent signals always compute in the order they were added.
    Dependencies on ids that are not (or no longer) nodes are kept as
    edges for cascade lookup but do not block scheduling.
    """

    def __init__(self):
        self._dependencies: dict[str, set[str]] = {}
        self._dependents: dict[str, set[str]] = {}
        self._insertion: dict[str, int] = {}
        self._counter = 0

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._dependencies

    def __len__(self) -> int:
        return len(self._dependencies)

    def node_ids(self) -> list[str]:
        """Node ids in insertion order."""
        return sorted(self._dependencies, key=self._insertion.__getitem__)

    def add_node(self, node_id: str, dependencies: Iterable[str] = ()) -> None:
        """Add a node, or replace the dependencies of an existing one."""
        if node_id not in self._insertion:
            self._insertion[node_id] = self._counter
            self._counter += 1
        self._drop_outgoing(node_id)
        deps = set(dependencies)
        self._dependencies[node_id] = deps
        for dep in deps:
            self._dependents.setdefault(dep, set()).add(node_id)

    def update_node(self, node_id: str, dependencies: Iterable[str]) -> None:
        self.add_node(node_id, dependencies)

    def remove_node(self, node_id: str) -> None:
        """Remove a node and its outgoing edges.

        Incoming edges (other nodes depending on ``node_id``) are kept so
        the removed id can still seed a cascade.
        """
        if node_id not in self._dependencies:
            return
        self._drop_outgoing(node_id)
        del self._dependencies[node_id]
        del self._insertion[node_id]

    def clear(self) -> None:
        self._dependencies.clear()
        self._dependents.clear()
        self._insertion.clear()
        self._counter = 0

    def dependencies(self, node_id: str) -> set[str]:
        return set(self._dependencies.get(node_id, ()))

    def dependents(self, node_id: str) -> set[str]:
        """Direct dependents of ``node_id`` that are still nodes."""
        return {d for d in self._dependents.get(node_id, ()) if d in self._dependencies}

    def _drop_outgoing(self, node_id: str) -> None:
        for dep in self._dependencies.get(node_id, ()):
            dependents = self._dependents.get(dep)
            if dependents is None:
                continue
            dependents.discard(node_id)
            if not dependents:
                del self._dependents[dep]

    def computation_order(self, node_ids: Optional[Iterable[str]] = None) -> list[str]:
        """Topologically sort nodes with Kahn's algorithm.

        Parameters
        ----------
        node_ids : iterable of str, optional
            Restrict the sort to these nodes. Edges to nodes outside the
            set are ignored. Defaults to every node.

        Returns
        -------
        list of str
            Dependencies always precede their dependents.

        Raises
        ------
        CyclicDependencyError
            If some nodes cannot be ordered. ``signal_ids`` holds every
            unordered node, ``partial_order`` the nodes that could be.
        """
        selected = set(self._dependencies if node_ids is None else node_ids)
        selected &= set(self._dependencies)

        in_degree = {}
        for node_id in selected:
            in_degree[node_id] = sum(1 for dep in self._dependencies[node_id] if dep in selected)

        ready = [(self._insertion[n], n) for n, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)

        order = []
        while ready:
            _, node_id = heapq.heappop(ready)
            order.append(node_id)
            for dependent in self._dependents.get(node_id, ()):
                if dependent not in in_degree:
                    continue
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, (self._insertion[dependent], dependent))

        if len(order) != len(selected):
            unresolved = selected - set(order)
            logger.warning(f"Cycle detected; {len(unresolved)} signal(s) cannot be scheduled")
            raise CyclicDependencyError(unresolved, order)

        return order

    def cascade_invalidate(self, node_id: str) -> set[str]:
        """Every id whose result depends on ``node_id``, including itself.

        Follows reverse edges transitively (breadth first). Works for ids
        that were already removed, as long as dependents still reference
        them.
        """
        affected = {node_id}
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for dependent in self._dependents.get(current, ()):
                if dependent not in affected:
                    affected.add(dependent)
                    queue.append(dependent)
        return affected

    def would_create_cycle(self, node_id: str, dependencies: Iterable[str]) -> bool:
        """True if giving ``node_id`` these dependencies would close a cycle."""
        for dep in dependencies:
            if dep == node_id:
                return True
            if node_id in self._upstream(dep):
                return True
        return False

    def _upstream(self, node_id: str) -> set[str]:
        seen = set()
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            for dep in self._dependencies.get(current, ()):
                if dep not in seen:
                    seen.add(dep)
                    queue.append(dep)
        return seen
