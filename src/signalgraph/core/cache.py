"""Epoch-tagged result cache.

Each signal id has a generation counter; an ``invalidate_all`` bumps a
global epoch that applies to every id. All counters are drawn from one
monotonic clock, so the current epoch of an id is simply the larger of
its own generation and the global epoch.

A cached result is readable only while the epoch it was computed under is
still current. Writes carrying an older epoch are rejected: this is how a
computation that raced an invalidation gets discarded.
"""

import logging
import threading
from typing import Optional, Set

from signalgraph.core.errors import StaleWrite
from signalgraph.core.graph import ComputationGraph
from signalgraph.schemas.result import SignalResult

logger = logging.getLogger(__name__)


class ResultCache:
    """Keyed store of last-computed results with in-flight markers.

    Thread-safe: every method takes the internal lock, and each id's slot
    is independent, so computations for different ids can run side by side.

    Parameters
    ----------
    graph : ComputationGraph
        Dependency graph used by ``invalidate_cascade``.
    """

    def __init__(self, graph: ComputationGraph):
        self._graph = graph
        self._lock = threading.Lock()
        self._entries: dict[str, SignalResult] = {}
        self._generations: dict[str, int] = {}
        self._global_epoch = 0
        self._clock = 0
        self._computing: Set[str] = set()
        self._stale_writes = 0
        self._last_stale_write: Optional[StaleWrite] = None

    # ------------------------------------------------------------------
    # Epochs
    # ------------------------------------------------------------------

    def current_epoch(self, signal_id: str) -> int:
        with self._lock:
            return self._epoch_unlocked(signal_id)

    def _epoch_unlocked(self, signal_id: str) -> int:
        return max(self._generations.get(signal_id, 0), self._global_epoch)

    def _bump_unlocked(self, signal_id: str) -> None:
        self._clock += 1
        self._generations[signal_id] = self._clock
        self._entries.pop(signal_id, None)

    @property
    def stale_write_count(self) -> int:
        """Number of writes rejected because their epoch was out of date."""
        with self._lock:
            return self._stale_writes

    @property
    def last_stale_write(self) -> Optional[StaleWrite]:
        with self._lock:
            return self._last_stale_write

    # ------------------------------------------------------------------
    # Reads and writes
    # ------------------------------------------------------------------

    def get(self, signal_id: str) -> Optional[SignalResult]:
        """Return the cached result if it is still valid, else None."""
        with self._lock:
            result = self._entries.get(signal_id)
            if result is None:
                return None
            if result.epoch != self._epoch_unlocked(signal_id):
                del self._entries[signal_id]
                return None
            return result

    def has_valid(self, signal_id: str) -> bool:
        return self.get(signal_id) is not None

    def set(self, signal_id: str, result: SignalResult) -> bool:
        """Store ``result`` unless its epoch is stale.

        Returns
        -------
        bool
            True if stored, False if rejected as a stale write.
        """
        with self._lock:
            current = self._epoch_unlocked(signal_id)
            if result.epoch != current:
                self._stale_writes += 1
                self._last_stale_write = StaleWrite(signal_id, result.epoch, current)
                logger.debug(f"Stale write discarded: {self._last_stale_write}")
                return False
            self._entries[signal_id] = result
            return True

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, signal_id: str) -> None:
        """Bump one id's generation and drop its entry."""
        with self._lock:
            self._bump_unlocked(signal_id)

    def invalidate_cascade(self, signal_id: str) -> Set[str]:
        """Invalidate ``signal_id`` and every transitive dependent.

        Returns
        -------
        set of str
            Every id whose generation was bumped.
        """
        affected = self._graph.cascade_invalidate(signal_id)
        self.invalidate_many(affected)
        return affected

    def invalidate_many(self, signal_ids) -> None:
        with self._lock:
            for signal_id in signal_ids:
                self._bump_unlocked(signal_id)

    def invalidate_all(self) -> None:
        """Bump the global epoch; every entry becomes unreadable."""
        with self._lock:
            self._clock += 1
            self._global_epoch = self._clock
            self._entries.clear()

    def evict(self, signal_id: str) -> None:
        """Forget a removed signal. In-flight writes for it are rejected.

        The in-flight marker stays until the running computation clears it.
        """
        with self._lock:
            self._bump_unlocked(signal_id)

    def clear(self) -> None:
        """Drop every entry and marker. Epochs keep increasing."""
        with self._lock:
            self._clock += 1
            self._global_epoch = self._clock
            self._generations.clear()
            self._entries.clear()
            self._computing.clear()

    # ------------------------------------------------------------------
    # In-flight markers
    # ------------------------------------------------------------------

    def is_computing(self, signal_id: str) -> bool:
        with self._lock:
            return signal_id in self._computing

    def set_computing(self, signal_id: str, computing: bool = True) -> None:
        with self._lock:
            if computing:
                self._computing.add(signal_id)
            else:
                self._computing.discard(signal_id)

    def try_begin_computing(self, signal_id: str) -> bool:
        """Atomically mark ``signal_id`` in flight; False if it already was."""
        with self._lock:
            if signal_id in self._computing:
                return False
            self._computing.add(signal_id)
            return True

    def computing_ids(self) -> Set[str]:
        with self._lock:
            return set(self._computing)
