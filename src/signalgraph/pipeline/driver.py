"""ComputationDriver: walks the schedule and fills the result cache.

Per signal the state machine is::

    uncomputed --compute ok--> computed --invalidation--> uncomputed
    uncomputed/computed --stage failure--> error --recompute--> uncomputed

Missing upstream data is not a failure: the signal stays ``uncomputed``
and the reason is kept for ``get_signal_status``.
"""

import logging
import time
from typing import Optional, Union

from signalgraph.contracts import ContractViolation, FailurePolicy
from signalgraph.core.errors import (
    ComputationFailure,
    CyclicDependencyError,
    MissingSourceData,
    UnknownSignalError,
)
from signalgraph.schemas.definition import SignalDefinition
from signalgraph.schemas.result import SignalResult

logger = logging.getLogger(__name__)

CYCLE_REASON = "cyclic dependency"


class ComputationDriver:
    """Orchestrates store, graph, cache and pipeline.

    Parameters
    ----------
    store : SignalDefinitionStore
    graph : ComputationGraph
    cache : ResultCache
    pipeline : TransformPipeline
    persistence : PersistenceCollaborator, optional
        Receives the definition set after every successful computation.
    failure_policy : FailurePolicy
        ``FAIL_SIGNAL`` records an error result; ``RAISE`` lets
        ``compute_signal`` propagate stage failures. ``compute_all_signals``
        never raises under either policy.
    """

    def __init__(self, store, graph, cache, pipeline, persistence=None,
                 failure_policy: FailurePolicy = FailurePolicy.FAIL_SIGNAL):
        self.store = store
        self.graph = graph
        self.cache = cache
        self.pipeline = pipeline
        self.persistence = persistence
        self.failure_policy = FailurePolicy(failure_policy)
        self._unavailable: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Single signal
    # ------------------------------------------------------------------

    def _resolve(self, definition: Union[SignalDefinition, str]) -> SignalDefinition:
        if isinstance(definition, SignalDefinition):
            return definition
        found = self.store.get_signal_by_id(definition)
        if found is None:
            raise UnknownSignalError(definition)
        return found

    def compute_signal(self, definition: Union[SignalDefinition, str]) -> Optional[SignalResult]:
        """Compute one signal and write it to the cache.

        Returns
        -------
        SignalResult or None
            None when the signal is already in flight, its source data is
            missing, or the result lost to a concurrent invalidation.
            An ``error`` result when a stage failed.
        """
        definition = self._resolve(definition)
        signal_id = definition.id

        if not self.cache.try_begin_computing(signal_id):
            logger.debug(f"'{signal_id}' is already being computed; skipping")
            return None

        try:
            epoch = self.cache.current_epoch(signal_id)
            result = self._run_pipeline(definition, epoch)
            if result is None:
                return None

            self._unavailable.pop(signal_id, None)
            if not self.cache.set(signal_id, result):
                return None

            if result.is_computed:
                logger.debug(
                    f"Computed '{signal_id}': {result.num_samples} samples "
                    f"in {result.compute_time_ms:.1f} ms"
                )
                self.sync_persistence()
            return result
        finally:
            self.cache.set_computing(signal_id, False)

    def _run_pipeline(self, definition: SignalDefinition, epoch: int) -> Optional[SignalResult]:
        signal_id = definition.id
        started = time.perf_counter()
        try:
            return self.pipeline.compute(definition, epoch)
        except MissingSourceData as e:
            self._unavailable[signal_id] = e.reason
            logger.warning(f"Signal '{signal_id}' unavailable: {e.reason}")
            return None
        except ContractViolation as e:
            logger.critical(f"Contract violated while computing '{signal_id}': {e}")
            if self.failure_policy == FailurePolicy.RAISE:
                raise
            message = str(e)
        except ComputationFailure as e:
            logger.error(f"Computation failed for '{signal_id}': {e.cause}")
            if self.failure_policy == FailurePolicy.RAISE:
                raise
            message = e.cause
        except Exception as e:
            logger.exception(f"Error computing signal '{signal_id}'")
            if self.failure_policy == FailurePolicy.RAISE:
                raise
            message = f"{type(e).__name__}: {e}"

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        return SignalResult.error(signal_id, message, epoch=epoch, compute_time_ms=elapsed_ms)

    def sync_persistence(self) -> None:
        """Hand the current definition set to the persistence collaborator."""
        if self.persistence is None:
            return
        try:
            self.persistence.sync_definitions(self.store.get_structure_for_project())
        except Exception:
            logger.exception("Failed to sync signal definitions")

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def compute_all_signals(self, auto_only: bool = False) -> dict[str, str]:
        """Compute every enabled signal that lacks a valid cached result.

        Signals are visited in dependency order, so a derived signal finds
        its upstream already computed within the same pass. Signals that
        cannot be scheduled because of a cycle get an ``error`` result;
        the rest of the graph still computes.

        Parameters
        ----------
        auto_only : bool
            Only visit signals with ``auto_recompute`` set.

        Returns
        -------
        dict
            Outcome per visited id: ``computed``, ``cached``, ``unavailable``,
            ``error``, ``busy`` or ``stale``.
        """
        enabled = {d.id: d for d in self.store.get_enabled_signals()}
        if auto_only:
            enabled = {k: d for k, d in enabled.items() if d.auto_recompute}

        try:
            order = self.graph.computation_order()
            blocked = frozenset()
        except CyclicDependencyError as e:
            order = e.partial_order
            blocked = e.signal_ids

        logger.info(f"Computing {len(enabled)} enabled signal(s)")
        outcomes = {}

        for signal_id in sorted(blocked & set(enabled)):
            outcomes[signal_id] = self._mark_cyclic(signal_id)

        for signal_id in order:
            definition = enabled.get(signal_id)
            if definition is None:
                continue
            if self.cache.has_valid(signal_id):
                logger.debug(f"Cache hit for '{signal_id}'")
                outcomes[signal_id] = "cached"
                continue
            outcomes[signal_id] = self._compute_in_batch(definition)

        computed = sum(1 for o in outcomes.values() if o == "computed")
        logger.info(f"Batch finished: {computed}/{len(outcomes)} signal(s) computed")
        return outcomes

    def _compute_in_batch(self, definition: SignalDefinition) -> str:
        signal_id = definition.id
        if self.cache.is_computing(signal_id):
            return "busy"
        try:
            result = self.compute_signal(definition)
        except Exception:
            logger.exception(f"Error computing signal '{signal_id}'")
            return "error"
        if result is None:
            return "unavailable" if signal_id in self._unavailable else "stale"
        return result.status

    def _mark_cyclic(self, signal_id: str) -> str:
        existing = self.cache.get(signal_id)
        if existing is not None and existing.status == "error":
            return "error"
        logger.warning(f"Signal '{signal_id}' cannot be scheduled: {CYCLE_REASON}")
        epoch = self.cache.current_epoch(signal_id)
        self.cache.set(signal_id, SignalResult.error(signal_id, CYCLE_REASON, epoch=epoch))
        return "error"

    def recompute_signal(self, signal_id: str) -> Optional[SignalResult]:
        """Invalidate ``signal_id`` and its dependents, then compute it."""
        definition = self._resolve(signal_id)
        self.cache.invalidate_cascade(signal_id)
        return self.compute_signal(definition)

    def recompute_all_signals(self) -> dict[str, str]:
        """Invalidate everything, then run a full batch."""
        self.cache.invalidate_all()
        return self.compute_all_signals()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def unavailable_reason(self, signal_id: str) -> Optional[str]:
        return self._unavailable.get(signal_id)

    def forget(self, signal_id: str) -> None:
        self._unavailable.pop(signal_id, None)

    def forget_all(self) -> None:
        self._unavailable.clear()

    def get_signal_status(self, signal_id: str) -> dict:
        """Status and reason for one signal.

        Returns
        -------
        dict
            ``{"status": ..., "reason": ...}`` where status is one of
            ``computing``, ``computed``, ``error``, ``uncomputed``.
        """
        if self.cache.is_computing(signal_id):
            return {"status": "computing", "reason": None}

        result = self.cache.get(signal_id)
        if result is not None:
            return {"status": result.status, "reason": result.error_message}

        definition = self.store.get_signal_by_id(signal_id)
        if definition is None:
            raise UnknownSignalError(signal_id)
        if not definition.enabled:
            return {"status": "uncomputed", "reason": "disabled"}
        return {"status": "uncomputed", "reason": self._unavailable.get(signal_id)}
