"""Error taxonomy for signal computation.

- MissingSourceData: upstream data absent. Recoverable; the signal stays
  ``uncomputed`` with a reason.
- CyclicDependencyError: derived references form a cycle.
- ComputationFailure: a stage failed for one signal; recorded, not fatal.
- StaleWrite: an in-flight result lost to an invalidation. Never raised
  to callers of the driver; kept as a value type for instrumentation.
"""


class SignalGraphError(Exception):
    """Base class for signalgraph errors."""
    pass


class MissingSourceData(SignalGraphError):
    """Upstream analysis, band, event or derived data is not available."""

    def __init__(self, signal_id: str, reason: str):
        self.signal_id = signal_id
        self.reason = reason
        super().__init__(f"{signal_id}: {reason}")


class CyclicDependencyError(SignalGraphError):
    """Derived references form a cycle.

    Attributes
    ----------
    signal_ids : frozenset of str
        Signals that could not be ordered (cycle members and anything
        downstream of them).
    partial_order : list of str
        Order of the signals that could be scheduled.
    """

    def __init__(self, signal_ids, partial_order=None):
        self.signal_ids = frozenset(signal_ids)
        self.partial_order = list(partial_order or [])
        super().__init__(
            f"Cyclic dependency among signals: {', '.join(sorted(self.signal_ids))}"
        )


class ComputationFailure(SignalGraphError):
    """A pipeline stage failed for one signal."""

    def __init__(self, signal_id: str, cause: str):
        self.signal_id = signal_id
        self.cause = cause
        super().__init__(f"{signal_id}: {cause}")


class StaleWrite(SignalGraphError):
    """A result computed under an old epoch was offered to the cache."""

    def __init__(self, signal_id: str, started_epoch: int, current_epoch: int):
        self.signal_id = signal_id
        self.started_epoch = started_epoch
        self.current_epoch = current_epoch
        super().__init__(
            f"{signal_id}: started at epoch {started_epoch}, cache is at {current_epoch}"
        )


class UnknownSignalError(SignalGraphError, KeyError):
    """No definition with the given id exists."""

    def __init__(self, signal_id: str):
        self.signal_id = signal_id
        super().__init__(signal_id)

    def __str__(self):
        return f"Unknown signal: {self.signal_id}"
