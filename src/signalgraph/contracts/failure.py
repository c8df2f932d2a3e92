"""Centralized failure policy for contract violations."""

from enum import Enum


class FailurePolicy(str, Enum):
    """How the driver reacts to a contract violation.

    FAIL_SIGNAL (default): record an ``error`` result for the offending
    signal and continue the batch.
    RAISE: propagate the violation to the caller (used in tests).
    """
    FAIL_SIGNAL = "fail_signal"
    RAISE = "raise"


class ContractViolation(RuntimeError):
    """Raised when a computation contract is violated.

    Key distinction:
    - ValidationError: malformed definition or config (Pydantic)
    - MissingSourceData: upstream data absent, recoverable
    - ContractViolation: engine bug (a stage broke its promise)
    """
    pass
