"""Computation contracts: fail-fast enforcement of stage invariants.

Contracts fail immediately and loudly when a stage does not produce the
shape it promised (a reduced signal with mismatched axes, a feature matrix
with the wrong dimensions). A violation is a bug in the engine, not missing
upstream data.

Key principle:
- Pydantic validates config and definition correctness
- Contracts validate computation correctness
- Numeric stages handle signal edge cases (empty input, flat signals)
"""

from signalgraph.contracts.failure import ContractViolation, FailurePolicy
from signalgraph.contracts.base import require
from signalgraph.contracts.matrix import assert_feature_matrix
from signalgraph.contracts.result import assert_signal_arrays, assert_signal_result

__all__ = [
    "ContractViolation",
    "FailurePolicy",
    "require",
    "assert_feature_matrix",
    "assert_signal_arrays",
    "assert_signal_result",
]
