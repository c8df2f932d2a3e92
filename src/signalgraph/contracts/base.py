"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all contracts.
"""

from signalgraph.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a computation contract.

    Called at stage boundaries to verify the preceding stage produced the
    guaranteed invariants. No recovery, no fallback.

    Parameters
    ----------
    condition : bool
        The invariant that must be true. If False, ContractViolation is raised.

    message : str
        Error message explaining the contract violation.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(times.shape == values.shape, "Signal contract: axis lengths differ")
    """
    if not condition:
        raise ContractViolation(message)
