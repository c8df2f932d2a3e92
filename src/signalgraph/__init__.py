"""`signalgraph` - dependency-ordered derived signals over audio analysis.

Subpackages:
- schemas: Configuration, signal definitions, events and results
- contracts: Stage invariants
- core: Invalidation bus, dependency graph, result cache, definition store
- transforms: Reduction, event conversion, transform chain, stabilization
- pipeline: Computation driver, persistence, service composition root
- cli: `signalgraph-inspect`, evaluation order of a stored definition file
"""

__version__ = "0.1.0"
