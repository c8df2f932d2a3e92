"""Command-line interface modules for signalgraph.

The console script ``signalgraph-inspect`` runs
``signalgraph.cli.inspect_definitions.main``.
"""

from signalgraph.cli.inspect_definitions import build_order_table

__all__ = ['build_order_table']
