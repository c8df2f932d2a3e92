"""Inspect a stored definition file without computing anything.

Loads the definitions, builds the dependency graph and prints the order in
which the driver would evaluate them. A file whose derived references form
a cycle prints the blocked signals and exits with status 1.

Usage:
    signalgraph-inspect project/signals.json
    signalgraph-inspect project/signals.json --config user_config.py
    signalgraph-inspect --config user_config.py --log-level DEBUG
"""

import argparse
import importlib.util
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from signalgraph.core.bus import InvalidationBus
from signalgraph.core.errors import CyclicDependencyError
from signalgraph.core.graph import ComputationGraph
from signalgraph.core.store import SignalDefinitionStore, extract_dependencies
from signalgraph.pipeline.persistence import JsonDefinitionFile
from signalgraph.pipeline.service import setup_logging
from signalgraph.schemas import CLIConfig, ParamConfig, UserConfig, resolve_config
from signalgraph.transforms.chain import describe_transform

logger = logging.getLogger(__name__)

ORDER_COLUMNS = ["position", "id", "name", "kind", "enabled", "depends_on", "transforms"]


def load_user_config_dict(config_path: str) -> dict:
    """Load user config dict from Python file.

    Returns the raw dict before Pydantic validation.

    Parameters
    ----------
    config_path : str
        Path to user config Python file containing a CONFIG dict.

    Returns
    -------
    dict
        Raw user configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If no CONFIG dict found in file.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    spec = importlib.util.spec_from_file_location("config_module", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    # Find CONFIG dict
    for name in dir(module):
        if name.startswith('CONFIG'):
            obj = getattr(module, name)
            if isinstance(obj, dict):
                return obj

    raise ValueError(f"No CONFIG dict found in {path}")


def build_order_table(store: SignalDefinitionStore, order: list) -> pd.DataFrame:
    """One row per signal in ``order``, numbered from 1."""
    rows = []
    for position, signal_id in enumerate(order, start=1):
        definition = store.get_signal_by_id(signal_id)
        if definition is None:
            continue
        rows.append({
            "position": position,
            "id": definition.id,
            "name": definition.name,
            "kind": definition.source.kind,
            "enabled": definition.enabled,
            "depends_on": ", ".join(sorted(extract_dependencies(definition))),
            "transforms": " -> ".join(describe_transform(s) for s in definition.transforms),
        })
    return pd.DataFrame(rows, columns=ORDER_COLUMNS)


def inspect_definitions(
    definitions_path: Optional[str] = None,
    user_config_path: Optional[str] = None,
    cli_args: Optional[Dict[str, Any]] = None,
) -> int:
    """Print the evaluation order of a definition file.

    Parameters
    ----------
    definitions_path : str, optional
        Definition JSON file. Overrides ``persistence.definitions_path``.
    user_config_path : str, optional
        Python file with a CONFIG dict.
    cli_args : dict, optional
        CLI overrides (``log_level``, ``log_file``).

    Returns
    -------
    int
        0 when every signal can be ordered, 1 on a cycle or a missing file.
    """
    param_cfg = ParamConfig()
    user_cfg = UserConfig()
    if user_config_path is not None:
        user_cfg = UserConfig.model_validate(load_user_config_dict(user_config_path))

    cli_dict = {k: v for k, v in (cli_args or {}).items() if v is not None}
    if definitions_path is not None:
        cli_dict["definitions_path"] = str(definitions_path)
    cli_cfg = CLIConfig.model_validate(cli_dict) if cli_dict else CLIConfig()

    config = resolve_config(param_cfg, user_cfg, cli_cfg)
    setup_logging(config.logging.level, config.logging.log_file)

    path = config.persistence.definitions_path
    if not path:
        logger.error("No definitions file given (argument or DEFINITIONS_PATH)")
        return 1

    structure = JsonDefinitionFile(path).get_structure_for_project()
    if structure is None:
        logger.error(f"Definitions file not found: {path}")
        return 1

    graph = ComputationGraph()
    store = SignalDefinitionStore(InvalidationBus(), graph)
    store.load_structure(structure)

    print(f"\n{'='*60}")
    print("Signal evaluation order")
    print('='*60)
    print(f"File:    {path}")
    print(f"Signals: {len(store)}")
    print('='*60)

    try:
        order = graph.computation_order()
    except CyclicDependencyError as e:
        table = build_order_table(store, e.partial_order)
        if not table.empty:
            print(table.to_string(index=False))
        print(f"\nCyclic dependency; cannot schedule: {', '.join(sorted(e.signal_ids))}")
        return 1

    table = build_order_table(store, order)
    if table.empty:
        print("(no signals)")
    else:
        print(table.to_string(index=False))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Print the evaluation order of stored signal definitions")
    parser.add_argument("definitions", nargs="?", help="Path to the definitions JSON file")
    parser.add_argument("--config", help="Path to user config file")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Override log level")
    parser.add_argument("--log-file", help="Also write logs to this file")
    args = parser.parse_args(argv)

    return inspect_definitions(
        args.definitions,
        user_config_path=args.config,
        cli_args={"log_level": args.log_level, "log_file": args.log_file},
    )


if __name__ == "__main__":
    raise SystemExit(main())
