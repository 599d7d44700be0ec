"""
CLI for inspecting and running saved flows.

Commands:
- functions: list the function catalogue
- order: print the execution order of a flow
- run: run a whole flow
- run-node: run one node and its dependencies
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from pydantic import ValidationError

from nodeflow.config import get_settings
from nodeflow.errors import FlowError
from nodeflow.functions import build_default_registry
from nodeflow.observability import setup_logging
from nodeflow.registry import FunctionRegistry, FunctionSpec
from nodeflow.runtime import FlowGraph, FlowOrchestrator, load_snapshot, topological_sort


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _describe(spec: FunctionSpec) -> dict[str, Any]:
    return {
        "id": spec.id,
        "name": spec.name,
        "groups": spec.groups,
        "inputs": [
            {"name": i.name, "type": i.type, "required": i.required}
            for i in spec.inputs
        ],
        "output": {"name": spec.output.name, "type": spec.output.type},
    }


def _load_graph(path: str, registry: FunctionRegistry) -> FlowGraph:
    return FlowGraph.from_snapshot(load_snapshot(path), registry)


def cmd_functions(args: argparse.Namespace) -> int:
    """List registered functions by category, or the members of one group."""
    registry = build_default_registry()

    if args.group:
        if registry.get_group(args.group) is None:
            print(f"Error: Unknown group: {args.group}", file=sys.stderr)
            return 1
        _print_json([_describe(spec) for spec in registry.list_by_group(args.group)])
        return 0

    _print_json({
        category: [_describe(spec) for spec in specs]
        for category, specs in registry.list_by_category().items()
    })
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    """Print the execution order of a saved flow."""
    registry = build_default_registry()
    try:
        graph = _load_graph(args.snapshot, registry)
        _print_json(topological_sort(graph))
    except (FlowError, OSError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run a saved flow and print the run summary."""
    setup_logging()
    registry = build_default_registry()

    try:
        graph = _load_graph(args.snapshot, registry)
    except (FlowError, OSError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    run = asyncio.run(FlowOrchestrator(graph).run_flow())
    _print_json(run.summary())
    return 0 if run.is_completed and not run.failed_nodes else 1


def cmd_run_node(args: argparse.Namespace) -> int:
    """Run one node of a saved flow (dependencies first) and print its result."""
    setup_logging()
    registry = build_default_registry()

    try:
        graph = _load_graph(args.snapshot, registry)
        orchestrator = FlowOrchestrator(graph)
        result = asyncio.run(orchestrator.run_node(args.node_id))
    except (FlowError, OSError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_json({"node_id": args.node_id, "result": result})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="Inspect and run node flows",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    functions_parser = subparsers.add_parser("functions", help="List available functions")
    functions_parser.add_argument(
        "--group",
        default=None,
        help=f"Only list members of this group (e.g. {get_settings().default_group})",
    )
    functions_parser.set_defaults(func=cmd_functions)

    order_parser = subparsers.add_parser("order", help="Print execution order of a flow")
    order_parser.add_argument("snapshot", help="Path to a saved flow JSON file")
    order_parser.set_defaults(func=cmd_order)

    run_parser = subparsers.add_parser("run", help="Run a whole flow")
    run_parser.add_argument("snapshot", help="Path to a saved flow JSON file")
    run_parser.set_defaults(func=cmd_run)

    run_node_parser = subparsers.add_parser("run-node", help="Run one node and its dependencies")
    run_node_parser.add_argument("snapshot", help="Path to a saved flow JSON file")
    run_node_parser.add_argument("node_id", help="Node to run")
    run_node_parser.set_defaults(func=cmd_run_node)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
