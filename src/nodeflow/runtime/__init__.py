"""
Flow Runtime - Dependency-ordered execution of node graphs.

This package provides:
- FlowGraph: Editable graph of function nodes, output nodes and edges
- topological_sort: Cycle-checked execution order
- NodeExecutor: Runs one node through its registered function
- FlowOrchestrator: Full-flow and single-node runs with per-run caching
- RunState: Per-run node states, results and errors

Execution is async and strictly sequential within a run.
"""

from nodeflow.runtime.executor import NodeExecutor, resolve_inputs
from nodeflow.runtime.graph import Edge, FlowGraph, Node
from nodeflow.runtime.models import FlowSnapshot, load_snapshot, parse_snapshot, save_snapshot
from nodeflow.runtime.orchestrator import FlowOrchestrator
from nodeflow.runtime.sequencer import dependency_order, find_cycle, topological_sort
from nodeflow.runtime.state import (
    NodeRunRecord,
    NodeRunState,
    RunResultCache,
    RunState,
    RunStatus,
)

__all__ = [
    # Graph
    "FlowGraph",
    "Node",
    "Edge",
    # Snapshots
    "FlowSnapshot",
    "parse_snapshot",
    "load_snapshot",
    "save_snapshot",
    # Sequencing
    "topological_sort",
    "dependency_order",
    "find_cycle",
    # Execution
    "NodeExecutor",
    "resolve_inputs",
    "FlowOrchestrator",
    # Run state
    "RunState",
    "RunStatus",
    "NodeRunRecord",
    "NodeRunState",
    "RunResultCache",
]
