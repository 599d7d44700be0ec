"""
nodeflow - Build and run graphs of function nodes.

Function nodes wrap external calls (blockchain RPC, AI analysis, data
transforms); results flow along edges into downstream nodes.
"""

from nodeflow.errors import (
    CyclicGraphError,
    DuplicateIdError,
    ExecutionError,
    FlowError,
    FunctionNotFoundError,
    UnresolvedDependencyError,
)
from nodeflow.registry import FunctionRegistry, FunctionSpec
from nodeflow.runtime import FlowGraph, FlowOrchestrator, NodeRunState, RunState, RunStatus

__version__ = "0.1.0"

__all__ = [
    "FlowGraph",
    "FlowOrchestrator",
    "FunctionRegistry",
    "FunctionSpec",
    "NodeRunState",
    "RunState",
    "RunStatus",
    "FlowError",
    "DuplicateIdError",
    "CyclicGraphError",
    "FunctionNotFoundError",
    "UnresolvedDependencyError",
    "ExecutionError",
]
