"""
Engine error taxonomy.

Node-level errors (FunctionNotFoundError, UnresolvedDependencyError,
ExecutionError) are recorded on the failing node and re-raised to callers
that need its result. CyclicGraphError aborts a run before any node executes.
"""

from __future__ import annotations

from typing import List, Optional


class FlowError(Exception):
    """Base exception for engine errors."""

    pass


class DuplicateIdError(FlowError):
    """Raised when a function id is registered twice."""

    def __init__(self, function_id: str):
        self.function_id = function_id
        super().__init__(f"Function already registered: {function_id}")


class CyclicGraphError(FlowError):
    """Raised when the graph contains a dependency cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Cycle detected in node graph: {' -> '.join(cycle)}")


class NodeNotFoundError(FlowError):
    """Raised when an operation names a node that is not in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class DuplicateNodeError(FlowError):
    """Raised when a node id is already used in the graph."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node id already in graph: {node_id}")


class InvalidConnectionError(FlowError):
    """Raised when an edge cannot be created."""

    pass


class EdgeNotFoundError(FlowError):
    """Raised when an operation names an edge that is not in the graph."""

    def __init__(self, edge_id: str):
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}")


class GraphLockedError(FlowError):
    """Raised on a structural edit while a run is in flight."""

    pass


class FunctionNotFoundError(FlowError):
    """Raised when a node references a function id the registry lacks."""

    def __init__(self, function_id: str, node_id: Optional[str] = None):
        self.function_id = function_id
        self.node_id = node_id
        super().__init__(f"Function not found: {function_id}")


class UnresolvedDependencyError(FlowError):
    """Raised when a dependency's result is not in the run cache."""

    def __init__(self, node_id: str, dependency_id: str, message: Optional[str] = None):
        self.node_id = node_id
        self.dependency_id = dependency_id
        super().__init__(message or f"Input node not processed yet: {dependency_id}")


class UpstreamFailedError(UnresolvedDependencyError):
    """Raised when a dependency failed earlier in the same run."""

    def __init__(self, node_id: str, dependency_id: str, upstream_error: str):
        self.upstream_error = upstream_error
        super().__init__(
            node_id,
            dependency_id,
            f"Upstream node '{dependency_id}' failed: {upstream_error}",
        )


class ExecutionError(FlowError):
    """Wraps any failure raised by a node implementation."""

    def __init__(
        self,
        message: str,
        node_id: Optional[str] = None,
        function_id: Optional[str] = None,
    ):
        self.node_id = node_id
        self.function_id = function_id
        super().__init__(message)


__all__ = [
    "FlowError",
    "DuplicateIdError",
    "CyclicGraphError",
    "NodeNotFoundError",
    "DuplicateNodeError",
    "InvalidConnectionError",
    "EdgeNotFoundError",
    "GraphLockedError",
    "FunctionNotFoundError",
    "UnresolvedDependencyError",
    "UpstreamFailedError",
    "ExecutionError",
]
