"""
Node Executor - Runs a single node against the current run's results.

The executor never decides ordering: it expects every dependency of the
node to be in the run cache already and refuses to run otherwise.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Dict, Optional

from nodeflow.errors import (
    ExecutionError,
    FunctionNotFoundError,
    UnresolvedDependencyError,
)
from nodeflow.registry import FunctionRegistry, FunctionSpec
from nodeflow.runtime.graph import FlowGraph, Node
from nodeflow.runtime.state import RunResultCache


logger = logging.getLogger(__name__)


def resolve_inputs(
    defaults: Optional[Dict[str, Any]] = None,
    manual_inputs: Optional[Dict[str, Any]] = None,
    connected_inputs: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the effective input map for a node.

    Precedence, lowest to highest: declared defaults, values typed by the
    user, values arriving over edges.
    """
    effective: Dict[str, Any] = {}
    for layer in (defaults, manual_inputs, connected_inputs):
        if layer:
            effective.update(layer)
    return effective


class NodeExecutor:
    """
    Executes one node through its registered implementation.

    Usage:
        executor = NodeExecutor(registry)
        result = await executor.execute(node, graph, run_state.cache)
    """

    def __init__(self, registry: FunctionRegistry):
        """
        Initialize executor.

        Args:
            registry: Registry used to resolve node function ids
        """
        self._registry = registry

    def resolve_function(self, node: Node) -> FunctionSpec:
        """
        Look up a function node's spec.

        Raises:
            FunctionNotFoundError: If the id is not registered
        """
        spec = self._registry.lookup(node.function_id)
        if spec is None:
            raise FunctionNotFoundError(node.function_id, node.id)
        return spec

    def collect_connected_inputs(
        self,
        node: Node,
        graph: FlowGraph,
        cache: RunResultCache,
    ) -> Dict[str, Any]:
        """
        Map cached upstream results onto this node's input names.

        Raises:
            UnresolvedDependencyError: If a source node has no result in this run
        """
        connected: Dict[str, Any] = {}
        for edge in graph.incoming_edges(node.id):
            if edge.source_node_id not in cache:
                raise UnresolvedDependencyError(node.id, edge.source_node_id)
            connected[edge.input_name] = cache[edge.source_node_id]
        return connected

    async def execute(
        self,
        node: Node,
        graph: FlowGraph,
        cache: RunResultCache,
    ) -> Any:
        """
        Execute a node.

        Output nodes have no implementation: their result is the value
        connected into them (a ``{input: value}`` map when several edges
        arrive, None when none do).

        Returns:
            The implementation's result, unmodified

        Raises:
            FunctionNotFoundError: If the node's function is not registered
            UnresolvedDependencyError: If a dependency has not run yet
            ExecutionError: If the implementation fails
        """
        if node.is_sink:
            connected = self.collect_connected_inputs(node, graph, cache)
            if not connected:
                return None
            if len(connected) == 1:
                return next(iter(connected.values()))
            return connected

        spec = self.resolve_function(node)
        connected = self.collect_connected_inputs(node, graph, cache)
        inputs = resolve_inputs(spec.default_inputs(), node.manual_inputs, connected)

        logger.debug(f"Invoking {spec.id} for node {node.id} with inputs {sorted(inputs)}")

        try:
            result = spec.implementation(inputs)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            message = str(e) or type(e).__name__
            raise ExecutionError(message, node_id=node.id, function_id=spec.id) from e

        return result


__all__ = [
    "NodeExecutor",
    "resolve_inputs",
]
