"""
Flow Graph - Static definition of a node graph.

Holds nodes (function nodes and output sinks) and the edges between them.
Only user-facing edits live here; run fields (state, result, error,
connected values) are kept per run in ``RunState``.

Invariants kept by every edit:
- no edge references a missing node
- no edge connects a node to itself
- an input port has at most one incoming edge (last connect wins)
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from nodeflow.errors import (
    DuplicateNodeError,
    EdgeNotFoundError,
    FunctionNotFoundError,
    GraphLockedError,
    InvalidConnectionError,
    NodeNotFoundError,
)
from nodeflow.registry import FunctionRegistry
from nodeflow.runtime.models import (
    FUNCTION_NODE_TYPE,
    OUTPUT_NODE_TYPE,
    FlowSnapshot,
    SnapshotEdge,
    SnapshotNode,
    SnapshotNodeData,
    SnapshotPosition,
)


logger = logging.getLogger(__name__)

INPUT_HANDLE_PREFIX = "input-"
DEFAULT_OUTPUT_HANDLE = "output"


def generate_id() -> str:
    """Short random id for nodes and edges."""
    return uuid.uuid4().hex[:8]


def input_name_from_handle(handle: str) -> str:
    """Map an ``input-<name>`` handle to the declared input name."""
    if handle.startswith(INPUT_HANDLE_PREFIX):
        return handle[len(INPUT_HANDLE_PREFIX):]
    return handle


def canonical_handle(handle: str) -> str:
    """Normalize ``x`` and ``input-x`` to ``input-x``."""
    return INPUT_HANDLE_PREFIX + input_name_from_handle(handle)


@dataclass
class Node:
    """
    A node in the flow graph.

    A node without ``function_id`` is an output sink: it has no
    implementation and only shows the value connected into it.
    """
    id: str
    function_id: Optional[str] = None
    manual_inputs: Dict[str, Any] = field(default_factory=dict)
    label: str = ""
    position: Tuple[float, float] = (0.0, 0.0)

    @property
    def is_sink(self) -> bool:
        return self.function_id is None

    @property
    def node_type(self) -> str:
        return OUTPUT_NODE_TYPE if self.is_sink else FUNCTION_NODE_TYPE


@dataclass
class Edge:
    """Directed edge carrying a source node's result into a target input port."""
    id: str
    source_node_id: str
    target_node_id: str
    target_input_port: str
    source_output_port: str = DEFAULT_OUTPUT_HANDLE

    @property
    def input_name(self) -> str:
        """Declared input name addressed by the target port."""
        return input_name_from_handle(self.target_input_port)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source_node_id, self.target_node_id)


class FlowGraph:
    """
    Editable node graph.

    Structural edits (adding/deleting nodes and edges) are refused while
    the graph is locked by an in-flight run.

    Usage:
        graph = FlowGraph(registry)
        fetch = graph.add_function_node("fetch-data", node_id="fetch")
        out = graph.add_output_node()
        graph.connect("fetch", out.id, "input-value")
    """

    def __init__(self, registry: FunctionRegistry):
        """
        Create an empty graph.

        Args:
            registry: Registry used to resolve function ids
        """
        self.registry = registry
        self._nodes: Dict[str, Node] = {}
        self._edges: List[Edge] = []
        self._lock_depth = 0

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @property
    def is_locked(self) -> bool:
        return self._lock_depth > 0

    @contextmanager
    def locked(self) -> Iterator["FlowGraph"]:
        """Block structural edits for the duration of the block."""
        self._lock_depth += 1
        try:
            yield self
        finally:
            self._lock_depth -= 1

    def _check_unlocked(self, operation: str) -> None:
        if self.is_locked:
            raise GraphLockedError(f"Cannot {operation} while a run is in progress")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[Node]:
        """Nodes in insertion order."""
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    @property
    def node_ids(self) -> List[str]:
        return list(self._nodes.keys())

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def require_node(self, node_id: str) -> Node:
        """Get node by id or raise NodeNotFoundError."""
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self._edges:
            if edge.id == edge_id:
                return edge
        return None

    def incoming_edges(self, node_id: str) -> List[Edge]:
        """Edges targeting ``node_id`` in insertion order."""
        return [edge for edge in self._edges if edge.target_node_id == node_id]

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        return [edge for edge in self._edges if edge.source_node_id == node_id]

    def dependencies(self, node_id: str) -> List[str]:
        """Distinct source node ids feeding ``node_id``, in edge order."""
        seen: Dict[str, None] = {}
        for edge in self.incoming_edges(node_id):
            seen.setdefault(edge.source_node_id)
        return list(seen)

    def dependency_map(self) -> Dict[str, List[str]]:
        """Map every node id to its distinct dependencies."""
        deps: Dict[str, Dict[str, None]] = {node_id: {} for node_id in self._nodes}
        for edge in self._edges:
            if edge.target_node_id in deps:
                deps[edge.target_node_id].setdefault(edge.source_node_id)
        return {node_id: list(sources) for node_id, sources in deps.items()}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Node edits
    # ------------------------------------------------------------------

    def add_node(self, node: Node) -> Node:
        """Insert a prepared node."""
        self._check_unlocked("add a node")
        if node.id in self._nodes:
            raise DuplicateNodeError(node.id)
        self._nodes[node.id] = node
        logger.debug(f"Added node {node.id} ({node.function_id or 'output'})")
        return node

    def add_function_node(
        self,
        function_id: str,
        node_id: Optional[str] = None,
        position: Tuple[float, float] = (0.0, 0.0),
        label: Optional[str] = None,
    ) -> Node:
        """
        Add a node running ``function_id``.

        Declared input defaults are copied into the node's manual inputs.

        Raises:
            FunctionNotFoundError: If the function is not registered
        """
        spec = self.registry.lookup(function_id)
        if spec is None:
            raise FunctionNotFoundError(function_id, node_id)

        return self.add_node(Node(
            id=node_id or generate_id(),
            function_id=function_id,
            manual_inputs=spec.default_inputs(),
            label=label or spec.name,
            position=position,
        ))

    def add_output_node(
        self,
        node_id: Optional[str] = None,
        position: Tuple[float, float] = (0.0, 0.0),
        label: str = "Output",
    ) -> Node:
        """Add an output sink node."""
        return self.add_node(Node(
            id=node_id or generate_id(),
            label=label,
            position=position,
        ))

    def delete_node(self, node_id: str) -> List[Edge]:
        """
        Delete a node and every edge touching it.

        Returns:
            The removed edges
        """
        self._check_unlocked("delete a node")
        self.require_node(node_id)

        removed = [edge for edge in self._edges if edge.touches(node_id)]
        self._edges = [edge for edge in self._edges if not edge.touches(node_id)]
        del self._nodes[node_id]

        logger.debug(f"Deleted node {node_id} and {len(removed)} edge(s)")
        return removed

    def update_node_inputs(self, node_id: str, values: Dict[str, Any]) -> Node:
        """Merge user-entered values into a node's manual inputs."""
        node = self.require_node(node_id)
        node.manual_inputs = {**node.manual_inputs, **values}
        return node

    # ------------------------------------------------------------------
    # Edge edits
    # ------------------------------------------------------------------

    def validate_connection(
        self,
        source_id: str,
        target_id: str,
        target_handle: str,
    ) -> None:
        """
        Check whether an edge may be created.

        Raises:
            InvalidConnectionError: If the connection is not allowed
        """
        source = self._nodes.get(source_id)
        target = self._nodes.get(target_id)
        if source is None or target is None:
            missing = source_id if source is None else target_id
            raise InvalidConnectionError(f"Unknown node in connection: {missing}")

        if not target_handle:
            raise InvalidConnectionError("Connection has no target handle")

        if source_id == target_id:
            raise InvalidConnectionError(f"Cannot connect node {source_id} to itself")

        # Output sinks have no result of their own to send
        if source.is_sink:
            raise InvalidConnectionError(f"Output node {source_id} cannot be a connection source")

        if self.registry.lookup(source.function_id) is None:
            raise InvalidConnectionError(f"Source function not registered: {source.function_id}")

        # Sinks accept any handle
        if target.is_sink:
            return

        target_spec = self.registry.lookup(target.function_id)
        if target_spec is None:
            raise InvalidConnectionError(f"Target function not registered: {target.function_id}")

        input_name = input_name_from_handle(target_handle)
        if target_spec.get_input(input_name) is None:
            raise InvalidConnectionError(
                f"Function {target_spec.id} has no input named '{input_name}'"
            )

    def connect(
        self,
        source_id: str,
        target_id: str,
        target_handle: str,
        source_handle: str = DEFAULT_OUTPUT_HANDLE,
        edge_id: Optional[str] = None,
    ) -> Edge:
        """
        Connect a source node's output to a target input port.

        The handle is stored as ``input-<name>``; an edge already attached
        to the same input of the target is replaced.

        Raises:
            InvalidConnectionError: If the connection is not allowed
        """
        self._check_unlocked("connect nodes")
        self.validate_connection(source_id, target_id, target_handle)
        return self._attach(Edge(
            id=edge_id or generate_id(),
            source_node_id=source_id,
            source_output_port=source_handle,
            target_node_id=target_id,
            target_input_port=canonical_handle(target_handle),
        ))

    def _attach(self, edge: Edge) -> Edge:
        replaced = [
            existing for existing in self._edges
            if existing.target_node_id == edge.target_node_id
            and existing.input_name == edge.input_name
        ]
        if replaced:
            logger.debug(
                f"Replacing edge(s) {[e.id for e in replaced]} on "
                f"{edge.target_node_id}.{edge.target_input_port}"
            )
            self._edges = [existing for existing in self._edges if existing not in replaced]

        self._edges.append(edge)
        return edge

    def delete_edge(self, edge_id: str) -> Edge:
        """Delete an edge by id."""
        self._check_unlocked("delete an edge")
        edge = self.get_edge(edge_id)
        if edge is None:
            raise EdgeNotFoundError(edge_id)
        self._edges.remove(edge)
        return edge

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @classmethod
    def from_snapshot(cls, snapshot: FlowSnapshot, registry: FunctionRegistry) -> "FlowGraph":
        """
        Rebuild a graph from a saved snapshot.

        Nodes referencing functions missing from ``registry`` are kept; they
        fail with FunctionNotFoundError only when executed.

        Raises:
            InvalidConnectionError: If an edge is a self-loop or references a missing node
        """
        graph = cls(registry)

        for snap_node in snapshot.nodes:
            function_id = snap_node.data.function_id
            if snap_node.type == OUTPUT_NODE_TYPE:
                function_id = None
            graph.add_node(Node(
                id=snap_node.id,
                function_id=function_id,
                manual_inputs=dict(snap_node.data.inputs),
                label=snap_node.data.label,
                position=(snap_node.position.x, snap_node.position.y),
            ))

        for snap_edge in snapshot.edges:
            for endpoint in (snap_edge.source, snap_edge.target):
                if endpoint not in graph:
                    raise InvalidConnectionError(f"Edge references unknown node: {endpoint}")
            if snap_edge.source == snap_edge.target:
                raise InvalidConnectionError(f"Cannot connect node {snap_edge.source} to itself")

            graph._attach(Edge(
                id=snap_edge.id or generate_id(),
                source_node_id=snap_edge.source,
                source_output_port=snap_edge.source_handle,
                target_node_id=snap_edge.target,
                target_input_port=canonical_handle(snap_edge.target_handle),
            ))

        return graph

    def to_snapshot(self) -> FlowSnapshot:
        """Export the graph definition."""
        return FlowSnapshot(
            nodes=[
                SnapshotNode(
                    id=node.id,
                    type=node.node_type,
                    position=SnapshotPosition(x=node.position[0], y=node.position[1]),
                    data=SnapshotNodeData(
                        label=node.label,
                        function_id=node.function_id,
                        inputs=dict(node.manual_inputs),
                    ),
                )
                for node in self._nodes.values()
            ],
            edges=[
                SnapshotEdge(
                    id=edge.id,
                    source=edge.source_node_id,
                    source_handle=edge.source_output_port,
                    target=edge.target_node_id,
                    target_handle=edge.target_input_port,
                )
                for edge in self._edges
            ],
        )


__all__ = [
    "FlowGraph",
    "Node",
    "Edge",
    "generate_id",
    "input_name_from_handle",
    "canonical_handle",
    "INPUT_HANDLE_PREFIX",
    "DEFAULT_OUTPUT_HANDLE",
]
