"""
Topological Sequencer - Execution order for a flow graph.

Depth-first walk with three-colouring over the dependency relation
(a node depends on the sources of its incoming edges). Dependencies are
emitted before their dependants; ties follow node insertion order, then
edge insertion order. The walk is iterative so deep chains do not hit the
recursion limit.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from nodeflow.errors import CyclicGraphError, NodeNotFoundError
from nodeflow.runtime.graph import FlowGraph


class _Mark(Enum):
    VISITING = 1
    DONE = 2


def topological_sort(
    graph: FlowGraph,
    roots: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    Compute a dependency-respecting order of node ids.

    Args:
        graph: Graph to sequence
        roots: Restrict the order to these nodes and their transitive
            dependencies. Defaults to every node in the graph.

    Returns:
        Node ids, each exactly once, where every edge's source precedes
        its target

    Raises:
        CyclicGraphError: If a cycle is reachable from the roots
        NodeNotFoundError: If a root is not in the graph
    """
    dependency_map = graph.dependency_map()

    if roots is None:
        roots = list(dependency_map)
    else:
        roots = list(roots)
        for root in roots:
            if root not in dependency_map:
                raise NodeNotFoundError(root)

    marks: Dict[str, _Mark] = {}
    order: List[str] = []

    for root in roots:
        if root in marks:
            continue

        marks[root] = _Mark.VISITING
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(dependency_map[root]))]

        while stack:
            node_id, pending = stack[-1]

            for dependency in pending:
                mark = marks.get(dependency)
                if mark is None:
                    marks[dependency] = _Mark.VISITING
                    stack.append((dependency, iter(dependency_map[dependency])))
                    break
                if mark is _Mark.VISITING:
                    raise CyclicGraphError(_cycle_path(stack, dependency))
            else:
                stack.pop()
                marks[node_id] = _Mark.DONE
                order.append(node_id)

    return order


def _cycle_path(stack: List[Tuple[str, Iterator[str]]], reentered: str) -> List[str]:
    """Cycle members in data-flow order, first node repeated at the end."""
    path = [node_id for node_id, _ in stack]
    cycle = path[path.index(reentered):] + [reentered]
    return list(reversed(cycle))


def dependency_order(graph: FlowGraph, node_id: str) -> List[str]:
    """Order of ``node_id`` and its transitive dependencies, ending with ``node_id``."""
    return topological_sort(graph, roots=[node_id])


def find_cycle(graph: FlowGraph) -> Optional[List[str]]:
    """Return one cycle in the graph, or None if it is acyclic."""
    try:
        topological_sort(graph)
    except CyclicGraphError as e:
        return e.cycle
    return None


__all__ = [
    "topological_sort",
    "dependency_order",
    "find_cycle",
]
