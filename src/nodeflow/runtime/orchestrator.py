"""
Run Orchestrator - Drives full-flow and single-node runs.

Both entry points walk an order produced by the topological sequencer, so
cycles are rejected before anything executes. Nodes run one at a time in
that order; a node executes at most once per run thanks to the run cache.

Failure policy:
- a failing node is marked FAILED with its error message
- nodes depending on it fail with UpstreamFailedError, never with a
  substituted value
- unrelated nodes keep running; a full run is never aborted by a node
  failure, only by a cycle
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from nodeflow.errors import CyclicGraphError, FlowError, GraphLockedError, UpstreamFailedError
from nodeflow.observability import get_logger, with_run_context
from nodeflow.runtime.executor import NodeExecutor
from nodeflow.runtime.graph import FlowGraph
from nodeflow.runtime.sequencer import dependency_order, topological_sort
from nodeflow.runtime.state import RunState, RunStatus


logger = get_logger(__name__)


class FlowOrchestrator:
    """
    Runs a flow graph.

    Structural edits to the graph are blocked while a run is in flight.

    Usage:
        orchestrator = FlowOrchestrator(graph)
        run = await orchestrator.run_flow()
        run.records["double"].state      # NodeRunState.SUCCEEDED
        run.results["double"]            # 2

        value = await orchestrator.run_node("double")
    """

    def __init__(
        self,
        graph: FlowGraph,
        executor: Optional[NodeExecutor] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            graph: Graph to run
            executor: Node executor (defaults to one bound to the graph's registry)
        """
        self.graph = graph
        self._executor = executor or NodeExecutor(graph.registry)
        self._running = False
        self.last_run: Optional[RunState] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def new_run(self) -> RunState:
        """Allocate run state with every node IDLE and an empty cache."""
        return RunState.for_nodes(self.graph.node_ids)

    async def run_flow(self) -> RunState:
        """
        Run every node of the graph.

        Returns:
            RunState: COMPLETED once every node was visited, or ABORTED
            (with ``error`` set) when the graph has a cycle
        """
        run = self.new_run()
        extra = with_run_context(run_id=run.run_id)
        start_time = time.perf_counter()

        with self._in_flight():
            run.transition(RunStatus.RUNNING)
            logger.info(f"Flow run started ({len(self.graph)} nodes)", extra=extra)

            try:
                run.order = topological_sort(self.graph)
            except CyclicGraphError as e:
                run.error = str(e)
                run.transition(RunStatus.ABORTED)
                run.duration_ms = (time.perf_counter() - start_time) * 1000
                logger.error(f"Flow run aborted: {e}", extra=extra)
                self.last_run = run
                return run

            for node_id in run.order:
                try:
                    await self.execute_in_run(run, node_id)
                except FlowError:
                    # Already recorded on the node; keep visiting the rest
                    continue

            run.transition(RunStatus.COMPLETED)

        run.duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Flow run completed: {len(run.succeeded_nodes)} succeeded, "
            f"{len(run.failed_nodes)} failed",
            extra=extra,
        )
        self.last_run = run
        return run

    async def run_node(self, node_id: str, run: Optional[RunState] = None) -> Any:
        """
        Run one node, executing its transitive dependencies first.

        Args:
            node_id: Node to run
            run: Existing run to join (its cache is reused); a new run is
                created when omitted

        Returns:
            The node's result

        Raises:
            NodeNotFoundError: If the node is not in the graph
            CyclicGraphError: If the node's ancestry contains a cycle
            FlowError: The node's own failure, or UpstreamFailedError when a
                dependency failed
        """
        owns_run = run is None
        if run is None:
            run = self.new_run()
        extra = with_run_context(run_id=run.run_id, node_id=node_id)
        start_time = time.perf_counter()

        if run.status in (RunStatus.COMPLETED, RunStatus.ABORTED):
            raise ValueError(f"Cannot join finished run {run.run_id}")

        with self._in_flight():
            if run.status == RunStatus.NOT_STARTED:
                run.transition(RunStatus.RUNNING)

            try:
                order = dependency_order(self.graph, node_id)
            except CyclicGraphError as e:
                if owns_run:
                    run.error = str(e)
                    run.transition(RunStatus.ABORTED)
                    self.last_run = run
                logger.error(f"Node run aborted: {e}", extra=extra)
                raise

            run.order.extend(n for n in order if n not in run.order)

            for dependency_id in order[:-1]:
                try:
                    await self.execute_in_run(run, dependency_id)
                except FlowError:
                    continue

            try:
                return await self.execute_in_run(run, node_id)
            finally:
                if owns_run:
                    run.transition(RunStatus.COMPLETED)
                    run.duration_ms = (time.perf_counter() - start_time) * 1000
                    self.last_run = run

    async def execute_in_run(self, run: RunState, node_id: str) -> Any:
        """
        Execute one node inside ``run``, assuming its dependencies were visited.

        Returns the cached result when the node already ran in this run and
        re-raises the recorded error when it already failed.
        """
        if node_id in run.cache:
            return run.cache[node_id]

        node = self.graph.require_node(node_id)
        record = run.record(node_id)
        if record.is_error:
            raise run.errors[node_id]

        extra = with_run_context(run_id=run.run_id, node_id=node_id, function_id=node.function_id)

        run.mark_processing(node_id)
        start_time = time.perf_counter()

        try:
            for dependency_id in self.graph.dependencies(node_id):
                dependency = run.record(dependency_id)
                if dependency.is_error:
                    raise UpstreamFailedError(node_id, dependency_id, dependency.error_message or "")

            record.connected_inputs = self._executor.collect_connected_inputs(node, self.graph, run.cache)
            result = await self._executor.execute(node, self.graph, run.cache)

        except FlowError as e:
            run.mark_failed(node_id, e, (time.perf_counter() - start_time) * 1000)
            logger.error(f"Node {node_id} failed: {e}", extra=extra)
            raise

        run.mark_succeeded(node_id, result, (time.perf_counter() - start_time) * 1000)
        logger.debug(f"Node {node_id} succeeded", extra=extra)
        return result

    @contextmanager
    def _in_flight(self) -> Iterator[None]:
        """Mark the orchestrator busy and lock the graph for the run."""
        if self._running:
            raise GraphLockedError("A run is already in progress")

        self._running = True
        try:
            with self.graph.locked():
                yield
        finally:
            self._running = False


__all__ = [
    "FlowOrchestrator",
]
