"""
Run State - Per-run node state, result cache and run status.

A fresh RunState is allocated for every run, so the static graph is never
mutated to record results and nothing needs resetting between runs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional


class NodeRunState(str, Enum):
    """State of a node within one run."""
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Overall status of a run."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


_NODE_TRANSITIONS = {
    NodeRunState.IDLE: {NodeRunState.PROCESSING},
    NodeRunState.PROCESSING: {NodeRunState.SUCCEEDED, NodeRunState.FAILED},
    NodeRunState.SUCCEEDED: set(),
    NodeRunState.FAILED: set(),
}

_RUN_TRANSITIONS = {
    RunStatus.NOT_STARTED: {RunStatus.RUNNING},
    RunStatus.RUNNING: {RunStatus.COMPLETED, RunStatus.ABORTED},
    RunStatus.COMPLETED: set(),
    RunStatus.ABORTED: set(),
}


class RunResultCache:
    """
    Results of nodes executed in the current run, keyed by node id.

    Each node may be stored once; a second store means the node was
    executed twice in the same run.
    """

    def __init__(self):
        self._results: Dict[str, Any] = {}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._results

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def get(self, node_id: str, default: Any = None) -> Any:
        return self._results.get(node_id, default)

    def __getitem__(self, node_id: str) -> Any:
        return self._results[node_id]

    def store(self, node_id: str, result: Any) -> None:
        if node_id in self._results:
            raise RuntimeError(f"Result for node {node_id} already cached in this run")
        self._results[node_id] = result

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._results)


@dataclass
class NodeRunRecord:
    """
    Run-scoped view of one node.

    ``connected_inputs`` is the projection of upstream results onto this
    node's input names, captured when the node executed.
    """
    node_id: str
    state: NodeRunState = NodeRunState.IDLE
    result: Any = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None
    connected_inputs: Dict[str, Any] = field(default_factory=dict)
    duration_ms: float = 0

    def transition(self, new_state: NodeRunState) -> None:
        if new_state not in _NODE_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid state transition for node {self.node_id}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    @property
    def is_success(self) -> bool:
        return self.state == NodeRunState.SUCCEEDED

    @property
    def is_error(self) -> bool:
        return self.state == NodeRunState.FAILED


@dataclass
class RunState:
    """
    State of one full or partial run.

    Created with every node IDLE and an empty result cache.
    """
    node_ids: List[str]
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: RunStatus = RunStatus.NOT_STARTED
    cache: RunResultCache = field(default_factory=RunResultCache)
    records: Dict[str, NodeRunRecord] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)
    error: Optional[str] = None
    errors: Dict[str, BaseException] = field(default_factory=dict, repr=False)
    duration_ms: float = 0

    def __post_init__(self) -> None:
        for node_id in self.node_ids:
            self.records.setdefault(node_id, NodeRunRecord(node_id=node_id))

    @classmethod
    def for_nodes(cls, node_ids: Iterable[str]) -> "RunState":
        return cls(node_ids=list(node_ids))

    def transition(self, new_status: RunStatus) -> None:
        if new_status not in _RUN_TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Invalid run status transition: {self.status.value} -> {new_status.value}"
            )
        self.status = new_status

    def record(self, node_id: str) -> NodeRunRecord:
        """Get the node's record, starting IDLE for nodes added after the run began."""
        return self.records.setdefault(node_id, NodeRunRecord(node_id=node_id))

    # Node transitions

    def mark_processing(self, node_id: str) -> None:
        self.record(node_id).transition(NodeRunState.PROCESSING)

    def mark_succeeded(self, node_id: str, result: Any, duration_ms: float = 0) -> None:
        record = self.record(node_id)
        record.transition(NodeRunState.SUCCEEDED)
        record.result = result
        record.duration_ms = duration_ms
        self.cache.store(node_id, result)

    def mark_failed(self, node_id: str, error: BaseException, duration_ms: float = 0) -> None:
        record = self.record(node_id)
        record.transition(NodeRunState.FAILED)
        record.error_message = str(error)
        record.error_type = type(error).__name__
        record.duration_ms = duration_ms
        self.errors[node_id] = error

    # Views

    @property
    def results(self) -> Dict[str, Any]:
        """Results of succeeded nodes (the run cache contents)."""
        return self.cache.as_dict()

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def is_aborted(self) -> bool:
        return self.status == RunStatus.ABORTED

    @property
    def failed_nodes(self) -> List[str]:
        return [node_id for node_id, record in self.records.items() if record.is_error]

    @property
    def succeeded_nodes(self) -> List[str]:
        return [node_id for node_id, record in self.records.items() if record.is_success]

    def summary(self) -> Dict[str, Any]:
        """JSON-friendly summary of the run."""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "error": self.error,
            "order": list(self.order),
            "duration_ms": round(self.duration_ms, 3),
            "state_counts": {
                state.value: sum(1 for r in self.records.values() if r.state == state)
                for state in NodeRunState
            },
            "nodes": {
                node_id: {
                    "state": record.state.value,
                    "result": record.result,
                    "error": record.error_message,
                }
                for node_id, record in self.records.items()
            },
        }


__all__ = [
    "NodeRunState",
    "RunStatus",
    "RunResultCache",
    "NodeRunRecord",
    "RunState",
]
