"""
Flow Snapshot Models - JSON structures for saved flows.

These models match the editor's save format: a list of nodes (id, type,
canvas position and a data payload) and a list of edges between node
handles. Only ``functionId`` and the manually entered ``inputs`` are owned
by the engine; run fields are never written back into a snapshot.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


FUNCTION_NODE_TYPE = "function"
OUTPUT_NODE_TYPE = "output"


class SnapshotPosition(BaseModel):
    """Node position in the canvas (UI-only)."""
    x: float = 0
    y: float = 0


class SnapshotNodeData(BaseModel):
    """
    Node data payload.

    Example: {"label": "Sort Data", "functionId": "sort-data", "inputs": {"key": "slot"}}
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: str = Field("", description="Display label")
    function_id: Optional[str] = Field(None, alias="functionId", description="Registered function id")
    inputs: Dict[str, Any] = Field(default_factory=dict, description="Manually entered input values")


class SnapshotNode(BaseModel):
    """A node in a saved flow."""
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Node id (unique within the flow)")
    type: str = Field(FUNCTION_NODE_TYPE, description="Renderer type: 'function' or 'output'")
    position: SnapshotPosition = Field(default_factory=SnapshotPosition)
    data: SnapshotNodeData = Field(default_factory=SnapshotNodeData)


class SnapshotEdge(BaseModel):
    """
    Edge between a source node's output handle and a target node's input handle.

    Example: {"source": "fetch", "sourceHandle": "output", "target": "double", "targetHandle": "input-x"}
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = Field(None, description="Edge id")
    source: str = Field(..., description="Source node id")
    source_handle: str = Field("output", alias="sourceHandle")
    target: str = Field(..., description="Target node id")
    target_handle: str = Field(..., alias="targetHandle")


class FlowSnapshot(BaseModel):
    """Complete saved flow."""
    model_config = ConfigDict(extra="allow")

    nodes: List[SnapshotNode] = Field(default_factory=list)
    edges: List[SnapshotEdge] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the editor's camelCase field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


def parse_snapshot(data: Union[Dict[str, Any], str]) -> FlowSnapshot:
    """Parse snapshot JSON (dict or string) into a FlowSnapshot."""
    if isinstance(data, str):
        return FlowSnapshot.model_validate_json(data)
    return FlowSnapshot.model_validate(data)


def load_snapshot(path: Union[str, Path]) -> FlowSnapshot:
    """Read a snapshot file."""
    return parse_snapshot(Path(path).read_text(encoding="utf-8"))


def save_snapshot(snapshot: FlowSnapshot, path: Union[str, Path]) -> None:
    """Write a snapshot file."""
    Path(path).write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")


__all__ = [
    "FlowSnapshot",
    "SnapshotNode",
    "SnapshotNodeData",
    "SnapshotEdge",
    "SnapshotPosition",
    "FUNCTION_NODE_TYPE",
    "OUTPUT_NODE_TYPE",
    "parse_snapshot",
    "load_snapshot",
    "save_snapshot",
]
