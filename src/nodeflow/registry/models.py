"""
Function Registry Models - Metadata structures for node functions.

A FunctionSpec describes one callable node implementation: its identity,
where it is listed in the catalogue, the inputs it declares and the single
output it produces. Declared types are UI hints; the engine never coerces
values against them.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ValueType = Literal["string", "number", "boolean", "object", "array"]

# async (inputs) -> result; failures are raised as exceptions
NodeImplementation = Callable[[Dict[str, Any]], Awaitable[Any]]


class FunctionInput(BaseModel):
    """
    A declared input of a node function.

    ``default`` is only meaningful when it was explicitly given; use
    ``has_default`` to tell an absent default from a ``None`` default.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Input name (unique within the function)")
    type: ValueType = Field("string", description="Declared value type")
    required: bool = Field(False, description="Whether the implementation needs it")
    default: Any = Field(None, description="Value copied into new nodes")
    description: str = Field("", description="Human-readable description")

    @property
    def has_default(self) -> bool:
        return "default" in self.model_fields_set


class FunctionOutput(BaseModel):
    """The single output of a node function."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Output name")
    type: ValueType = Field("object", description="Declared value type")
    description: str = Field("", description="Human-readable description")


class FunctionSpec(BaseModel):
    """
    Immutable registry entry for a node function.

    ``id`` uniquely identifies the spec for the registry's lifetime.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # Identity
    id: str = Field(..., description="Unique function identifier")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="Function description")

    # Catalogue placement
    category: str = Field("General", description="Category for grouped listing")
    groups: List[str] = Field(default_factory=list, description="Group memberships")

    # Signature
    inputs: List[FunctionInput] = Field(default_factory=list)
    output: FunctionOutput = Field(
        default_factory=lambda: FunctionOutput(name="result"),
    )

    # Runtime
    implementation: NodeImplementation = Field(..., exclude=True, repr=False)

    def get_input(self, name: str) -> Optional[FunctionInput]:
        """Get declared input by name."""
        for function_input in self.inputs:
            if function_input.name == name:
                return function_input
        return None

    @property
    def input_names(self) -> List[str]:
        return [function_input.name for function_input in self.inputs]

    def default_inputs(self) -> Dict[str, Any]:
        """Default values for the inputs that declare one."""
        return {
            function_input.name: function_input.default
            for function_input in self.inputs
            if function_input.has_default
        }

    def in_group(self, group_id: str) -> bool:
        return group_id in self.groups


class FunctionGroup(BaseModel):
    """
    A named group of functions offered together in the catalogue.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Group identifier")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="Group description")
    is_default: bool = Field(False, description="Active when no group is selected")


__all__ = [
    "FunctionInput",
    "FunctionOutput",
    "FunctionSpec",
    "FunctionGroup",
    "NodeImplementation",
    "ValueType",
]
