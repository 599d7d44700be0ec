"""
Function Registry - Catalogue of node functions.

This package provides:
- FunctionSpec: Metadata and implementation of one node function
- FunctionGroup: Named catalogue group
- FunctionRegistry: Read-only lookup and listing
"""

from nodeflow.registry.models import (
    FunctionGroup,
    FunctionInput,
    FunctionOutput,
    FunctionSpec,
    NodeImplementation,
)
from nodeflow.errors import DuplicateIdError
from nodeflow.registry.registry import FunctionRegistry

__all__ = [
    "FunctionGroup",
    "FunctionInput",
    "FunctionOutput",
    "FunctionSpec",
    "NodeImplementation",
    "FunctionRegistry",
    "DuplicateIdError",
]
