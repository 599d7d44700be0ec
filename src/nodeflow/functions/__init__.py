"""
Built-in Functions - The default node function catalogue.

build_default_registry() is called once at process start and returns the
registry handed to graphs, executors and orchestrators.
"""

from __future__ import annotations

from typing import List, Optional

from nodeflow.functions.context import FunctionContext, NodeFunctionError
from nodeflow.functions.data import data_functions
from nodeflow.functions.solana import solana_functions
from nodeflow.functions.utils import utility_functions
from nodeflow.registry import FunctionGroup, FunctionRegistry, FunctionSpec


FUNCTION_GROUPS = [
    FunctionGroup(
        id="solana",
        name="Solana",
        description="Nodes for fetching Solana blockchain data and basic operations.",
        is_default=True,
    ),
    FunctionGroup(
        id="utilities",
        name="Utilities",
        description="Nodes for data processing, transformation, and general operations.",
    ),
    FunctionGroup(
        id="crosschain",
        name="Cross-Chain",
        description="Nodes for cross-chain interoperability and bridging operations.",
    ),
    FunctionGroup(
        id="default",
        name="Default",
        description="General purpose nodes.",
    ),
]


def builtin_functions(ctx: FunctionContext) -> List[FunctionSpec]:
    """All built-in function specs in catalogue order."""
    return [
        *solana_functions(ctx),
        *data_functions(ctx),
        *utility_functions(ctx),
    ]


def build_default_registry(ctx: Optional[FunctionContext] = None) -> FunctionRegistry:
    """Create the registry of built-in functions."""
    ctx = ctx or FunctionContext.default()
    return FunctionRegistry(specs=builtin_functions(ctx), groups=FUNCTION_GROUPS)


__all__ = [
    "FUNCTION_GROUPS",
    "FunctionContext",
    "NodeFunctionError",
    "builtin_functions",
    "build_default_registry",
]
