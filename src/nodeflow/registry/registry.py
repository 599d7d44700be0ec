"""
Function Registry - Read-only catalogue of node functions.

The registry is populated once at process start from a static list of
FunctionSpecs and is passed by reference to whatever needs lookups.
It is never mutated after bootstrap, so concurrent readers are safe.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from nodeflow.errors import DuplicateIdError
from nodeflow.registry.models import FunctionGroup, FunctionSpec


logger = logging.getLogger(__name__)


class FunctionRegistry:
    """
    Catalogue mapping function ids to FunctionSpecs.

    Usage:
        registry = FunctionRegistry(specs=[fetch_spec, sort_spec], groups=GROUPS)

        spec = registry.lookup("sort-data")
        by_category = registry.list_by_category()
        solana_functions = registry.list_by_group("solana")
    """

    def __init__(
        self,
        specs: Iterable[FunctionSpec] = (),
        groups: Iterable[FunctionGroup] = (),
    ):
        """
        Build the registry.

        Args:
            specs: Function specs to register, in catalogue order
            groups: Known function groups

        Raises:
            DuplicateIdError: If two specs share an id
        """
        self._functions: Dict[str, FunctionSpec] = {}
        self._groups: Dict[str, FunctionGroup] = {}

        for group in groups:
            self._groups[group.id] = group
        for spec in specs:
            self.register(spec)

    def register(self, spec: FunctionSpec) -> FunctionSpec:
        """
        Register a function spec.

        Only meant to be called while bootstrapping the process.

        Raises:
            DuplicateIdError: If ``spec.id`` is already registered
        """
        if spec.id in self._functions:
            raise DuplicateIdError(spec.id)

        self._functions[spec.id] = spec
        logger.debug(f"Registered function: {spec.id}")
        return spec

    def lookup(self, function_id: str) -> Optional[FunctionSpec]:
        """Get function spec by id."""
        return self._functions.get(function_id)

    def has_function(self, function_id: str) -> bool:
        return function_id in self._functions

    def list_functions(self) -> List[FunctionSpec]:
        """List all functions in registration order."""
        return list(self._functions.values())

    def list_by_category(self) -> Dict[str, List[FunctionSpec]]:
        """Group functions by category, preserving registration order."""
        categories: Dict[str, List[FunctionSpec]] = {}
        for spec in self._functions.values():
            categories.setdefault(spec.category, []).append(spec)
        return categories

    def list_by_group(self, group_id: str) -> List[FunctionSpec]:
        """List functions that declare membership in ``group_id``."""
        return [spec for spec in self._functions.values() if spec.in_group(group_id)]

    def get_group(self, group_id: str) -> Optional[FunctionGroup]:
        return self._groups.get(group_id)

    def list_groups(self) -> List[FunctionGroup]:
        return list(self._groups.values())

    def default_group(self) -> Optional[FunctionGroup]:
        """Get the group flagged as default, if any."""
        for group in self._groups.values():
            if group.is_default:
                return group
        return None

    def __len__(self) -> int:
        return len(self._functions)

    def __iter__(self) -> Iterator[FunctionSpec]:
        return iter(self._functions.values())

    def __contains__(self, function_id: str) -> bool:
        return self.has_function(function_id)


__all__ = [
    "FunctionRegistry",
    "DuplicateIdError",
]
