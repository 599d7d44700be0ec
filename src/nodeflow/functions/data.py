"""
Data Functions - Fetch and reshape JSON data.

These functions work on lists of JSON objects and never mutate their
inputs; each returns a new list or value.
"""

from __future__ import annotations

import statistics
from typing import Any, Callable, Dict, List

from nodeflow.functions.context import (
    FunctionContext,
    NodeFunctionError,
    require,
    require_list,
)
from nodeflow.functions.http import raise_for_status
from nodeflow.registry import FunctionInput, FunctionOutput, FunctionSpec


CATEGORY = "Data"
GROUPS = ["default", "utilities"]

# Named value transforms for map-data
TRANSFORMS: Dict[str, Callable[[Any], Any]] = {
    "upper": lambda v: str(v).upper(),
    "lower": lambda v: str(v).lower(),
    "strip": lambda v: str(v).strip(),
    "str": str,
    "int": int,
    "float": float,
    "abs": abs,
    "len": len,
    "round": round,
    "bool": bool,
    "double": lambda v: v * 2,
    "negate": lambda v: -v,
}


def _matches(item: Any, key: str, value: Any) -> bool:
    if not isinstance(item, dict):
        return False
    field = item.get(key)
    if not field:
        return False
    return str(value) in str(field)


def data_functions(ctx: FunctionContext) -> List[FunctionSpec]:
    """Build the data function specs."""

    async def fetch_data(inputs: Dict[str, Any]) -> Any:
        require(inputs, "url")
        method = (inputs.get("method") or "GET").upper()
        response = await ctx.http_client().request(method, inputs["url"])
        raise_for_status(response)
        return response.json()

    async def filter_data(inputs: Dict[str, Any]) -> List[Any]:
        data = require_list(inputs, "data")
        require(inputs, "key")
        key, value = inputs["key"], inputs.get("value", "")
        return [item for item in data if _matches(item, key, value)]

    async def sort_data(inputs: Dict[str, Any]) -> List[Any]:
        data = require_list(inputs, "data")
        require(inputs, "key")
        key = inputs["key"]
        ascending = inputs.get("ascending", True)
        if isinstance(ascending, str):
            ascending = ascending.lower() not in ("false", "0", "no")
        try:
            return sorted(data, key=lambda item: item[key], reverse=not ascending)
        except (KeyError, TypeError) as e:
            raise NodeFunctionError(f"Cannot sort by '{key}': {e}") from e

    async def map_data(inputs: Dict[str, Any]) -> List[Any]:
        data = require_list(inputs, "data")
        key = inputs.get("key") or None
        target_key = inputs.get("targetKey") or key
        transform_name = inputs.get("transform") or ""

        transform = None
        if transform_name:
            transform = TRANSFORMS.get(transform_name)
            if transform is None:
                raise NodeFunctionError(
                    f"Unknown transform '{transform_name}'. Available: {', '.join(TRANSFORMS)}"
                )

        mapped = []
        for item in data:
            if key is None:
                mapped.append(transform(item) if transform else item)
                continue
            if not isinstance(item, dict):
                raise NodeFunctionError("Items must be objects when a key is given")
            value = item.get(key)
            new_item = dict(item)
            new_item[target_key] = transform(value) if transform else value
            mapped.append(new_item)
        return mapped

    async def calculate_statistics(inputs: Dict[str, Any]) -> Dict[str, Any]:
        data = require_list(inputs, "data")
        key = inputs.get("key") or None

        values = [item.get(key) if key and isinstance(item, dict) else item for item in data]
        numbers = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
        if not numbers:
            raise NodeFunctionError("No numeric values to summarize")

        return {
            "count": len(numbers),
            "sum": sum(numbers),
            "mean": statistics.fmean(numbers),
            "median": statistics.median(numbers),
            "min": min(numbers),
            "max": max(numbers),
        }

    return [
        FunctionSpec(
            id="fetch-data",
            name="Fetch Data",
            description="Fetches JSON data from an API endpoint",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="url", type="string", required=True),
                FunctionInput(name="method", type="string", default="GET"),
            ],
            output=FunctionOutput(name="response", type="object"),
            implementation=fetch_data,
        ),
        FunctionSpec(
            id="filter-data",
            name="Filter Data",
            description="Keeps items whose key contains the given value",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="data", type="array", required=True),
                FunctionInput(name="key", type="string", required=True),
                FunctionInput(name="value", type="string", required=True),
            ],
            output=FunctionOutput(name="filtered", type="array"),
            implementation=filter_data,
        ),
        FunctionSpec(
            id="sort-data",
            name="Sort Data",
            description="Sorts an array of objects by a key",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="data", type="array", required=True),
                FunctionInput(name="key", type="string", required=True),
                FunctionInput(name="ascending", type="boolean", default=True),
            ],
            output=FunctionOutput(name="sorted", type="array"),
            implementation=sort_data,
        ),
        FunctionSpec(
            id="map-data",
            name="Map Data",
            description="Applies a named transform to each item or to one key of each item",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="data", type="array", required=True),
                FunctionInput(name="key", type="string", description="Key to transform (empty for whole item)"),
                FunctionInput(name="targetKey", type="string", description="Key receiving the result"),
                FunctionInput(name="transform", type="string", default="", description="Transform name"),
            ],
            output=FunctionOutput(name="mapped", type="array"),
            implementation=map_data,
        ),
        FunctionSpec(
            id="calculate-statistics",
            name="Calculate Statistics",
            description="Summarizes the numeric values of an array",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="data", type="array", required=True),
                FunctionInput(name="key", type="string", description="Key holding the number"),
            ],
            output=FunctionOutput(name="statistics", type="object"),
            implementation=calculate_statistics,
        ),
    ]
