"""Shared plumbing for built-in node functions."""
from dataclasses import dataclass
from typing import Any

import httpx

from nodeflow.config import Settings, get_settings
from nodeflow.functions.http import HttpClient


class NodeFunctionError(Exception):
    """Raised by a built-in function when its inputs or its call are invalid."""

    pass


@dataclass
class FunctionContext:
    """
    Dependencies handed to built-in function factories.

    ``transport`` replaces the network layer of every HTTP client the
    functions create; tests pass an ``httpx.MockTransport``.
    """

    settings: Settings
    transport: httpx.AsyncBaseTransport | None = None

    @classmethod
    def default(cls) -> "FunctionContext":
        return cls(settings=get_settings())

    def http_client(self, base_url: str = "", **kwargs: Any) -> HttpClient:
        return HttpClient(
            base_url=base_url,
            timeout=self.settings.http_timeout_s,
            transport=self.transport,
            **kwargs,
        )


def require(inputs: dict[str, Any], *names: str) -> None:
    """Raise NodeFunctionError naming the first missing or empty input."""
    for name in names:
        value = inputs.get(name)
        if value is None or value == "":
            raise NodeFunctionError(f"{name} is a required input")


def require_list(inputs: dict[str, Any], name: str) -> list[Any]:
    """Return ``inputs[name]`` if it is a list."""
    value = inputs.get(name)
    if not isinstance(value, list):
        raise NodeFunctionError(f"Input {name} must be an array")
    return value
