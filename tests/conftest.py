"""Pytest configuration and fixtures."""
import os

import pytest

# Set test environment variables
os.environ["NODEFLOW_ENV"] = "test"
os.environ["NODEFLOW_LOG_FORMAT"] = "text"
os.environ.pop("NODEFLOW_GEMINI_API_KEY", None)

from nodeflow.registry import FunctionInput, FunctionOutput, FunctionRegistry, FunctionSpec  # noqa: E402
from nodeflow.runtime import FlowGraph  # noqa: E402


@pytest.fixture
def make_spec():
    """Factory for FunctionSpecs with plain string inputs."""

    def _make(function_id, implementation, inputs=(), category="Test", groups=None, output_type="object"):
        return FunctionSpec(
            id=function_id,
            name=function_id.replace("-", " ").title(),
            category=category,
            groups=groups or [],
            inputs=[
                spec_input if isinstance(spec_input, FunctionInput) else FunctionInput(name=spec_input)
                for spec_input in inputs
            ],
            output=FunctionOutput(name="result", type=output_type),
            implementation=implementation,
        )

    return _make


@pytest.fixture
def call_log():
    """Function ids in the order their implementations were invoked."""
    return []


@pytest.fixture
def stub_specs(make_spec, call_log):
    """Stub functions used across engine tests."""

    async def fetch(inputs):
        call_log.append("fetch")
        return {"x": 1}

    async def double(inputs):
        call_log.append("double")
        return inputs["x"]["x"] * 2

    async def fail(inputs):
        call_log.append("fail")
        raise RuntimeError("rpc unavailable")

    async def const(inputs):
        call_log.append("const")
        return inputs["value"]

    async def add(inputs):
        call_log.append("add")
        return inputs["a"] + inputs["b"]

    async def echo(inputs):
        call_log.append("echo")
        return dict(inputs)

    return [
        make_spec("fetch", fetch, category="Solana", groups=["solana"]),
        make_spec("double", double, inputs=["x"], category="Data", groups=["default", "utilities"]),
        make_spec("fail", fail, category="Solana", groups=["solana"]),
        make_spec("const", const, inputs=[FunctionInput(name="value", default=0)], category="Data"),
        make_spec("add", add, inputs=["a", "b"], category="Data"),
        make_spec("echo", echo, inputs=["in", "other"], category="Utils"),
    ]


@pytest.fixture
def registry(stub_specs):
    """Registry of stub functions."""
    return FunctionRegistry(specs=stub_specs)


@pytest.fixture
def graph(registry):
    """Empty graph bound to the stub registry."""
    return FlowGraph(registry)
