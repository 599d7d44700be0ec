"""Tests for the built-in function catalogue."""
import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from nodeflow.config import Settings
from nodeflow.functions import FunctionContext, NodeFunctionError, build_default_registry
from nodeflow.functions.http import HttpApiError, HttpClient, HttpTimeoutError
from nodeflow.functions.solana import RpcError
from nodeflow.functions.utils import next_execution
from nodeflow.runtime import FlowGraph, FlowOrchestrator


RPC_URL = "https://rpc.test"


def make_registry(handler=None, **settings):
    """Registry whose HTTP calls are answered by ``handler``."""
    transport = httpx.MockTransport(handler) if handler else None
    ctx = FunctionContext(settings=Settings(solana_rpc_url=RPC_URL, **settings), transport=transport)
    return build_default_registry(ctx)


def call(registry, function_id, **inputs):
    """Invoke a registered implementation directly."""
    return asyncio.run(registry.lookup(function_id).implementation(inputs))


def rpc_handler(results, requests=None):
    """JSON-RPC handler answering by method name."""

    def handler(request):
        payload = json.loads(request.content)
        if requests is not None:
            requests.append((str(request.url), payload))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": results[payload["method"]]})

    return handler


class TestCatalogue:
    """Test the default registry contents."""

    def test_all_builtins_registered(self):
        registry = make_registry()

        assert [spec.id for spec in registry] == [
            "solana-tx-fetch",
            "solana-account-history",
            "solana-wallet-balance",
            "analyze-solana-transaction",
            "fetch-data",
            "filter-data",
            "sort-data",
            "map-data",
            "calculate-statistics",
            "delay",
            "mermaid",
            "discord-webhook",
            "permissionless-cron",
        ]

    def test_groups(self):
        registry = make_registry()

        assert registry.default_group().id == "solana"
        solana_ids = [spec.id for spec in registry.list_by_group("solana")]
        assert "discord-webhook" in solana_ids
        assert "sort-data" not in solana_ids
        assert registry.list_by_group("crosschain") == []

    def test_categories(self):
        categories = make_registry().list_by_category()

        assert list(categories) == ["Solana", "Data", "Utils", "Utility"]


class TestDataFunctions:
    """Test data reshaping functions."""

    @pytest.fixture
    def registry(self):
        return make_registry()

    def test_filter_data(self, registry):
        data = [{"name": "alpha"}, {"name": "beta"}, {"other": 1}, {"name": "alpine"}]

        result = call(registry, "filter-data", data=data, key="name", value="al")

        assert result == [{"name": "alpha"}, {"name": "alpine"}]
        assert len(data) == 4

    def test_filter_skips_falsy_fields(self, registry):
        data = [{"count": 0}, {"count": 10}, {"count": None}]

        result = call(registry, "filter-data", data=data, key="count", value="0")

        assert result == [{"count": 10}]

    def test_filter_requires_array(self, registry):
        with pytest.raises(NodeFunctionError, match="must be an array"):
            call(registry, "filter-data", data={"name": "alpha"}, key="name", value="a")

    def test_sort_data(self, registry):
        data = [{"slot": 3}, {"slot": 1}, {"slot": 2}]

        assert call(registry, "sort-data", data=data, key="slot") == [{"slot": 1}, {"slot": 2}, {"slot": 3}]
        assert call(registry, "sort-data", data=data, key="slot", ascending="false") == [
            {"slot": 3},
            {"slot": 2},
            {"slot": 1},
        ]
        assert data[0] == {"slot": 3}

    def test_sort_missing_key(self, registry):
        with pytest.raises(NodeFunctionError, match="Cannot sort by 'slot'"):
            call(registry, "sort-data", data=[{"slot": 1}, {}], key="slot")

    def test_map_data_with_key(self, registry):
        result = call(
            registry,
            "map-data",
            data=[{"name": "gm"}, {"name": "wagmi"}],
            key="name",
            targetKey="shout",
            transform="upper",
        )

        assert result == [{"name": "gm", "shout": "GM"}, {"name": "wagmi", "shout": "WAGMI"}]

    def test_map_data_whole_items(self, registry):
        assert call(registry, "map-data", data=[1, -2], transform="negate") == [-1, 2]

    def test_map_data_unknown_transform(self, registry):
        with pytest.raises(NodeFunctionError, match="Unknown transform 'eval'"):
            call(registry, "map-data", data=[1], transform="eval")

    def test_calculate_statistics(self, registry):
        result = call(registry, "calculate-statistics", data=[{"v": 1}, {"v": 2}, {"v": 3}, {"v": 4}], key="v")

        assert result == {"count": 4, "sum": 10, "mean": 2.5, "median": 2.5, "min": 1, "max": 4}

    def test_calculate_statistics_ignores_non_numbers(self, registry):
        result = call(registry, "calculate-statistics", data=[5, "x", True, None, 7])

        assert result["count"] == 2
        assert result["mean"] == 6

    def test_calculate_statistics_empty(self, registry):
        with pytest.raises(NodeFunctionError, match="No numeric values"):
            call(registry, "calculate-statistics", data=[])

    def test_fetch_data(self):
        seen = []

        def handler(request):
            seen.append((request.method, str(request.url)))
            return httpx.Response(200, json=[{"id": 1}])

        registry = make_registry(handler)

        result = call(registry, "fetch-data", url="https://api.test/items", method="get")

        assert result == [{"id": 1}]
        assert seen == [("GET", "https://api.test/items")]

    def test_fetch_data_http_error(self):
        registry = make_registry(lambda request: httpx.Response(500, text="upstream down"))

        with pytest.raises(HttpApiError) as exc_info:
            call(registry, "fetch-data", url="https://api.test/items")

        assert exc_info.value.status_code == 500
        assert "upstream down" in str(exc_info.value)


class TestSolanaFunctions:
    """Test JSON-RPC backed functions."""

    def test_tx_fetch(self):
        requests = []
        registry = make_registry(rpc_handler({"getTransaction": {"slot": 42}}, requests))

        result = call(registry, "solana-tx-fetch", txHash="5sig")

        assert result == {"slot": 42}
        url, payload = requests[0]
        assert url.rstrip("/") == RPC_URL
        assert payload["method"] == "getTransaction"
        assert payload["params"] == ["5sig", {"encoding": "json", "maxSupportedTransactionVersion": 0}]

    def test_tx_fetch_uses_node_rpc_url(self):
        requests = []
        registry = make_registry(rpc_handler({"getTransaction": {"slot": 1}}, requests))

        call(registry, "solana-tx-fetch", txHash="5sig", rpcUrl="https://devnet.test")

        assert requests[0][0].rstrip("/") == "https://devnet.test"

    def test_tx_not_found(self):
        registry = make_registry(rpc_handler({"getTransaction": None}))

        with pytest.raises(NodeFunctionError, match="Transaction not found"):
            call(registry, "solana-tx-fetch", txHash="missing")

    def test_rpc_error_object(self):
        def handler(request):
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "Invalid param"}})

        registry = make_registry(handler)

        with pytest.raises(RpcError, match="RPC error: Invalid param"):
            call(registry, "solana-tx-fetch", txHash="bad")

    def test_tx_hash_required(self):
        with pytest.raises(NodeFunctionError, match="txHash is a required input"):
            call(make_registry(), "solana-tx-fetch", txHash="")

    def test_wallet_balance(self):
        registry = make_registry(rpc_handler({"getBalance": {"context": {"slot": 1}, "value": 2_500_000_000}}))

        result = call(registry, "solana-wallet-balance", address="Wallet1")

        assert result == {"address": "Wallet1", "lamports": 2_500_000_000, "sol": 2.5}

    def test_account_history_caps_limit(self):
        requests = []
        registry = make_registry(rpc_handler(
            {
                "getSignaturesForAddress": [{"signature": "s1", "slot": 7, "blockTime": 1700000000}],
                "getTransaction": {"slot": 7},
            },
            requests,
        ))

        result = call(registry, "solana-account-history", address="Wallet1", limit=50)

        assert requests[0][1]["params"] == ["Wallet1", {"limit": 10}]
        assert result == [{"signature": "s1", "slot": 7, "blockTime": 1700000000, "transaction": {"slot": 7}}]

    def test_analyze_without_key(self):
        requests = []
        registry = make_registry(rpc_handler({}, requests))

        with pytest.raises(NodeFunctionError, match="NODEFLOW_GEMINI_API_KEY"):
            call(registry, "analyze-solana-transaction", transaction={"slot": 1})
        assert requests == []

    def test_analyze_with_key(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "A SOL transfer "}, {"text": "between two wallets."}]}}],
            })

        registry = make_registry(handler, gemini_api_key="test-key", gemini_base_url="https://gemini.test/v1beta")

        result = call(registry, "analyze-solana-transaction", transaction={"slot": 1})

        assert result == "A SOL transfer between two wallets."
        request = seen[0]
        assert request.url.host == "gemini.test"
        assert request.url.path == "/v1beta/models/gemini-2.0-flash:generateContent"
        assert request.headers["x-goog-api-key"] == "test-key"
        body = json.loads(request.content)
        assert body["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 200}
        assert '"slot": 1' in body["contents"][0]["parts"][0]["text"]

    def test_analyze_empty_response(self):
        registry = make_registry(
            lambda request: httpx.Response(200, json={"candidates": []}),
            gemini_api_key="test-key",
        )

        with pytest.raises(NodeFunctionError, match="no text"):
            call(registry, "analyze-solana-transaction", transaction={"slot": 1})


class TestUtilityFunctions:
    """Test utility functions."""

    def test_delay_passes_data_through(self):
        assert call(make_registry(), "delay", data={"a": 1}, ms=0) == {"a": 1}

    def test_delay_rejects_bad_ms(self):
        with pytest.raises(NodeFunctionError, match="ms must be a number"):
            call(make_registry(), "delay", data=None, ms="soon")

    def test_mermaid(self):
        result = call(make_registry(), "mermaid", mermaid="graph TD; A-->B")

        assert result == {"mermaid": "graph TD; A-->B", "type": "mermaid"}

    def test_discord_webhook_preview(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(204)

        content = "x" * 60
        result = call(make_registry(handler), "discord-webhook", webhookUrl="https://discord.test/hook", content=content)

        assert seen == [{"content": content}]
        assert result["result"] is True
        assert result["statusCode"] == 204
        assert result["content"] == "x" * 50 + "..."

    def test_discord_short_content_not_truncated(self):
        registry = make_registry(lambda request: httpx.Response(204))

        result = call(registry, "discord-webhook", webhookUrl="https://discord.test/hook", content="gm")

        assert result["content"] == "gm"

    def test_permissionless_cron(self):
        result = call(
            make_registry(),
            "permissionless-cron",
            taskName="sweep",
            cronExpression="0 * * * *",
            instructions={"action": "sweep"},
        )

        assert result["id"].startswith("task_")
        assert result["status"] == "scheduled"
        assert result["rewardPerExecution"] == 0.05
        assert result["cronExpression"] == "0 * * * *"

    def test_permissionless_cron_invalid_expression(self):
        with pytest.raises(NodeFunctionError, match="Invalid cron expression"):
            call(
                make_registry(),
                "permissionless-cron",
                taskName="sweep",
                cronExpression="every hour",
                instructions={},
            )


class TestNextExecution:
    """Test cron preset handling."""

    NOW = datetime(2024, 1, 3, 10, 30, 15, tzinfo=timezone.utc)  # Wednesday

    def test_every_minute(self):
        assert next_execution("* * * * *", self.NOW) == datetime(2024, 1, 3, 10, 31, tzinfo=timezone.utc)

    def test_hourly(self):
        assert next_execution("0 * * * *", self.NOW) == datetime(2024, 1, 3, 11, 0, tzinfo=timezone.utc)

    def test_daily(self):
        assert next_execution("0 0 * * *", self.NOW) == datetime(2024, 1, 4, tzinfo=timezone.utc)

    def test_weekly(self):
        assert next_execution("0 0 * * 0", self.NOW) == datetime(2024, 1, 7, tzinfo=timezone.utc)

    def test_weekly_from_sunday(self):
        sunday = datetime(2024, 1, 7, 9, 0, tzinfo=timezone.utc)

        assert next_execution("0 0 * * 0", sunday) == datetime(2024, 1, 14, tzinfo=timezone.utc)

    def test_other_expressions(self):
        assert next_execution("*/5 * * * *", self.NOW) == datetime(2024, 1, 4, 10, 30, 15, tzinfo=timezone.utc)


class TestHttpClient:
    """Test HttpClient error mapping."""

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = HttpClient(timeout=1.5, transport=httpx.MockTransport(handler))

        with pytest.raises(HttpTimeoutError) as exc_info:
            asyncio.run(client.get("https://api.test/slow"))

        assert exc_info.value.timeout == 1.5
        assert exc_info.value.url == "https://api.test/slow"

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = HttpClient(base_url="https://api.test/", transport=httpx.MockTransport(handler))

        with pytest.raises(HttpApiError, match="Request failed"):
            asyncio.run(client.post("/items", json={}))


class TestBuiltinFlow:
    """Run built-in functions through the orchestrator."""

    def test_balance_to_output(self):
        registry = make_registry(rpc_handler({"getBalance": {"value": 1_000_000_000}}))
        graph = FlowGraph(registry)
        graph.add_function_node("solana-wallet-balance", node_id="balance")
        graph.update_node_inputs("balance", {"address": "Wallet1"})
        graph.add_output_node(node_id="out")
        graph.connect("balance", "out", "input-value")

        run = asyncio.run(FlowOrchestrator(graph).run_flow())

        assert run.results["out"] == {"address": "Wallet1", "lamports": 1_000_000_000, "sol": 1.0}

    def test_function_error_recorded_on_node(self):
        graph = FlowGraph(make_registry())
        graph.add_function_node("sort-data", node_id="sort")
        graph.update_node_inputs("sort", {"data": "not a list", "key": "slot"})

        run = asyncio.run(FlowOrchestrator(graph).run_flow())

        record = run.record("sort")
        assert record.is_error
        assert record.error_message == "Input data must be an array"
