"""
Solana Functions - Blockchain data over JSON-RPC and AI transaction analysis.

RPC calls go to the node's ``rpcUrl`` input when given, otherwise to the
configured ``solana_rpc_url``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from nodeflow.functions.context import FunctionContext, NodeFunctionError, require
from nodeflow.functions.http import raise_for_status
from nodeflow.registry import FunctionInput, FunctionOutput, FunctionSpec


CATEGORY = "Solana"
GROUPS = ["solana"]

LAMPORTS_PER_SOL = 1_000_000_000
MAX_HISTORY = 10

ANALYSIS_PROMPT = """You are a Solana blockchain transaction analysis expert.

Analyze the following Solana transaction and write a concise 2-3 line summary.
Explain the transaction type, the programs involved and the main operation.
Keep technical terminology to a minimum while keeping the important details.

Transaction data:
{transaction}
"""


class RpcError(NodeFunctionError):
    """Error object returned by a JSON-RPC endpoint."""

    pass


async def rpc_call(
    ctx: FunctionContext,
    method: str,
    params: List[Any],
    rpc_url: Optional[str] = None,
) -> Any:
    """
    Send one JSON-RPC request and return its ``result``.

    Raises:
        HttpApiError: On transport or HTTP status failure
        RpcError: If the response carries an ``error`` object
    """
    payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
    response = await ctx.http_client().post(rpc_url or ctx.settings.solana_rpc_url, json=payload)
    raise_for_status(response)

    data = response.json()
    if data.get("error"):
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else None
        raise RpcError(f"RPC error: {message or json.dumps(error)}")
    return data.get("result")


def solana_functions(ctx: FunctionContext) -> List[FunctionSpec]:
    """Build the Solana function specs."""

    async def tx_fetch(inputs: Dict[str, Any]) -> Any:
        require(inputs, "txHash")
        result = await rpc_call(
            ctx,
            "getTransaction",
            [inputs["txHash"], {"encoding": "json", "maxSupportedTransactionVersion": 0}],
            rpc_url=inputs.get("rpcUrl"),
        )
        if result is None:
            raise NodeFunctionError(f"Transaction not found: {inputs['txHash']}")
        return result

    async def account_history(inputs: Dict[str, Any]) -> List[Dict[str, Any]]:
        require(inputs, "address")
        rpc_url = inputs.get("rpcUrl")
        limit = min(int(inputs.get("limit") or MAX_HISTORY), MAX_HISTORY)

        signatures = await rpc_call(
            ctx,
            "getSignaturesForAddress",
            [inputs["address"], {"limit": limit}],
            rpc_url=rpc_url,
        )

        history = []
        for entry in signatures or []:
            transaction = await rpc_call(
                ctx,
                "getTransaction",
                [entry["signature"], {"encoding": "json", "maxSupportedTransactionVersion": 0}],
                rpc_url=rpc_url,
            )
            history.append({
                "signature": entry["signature"],
                "slot": entry.get("slot"),
                "blockTime": entry.get("blockTime"),
                "transaction": transaction,
            })
        return history

    async def wallet_balance(inputs: Dict[str, Any]) -> Dict[str, Any]:
        require(inputs, "address")
        result = await rpc_call(ctx, "getBalance", [inputs["address"]], rpc_url=inputs.get("rpcUrl"))
        lamports = result["value"] if isinstance(result, dict) else result
        return {
            "address": inputs["address"],
            "lamports": lamports,
            "sol": lamports / LAMPORTS_PER_SOL,
        }

    async def analyze_transaction(inputs: Dict[str, Any]) -> str:
        require(inputs, "transaction")
        api_key = ctx.settings.gemini_api_key
        if api_key is None:
            raise NodeFunctionError("Gemini API key is not configured (NODEFLOW_GEMINI_API_KEY)")

        prompt = ANALYSIS_PROMPT.format(transaction=json.dumps(inputs["transaction"], indent=2))
        client = ctx.http_client(base_url=ctx.settings.gemini_base_url)
        response = await client.post(
            f"/models/{ctx.settings.gemini_model}:generateContent",
            json={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.2, "maxOutputTokens": 200},
            },
            headers={"x-goog-api-key": api_key.get_secret_value()},
        )
        raise_for_status(response)

        data = response.json()
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise NodeFunctionError("Analysis response contained no text") from e
        text = "".join(part.get("text", "") for part in parts).strip()
        if not text:
            raise NodeFunctionError("Analysis response contained no text")
        return text

    rpc_url_input = FunctionInput(
        name="rpcUrl",
        type="string",
        description="Solana RPC URL (configured endpoint when empty)",
    )

    return [
        FunctionSpec(
            id="solana-tx-fetch",
            name="Get SolTx",
            description="Fetches a Solana transaction by its signature",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="txHash", type="string", required=True, description="Transaction signature"),
                rpc_url_input,
            ],
            output=FunctionOutput(name="transaction", type="object"),
            implementation=tx_fetch,
        ),
        FunctionSpec(
            id="solana-account-history",
            name="Account History",
            description="Fetches the most recent transactions of an address",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="address", type="string", required=True),
                rpc_url_input,
                FunctionInput(name="limit", type="number", default=MAX_HISTORY),
            ],
            output=FunctionOutput(name="history", type="array"),
            implementation=account_history,
        ),
        FunctionSpec(
            id="solana-wallet-balance",
            name="Wallet Balance",
            description="Fetches the SOL balance of an address",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="address", type="string", required=True),
                rpc_url_input,
            ],
            output=FunctionOutput(name="balance", type="object"),
            implementation=wallet_balance,
        ),
        FunctionSpec(
            id="analyze-solana-transaction",
            name="Analyze Solana Transaction",
            description="Summarizes a Solana transaction with Gemini",
            category=CATEGORY,
            groups=GROUPS,
            inputs=[
                FunctionInput(name="transaction", type="object", required=True),
            ],
            output=FunctionOutput(name="analysis", type="string"),
            implementation=analyze_transaction,
        ),
    ]
