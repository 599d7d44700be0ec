"""
Utility Functions - Timing, notification and scheduling helpers.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from nodeflow.functions.context import FunctionContext, NodeFunctionError, require
from nodeflow.functions.http import raise_for_status
from nodeflow.registry import FunctionInput, FunctionOutput, FunctionSpec


CATEGORY = "Utils"
PREVIEW_LENGTH = 50


def next_execution(cron_expression: str, now: Optional[datetime] = None) -> datetime:
    """
    Approximate the next run time of a cron expression.

    Only the common presets are understood exactly (every minute, hourly,
    daily at midnight, weekly on Sunday); anything else is treated as
    "one day from now".
    """
    now = now or datetime.now(timezone.utc)
    expression = " ".join(cron_expression.split())

    if expression == "* * * * *":
        return (now + timedelta(minutes=1)).replace(second=0, microsecond=0)
    if expression == "0 * * * *":
        return (now + timedelta(hours=1)).replace(minute=0, second=0, microsecond=0)
    if expression == "0 0 * * *":
        return (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    if expression == "0 0 * * 0":
        # weekday(): Monday=0 .. Sunday=6
        days_ahead = 6 - now.weekday() or 7
        return (now + timedelta(days=days_ahead)).replace(hour=0, minute=0, second=0, microsecond=0)
    return now + timedelta(days=1)


def utility_functions(ctx: FunctionContext) -> List[FunctionSpec]:
    """Build the utility function specs."""

    async def delay(inputs: Dict[str, Any]) -> Any:
        ms = inputs.get("ms", 1000)
        try:
            seconds = max(float(ms), 0) / 1000
        except (TypeError, ValueError) as e:
            raise NodeFunctionError(f"ms must be a number, got {ms!r}") from e
        await asyncio.sleep(seconds)
        return inputs.get("data")

    async def mermaid(inputs: Dict[str, Any]) -> Dict[str, Any]:
        require(inputs, "mermaid")
        return {"mermaid": inputs["mermaid"], "type": "mermaid"}

    async def discord_webhook(inputs: Dict[str, Any]) -> Dict[str, Any]:
        require(inputs, "webhookUrl", "content")
        content = str(inputs["content"])

        response = await ctx.http_client().post(inputs["webhookUrl"], json={"content": content})
        raise_for_status(response)

        preview = content[:PREVIEW_LENGTH] + ("..." if len(content) > PREVIEW_LENGTH else "")
        return {
            "result": True,
            "statusCode": response.status_code,
            "content": preview,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def permissionless_cron(inputs: Dict[str, Any]) -> Dict[str, Any]:
        require(inputs, "taskName", "cronExpression", "instructions")
        cron_expression = inputs["cronExpression"]
        if len(cron_expression.split()) != 5:
            raise NodeFunctionError(f"Invalid cron expression: {cron_expression!r}")

        return {
            "id": f"task_{uuid.uuid4().hex[:8]}",
            "name": inputs["taskName"],
            "cronExpression": cron_expression,
            "instructions": inputs["instructions"],
            "status": "scheduled",
            "nextExecution": next_execution(cron_expression).isoformat(),
            "rewardPerExecution": inputs.get("rewardAmount", 0.05),
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }

    return [
        FunctionSpec(
            id="delay",
            name="Delay",
            description="Passes data through after waiting the given milliseconds",
            category=CATEGORY,
            groups=["default", "utilities"],
            inputs=[
                FunctionInput(name="data", type="object", required=True),
                FunctionInput(name="ms", type="number", default=1000),
            ],
            output=FunctionOutput(name="data", type="object"),
            implementation=delay,
        ),
        FunctionSpec(
            id="mermaid",
            name="Mermaid Viewer",
            description="Wraps Mermaid diagram code for the diagram viewer",
            category=CATEGORY,
            groups=["utilities"],
            inputs=[
                FunctionInput(name="mermaid", type="string", required=True),
            ],
            output=FunctionOutput(name="viewer", type="object"),
            implementation=mermaid,
        ),
        FunctionSpec(
            id="discord-webhook",
            name="Discord Webhook",
            description="Sends a message to a Discord webhook",
            category=CATEGORY,
            groups=["default", "solana"],
            inputs=[
                FunctionInput(name="webhookUrl", type="string", required=True, default=""),
                FunctionInput(name="content", type="string", required=True),
            ],
            output=FunctionOutput(name="response", type="object"),
            implementation=discord_webhook,
        ),
        FunctionSpec(
            id="permissionless-cron",
            name="Permissionless Cron",
            description="Schedules a task to run periodically on a decentralized network",
            category="Utility",
            groups=["utilities"],
            inputs=[
                FunctionInput(name="taskName", type="string", required=True),
                FunctionInput(name="cronExpression", type="string", required=True),
                FunctionInput(name="instructions", type="object", required=True),
                FunctionInput(name="rewardAmount", type="number", default=0.05),
            ],
            output=FunctionOutput(name="scheduledTask", type="object"),
            implementation=permissionless_cron,
        ),
    ]
