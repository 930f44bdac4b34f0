"""
Webhook vs. poll race scenario.

Sends the signed completion webhook and a burst of polls at the same time, so
both materialization paths compete for the same session.

Expected: the webhook is acknowledged and every poll sees one order_id.
"""
from __future__ import annotations

import asyncio

import httpx

from failure_scenarios import (
    FailureResult,
    ScenarioTarget,
    checkout_completed_event,
    sign_payload,
)

SCENARIO_NAME = "webhook_poll_race"


async def run(target: ScenarioTarget) -> FailureResult:
    """Execute webhook/poll race scenario."""
    payload = checkout_completed_event(target.session_handle, event_id="evt_race")
    ids: list[str] = []
    webhook_status: int | None = None
    error: str | None = None

    async def deliver(client: httpx.AsyncClient) -> None:
        nonlocal webhook_status
        r = await client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign_payload(payload, target.webhook_secret)},
        )
        webhook_status = r.status_code

    async def poll(client: httpx.AsyncClient) -> None:
        r = await client.get("/orders", params={"session_id": target.session_handle})
        if r.status_code == 200:
            ids.append(r.json()["order"]["order_id"])

    try:
        async with httpx.AsyncClient(base_url=target.base_url, timeout=15.0) as client:
            await asyncio.gather(deliver(client), *[poll(client) for _ in range(5)])
    except Exception as exc:
        error = str(exc)

    unique_ids = set(ids)
    correct = webhook_status == 200 and len(ids) == 5 and len(unique_ids) == 1

    return FailureResult(
        scenario_name=SCENARIO_NAME,
        service=target.name,
        expected_outcome="webhook acked, one order_id across all polls",
        actual_outcome=f"webhook={webhook_status} unique_ids={unique_ids}",
        correct=correct,
        details={"ids_seen": ids},
        error=error,
    )
