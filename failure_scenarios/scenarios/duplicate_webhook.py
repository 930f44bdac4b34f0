"""
Duplicate webhook scenario.

Delivers the same signed ``checkout.session.completed`` event twice, as the
gateway does under at-least-once delivery, then polls the order twice.

Expected: both deliveries are acknowledged and every poll returns the same
order_id.
"""
from __future__ import annotations

import httpx

from failure_scenarios import (
    FailureResult,
    ScenarioTarget,
    checkout_completed_event,
    sign_payload,
)

SCENARIO_NAME = "duplicate_webhook"


async def run(target: ScenarioTarget) -> FailureResult:
    """Execute duplicate webhook scenario."""
    payload = checkout_completed_event(target.session_handle, event_id="evt_duplicate")
    ack_codes: list[int] = []
    ids: list[str] = []
    error: str | None = None

    try:
        async with httpx.AsyncClient(base_url=target.base_url, timeout=10.0) as client:
            for _ in range(2):
                r = await client.post(
                    "/webhook",
                    content=payload,
                    headers={
                        "Stripe-Signature": sign_payload(payload, target.webhook_secret),
                        "Content-Type": "application/json",
                    },
                )
                ack_codes.append(r.status_code)

            for _ in range(2):
                r = await client.get("/orders", params={"session_id": target.session_handle})
                if r.status_code == 200:
                    ids.append(r.json()["order"]["order_id"])

    except Exception as exc:
        error = str(exc)

    unique_ids = set(ids)
    correct = ack_codes == [200, 200] and len(ids) == 2 and len(unique_ids) == 1

    return FailureResult(
        scenario_name=SCENARIO_NAME,
        service=target.name,
        expected_outcome="both deliveries acked, exactly one order_id",
        actual_outcome=f"acks={ack_codes} unique_ids={unique_ids}",
        correct=correct,
        details={"session_handle": target.session_handle, "ids_seen": ids},
        error=error,
    )
