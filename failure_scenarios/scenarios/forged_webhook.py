"""
Forged webhook scenario.

Posts a completion event signed with the wrong secret, and one with no
signature at all.

Expected: both are rejected with 400.
"""
from __future__ import annotations

import httpx

from failure_scenarios import (
    FailureResult,
    ScenarioTarget,
    checkout_completed_event,
    sign_payload,
)

SCENARIO_NAME = "forged_webhook"


async def run(target: ScenarioTarget) -> FailureResult:
    """Execute forged webhook scenario."""
    payload = checkout_completed_event("cs_test_forged_session", event_id="evt_forged")
    codes: list[int] = []
    error: str | None = None

    try:
        async with httpx.AsyncClient(base_url=target.base_url, timeout=10.0) as client:
            forged = await client.post(
                "/webhook",
                content=payload,
                headers={"Stripe-Signature": sign_payload(payload, "whsec_not_the_secret")},
            )
            codes.append(forged.status_code)
            unsigned = await client.post("/webhook", content=payload)
            codes.append(unsigned.status_code)
    except Exception as exc:
        error = str(exc)

    return FailureResult(
        scenario_name=SCENARIO_NAME,
        service=target.name,
        expected_outcome="forged and unsigned deliveries rejected with 400",
        actual_outcome=f"status_codes={codes}",
        correct=codes == [400, 400],
        details={"status_codes": codes},
        error=error,
    )
