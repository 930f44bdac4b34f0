"""
Unknown order scenario.

Looks up an order id that cannot exist and lists the caller's orders
anonymously.

Expected: 404 for the lookup; 200 with an ``orders`` list for the listing.
"""
from __future__ import annotations

import uuid

import httpx

from failure_scenarios import FailureResult, ScenarioTarget

SCENARIO_NAME = "unknown_order"


async def run(target: ScenarioTarget) -> FailureResult:
    """Execute unknown order scenario."""
    order_id = f"ORD-{uuid.uuid4().hex[:8]}-00000"
    lookup_status: int | None = None
    mine_status: int | None = None
    mine_is_list = False
    error: str | None = None

    try:
        async with httpx.AsyncClient(base_url=target.base_url, timeout=10.0) as client:
            r = await client.get(f"/orders/{order_id}")
            lookup_status = r.status_code
            r = await client.get("/orders/mine")
            mine_status = r.status_code
            mine_is_list = isinstance(r.json().get("orders"), list)
    except Exception as exc:
        error = str(exc)

    return FailureResult(
        scenario_name=SCENARIO_NAME,
        service=target.name,
        expected_outcome="404 for unknown id, 200 + list for /orders/mine",
        actual_outcome=f"lookup={lookup_status} mine={mine_status} list={mine_is_list}",
        correct=lookup_status == 404 and mine_status == 200 and mine_is_list,
        details={"order_id": order_id},
        error=error,
    )
