"""
Concurrent polls scenario.

Fires 10 concurrent ``GET /orders`` for the same session handle, the way an
impatient buyer with several tabs (or a fast poller) would.

Expected: all responses carry the same order_id.
"""
from __future__ import annotations

import asyncio

import httpx

from failure_scenarios import FailureResult, ScenarioTarget

SCENARIO_NAME = "concurrent_polls"


async def run(target: ScenarioTarget) -> FailureResult:
    """Execute concurrent polls scenario."""
    ids: list[str] = []
    status_codes: list[int] = []
    error: str | None = None

    async def poll(client: httpx.AsyncClient) -> None:
        r = await client.get("/orders", params={"session_id": target.session_handle})
        status_codes.append(r.status_code)
        if r.status_code == 200:
            ids.append(r.json()["order"]["order_id"])

    try:
        async with httpx.AsyncClient(base_url=target.base_url, timeout=15.0) as client:
            await asyncio.gather(*[poll(client) for _ in range(10)])
    except Exception as exc:
        error = str(exc)

    unique_ids = set(ids)
    correct = len(ids) == 10 and len(unique_ids) == 1

    return FailureResult(
        scenario_name=SCENARIO_NAME,
        service=target.name,
        expected_outcome="all 10 concurrent polls return the same order_id",
        actual_outcome=f"unique_order_ids={len(unique_ids)}, total_responses={len(ids)}",
        correct=correct,
        details={"unique_ids": list(unique_ids), "status_codes": status_codes},
        error=error,
    )
