"""
Failure scenario runner.

Executes all failure scenarios against a running storefront, collects
FailureResult objects, writes JSON to results/failure_results.json, and
prints a Rich summary table.

Environment:
    STOREFRONT_URL        base URL of the deployment (default http://localhost:8000)
    SCENARIO_SESSION_ID   a completed checkout session handle
    STRIPE_WEBHOOK_SECRET the deployment's webhook secret
"""
from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.table import Table

from failure_scenarios import FailureResult, ScenarioTarget
from failure_scenarios.scenarios import (
    concurrent_polls,
    duplicate_webhook,
    forged_webhook,
    unknown_order,
    webhook_poll_race,
)

SCENARIO_MODULES = [
    forged_webhook,
    webhook_poll_race,
    duplicate_webhook,
    concurrent_polls,
    unknown_order,
]

RESULTS_DIR = Path(__file__).parent.parent / "results"


def target_from_env() -> ScenarioTarget:
    return ScenarioTarget(
        name=os.getenv("SCENARIO_TARGET_NAME", "storefront"),
        base_url=os.getenv("STOREFRONT_URL", "http://localhost:8000"),
        session_handle=os.getenv("SCENARIO_SESSION_ID", ""),
        webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
    )


async def run_all(target: ScenarioTarget) -> list[FailureResult]:
    """Run every scenario against ``target`` and return all results."""
    all_results: list[FailureResult] = []

    for module in SCENARIO_MODULES:
        try:
            result: FailureResult = await module.run(target)
        except Exception as exc:
            result = FailureResult(
                scenario_name=getattr(module, "SCENARIO_NAME", module.__name__),
                service=target.name,
                expected_outcome="no exception",
                actual_outcome="runner exception",
                correct=False,
                error=str(exc),
            )
        all_results.append(result)

    return all_results


def save_results(results: list[FailureResult]) -> Path:
    """Serialise results to JSON."""
    RESULTS_DIR.mkdir(exist_ok=True)
    output_path = RESULTS_DIR / "failure_results.json"
    serialisable = [
        {
            "scenario_name": r.scenario_name,
            "service": r.service,
            "expected_outcome": r.expected_outcome,
            "actual_outcome": r.actual_outcome,
            "correct": r.correct,
            "details": r.details,
            "error": r.error,
        }
        for r in results
    ]
    with open(output_path, "w") as fh:
        json.dump(
            {"run_at": datetime.now(timezone.utc).isoformat(), "results": serialisable},
            fh,
            indent=2,
        )
    return output_path


def print_table(results: list[FailureResult]) -> None:
    """Print Rich summary table."""
    console = Console()
    table = Table(title="Failure Scenario Results", show_lines=True)
    table.add_column("Scenario", style="cyan", no_wrap=True)
    table.add_column("Service", style="magenta")
    table.add_column("Expected", style="white")
    table.add_column("Actual", style="white")
    table.add_column("Pass/Fail", justify="center")

    for r in results:
        status = "[green]✓ PASS[/green]" if r.correct else "[red]✗ FAIL[/red]"
        table.add_row(
            r.scenario_name,
            r.service,
            r.expected_outcome,
            r.actual_outcome or (r.error or ""),
            status,
        )

    console.print(table)
    total = len(results)
    passed = sum(1 for r in results if r.correct)
    console.print(f"\n[bold]Total: {total}  Passed: {passed}  Failed: {total - passed}[/bold]")


async def main() -> None:
    target = target_from_env()
    if not target.session_handle or not target.webhook_secret:
        Console().print(
            "[red]SCENARIO_SESSION_ID and STRIPE_WEBHOOK_SECRET must both be set[/red]"
        )
        raise SystemExit(2)
    results = await run_all(target)
    path = save_results(results)
    print_table(results)
    print(f"\nResults written to {path}")


if __name__ == "__main__":
    asyncio.run(main())
