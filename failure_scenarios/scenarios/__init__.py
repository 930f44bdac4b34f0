"""Shared re-exports for scenario modules used by the runner."""
from __future__ import annotations

from failure_scenarios.scenarios import (
    concurrent_polls,
    duplicate_webhook,
    forged_webhook,
    unknown_order,
    webhook_poll_race,
)

__all__ = [
    "concurrent_polls",
    "duplicate_webhook",
    "forged_webhook",
    "unknown_order",
    "webhook_poll_race",
]
