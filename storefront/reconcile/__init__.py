"""Buyer-side reconciliation after returning from the gateway."""
from __future__ import annotations

from storefront.reconcile.client import OrderFetchError, OrdersClient
from storefront.reconcile.loop import LoopState, Phase, ReconciliationLoop

__all__ = [
    "LoopState",
    "OrderFetchError",
    "OrdersClient",
    "Phase",
    "ReconciliationLoop",
]
