"""Prometheus instruments shared across the service."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

CHECKOUT_SESSIONS = Counter(
    "storefront_checkout_sessions_total",
    "Checkout session creation attempts",
    ["outcome"],
)
DISCOUNT_RESOLUTIONS = Counter(
    "storefront_discount_resolutions_total",
    "Coupon resolutions by outcome",
    ["outcome"],
)
WEBHOOK_EVENTS = Counter(
    "storefront_webhook_events_total",
    "Inbound webhook deliveries by outcome",
    ["outcome"],
)
ORDERS_MATERIALIZED = Counter(
    "storefront_orders_materialized_total",
    "Orders built from completed checkout sessions",
)
MATERIALIZATION_FAILURES = Counter(
    "storefront_materialization_failures_total",
    "Failed materialization attempts",
    ["reason"],
)
GATEWAY_LATENCY = Histogram(
    "storefront_gateway_call_seconds",
    "Latency of payment gateway calls",
    ["operation"],
)
