"""
Order materialization.

Turns a completed checkout session into the canonical ``Order``. Idempotent:
every call for the same session handle, concurrent or sequential, observes the
same ``Order``, and the gateway is consulted at most once per handle while a
fetch is in flight or after it has succeeded.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog

from storefront.orders.store import OrderStore
from storefront.shared.config import Settings
from storefront.shared.errors import (
    IncompleteSessionError,
    SessionNotFoundError,
    TransientMaterializationError,
)
from storefront.shared.gateway import (
    GatewayError,
    GatewayNotFoundError,
    PaymentGateway,
    SessionRecord,
)
from storefront.shared.metrics import MATERIALIZATION_FAILURES, ORDERS_MATERIALIZED
from storefront.shared.models import Order, OrderLine, ShippingAddress

logger = structlog.get_logger(__name__)

DEFAULT_ITEM_NAME = "Product"
DEFAULT_BUYER_NAME = "Customer"


def make_order_id(session_handle: str, now_ms: int) -> str:
    """``ORD-<last 8 of handle>-<last 5 digits of epoch ms>``. Best-effort unique."""
    return f"ORD-{session_handle[-8:]}-{str(now_ms)[-5:]}"


def build_order(
    session: SessionRecord,
    *,
    created_at: datetime,
    order_id: str,
    lead_days: int,
    default_currency: str,
) -> Order:
    """Map a gateway session onto an ``Order``. Missing fields become defaults."""
    if not session.line_items:
        raise IncompleteSessionError(details=f"session {session.id} has no line items")

    items = [
        OrderLine(
            name=line.description or DEFAULT_ITEM_NAME,
            quantity=line.quantity or 1,
            line_total=line.amount_total or 0,
        )
        for line in session.line_items
    ]

    address = session.shipping_details.address if session.shipping_details else None
    shipping_address = ShippingAddress(
        street=(address.line1 if address else None) or "",
        city=(address.city if address else None) or "",
        state=(address.state if address else None) or "",
        zip=(address.postal_code if address else None) or "",
        country=(address.country if address else None) or "",
    )

    details = session.customer_details
    return Order(
        order_id=order_id,
        session_handle=session.id,
        items=items,
        total_amount=session.amount_total or 0,
        currency=session.currency or default_currency,
        created_at=created_at,
        estimated_delivery_at=created_at + timedelta(days=lead_days),
        shipping_address=shipping_address,
        buyer_name=(details.name if details else None) or DEFAULT_BUYER_NAME,
        buyer_email=(details.email if details else None) or session.customer_email or "",
        payment_status=session.payment_status or "unknown",
    )


class OrderMaterializer:
    def __init__(
        self,
        gateway: PaymentGateway,
        store: OrderStore,
        settings: Settings,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._lead_days = settings.delivery_lead_days
        self._currency = settings.currency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def materialize(self, session_handle: str) -> Order:
        """Return the order for ``session_handle``, building it on first request.

        Raises ``SessionNotFoundError`` (terminal), ``IncompleteSessionError``
        (terminal) or ``TransientMaterializationError`` (retry later).
        """
        return await self._store.get_or_create(
            session_handle, lambda: self._build(session_handle)
        )

    async def _build(self, session_handle: str) -> Order:
        log = logger.bind(session_handle=session_handle)
        log.info("order_materialization_started")
        try:
            session = await self._gateway.retrieve_session(session_handle)
        except GatewayNotFoundError as exc:
            MATERIALIZATION_FAILURES.labels(reason="not_found").inc()
            log.warning("session_not_found", error=exc.message)
            raise SessionNotFoundError(details=exc.message, type=exc.kind) from exc
        except GatewayError as exc:
            MATERIALIZATION_FAILURES.labels(reason="transient").inc()
            log.warning("order_materialization_transient_failure", kind=exc.kind, error=exc.message)
            raise TransientMaterializationError(details=exc.message, type=exc.kind) from exc

        now = self._clock()
        try:
            order = build_order(
                session,
                created_at=now,
                order_id=make_order_id(session_handle, int(now.timestamp() * 1000)),
                lead_days=self._lead_days,
                default_currency=self._currency,
            )
        except IncompleteSessionError:
            MATERIALIZATION_FAILURES.labels(reason="incomplete").inc()
            log.error("session_missing_line_items")
            raise

        ORDERS_MATERIALIZED.inc()
        log.info(
            "order_materialized",
            order_id=order.order_id,
            total=order.total_amount,
            items=len(order.items),
        )
        return order
