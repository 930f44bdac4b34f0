"""Read access to materialized orders."""
from __future__ import annotations

import structlog

from storefront.orders.materializer import OrderMaterializer
from storefront.orders.store import OrderStore
from storefront.shared.errors import OrderNotFoundError
from storefront.shared.models import Order

logger = structlog.get_logger(__name__)


class OrderQueryService:
    def __init__(self, store: OrderStore, materializer: OrderMaterializer) -> None:
        self._store = store
        self._materializer = materializer

    async def get_by_session_handle(self, session_handle: str) -> Order:
        """Cached order, or materialize it now (the reconciliation poll path)."""
        order = await self._store.get(session_handle)
        if order is not None:
            logger.info("order_cache_hit", session_handle=session_handle)
            return order
        return await self._materializer.materialize(session_handle)

    async def get_by_order_id(self, order_id: str) -> Order:
        # Linear scan; fine while the store holds one process' worth of orders.
        for order in await self._store.values():
            if order.order_id == order_id:
                return order
        logger.info("order_not_found", order_id=order_id)
        raise OrderNotFoundError(details=f"no order with id {order_id}")

    async def list_for_buyer(self, buyer_email: str | None) -> list[Order]:
        """Orders placed by ``buyer_email``; empty for anonymous callers."""
        if not buyer_email:
            return []
        wanted = buyer_email.casefold()
        orders = [o for o in await self._store.values() if o.buyer_email.casefold() == wanted]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        logger.info("buyer_orders_listed", count=len(orders))
        return orders
