"""
Order store: the one shared mutable resource of the service.

Provides:
- get()            – read an order by session handle
- get_or_create()  – read, or build exactly once via a supplier and store it
- values()         – every stored order (for id lookup and buyer listings)
- close()          – release backend resources at shutdown

Single-flight is per session handle: concurrent ``get_or_create`` calls for the
same handle share one in-flight supplier task, while different handles proceed
in parallel. The in-flight task is shielded from caller cancellation so a
materialization that has started always completes and populates the store.

Backends:
- InMemoryOrderStore – process-local dict; lost on restart
- RedisOrderStore    – JSON values written with SET NX; the first writer wins
                       across processes
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from storefront.shared.errors import TransientMaterializationError
from storefront.shared.models import Order

logger = structlog.get_logger(__name__)

OrderSupplier = Callable[[], Awaitable[Order]]

KEY_PREFIX = "storefront:order:"


class OrderStore(ABC):
    """Base class implementing get-or-create with per-key single-flight."""

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task[Order]] = {}

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def get(self, session_handle: str) -> Order | None:
        ...

    @abstractmethod
    async def _insert_if_absent(self, session_handle: str, order: Order) -> Order:
        """Store ``order`` unless one exists; return whichever order is stored."""

    @abstractmethod
    async def values(self) -> list[Order]:
        ...

    async def close(self) -> None:
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()

    # ------------------------------------------------------------------
    # Get-or-create
    # ------------------------------------------------------------------

    async def get_or_create(self, session_handle: str, supplier: OrderSupplier) -> Order:
        existing = await self.get(session_handle)
        if existing is not None:
            logger.debug("order_store_hit", session_handle=session_handle)
            return existing

        task = self._inflight.get(session_handle)
        if task is None:
            task = asyncio.ensure_future(self._create(session_handle, supplier))
            task.add_done_callback(self._consume_result)
            self._inflight[session_handle] = task
        else:
            logger.info("order_store_join_inflight", session_handle=session_handle)
        return await asyncio.shield(task)

    async def _create(self, session_handle: str, supplier: OrderSupplier) -> Order:
        try:
            # A previous flight may have finished between the caller's read
            # and this task starting.
            existing = await self.get(session_handle)
            if existing is not None:
                return existing
            order = await supplier()
            stored = await self._insert_if_absent(session_handle, order)
            if stored.order_id != order.order_id:
                logger.info(
                    "order_store_lost_race",
                    session_handle=session_handle,
                    kept=stored.order_id,
                    discarded=order.order_id,
                )
            return stored
        finally:
            self._inflight.pop(session_handle, None)

    @staticmethod
    def _consume_result(task: asyncio.Task) -> None:
        # Every waiter may have gone away; mark the exception as retrieved.
        if not task.cancelled():
            task.exception()


class InMemoryOrderStore(OrderStore):
    """Process-local store. Orders live until the process exits."""

    def __init__(self) -> None:
        super().__init__()
        self._orders: dict[str, Order] = {}

    async def get(self, session_handle: str) -> Order | None:
        return self._orders.get(session_handle)

    async def _insert_if_absent(self, session_handle: str, order: Order) -> Order:
        return self._orders.setdefault(session_handle, order)

    async def values(self) -> list[Order]:
        return list(self._orders.values())


class RedisOrderStore(OrderStore):
    """Durable store: one JSON value per session handle.

    Backend failures surface as ``TransientMaterializationError`` so callers
    answer with the usual error body and the next poll or redelivery retries.
    """

    def __init__(self, redis: Redis) -> None:
        super().__init__()
        self._redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisOrderStore":
        return cls(Redis.from_url(url, decode_responses=True))

    @staticmethod
    def _unavailable(operation: str, exc: RedisError) -> TransientMaterializationError:
        logger.error("order_store_unavailable", operation=operation, error=str(exc))
        return TransientMaterializationError(
            details=f"order store {operation} failed: {exc}", type="store_unavailable"
        )

    async def get(self, session_handle: str) -> Order | None:
        try:
            raw = await self._redis.get(f"{KEY_PREFIX}{session_handle}")
        except RedisError as exc:
            raise self._unavailable("get", exc) from exc
        if raw is None:
            return None
        return Order.model_validate_json(raw)

    async def _insert_if_absent(self, session_handle: str, order: Order) -> Order:
        key = f"{KEY_PREFIX}{session_handle}"
        try:
            written = await self._redis.set(key, order.model_dump_json(), nx=True)
            if written:
                logger.info("order_persisted", session_handle=session_handle, backend="redis")
                return order
            raw = await self._redis.get(key)
        except RedisError as exc:
            raise self._unavailable("set", exc) from exc
        return Order.model_validate_json(raw) if raw is not None else order

    async def values(self) -> list[Order]:
        orders: list[Order] = []
        try:
            async for key in self._redis.scan_iter(match=f"{KEY_PREFIX}*"):
                raw = await self._redis.get(key)
                if raw is not None:
                    orders.append(Order.model_validate_json(raw))
        except RedisError as exc:
            raise self._unavailable("scan", exc) from exc
        return orders

    async def close(self) -> None:
        await super().close()
        await self._redis.aclose()
