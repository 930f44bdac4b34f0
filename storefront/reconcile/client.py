"""HTTP client for the order endpoints, used by the reconciliation loop."""
from __future__ import annotations

import httpx
import structlog

from storefront.shared.models import Order

logger = structlog.get_logger(__name__)


class OrderFetchError(Exception):
    """Non-2xx answer (or no answer, ``status_code == 0``) from ``GET /orders``."""

    def __init__(self, status_code: int, error: str) -> None:
        super().__init__(f"{status_code}: {error}")
        self.status_code = status_code
        self.error = error


class OrdersClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def for_base_url(cls, base_url: str, timeout: float = 10.0) -> "OrdersClient":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def fetch_order(self, session_handle: str) -> Order:
        try:
            r = await self._client.get(
                "/orders",
                params={"session_id": session_handle},
                headers={"Cache-Control": "no-cache"},
            )
        except httpx.HTTPError as exc:
            logger.warning("order_fetch_transport_error", error=str(exc))
            raise OrderFetchError(0, str(exc)) from exc

        if r.status_code // 100 != 2:
            try:
                error = r.json().get("error") or r.reason_phrase
            except ValueError:
                error = r.reason_phrase
            raise OrderFetchError(r.status_code, error)

        body = r.json()
        if not body.get("order"):
            raise OrderFetchError(r.status_code, "No order data received")
        return Order.model_validate(body["order"])

    async def aclose(self) -> None:
        await self._client.aclose()
