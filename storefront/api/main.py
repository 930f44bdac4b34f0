"""
Storefront checkout and order reconciliation API.

Two paths converge on one order per checkout session:
- the gateway's asynchronous (at-least-once) webhook delivery, and
- the buyer's poll right after being redirected back from the gateway.

Both go through the order materializer, whose store single-flights per
session handle so only one of them fetches the session from the gateway.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from storefront.orders.store import OrderStore
from storefront.shared.config import Settings
from storefront.shared.errors import StorefrontError
from storefront.shared.gateway import PaymentGateway
from storefront.shared.logging import configure_logging
from storefront.shared.middleware import RequestContextMiddleware
from storefront.shared.stripe_gateway import StripeGateway

from .dependencies import build_services, build_store
from .routes import router

logger = structlog.get_logger(__name__)


async def handle_storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_error", error=exc.error, details=exc.details, type=exc.type)
    else:
        logger.info("request_rejected", error=exc.error, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


def create_app(
    settings: Settings | None = None,
    gateway: PaymentGateway | None = None,
    store: OrderStore | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        order_store = store or build_store(settings)
        app.state.services = build_services(
            settings, gateway or StripeGateway(settings), order_store
        )
        logger.info(
            "storefront_api_startup",
            store=type(order_store).__name__,
            base_url=settings.base_url,
        )
        yield
        await order_store.close()
        logger.info("storefront_api_shutdown")

    app = FastAPI(
        title="Storefront Checkout API",
        description=(
            "Checkout sessions, verified gateway webhooks and exactly-once order "
            "materialization per checkout session."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(StorefrontError, handle_storefront_error)  # type: ignore[arg-type]

    metrics_app = make_asgi_app()
    app.mount("/metrics", metrics_app)

    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("storefront.api.main:app", host="0.0.0.0", port=8000, reload=False)
