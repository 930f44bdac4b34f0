"""Application container and FastAPI dependency providers."""
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Request

from storefront.checkout.discounts import DiscountResolver
from storefront.checkout.sessions import CheckoutSessionInitiator
from storefront.orders.materializer import OrderMaterializer
from storefront.orders.queries import OrderQueryService
from storefront.orders.store import InMemoryOrderStore, OrderStore, RedisOrderStore
from storefront.shared.config import Settings
from storefront.shared.gateway import PaymentGateway
from storefront.shared.identity import buyer_email_from_authorization
from storefront.webhooks.receiver import WebhookReceiver


@dataclass
class Services:
    """Everything request handlers need, built once per process in the lifespan."""

    settings: Settings
    gateway: PaymentGateway
    store: OrderStore
    checkout: CheckoutSessionInitiator
    materializer: OrderMaterializer
    queries: OrderQueryService
    webhooks: WebhookReceiver


def build_store(settings: Settings) -> OrderStore:
    if settings.order_store_backend == "redis":
        return RedisOrderStore.from_url(settings.redis_url)
    if settings.order_store_backend != "memory":
        raise ValueError(f"unknown ORDER_STORE_BACKEND {settings.order_store_backend!r}")
    return InMemoryOrderStore()


def build_services(settings: Settings, gateway: PaymentGateway, store: OrderStore) -> Services:
    materializer = OrderMaterializer(gateway, store, settings)
    discounts = DiscountResolver(gateway, settings)
    return Services(
        settings=settings,
        gateway=gateway,
        store=store,
        checkout=CheckoutSessionInitiator(gateway, discounts, settings),
        materializer=materializer,
        queries=OrderQueryService(store, materializer),
        webhooks=WebhookReceiver(gateway, materializer, settings.stripe_webhook_secret),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_buyer_email(
    request: Request,
    authorization: str | None = Header(default=None),
) -> str | None:
    settings: Settings = request.app.state.services.settings
    return buyer_email_from_authorization(authorization, settings.identity_token_secret)
