"""Shared fixtures: settings, a recording fake gateway, stores and the app."""
from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import time
from collections import Counter
from typing import Any

import jwt
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from storefront.api.main import create_app
from storefront.orders.materializer import OrderMaterializer
from storefront.orders.store import InMemoryOrderStore
from storefront.shared.config import Settings
from storefront.shared.gateway import (
    AlreadyExists,
    Created,
    DiscountDefinition,
    Found,
    GatewayError,
    GatewayLineItem,
    GatewayNotFoundError,
    NotFound,
    SessionRecord,
)
from storefront.shared.stripe_gateway import StripeGateway, session_record_from_payload

WEBHOOK_SECRET = "whsec_test_secret"
IDENTITY_SECRET = "identity-test-secret"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header for ``payload``."""
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def event_payload(event_type: str, obj: dict[str, Any], event_id: str = "evt_test_1") -> bytes:
    return json.dumps(
        {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}
    ).encode()


def bearer(email: str, secret: str = IDENTITY_SECRET) -> dict[str, str]:
    token = jwt.encode({"email": email, "sub": email}, secret, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def completed_session(handle: str, **overrides: Any) -> SessionRecord:
    """An expanded Stripe checkout session payload, normalised like the adapter does."""
    raw: dict[str, Any] = {
        "id": handle,
        "object": "checkout.session",
        "amount_total": 300,
        "currency": "inr",
        "payment_status": "paid",
        "customer_email": "buyer@example.com",
        "customer_details": {"name": "Asha Rao", "email": "buyer@example.com"},
        "shipping_details": {
            "name": "Asha Rao",
            "address": {
                "line1": "12 MG Road",
                "city": "Bengaluru",
                "state": "KA",
                "postal_code": "560001",
                "country": "IN",
            },
        },
        "line_items": {
            "object": "list",
            "data": [
                {"description": "Bamboo Toothbrush", "quantity": 2, "amount_total": 200},
                {"description": "Jute Bag", "quantity": 1, "amount_total": 100},
            ],
        },
    }
    raw.update(overrides)
    return session_record_from_payload(raw)


class FakeGateway:
    """In-process ``PaymentGateway`` that records every call.

    Signature verification is delegated to the real Stripe adapter so webhook
    tests exercise genuine signature checking.
    """

    def __init__(self, settings: Settings) -> None:
        self.calls: Counter[str] = Counter()
        self.sessions: dict[str, SessionRecord] = {}
        self.discounts: dict[str, DiscountDefinition] = {}
        self.discounts_created = 0
        self.opened_sessions: list[dict[str, Any]] = []
        self.retrieve_delay = 0.0
        self.create_discount_delay = 0.0
        self.retrieve_errors: list[Exception] = []
        self.create_session_error: GatewayError | None = None
        self.get_discount_error: GatewayError | None = None
        self._verifier = StripeGateway(settings)

    async def create_checkout_session(
        self,
        line_items: list[GatewayLineItem],
        *,
        buyer_email: str | None,
        success_url: str,
        cancel_url: str,
        discount_id: str | None = None,
    ) -> str:
        self.calls["create_checkout_session"] += 1
        if self.create_session_error is not None:
            raise self.create_session_error
        handle = f"cs_test_a1{len(self.opened_sessions) + 1:06d}XYZW1234"
        self.opened_sessions.append(
            {
                "handle": handle,
                "line_items": line_items,
                "buyer_email": buyer_email,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "discount_id": discount_id,
            }
        )
        return handle

    async def retrieve_session(self, session_handle: str) -> SessionRecord:
        self.calls["retrieve_session"] += 1
        await asyncio.sleep(self.retrieve_delay)
        if self.retrieve_errors:
            raise self.retrieve_errors.pop(0)
        if session_handle not in self.sessions:
            raise GatewayNotFoundError(
                f"No such checkout.session: '{session_handle}'",
                kind="invalid_request_error",
                code="resource_missing",
            )
        return self.sessions[session_handle]

    async def get_discount(self, discount_id: str):
        self.calls["get_discount"] += 1
        await asyncio.sleep(0)
        if self.get_discount_error is not None:
            raise self.get_discount_error
        if discount_id in self.discounts:
            return Found(self.discounts[discount_id])
        return NotFound(discount_id)

    async def create_discount(
        self, discount_id: str, amount_off: int, currency: str, name: str | None = None
    ):
        self.calls["create_discount"] += 1
        await asyncio.sleep(self.create_discount_delay)
        if discount_id in self.discounts:
            return AlreadyExists(discount_id)
        discount = DiscountDefinition(
            id=discount_id, amount_off=amount_off, currency=currency, name=name
        )
        self.discounts[discount_id] = discount
        self.discounts_created += 1
        return Created(discount)

    def verify_event(self, payload: bytes, signature: str | None, secret: str):
        self.calls["verify_event"] += 1
        return self._verifier.verify_event(payload, signature, secret)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        base_url="https://shop.example.com",
        stripe_secret_key="sk_test_dummy",
        stripe_webhook_secret=WEBHOOK_SECRET,
        identity_token_secret=IDENTITY_SECRET,
        log_level="WARNING",
    )


@pytest.fixture()
def gateway(settings: Settings) -> FakeGateway:
    return FakeGateway(settings)


@pytest.fixture()
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture()
def materializer(gateway: FakeGateway, store: InMemoryOrderStore, settings: Settings) -> OrderMaterializer:
    return OrderMaterializer(gateway, store, settings)


@pytest.fixture()
def client(settings: Settings, gateway: FakeGateway, store: InMemoryOrderStore):
    app = create_app(settings=settings, gateway=gateway, store=store)
    with TestClient(app) as test_client:
        yield test_client


class UnreachableRedis:
    """Redis client whose every command fails as if the server were down."""

    def __init__(self) -> None:
        self.closed = False

    async def get(self, key):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def set(self, key, value, nx=False):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def scan_iter(self, match="*"):
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
        yield  # pragma: no cover

    async def aclose(self):
        self.closed = True
