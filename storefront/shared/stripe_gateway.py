"""
Stripe adapter for the ``PaymentGateway`` port.

The Stripe SDK is synchronous, so every call runs in a worker thread and is
bounded by ``asyncio.wait_for``. Stripe exceptions are translated into the
``GatewayError`` family at this boundary.
"""
from __future__ import annotations

import asyncio
import time
from functools import partial
from typing import Any, Callable

import stripe
import structlog

from storefront.shared.config import Settings
from storefront.shared.gateway import (
    AlreadyExists,
    Created,
    CreateOutcome,
    DiscountDefinition,
    DiscountLookup,
    Found,
    GatewayAlreadyExistsError,
    GatewayError,
    GatewayEvent,
    GatewayLineItem,
    GatewayNotFoundError,
    GatewayTimeoutError,
    NotFound,
    SessionRecord,
    SignatureError,
)
from storefront.shared.metrics import GATEWAY_LATENCY

logger = structlog.get_logger(__name__)

SESSION_EXPAND = ["line_items", "customer", "payment_intent"]


def _plain(obj: Any) -> dict:
    if isinstance(obj, stripe.StripeObject):
        return obj.to_dict(recursive=True)
    return dict(obj)


def _translate(exc: stripe.StripeError) -> GatewayError:
    code = getattr(exc, "code", None)
    error_obj = getattr(exc, "error", None)
    kind = getattr(error_obj, "type", None) or type(exc).__name__
    message = getattr(exc, "user_message", None) or str(exc)
    if code == "resource_missing":
        return GatewayNotFoundError(message, kind=kind, code=code)
    if code == "resource_already_exists":
        return GatewayAlreadyExistsError(message, kind=kind, code=code)
    return GatewayError(message, kind=kind, code=code)


def session_record_from_payload(raw: dict) -> SessionRecord:
    """Normalise an expanded Stripe session into a ``SessionRecord``."""
    line_items = (raw.get("line_items") or {}).get("data") or []
    shipping = raw.get("shipping_details") or (
        raw.get("collected_information") or {}
    ).get("shipping_details")
    return SessionRecord.model_validate(
        {**raw, "line_items": line_items, "shipping_details": shipping}
    )


class StripeGateway:
    """``PaymentGateway`` backed by the Stripe API."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.stripe_secret_key
        self._api_version = settings.stripe_api_version
        self._timeout = settings.gateway_timeout
        self._currency = settings.currency
        self._shipping_countries = list(settings.shipping_countries)
        if not self._api_key:
            logger.warning("stripe_secret_key_missing")

    async def _call(self, operation: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        if not self._api_key:
            raise GatewayError(
                "Invalid or missing Stripe API key. Check your environment variables.",
                kind="configuration_error",
            )
        kwargs.setdefault("api_key", self._api_key)
        kwargs.setdefault("stripe_version", self._api_version)
        started = time.perf_counter()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(partial(fn, *args, **kwargs)), timeout=self._timeout
            )
        except asyncio.TimeoutError as exc:
            logger.warning("gateway_timeout", operation=operation, timeout=self._timeout)
            raise GatewayTimeoutError(
                f"{operation} timed out after {self._timeout}s", kind="timeout"
            ) from exc
        except stripe.StripeError as exc:
            translated = _translate(exc)
            logger.warning(
                "gateway_call_failed",
                operation=operation,
                kind=translated.kind,
                code=translated.code,
                error=translated.message,
            )
            raise translated from exc
        finally:
            GATEWAY_LATENCY.labels(operation=operation).observe(time.perf_counter() - started)

    async def create_checkout_session(
        self,
        line_items: list[GatewayLineItem],
        *,
        buyer_email: str | None,
        success_url: str,
        cancel_url: str,
        discount_id: str | None = None,
    ) -> str:
        params: dict[str, Any] = {
            "payment_method_types": ["card"],
            "line_items": [self._line_item_params(item) for item in line_items],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "billing_address_collection": "auto",
            "shipping_address_collection": {"allowed_countries": self._shipping_countries},
        }
        if buyer_email:
            params["customer_email"] = buyer_email
        # Stripe accepts only one of discounts and allow_promotion_codes.
        if discount_id:
            params["discounts"] = [{"coupon": discount_id}]
        else:
            params["allow_promotion_codes"] = True

        logger.info(
            "stripe_session_create",
            items_count=len(line_items),
            success_url=success_url,
            has_coupon=discount_id is not None,
        )
        session = await self._call("create_checkout_session", stripe.checkout.Session.create, **params)
        return session.id

    async def retrieve_session(self, session_handle: str) -> SessionRecord:
        session = await self._call(
            "retrieve_session",
            stripe.checkout.Session.retrieve,
            session_handle,
            expand=SESSION_EXPAND,
        )
        return session_record_from_payload(_plain(session))

    async def get_discount(self, discount_id: str) -> DiscountLookup:
        try:
            coupon = await self._call("get_discount", stripe.Coupon.retrieve, discount_id)
        except GatewayNotFoundError:
            return NotFound(discount_id)
        return Found(self._discount(coupon))

    async def create_discount(
        self, discount_id: str, amount_off: int, currency: str, name: str | None = None
    ) -> CreateOutcome:
        params: dict[str, Any] = {
            "id": discount_id,
            "amount_off": amount_off,
            "currency": currency,
            "duration": "once",
        }
        if name:
            params["name"] = name
        try:
            coupon = await self._call("create_discount", stripe.Coupon.create, **params)
        except GatewayAlreadyExistsError:
            return AlreadyExists(discount_id)
        return Created(self._discount(coupon))

    def verify_event(self, payload: bytes, signature: str | None, secret: str) -> GatewayEvent:
        if not secret:
            raise SignatureError("Webhook secret is not configured", kind="configuration_error")
        if not signature:
            raise SignatureError("Missing signature header", kind="signature_verification_error")
        try:
            event = stripe.Webhook.construct_event(payload, signature, secret)
        except ValueError as exc:
            raise SignatureError(f"Invalid payload: {exc}", kind="invalid_payload") from exc
        except stripe.SignatureVerificationError as exc:
            raise SignatureError(str(exc), kind="signature_verification_error") from exc

        raw = _plain(event)
        return GatewayEvent(
            id=raw.get("id"),
            type=raw.get("type", ""),
            object=(raw.get("data") or {}).get("object") or {},
        )

    def _line_item_params(self, item: GatewayLineItem) -> dict[str, Any]:
        product_data: dict[str, Any] = {"name": item.name}
        if item.description:
            product_data["description"] = item.description
        if item.images:
            product_data["images"] = list(item.images)
        return {
            "price_data": {
                "currency": item.currency,
                "product_data": product_data,
                "unit_amount": item.unit_amount,
            },
            "quantity": item.quantity,
        }

    def _discount(self, coupon: Any) -> DiscountDefinition:
        raw = _plain(coupon)
        return DiscountDefinition(
            id=raw["id"],
            amount_off=raw.get("amount_off") or 0,
            currency=raw.get("currency") or self._currency,
            duration=raw.get("duration") or "once",
            name=raw.get("name"),
        )
