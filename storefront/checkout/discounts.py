"""
Coupon resolution with create-if-missing semantics.

Only one coupon code is recognized. Its gateway discount object is looked up by
the code itself; when absent it is created with an amount that brings the
current cart down to the configured minimum charge. Concurrent first uses in
this process are serialised per code, and an "already exists" answer from the
gateway (another process won the race) counts as success.

Coupon entry is advisory: unknown codes and gateway failures mean "no
discount", never a failed checkout.
"""
from __future__ import annotations

import asyncio
from decimal import Decimal

import structlog

from storefront.checkout.line_items import to_minor_units
from storefront.shared.config import Settings
from storefront.shared.gateway import (
    AlreadyExists,
    Created,
    Found,
    GatewayError,
    PaymentGateway,
)
from storefront.shared.metrics import DISCOUNT_RESOLUTIONS
from storefront.shared.schemas import CartItem

logger = structlog.get_logger(__name__)


def cart_subtotal(cart: list[CartItem]) -> Decimal:
    return sum((item.price * (item.quantity or 1) for item in cart), Decimal(0))


def discount_amount(cart: list[CartItem], target_minimum: int) -> int:
    """Minor units to take off so the cart costs ``target_minimum`` (never negative)."""
    return max(to_minor_units(cart_subtotal(cart)) - target_minimum, 0)


class DiscountResolver:
    """Map a coupon code onto a gateway discount id, creating it on first use."""

    def __init__(self, gateway: PaymentGateway, settings: Settings) -> None:
        self._gateway = gateway
        self._code = settings.promo_coupon_code
        self._target_minimum = settings.promo_target_minimum
        self._currency = settings.currency
        self._locks: dict[str, asyncio.Lock] = {}

    def recognizes(self, coupon_code: str | None) -> bool:
        return bool(coupon_code) and coupon_code == self._code

    async def resolve(self, coupon_code: str | None, cart: list[CartItem]) -> str | None:
        """Return the discount id to attach to the session, or None."""
        if not self.recognizes(coupon_code):
            if coupon_code:
                logger.info("coupon_unrecognized", coupon_code=coupon_code)
                DISCOUNT_RESOLUTIONS.labels(outcome="unrecognized").inc()
            return None

        lock = self._locks.setdefault(self._code, asyncio.Lock())
        async with lock:
            try:
                return await self._ensure_discount(cart)
            except GatewayError as exc:
                logger.error(
                    "discount_resolution_failed",
                    coupon_code=self._code,
                    kind=exc.kind,
                    error=exc.message,
                )
                DISCOUNT_RESOLUTIONS.labels(outcome="error").inc()
                return None

    async def _ensure_discount(self, cart: list[CartItem]) -> str | None:
        lookup = await self._gateway.get_discount(self._code)
        if isinstance(lookup, Found):
            logger.info("discount_found", discount_id=lookup.discount.id)
            DISCOUNT_RESOLUTIONS.labels(outcome="found").inc()
            return lookup.discount.id

        amount = discount_amount(cart, self._target_minimum)
        if amount == 0:
            logger.info("discount_not_needed", coupon_code=self._code)
            DISCOUNT_RESOLUTIONS.labels(outcome="not_needed").inc()
            return None

        target = Decimal(self._target_minimum) / 100
        outcome = await self._gateway.create_discount(
            self._code,
            amount,
            self._currency,
            name=f"Discount to {target:.2f} {self._currency.upper()}",
        )
        if isinstance(outcome, Created):
            logger.info(
                "discount_created", discount_id=outcome.discount.id, amount_off=amount
            )
            DISCOUNT_RESOLUTIONS.labels(outcome="created").inc()
            return outcome.discount.id

        if isinstance(outcome, AlreadyExists):
            logger.info("discount_already_exists", discount_id=outcome.discount_id)
            DISCOUNT_RESOLUTIONS.labels(outcome="already_exists").inc()
            return outcome.discount_id
        raise TypeError(f"unexpected discount create outcome: {outcome!r}")
