"""Open gateway checkout sessions for a cart."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from storefront.checkout.discounts import DiscountResolver
from storefront.checkout.line_items import parse_cart, to_gateway_line_item
from storefront.shared.config import Settings
from storefront.shared.errors import CheckoutInitiationError
from storefront.shared.gateway import GatewayError, GatewayLineItem, PaymentGateway
from storefront.shared.metrics import CHECKOUT_SESSIONS

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    """A gateway checkout session as opened by this service. Immutable."""

    session_handle: str
    buyer_email: str | None
    line_items: tuple[GatewayLineItem, ...]
    discount_id: str | None
    success_url: str
    cancel_url: str


class CheckoutSessionInitiator:
    def __init__(
        self, gateway: PaymentGateway, discounts: DiscountResolver, settings: Settings
    ) -> None:
        self._gateway = gateway
        self._discounts = discounts
        self._settings = settings

    async def initiate(
        self,
        raw_items: Any,
        coupon_code: str | None = None,
        buyer_email: str | None = None,
    ) -> CheckoutSession:
        """
        Format the cart, resolve the coupon and open a session.

        Gateway failures surface as ``CheckoutInitiationError`` carrying the
        gateway's message and classification; they are not retried here.
        """
        cart = parse_cart(raw_items)
        line_items = [to_gateway_line_item(item, self._settings.currency) for item in cart]
        logger.info("checkout_requested", items=len(line_items), buyer_email=buyer_email)

        discount_id = await self._discounts.resolve(coupon_code, cart)

        try:
            handle = await self._gateway.create_checkout_session(
                line_items,
                buyer_email=buyer_email,
                success_url=self._settings.success_url,
                cancel_url=self._settings.cancel_url,
                discount_id=discount_id,
            )
        except GatewayError as exc:
            CHECKOUT_SESSIONS.labels(outcome="failed").inc()
            logger.error("checkout_session_failed", kind=exc.kind, error=exc.message)
            raise CheckoutInitiationError(details=exc.message, type=exc.kind) from exc

        CHECKOUT_SESSIONS.labels(outcome="created").inc()
        logger.info("checkout_session_created", session_handle=handle, discount_id=discount_id)
        return CheckoutSession(
            session_handle=handle,
            buyer_email=buyer_email,
            line_items=tuple(line_items),
            discount_id=discount_id,
            success_url=self._settings.success_url,
            cancel_url=self._settings.cancel_url,
        )
