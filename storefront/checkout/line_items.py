"""Turn untrusted cart entries into gateway line items."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from urllib.parse import urlsplit

import structlog
from pydantic import ValidationError

from storefront.shared.errors import InvalidCartError
from storefront.shared.gateway import GatewayLineItem
from storefront.shared.schemas import CartItem

logger = structlog.get_logger(__name__)

DEFAULT_NAME = "Product"


def to_minor_units(amount: Decimal) -> int:
    """Round a major-unit amount to integer minor units (half away from zero)."""
    return int((Decimal(amount) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validate_image_url(url: str | None) -> str | None:
    """Return ``url`` unchanged if it is an absolute http(s) URL, else None."""
    if not url:
        return None
    if not (url.startswith("http://") or url.startswith("https://")):
        logger.info("image_url_skipped", reason="relative", url=url)
        return None
    try:
        parts = urlsplit(url)
    except ValueError:
        logger.info("image_url_skipped", reason="malformed", url=url)
        return None
    if not parts.hostname or any(ch.isspace() for ch in url):
        logger.info("image_url_skipped", reason="malformed", url=url)
        return None
    return url


def parse_cart(raw_items: Any) -> list[CartItem]:
    """Validate the cart shape. Raises ``InvalidCartError`` for empty or non-list carts."""
    if not isinstance(raw_items, list) or not raw_items:
        logger.warning("invalid_cart", reason="empty_or_not_list")
        raise InvalidCartError()

    cart: list[CartItem] = []
    for index, entry in enumerate(raw_items):
        try:
            item = CartItem.model_validate(entry)
        except ValidationError as exc:
            logger.warning("invalid_cart_item", index=index, errors=exc.error_count())
            raise InvalidCartError(
                "Invalid cart item", details=f"item {index}: {exc.errors()[0]['msg']}"
            ) from exc
        if item.quantity is not None and item.quantity < 0:
            raise InvalidCartError("Invalid cart item", details=f"item {index}: negative quantity")
        cart.append(item)
    return cart


def to_gateway_line_item(item: CartItem, currency: str) -> GatewayLineItem:
    name = (item.name or "").strip() or DEFAULT_NAME
    description = (item.description or "").strip() or None

    candidate = item.images[0] if item.images else item.image_url
    image = validate_image_url(candidate)

    return GatewayLineItem(
        name=name,
        description=description,
        images=[image] if image else [],
        unit_amount=to_minor_units(item.price),
        quantity=item.quantity or 1,
        currency=currency,
    )


def format_line_items(raw_items: Any, currency: str) -> list[GatewayLineItem]:
    return [to_gateway_line_item(item, currency) for item in parse_cart(raw_items)]
