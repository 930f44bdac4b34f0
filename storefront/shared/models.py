"""Canonical order model and the pure fulfillment-status derivation."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, computed_field

STANDARD_SHIPPING = "Standard Delivery (Free)"
CARD_PAYMENT = "Credit Card (Stripe)"

SHIPPED_AFTER_DAYS = 2
DELIVERED_AFTER_DAYS = 7


class FulfillmentStatus(str, PyEnum):
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"


def derive_fulfillment_status(
    created_at: datetime, now: datetime | None = None
) -> FulfillmentStatus:
    """Map whole days elapsed since ``created_at`` onto a fulfillment status."""
    now = now or datetime.now(timezone.utc)
    days = (now - created_at).days
    if days >= DELIVERED_AFTER_DAYS:
        return FulfillmentStatus.delivered
    if days >= SHIPPED_AFTER_DAYS:
        return FulfillmentStatus.shipped
    return FulfillmentStatus.processing


class ShippingAddress(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""


class OrderLine(BaseModel):
    name: str
    quantity: int
    line_total: int  # minor units


class Order(BaseModel):
    """One order per completed checkout session. Never mutated once stored."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    session_handle: str
    items: list[OrderLine]
    total_amount: int
    currency: str
    created_at: datetime
    estimated_delivery_at: datetime
    shipping_address: ShippingAddress
    buyer_name: str
    buyer_email: str
    payment_status: str
    shipping_method: str = STANDARD_SHIPPING
    payment_method: str = CARD_PAYMENT

    @computed_field  # type: ignore[prop-decorator]
    @property
    def fulfillment_status(self) -> FulfillmentStatus:
        return derive_fulfillment_status(self.created_at)
