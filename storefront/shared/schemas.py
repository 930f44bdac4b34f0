"""Pydantic v2 request/response schemas for the storefront API."""
from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.shared.models import Order


class CartItem(BaseModel):
    """One untrusted cart entry as sent by the browser. Prices are in major units."""

    model_config = ConfigDict(extra="ignore")

    product_ref: str | int | None = Field(
        default=None, validation_alias=AliasChoices("productRef", "product_ref", "id", "_id")
    )
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "displayName"))
    price: Decimal = Field(..., ge=0, validation_alias=AliasChoices("price", "unitPrice"))
    quantity: int | None = None
    description: str | None = None
    images: list[str] = Field(default_factory=list)
    image_url: str | None = Field(
        default=None, validation_alias=AliasChoices("imageURL", "image_url", "image")
    )


class CheckoutRequest(BaseModel):
    """Request body for opening a checkout session.

    ``items`` is left untyped so that a missing or malformed cart is reported as
    an ``InvalidCartError`` (400) by the line-item formatter.
    """

    items: Any = Field(default=None, validation_alias=AliasChoices("cartItems", "items"))
    coupon_code: str | None = Field(
        default=None, validation_alias=AliasChoices("couponCode", "coupon_code")
    )


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_handle: str = Field(..., alias="sessionHandle")


class OrderResponse(BaseModel):
    order: Order


class OrdersResponse(BaseModel):
    orders: list[Order]


class WebhookAck(BaseModel):
    received: bool = True


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: str
    details: str | None = None
    type: str | None = None
