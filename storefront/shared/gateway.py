"""
Payment gateway port.

The rest of the service talks to the gateway only through ``PaymentGateway``.
Adapter failures are reported with the ``GatewayError`` family so that domain
code never handles SDK exceptions, and lookups/creations that have more than
one successful shape return tagged results instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class GatewayError(Exception):
    """Any failed gateway call. ``kind`` is the gateway's error classification."""

    def __init__(self, message: str, *, kind: str = "api_error", code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.code = code


class GatewayNotFoundError(GatewayError):
    pass


class GatewayAlreadyExistsError(GatewayError):
    pass


class GatewayTimeoutError(GatewayError):
    pass


class SignatureError(GatewayError):
    """The webhook payload could not be authenticated."""


# ---------------------------------------------------------------------------
# Gateway-shaped records
# ---------------------------------------------------------------------------


class GatewayLineItem(BaseModel):
    """A sanitized cart line ready to be sent to the gateway."""

    name: str
    unit_amount: int
    quantity: int = 1
    currency: str
    description: str | None = None
    images: list[str] = Field(default_factory=list)


class DiscountDefinition(BaseModel):
    id: str
    amount_off: int
    currency: str
    duration: str = "once"
    name: str | None = None


class SessionLineItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str | None = None
    quantity: int | None = None
    amount_total: int | None = None


class SessionAddress(BaseModel):
    model_config = ConfigDict(extra="ignore")

    line1: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class SessionCustomerDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    email: str | None = None


class SessionShippingDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    address: SessionAddress | None = None


class SessionRecord(BaseModel):
    """The authoritative, expanded checkout session as fetched from the gateway."""

    model_config = ConfigDict(extra="ignore")

    id: str
    amount_total: int | None = None
    currency: str | None = None
    payment_status: str | None = None
    customer_email: str | None = None
    customer_details: SessionCustomerDetails | None = None
    shipping_details: SessionShippingDetails | None = None
    line_items: list[SessionLineItem] = Field(default_factory=list)


class GatewayEvent(BaseModel):
    """A verified webhook event: its type and the object it carries."""

    id: str | None = None
    type: str
    object: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Tagged results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Found:
    discount: DiscountDefinition


@dataclass(frozen=True)
class NotFound:
    discount_id: str


DiscountLookup = Union[Found, NotFound]


@dataclass(frozen=True)
class Created:
    discount: DiscountDefinition


@dataclass(frozen=True)
class AlreadyExists:
    discount_id: str


CreateOutcome = Union[Created, AlreadyExists]


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------


class PaymentGateway(Protocol):
    async def create_checkout_session(
        self,
        line_items: list[GatewayLineItem],
        *,
        buyer_email: str | None,
        success_url: str,
        cancel_url: str,
        discount_id: str | None = None,
    ) -> str:
        """Open a checkout session and return its handle."""
        ...

    async def retrieve_session(self, session_handle: str) -> SessionRecord:
        """Fetch a session expanded with line items, customer and payment intent."""
        ...

    async def get_discount(self, discount_id: str) -> DiscountLookup:
        ...

    async def create_discount(
        self, discount_id: str, amount_off: int, currency: str, name: str | None = None
    ) -> CreateOutcome:
        ...

    def verify_event(self, payload: bytes, signature: str | None, secret: str) -> GatewayEvent:
        """Authenticate a webhook delivery; raises ``SignatureError``."""
        ...
