"""Recognized webhook event variants."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from storefront.shared.gateway import GatewayEvent

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


@dataclass(frozen=True)
class CheckoutCompleted:
    event_id: str | None
    session_handle: str


@dataclass(frozen=True)
class PaymentSucceeded:
    event_id: str | None
    payment_intent_id: str


@dataclass(frozen=True)
class UnhandledEvent:
    event_id: str | None
    event_type: str


WebhookEvent = Union[CheckoutCompleted, PaymentSucceeded, UnhandledEvent]


def parse_event(event: GatewayEvent) -> WebhookEvent:
    """Classify a verified gateway event. Anything unrecognized is ``UnhandledEvent``."""
    object_id = event.object.get("id")
    if event.type == CHECKOUT_SESSION_COMPLETED and object_id:
        return CheckoutCompleted(event_id=event.id, session_handle=str(object_id))
    if event.type == PAYMENT_INTENT_SUCCEEDED and object_id:
        return PaymentSucceeded(event_id=event.id, payment_intent_id=str(object_id))
    return UnhandledEvent(event_id=event.id, event_type=event.type)
